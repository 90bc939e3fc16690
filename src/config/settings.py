"""SmartBuild settings.

Non-secret configuration comes from the environment (and an optional .env
file); the OpenAI key is resolved lazily through config.secrets.
"""

import os
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for non-secret configuration (emulator hosts, model names, etc.)
load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    """Read an optional integer environment variable."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return int(value)


@dataclass
class Settings:
    """Runtime configuration for the estimation and risk services.

    Note: Secrets (OPENAI_API_KEY) should be accessed via config.secrets module.
    The openai_api_key property delegates to the secrets module.
    """

    # Chat models: estimation work and the longer-form analysis work
    llm_model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o"))
    llm_analysis_model: str = field(default_factory=lambda: os.getenv("LLM_ANALYSIS_MODEL", "gpt-4o-mini"))
    llm_temperature: float = field(default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.2")))
    llm_max_tokens: int = field(default_factory=lambda: int(os.getenv("LLM_MAX_TOKENS", "2048")))

    # Firebase Configuration
    firebase_project_id: Optional[str] = field(default_factory=lambda: os.getenv("FIREBASE_PROJECT_ID"))
    use_firebase_emulators: bool = field(default_factory=lambda: os.getenv("USE_FIREBASE_EMULATORS", "false").lower() == "true")
    firestore_emulator_host: str = field(default_factory=lambda: os.getenv("FIRESTORE_EMULATOR_HOST", "localhost:8081"))

    # Risk extraction: seed for placeholder probability/impact values (unset = unseeded)
    risk_sampler_seed: Optional[int] = field(default_factory=lambda: _optional_int("RISK_SAMPLER_SEED"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Cached key, populated on first access of openai_api_key
    _openai_api_key: Optional[str] = field(default=None, repr=False)

    @property
    def openai_api_key(self) -> Optional[str]:
        """Get OpenAI API key from Secret Manager or environment."""
        if self._openai_api_key is None:
            from config.secrets import get_openai_api_key
            self._openai_api_key = get_openai_api_key()
        return self._openai_api_key

    def validate(self) -> None:
        """Validate required settings are present.

        Raises:
            ValueError: If required settings are missing.
        """
        if not self.openai_api_key and not self.use_firebase_emulators:
            raise ValueError("OPENAI_API_KEY is required in production")

    @property
    def is_emulator_mode(self) -> bool:
        """Check if running in emulator mode."""
        return self.use_firebase_emulators


# Process-wide settings
settings = Settings()
