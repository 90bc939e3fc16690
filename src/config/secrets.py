"""Secret resolution for SmartBuild.

Emulator runs read secrets straight from the environment. Deployed runs ask
Google Cloud Secret Manager for the latest version and use the environment
only when Secret Manager cannot answer.

    from config.secrets import get_openai_api_key
    key = get_openai_api_key()
"""

import os
import logging
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)

OPENAI_API_KEY = "OPENAI_API_KEY"
DEFAULT_GCP_PROJECT = "smartbuild-dev"


def is_emulator_mode() -> bool:
    """True when the Firebase emulators are in use."""
    if os.environ.get("USE_FIREBASE_EMULATORS", "false").lower() == "true":
        return True
    return os.environ.get("FIRESTORE_EMULATOR_HOST") is not None


def _gcp_project() -> str:
    return (
        os.environ.get("GOOGLE_CLOUD_PROJECT")
        or os.environ.get("FIREBASE_PROJECT_ID")
        or DEFAULT_GCP_PROJECT
    )


def _read_from_secret_manager(secret_id: str) -> str:
    from google.cloud import secretmanager

    client = secretmanager.SecretManagerServiceClient()
    version = f"projects/{_gcp_project()}/secrets/{secret_id}/versions/latest"
    payload = client.access_secret_version(request={"name": version}).payload
    return payload.data.decode("utf-8")


def get_secret(secret_id: str) -> Optional[str]:
    """Resolve a secret by name.

    Returns:
        The secret value, or None when neither source has it.
    """
    if not is_emulator_mode():
        try:
            return _read_from_secret_manager(secret_id)
        except Exception as e:
            logger.warning("Secret Manager lookup for %s failed, using environment: %s", secret_id, e)

    value = os.environ.get(secret_id)
    if not value:
        logger.warning("Secret %s is not set in the environment", secret_id)
    return value


@lru_cache(maxsize=1)
def get_openai_api_key() -> Optional[str]:
    return get_secret(OPENAI_API_KEY)


def clear_secret_cache() -> None:
    """Forget the cached API key (tests, key rotation)."""
    get_openai_api_key.cache_clear()
