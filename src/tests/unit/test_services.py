"""Unit tests for service wiring, the sampler and configuration."""

import pytest
from unittest.mock import MagicMock, patch

from config.errors import LLMError, SmartBuildError, ErrorCode
from config.settings import Settings
from services import ServiceContainer, build_services
from services.comparison_service import ComparisonService
from services.estimation_service import EstimationService
from services.firestore_service import FirestoreService
from services.risk_analysis_service import RiskAnalysisService
from utils.sampling import PlausibleRangeSampler


class TestBuildServices:
    """Tests for build_services."""

    def test_builds_container(self, mock_settings, mock_firestore_client):
        container = build_services(mock_settings, db=mock_firestore_client)

        assert isinstance(container, ServiceContainer)
        assert isinstance(container.estimation, EstimationService)
        assert isinstance(container.risk_analysis, RiskAnalysisService)
        assert isinstance(container.comparison, ComparisonService)
        assert isinstance(container.firestore, FirestoreService)
        assert container.firestore.db is mock_firestore_client

    def test_models_are_split_by_workload(self, mock_settings):
        container = build_services(mock_settings)

        assert container.estimation.llm.model == "gpt-4o"
        assert container.estimation.analysis_llm.model == "gpt-4o-mini"
        assert container.risk_analysis.llm.model == "gpt-4o"
        assert container.risk_analysis.analysis_llm.model == "gpt-4o-mini"

    def test_services_share_one_sampler(self, mock_settings):
        container = build_services(mock_settings)

        assert container.estimation.sampler is container.risk_analysis.sampler

    def test_defaults_to_module_settings(self, mock_settings):
        mock_settings.llm_model = "gpt-4.1"

        container = build_services()

        assert container.estimation.llm.model == "gpt-4.1"

    def test_seeded_sampler_is_reproducible(self, mock_settings):
        first = build_services(mock_settings).risk_analysis.sampler
        second = build_services(mock_settings).risk_analysis.sampler

        assert [first.risk_placeholder() for _ in range(5)] == [
            second.risk_placeholder() for _ in range(5)
        ]


class TestPlausibleRangeSampler:
    """Tests for PlausibleRangeSampler."""

    def test_risk_placeholder_range(self):
        sampler = PlausibleRangeSampler(seed=7)

        values = [sampler.risk_placeholder() for _ in range(200)]

        assert min(values) >= 40
        assert max(values) <= 79

    def test_randint_inclusive_single_value(self):
        assert PlausibleRangeSampler(seed=1).randint(5, 5) == 5

    def test_randint_rejects_inverted_range(self):
        with pytest.raises(ValueError):
            PlausibleRangeSampler().randint(10, 1)

    def test_uniform_bounds(self):
        sampler = PlausibleRangeSampler(seed=3)

        assert all(0.9 <= sampler.uniform(0.9, 1.1) <= 1.1 for _ in range(50))


class TestSettings:
    """Tests for Settings loaded from the environment."""

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LLM_MODEL", "gpt-4.1")
        monkeypatch.setenv("LLM_ANALYSIS_MODEL", "gpt-4.1-mini")
        monkeypatch.setenv("LLM_TEMPERATURE", "0.5")
        monkeypatch.setenv("RISK_SAMPLER_SEED", "99")

        settings = Settings()

        assert settings.llm_model == "gpt-4.1"
        assert settings.llm_analysis_model == "gpt-4.1-mini"
        assert settings.llm_temperature == 0.5
        assert settings.risk_sampler_seed == 99

    def test_blank_seed_is_unseeded(self, monkeypatch):
        monkeypatch.setenv("RISK_SAMPLER_SEED", "  ")

        assert Settings().risk_sampler_seed is None

    def test_validate_requires_key_outside_emulators(self, monkeypatch):
        monkeypatch.setenv("USE_FIREBASE_EMULATORS", "false")
        settings = Settings(_openai_api_key="")

        with patch("config.secrets.get_openai_api_key", return_value=None):
            with pytest.raises(ValueError):
                settings.validate()

    def test_validate_passes_in_emulator_mode(self, monkeypatch):
        monkeypatch.setenv("USE_FIREBASE_EMULATORS", "true")
        settings = Settings(_openai_api_key="")

        with patch("config.secrets.get_openai_api_key", return_value=None):
            settings.validate()

        assert settings.is_emulator_mode


class TestSecrets:
    """Tests for secret resolution."""

    def test_emulator_reads_environment(self, monkeypatch):
        from config.secrets import get_secret

        monkeypatch.setenv("USE_FIREBASE_EMULATORS", "true")
        monkeypatch.setenv("MY_SECRET", "shh")

        assert get_secret("MY_SECRET") == "shh"

    def test_secret_manager_failure_falls_back_to_environment(self, monkeypatch):
        from config.secrets import get_secret

        monkeypatch.setenv("USE_FIREBASE_EMULATORS", "false")
        monkeypatch.delenv("FIRESTORE_EMULATOR_HOST", raising=False)
        monkeypatch.setenv("MY_SECRET", "from-env")

        with patch("google.cloud.secretmanager.SecretManagerServiceClient", side_effect=Exception("no creds")):
            assert get_secret("MY_SECRET") == "from-env"

    def test_secret_manager_value(self, monkeypatch):
        from config.secrets import get_secret

        monkeypatch.setenv("USE_FIREBASE_EMULATORS", "false")
        monkeypatch.delenv("FIRESTORE_EMULATOR_HOST", raising=False)
        client = MagicMock()
        client.access_secret_version.return_value.payload.data = b"sm-value"

        with patch("google.cloud.secretmanager.SecretManagerServiceClient", return_value=client):
            assert get_secret("MY_SECRET") == "sm-value"


class TestErrors:
    """Tests for the error taxonomy."""

    def test_to_dict(self):
        error = SmartBuildError(ErrorCode.PROJECT_NOT_FOUND, "Project missing", {"project_id": "p1"})

        assert error.to_dict() == {
            "code": "PROJECT_NOT_FOUND",
            "message": "Project missing",
            "details": {"project_id": "p1"},
        }

    def test_llm_error_is_smartbuild_error(self):
        error = LLMError(ErrorCode.LLM_RATE_LIMIT, "Slow down", model="gpt-4o")

        assert isinstance(error, SmartBuildError)
        assert error.model == "gpt-4o"
