"""Pytest configuration and shared fixtures for SmartBuild tests."""

import os
import sys
import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch


# ============================================================================
# Ensure local imports work (models/, services/, config/, utils/)
# ============================================================================
#
# Our codebase uses absolute imports like `from models...` / `from services...`.
# This guarantees that `src/` is importable as the top-level module root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# Firebase Mocks
# ============================================================================

@pytest.fixture
def mock_firestore_client():
    """Mock Firestore client."""
    client = MagicMock()

    # Mock collection and document methods
    collection_mock = MagicMock()
    document_mock = MagicMock()
    document_mock.id = "generated-doc-id"

    # Set up chain: client.collection().document()
    client.collection.return_value = collection_mock
    collection_mock.document.return_value = document_mock

    # Set up chain: client.collection().where().stream()
    query_mock = MagicMock()
    collection_mock.where.return_value = query_mock
    query_mock.stream.return_value = []

    # Mock async methods
    document_mock.get = AsyncMock(return_value=MagicMock(exists=False))
    document_mock.set = AsyncMock()
    document_mock.update = AsyncMock()
    document_mock.delete = AsyncMock()

    return client


@pytest.fixture
def mock_firestore_service(mock_firestore_client):
    """Mock FirestoreService with mocked client."""
    from services.firestore_service import FirestoreService

    service = FirestoreService(db=mock_firestore_client)
    return service


# ============================================================================
# LLM Mocks
# ============================================================================

@pytest.fixture
def mock_chat_openai():
    """Mock ChatOpenAI client."""
    mock = AsyncMock()
    mock.ainvoke.return_value = MagicMock(
        content="Mock response content",
        response_metadata={"token_usage": {"total_tokens": 100}}
    )
    return mock


@pytest.fixture
def mock_llm_service(mock_chat_openai):
    """LLMService backed by a mocked ChatOpenAI client."""
    from services.llm_service import LLMService

    with patch('services.llm_service.ChatOpenAI', return_value=mock_chat_openai):
        service = LLMService(api_key="test-api-key")
        service._client = mock_chat_openai
        return service


@pytest.fixture
def fake_llm():
    """Stand-in for LLMService whose send/generate_json are AsyncMocks.

    Tests set ``fake_llm.send.return_value`` or ``side_effect`` directly.
    """
    llm = MagicMock()
    llm.send = AsyncMock(return_value={"content": "", "tokens_used": 0})
    llm.generate_json = AsyncMock(return_value={"content": {}, "tokens_used": 0})
    return llm


@pytest.fixture
def seeded_sampler():
    """Reproducible placeholder sampler."""
    from utils.sampling import PlausibleRangeSampler

    return PlausibleRangeSampler(seed=42)


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def sample_estimation_request():
    """Residential new build in a baseline-priced market."""
    from models.project import EstimationRequest, ProjectType

    return EstimationRequest(
        project_type=ProjectType.RESIDENTIAL_NEW,
        size=2000,
        location="Austin, Texas",
        specifications="Two-story single family home, 3 bed / 2.5 bath",
        timeline="6 months",
        special_requirements=["Solar-ready roof"],
    )


@pytest.fixture
def sample_project():
    """Sample commercial project."""
    from models.project import Project, ProjectStatus, ProjectType

    return Project(
        id="proj-test-001",
        name="Downtown Office Fit-out",
        description="Four-floor office renovation",
        type=ProjectType.COMMERCIAL_RENOVATION,
        location="Chicago, IL",
        start_date=datetime(2025, 3, 1),
        estimated_end_date=datetime(2025, 9, 30),
        status=ProjectStatus.PLANNING,
        budget=1_500_000,
        owner_id="user-1",
    )


@pytest.fixture
def sample_estimation_response():
    """AI estimation response with an exact 47/33/12/8 breakdown."""
    from models.estimation import CostBreakdown, EstimationResponse

    return EstimationResponse(
        estimated_cost=300000,
        cost_breakdown=CostBreakdown(
            materials=141000,
            labor=99000,
            equipment=36000,
            overhead=24000,
        ),
        timeline=90,
        confidence=82,
        assumptions=["Standard construction materials and methods"],
        recommendations=["Secure material contracts early to lock in pricing"],
        risks=["Weather delays during construction season"],
    )


# ============================================================================
# Environment Setup
# ============================================================================

@pytest.fixture(autouse=True)
def mock_settings():
    """Mock settings for all tests."""
    with patch('config.settings.settings') as mock, \
            patch('services.llm_service.settings', mock):
        mock.openai_api_key = "test-api-key"
        mock.llm_model = "gpt-4o"
        mock.llm_analysis_model = "gpt-4o-mini"
        mock.llm_temperature = 0.1
        mock.llm_max_tokens = 2048
        mock.use_firebase_emulators = True
        mock.risk_sampler_seed = 42
        mock.log_level = "INFO"
        yield mock
