"""SmartBuild services.

Services are built once at application start by ``build_services`` and
handed to callers through a ``ServiceContainer``.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from config.settings import Settings
from services.comparison_service import ComparisonService
from services.estimation_service import EstimationService
from services.firestore_service import FirestoreService
from services.llm_service import LLMService
from services.risk_analysis_service import RiskAnalysisService
from utils.sampling import PlausibleRangeSampler
from utils.service_logger import configure_logging

logger = structlog.get_logger()


@dataclass
class ServiceContainer:
    """One instance of each service, shared for the application lifetime."""

    estimation: EstimationService
    risk_analysis: RiskAnalysisService
    comparison: ComparisonService
    firestore: FirestoreService


def build_services(settings: Optional[Settings] = None, db=None) -> ServiceContainer:
    """Wire the services from settings.

    Args:
        settings: Application settings (defaults to the module settings).
        db: Optional Firestore client, mainly for tests.
    """
    if settings is None:
        from config.settings import settings

    configure_logging(settings.log_level)

    estimation_llm = LLMService(
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
    analysis_llm = LLMService(
        model=settings.llm_analysis_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
    sampler = PlausibleRangeSampler(seed=settings.risk_sampler_seed)

    container = ServiceContainer(
        estimation=EstimationService(estimation_llm, sampler, analysis_llm_service=analysis_llm),
        risk_analysis=RiskAnalysisService(estimation_llm, sampler, analysis_llm_service=analysis_llm),
        comparison=ComparisonService(),
        firestore=FirestoreService(db=db),
    )
    logger.info(
        "services_built",
        estimation_model=settings.llm_model,
        analysis_model=settings.llm_analysis_model,
        seeded_sampler=settings.risk_sampler_seed is not None,
    )
    return container


__all__ = [
    "ServiceContainer",
    "build_services",
    "ComparisonService",
    "EstimationService",
    "FirestoreService",
    "LLMService",
    "RiskAnalysisService",
]
