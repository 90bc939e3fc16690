"""Service logging helpers for SmartBuild.

Structured events describing where each field of a result came from, so a
degraded estimate or assessment can be traced in the logs.
"""

import logging
from typing import Dict, Optional

import structlog

logger = structlog.get_logger()

# Field provenance labels
EXTRACTED = "extracted"
DERIVED = "derived"
DEFAULTED = "defaulted"
SAMPLED = "sampled"


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog with ISO timestamps at the given level."""
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )


def log_fallback_used(
    operation: str,
    reason: str,
    error: Optional[str] = None,
    **context
) -> None:
    """Log that an operation returned its rule-based fallback.

    Args:
        operation: Service operation name (e.g. "generate_estimation").
        reason: Why the fallback was used ("llm_failed", "parse_failed", ...).
        error: Stringified exception, if any.
    """
    logger.warning(
        f"{operation}_fallback",
        reason=reason,
        error=error,
        **context
    )


def log_extraction_summary(operation: str, provenance: Dict[str, str], **context) -> None:
    """Log which fields were extracted, derived, defaulted or sampled."""
    counts = {
        label: sum(1 for source in provenance.values() if source == label)
        for label in (EXTRACTED, DERIVED, DEFAULTED, SAMPLED)
    }
    logger.info(
        f"{operation}_extracted",
        provenance=provenance,
        **counts,
        **context
    )

