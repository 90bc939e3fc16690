"""Utility modules for SmartBuild services."""

from utils.rounding import round_half_up
from utils.sampling import PlausibleRangeSampler
from utils.service_logger import (
    configure_logging,
    log_fallback_used,
    log_extraction_summary,
)

__all__ = [
    "PlausibleRangeSampler",
    "round_half_up",
    "configure_logging",
    "log_fallback_used",
    "log_extraction_summary",
]
