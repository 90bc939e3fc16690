"""SmartBuild configuration.

This package contains:
- settings: Environment variables and configuration
- secrets: Unified secret access (Secret Manager / environment)
- errors: Custom exceptions and error codes
"""

from config.settings import settings, Settings
from config.errors import SmartBuildError, ErrorCode
from config.secrets import get_secret, get_openai_api_key

__all__ = [
    "settings",
    "Settings",
    "SmartBuildError",
    "ErrorCode",
    "get_secret",
    "get_openai_api_key",
]
