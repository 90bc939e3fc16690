"""SmartBuild error handling.

Custom exceptions and error codes for the estimation and risk services.
"""

from typing import Optional, Dict, Any


class ErrorCode:
    """Error code constants."""

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FIELD = "INVALID_FIELD"

    # LLM Errors
    LLM_ERROR = "LLM_ERROR"
    LLM_RATE_LIMIT = "LLM_RATE_LIMIT"
    LLM_CONTEXT_TOO_LONG = "LLM_CONTEXT_TOO_LONG"
    LLM_INVALID_RESPONSE = "LLM_INVALID_RESPONSE"

    # Firestore Errors
    FIRESTORE_ERROR = "FIRESTORE_ERROR"
    FIRESTORE_WRITE_FAILED = "FIRESTORE_WRITE_FAILED"
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    ASSESSMENT_NOT_FOUND = "ASSESSMENT_NOT_FOUND"


class SmartBuildError(Exception):
    """Base exception for SmartBuild errors.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"SmartBuildError(code={self.code!r}, message={self.message!r})"


class ValidationError(SmartBuildError):
    """Validation-specific error."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )


class LLMError(SmartBuildError):
    """Upstream text-generation call failed (network, timeout, provider)."""

    def __init__(self, code: str, message: str, model: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "model": model} if model else details
        )
        self.model = model


class LLMResponseError(SmartBuildError):
    """The model answered, but not in a shape we can parse."""

    def __init__(self, message: str, raw_content: str = "", details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.LLM_INVALID_RESPONSE,
            message=message,
            details={**(details or {}), "raw_content": raw_content[:500]}
        )
