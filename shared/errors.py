"""
Shared error handling for the CSRF service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from .logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AccessLayerException(Exception):
    """Base exception for service errors."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class CSRFError(AccessLayerException):
    """Base class for anti-forgery token failures."""

    status_code = 403


class InvalidTokenError(CSRFError):
    """Token is missing, expired or has already been consumed."""

    def __init__(self, message: str = "invalid token", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_CSRF_TOKEN", message, details)


class InconsistentTokenError(CSRFError):
    """Two token sources carried different non-empty values."""

    status_code = 400

    def __init__(
        self,
        message: str = "inconsistent token between sources",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("INCONSISTENT_CSRF_TOKEN", message, details)
