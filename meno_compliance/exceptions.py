"""
Custom Exceptions for the MenoWellness compliance core

Provides a unified exception hierarchy for authentication, consent
enforcement, invite redemption, store failures and the external
analysis service.
"""

from typing import Optional, Dict, Any

from .constants import ErrorCodes


class ComplianceError(Exception):
    """
    Base exception for all compliance core errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Additional context about the error
        http_status: Status code used by the HTTP layer
    """

    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCodes.INTERNAL,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses"""
        result: Dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# CALLER ERRORS
# =============================================================================

class UnauthenticatedError(ComplianceError):
    """Raised when no verified caller identity is available"""

    http_status = 401

    def __init__(self, message: str = "Authentication is required to perform this action."):
        super().__init__(message, ErrorCodes.UNAUTHENTICATED)


class InvalidArgumentError(ComplianceError):
    """Raised when the request input is malformed"""

    http_status = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        super().__init__(message, ErrorCodes.INVALID_ARGUMENT, details)


# =============================================================================
# CONSENT ERRORS
# =============================================================================

class ConsentDeniedError(ComplianceError):
    """Raised when the consent gate denies an action"""

    http_status = 403

    def __init__(self, reason: str, action: Optional[str] = None):
        self.reason = reason
        details: Dict[str, Any] = {"reason": reason}
        if action:
            details["action"] = action
        super().__init__(
            message="Consent required. Please update your consent preferences.",
            error_code=ErrorCodes.PERMISSION_DENIED,
            details=details
        )


# =============================================================================
# INVITE ERRORS
# =============================================================================

class InviteNotFoundError(ComplianceError):
    """Raised when an invite code does not exist"""

    http_status = 404

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__("Invalid invite code.", ErrorCodes.NOT_FOUND, {"reason": kind})


class InvitePreconditionError(ComplianceError):
    """Raised when an invite is already used or has expired"""

    http_status = 412

    def __init__(self, kind: str, message: str):
        self.kind = kind
        super().__init__(message, ErrorCodes.FAILED_PRECONDITION, {"reason": kind})


# =============================================================================
# STORE ERRORS
# =============================================================================

class StoreError(ComplianceError):
    """Raised when the durable store fails; never leaks backend detail"""

    http_status = 500

    def __init__(self, message: str = "An unexpected error occurred."):
        super().__init__(message, ErrorCodes.INTERNAL)


# =============================================================================
# ANALYSIS ERRORS
# =============================================================================

class AnalysisServiceError(ComplianceError):
    """Raised when the external analysis service call fails"""

    http_status = 502

    def __init__(self, kind: str, message: str, status_code: Optional[int] = None):
        self.kind = kind
        self.status_code = status_code
        details: Dict[str, Any] = {"kind": kind}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, ErrorCodes.ANALYSIS_FAILED, details)


# =============================================================================
# MAINTENANCE ERRORS
# =============================================================================

class CleanupAuthError(ComplianceError):
    """Raised when a scheduled trigger fails source authentication"""

    http_status = 401

    def __init__(self, message: str = "Trigger source could not be authenticated."):
        super().__init__(message, ErrorCodes.UNAUTHENTICATED)
