"""
Exception hierarchy for FitUp.

Every error raised by the core carries:
- A human-readable message
- An error code for API responses
- The HTTP status code the web layer maps it to
- Optional details for debugging
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for consistent API error responses."""

    # General
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    UNAUTHORIZED = "UNAUTHORIZED"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    EXPIRED = "EXPIRED"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    INFRASTRUCTURE = "INFRASTRUCTURE"

    # Plans
    INVALID_USER_ID = "INVALID_USER_ID"
    INVALID_METADATA = "INVALID_METADATA"
    ACTIVE_PLAN_EXISTS = "ACTIVE_PLAN_EXISTS"
    NO_SUITABLE_TEMPLATE = "NO_SUITABLE_TEMPLATE"
    PLAN_EXPORT_FAILED = "PLAN_EXPORT_FAILED"

    # Sessions
    ACTIVE_SESSION_EXISTS = "ACTIVE_SESSION_EXISTS"
    SESSION_NOT_ACTIVE = "SESSION_NOT_ACTIVE"

    # Analytics
    UNREALISTIC_ESTIMATE = "UNREALISTIC_ESTIMATE"
    NOT_ESTIMABLE = "NOT_ESTIMABLE"

    # Messaging
    NOT_PARTICIPANT = "NOT_PARTICIPANT"


class FitUpError(Exception):
    """
    Base exception for all FitUp errors.

    Attributes:
        message: Human-readable error message
        code: Error code from ErrorCode enum
        status_code: HTTP status code for API responses
        details: Optional dictionary with additional error details
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result: dict[str, Any] = {"error": self.message, "code": self.code.value}
        if self.details:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


# ============================================================================
# Validation Errors (400)
# ============================================================================

class InvalidInputError(FitUpError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.INVALID_INPUT,
    ) -> None:
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            code=code,
            status_code=400,
            details=error_details,
        )


class InvalidUserIDError(InvalidInputError):
    """Raised when a user identifier is empty or malformed."""

    def __init__(self, message: str = "user id must not be empty") -> None:
        super().__init__(message, field="user_id", code=ErrorCode.INVALID_USER_ID)


class InvalidMetadataError(InvalidInputError):
    """Raised when plan generation metadata is incomplete or out of range."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, field=field, code=ErrorCode.INVALID_METADATA)


# ============================================================================
# Authentication / Authorization (401, 403)
# ============================================================================

class UnauthenticatedError(FitUpError):
    """Raised when a request carries no valid credentials."""

    def __init__(self, message: str = "authentication required") -> None:
        super().__init__(message, code=ErrorCode.UNAUTHENTICATED, status_code=401)


class UnauthorizedError(FitUpError):
    """Raised when the caller may not act on a resource."""

    def __init__(
        self,
        message: str = "not allowed",
        code: ErrorCode = ErrorCode.UNAUTHORIZED,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, status_code=403, details=details)


class NotParticipantError(UnauthorizedError):
    """Raised when a user is not a participant of a conversation."""

    def __init__(self, conversation_id: int, user_id: str) -> None:
        super().__init__(
            f"user {user_id} is not a participant of conversation {conversation_id}",
            code=ErrorCode.NOT_PARTICIPANT,
            details={"conversation_id": conversation_id},
        )


# ============================================================================
# Not Found (404)
# ============================================================================

class NotFoundError(FitUpError):
    """Raised when a requested entity does not exist."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Any = None,
        message: str | None = None,
    ) -> None:
        if message is None:
            if resource_id is not None:
                message = f"{resource_type} {resource_id} not found"
            else:
                message = f"{resource_type} not found"
        details: dict[str, Any] = {"resource_type": resource_type}
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        super().__init__(message, code=ErrorCode.NOT_FOUND, status_code=404, details=details)


# ============================================================================
# Conflict (409)
# ============================================================================

class ConflictError(FitUpError):
    """Raised on a uniqueness or state violation."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFLICT,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, status_code=409, details=details)


class ActivePlanExistsError(ConflictError):
    """Raised when a user already has an active plan."""

    def __init__(self, user_id: str, plan_id: int | None = None) -> None:
        details = {"plan_id": plan_id} if plan_id is not None else None
        super().__init__(
            f"user {user_id} already has an active plan",
            code=ErrorCode.ACTIVE_PLAN_EXISTS,
            details=details,
        )


class ActiveSessionExistsError(ConflictError):
    """Raised when a user already has an open workout session."""

    def __init__(self, user_id: str, session_id: int | None = None) -> None:
        details = {"session_id": session_id} if session_id is not None else None
        super().__init__(
            f"user {user_id} already has an active workout session",
            code=ErrorCode.ACTIVE_SESSION_EXISTS,
            details=details,
        )


class SessionNotActiveError(ConflictError):
    """Raised when a session is not in the active state."""

    def __init__(self, session_id: int, status: str) -> None:
        super().__init__(
            f"session {session_id} is {status}, not active",
            code=ErrorCode.SESSION_NOT_ACTIVE,
            details={"session_id": session_id, "status": status},
        )


# ============================================================================
# Expired (410)
# ============================================================================

class ExpiredError(FitUpError):
    """Raised when an invitation or token is past its expiry."""

    def __init__(self, message: str = "token has expired") -> None:
        super().__init__(message, code=ErrorCode.EXPIRED, status_code=410)


# ============================================================================
# Domain errors (422)
# ============================================================================

class UnrealisticEstimateError(FitUpError):
    """Raised when a 1RM update falls outside the accepted band."""

    def __init__(self, previous: float, proposed: float, change_pct: float) -> None:
        super().__init__(
            f"unrealistic 1RM change of {change_pct:+.1f}% "
            f"(previous {previous:.1f}, proposed {proposed:.1f})",
            code=ErrorCode.UNREALISTIC_ESTIMATE,
            status_code=422,
            details={
                "previous": previous,
                "proposed": proposed,
                "change_pct": round(change_pct, 2),
            },
        )


class NotEstimableError(FitUpError):
    """Raised when a 1RM formula is undefined for the given input."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=ErrorCode.NOT_ESTIMABLE, status_code=422)


class NoSuitableTemplateError(FitUpError):
    """Raised when the catalog has no template or exercises for a request."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            code=ErrorCode.NO_SUITABLE_TEMPLATE,
            status_code=422,
            details=details,
        )


# ============================================================================
# Server Errors (500, 501)
# ============================================================================

class InfrastructureError(FitUpError):
    """Wraps a storage or transport failure."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        details = {}
        if original_error is not None:
            details["original_error"] = str(original_error)
        super().__init__(
            message,
            code=ErrorCode.INFRASTRUCTURE,
            status_code=500,
            details=details,
        )
        self.original_error = original_error


class PlanExportError(FitUpError):
    """Raised when the PDF renderer fails or times out."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=ErrorCode.PLAN_EXPORT_FAILED, status_code=500)


class NotImplementedFeatureError(FitUpError):
    """Raised by named entry points whose behavior is not defined yet."""

    def __init__(self, feature: str) -> None:
        super().__init__(
            f"{feature} is not implemented",
            code=ErrorCode.NOT_IMPLEMENTED,
            status_code=501,
            details={"feature": feature},
        )
