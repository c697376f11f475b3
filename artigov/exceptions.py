"""Custom exception hierarchy for artigov.

Every denied or invalid command raises one of these before any write is
flushed, so the request transaction rolls back with no partial state.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Lookup errors
    NOT_FOUND = "NOT_FOUND"
    ARTIFACT_NOT_FOUND = "ARTIFACT_NOT_FOUND"
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    SUGGESTION_NOT_FOUND = "SUGGESTION_NOT_FOUND"
    DELEGATION_NOT_FOUND = "DELEGATION_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Permission errors
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_MEMBER = "NOT_MEMBER"
    SELF_APPROVAL = "SELF_APPROVAL"
    RATE_LIMITED = "RATE_LIMITED"

    # Workflow state errors
    INVALID_STATE = "INVALID_STATE"
    NOT_EDITABLE = "NOT_EDITABLE"

    # Concurrency errors
    CONFLICT = "CONFLICT"

    # Persistence errors
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ArtigovException(Exception):
    """
    Base exception for all artigov errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------

class NotFoundError(ArtigovException):
    """Resource absent, or present but in a different project."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, status_code=404, details=details)


class ArtifactNotFoundError(NotFoundError):
    """Artifact not found in database."""

    def __init__(self, artifact_id: str):
        super().__init__(
            f"Artifact not found: {artifact_id}",
            ErrorCode.ARTIFACT_NOT_FOUND,
            details={"artifact_id": artifact_id}
        )


class ProjectNotFoundError(NotFoundError):
    """Project not found in database."""

    def __init__(self, project_id: str):
        super().__init__(
            f"Project not found: {project_id}",
            ErrorCode.PROJECT_NOT_FOUND,
            details={"project_id": project_id}
        )


class SuggestionNotFoundError(NotFoundError):
    """Suggestion not found for the given artifact."""

    def __init__(self, suggestion_id: str):
        super().__init__(
            f"Suggestion not found: {suggestion_id}",
            ErrorCode.SUGGESTION_NOT_FOUND,
            details={"suggestion_id": suggestion_id}
        )


class DelegationNotFoundError(NotFoundError):
    """Delegation not found for the given project."""

    def __init__(self, delegation_id: str):
        super().__init__(
            f"Delegation not found: {delegation_id}",
            ErrorCode.DELEGATION_NOT_FOUND,
            details={"delegation_id": delegation_id}
        )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationError(ArtigovException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


# ---------------------------------------------------------------------------
# Authentication / permission
# ---------------------------------------------------------------------------

class AuthenticationError(ArtigovException):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class ForbiddenError(ArtigovException):
    """Authenticated user lacks permission for the requested action."""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        error_code: ErrorCode = ErrorCode.FORBIDDEN,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            error_code,
            status_code=403,
            details=details,
        )


class NotMemberError(ForbiddenError):
    """Caller has no membership row in the project."""

    def __init__(self, project_id: str, user_id: str):
        super().__init__(
            "Not a project member.",
            ErrorCode.NOT_MEMBER,
            details={"project_id": project_id, "user_id": user_id},
        )


class SelfApprovalError(ForbiddenError):
    """An approver tried to decide on an artifact they authored."""

    def __init__(self, artifact_id: str, action: str = "approve"):
        super().__init__(
            f"You cannot {action} your own artifact.",
            ErrorCode.SELF_APPROVAL,
            details={"artifact_id": artifact_id},
        )


# ---------------------------------------------------------------------------
# Workflow state
# ---------------------------------------------------------------------------

class StateError(ArtigovException):
    """Operation is invalid for the artifact's current workflow state."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVALID_STATE,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, status_code=409, details=details)


class NotEditableError(StateError):
    """Content edit attempted on a locked, non-current or non-draft artifact."""

    def __init__(self, artifact_id: str, reason: str):
        super().__init__(
            reason,
            ErrorCode.NOT_EDITABLE,
            details={"artifact_id": artifact_id},
        )


class ConflictError(ArtigovException):
    """A concurrent writer won the race for a current/baseline slot or version number."""

    def __init__(self, resource_id: str, message: str = "Artifact was modified by another request; retry"):
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details={"resource_id": resource_id}
        )


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class PersistenceError(ArtigovException):
    """The underlying store rejected a read or write."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message,
            ErrorCode.PERSISTENCE_ERROR,
            status_code=500,
            details=details
        )
