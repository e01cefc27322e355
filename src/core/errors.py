"""Domain exceptions and error classification for the verification workflow."""

from enum import Enum

from pydantic import BaseModel


class ErrorCategory(Enum):
    """Categories of errors surfaced by the status gate and ledger."""

    AUTHORIZATION = "authorization"
    INVARIANT_VIOLATION = "invariant_violation"
    RESOLUTION = "resolution"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Authorization errors
    ERR_NOT_A_MEMBER = "ERR_NOT_A_MEMBER"
    ERR_FORBIDDEN = "ERR_FORBIDDEN"
    ERR_NOT_AUTHORIZED = "ERR_NOT_AUTHORIZED"

    # Invariant violations
    ERR_VERIFICATION_ALREADY_PENDING = "ERR_VERIFICATION_ALREADY_PENDING"
    ERR_ALREADY_DECIDED = "ERR_ALREADY_DECIDED"

    # Resolution errors
    ERR_NO_APPROVER_AVAILABLE = "ERR_NO_APPROVER_AVAILABLE"

    # Request errors
    ERR_INVALID_STATUS = "ERR_INVALID_STATUS"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    status_code: int = 500


class TaskGateError(Exception):
    """Base class for every user-actionable error of the verification workflow."""

    code: str = ErrorCode.ERR_UNKNOWN
    category: ErrorCategory = ErrorCategory.UNKNOWN
    status_code: int = 500
    default_message: str = "An unexpected error occurred."
    suggestion: str = "Please try again later. If the problem persists, contact support."
    severity: ErrorSeverity = ErrorSeverity.MEDIUM

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAMemberError(TaskGateError):
    code = ErrorCode.ERR_NOT_A_MEMBER
    category = ErrorCategory.AUTHORIZATION
    status_code = 403
    default_message = "You are not a member of this project."
    suggestion = "Ask a project manager to add you to the project."


class ForbiddenError(TaskGateError):
    code = ErrorCode.ERR_FORBIDDEN
    category = ErrorCategory.AUTHORIZATION
    status_code = 403
    default_message = "You can only change the status of tasks assigned to you."
    suggestion = "Ask a project manager to assign the task to you or to change its status."


class NotAuthorizedError(TaskGateError):
    code = ErrorCode.ERR_NOT_AUTHORIZED
    category = ErrorCategory.AUTHORIZATION
    status_code = 403
    default_message = "You are not authorized to verify this request."
    suggestion = "Only the approver the request was routed to can decide it."


class VerificationAlreadyPendingError(TaskGateError):
    code = ErrorCode.ERR_VERIFICATION_ALREADY_PENDING
    category = ErrorCategory.INVARIANT_VIOLATION
    status_code = 400
    default_message = "There is already a pending verification for this task. Please wait for approval."
    suggestion = "Wait for the approver to decide the open request before asking again."
    severity = ErrorSeverity.LOW


class AlreadyDecidedError(TaskGateError):
    code = ErrorCode.ERR_ALREADY_DECIDED
    category = ErrorCategory.INVARIANT_VIOLATION
    status_code = 400
    default_message = "This verification request has already been processed."
    suggestion = "Refresh the verification list to see its outcome."
    severity = ErrorSeverity.LOW


class NoApproverAvailableError(TaskGateError):
    code = ErrorCode.ERR_NO_APPROVER_AVAILABLE
    category = ErrorCategory.RESOLUTION
    status_code = 400
    default_message = "No project manager found to verify this request."
    suggestion = "A project owner needs to give someone the manager role."


class InvalidStatusError(TaskGateError):
    code = ErrorCode.ERR_INVALID_STATUS
    category = ErrorCategory.VALIDATION
    status_code = 400
    default_message = "The requested status is not valid for this task."
    suggestion = "Choose one of: To Do, In Progress, Testing, Done, Archive."
    severity = ErrorSeverity.LOW


class RecordNotFoundError(TaskGateError, KeyError):
    """Raised when a referenced record does not exist.

    Also a KeyError so storage lookups keep their historical contract.
    """

    code = ErrorCode.ERR_NOT_FOUND
    category = ErrorCategory.NOT_FOUND
    status_code = 404
    default_message = "Record not found."
    suggestion = "Check the identifier and try again."
    severity = ErrorSeverity.LOW

    def __str__(self) -> str:
        return self.message


class DatabaseError(Exception):
    """Raised when the durable store fails to execute an operation."""


class UniqueConstraintError(DatabaseError):
    """Raised when a write violates a uniqueness constraint of the store."""


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, severity and HTTP status
    """
    if isinstance(exception, TaskGateError):
        return ErrorResponse(
            code=exception.code,
            message=exception.message,
            suggestion=exception.suggestion,
            severity=exception.severity,
            status_code=exception.status_code,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.HIGH if isinstance(exception, DatabaseError) else ErrorSeverity.MEDIUM,
        status_code=500,
    )
