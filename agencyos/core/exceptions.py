"""
Custom exception hierarchy for structured error handling.

WHY: Custom exceptions provide:
1. Consistent error handling across the API
2. HTTP status code mapping for FastAPI
3. A stable machine-readable code for every error kind
4. No sensitive data leaks in error messages

Every error leaves the API as the envelope
``{"error": <message>, "code": <CODE>, "details": {...}}``; ``details`` is
omitted when there is nothing to add.

IMPORTANT: NEVER raise the base Exception class. Always use custom exceptions.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    WHY: Centralizing exception handling in a base class ensures consistent
    error responses, HTTP status code mapping, and prevents sensitive data
    leaks in error messages.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message shown to the user
            status_code: HTTP status code (overrides class default)
            **context: Structured details (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to the error envelope.

        Returns:
            Dictionary with error message, code and details (sensitive
            fields filtered out)
        """
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }

        body: Dict[str, Any] = {"error": self.message, "code": self.code}
        if filtered_context:
            body["details"] = filtered_context
        return body


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when no authenticated identity can be established.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"


class TokenExpiredError(AuthenticationError):
    """Raised when the JWT has expired; the client should log in again."""

    default_message = "Token has expired"


class TokenInvalidError(AuthenticationError):
    """Raised when the JWT is malformed or has an invalid signature."""

    default_message = "Token is invalid"


class AuthorizationError(AppException):
    """
    Raised when the caller is authenticated but lacks role or ownership.

    WHY: Distinguishing authorization (403) from authentication (401) helps
    frontends show "You don't have permission" instead of "Please log in".

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action"


class CompanyInactiveError(AuthorizationError):
    """
    Raised when a client of a paused or churned company tries to submit work.

    HTTP Status: 403 Forbidden
    """

    code = "COMPANY_INACTIVE"
    default_message = "Your company account is not active"


class LimitReachedError(AuthorizationError):
    """
    Raised when a company already uses its whole active-request allowance.

    Details carry ``limit`` and ``current`` so the UI can explain the plan.

    HTTP Status: 403 Forbidden
    """

    code = "LIMIT_REACHED"
    default_message = "Active request limit reached"

    def __init__(self, limit: int, current: int, message: Optional[str] = None):
        super().__init__(
            message or f"Active request limit reached ({current}/{limit})",
            limit=limit,
            current=current,
        )
        self.limit = limit
        self.current = current


# ============================================================================
# Validation Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input is malformed or missing.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class InvalidStatusTransitionError(ValidationError):
    """
    Raised when the target status is unknown or unreachable from the
    current one.

    HTTP Status: 400 Bad Request
    """

    code = "INVALID_STATUS_TRANSITION"
    default_message = "Invalid status transition"

    def __init__(self, from_status: Optional[str], to_status: Optional[str], message: Optional[str] = None):
        super().__init__(
            message or f"Cannot move from {from_status} to {to_status}",
            **{"from": from_status, "to": to_status},
        )
        self.from_status = from_status
        self.to_status = to_status


class InvalidAssigneeError(ValidationError):
    """
    Raised when a request is assigned to a profile that is not agency staff.

    HTTP Status: 400 Bad Request
    """

    code = "INVALID_ASSIGNEE"
    default_message = "Can only assign to team members (admins)"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist or isn't visible.

    WHY: Resources of other companies are reported as missing rather than
    forbidden so their existence is not disclosed.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(AppException):
    """
    Raised on unique-constraint violations and concurrent modifications.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    code = "CONFLICT"
    default_message = "Resource already exists"


# ============================================================================
# Infrastructure Exceptions
# ============================================================================


class RateLimitExceeded(AppException):
    """
    Raised when a client exceeds its request budget for an endpoint class.

    Details carry ``retry_after`` (seconds); the handler mirrors it in the
    Retry-After header.

    HTTP Status: 429 Too Many Requests
    """

    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"
    default_message = "Too many requests. Please try again later."


class DatabaseError(AppException):
    """
    Raised when the store fails unexpectedly.

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    code = "DATABASE_ERROR"
    default_message = "A database error occurred"


class ExternalServiceError(AppException):
    """
    Raised when an outbound call (email provider, webhook) fails.

    HTTP Status: 502 Bad Gateway
    """

    status_code = 502
    code = "EXTERNAL_SERVICE_ERROR"
    default_message = "External service error"


class EmailServiceError(ExternalServiceError):
    """Raised when an email cannot be delivered to the provider."""

    default_message = "Failed to send email"


class WorkflowActionError(AppException):
    """
    Raised inside the workflow engine when an action cannot run.

    WHY: Recorded on the execution log entry; never reaches an API client.
    """

    status_code = 500
    code = "WORKFLOW_ACTION_FAILED"
    default_message = "Workflow action failed"


class AuditLogImmutableError(AppException):
    """
    Raised on any attempt to modify or delete an audit log entry.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    code = "AUDIT_LOG_IMMUTABLE"
    default_message = "Audit logs are append-only"
