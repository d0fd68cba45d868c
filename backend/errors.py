"""Error hierarchy for SkillSwap.

Every domain failure is a SkillSwapError carrying a code, a category, a
severity and the HTTP status the API answers with. Messages are safe to show
to end users; they never say which of several collapsed preconditions failed.
"""

from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    INTERNAL = "internal"


class SkillSwapError(Exception):
    """Base exception for all SkillSwap errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.http_status = http_status
        self.timestamp = datetime.now(timezone.utc)

    def to_response(self) -> dict:
        """Convert to the REST error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.timestamp.isoformat(),
            }
        }


# ─── Caller errors (400-level) ──────────────────────────────────

class ValidationError(SkillSwapError):
    """Malformed or missing input."""
    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, 400,
        )
        self.field = field


class SelfReferenceError(SkillSwapError):
    """A user tried to send a swap request to themselves."""
    def __init__(self):
        super().__init__(
            "Cannot send request to yourself",
            "SELF_REFERENCE", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, 400,
        )


class AuthenticationError(SkillSwapError):
    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(
            message, "AUTHENTICATION_FAILED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, 401,
        )


class AccountBannedError(SkillSwapError):
    def __init__(self):
        super().__init__(
            "Your account has been banned",
            "ACCOUNT_BANNED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, 403,
        )


class ForbiddenError(SkillSwapError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, 403,
        )


class NotFoundError(SkillSwapError):
    """No matching record, or a precondition failure reported as one."""
    def __init__(self, message: str):
        super().__init__(
            message, "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, 404,
        )


class ConflictError(SkillSwapError):
    """Uniqueness violation."""
    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(
            message, code, ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, 409,
        )


class DuplicatePendingError(ConflictError):
    def __init__(self):
        super().__init__(
            "You already have a pending request with this user",
            "DUPLICATE_PENDING_REQUEST",
        )


# ─── Infrastructure errors (500-level) ──────────────────────────

class DatabaseError(SkillSwapError):
    def __init__(self, message: str, operation: str):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, 503,
        )
        self.operation = operation
