"""Error Hierarchy — typed, categorized exceptions for all TierBroker failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are terminal for the caller; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope used by the global error handler
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with TierBrokerError base: FastAPI global handler catches all (ADR: uniform error shape)
    - One subclass per failure kind so callers can branch on type, and `code` stays a stable string
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    actor_id: str | None = None
    requester_id: str | None = None
    resource_id: str | None = None
    debug_info: dict[str, Any] | None = None


class TierBrokerError(Exception):
    """Base exception for all TierBroker errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "actor_id": self.context.actor_id,
                    "requester_id": self.context.requester_id,
                    "resource_id": self.context.resource_id,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidOrInactiveCodeError(TierBrokerError):
    """Reference code unknown, malformed, or deactivated."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid or inactive reference code",
            "INVALID_OR_INACTIVE_CODE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


class CodeGenerationExhaustedError(TierBrokerError):
    """Every generated candidate collided with an existing code."""
    def __init__(self, attempts: int, context: ErrorContext | None = None):
        super().__init__(
            f"Failed to generate a unique reference code after {attempts} attempts",
            "CODE_GENERATION_EXHAUSTED", ErrorCategory.CONFLICT,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.attempts = attempts


class NotOwnerError(TierBrokerError):
    """Requester does not own the reference code."""
    def __init__(self, code_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Reference code '{code_id}' is not owned by the requester",
            "NOT_OWNER", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.ERROR, context, 403,
        )
        self.code_id = code_id


class CircularHierarchyError(TierBrokerError):
    """Placement would make an actor its own ancestor."""
    def __init__(self, actor_id: str, parent_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Placing '{actor_id}' under '{parent_id}' creates a circular hierarchy",
            "CIRCULAR_HIERARCHY", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.actor_id = actor_id
        self.parent_id = parent_id


class HierarchyLevelMismatchError(TierBrokerError):
    """Role and tree level would disagree after the write."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "HIERARCHY_LEVEL_MISMATCH", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )


class UnauthorizedError(TierBrokerError):
    """Requester's tree position does not grant the operation."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "UNAUTHORIZED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.ERROR, context, 403,
        )


class WordCountOutOfRangeError(TierBrokerError):
    """Word count outside the governing rate's accepted range."""
    def __init__(
        self, word_count: int, min_words: int, max_words: int,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Word count {word_count} must be between {min_words} and {max_words}",
            "WORD_COUNT_OUT_OF_RANGE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.word_count = word_count
        self.min_words = min_words
        self.max_words = max_words


class RateConfigInvalidError(TierBrokerError):
    """Rate configuration violates range or percentage bounds."""
    def __init__(self, problems: list[str], context: ErrorContext | None = None):
        super().__init__(
            f"Invalid rate configuration: {'; '.join(problems)}",
            "RATE_CONFIG_INVALID", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.problems = problems


class FeeIssuerMismatchError(TierBrokerError):
    """Issuer slot names someone other than the issuer whose tier priced the job."""
    def __init__(
        self, issuer_id: str, priced_by: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Issuer '{issuer_id}' did not price this job; tier owner is '{priced_by}'",
            "FEE_ISSUER_MISMATCH", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.issuer_id = issuer_id
        self.priced_by = priced_by


class ResourceNotFoundError(TierBrokerError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(TierBrokerError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class ConcurrencyConflictError(TierBrokerError):
    """Concurrent modification detected and retries exhausted."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENCY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class InvalidJobStateError(TierBrokerError):
    """Job status does not allow the requested transition."""
    def __init__(self, job_id: str, status: str, context: ErrorContext | None = None):
        super().__init__(
            f"Job '{job_id}' is {status} and cannot be changed this way",
            "INVALID_JOB_STATE", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.job_id = job_id
        self.status = status
