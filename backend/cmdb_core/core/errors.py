"""Error Hierarchy: typed, categorized exceptions for every instance-core failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - ErrorContext carries request id, object type and condition so callers can retry precisely
    - to_response() produces the REST envelope; no internal details in user-facing messages

Design Decisions:
    - Single hierarchy with CmdbError base: one FastAPI handler catches all
    - ErrorContext as a mutable dataclass: the service annotates it on the way out
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
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    CONSISTENCY = "consistency"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Where an error happened: request, object type, filter, bulk index."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str | None = None
    object_type: str | None = None
    condition: dict[str, Any] | None = None
    origin_index: int | None = None
    debug_info: dict[str, Any] | None = None


class CmdbError(Exception):
    """Base exception for all instance-core errors."""

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
                    "request_id": self.context.request_id,
                    "object_type": self.context.object_type,
                    "condition": self.context.condition,
                    "origin_index": self.context.origin_index,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class InstanceValidationError(CmdbError):
    """Instance field values rejected by the validation gateway."""
    def __init__(self, message: str, field: str | None = None, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class InstanceNotFoundError(CmdbError):
    """No instance matched the (tenant-scoped) condition."""
    def __init__(self, object_type: str, context: ErrorContext | None = None):
        super().__init__(
            f"No {object_type} instance matches the condition",
            "INSTANCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class AssociationConflictError(CmdbError):
    """Delete blocked: another instance still holds an association to the target."""
    def __init__(self, object_type: str, inst_id: int, context: ErrorContext | None = None):
        super().__init__(
            f"{object_type} instance {inst_id} still has associations",
            "ASSOCIATION_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.inst_id = inst_id


# ─── Infrastructure Errors (500-level) ──────────────────────────

class StorageError(CmdbError):
    """Document store operation failed. Never retried internally."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Storage {operation} failed: {message}",
            "STORAGE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class BindIPPropagationError(CmdbError):
    """Host update applied, but dependent process bind addresses were not synchronized.

    The host write is NOT reverted: updated_count hosts carry the new address while
    their processes may still hold the old one.
    """
    def __init__(self, message: str, updated_count: int, context: ErrorContext | None = None):
        super().__init__(
            f"Host update applied but process bind ip propagation failed: {message}",
            "BIND_IP_PROPAGATION_FAILED", ErrorCategory.CONSISTENCY,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.updated_count = updated_count
