"""Error Hierarchy — typed, categorized exceptions for every content-graph failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (4xx) carry the offending ids so callers can diagnose them
    - Infrastructure errors (5xx) chain the original exception (raise ... from)
    - to_response() produces the REST envelope; no internal details leak into it

Design Decisions:
    - Single hierarchy with ContentGraphError base: FastAPI global handler catches all
      (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


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
    RESOURCE_LIMIT = "resource_limit"
    EXTERNAL_API = "external_api"
    STORAGE = "storage"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    content_ids: list[str] = field(default_factory=list)
    relationship_id: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class ContentGraphError(Exception):
    """Base exception for all content-graph errors."""

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
                    "content_ids": self.context.content_ids,
                    "relationship_id": self.context.relationship_id,
                    "retry_after_ms": self.context.retry_after_ms,
                    **(self.context.debug_info or {}),
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ValidationError(ContentGraphError):
    """Malformed input or unknown enum value."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class NotFoundError(ContentGraphError):
    """Content item or relationship id does not resolve."""
    def __init__(
        self, resource_type: str, resource_id: object, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        if resource_type == "Content" and not ctx.content_ids:
            ctx.content_ids = [str(resource_id)]
        if resource_type == "Relationship" and not ctx.relationship_id:
            ctx.relationship_id = str(resource_id)
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )
        self.resource_type = resource_type
        self.resource_id = str(resource_id)


class ConflictError(ContentGraphError):
    """Write would break a graph invariant (cycle, duplicate edge, second parent)."""

    CYCLE = "cycle"
    DUPLICATE = "duplicate"
    MULTIPLE_PARENTS = "multiple_parents"

    def __init__(
        self,
        message: str,
        reason: str,
        source_id: object,
        target_id: object,
        cycle_path: list[str] | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.content_ids = [str(source_id), str(target_id)]
        debug = dict(ctx.debug_info or {})
        debug["reason"] = reason
        if cycle_path:
            debug["cycle_path"] = cycle_path
        ctx.debug_info = debug
        super().__init__(
            message, f"CONFLICT_{reason.upper()}", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, ctx, 409,
        )
        self.reason = reason
        self.source_id = str(source_id)
        self.target_id = str(target_id)
        self.cycle_path = cycle_path or []


class ConcurrencyError(ContentGraphError):
    """Family lock could not be held stably (concurrent re-parenting)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENCY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class ResourceLimitError(ContentGraphError):
    """Traversal exceeded its depth or node cap."""
    def __init__(
        self, limit_name: str, limit: int, observed: int,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.debug_info = {
            **(ctx.debug_info or {}),
            "limit_name": limit_name, "limit": limit, "observed": observed,
        }
        super().__init__(
            f"Graph traversal exceeded {limit_name} ({observed} > {limit})",
            "RESOURCE_LIMIT_EXCEEDED", ErrorCategory.RESOURCE_LIMIT,
            ErrorSeverity.ERROR, ctx, 422,
        )
        self.limit_name = limit_name
        self.limit = limit
        self.observed = observed


# ─── Infrastructure Errors (500-level) ──────────────────────────

class ExternalServiceError(ContentGraphError):
    """AI classification (or other collaborator) call failed."""
    def __init__(
        self,
        message: str,
        service: str,
        error_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"{service} error ({error_type}): {message}",
            "EXTERNAL_SERVICE_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.service = service
        self.error_type = error_type


class StorageError(ContentGraphError):
    """Persistence operation failed. Original exception is chained as __cause__."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Storage {operation} failed: {message}",
            "STORAGE_ERROR", ErrorCategory.STORAGE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
