"""
Domain errors raised by the ticketing core.

All of these are caller-correctable and propagate unchanged to the HTTP layer,
which maps them to status codes (see main.py). Cross-tenant access is reported
as NotFoundError so that the existence of another tenant's data is never
confirmed.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Stable machine-readable error codes."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"


class DomainError(Exception):
    """Base error with a code, a user-safe message and optional details."""

    code: ErrorCode

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """Entity is absent, or belongs to a different tenant."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, entity: str, key: Any):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} not found")


class InvalidArgumentError(DomainError):
    """A field-level contract violation."""

    code = ErrorCode.INVALID_ARGUMENT

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message, details={"field": field})


class CapacityExceededError(DomainError):
    """Requested ticket count does not fit in the show's remaining capacity."""

    code = ErrorCode.CAPACITY_EXCEEDED

    def __init__(self, requested: int, available: int, total: int, allocated: int):
        self.requested = requested
        self.available = available
        self.total = total
        self.allocated = allocated
        super().__init__(
            f"Requested {requested} tickets, but only {available} tickets available. "
            f"Show capacity: {total}, already allocated: {allocated}",
            details={
                "requested": requested,
                "available": available,
                "total": total,
                "allocated": allocated,
            },
        )
