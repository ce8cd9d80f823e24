"""
Core module - configuration, database, errors, and response formatting.
"""
from .config import get_settings
from .db import AsyncSessionLocal, Base, UTCDateTime, build_engine, engine, get_session, utc_now
from .errors import (
    CapacityExceededError,
    DomainError,
    ErrorCode,
    InvalidArgumentError,
    NotFoundError,
)
from .responses import (
    ApiResponse,
    ErrorDetail,
    domain_error_response,
    error_response,
)

__all__ = [
    # Config
    "get_settings",
    # Database
    "get_session",
    "build_engine",
    "Base",
    "engine",
    "AsyncSessionLocal",
    "UTCDateTime",
    "utc_now",
    # Errors
    "DomainError",
    "ErrorCode",
    "NotFoundError",
    "InvalidArgumentError",
    "CapacityExceededError",
    # Responses
    "ApiResponse",
    "ErrorDetail",
    "error_response",
    "domain_error_response",
]
