"""
Standardized API response envelope.

Success:
    {"data": <payload>, "status": "success"}

Error:
    {
        "error": {"code": "CAPACITY_EXCEEDED", "message": "...", "details": {...}},
        "status": "error"
    }
"""

from typing import Any, Generic, Optional, TypeVar

from fastapi import status
from pydantic import BaseModel

from .errors import DomainError, ErrorCode

T = TypeVar("T")


class ErrorDetail(BaseModel):
    """Structured error information."""
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ApiResponse(BaseModel, Generic[T]):
    """Response wrapper used by every route in the scoped and admin routers."""
    data: Optional[T] = None
    error: Optional[ErrorDetail] = None
    status: str = "success"

    @classmethod
    def success(cls, data: T) -> "ApiResponse[T]":
        return cls(data=data, status="success")


# 404 for both "absent" and "other tenant"; the two are indistinguishable.
# 422 is spelled out: its Starlette constant was renamed between releases.
STATUS_BY_ERROR_CODE: dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_ARGUMENT: 422,
    ErrorCode.CAPACITY_EXCEEDED: 422,
}


def error_response(
    code: str,
    message: str,
    details: Optional[dict] = None,
) -> dict:
    response = {
        "error": {
            "code": code,
            "message": message,
        },
        "status": "error",
    }
    if details:
        response["error"]["details"] = details
    return response


def domain_error_response(exc: DomainError) -> tuple[int, dict]:
    """Translate a domain error into (status_code, body)."""
    status_code = STATUS_BY_ERROR_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
    return status_code, error_response(exc.code.value, exc.message, exc.details)
