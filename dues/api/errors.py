"""API error handling and response helpers."""

from typing import Any, Dict

from fastapi import HTTPException, status

from dues.services.errors import (
    DuesError,
    InvalidPeriodFormatError,
    MemberNotFoundError,
    NoBillingConfiguredError,
)

# HTTP status per domain error, checked in order (subclasses first)
_STATUS_BY_ERROR = (
    (MemberNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidPeriodFormatError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NoBillingConfiguredError, status.HTTP_409_CONFLICT),
)


def http_status_for(error: DuesError) -> int:
    """Get the HTTP status code for a domain error (default 400)."""
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def error_response(error: DuesError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }


def raise_dues_error(error: DuesError) -> None:
    """Raise an HTTPException from a DuesError."""
    raise HTTPException(
        status_code=http_status_for(error),
        detail=error_response(error),
    ) from error
