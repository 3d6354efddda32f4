"""Standardized response utilities."""

from fastapi import status
from fastapi.responses import JSONResponse

from beta_signup.utils.exceptions import BetaSignupError


def error_response(
    code: str,
    message: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    details: dict | None = None,
) -> JSONResponse:
    """Create a standardized error response.

    Args:
        code: Error code (e.g., 'VALIDATION_ERROR', 'NOT_FOUND')
        message: Human-readable error message
        status_code: HTTP status code
        details: Additional error details

    Returns:
        JSONResponse with error structure
    """
    content = {
        "error": {
            "code": code,
            "message": message,
        }
    }
    if details:
        content["error"]["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content,
    )


def domain_error_response(exc: BetaSignupError) -> JSONResponse:
    """Render a domain exception into the error envelope."""
    return error_response(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
    )


def internal_error(
    message: str = "An unexpected error occurred",
) -> JSONResponse:
    return error_response(
        code="INTERNAL_ERROR",
        message=message,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
