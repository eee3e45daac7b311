"""
Service Errors

Base exception shared by the service layers and the helper routers use to
turn it into an HTTP response.
"""

from typing import NoReturn

from fastapi import HTTPException


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


def raise_http_error(e: ServiceError) -> NoReturn:
    """Convert a service error into an HTTPException with a structured body."""
    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    ) from e
