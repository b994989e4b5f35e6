"""
Custom exceptions and error handlers for consistent error responses.

Every failure is rendered as a JSON object with a human-readable
``message`` field and an appropriate status code.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An internal server error occurred"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthorizedError(AppException):
    """Raised when no bearer credential was presented."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized access"


class ForbiddenError(AppException):
    """Raised for a rejected credential or insufficient privilege."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden access"


class InvalidIdError(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid ID"


class InvalidRoleError(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid role"


class InvalidAmountError(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid payment amount"


class MissingFieldError(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Missing required field"


class NotFoundError(AppException):
    """Raised when requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")


class ConflictError(AppException):
    """Raised when a write is illegal for the entity's current state."""
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict with current state"


class UpstreamFailureError(AppException):
    """Raised when the store or an external provider call fails."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service failure"


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException (routing 404/405 and friends)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "message": "Validation error",
            "errors": jsonable_errors(exc),
        },
    )


async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handler for database failures that escaped the services."""
    logger.exception("Store failure on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=UpstreamFailureError.status_code,
        content={"message": UpstreamFailureError.default_message},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "An internal server error occurred"},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances that JSONResponse cannot encode
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]
