"""
API Exception Handlers: Domain Error → HTTP Error Mapping

Centralized exception handling for clean error responses.
Maps domain-specific exceptions to appropriate HTTP status codes; every body
has the shape {error, detail, timestamp, request_id}.
"""

from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from core.exceptions import (
    AuthenticationRequiredError,
    ContentAutomationException,
    EntityNotFoundError,
    GenerationFailedError,
    InvalidInputError,
    PersistenceError,
)


def _error_response(request: Request, status_code: int, error: str, detail) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "detail": detail,
            "timestamp": datetime.utcnow().isoformat(),
            "request_id": getattr(request.state, "request_id", None),
        },
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors raised by FastAPI itself."""
    return _error_response(
        request, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation Error", exc.errors()
    )


async def invalid_input_handler(request: Request, exc: InvalidInputError):
    """Handle aggregated request validation errors."""
    return _error_response(request, status.HTTP_400_BAD_REQUEST, "Invalid Argument", str(exc))


async def authentication_required_handler(request: Request, exc: AuthenticationRequiredError):
    """Handle missing or invalid caller identity."""
    return _error_response(request, status.HTTP_401_UNAUTHORIZED, "Unauthenticated", str(exc))


async def entity_not_found_handler(request: Request, exc: EntityNotFoundError):
    """Handle missing user profile and other absent entities."""
    return _error_response(request, status.HTTP_404_NOT_FOUND, "Not Found", str(exc))


async def generation_failed_handler(request: Request, exc: GenerationFailedError):
    """Handle terminal generation failures."""
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Generation Failed", str(exc)
    )


async def persistence_error_handler(request: Request, exc: PersistenceError):
    """Handle database failures without leaking internals."""
    logger.error(f"Persistence error | error_id={exc.error_id} | error={exc}")
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Error", "Internal server error"
    )


async def domain_error_handler(request: Request, exc: ContentAutomationException):
    """Catch-all for remaining domain errors."""
    logger.error(f"Unhandled domain error | error_id={exc.error_id} | error={exc}")
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Error", "Internal server error"
    )


def add_exception_handlers(app: FastAPI):
    """Add all exception handlers to the FastAPI app."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InvalidInputError, invalid_input_handler)
    app.add_exception_handler(AuthenticationRequiredError, authentication_required_handler)
    app.add_exception_handler(EntityNotFoundError, entity_not_found_handler)
    app.add_exception_handler(GenerationFailedError, generation_failed_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)
    app.add_exception_handler(ContentAutomationException, domain_error_handler)
