"""
Content Routes: Long-form Generation

Single command endpoint for the long-form pipeline. The body is passed
through untyped so validation errors are aggregated by the domain validator.

Design Pattern: Command Query Responsibility Segregation (CQRS)
"""

from typing import Any, Union
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Request
from loguru import logger

from api.schemas import ErrorResponse, LongformDenialResponse, LongformSuccessResponse
from container import container
from security import get_current_user_id
from services.generation_service import GenerationService

router = APIRouter(prefix="/content", tags=["Content"])


# Simple dependency function for FastAPI
def get_generation_service_dependency() -> GenerationService:
    """Get GenerationService instance for FastAPI dependency injection."""
    return container.generation_service()


@router.post(
    "/longform",
    summary="Generate long-form content",
    description="Outline, write, persist and bill one long-form article",
    responses={
        200: {
            "model": Union[LongformSuccessResponse, LongformDenialResponse],
            "description": "Generated content, or a quota denial with hasUsage=false",
        },
        400: {"model": ErrorResponse, "description": "Validation errors"},
        401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
        404: {"model": ErrorResponse, "description": "User profile not found"},
        500: {"model": ErrorResponse, "description": "Generation failed"},
    },
)
async def generate_longform(
    request: Request,
    payload: Any = Body(...),
    user_id: UUID = Depends(get_current_user_id),
    service: GenerationService = Depends(get_generation_service_dependency),
) -> dict[str, Any]:
    """
    Generate a long-form article for the authenticated caller.

    Returns the success payload, or the denial payload when the caller's
    quota cannot cover the request.
    """
    logger.info(
        f"Long-form request | user_id={user_id} | "
        f"request_id={getattr(request.state, 'request_id', None)}"
    )
    return await service.generate_longform(user_id, payload)
