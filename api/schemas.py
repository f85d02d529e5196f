"""
API Schemas: Response Models

Centralized Pydantic models for API response documentation.
The long-form request body is deliberately untyped at the HTTP edge: the
request validator aggregates every violation into one error instead of
FastAPI's per-field 422.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class LongformSuccessResponse(BaseModel):
    """Completed generation."""

    success: bool = True
    content_id: str = Field(..., alias="contentId")
    content: str
    outline: dict[str, Any]
    metadata: dict[str, Any]
    requests_remaining: int = Field(..., alias="requestsRemaining")
    message: str

    model_config = ConfigDict(populate_by_name=True)


class LongformDenialResponse(BaseModel):
    """Quota denial rendered as a normal payload."""

    has_usage: bool = Field(False, alias="hasUsage")
    error: str
    message: str
    requests_remaining: int = Field(..., alias="requestsRemaining")
    plan_type: str = Field(..., alias="planType")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "hasUsage": False,
                "error": "limit_reached",
                "message": "Blog generation requires 4 requests. You need 2 more requests. "
                "Upgrade to a paid plan to continue generating content.",
                "requestsRemaining": 2,
                "planType": "free",
            }
        },
    )


class HealthCheckResponse(BaseModel):
    """System health status."""

    status: str
    timestamp: datetime
    version: str
    dependencies: dict


class ErrorResponse(BaseModel):
    """Standardized error response."""

    error: str
    detail: Any
    timestamp: datetime
    request_id: Optional[str]
