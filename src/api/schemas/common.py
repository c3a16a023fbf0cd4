"""Common API response schemas."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class SuccessResponse(BaseModel):
    """Generic success response."""

    success: bool = True
    message: str = "Operation completed successfully"


class ErrorResponse(BaseModel):
    """Structured error response."""

    success: bool = False
    error: dict[str, Any] = Field(
        ...,
        description="Error details",
        examples=[{
            "code": "INVALID_TRANSITION",
            "message": "Cannot finish while session is in phase 'review'",
            "details": {},
        }],
    )
    request_id: str = Field(
        ...,
        description="Unique request identifier for debugging",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Error timestamp",
    )
