"""Common Pydantic schemas shared across the API."""

from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar
from pydantic import BaseModel, Field


T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    """Success envelope wrapping every JSON payload."""

    success: bool = Field(default=True, description="Always true for successful responses")
    data: T = Field(description="Response payload")
    message: Optional[str] = Field(None, description="Human readable outcome")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Time the response was produced (UTC)",
    )


class ErrorBody(BaseModel):
    """Error details."""

    code: str = Field(description="Error code for programmatic handling")
    message: str = Field(description="Error message")
    path: Optional[str] = Field(None, description="Request path")
    method: Optional[str] = Field(None, description="Request method")
    details: Optional[Any] = Field(None, description="Additional error details")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: ErrorBody


def success_response(data: Any, message: Optional[str] = None) -> dict:
    """
    Build the success envelope.

    ``message`` is only included when given.
    """
    envelope = SuccessResponse[Any](data=data, message=message).model_dump(mode="json")
    if message is None:
        envelope.pop("message")
    return envelope
