"""Position and question request schemas."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from core.evaluation import QuestionType


def _strip(v):
    if isinstance(v, str):
        return v.strip()
    return v


class PositionCreate(BaseModel):
    """Schema for creating a position."""

    title: str = Field(min_length=1, max_length=255, description="Position title")
    description: Optional[str] = Field(None, description="Job description")
    intro: Optional[str] = Field(None, description="Interview intro shown to candidates")
    farewell: Optional[str] = Field(None, description="Interview farewell shown to candidates")

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: str) -> str:
        """Strip whitespace so a blank title fails the length check."""
        return _strip(v)


class PositionUpdate(BaseModel):
    """Schema for updating a position. Only the fields sent are changed."""

    title: Optional[str] = Field(None, min_length=1, max_length=255, description="Position title")
    description: Optional[str] = Field(None, description="Job description")
    intro: Optional[str] = Field(None, description="Interview intro")
    farewell: Optional[str] = Field(None, description="Interview farewell")

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Optional[str]) -> Optional[str]:
        return _strip(v)


class QuestionCreate(BaseModel):
    """Schema for adding a question to a position."""

    text: str = Field(min_length=1, description="Question text")
    type: QuestionType = Field(QuestionType.TEXT, description="TEXT or MULTIPLE_CHOICE")
    options: Optional[list[str]] = Field(None, description="Choices for MULTIPLE_CHOICE questions")
    weight: float = Field(1.0, gt=0, allow_inf_nan=False, description="Scoring weight")

    @field_validator("text", mode="before")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip(v)


class QuestionUpdate(BaseModel):
    """Schema for updating a question. The weight is fixed at creation."""

    text: Optional[str] = Field(None, min_length=1, description="Question text")
    type: Optional[QuestionType] = Field(None, description="TEXT or MULTIPLE_CHOICE")
    options: Optional[list[str]] = Field(None, description="Choices for MULTIPLE_CHOICE questions")
    weight: Optional[float] = Field(
        None, gt=0, allow_inf_nan=False, description="Must equal the current weight if sent"
    )

    @field_validator("text", mode="before")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip(v)
