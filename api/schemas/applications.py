"""Application, answer and evaluation request schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class ApplicationStart(BaseModel):
    """Schema for starting an interview."""

    model_config = ConfigDict(populate_by_name=True)

    position_id: str = Field(min_length=1, alias="positionId", description="Position to apply for")
    name: str = Field(min_length=1, max_length=255, description="Applicant name")
    email: EmailStr
    resume_url: Optional[str] = Field(None, alias="resumeUrl", max_length=1000, description="Resume link")

    @field_validator("name", "email", "resume_url", mode="before")
    @classmethod
    def strip_whitespace(cls, v: Optional[str]) -> Optional[str]:
        """Strip whitespace from text fields."""
        if isinstance(v, str):
            return v.strip()
        return v


class AnswerCreate(BaseModel):
    """Schema for answering a question."""

    model_config = ConfigDict(populate_by_name=True)

    question_id: str = Field(min_length=1, alias="questionId", description="Question being answered")
    response: str = Field(min_length=1, description="Free text or the chosen option")
    started_at: Optional[datetime] = Field(None, alias="startedAt", description="When answering began")
    ended_at: Optional[datetime] = Field(None, alias="endedAt", description="When answering ended")

    @field_validator("response", mode="before")
    @classmethod
    def strip_response(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class AnswerUpdate(BaseModel):
    """Schema for replacing an answer's response."""

    response: str = Field(min_length=1, description="New response")

    @field_validator("response", mode="before")
    @classmethod
    def strip_response(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class ScoreRequest(BaseModel):
    """Schema for scoring an answer."""

    score: float = Field(ge=0, strict=True, allow_inf_nan=False, description="Non-negative finite number")
