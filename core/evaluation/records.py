"""
Evaluation records and status enums.

Plain, immutable snapshots handed from the repository to the pure
evaluation functions. Nothing here touches the database.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional


# ==================== Status Enums ===================== #
class ApplicationStatus(str, PyEnum):
    """Candidate-side progress of an application."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ApplicationResult(str, PyEnum):
    """Final pass/fail decision mirrored from the evaluation."""

    PENDING = "PENDING"
    PASSED = "PASSED"
    FAILED = "FAILED"


class EvaluationStatus(str, PyEnum):
    """Scoring workflow state of an application."""

    PENDING = "PENDING"
    IN_REVIEW = "IN_REVIEW"
    PASSED = "PASSED"
    FAILED = "FAILED"


class QuestionType(str, PyEnum):
    """Kinds of interview questions."""

    TEXT = "TEXT"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"


# ==================== Snapshots ===================== #
@dataclass(frozen=True)
class AnswerScore:
    """One answer's manager score joined to its question weight."""

    answer_id: str
    score: Optional[float]
    weight: float

    @property
    def is_scored(self) -> bool:
        return self.score is not None


@dataclass(frozen=True)
class PositionSnapshot:
    """A position owned by a manager."""

    id: str
    title: str


@dataclass(frozen=True)
class ApplicationSnapshot:
    """Application fields needed by the analytics aggregations."""

    id: str
    position_id: str
    position_title: str
    name: str
    email: str
    status: ApplicationStatus
    overall_result: ApplicationResult
    started_at: datetime
    completed_at: Optional[datetime] = None
    answer_count: int = 0
