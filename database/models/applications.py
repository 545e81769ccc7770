"""
Applications Module

A candidate's attempt at a position's interview, the answers given, and
the evaluation state managers drive by scoring those answers.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    ForeignKey,
    DateTime,
    Text,
    Float,
    Integer,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)
from database.engine import Base
from database.models.users import generate_id
from core.evaluation.records import (
    ApplicationResult,
    ApplicationStatus,
    EvaluationStatus,
)
from core.utils.datetime import now
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.positions import Position, Question


class Application(Base):
    """
    One candidate's interview for a position.

    ``status`` tracks the candidate side (in progress or completed);
    ``evaluation_status`` tracks the manager side and is mirrored to
    ``overall_result`` once final. ``version`` is bumped on every update
    so concurrent writers lose with a StaleDataError instead of
    overwriting each other.
    """

    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    position_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Candidate
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    resume_url: Mapped[str | None] = mapped_column(String(1000))

    # Candidate-side progress
    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(ApplicationStatus, native_enum=False, length=20),
        nullable=False,
        default=ApplicationStatus.IN_PROGRESS,
        index=True,
    )

    # Evaluation
    evaluation_status: Mapped[EvaluationStatus] = mapped_column(
        SQLEnum(EvaluationStatus, native_enum=False, length=20),
        nullable=False,
        default=EvaluationStatus.PENDING,
    )
    overall_result: Mapped[ApplicationResult] = mapped_column(
        SQLEnum(ApplicationResult, native_enum=False, length=20),
        nullable=False,
        default=ApplicationResult.PENDING,
    )
    total_score: Mapped[float | None] = mapped_column(Float)

    # Timestamps
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    position: Mapped["Position"] = relationship("Position", back_populates="applications")
    answers: Mapped[list["Answer"]] = relationship(
        "Answer",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="Answer.created_at",
    )

    __table_args__ = (
        # One application per candidate email per position
        UniqueConstraint("position_id", "email", name="uq_application_position_email"),
        Index("idx_application_position_started", "position_id", "started_at"),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, position_id={self.position_id}, status={self.status})>"


class Answer(Base):
    """A candidate's response to one question, optionally scored by the manager."""

    __tablename__ = "answers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    application_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    response: Mapped[str] = mapped_column(Text, nullable=False)
    score: Mapped[float | None] = mapped_column(Float)  # None until scored

    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )

    # Relationships
    application: Mapped["Application"] = relationship("Application", back_populates="answers")
    question: Mapped["Question"] = relationship("Question", back_populates="answers")

    __table_args__ = (
        UniqueConstraint("application_id", "question_id", name="uq_answer_application_question"),
    )

    def __repr__(self) -> str:
        return f"<Answer(id={self.id}, application_id={self.application_id}, score={self.score})>"
