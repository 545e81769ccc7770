"""
Positions Module

Job positions owned by a manager and the ordered interview questions
candidates answer for them.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    ForeignKey,
    DateTime,
    func,
    Text,
    JSON,
    Float,
    Integer,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)
from database.engine import Base
from database.models.users import generate_id
from core.evaluation.records import QuestionType
from core.utils.datetime import now
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.applications import Answer, Application
    from database.models.users import User


class Position(Base):
    """
    A job position with its interview.

    Deleting a position removes its questions, applications and answers.
    """

    __tablename__ = "positions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    intro: Mapped[str | None] = mapped_column(Text)  # shown before the first question
    farewell: Mapped[str | None] = mapped_column(Text)  # shown after completion

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )

    # Relationships
    manager: Mapped["User"] = relationship("User", back_populates="positions")
    questions: Mapped[list["Question"]] = relationship(
        "Question",
        back_populates="position",
        cascade="all, delete-orphan",
        order_by="Question.order",
    )
    applications: Mapped[list["Application"]] = relationship(
        "Application", back_populates="position", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Position(id={self.id}, title={self.title})>"


class Question(Base):
    """
    An interview question of a position.

    ``options`` is set for MULTIPLE_CHOICE questions only. ``weight`` scales
    the question's share of the application score and does not change once
    the question exists.
    """

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    position_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[QuestionType] = mapped_column(
        SQLEnum(QuestionType, native_enum=False, length=30),
        nullable=False,
        default=QuestionType.TEXT,
    )
    options: Mapped[list[str] | None] = mapped_column(JSON)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )

    # Relationships
    position: Mapped["Position"] = relationship("Position", back_populates="questions")
    answers: Mapped[list["Answer"]] = relationship(
        "Answer", back_populates="question", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("position_id", "order", name="uq_question_position_order"),
        Index("idx_question_position_order", "position_id", "order"),
    )

    def __repr__(self) -> str:
        return f"<Question(id={self.id}, position_id={self.position_id}, order={self.order})>"
