"""
Store access for the hiring backend.

``HiringRepository`` wraps one ``AsyncSession`` and is the only place that
builds queries. Services receive it as a dependency and never open
sessions of their own.
"""

from typing import Any, Optional
import logging

from sqlalchemy import case, func, literal, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, joinedload, selectinload

from core.evaluation.finalization import FINAL_STATUSES
from core.evaluation.records import (
    ApplicationSnapshot,
    EvaluationStatus,
    PositionSnapshot,
)
from core.exceptions import ConflictError
from core.utils.datetime import ensure_utc
from database.models.applications import Answer, Application
from database.models.positions import Position, Question
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)


class HiringRepository:
    """Queries and writes for positions, questions, applications and answers."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ==================== Transactions ===================== #

    async def commit(self) -> None:
        await self.session.commit()

    async def refresh(self, instance: Any, attribute_names: Optional[list[str]] = None) -> None:
        await self.session.refresh(instance, attribute_names=attribute_names)

    # ==================== Users ===================== #

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def ensure_user(self, user_id: str, email: str, role: UserRole, name: Optional[str] = None) -> User:
        """Return the user row for an authenticated caller, creating it on first use."""
        user = await self.get_user(user_id)
        if user is None:
            user = User(id=user_id, email=email, role=role, name=name)
            self.session.add(user)
            await self.session.flush()
            logger.info(f"Registered user {user_id}", extra={"user_id": user_id})
        return user

    # ==================== Positions ===================== #

    async def get_position(
        self, position_id: str, with_questions: bool = False
    ) -> Optional[Position]:
        query = select(Position).where(Position.id == position_id)
        if with_questions:
            query = query.options(selectinload(Position.questions))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_positions(self, manager_id: str) -> list[Position]:
        result = await self.session.execute(
            select(Position)
            .where(Position.user_id == manager_id)
            .order_by(Position.created_at.desc())
        )
        return list(result.scalars().all())

    async def count_questions_by_position(self, position_ids: list[str]) -> dict[str, int]:
        if not position_ids:
            return {}
        result = await self.session.execute(
            select(Question.position_id, func.count(Question.id))
            .where(Question.position_id.in_(position_ids))
            .group_by(Question.position_id)
        )
        return {position_id: count for position_id, count in result.all()}

    async def count_applications_by_position(
        self, position_ids: list[str]
    ) -> dict[str, dict[str, int]]:
        """Application counts per position, split by candidate-side status."""
        if not position_ids:
            return {}
        result = await self.session.execute(
            select(Application.position_id, Application.status, func.count(Application.id))
            .where(Application.position_id.in_(position_ids))
            .group_by(Application.position_id, Application.status)
        )
        counts: dict[str, dict[str, int]] = {}
        for position_id, status, count in result.all():
            counts.setdefault(position_id, {})[status.value] = count
        return counts

    async def create_position(self, manager_id: str, **fields: Any) -> Position:
        position = Position(user_id=manager_id, **fields)
        self.session.add(position)
        await self.session.flush()
        return position

    async def delete_position(self, position: Position) -> None:
        # Children are loaded up front so the ORM cascade runs without lazy IO
        result = await self.session.execute(
            select(Position)
            .where(Position.id == position.id)
            .options(
                selectinload(Position.questions).selectinload(Question.answers),
                selectinload(Position.applications).selectinload(Application.answers),
            )
        )
        await self.session.delete(result.scalar_one())
        await self.session.flush()

    # ==================== Questions ===================== #

    async def get_question(self, question_id: str) -> Optional[Question]:
        result = await self.session.execute(
            select(Question)
            .where(Question.id == question_id)
            .options(joinedload(Question.position))
        )
        return result.scalar_one_or_none()

    async def list_questions(self, position_id: str) -> list[Question]:
        result = await self.session.execute(
            select(Question)
            .where(Question.position_id == position_id)
            .order_by(Question.order)
        )
        return list(result.scalars().all())

    async def count_answers_by_question(self, question_ids: list[str]) -> dict[str, int]:
        if not question_ids:
            return {}
        result = await self.session.execute(
            select(Answer.question_id, func.count(Answer.id))
            .where(Answer.question_id.in_(question_ids))
            .group_by(Answer.question_id)
        )
        return {question_id: count for question_id, count in result.all()}

    async def next_question_order(self, position_id: str) -> int:
        result = await self.session.execute(
            select(func.max(Question.order)).where(Question.position_id == position_id)
        )
        current = result.scalar_one_or_none()
        return (current or 0) + 1

    async def create_question(self, position_id: str, **fields: Any) -> Question:
        """
        Append a question to a position.

        Raises:
            ConflictError: If another question took the same order concurrently
        """
        order = await self.next_question_order(position_id)
        question = Question(position_id=position_id, order=order, **fields)
        self.session.add(question)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError(
                "Another question was added to this position at the same time.",
                {"positionId": position_id},
            )
        return question

    async def delete_question(self, question: Question) -> None:
        result = await self.session.execute(
            select(Question)
            .where(Question.id == question.id)
            .options(selectinload(Question.answers))
        )
        await self.session.delete(result.scalar_one())
        await self.session.flush()

    # ==================== Applications ===================== #

    async def get_application(
        self, application_id: str, for_update: bool = False
    ) -> Optional[Application]:
        """
        Load an application with its position and its answers' questions.

        With ``for_update`` the row is locked for the rest of the
        transaction (where the database supports it) and any copy already
        in the session is overwritten with the current row.
        """
        query = (
            select(Application)
            .where(Application.id == application_id)
            .options(
                joinedload(Application.position, innerjoin=True),
                selectinload(Application.answers).joinedload(Answer.question, innerjoin=True),
            )
        )
        if for_update:
            query = query.with_for_update(of=Application).execution_options(
                populate_existing=True
            )
        result = await self.session.execute(query)
        return result.unique().scalar_one_or_none()

    async def find_application(self, position_id: str, email: str) -> Optional[Application]:
        result = await self.session.execute(
            select(Application).where(
                Application.position_id == position_id,
                Application.email == email,
            )
        )
        return result.scalar_one_or_none()

    async def create_application(
        self, position_id: str, name: str, email: str, **fields: Any
    ) -> tuple[Application, bool]:
        """
        Start an application, or return the existing one for the same email.

        Returns:
            Tuple of (application, created)
        """
        existing = await self.find_application(position_id, email)
        if existing:
            return existing, False

        application = Application(position_id=position_id, name=name, email=email, **fields)
        self.session.add(application)
        try:
            await self.session.commit()
        except IntegrityError:
            # Lost the race against a concurrent start for the same email
            await self.session.rollback()
            logger.info(
                "Duplicate application start resolved to existing record",
                extra={"position_id": position_id},
            )
            existing = await self.find_application(position_id, email)
            if existing is None:
                raise
            return existing, False
        return application, True

    async def list_position_applications(self, position_id: str) -> list[tuple[Application, int]]:
        """Applications of a position, newest first, with their answer counts."""
        answer_counts = (
            select(Answer.application_id, func.count(Answer.id).label("answer_count"))
            .group_by(Answer.application_id)
            .subquery()
        )
        result = await self.session.execute(
            select(Application, func.coalesce(answer_counts.c.answer_count, 0))
            .outerjoin(answer_counts, answer_counts.c.application_id == Application.id)
            .where(Application.position_id == position_id)
            .order_by(Application.started_at.desc())
        )
        return [(application, count) for application, count in result.all()]

    async def open_for_scoring(self, application_id: str, reopen_final: bool = False) -> bool:
        """
        Claim an application for a score write, in one statement.

        PENDING moves to IN_REVIEW and the version is bumped in any case, so
        a finalize working from an earlier read fails its version check.
        Call it before writing the score, inside the same transaction.

        Args:
            application_id: Application being scored
            reopen_final: Also claim PASSED/FAILED applications

        Returns:
            False if the application was finalized in the meantime
        """
        status_column = Application.evaluation_status
        query = (
            update(Application)
            .where(Application.id == application_id)
            .values(
                evaluation_status=case(
                    (
                        status_column == EvaluationStatus.PENDING,
                        literal(EvaluationStatus.IN_REVIEW, status_column.type),
                    ),
                    else_=status_column,
                ),
                version=Application.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if not reopen_final:
            query = query.where(status_column.not_in(list(FINAL_STATUSES)))

        result = await self.session.execute(query)
        return result.rowcount == 1

    # ==================== Answers ===================== #

    async def get_answer(self, answer_id: str) -> Optional[Answer]:
        """Load an answer with its question and its application's position."""
        result = await self.session.execute(
            select(Answer)
            .where(Answer.id == answer_id)
            .options(
                joinedload(Answer.question, innerjoin=True),
                joinedload(Answer.application, innerjoin=True).joinedload(
                    Application.position, innerjoin=True
                ),
            )
        )
        return result.scalar_one_or_none()

    async def list_answers(self, application_id: str) -> list[Answer]:
        result = await self.session.execute(
            select(Answer)
            .where(Answer.application_id == application_id)
            .join(Answer.question)
            .options(contains_eager(Answer.question))
            .order_by(Question.order)
        )
        return list(result.scalars().all())

    async def create_answer(self, application_id: str, question_id: str, **fields: Any) -> Answer:
        """
        Store an answer.

        Raises:
            ConflictError: If the question already has an answer for this application
        """
        answer = Answer(application_id=application_id, question_id=question_id, **fields)
        self.session.add(answer)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError(
                "An answer for this question already exists.",
                {"applicationId": application_id, "questionId": question_id},
            )
        return answer

    async def update_answer_score(self, answer: Answer, score: float) -> Answer:
        answer.score = score
        await self.session.flush()
        return answer

    # ==================== Analytics ===================== #

    async def list_position_snapshots(self, manager_id: str) -> list[PositionSnapshot]:
        result = await self.session.execute(
            select(Position.id, Position.title)
            .where(Position.user_id == manager_id)
            .order_by(Position.created_at.desc())
        )
        return [PositionSnapshot(id=row.id, title=row.title) for row in result.all()]

    async def list_application_snapshots(
        self, manager_id: str, position_id: Optional[str] = None
    ) -> list[ApplicationSnapshot]:
        """
        Every application on the manager's positions as plain snapshots.

        Args:
            manager_id: Owner of the positions
            position_id: Restrict to one position
        """
        answer_counts = (
            select(Answer.application_id, func.count(Answer.id).label("answer_count"))
            .group_by(Answer.application_id)
            .subquery()
        )
        query = (
            select(
                Application,
                Position.title,
                func.coalesce(answer_counts.c.answer_count, 0),
            )
            .join(Position, Position.id == Application.position_id)
            .outerjoin(answer_counts, answer_counts.c.application_id == Application.id)
            .where(Position.user_id == manager_id)
            .order_by(Application.started_at.desc())
        )
        if position_id is not None:
            query = query.where(Application.position_id == position_id)

        result = await self.session.execute(query)
        return [
            ApplicationSnapshot(
                id=application.id,
                position_id=application.position_id,
                position_title=title,
                name=application.name,
                email=application.email,
                status=application.status,
                overall_result=application.overall_result,
                started_at=ensure_utc(application.started_at),
                completed_at=ensure_utc(application.completed_at),
                answer_count=count,
            )
            for application, title, count in result.all()
        ]
