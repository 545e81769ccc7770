"""
Tests for the position and question service.
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from api.services import positions
from core.evaluation import QuestionType
from core.exceptions import AccessDeniedError, InvalidInputError, NotFoundError
from database.models.applications import Answer, Application
from database.models.positions import Position, Question
from database.models.users import User


def count(sync_engine, model) -> int:
    with Session(sync_engine) as session:
        return session.scalar(select(func.count()).select_from(model))


class TestCreatePosition:
    async def test_creates_position_and_registers_manager(self, repo, manager, sync_engine):
        result = await positions.create_position(
            repo, manager, "  Backend Engineer ", description="APIs", intro="  ", farewell=None,
        )

        assert result["title"] == "Backend Engineer"
        assert result["description"] == "APIs"
        assert result["intro"] is None
        assert result["userId"] == manager.user_id
        with Session(sync_engine) as session:
            assert session.get(User, manager.user_id).email == "manager@example.com"

    async def test_existing_manager_row_is_reused(self, repo, manager, seed, sync_engine):
        seed.user()

        await positions.create_position(repo, manager, "First")
        await positions.create_position(repo, manager, "Second")

        assert count(sync_engine, User) == 1
        assert count(sync_engine, Position) == 2

    async def test_title_is_required(self, repo, manager, sync_engine):
        with pytest.raises(InvalidInputError) as exc_info:
            await positions.create_position(repo, manager, "   ")

        assert exc_info.value.details == {"field": "title"}
        assert count(sync_engine, User) == 0

    async def test_applicant_cannot_create(self, repo, applicant):
        with pytest.raises(AccessDeniedError):
            await positions.create_position(repo, applicant, "Backend Engineer")


class TestPositionQueries:
    async def test_list_only_own_positions_with_counts(self, repo, manager, seed):
        seed.user()
        seed.user(user_id="manager-2", email="other@example.com")
        mine = seed.position(title="Mine")
        seed.position(user_id="manager-2", title="Theirs")
        question = seed.question(mine, order=1)
        seed.application(mine, email="a@example.com")
        done = seed.application(mine, email="b@example.com", completed_at=seed.hours_ago(1))
        seed.answer(done, question)

        result = await positions.list_positions(repo, manager)

        assert [item["title"] for item in result] == ["Mine"]
        assert result[0]["questionCount"] == 1
        assert result[0]["applicationCount"] == 2
        assert result[0]["inProgressCount"] == 1
        assert result[0]["completedCount"] == 1

    async def test_get_position_with_ordered_questions(self, repo, manager, seed):
        seed.user()
        position = seed.position()
        seed.question(position, order=2, text="Second")
        seed.question(position, order=1, text="First", weight=2)

        result = await positions.get_position(repo, manager, position.id)

        assert [question["text"] for question in result["questions"]] == ["First", "Second"]
        assert result["questions"][0]["weight"] == 2

    async def test_other_manager_is_denied(self, repo, other_manager, seed):
        seed.user()
        position = seed.position()

        with pytest.raises(AccessDeniedError):
            await positions.get_position(repo, other_manager, position.id)

    async def test_missing_position(self, repo, manager):
        with pytest.raises(NotFoundError):
            await positions.get_position(repo, manager, "missing")

    async def test_update_only_given_fields(self, repo, manager, seed):
        seed.user()
        position = seed.position(description="Old description", intro="Hi")

        result = await positions.update_position(repo, manager, position.id, {"title": "Staff Engineer", "intro": ""})

        assert result["title"] == "Staff Engineer"
        assert result["intro"] is None
        assert result["description"] == "Old description"

    async def test_delete_cascades(self, repo, manager, seed, sync_engine):
        seed.user()
        position = seed.position()
        question = seed.question(position, order=1)
        application = seed.application(position)
        seed.answer(application, question)

        await positions.delete_position(repo, manager, position.id)

        assert count(sync_engine, Position) == 0
        assert count(sync_engine, Question) == 0
        assert count(sync_engine, Application) == 0
        assert count(sync_engine, Answer) == 0


class TestPublicInterview:
    async def test_defaults_and_hidden_weights(self, repo, seed):
        seed.user()
        position = seed.position(title="Backend Engineer")
        seed.question(position, order=1, weight=3)

        result = await positions.get_public_interview(repo, position.id)

        assert result["title"] == "Backend Engineer"
        assert "Backend Engineer position" in result["intro"]
        assert result["farewell"].endswith("The Hiring Team")
        assert "weight" not in result["questions"][0]

    async def test_custom_texts(self, repo, seed):
        seed.user()
        position = seed.position(intro="Welcome!", farewell="Bye!")

        result = await positions.get_public_interview(repo, position.id)

        assert result["intro"] == "Welcome!"
        assert result["farewell"] == "Bye!"

    async def test_missing_position(self, repo):
        with pytest.raises(NotFoundError):
            await positions.get_public_interview(repo, "missing")


class TestQuestions:
    @pytest.fixture
    def position(self, seed):
        seed.user()
        return seed.position()

    async def test_questions_are_appended_in_order(self, repo, manager, position):
        first = await positions.create_question(repo, manager, position.id, "First?")
        second = await positions.create_question(
            repo, manager, position.id, "Pick one", "MULTIPLE_CHOICE", [" A ", "B"], weight=2,
        )

        assert first["order"] == 1
        assert first["weight"] == 1.0
        assert first["options"] is None
        assert second["order"] == 2
        assert second["options"] == ["A", "B"]
        assert second["weight"] == 2.0

    @pytest.mark.parametrize("kwargs,field", [
        ({"text": ""}, "text"),
        ({"text": "Q", "question_type": "ESSAY"}, "type"),
        ({"text": "Q", "question_type": "MULTIPLE_CHOICE", "options": ["Only"]}, "options"),
        ({"text": "Q", "options": ["A", "B"]}, "options"),
    ])
    async def test_invalid_questions(self, repo, manager, position, kwargs, field):
        with pytest.raises(InvalidInputError) as exc_info:
            await positions.create_question(repo, manager, position.id, **kwargs)

        assert exc_info.value.details == {"field": field}

    @pytest.mark.parametrize("weight", [0, -1, "heavy"])
    async def test_invalid_weight(self, repo, manager, position, weight):
        with pytest.raises(InvalidInputError):
            await positions.create_question(repo, manager, position.id, "Q", weight=weight)

    async def test_list_questions_with_answer_counts(self, repo, manager, position, seed):
        question = seed.question(position, order=1)
        seed.answer(seed.application(position), question)

        result = await positions.list_questions(repo, manager, position.id)

        assert result[0]["answerCount"] == 1

    async def test_switch_to_text_drops_options(self, repo, manager, position, seed):
        question = seed.question(position, order=1, type=QuestionType.MULTIPLE_CHOICE, options=["A", "B"])

        result = await positions.update_question(repo, manager, question.id, {"type": "TEXT"})

        assert result["type"] == "TEXT"
        assert result["options"] is None

    async def test_weight_cannot_change(self, repo, manager, position, seed):
        question = seed.question(position, order=1, weight=1.0)

        with pytest.raises(InvalidInputError):
            await positions.update_question(repo, manager, question.id, {"weight": 5})

    async def test_other_manager_cannot_edit(self, repo, other_manager, position, seed):
        question = seed.question(position, order=1)

        with pytest.raises(AccessDeniedError):
            await positions.update_question(repo, other_manager, question.id, {"text": "Mine now"})

    async def test_delete_question_removes_answers(self, repo, manager, position, seed, sync_engine):
        question = seed.question(position, order=1)
        seed.answer(seed.application(position), question)

        await positions.delete_question(repo, manager, question.id)

        assert count(sync_engine, Question) == 0
        assert count(sync_engine, Answer) == 0
