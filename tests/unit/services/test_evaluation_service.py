"""
Tests for the evaluation service.

Tests:
- Scoring answers and the PENDING -> IN_REVIEW transition
- Finalizing to PASSED or FAILED
- Terminal finalized evaluations
- Ownership checks
"""

from types import SimpleNamespace

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from api.services import evaluations
from core.evaluation import EvaluationStatus
from core.exceptions import (
    AccessDeniedError,
    ConflictError,
    EvaluationIncompleteError,
    InvalidInputError,
    NotFoundError,
)
from database.models.applications import Answer, Application
from database.repository import HiringRepository


@pytest.fixture
def interview(seed):
    """A completed application with three unscored answers."""
    seed.user()
    position = seed.position()
    questions = [seed.question(position, order=index + 1, text=f"Question {index + 1}") for index in range(3)]
    application = seed.application(position, started_at=seed.hours_ago(2), completed_at=seed.hours_ago(1))
    answers = [seed.answer(application, question, response=f"Answer {question.order}") for question in questions]
    return SimpleNamespace(position=position, questions=questions, application=application, answers=answers)


def stored_application(sync_engine, application_id) -> Application:
    with Session(sync_engine) as session:
        application = session.get(Application, application_id)
        session.expunge(application)
        return application


async def score_all(repo, caller, answers, scores):
    for answer, score in zip(answers, scores):
        await evaluations.score_answer(repo, caller, answer.id, score)


class TestScoreAnswer:
    """Test manager scoring."""

    async def test_first_score_moves_evaluation_to_review(self, repo, manager, interview, sync_engine):
        result = await evaluations.score_answer(repo, manager, interview.answers[0].id, 80)

        assert result["score"] == 80
        assert result["question"]["weight"] == 1.0
        assert result["application"]["evaluationStatus"] == "IN_REVIEW"
        stored = stored_application(sync_engine, interview.application.id)
        assert stored.evaluation_status == EvaluationStatus.IN_REVIEW

    async def test_rescoring_overwrites(self, repo, manager, interview, sync_engine):
        answer_id = interview.answers[0].id

        await evaluations.score_answer(repo, manager, answer_id, 40)
        result = await evaluations.score_answer(repo, manager, answer_id, 65.5)

        assert result["score"] == 65.5
        with Session(sync_engine) as session:
            assert session.get(Answer, answer_id).score == 65.5

    async def test_zero_is_a_valid_score(self, repo, manager, interview):
        result = await evaluations.score_answer(repo, manager, interview.answers[0].id, 0)

        assert result["score"] == 0

    @pytest.mark.parametrize("score", [-1, "80", None, float("nan")])
    async def test_invalid_score(self, repo, manager, interview, score):
        with pytest.raises(InvalidInputError):
            await evaluations.score_answer(repo, manager, interview.answers[0].id, score)

    async def test_unknown_answer(self, repo, manager, interview):
        with pytest.raises(NotFoundError):
            await evaluations.score_answer(repo, manager, "missing", 50)

    async def test_other_manager_cannot_score(self, repo, other_manager, interview, sync_engine):
        with pytest.raises(AccessDeniedError):
            await evaluations.score_answer(repo, other_manager, interview.answers[0].id, 50)

        with Session(sync_engine) as session:
            assert session.get(Answer, interview.answers[0].id).score is None

    async def test_applicant_cannot_score(self, repo, applicant, interview):
        with pytest.raises(AccessDeniedError):
            await evaluations.score_answer(repo, applicant, interview.answers[0].id, 50)


class TestFinalizeApplication:
    """Test finalize outcomes."""

    async def test_unscored_answers_block_finalize(self, repo, manager, interview, sync_engine):
        await evaluations.score_answer(repo, manager, interview.answers[0].id, 80)

        with pytest.raises(EvaluationIncompleteError) as exc_info:
            await evaluations.finalize_application(repo, manager, interview.application.id)

        assert exc_info.value.details == {"totalAnswers": 3, "scoredAnswers": 1, "unscoredAnswers": 2}
        stored = stored_application(sync_engine, interview.application.id)
        assert stored.evaluation_status == EvaluationStatus.IN_REVIEW
        assert stored.total_score is None

    async def test_failing_application(self, repo, manager, interview, sync_engine):
        await score_all(repo, manager, interview.answers, [80, 60, 60])

        result = await evaluations.finalize_application(repo, manager, interview.application.id)

        assert result["changed"] is True
        assert result["application"]["evaluationStatus"] == "FAILED"
        assert result["application"]["overallResult"] == "FAILED"
        assert result["application"]["totalScore"] == 200
        assert result["scoring"] == {
            "totalScore": 200,
            "maxPossibleScore": 300,
            "scorePercentage": 66.67,
            "threshold": 70.0,
            "passed": False,
        }
        assert [answer["score"] for answer in result["answers"]] == [80, 60, 60]

        stored = stored_application(sync_engine, interview.application.id)
        assert stored.evaluation_status == EvaluationStatus.FAILED
        assert stored.overall_result.value == "FAILED"
        assert stored.total_score == 200

    async def test_passing_application(self, repo, manager, interview):
        await score_all(repo, manager, interview.answers, [90, 70, 70])

        result = await evaluations.finalize_application(repo, manager, interview.application.id)

        assert result["application"]["evaluationStatus"] == "PASSED"
        assert result["scoring"]["scorePercentage"] == 76.67
        assert result["scoring"]["passed"] is True

    async def test_weighted_total(self, repo, manager, seed):
        seed.user()
        position = seed.position()
        first = seed.question(position, order=1, weight=2)
        second = seed.question(position, order=2, weight=2)
        application = seed.application(position, completed_at=seed.hours_ago(1))
        answers = [seed.answer(application, first), seed.answer(application, second)]

        await score_all(repo, manager, answers, [80, 90])
        result = await evaluations.finalize_application(repo, manager, application.id)

        assert result["application"]["totalScore"] == 340
        assert result["scoring"]["maxPossibleScore"] == 400
        assert result["scoring"]["scorePercentage"] == 85.0
        assert [answer["weightedScore"] for answer in result["answers"]] == [160, 180]

    async def test_application_without_answers_fails(self, repo, manager, seed):
        seed.user()
        position = seed.position()
        application = seed.application(position)

        result = await evaluations.finalize_application(repo, manager, application.id)

        assert result["application"]["evaluationStatus"] == "FAILED"
        assert result["application"]["totalScore"] == 0

    async def test_refinalizing_returns_stored_verdict(self, repo, manager, interview):
        await score_all(repo, manager, interview.answers, [90, 70, 70])
        await evaluations.finalize_application(repo, manager, interview.application.id)

        result = await evaluations.finalize_application(repo, manager, interview.application.id)

        assert result["changed"] is False
        assert result["application"]["evaluationStatus"] == "PASSED"
        assert result["application"]["totalScore"] == 230

    async def test_scoring_a_finalized_application_conflicts(self, repo, manager, interview, sync_engine):
        await score_all(repo, manager, interview.answers, [90, 70, 70])
        await evaluations.finalize_application(repo, manager, interview.application.id)

        with pytest.raises(ConflictError):
            await evaluations.score_answer(repo, manager, interview.answers[0].id, 10)

        with Session(sync_engine) as session:
            assert session.get(Answer, interview.answers[0].id).score == 90

    async def test_unknown_application(self, repo, manager):
        with pytest.raises(NotFoundError):
            await evaluations.finalize_application(repo, manager, "missing")

    async def test_other_manager_cannot_finalize(self, repo, manager, other_manager, interview):
        await score_all(repo, manager, interview.answers, [90, 70, 70])

        with pytest.raises(AccessDeniedError):
            await evaluations.finalize_application(repo, other_manager, interview.application.id)


class TestApplicationEvaluation:
    """Test the read-only evaluation view."""

    async def test_before_any_score(self, repo, manager, interview):
        result = await evaluations.get_application_evaluation(repo, manager, interview.application.id)

        evaluation = result["evaluation"]
        assert evaluation["totalScore"] == 0
        assert evaluation["maxPossibleScore"] == 300
        assert evaluation["scorePercentage"] is None
        assert evaluation["isComplete"] is False
        assert evaluation["progress"] == {
            "totalAnswers": 3,
            "scoredAnswers": 0,
            "unscoredAnswers": 3,
            "completionPercentage": 0,
        }
        assert [answer["question"]["order"] for answer in result["answers"]] == [1, 2, 3]
        assert result["application"]["status"] == "completed"

    async def test_running_totals(self, repo, manager, interview):
        await evaluations.score_answer(repo, manager, interview.answers[0].id, 80)
        await evaluations.score_answer(repo, manager, interview.answers[1].id, 60)

        result = await evaluations.get_application_evaluation(repo, manager, interview.application.id)

        evaluation = result["evaluation"]
        assert evaluation["totalScore"] == 140
        assert evaluation["scorePercentage"] == 46.67
        assert evaluation["progress"]["completionPercentage"] == 67
        assert result["application"]["evaluationStatus"] == "IN_REVIEW"

    async def test_after_finalize(self, repo, manager, interview):
        await score_all(repo, manager, interview.answers, [90, 70, 70])
        await evaluations.finalize_application(repo, manager, interview.application.id)

        result = await evaluations.get_application_evaluation(repo, manager, interview.application.id)

        evaluation = result["evaluation"]
        assert evaluation["isComplete"] is True
        assert evaluation["isPassed"] is True
        assert evaluation["isFailed"] is False
        assert evaluation["totalScore"] == 230

    async def test_other_manager_is_denied(self, repo, other_manager, interview):
        with pytest.raises(AccessDeniedError):
            await evaluations.get_application_evaluation(repo, other_manager, interview.application.id)


class TestConcurrentScoringAndFinalize:
    """Interleave a score and a finalize running in separate sessions."""

    @pytest.fixture
    def in_review(self, seed):
        """Fully scored at 80/60/60 (66.67 %), not yet finalized."""
        seed.user()
        position = seed.position()
        questions = [seed.question(position, order=index + 1) for index in range(3)]
        application = seed.application(
            position,
            completed_at=seed.hours_ago(1),
            evaluation_status=EvaluationStatus.IN_REVIEW,
        )
        answers = [
            seed.answer(application, question, score=score)
            for question, score in zip(questions, [80, 60, 60])
        ]
        return SimpleNamespace(application=application, answers=answers)

    async def test_finalize_between_read_and_write_rejects_the_score(
        self, repo, manager, in_review, session_factory, sync_engine, monkeypatch
    ):
        load_answer = repo.get_answer

        async def load_then_finalize_elsewhere(answer_id):
            answer = await load_answer(answer_id)
            async with session_factory() as other_session:
                await evaluations.finalize_application(
                    HiringRepository(other_session), manager, in_review.application.id
                )
            return answer

        monkeypatch.setattr(repo, "get_answer", load_then_finalize_elsewhere)

        with pytest.raises(ConflictError):
            await evaluations.score_answer(repo, manager, in_review.answers[0].id, 100)

        stored = stored_application(sync_engine, in_review.application.id)
        assert stored.evaluation_status == EvaluationStatus.FAILED
        assert stored.total_score == 200
        with Session(sync_engine) as session:
            assert session.get(Answer, in_review.answers[0].id).score == 80

    async def test_score_between_read_and_write_rejects_the_finalize(
        self, repo, manager, in_review, session_factory, sync_engine, monkeypatch
    ):
        load_application = repo.get_application

        async def load_then_score_elsewhere(application_id, for_update=False):
            application = await load_application(application_id, for_update=for_update)
            async with session_factory() as other_session:
                await evaluations.score_answer(
                    HiringRepository(other_session), manager, in_review.answers[0].id, 100
                )
            return application

        monkeypatch.setattr(repo, "get_application", load_then_score_elsewhere)

        with pytest.raises(StaleDataError):
            await evaluations.finalize_application(repo, manager, in_review.application.id)

        stored = stored_application(sync_engine, in_review.application.id)
        assert stored.evaluation_status == EvaluationStatus.IN_REVIEW
        assert stored.total_score is None
        with Session(sync_engine) as session:
            assert session.get(Answer, in_review.answers[0].id).score == 100

    async def test_scoring_bumps_the_version(self, repo, manager, in_review, sync_engine):
        before = stored_application(sync_engine, in_review.application.id).version

        await evaluations.score_answer(repo, manager, in_review.answers[1].id, 70)

        assert stored_application(sync_engine, in_review.application.id).version == before + 1
