"""
Tests for the evaluation status state machine.
"""

import pytest

from core.evaluation import (
    AnswerScore,
    ApplicationResult,
    EvaluationAggregator,
    EvaluationStatus,
    FinalizationStateMachine,
    is_final,
)
from core.exceptions import ConflictError, EvaluationIncompleteError


def answers(*scores, weight=1):
    return [
        AnswerScore(answer_id=f"a{index}", score=score, weight=weight)
        for index, score in enumerate(scores)
    ]


@pytest.fixture
def machine():
    return FinalizationStateMachine(EvaluationAggregator())


@pytest.fixture
def reopening_machine():
    return FinalizationStateMachine(EvaluationAggregator(), allow_reevaluation=True)


class TestStatusAfterScoring:
    """Test the transition caused by scoring an answer."""

    def test_first_score_moves_pending_to_review(self, machine):
        assert machine.status_after_scoring(EvaluationStatus.PENDING) == EvaluationStatus.IN_REVIEW

    def test_review_stays_in_review(self, machine):
        assert machine.status_after_scoring(EvaluationStatus.IN_REVIEW) == EvaluationStatus.IN_REVIEW

    def test_accepts_plain_strings(self, machine):
        assert machine.status_after_scoring("PENDING") == EvaluationStatus.IN_REVIEW

    @pytest.mark.parametrize("status", [EvaluationStatus.PASSED, EvaluationStatus.FAILED])
    def test_finalized_evaluation_refuses_scores(self, machine, status):
        with pytest.raises(ConflictError) as exc_info:
            machine.status_after_scoring(status)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details == {"evaluationStatus": status.value}

    def test_reevaluation_allows_scoring_finalized(self, reopening_machine):
        assert reopening_machine.status_after_scoring(EvaluationStatus.PASSED) == EvaluationStatus.PASSED


class TestFinalize:
    """Test finalize decisions."""

    def test_failing_total(self, machine):
        decision = machine.finalize(EvaluationStatus.IN_REVIEW, answers(80, 60, 60))

        assert decision.evaluation_status == EvaluationStatus.FAILED
        assert decision.overall_result == ApplicationResult.FAILED
        assert decision.total_score == 200
        assert decision.summary.score_percentage == 66.67
        assert decision.passed is False
        assert decision.changed is True

    def test_passing_total(self, machine):
        decision = machine.finalize(EvaluationStatus.IN_REVIEW, answers(90, 70, 70))

        assert decision.evaluation_status == EvaluationStatus.PASSED
        assert decision.overall_result == ApplicationResult.PASSED
        assert decision.total_score == 230
        assert decision.summary.score_percentage == 76.67
        assert decision.passed is True

    def test_total_is_raw_weighted_sum(self, machine):
        decision = machine.finalize(EvaluationStatus.IN_REVIEW, answers(80, 90, weight=2))

        assert decision.total_score == 340
        assert decision.summary.max_possible_score == 400

    def test_unscored_answer_blocks_finalize(self, machine):
        with pytest.raises(EvaluationIncompleteError) as exc_info:
            machine.finalize(EvaluationStatus.IN_REVIEW, answers(80, None))

        error = exc_info.value
        assert error.unscored_answers == 1
        assert error.status_code == 400
        assert error.details == {"totalAnswers": 2, "scoredAnswers": 1, "unscoredAnswers": 1}
        assert "1 answers still need to be scored" in error.message

    def test_application_without_answers_fails(self, machine):
        decision = machine.finalize(EvaluationStatus.PENDING, [])

        assert decision.evaluation_status == EvaluationStatus.FAILED
        assert decision.total_score == 0

    def test_refinalizing_returns_stored_verdict(self, machine):
        """Finalized is terminal: the stored total and verdict come back unchanged."""
        decision = machine.finalize(EvaluationStatus.PASSED, answers(10, 10, 10), stored_total=230)

        assert decision.changed is False
        assert decision.evaluation_status == EvaluationStatus.PASSED
        assert decision.overall_result == ApplicationResult.PASSED
        assert decision.total_score == 230

    def test_refinalizing_skips_completeness_check(self, machine):
        decision = machine.finalize(EvaluationStatus.FAILED, answers(10, None), stored_total=10)

        assert decision.changed is False
        assert decision.evaluation_status == EvaluationStatus.FAILED

    def test_reevaluation_recomputes_verdict(self, reopening_machine):
        decision = reopening_machine.finalize(
            EvaluationStatus.PASSED, answers(10, 10, 10), stored_total=230
        )

        assert decision.changed is True
        assert decision.evaluation_status == EvaluationStatus.FAILED
        assert decision.total_score == 30


class TestIsFinal:
    @pytest.mark.parametrize("status,expected", [
        (EvaluationStatus.PENDING, False),
        (EvaluationStatus.IN_REVIEW, False),
        (EvaluationStatus.PASSED, True),
        (EvaluationStatus.FAILED, True),
        ("PASSED", True),
    ])
    def test_is_final(self, status, expected):
        assert is_final(status) is expected
