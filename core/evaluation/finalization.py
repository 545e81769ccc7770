"""
Evaluation status state machine.

    PENDING --(first score)--> IN_REVIEW --(finalize)--> PASSED | FAILED

Finalizing requires every answer to carry a score. The verdict is taken
from the aggregated score percentage against the passing threshold and is
mirrored to the application's overall result.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from core.evaluation.aggregator import EvaluationAggregator, EvaluationSummary
from core.evaluation.records import AnswerScore, ApplicationResult, EvaluationStatus
from core.exceptions import ConflictError, EvaluationIncompleteError


FINAL_STATUSES = frozenset({EvaluationStatus.PASSED, EvaluationStatus.FAILED})

RESULT_FOR_STATUS = {
    EvaluationStatus.PENDING: ApplicationResult.PENDING,
    EvaluationStatus.IN_REVIEW: ApplicationResult.PENDING,
    EvaluationStatus.PASSED: ApplicationResult.PASSED,
    EvaluationStatus.FAILED: ApplicationResult.FAILED,
}


def is_final(status: EvaluationStatus) -> bool:
    return EvaluationStatus(status) in FINAL_STATUSES


@dataclass(frozen=True)
class FinalizationDecision:
    """Outcome of a finalize request."""

    evaluation_status: EvaluationStatus
    overall_result: ApplicationResult
    total_score: float
    summary: EvaluationSummary
    changed: bool

    @property
    def passed(self) -> bool:
        return self.evaluation_status == EvaluationStatus.PASSED


class FinalizationStateMachine:
    """
    Governs evaluation status transitions.

    With ``allow_reevaluation`` disabled PASSED and FAILED are terminal:
    scoring a finalized application is refused and finalizing it again
    returns the stored verdict. Enabled, finalized applications can be
    rescored and finalize recomputes the verdict from current scores.
    """

    def __init__(self, aggregator: EvaluationAggregator, allow_reevaluation: bool = False):
        self.aggregator = aggregator
        self.allow_reevaluation = allow_reevaluation

    def status_after_scoring(self, current: EvaluationStatus) -> EvaluationStatus:
        """
        Status an application moves to when one of its answers is scored.

        Raises:
            ConflictError: If the evaluation is final and cannot be reopened
        """
        current = EvaluationStatus(current)
        if is_final(current) and not self.allow_reevaluation:
            raise ConflictError(
                f"Evaluation is already finalized as {current.value}.",
                {"evaluationStatus": current.value},
            )
        if current == EvaluationStatus.PENDING:
            return EvaluationStatus.IN_REVIEW
        return current

    def finalize(
        self,
        current: EvaluationStatus,
        answers: Iterable[AnswerScore],
        stored_total: Optional[float] = None,
    ) -> FinalizationDecision:
        """
        Decide the final evaluation status of an application.

        Args:
            current: Current evaluation status
            answers: Every answer of the application with its weight
            stored_total: Persisted total score, used when already final

        Returns:
            FinalizationDecision; ``changed`` is False when nothing is to be written

        Raises:
            EvaluationIncompleteError: If any answer is unscored
        """
        current = EvaluationStatus(current)
        summary = self.aggregator.summarize(answers)

        if is_final(current) and not self.allow_reevaluation:
            return FinalizationDecision(
                evaluation_status=current,
                overall_result=RESULT_FOR_STATUS[current],
                total_score=stored_total if stored_total is not None else summary.total_score,
                summary=summary,
                changed=False,
            )

        progress = summary.progress
        if not progress.is_fully_scored:
            raise EvaluationIncompleteError(
                total_answers=progress.total_answers,
                scored_answers=progress.scored_answers,
            )

        status = EvaluationStatus.PASSED if summary.passed else EvaluationStatus.FAILED
        return FinalizationDecision(
            evaluation_status=status,
            overall_result=RESULT_FOR_STATUS[status],
            total_score=summary.total_score,
            summary=summary,
            changed=True,
        )
