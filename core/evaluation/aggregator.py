"""
Evaluation aggregation.

Turns the scored answers of one application into running totals, the
score percentage, the pass/fail verdict and scoring progress. Pure and
idempotent: the same answers always produce the same summary.
"""

from dataclasses import dataclass
from typing import Iterable

from core.evaluation.records import AnswerScore
from core.evaluation.scoring import contribution
from core.utils.formatting import percentage, to_decimal


DEFAULT_MAX_QUESTION_SCORE = 100.0
DEFAULT_PASSING_THRESHOLD = 70.0


@dataclass(frozen=True)
class ScoringProgress:
    """How many answers of an application have been scored."""

    total_answers: int
    scored_answers: int

    @property
    def unscored_answers(self) -> int:
        return self.total_answers - self.scored_answers

    @property
    def completion_percentage(self) -> int:
        return percentage(self.scored_answers, self.total_answers)

    @property
    def is_fully_scored(self) -> bool:
        return self.scored_answers == self.total_answers

    def to_dict(self) -> dict:
        return {
            "totalAnswers": self.total_answers,
            "scoredAnswers": self.scored_answers,
            "unscoredAnswers": self.unscored_answers,
            "completionPercentage": self.completion_percentage,
        }


@dataclass(frozen=True)
class EvaluationSummary:
    """Aggregated scoring state of one application."""

    total_score: float
    max_possible_score: float
    score_percentage: float
    passed: bool
    threshold: float
    progress: ScoringProgress


def is_passing(total_score: float, max_possible_score: float, threshold: float) -> bool:
    """
    Decide whether a weighted total meets the passing threshold.

    Compares ``total * 100 >= threshold * max`` in decimal arithmetic so a
    score of exactly the threshold passes regardless of float division.
    An application with no attainable score never passes.
    """
    if max_possible_score <= 0:
        return False
    return to_decimal(total_score) * 100 >= to_decimal(threshold) * to_decimal(max_possible_score)


class EvaluationAggregator:
    """Aggregates weighted answer scores for an application."""

    def __init__(
        self,
        max_question_score: float = DEFAULT_MAX_QUESTION_SCORE,
        passing_threshold: float = DEFAULT_PASSING_THRESHOLD,
    ):
        self.max_question_score = max_question_score
        self.passing_threshold = passing_threshold

    def summarize(self, answers: Iterable[AnswerScore]) -> EvaluationSummary:
        """
        Compute the evaluation summary of an application's answers.

        Args:
            answers: Every answer of the application with its question weight

        Returns:
            EvaluationSummary with totals, percentage, verdict and progress
        """
        total_score = 0
        max_possible_score = 0
        total_answers = 0
        scored_answers = 0

        for answer in answers:
            total_answers += 1
            max_possible_score += self.max_question_score * answer.weight
            if answer.is_scored:
                scored_answers += 1
                total_score += contribution(answer.score, answer.weight)

        return EvaluationSummary(
            total_score=total_score,
            max_possible_score=max_possible_score,
            score_percentage=percentage(total_score, max_possible_score, decimals=2),
            passed=is_passing(total_score, max_possible_score, self.passing_threshold),
            threshold=self.passing_threshold,
            progress=ScoringProgress(
                total_answers=total_answers,
                scored_answers=scored_answers,
            ),
        )
