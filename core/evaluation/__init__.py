"""
Evaluation core.

Pure scoring, aggregation, finalization and analytics logic. The service
layer feeds it snapshots read from the store and persists its decisions.
"""

from core.evaluation.records import (
    AnswerScore,
    ApplicationResult,
    ApplicationSnapshot,
    ApplicationStatus,
    EvaluationStatus,
    PositionSnapshot,
    QuestionType,
)

from core.evaluation.scoring import (
    validate_score,
    validate_weight,
    weighted_score,
)

from core.evaluation.aggregator import (
    EvaluationAggregator,
    EvaluationSummary,
    ScoringProgress,
    is_passing,
)

from core.evaluation.finalization import (
    FinalizationDecision,
    FinalizationStateMachine,
    is_final,
)

__all__ = [
    # Records
    "AnswerScore",
    "ApplicationResult",
    "ApplicationSnapshot",
    "ApplicationStatus",
    "EvaluationStatus",
    "PositionSnapshot",
    "QuestionType",
    # Scoring
    "validate_score",
    "validate_weight",
    "weighted_score",
    # Aggregation
    "EvaluationAggregator",
    "EvaluationSummary",
    "ScoringProgress",
    "is_passing",
    # Finalization
    "FinalizationDecision",
    "FinalizationStateMachine",
    "is_final",
]
