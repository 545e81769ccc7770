"""Evaluation service functions: scoring answers and finalizing applications."""

from typing import Any, Dict, Optional
import logging

from core.config import settings
from core.evaluation import (
    AnswerScore,
    EvaluationAggregator,
    EvaluationStatus,
    EvaluationSummary,
    FinalizationStateMachine,
    is_final,
    validate_score,
    weighted_score,
)
from core.exceptions import ConflictError, NotFoundError
from core.middleware.authorization import Permission, ProtectedResource, ensure_authorized
from core.security import AuditAction, CallerIdentity, ResourceType, log_audit_event
from core.utils.datetime import isoformat
from core.utils.formatting import percentage
from database.models.applications import Answer, Application
from database.repository import HiringRepository

logger = logging.getLogger(__name__)


def build_aggregator() -> EvaluationAggregator:
    return EvaluationAggregator(
        max_question_score=settings.max_question_score,
        passing_threshold=settings.passing_threshold,
    )


def build_state_machine() -> FinalizationStateMachine:
    return FinalizationStateMachine(
        build_aggregator(),
        allow_reevaluation=settings.allow_reevaluation,
    )


def answer_scores(application: Application) -> list[AnswerScore]:
    """Scores of every answer joined to its question weight."""
    return [
        AnswerScore(answer_id=answer.id, score=answer.score, weight=answer.question.weight)
        for answer in application.answers
    ]


def _ordered_answers(application: Application) -> list[Answer]:
    return sorted(application.answers, key=lambda answer: answer.question.order)


def _weighted(answer: Answer) -> Optional[float]:
    if answer.score is None:
        return None
    return weighted_score(answer.score, answer.question.weight)


async def score_answer(
    repo: HiringRepository,
    caller: CallerIdentity,
    answer_id: str,
    score: Any,
) -> Dict[str, Any]:
    """
    Record a manager's score for one answer.

    The first score on an application moves its evaluation from PENDING to
    IN_REVIEW. Rescoring an already scored answer overwrites the score.

    Raises:
        InvalidInputError: If the score is not a finite number >= 0
        NotFoundError: If the answer does not exist
        AccessDeniedError: If the caller does not own the position
        ConflictError: If the evaluation is final and cannot be reopened
    """
    score = validate_score(score)

    answer = await repo.get_answer(answer_id)
    if not answer:
        raise NotFoundError("Answer", answer_id)

    application = answer.application
    ensure_authorized(
        caller,
        Permission.ANSWER_SCORE,
        ProtectedResource.application(application),
        message="Access denied. You can only score answers for your positions.",
    )

    state_machine = build_state_machine()
    previous_status = application.evaluation_status
    state_machine.status_after_scoring(previous_status)

    claimed = await repo.open_for_scoring(
        application.id, reopen_final=state_machine.allow_reevaluation
    )
    if not claimed:
        raise ConflictError(
            "Evaluation was finalized while the score was being recorded.",
            {"applicationId": application.id},
        )

    previous_score = answer.score
    await repo.update_answer_score(answer, score)
    await repo.commit()
    await repo.refresh(application, ["evaluation_status", "version"])

    logger.info(
        f"Answer {answer.id} scored {score}",
        extra={"answer_id": answer.id, "application_id": application.id, "user_id": caller.user_id},
    )
    await log_audit_event(
        action=AuditAction.SCORE,
        resource_type=ResourceType.ANSWER,
        resource_id=answer.id,
        user_id=caller.user_id,
        details={
            "application_id": application.id,
            "score": score,
            "previous_score": previous_score,
            "previous_status": EvaluationStatus(previous_status).value,
        },
    )

    question = answer.question
    return {
        "id": answer.id,
        "score": answer.score,
        "question": {
            "id": question.id,
            "text": question.text,
            "type": question.type.value,
            "weight": question.weight,
        },
        "application": {
            "id": application.id,
            "name": application.name,
            "email": application.email,
            "evaluationStatus": application.evaluation_status.value,
        },
    }


async def finalize_application(
    repo: HiringRepository,
    caller: CallerIdentity,
    application_id: str,
) -> Dict[str, Any]:
    """
    Decide PASSED or FAILED for a fully scored application.

    The application row is locked for the decision and written through its
    version column, so two concurrent finalizations cannot both commit.

    Raises:
        NotFoundError: If the application does not exist
        AccessDeniedError: If the caller does not own the position
        EvaluationIncompleteError: If any answer is unscored
        ConflictError: If the evaluation was finalized by a concurrent request
    """
    application = await repo.get_application(application_id, for_update=True)
    if not application:
        raise NotFoundError("Application", application_id)

    ensure_authorized(
        caller,
        Permission.EVALUATION_FINALIZE,
        ProtectedResource.application(application),
        message="Access denied. You can only finalize applications for your positions.",
    )

    decision = build_state_machine().finalize(
        application.evaluation_status,
        answer_scores(application),
        stored_total=application.total_score,
    )

    if decision.changed:
        application.total_score = decision.total_score
        application.evaluation_status = decision.evaluation_status
        application.overall_result = decision.overall_result
        await repo.commit()

        logger.info(
            f"Application {application.id} finalized as {decision.evaluation_status.value}",
            extra={"application_id": application.id, "user_id": caller.user_id},
        )
        await log_audit_event(
            action=AuditAction.FINALIZE,
            resource_type=ResourceType.EVALUATION,
            resource_id=application.id,
            user_id=caller.user_id,
            details={
                "evaluation_status": decision.evaluation_status.value,
                "total_score": decision.total_score,
                "score_percentage": decision.summary.score_percentage,
            },
        )
    else:
        logger.info(
            f"Application {application.id} already finalized as {decision.evaluation_status.value}",
            extra={"application_id": application.id, "user_id": caller.user_id},
        )

    summary = decision.summary
    position = application.position
    return {
        "application": {
            "id": application.id,
            "name": application.name,
            "email": application.email,
            "totalScore": application.total_score,
            "evaluationStatus": application.evaluation_status.value,
            "overallResult": application.overall_result.value,
            "position": {"id": position.id, "title": position.title},
        },
        "scoring": {
            "totalScore": decision.total_score,
            "maxPossibleScore": summary.max_possible_score,
            "scorePercentage": percentage(decision.total_score, summary.max_possible_score, decimals=2),
            "threshold": summary.threshold,
            "passed": decision.passed,
        },
        "answers": [
            {
                "id": answer.id,
                "response": answer.response,
                "score": answer.score,
                "weightedScore": _weighted(answer),
                "question": {
                    "id": answer.question.id,
                    "text": answer.question.text,
                    "weight": answer.question.weight,
                },
            }
            for answer in _ordered_answers(application)
        ],
        "changed": decision.changed,
    }


def _evaluation_block(application: Application, summary: EvaluationSummary) -> Dict[str, Any]:
    final = is_final(application.evaluation_status)
    if final and application.total_score is not None:
        total_score = application.total_score
    else:
        total_score = summary.total_score

    # No percentage until something has been scored
    if summary.progress.scored_answers or (final and application.total_score is not None):
        score_percentage = percentage(total_score, summary.max_possible_score, decimals=2)
    else:
        score_percentage = None

    return {
        "totalScore": total_score,
        "maxPossibleScore": summary.max_possible_score,
        "scorePercentage": score_percentage,
        "threshold": summary.threshold,
        "isPassed": application.evaluation_status.value == "PASSED",
        "isFailed": application.evaluation_status.value == "FAILED",
        "isComplete": final,
        "progress": summary.progress.to_dict(),
    }


async def get_application_evaluation(
    repo: HiringRepository,
    caller: CallerIdentity,
    application_id: str,
) -> Dict[str, Any]:
    """
    Running evaluation of an application for its manager.

    Read-only; totals are recomputed from the current answer scores.

    Raises:
        NotFoundError: If the application does not exist
        AccessDeniedError: If the caller does not own the position
    """
    application = await repo.get_application(application_id)
    if not application:
        raise NotFoundError("Application", application_id)

    ensure_authorized(
        caller,
        Permission.EVALUATION_READ,
        ProtectedResource.application(application),
        message="Access denied. You can only view evaluations for your positions.",
    )

    summary = build_aggregator().summarize(answer_scores(application))
    position = application.position

    return {
        "application": {
            "id": application.id,
            "name": application.name,
            "email": application.email,
            "resumeUrl": application.resume_url,
            "status": application.status.value,
            "totalScore": application.total_score,
            "evaluationStatus": application.evaluation_status.value,
            "overallResult": application.overall_result.value,
            "startedAt": isoformat(application.started_at),
            "completedAt": isoformat(application.completed_at),
            "position": {"id": position.id, "title": position.title},
        },
        "evaluation": _evaluation_block(application, summary),
        "answers": [
            {
                "id": answer.id,
                "response": answer.response,
                "score": answer.score,
                "weightedScore": _weighted(answer),
                "startedAt": isoformat(answer.started_at),
                "endedAt": isoformat(answer.ended_at),
                "createdAt": isoformat(answer.created_at),
                "updatedAt": isoformat(answer.updated_at),
                "question": {
                    "id": answer.question.id,
                    "text": answer.question.text,
                    "type": answer.question.type.value,
                    "weight": answer.question.weight,
                    "options": answer.question.options,
                    "order": answer.question.order,
                },
            }
            for answer in _ordered_answers(application)
        ],
    }
