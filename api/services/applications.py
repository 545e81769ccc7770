"""
Application service functions for API endpoints.

Covers the candidate side of an interview (start, answer, complete) and
the manager's views of the applications under their positions.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from api.services.notifications import NotificationService, get_notification_service
from api.services.positions import get_owned_position, serialize_question
from core.evaluation import ApplicationStatus, QuestionType
from core.exceptions import InvalidInputError, NotFoundError
from core.middleware.authorization import (
    Permission,
    ProtectedResource,
    caller_role,
    ensure_authorized,
)
from core.security import AuditAction, CallerIdentity, ResourceType, log_audit_event
from core.utils.datetime import ensure_utc, isoformat, now
from core.utils.formatting import percentage
from core.utils.validators import validate_email, validate_required_text
from database.models.applications import Answer, Application
from database.models.positions import Question
from database.models.users import UserRole
from database.repository import HiringRepository

logger = logging.getLogger(__name__)


def serialize_application(application: Application) -> Dict[str, Any]:
    return {
        "id": application.id,
        "positionId": application.position_id,
        "name": application.name,
        "email": application.email,
        "resumeUrl": application.resume_url,
        "status": application.status.value,
        "evaluationStatus": application.evaluation_status.value,
        "overallResult": application.overall_result.value,
        "totalScore": application.total_score,
        "startedAt": isoformat(application.started_at),
        "completedAt": isoformat(application.completed_at),
    }


def serialize_answer(answer: Answer, question: Optional[Question] = None) -> Dict[str, Any]:
    data = {
        "id": answer.id,
        "applicationId": answer.application_id,
        "questionId": answer.question_id,
        "response": answer.response,
        "score": answer.score,
        "startedAt": isoformat(answer.started_at),
        "endedAt": isoformat(answer.ended_at),
        "createdAt": isoformat(answer.created_at),
        "updatedAt": isoformat(answer.updated_at),
    }
    if question is not None:
        data["question"] = serialize_question(question, include_weight=False)
    return data


def _clean_response(question: Question, response: Any) -> str:
    valid, text = validate_required_text(response)
    if not valid:
        raise InvalidInputError("Response is required and must be a non-empty string.", {"field": "response"})

    if question.type == QuestionType.MULTIPLE_CHOICE and text not in (question.options or []):
        raise InvalidInputError("Response must be one of the provided options.", {"field": "response"})
    return text


def _ensure_in_progress(application: Application, message: str) -> None:
    if application.status != ApplicationStatus.IN_PROGRESS:
        raise InvalidInputError(message, {"status": application.status.value})


async def _load_application(
    repo: HiringRepository,
    caller: CallerIdentity,
    application_id: str,
    permission: Permission,
    message: str = "Access denied to this application.",
    for_update: bool = False,
) -> Application:
    application = await repo.get_application(application_id, for_update=for_update)
    if not application:
        raise NotFoundError("Application", application_id)
    ensure_authorized(caller, permission, ProtectedResource.application(application), message=message)
    return application


# ==================== Candidate side ===================== #

async def start_application(
    repo: HiringRepository,
    position_id: Any,
    name: Any,
    email: Any,
    resume_url: Optional[str] = None,
    notifier: Optional[NotificationService] = None,
) -> Dict[str, Any]:
    """
    Start an interview for a position, or resume the existing one.

    Public: no caller is required. At most one application exists per
    position and email; repeating the call returns the same application.

    Raises:
        InvalidInputError: If the position id, name or email is missing or invalid
        NotFoundError: If the position does not exist
    """
    valid, position_id = validate_required_text(position_id)
    if not valid:
        raise InvalidInputError("Position ID is required.", {"field": "positionId"})

    valid, name = validate_required_text(name)
    if not valid:
        raise InvalidInputError("Name is required.", {"field": "name"})

    if not isinstance(email, str):
        raise InvalidInputError("Email is required.", {"field": "email"})
    valid, result = validate_email(email.strip())
    if not valid:
        raise InvalidInputError(f"Invalid email address: {result}", {"field": "email"})
    email = result.lower()

    position = await repo.get_position(position_id)
    if not position:
        raise NotFoundError("Position", position_id)

    application, created = await repo.create_application(
        position.id,
        name=name,
        email=email,
        resume_url=resume_url.strip() if resume_url and resume_url.strip() else None,
    )

    if created:
        logger.info(
            f"Application {application.id} started for position {position.id}",
            extra={"application_id": application.id, "position_id": position.id},
        )
        notifier = notifier or get_notification_service()
        await notifier.application_started(
            applicant_name=application.name,
            applicant_email=application.email,
            position_id=position.id,
            position_title=position.title,
            application_id=application.id,
        )
    else:
        logger.info(
            f"Application {application.id} resumed for position {position.id}",
            extra={"application_id": application.id, "position_id": position.id},
        )

    return {
        "applicationId": application.id,
        "application": serialize_application(application),
        "created": created,
    }


async def list_application_questions(
    repo: HiringRepository,
    caller: CallerIdentity,
    application_id: str,
) -> Dict[str, Any]:
    """Ordered questions of an application's position with any existing answers."""
    application = await _load_application(
        repo, caller, application_id, Permission.APPLICATION_READ,
        message="Access denied. You can only view your own applications.",
    )

    questions = await repo.list_questions(application.position_id)
    answers_by_question = {answer.question_id: answer for answer in application.answers}

    items = []
    for question in questions:
        answer = answers_by_question.get(question.id)
        items.append({
            **serialize_question(question, include_weight=False),
            "answer": serialize_answer(answer) if answer else None,
        })

    answered = sum(1 for question in questions if question.id in answers_by_question)
    position = application.position
    return {
        "application": {
            "id": application.id,
            "name": application.name,
            "email": application.email,
            "status": application.status.value,
            "position": {"id": position.id, "title": position.title, "description": position.description},
        },
        "questions": items,
        "totalQuestions": len(questions),
        "answeredQuestions": answered,
        "progress": percentage(answered, len(questions)),
    }


async def submit_answer(
    repo: HiringRepository,
    caller: CallerIdentity,
    application_id: str,
    question_id: Any,
    response: Any,
    started_at: Optional[datetime] = None,
    ended_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Store the candidate's answer to one question.

    Raises:
        NotFoundError: If the application or the question does not exist,
            or the question belongs to another position
        AccessDeniedError: If the caller did not start this application
        InvalidInputError: If the application is completed or the response is invalid
        ConflictError: If the question was already answered
    """
    application = await _load_application(
        repo, caller, application_id, Permission.APPLICATION_SUBMIT,
        message="Access denied. You can only answer questions for your own applications.",
    )
    _ensure_in_progress(application, "Cannot answer questions for completed applications.")

    valid, question_id = validate_required_text(question_id)
    if not valid:
        raise InvalidInputError("questionId is required and must be a string.", {"field": "questionId"})

    question = await repo.get_question(question_id)
    if not question or question.position_id != application.position_id:
        raise NotFoundError("Question", question_id)

    text = _clean_response(question, response)
    timestamp = now()
    answer = await repo.create_answer(
        application.id,
        question.id,
        response=text,
        started_at=ensure_utc(started_at) or timestamp,
        ended_at=ensure_utc(ended_at) or timestamp,
    )
    await repo.commit()

    logger.info(
        f"Answer {answer.id} submitted for application {application.id}",
        extra={"answer_id": answer.id, "application_id": application.id},
    )
    return serialize_answer(answer, question)


async def update_answer(
    repo: HiringRepository,
    caller: CallerIdentity,
    answer_id: str,
    response: Any,
) -> Dict[str, Any]:
    """
    Replace the response of an answer.

    Applicants may edit their own answers while the application is in
    progress; managers may edit answers under their positions at any time.
    The score, if any, is kept.
    """
    answer = await repo.get_answer(answer_id)
    if not answer:
        raise NotFoundError("Answer", answer_id)

    application = answer.application
    ensure_authorized(
        caller,
        Permission.ANSWER_UPDATE,
        ProtectedResource.application(application),
        message="Access denied. You can only update your own answers.",
    )
    if caller_role(caller) == UserRole.APPLICANT:
        _ensure_in_progress(application, "Cannot update answers for completed applications.")

    answer.response = _clean_response(answer.question, response)
    answer.ended_at = now()
    await repo.commit()

    await log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.ANSWER,
        resource_id=answer.id,
        user_id=caller.user_id,
        details={"application_id": application.id},
    )
    return serialize_answer(answer, answer.question)


async def list_answers(repo: HiringRepository, caller: CallerIdentity, application_id: str) -> Dict[str, Any]:
    """Answers of an application ordered by question order."""
    application = await _load_application(
        repo, caller, application_id, Permission.APPLICATION_READ,
        message="Access denied. You can only view your own answers.",
    )
    answers = await repo.list_answers(application.id)
    position = application.position
    return {
        "application": {
            "id": application.id,
            "name": application.name,
            "email": application.email,
            "status": application.status.value,
            "position": {"id": position.id, "title": position.title},
        },
        "answers": [serialize_answer(answer, answer.question) for answer in answers],
        "totalAnswers": len(answers),
    }


async def complete_application(
    repo: HiringRepository,
    caller: CallerIdentity,
    application_id: str,
    notifier: Optional[NotificationService] = None,
) -> Dict[str, Any]:
    """
    Mark an application completed and notify applicant and manager.

    Completing twice is a no-op; notifications go out only the first time.

    Returns:
        Dictionary with the application and whether this call changed it
    """
    application = await _load_application(
        repo, caller, application_id, Permission.APPLICATION_SUBMIT,
        message="Access denied. You can only complete your own applications.",
        for_update=True,
    )

    if application.status == ApplicationStatus.COMPLETED:
        return {"application": serialize_application(application), "changed": False}

    application.status = ApplicationStatus.COMPLETED
    application.completed_at = now()
    await repo.commit()

    logger.info(
        f"Application {application.id} completed",
        extra={"application_id": application.id, "user_id": caller.user_id},
    )
    await log_audit_event(
        action=AuditAction.COMPLETE,
        resource_type=ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=caller.user_id,
        details={"answers": len(application.answers)},
    )

    position = application.position
    manager = await repo.get_user(position.user_id)
    notifier = notifier or get_notification_service()
    await notifier.application_completed(
        applicant_name=application.name,
        applicant_email=application.email,
        position_title=position.title,
        application_id=application.id,
        manager_name=manager.name if manager else None,
        manager_email=manager.email if manager else None,
    )

    return {"application": serialize_application(application), "changed": True}


# ==================== Manager views ===================== #

async def list_position_applications(
    repo: HiringRepository,
    caller: CallerIdentity,
    position_id: str,
) -> List[Dict[str, Any]]:
    """Applications of a position the caller owns, newest first."""
    await get_owned_position(repo, caller, position_id, Permission.APPLICATION_READ)
    rows = await repo.list_position_applications(position_id)
    return [
        {**serialize_application(application), "answerCount": answer_count}
        for application, answer_count in rows
    ]


async def get_application_details(
    repo: HiringRepository,
    caller: CallerIdentity,
    application_id: str,
) -> Dict[str, Any]:
    """An application with its answers for the owning manager."""
    application = await _load_application(repo, caller, application_id, Permission.EVALUATION_READ)

    questions = await repo.list_questions(application.position_id)
    answers = sorted(application.answers, key=lambda answer: ensure_utc(answer.created_at))
    position = application.position

    return {
        **serialize_application(application),
        "applicant": {"name": application.name, "email": application.email},
        "position": {"id": position.id, "title": position.title},
        "progress": "Completed" if application.completed_at else "In Progress",
        "responses": [
            {
                "id": answer.id,
                "questionId": answer.question_id,
                "questionText": answer.question.text,
                "response": answer.response,
                "score": answer.score,
                "createdAt": isoformat(answer.created_at),
            }
            for answer in answers
        ],
        "totalQuestions": len(questions),
        "completedQuestions": len(answers),
    }
