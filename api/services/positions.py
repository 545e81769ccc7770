"""Position and question service functions."""

from typing import Any, Dict, List, Optional
import logging

from core.evaluation import QuestionType, validate_weight
from core.evaluation.scoring import DEFAULT_WEIGHT
from core.exceptions import InvalidInputError, NotFoundError
from core.middleware.authorization import Permission, ProtectedResource, ensure_authorized
from core.security import AuditAction, CallerIdentity, ResourceType, log_audit_event
from core.utils.datetime import isoformat
from core.utils.messages import interview_messages
from core.utils.validators import validate_question_options, validate_required_text
from database.models.positions import Position, Question
from database.models.users import UserRole
from database.repository import HiringRepository

logger = logging.getLogger(__name__)


def serialize_position(position: Position) -> Dict[str, Any]:
    return {
        "id": position.id,
        "title": position.title,
        "description": position.description,
        "intro": position.intro,
        "farewell": position.farewell,
        "userId": position.user_id,
        "createdAt": isoformat(position.created_at),
        "updatedAt": isoformat(position.updated_at),
    }


def serialize_question(question: Question, include_weight: bool = True) -> Dict[str, Any]:
    data = {
        "id": question.id,
        "positionId": question.position_id,
        "text": question.text,
        "type": question.type.value,
        "options": question.options,
        "order": question.order,
    }
    if include_weight:
        data["weight"] = question.weight
    return data


def _clean_text(value: Any, field: str) -> str:
    valid, text = validate_required_text(value)
    if not valid:
        raise InvalidInputError(f"{field.capitalize()} is required.", {"field": field})
    return text


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _clean_options(question_type: QuestionType, options: Optional[List[str]]) -> Optional[List[str]]:
    valid, error = validate_question_options(question_type.value, options)
    if not valid:
        raise InvalidInputError(error, {"field": "options"})
    if question_type == QuestionType.TEXT:
        return None
    return [option.strip() for option in options]


async def get_owned_position(
    repo: HiringRepository,
    caller: CallerIdentity,
    position_id: str,
    permission: Permission = Permission.POSITION_READ,
    with_questions: bool = False,
) -> Position:
    """
    Load a position the caller owns.

    Raises:
        NotFoundError: If the position does not exist
        AccessDeniedError: If another manager owns it
    """
    position = await repo.get_position(position_id, with_questions=with_questions)
    if not position:
        raise NotFoundError("Position", position_id)
    ensure_authorized(caller, permission, ProtectedResource.position(position))
    return position


# ==================== Positions ===================== #

async def create_position(
    repo: HiringRepository,
    caller: CallerIdentity,
    title: Any,
    description: Optional[str] = None,
    intro: Optional[str] = None,
    farewell: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a position owned by the calling manager."""
    ensure_authorized(caller, Permission.POSITION_CREATE)
    title = _clean_text(title, "title")

    await repo.ensure_user(caller.user_id, caller.email, UserRole.MANAGER)
    position = await repo.create_position(
        caller.user_id,
        title=title,
        description=_optional_text(description),
        intro=_optional_text(intro),
        farewell=_optional_text(farewell),
    )
    await repo.commit()

    await log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.POSITION,
        resource_id=position.id,
        user_id=caller.user_id,
    )
    return serialize_position(position)


async def list_positions(repo: HiringRepository, caller: CallerIdentity) -> List[Dict[str, Any]]:
    """Positions of the calling manager, newest first, with counts."""
    positions = await repo.list_positions(caller.user_id)
    position_ids = [position.id for position in positions]
    question_counts = await repo.count_questions_by_position(position_ids)
    status_counts = await repo.count_applications_by_position(position_ids)

    results = []
    for position in positions:
        statuses = status_counts.get(position.id, {})
        results.append({
            **serialize_position(position),
            "questionCount": question_counts.get(position.id, 0),
            "applicationCount": sum(statuses.values()),
            "inProgressCount": statuses.get("in_progress", 0),
            "completedCount": statuses.get("completed", 0),
        })
    return results


async def get_position(repo: HiringRepository, caller: CallerIdentity, position_id: str) -> Dict[str, Any]:
    """A position with its ordered questions."""
    position = await get_owned_position(repo, caller, position_id, with_questions=True)
    return {
        **serialize_position(position),
        "questions": [serialize_question(question) for question in position.questions],
    }


async def update_position(
    repo: HiringRepository,
    caller: CallerIdentity,
    position_id: str,
    changes: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Update title, description, intro or farewell.

    Only keys present in ``changes`` are touched.
    """
    position = await get_owned_position(repo, caller, position_id, Permission.POSITION_UPDATE)

    if "title" in changes:
        position.title = _clean_text(changes["title"], "title")
    for field in ("description", "intro", "farewell"):
        if field in changes:
            setattr(position, field, _optional_text(changes[field]))

    await repo.commit()
    await log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.POSITION,
        resource_id=position.id,
        user_id=caller.user_id,
        details={"fields": sorted(changes)},
    )
    return serialize_position(position)


async def delete_position(repo: HiringRepository, caller: CallerIdentity, position_id: str) -> None:
    """Delete a position with its questions, applications and answers."""
    position = await get_owned_position(repo, caller, position_id, Permission.POSITION_DELETE)
    await repo.delete_position(position)
    await repo.commit()

    logger.info(f"Position {position_id} deleted", extra={"position_id": position_id, "user_id": caller.user_id})
    await log_audit_event(
        action=AuditAction.DELETE,
        resource_type=ResourceType.POSITION,
        resource_id=position_id,
        user_id=caller.user_id,
    )


async def get_public_interview(repo: HiringRepository, position_id: str) -> Dict[str, Any]:
    """
    Candidate-facing view of a position.

    Questions are listed without weights; missing intro and farewell texts
    are replaced by the defaults.
    """
    position = await repo.get_position(position_id, with_questions=True)
    if not position:
        raise NotFoundError("Position", position_id)

    return {
        "id": position.id,
        "title": position.title,
        "description": position.description,
        **interview_messages(position.title, position.intro, position.farewell),
        "questions": [
            serialize_question(question, include_weight=False) for question in position.questions
        ],
    }


# ==================== Questions ===================== #

async def create_question(
    repo: HiringRepository,
    caller: CallerIdentity,
    position_id: str,
    text: Any,
    question_type: str = QuestionType.TEXT.value,
    options: Optional[List[str]] = None,
    weight: Any = DEFAULT_WEIGHT,
) -> Dict[str, Any]:
    """Append a question to a position the caller owns."""
    try:
        qtype = QuestionType(question_type)
    except ValueError:
        raise InvalidInputError("Question type must be TEXT or MULTIPLE_CHOICE.", {"field": "type"})

    text = _clean_text(text, "text")
    options = _clean_options(qtype, options)
    weight = validate_weight(DEFAULT_WEIGHT if weight is None else weight)

    await get_owned_position(repo, caller, position_id, Permission.QUESTION_MANAGE)
    question = await repo.create_question(
        position_id, text=text, type=qtype, options=options, weight=float(weight)
    )
    await repo.commit()

    await log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.QUESTION,
        resource_id=question.id,
        user_id=caller.user_id,
        details={"position_id": position_id, "order": question.order},
    )
    return serialize_question(question)


async def list_questions(repo: HiringRepository, caller: CallerIdentity, position_id: str) -> List[Dict[str, Any]]:
    """Questions of a position in order, with answer counts."""
    await get_owned_position(repo, caller, position_id)
    questions = await repo.list_questions(position_id)
    answer_counts = await repo.count_answers_by_question([question.id for question in questions])
    return [
        {**serialize_question(question), "answerCount": answer_counts.get(question.id, 0)}
        for question in questions
    ]


async def _get_owned_question(repo: HiringRepository, caller: CallerIdentity, question_id: str) -> Question:
    question = await repo.get_question(question_id)
    if not question:
        raise NotFoundError("Question", question_id)
    ensure_authorized(caller, Permission.QUESTION_MANAGE, ProtectedResource.position(question.position))
    return question


async def update_question(
    repo: HiringRepository,
    caller: CallerIdentity,
    question_id: str,
    changes: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Update text, type or options of a question.

    The type/options pairing is validated on the resulting question. The
    weight cannot change once answers may have been scored against it.
    """
    question = await _get_owned_question(repo, caller, question_id)

    if changes.get("weight") is not None and changes["weight"] != question.weight:
        raise InvalidInputError("Question weight cannot be changed.", {"field": "weight"})

    if "text" in changes:
        question.text = _clean_text(changes["text"], "text")

    if "type" in changes or "options" in changes:
        try:
            qtype = QuestionType(changes.get("type") or question.type)
        except ValueError:
            raise InvalidInputError("Question type must be TEXT or MULTIPLE_CHOICE.", {"field": "type"})
        if "options" in changes:
            options = changes["options"]
        else:
            options = None if qtype == QuestionType.TEXT else question.options
        question.options = _clean_options(qtype, options)
        question.type = qtype

    await repo.commit()
    await log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.QUESTION,
        resource_id=question.id,
        user_id=caller.user_id,
        details={"fields": sorted(changes)},
    )
    return serialize_question(question)


async def delete_question(repo: HiringRepository, caller: CallerIdentity, question_id: str) -> None:
    """Delete a question and its answers."""
    question = await _get_owned_question(repo, caller, question_id)
    await repo.delete_question(question)
    await repo.commit()

    await log_audit_event(
        action=AuditAction.DELETE,
        resource_type=ResourceType.QUESTION,
        resource_id=question_id,
        user_id=caller.user_id,
    )
