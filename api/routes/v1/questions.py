"""Question endpoints addressed by question id."""

from fastapi import APIRouter, Depends, Path

from api.dependencies import get_repository
from api.schemas.common import success_response
from api.schemas.positions import QuestionUpdate
from api.services import positions as position_service
from core.middleware.authorization import Permission, require_permission
from core.security import CallerIdentity
from database.repository import HiringRepository

router = APIRouter(prefix="/questions", tags=["Questions"])


@router.put("/{question_id}", summary="Update Question")
async def update_question(
    body: QuestionUpdate,
    question_id: str = Path(..., description="Question ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.QUESTION_MANAGE)),
    repo: HiringRepository = Depends(get_repository),
):
    """Update text, type or options; the type/options pairing is re-validated."""
    result = await position_service.update_question(
        repo, caller, question_id, body.model_dump(exclude_unset=True)
    )
    return success_response(result, message="Question updated successfully.")


@router.delete("/{question_id}", summary="Delete Question")
async def delete_question(
    question_id: str = Path(..., description="Question ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.QUESTION_MANAGE)),
    repo: HiringRepository = Depends(get_repository),
):
    await position_service.delete_question(repo, caller, question_id)
    return success_response({"id": question_id}, message="Question deleted successfully.")
