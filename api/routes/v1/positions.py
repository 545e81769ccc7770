"""
Position management endpoints.

Managers create positions, maintain their interview questions and review
the applications each position received.
"""

from fastapi import APIRouter, Depends, Path, status

from api.dependencies import get_repository
from api.schemas.common import success_response
from api.schemas.positions import PositionCreate, PositionUpdate, QuestionCreate
from api.services import analytics as analytics_service
from api.services import applications as application_service
from api.services import positions as position_service
from core.middleware.authorization import Permission, require_permission
from core.security import CallerIdentity
from database.repository import HiringRepository

router = APIRouter(prefix="/positions", tags=["Positions"])


@router.get("", summary="List Positions", description="Positions of the caller, newest first.")
async def list_positions(
    caller: CallerIdentity = Depends(require_permission(Permission.POSITION_READ)),
    repo: HiringRepository = Depends(get_repository),
):
    return success_response(await position_service.list_positions(repo, caller))


@router.post("", summary="Create Position", status_code=status.HTTP_201_CREATED)
async def create_position(
    body: PositionCreate,
    caller: CallerIdentity = Depends(require_permission(Permission.POSITION_CREATE)),
    repo: HiringRepository = Depends(get_repository),
):
    result = await position_service.create_position(
        repo,
        caller,
        title=body.title,
        description=body.description,
        intro=body.intro,
        farewell=body.farewell,
    )
    return success_response(result, message="Position created successfully.")


@router.get("/{position_id}", summary="Get Position")
async def get_position(
    position_id: str = Path(..., description="Position ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.POSITION_READ)),
    repo: HiringRepository = Depends(get_repository),
):
    """Retrieve a position with its ordered questions."""
    return success_response(await position_service.get_position(repo, caller, position_id))


@router.put("/{position_id}", summary="Update Position")
async def update_position(
    body: PositionUpdate,
    position_id: str = Path(..., description="Position ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.POSITION_UPDATE)),
    repo: HiringRepository = Depends(get_repository),
):
    result = await position_service.update_position(
        repo, caller, position_id, body.model_dump(exclude_unset=True)
    )
    return success_response(result, message="Position updated successfully.")


@router.delete("/{position_id}", summary="Delete Position")
async def delete_position(
    position_id: str = Path(..., description="Position ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.POSITION_DELETE)),
    repo: HiringRepository = Depends(get_repository),
):
    """Delete a position together with its questions, applications and answers."""
    await position_service.delete_position(repo, caller, position_id)
    return success_response({"id": position_id}, message="Position deleted successfully.")


# ==================== Questions ===================== #

@router.get("/{position_id}/questions", summary="List Questions")
async def list_questions(
    position_id: str = Path(..., description="Position ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.QUESTION_MANAGE)),
    repo: HiringRepository = Depends(get_repository),
):
    return success_response(await position_service.list_questions(repo, caller, position_id))


@router.post("/{position_id}/questions", summary="Add Question", status_code=status.HTTP_201_CREATED)
async def create_question(
    body: QuestionCreate,
    position_id: str = Path(..., description="Position ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.QUESTION_MANAGE)),
    repo: HiringRepository = Depends(get_repository),
):
    """Append a question; it takes the next order number of the position."""
    result = await position_service.create_question(
        repo,
        caller,
        position_id,
        text=body.text,
        question_type=body.type,
        options=body.options,
        weight=body.weight,
    )
    return success_response(result, message="Question created successfully.")


# ==================== Applications ===================== #

@router.get("/{position_id}/applications", summary="List Position Applications")
async def list_position_applications(
    position_id: str = Path(..., description="Position ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.POSITION_READ)),
    repo: HiringRepository = Depends(get_repository),
):
    """Applications received by a position, newest first."""
    result = await application_service.list_position_applications(repo, caller, position_id)
    return success_response(result)


@router.get("/{position_id}/analytics", summary="Position Analytics")
async def position_analytics(
    position_id: str = Path(..., description="Position ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.ANALYTICS_VIEW)),
    repo: HiringRepository = Depends(get_repository),
):
    result = await analytics_service.get_position_analytics(repo, caller, position_id)
    return success_response(result)
