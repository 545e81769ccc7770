"""Public interview endpoint used by candidates before they sign in."""

from fastapi import APIRouter, Depends, Path

from api.dependencies import get_repository
from api.schemas.common import success_response
from api.services import positions as position_service
from database.repository import HiringRepository

router = APIRouter(prefix="/interviews", tags=["Interviews"])


@router.get("/{position_id}", summary="Get Interview")
async def get_interview(
    position_id: str = Path(..., description="Position ID"),
    repo: HiringRepository = Depends(get_repository),
):
    """Title, description, intro, farewell and ordered questions of a position."""
    return success_response(await position_service.get_public_interview(repo, position_id))
