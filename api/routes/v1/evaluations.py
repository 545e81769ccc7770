"""
Evaluation endpoints.

Managers score answers, read the running evaluation of an application and
finalize it to PASSED or FAILED.
"""

from fastapi import APIRouter, Depends, Path

from api.dependencies import get_repository
from api.schemas.applications import ScoreRequest
from api.schemas.common import success_response
from api.services import evaluations as evaluation_service
from core.middleware.authorization import Permission, require_permission
from core.security import CallerIdentity
from database.repository import HiringRepository

router = APIRouter(prefix="/evaluations", tags=["Evaluations"])


@router.post(
    "/answers/{answer_id}/score",
    summary="Score Answer",
    description="Record a score for one answer. Requires answer:score permission.",
)
async def score_answer(
    body: ScoreRequest,
    answer_id: str = Path(..., description="Answer ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.ANSWER_SCORE)),
    repo: HiringRepository = Depends(get_repository),
):
    """Score an answer; the first score moves the application to IN_REVIEW."""
    result = await evaluation_service.score_answer(repo, caller, answer_id, body.score)
    return success_response(result, message="Answer scored successfully.")


@router.post(
    "/applications/{application_id}/finalize",
    summary="Finalize Evaluation",
    description="Decide PASSED or FAILED once every answer is scored. Requires evaluation:finalize permission.",
)
async def finalize_application(
    application_id: str = Path(..., description="Application ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.EVALUATION_FINALIZE)),
    repo: HiringRepository = Depends(get_repository),
):
    result = await evaluation_service.finalize_application(repo, caller, application_id)
    changed = result.pop("changed")
    status = result["application"]["evaluationStatus"]
    if changed:
        message = f"Application evaluation finalized. Status: {status}"
    else:
        message = f"Application evaluation already finalized. Status: {status}"
    return success_response(result, message=message)


@router.get(
    "/applications/{application_id}",
    summary="Get Evaluation",
    description="Running totals and progress of an application's evaluation. Requires evaluation:read permission.",
)
async def get_application_evaluation(
    application_id: str = Path(..., description="Application ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.EVALUATION_READ)),
    repo: HiringRepository = Depends(get_repository),
):
    result = await evaluation_service.get_application_evaluation(repo, caller, application_id)
    return success_response(result)
