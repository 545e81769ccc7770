"""
Application endpoints.

Candidates start an interview, answer its questions and complete it;
managers read the details of applications under their positions.
"""

from fastapi import APIRouter, Depends, Path, Response, status

from api.dependencies import get_notifier, get_repository
from api.schemas.applications import AnswerCreate, AnswerUpdate, ApplicationStart
from api.schemas.common import success_response
from api.services import applications as application_service
from api.services.notifications import NotificationService
from core.middleware.authorization import Permission, require_permission
from core.security import CallerIdentity
from database.repository import HiringRepository

router = APIRouter(tags=["Applications"])


@router.post(
    "/applications",
    summary="Start Application",
    description="Start an interview for a position. Public; repeating it for the same email returns the existing application.",
    status_code=status.HTTP_201_CREATED,
)
async def start_application(
    body: ApplicationStart,
    response: Response,
    repo: HiringRepository = Depends(get_repository),
    notifier: NotificationService = Depends(get_notifier),
):
    result = await application_service.start_application(
        repo,
        position_id=body.position_id,
        name=body.name,
        email=body.email,
        resume_url=body.resume_url,
        notifier=notifier,
    )
    if not result["created"]:
        response.status_code = status.HTTP_200_OK
        return success_response(result, message="Existing application resumed.")
    return success_response(result, message="Application started successfully.")


@router.get("/applications/{application_id}/questions", summary="List Application Questions")
async def list_application_questions(
    application_id: str = Path(..., description="Application ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.APPLICATION_READ)),
    repo: HiringRepository = Depends(get_repository),
):
    """Questions of the interview with the caller's answers so far."""
    result = await application_service.list_application_questions(repo, caller, application_id)
    return success_response(result)


@router.post(
    "/applications/{application_id}/answers",
    summary="Submit Answer",
    status_code=status.HTTP_201_CREATED,
)
async def submit_answer(
    body: AnswerCreate,
    application_id: str = Path(..., description="Application ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.APPLICATION_SUBMIT)),
    repo: HiringRepository = Depends(get_repository),
):
    result = await application_service.submit_answer(
        repo,
        caller,
        application_id,
        question_id=body.question_id,
        response=body.response,
        started_at=body.started_at,
        ended_at=body.ended_at,
    )
    return success_response(result, message="Answer submitted successfully.")


@router.get("/applications/{application_id}/answers", summary="List Answers")
async def list_answers(
    application_id: str = Path(..., description="Application ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.APPLICATION_READ)),
    repo: HiringRepository = Depends(get_repository),
):
    return success_response(await application_service.list_answers(repo, caller, application_id))


@router.post("/applications/{application_id}/complete", summary="Complete Application")
async def complete_application(
    application_id: str = Path(..., description="Application ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.APPLICATION_SUBMIT)),
    repo: HiringRepository = Depends(get_repository),
    notifier: NotificationService = Depends(get_notifier),
):
    """Mark the interview completed; calling it again changes nothing."""
    result = await application_service.complete_application(repo, caller, application_id, notifier=notifier)
    if result.pop("changed"):
        return success_response(result, message="Application completed successfully.")
    return success_response(result, message="Application already completed.")


@router.get("/applications/{application_id}/details", summary="Get Application Details")
async def get_application_details(
    application_id: str = Path(..., description="Application ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.EVALUATION_READ)),
    repo: HiringRepository = Depends(get_repository),
):
    result = await application_service.get_application_details(repo, caller, application_id)
    return success_response(result)


@router.put("/answers/{answer_id}", summary="Update Answer")
async def update_answer(
    body: AnswerUpdate,
    answer_id: str = Path(..., description="Answer ID"),
    caller: CallerIdentity = Depends(require_permission(Permission.ANSWER_UPDATE)),
    repo: HiringRepository = Depends(get_repository),
):
    result = await application_service.update_answer(repo, caller, answer_id, body.response)
    return success_response(result, message="Answer updated successfully.")
