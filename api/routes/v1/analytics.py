"""
Analytics endpoints.

Funnel statistics over the applications of the calling manager's
positions. Every endpoint is read-only and scoped to the caller.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_repository
from api.schemas.common import success_response
from api.services import analytics as analytics_service
from core.middleware.authorization import Permission, require_permission
from core.security import CallerIdentity
from database.repository import HiringRepository

router = APIRouter(prefix="/analytics/applications", tags=["Analytics"])

require_analytics = require_permission(Permission.ANALYTICS_VIEW)


@router.get("/status-summary", summary="Status Summary")
async def status_summary(
    caller: CallerIdentity = Depends(require_analytics),
    repo: HiringRepository = Depends(get_repository),
):
    """Applications by in_progress / completed status."""
    return success_response(await analytics_service.get_status_summary(repo, caller))


@router.get("/avg-completion-time", summary="Average Completion Time")
async def average_completion_time(
    caller: CallerIdentity = Depends(require_analytics),
    repo: HiringRepository = Depends(get_repository),
):
    return success_response(await analytics_service.get_average_completion_time(repo, caller))


@router.get("/by-position", summary="Applications By Position")
async def applications_by_position(
    caller: CallerIdentity = Depends(require_analytics),
    repo: HiringRepository = Depends(get_repository),
):
    return success_response(await analytics_service.get_applications_by_position(repo, caller))


@router.get("/result-distribution", summary="Result Distribution")
async def result_distribution(
    caller: CallerIdentity = Depends(require_analytics),
    repo: HiringRepository = Depends(get_repository),
):
    return success_response(await analytics_service.get_result_distribution(repo, caller))


@router.get("/completion-ratio", summary="Completion Ratio")
async def completion_ratio(
    caller: CallerIdentity = Depends(require_analytics),
    repo: HiringRepository = Depends(get_repository),
):
    return success_response(await analytics_service.get_completion_ratios(repo, caller))


@router.get("/trends", summary="Application Trends")
async def application_trends(
    period: Literal["daily", "weekly"] = Query("daily", description="Bucket size"),
    days: Optional[int] = Query(None, ge=1, description="Lookback window in days"),
    caller: CallerIdentity = Depends(require_analytics),
    repo: HiringRepository = Depends(get_repository),
):
    """Application starts per day or per Sunday-started week."""
    result = await analytics_service.get_application_trends(repo, caller, period=period, days=days)
    return success_response(result)


@router.get("/abandoned", summary="Abandoned Applications")
async def abandoned_applications(
    hours: Optional[float] = Query(None, gt=0, description="Inactivity threshold in hours"),
    caller: CallerIdentity = Depends(require_analytics),
    repo: HiringRepository = Depends(get_repository),
):
    """In-progress applications started longer ago than the threshold."""
    result = await analytics_service.get_abandoned_applications(repo, caller, hours=hours)
    return success_response(result)
