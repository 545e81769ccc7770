"""Analytics service functions for a manager's application funnel."""

from datetime import datetime
from typing import Any, Dict, Optional

from core.config import settings
from core.evaluation import analytics
from core.exceptions import NotFoundError
from core.middleware.authorization import Permission, ProtectedResource, ensure_authorized
from core.security import CallerIdentity
from core.utils.datetime import isoformat
from database.repository import HiringRepository


async def get_status_summary(repo: HiringRepository, caller: CallerIdentity) -> Dict[str, int]:
    """Applications by candidate-side status."""
    applications = await repo.list_application_snapshots(caller.user_id)
    return analytics.status_summary(applications)


async def get_average_completion_time(repo: HiringRepository, caller: CallerIdentity) -> Dict[str, Any]:
    """Mean start-to-completion time of completed applications."""
    applications = await repo.list_application_snapshots(caller.user_id)
    return analytics.average_completion_time(applications)


async def get_applications_by_position(repo: HiringRepository, caller: CallerIdentity) -> Dict[str, Any]:
    """Application counts for every position of the manager."""
    positions = await repo.list_position_snapshots(caller.user_id)
    applications = await repo.list_application_snapshots(caller.user_id)
    return analytics.applications_by_position(positions, applications)


async def get_result_distribution(repo: HiringRepository, caller: CallerIdentity) -> Dict[str, Any]:
    """Counts and percentages of PENDING, PASSED and FAILED results."""
    applications = await repo.list_application_snapshots(caller.user_id)
    return analytics.result_distribution(applications)


async def get_completion_ratios(repo: HiringRepository, caller: CallerIdentity) -> Dict[str, Any]:
    """Completed share of applications per position and overall."""
    positions = await repo.list_position_snapshots(caller.user_id)
    applications = await repo.list_application_snapshots(caller.user_id)
    return analytics.completion_ratios(positions, applications)


async def get_application_trends(
    repo: HiringRepository,
    caller: CallerIdentity,
    period: str = "daily",
    days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Application starts per day or week over the lookback window."""
    applications = await repo.list_application_snapshots(caller.user_id)
    return analytics.application_trends(
        applications,
        period=period,
        days_back=settings.trends_default_days if days is None else days,
        now=now,
    )


async def get_abandoned_applications(
    repo: HiringRepository,
    caller: CallerIdentity,
    hours: Optional[float] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """In-progress applications older than the abandonment threshold."""
    applications = await repo.list_application_snapshots(caller.user_id)
    return analytics.abandoned_applications(
        applications,
        hours_threshold=settings.abandoned_default_hours if hours is None else hours,
        now=now,
    )


async def get_position_analytics(
    repo: HiringRepository,
    caller: CallerIdentity,
    position_id: str,
) -> Dict[str, Any]:
    """
    Funnel counters and the application table for one position.

    Raises:
        NotFoundError: If the position does not exist
        AccessDeniedError: If the caller does not own the position
    """
    position = await repo.get_position(position_id)
    if not position:
        raise NotFoundError("Position", position_id)

    ensure_authorized(caller, Permission.ANALYTICS_VIEW, ProtectedResource.position(position))

    applications = await repo.list_application_snapshots(caller.user_id, position_id=position_id)

    return {
        "analytics": analytics.position_summary(applications),
        "applications": [
            {
                "id": app.id,
                "applicant": app.name,
                "email": app.email,
                "startedAt": isoformat(app.started_at),
                "completedAt": isoformat(app.completed_at),
                "progress": "Completed" if app.completed_at else "In Progress",
                "status": app.overall_result.value,
                "totalAnswers": app.answer_count,
            }
            for app in applications
        ],
        "position": {"id": position.id, "title": position.title},
    }
