"""
Application funnel analytics.

Every function takes a snapshot of one manager's applications (and, where
needed, positions and a reference time) and returns a JSON-ready dict.
Nothing is cached; the same snapshot always yields the same result.

Percentages are rounded independently, so a distribution's percentages
are not forced to add up to 100.
"""

from collections import Counter
from datetime import datetime
from typing import Any, Iterable, Literal, Optional, Sequence

from core.evaluation.records import (
    ApplicationResult,
    ApplicationSnapshot,
    ApplicationStatus,
    PositionSnapshot,
)
from core.exceptions import InvalidInputError
from core.utils.datetime import (
    add_days,
    add_hours,
    ensure_utc,
    iso_date,
    isoformat,
    minutes_between,
    now as utc_now,
    start_of_week,
    whole_hours_between,
)
from core.utils.formatting import percentage, round_half_up, round_to_int


TrendPeriod = Literal["daily", "weekly"]
TREND_PERIODS = ("daily", "weekly")


def status_summary(applications: Iterable[ApplicationSnapshot]) -> dict[str, int]:
    """Count applications by candidate-side status."""
    counts = Counter(ApplicationStatus(app.status) for app in applications)
    in_progress = counts[ApplicationStatus.IN_PROGRESS]
    completed = counts[ApplicationStatus.COMPLETED]
    return {
        "in_progress": in_progress,
        "completed": completed,
        "total": in_progress + completed,
    }


def average_completion_time(applications: Iterable[ApplicationSnapshot]) -> dict[str, Any]:
    """
    Mean time from start to completion over completed applications.

    Returns zeros when no application has been completed.
    """
    durations = [
        minutes_between(app.started_at, app.completed_at)
        for app in applications
        if app.completed_at is not None
    ]

    if not durations:
        return {"averageMinutes": 0, "averageHours": 0, "completedCount": 0}

    average_minutes = sum(durations) / len(durations)
    return {
        "averageMinutes": round_half_up(average_minutes, 2),
        "averageHours": round_half_up(average_minutes / 60, 2),
        "completedCount": len(durations),
    }


def applications_by_position(
    positions: Sequence[PositionSnapshot],
    applications: Iterable[ApplicationSnapshot],
) -> dict[str, Any]:
    """Application count per position, including positions without any."""
    counts = Counter(app.position_id for app in applications)
    position_stats = [
        {
            "positionId": position.id,
            "positionTitle": position.title,
            "applicationCount": counts.get(position.id, 0),
        }
        for position in positions
    ]
    return {
        "positions": position_stats,
        "totalPositions": len(position_stats),
        "totalApplications": sum(stat["applicationCount"] for stat in position_stats),
    }


def result_distribution(applications: Iterable[ApplicationSnapshot]) -> dict[str, Any]:
    """Counts and independently rounded percentages per overall result."""
    counts = Counter(ApplicationResult(app.overall_result) for app in applications)
    total = sum(counts.values())

    return {
        "counts": {
            **{result.value: counts[result] for result in ApplicationResult},
            "total": total,
        },
        "percentages": {
            result.value: percentage(counts[result], total) for result in ApplicationResult
        },
    }


def _completion_stats(total: int, completed: int) -> dict[str, Any]:
    ratio = round_half_up(completed / total, 2) if total > 0 else 0
    return {
        "completionRatio": ratio,
        "completionPercentage": round_to_int(ratio * 100),
    }


def completion_ratios(
    positions: Sequence[PositionSnapshot],
    applications: Iterable[ApplicationSnapshot],
) -> dict[str, Any]:
    """
    Share of completed applications per position and overall.

    The overall ratio is computed from summed counts, not by averaging the
    per-position ratios.
    """
    totals: Counter = Counter()
    completed: Counter = Counter()
    in_progress: Counter = Counter()
    for app in applications:
        totals[app.position_id] += 1
        if ApplicationStatus(app.status) == ApplicationStatus.COMPLETED:
            completed[app.position_id] += 1
        else:
            in_progress[app.position_id] += 1

    position_ratios = []
    for position in positions:
        total = totals.get(position.id, 0)
        done = completed.get(position.id, 0)
        pending = in_progress.get(position.id, 0)
        position_ratios.append({
            "positionId": position.id,
            "positionTitle": position.title,
            "totalApplications": total,
            "completedApplications": done,
            "inProgressApplications": pending,
            **_completion_stats(total, done),
        })

    overall_total = sum(p["totalApplications"] for p in position_ratios)
    overall_completed = sum(p["completedApplications"] for p in position_ratios)
    overall_in_progress = sum(p["inProgressApplications"] for p in position_ratios)

    return {
        "positionRatios": position_ratios,
        "overallStats": {
            "totalApplications": overall_total,
            "totalCompleted": overall_completed,
            "totalInProgress": overall_in_progress,
            **_completion_stats(overall_total, overall_completed),
        },
    }


def trend_key(started_at: datetime, period: TrendPeriod) -> str:
    """Bucket key for a start time: its UTC day or the Sunday starting its week."""
    if period == "weekly":
        return start_of_week(started_at).isoformat()
    return iso_date(started_at)


def application_trends(
    applications: Iterable[ApplicationSnapshot],
    period: str = "daily",
    days_back: int = 30,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Application starts per day or per week over a lookback window.

    Args:
        applications: Manager's applications
        period: "daily" or "weekly" (weeks start on Sunday)
        days_back: Size of the lookback window in days
        now: Reference time (defaults to current UTC time)

    Raises:
        InvalidInputError: On an unknown period or a negative window
    """
    if period not in TREND_PERIODS:
        raise InvalidInputError(
            "Period must be 'daily' or 'weekly'.", {"field": "period"}
        )
    if days_back < 0:
        raise InvalidInputError(
            "Days must be a non-negative integer.", {"field": "days"}
        )

    end_date = ensure_utc(now) if now else utc_now()
    start_date = add_days(end_date, -days_back)

    buckets: Counter = Counter()
    for app in applications:
        started_at = ensure_utc(app.started_at)
        if start_date <= started_at <= end_date:
            buckets[trend_key(started_at, period)] += 1

    trends = [{"date": key, "count": count} for key, count in sorted(buckets.items())]
    return {
        "trends": trends,
        "period": period,
        "totalApplications": sum(buckets.values()),
        "dateRange": {
            "start": iso_date(start_date),
            "end": iso_date(end_date),
        },
    }


def abandoned_applications(
    applications: Iterable[ApplicationSnapshot],
    hours_threshold: float = 72,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    In-progress applications started longer ago than the threshold.

    Args:
        applications: Manager's applications
        hours_threshold: Age in hours after which an unfinished application counts as abandoned
        now: Reference time (defaults to current UTC time)

    Raises:
        InvalidInputError: On a negative threshold
    """
    if hours_threshold < 0:
        raise InvalidInputError(
            "Hours must be a non-negative number.", {"field": "hours"}
        )

    reference = ensure_utc(now) if now else utc_now()
    threshold_date = add_hours(reference, -hours_threshold)

    abandoned = [
        app
        for app in applications
        if ApplicationStatus(app.status) == ApplicationStatus.IN_PROGRESS
        and app.completed_at is None
        and ensure_utc(app.started_at) < threshold_date
    ]
    abandoned.sort(key=lambda app: ensure_utc(app.started_at), reverse=True)

    return {
        "abandonedApplications": [
            {
                "id": app.id,
                "applicantName": app.name,
                "applicantEmail": app.email,
                "positionTitle": app.position_title,
                "startedAt": isoformat(app.started_at),
                "hoursElapsed": whole_hours_between(app.started_at, reference),
            }
            for app in abandoned
        ],
        "count": len(abandoned),
        "thresholdHours": hours_threshold,
        "thresholdDate": isoformat(threshold_date),
    }


def position_summary(applications: Sequence[ApplicationSnapshot]) -> dict[str, Any]:
    """
    Funnel counters for a single position's applications.

    Progress is judged by ``completed_at``; the average completion time is
    reported in whole minutes.
    """
    completed = [app for app in applications if app.completed_at is not None]
    results = Counter(ApplicationResult(app.overall_result) for app in applications)

    if completed:
        total_minutes = sum(minutes_between(app.started_at, app.completed_at) for app in completed)
        average_minutes = round_to_int(total_minutes / len(completed))
    else:
        average_minutes = 0

    return {
        "inProgressApps": len(applications) - len(completed),
        "completedApps": len(completed),
        "passedApps": results[ApplicationResult.PASSED],
        "failedApps": results[ApplicationResult.FAILED],
        "pendingApps": results[ApplicationResult.PENDING],
        "totalApps": len(applications),
        "averageCompletionMinutes": average_minutes,
    }
