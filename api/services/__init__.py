"""
API Services Layer.

Service functions take the injected ``HiringRepository`` and the caller,
enforce ownership, and return JSON-ready dictionaries.
"""

from api.services.positions import (
    create_position,
    list_positions,
    get_position,
    update_position,
    delete_position,
    get_public_interview,
    create_question,
    list_questions,
    update_question,
    delete_question,
)

from api.services.applications import (
    start_application,
    list_application_questions,
    submit_answer,
    update_answer,
    list_answers,
    complete_application,
    list_position_applications,
    get_application_details,
)

from api.services.evaluations import (
    score_answer,
    finalize_application,
    get_application_evaluation,
)

from api.services.analytics import (
    get_status_summary,
    get_average_completion_time,
    get_applications_by_position,
    get_result_distribution,
    get_completion_ratios,
    get_application_trends,
    get_abandoned_applications,
    get_position_analytics,
)

from api.services.notifications import NotificationService

__all__ = [
    # Positions and questions
    "create_position",
    "list_positions",
    "get_position",
    "update_position",
    "delete_position",
    "get_public_interview",
    "create_question",
    "list_questions",
    "update_question",
    "delete_question",
    # Applications
    "start_application",
    "list_application_questions",
    "submit_answer",
    "update_answer",
    "list_answers",
    "complete_application",
    "list_position_applications",
    "get_application_details",
    # Evaluations
    "score_answer",
    "finalize_application",
    "get_application_evaluation",
    # Analytics
    "get_status_summary",
    "get_average_completion_time",
    "get_applications_by_position",
    "get_result_distribution",
    "get_completion_ratios",
    "get_application_trends",
    "get_abandoned_applications",
    "get_position_analytics",
    # Notifications
    "NotificationService",
]
