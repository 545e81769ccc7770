"""
Domain exceptions raised by the service layer.

Each exception carries a machine-readable ``code`` and the HTTP status the
error handlers translate it to. Services raise these and never build HTTP
responses themselves.
"""

from typing import Any, Optional


class HiringError(Exception):
    """Base class for all domain errors."""

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInputError(HiringError, ValueError):
    """Raised when input fails validation before any mutation."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(HiringError):
    """Raised when a referenced entity does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found."
        super().__init__(message, {"resource": resource, "id": resource_id})
        self.resource = resource
        self.resource_id = resource_id


class AccessDeniedError(HiringError, PermissionError):
    """Raised when the caller lacks the role or ownership for a resource."""

    code = "ACCESS_DENIED"
    status_code = 403


class ConflictError(HiringError):
    """Raised on duplicates, finalized evaluations and lost concurrent updates."""

    code = "CONFLICT"
    status_code = 409


class EvaluationIncompleteError(HiringError):
    """Raised when finalize is attempted while answers are still unscored."""

    code = "EVALUATION_INCOMPLETE"
    status_code = 400

    def __init__(self, total_answers: int, scored_answers: int):
        unscored = total_answers - scored_answers
        super().__init__(
            f"Cannot finalize evaluation. {unscored} answers still need to be scored.",
            {
                "totalAnswers": total_answers,
                "scoredAnswers": scored_answers,
                "unscoredAnswers": unscored,
            },
        )
        self.total_answers = total_answers
        self.scored_answers = scored_answers
        self.unscored_answers = unscored
