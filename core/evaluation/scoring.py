"""Weighted scoring of individual answers."""

from typing import Any, Optional

from core.exceptions import InvalidInputError
from core.utils.validators import is_finite_number


DEFAULT_WEIGHT = 1.0


def validate_score(score: Any) -> float | int:
    """
    Validate a manager-assigned score.

    Args:
        score: Proposed score

    Returns:
        The score unchanged

    Raises:
        InvalidInputError: If the score is not a finite number >= 0
    """
    if not is_finite_number(score) or score < 0:
        raise InvalidInputError(
            "Score must be a non-negative number.",
            {"field": "score"},
        )
    return score


def validate_weight(weight: Any) -> float | int:
    """
    Validate a question weight for new questions.

    Raises:
        InvalidInputError: If the weight is not a finite number > 0
    """
    if not is_finite_number(weight) or weight <= 0:
        raise InvalidInputError(
            "Weight must be a positive number.",
            {"field": "weight"},
        )
    return weight


def weighted_score(score: float | int, weight: float | int = DEFAULT_WEIGHT) -> float | int:
    """
    Contribution of one scored answer to the application total.

    Args:
        score: Raw score given by the manager
        weight: Weight of the answered question

    Returns:
        ``score * weight``
    """
    return score * weight


def contribution(score: Optional[float | int], weight: float | int) -> float | int:
    """Weighted contribution where an unscored answer counts as 0."""
    if score is None:
        return 0
    return weighted_score(score, weight)
