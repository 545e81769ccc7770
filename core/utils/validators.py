"""Validation utilities for interview content."""

import math
from numbers import Real
from typing import Any, Optional
from email_validator import validate_email as _validate_email, EmailNotValidError


def validate_email(email: str) -> tuple[bool, Optional[str]]:
    """
    Validate email address format.

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, normalized_email or error_message)
    """
    try:
        validation = _validate_email(email, check_deliverability=False)
        return True, validation.normalized
    except EmailNotValidError as e:
        return False, str(e)


def validate_required_text(value: Any) -> tuple[bool, Optional[str]]:
    """
    Validate that a value is a non-blank string.

    Args:
        value: Value to validate

    Returns:
        Tuple of (is_valid, stripped_text or None)
    """
    if not isinstance(value, str) or not value.strip():
        return False, None
    return True, value.strip()


def validate_question_options(
    question_type: str,
    options: Optional[list[Any]],
) -> tuple[bool, Optional[str]]:
    """
    Validate the options of a question against its type.

    TEXT questions carry no options. MULTIPLE_CHOICE questions need at
    least two non-empty string options.

    Args:
        question_type: "TEXT" or "MULTIPLE_CHOICE"
        options: Proposed options

    Returns:
        Tuple of (is_valid, error_message or None)
    """
    if question_type == "TEXT":
        if options:
            return False, "Text questions cannot have options."
        return True, None

    if question_type != "MULTIPLE_CHOICE":
        return False, "Question type must be TEXT or MULTIPLE_CHOICE."

    if not isinstance(options, list) or len(options) < 2:
        return False, "Multiple choice questions require at least 2 options."

    if not all(isinstance(option, str) and option.strip() for option in options):
        return False, "All options must be non-empty strings."

    return True, None


def is_finite_number(value: Any) -> bool:
    """Check for a real, finite number that is not a bool."""
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value)
