"""Input validators shared by auth schemas."""

import re
from typing import NamedTuple


PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


class ValidationResult(NamedTuple):
    """Result of a validation check."""

    valid: bool
    message: str | None = None


def validate_password(password: str) -> ValidationResult:
    """Validate password strength.

    Requirements:
    - 8 to 128 characters
    - At least one letter
    - At least one digit

    Examples:
        >>> validate_password("secret123")
        ValidationResult(valid=True, message=None)
        >>> validate_password("short1")
        ValidationResult(valid=False, message='Password must be at least 8 characters')
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        return ValidationResult(False, "Password must be at least 8 characters")

    if len(password) > PASSWORD_MAX_LENGTH:
        return ValidationResult(False, "Password must be at most 128 characters")

    if not re.search(r"[A-Za-z]", password):
        return ValidationResult(False, "Password must contain at least one letter")

    if not re.search(r"\d", password):
        return ValidationResult(False, "Password must contain at least one digit")

    return ValidationResult(True)
