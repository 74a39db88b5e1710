"""Argument error taxonomy shared by contexts, programs and classifiers.

Every error carries the name of the offending parameter so callers can
react to a specific argument without parsing messages.
"""

from typing import Optional

__all__ = [
    "ArgumentError",
    "ArgumentNullError",
    "ArgumentOutOfRangeError",
    "MUST_BE_POSITIVE",
    "MUST_BE_IN_OPEN_INTERVAL",
    "MUST_BE_IN_CLOSED_INTERVAL",
    "MUST_BE_GREATER_THAN",
    "MUST_BE_NOT_LESS_THAN",
    "check_not_none",
]

MUST_BE_POSITIVE = "must be positive"
MUST_BE_IN_OPEN_INTERVAL = "must be in open interval ({0}, {1})"
MUST_BE_IN_CLOSED_INTERVAL = "must be in closed interval [{0}, {1}]"
MUST_BE_GREATER_THAN = "must be greater than {0}"
MUST_BE_NOT_LESS_THAN = "must not be less than {0}"


class ArgumentError(ValueError):
    """Raised when an argument is invalid or inconsistent with others."""

    def __init__(self, message: str, param_name: Optional[str] = None):
        self.message = message
        self.param_name = param_name
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.param_name:
            return f"{self.message} (Parameter '{self.param_name}')"
        return self.message


class ArgumentNullError(ArgumentError, TypeError):
    """Raised when a required argument is None."""

    def __init__(self, param_name: str, message: str = "Value cannot be None"):
        super().__init__(message, param_name)


class ArgumentOutOfRangeError(ArgumentError):
    """Raised when a numeric argument falls outside its domain."""

    def __init__(self, param_name: str, message: str = MUST_BE_POSITIVE):
        super().__init__(f"Parameter {message}", param_name)


def check_not_none(value, param_name: str):
    """Return value, raising ArgumentNullError if it is None."""
    if value is None:
        raise ArgumentNullError(param_name)
    return value
