"""Core framework components for the ce_research package."""

from .errors import ArgumentError, ArgumentNullError, ArgumentOutOfRangeError
from .schema import ConfigValidationError, load_config, validate_config

__all__ = [
    "ArgumentError",
    "ArgumentNullError",
    "ArgumentOutOfRangeError",
    "ConfigValidationError",
    "load_config",
    "validate_config",
]
