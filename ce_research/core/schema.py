"""JSON schema validation and YAML configuration loader for Cross-Entropy runs.

This module provides:
- JSON schema definition for validating YAML run configurations
- Configuration loading with environment variable substitution
- Validation error reporting with line numbers
- Resolution of objective functions given as ``module:function`` paths
"""

import importlib
import os
import re
from pathlib import Path
from typing import Any, Callable, Optional, Union

import yaml
from jsonschema import Draft7Validator

_OPEN_UNIT_INTERVAL = {"type": "number", "exclusiveMinimum": 0, "exclusiveMaximum": 1}
_POSITIVE_INTEGER = {"type": "integer", "minimum": 1}

# JSON Schema for Cross-Entropy run configuration files
CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Cross-Entropy Optimization Run Configuration",
    "type": "object",
    "additionalProperties": False,
    "required": ["name", "context", "optimizer"],
    "properties": {
        "version": {
            "type": "string",
            "description": "Schema version for compatibility checking",
            "pattern": r"^\d+\.\d+(\.\d+)?$",
            "default": "1.0",
        },
        "name": {
            "type": "string",
            "description": "Human-readable run name",
            "minLength": 1,
            "maxLength": 100,
        },
        "trace_execution": {
            "type": "boolean",
            "description": "Log a trace of every iteration",
            "default": False,
        },
        "context": {
            "type": "object",
            "description": "Optimization problem",
            "required": [
                "type",
                "objective",
                "optimization_goal",
                "minimum_number_of_iterations",
                "maximum_number_of_iterations",
            ],
            "properties": {
                "type": {
                    "type": "string",
                    "enum": ["combination", "partition", "continuous"],
                },
                "objective": {
                    "type": "string",
                    "description": "Objective function as module:function",
                    "pattern": r"^[A-Za-z_][A-Za-z0-9_.]*:[A-Za-z_][A-Za-z0-9_]*$",
                },
                "optimization_goal": {
                    "type": "string",
                    "enum": ["minimization", "maximization"],
                },
                "minimum_number_of_iterations": _POSITIVE_INTEGER,
                "maximum_number_of_iterations": _POSITIVE_INTEGER,
                "state_dimension": _POSITIVE_INTEGER,
                "combination_dimension": _POSITIVE_INTEGER,
                "partition_dimension": {"type": "integer", "minimum": 2},
                "probability_smoothing_coefficient": _OPEN_UNIT_INTERVAL,
                "initial_arguments": {
                    "type": "array",
                    "minItems": 1,
                    "items": {"type": "number"},
                },
                "mean_smoothing_coefficient": _OPEN_UNIT_INTERVAL,
                "standard_deviation_smoothing_coefficient": _OPEN_UNIT_INTERVAL,
                "standard_deviation_smoothing_exponent": _POSITIVE_INTEGER,
                "initial_standard_deviation": {"type": "number", "exclusiveMinimum": 0},
                "termination_tolerance": {"type": "number", "exclusiveMinimum": 0},
            },
            "allOf": [
                {
                    "if": {"properties": {"type": {"const": "combination"}}},
                    "then": {
                        "required": [
                            "state_dimension",
                            "combination_dimension",
                            "probability_smoothing_coefficient",
                        ]
                    },
                },
                {
                    "if": {"properties": {"type": {"const": "partition"}}},
                    "then": {
                        "required": [
                            "state_dimension",
                            "partition_dimension",
                            "probability_smoothing_coefficient",
                        ]
                    },
                },
                {
                    "if": {"properties": {"type": {"const": "continuous"}}},
                    "then": {
                        "required": [
                            "initial_arguments",
                            "mean_smoothing_coefficient",
                            "standard_deviation_smoothing_coefficient",
                            "standard_deviation_smoothing_exponent",
                            "initial_standard_deviation",
                            "termination_tolerance",
                        ]
                    },
                },
            ],
        },
        "optimizer": {
            "type": "object",
            "description": "Cross-Entropy program settings",
            "additionalProperties": False,
            "required": ["rarity", "sample_size"],
            "properties": {
                "rarity": _OPEN_UNIT_INTERVAL,
                "sample_size": _POSITIVE_INTEGER,
                "random_seed": {"type": ["integer", "null"], "minimum": 0},
                "performance_evaluation_parallelism": {
                    "type": "integer",
                    "description": "Worker count, -1 for unbounded",
                    "minimum": -1,
                    "not": {"const": 0},
                    "default": 1,
                },
                "sample_generation_parallelism": {
                    "type": "integer",
                    "description": "Worker count, -1 for unbounded",
                    "minimum": -1,
                    "not": {"const": 0},
                    "default": 1,
                },
            },
        },
    },
}


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        yaml_path: Optional[str] = None,
    ):
        self.message = message
        self.line_number = line_number
        self.yaml_path = yaml_path
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with line number and path if available."""
        parts = []
        if self.yaml_path:
            parts.append(f"File: {self.yaml_path}")
        if self.line_number is not None:
            parts.append(f"Line {self.line_number}")
        if parts:
            return f"{' | '.join(parts)}: {self.message}"
        return self.message


def _substitute_env_vars(content: str) -> str:
    """Substitute environment variables in ${VAR} format.

    Raises:
        ConfigValidationError: If a referenced environment variable is missing
    """

    def replace_var(match):
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigValidationError(
                f"Environment variable '${{{var_name}}}' is not set"
            )
        return value

    return re.sub(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}", replace_var, content)


def _schema_errors(config: dict[str, Any]) -> list[str]:
    validator = Draft7Validator(CONFIG_SCHEMA)
    errors = sorted(
        validator.iter_errors(config),
        key=lambda e: [str(p) for p in e.absolute_path],
    )

    messages = []
    for error in errors:
        path = (
            " -> ".join(str(p) for p in error.absolute_path)
            if error.absolute_path
            else "root"
        )
        messages.append(f"  {path}: {error.message}")
    return messages


def _validate_business_logic(config: dict[str, Any]) -> None:
    """Validate constraints across fields beyond the JSON schema.

    Raises:
        ConfigValidationError: If a cross-field constraint is violated
    """
    context = config["context"]

    if context["maximum_number_of_iterations"] < context["minimum_number_of_iterations"]:
        raise ConfigValidationError(
            "context.maximum_number_of_iterations must not be less than "
            "context.minimum_number_of_iterations"
        )

    dimension_key = {
        "combination": "combination_dimension",
        "partition": "partition_dimension",
    }.get(context["type"])
    if dimension_key and context[dimension_key] >= context["state_dimension"]:
        raise ConfigValidationError(
            f"context.{dimension_key} must be less than context.state_dimension"
        )


def validate_config(config: dict[str, Any]) -> None:
    """Validate an already-loaded configuration dictionary.

    Raises:
        ConfigValidationError: If validation fails
    """
    messages = _schema_errors(config)
    if messages:
        raise ConfigValidationError(
            "Schema validation failed:\n" + "\n".join(messages)
        )

    _validate_business_logic(config)


def load_config(config_path: Union[str, Path]) -> dict[str, Any]:
    """Load and validate a YAML run configuration.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated configuration dictionary with defaults applied

    Raises:
        ConfigValidationError: If the file cannot be parsed or validation fails
        FileNotFoundError: If the configuration file doesn't exist
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        content = f.read()

    try:
        content = _substitute_env_vars(content)
    except ConfigValidationError as e:
        raise ConfigValidationError(e.message, yaml_path=str(config_path)) from e

    try:
        config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        raise ConfigValidationError(
            f"YAML parsing error: {e}",
            line_number=mark.line + 1 if mark else None,
            yaml_path=str(config_path),
        ) from e

    if config is None:
        raise ConfigValidationError(
            "Configuration file is empty", yaml_path=str(config_path)
        )

    if not isinstance(config, dict):
        raise ConfigValidationError(
            "Configuration must be a YAML object/dictionary",
            yaml_path=str(config_path),
        )

    try:
        validate_config(config)
    except ConfigValidationError as e:
        raise ConfigValidationError(e.message, yaml_path=str(config_path)) from e

    return _apply_defaults(config)


def _apply_defaults(config: dict[str, Any]) -> dict[str, Any]:
    config.setdefault("version", get_schema_version())
    config.setdefault("trace_execution", False)

    optimizer = config["optimizer"]
    optimizer.setdefault("random_seed", None)
    optimizer.setdefault("performance_evaluation_parallelism", 1)
    optimizer.setdefault("sample_generation_parallelism", 1)
    return config


def resolve_objective(path: str) -> Callable[..., float]:
    """Import the objective function named by a ``module:function`` path.

    Raises:
        ConfigValidationError: If the module or function cannot be found
    """
    module_name, _, function_name = path.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigValidationError(f"Cannot import objective module '{module_name}': {e}") from e

    function = getattr(module, function_name, None)
    if not callable(function):
        raise ConfigValidationError(
            f"Objective '{function_name}' not found in module '{module_name}'"
        )
    return function


def get_schema_version() -> str:
    """Get the current schema version."""
    return CONFIG_SCHEMA["properties"]["version"]["default"]


def get_schema() -> dict[str, Any]:
    """Get a copy of the current JSON schema."""
    return CONFIG_SCHEMA.copy()
