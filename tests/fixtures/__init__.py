"""Test fixtures for the Cross-Entropy research package."""

from .sample_data import (
    SAMPLE_CONFIGS,
    create_categorical_data,
    create_noisy_categorical_data,
    get_sample_config,
)

__all__ = [
    "create_categorical_data",
    "create_noisy_categorical_data",
    "get_sample_config",
    "SAMPLE_CONFIGS",
]
