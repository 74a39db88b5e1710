"""
Sample data fixtures for testing.

This module provides categorical data sets and run configurations that
can be used across multiple test files for consistent testing.
"""

import copy

import numpy as np
import pandas as pd


def create_categorical_data(rows=40, seed=42):
    """
    Create a categorical data set whose label is determined by one feature.

    Args:
        rows (int): Number of rows to generate
        seed (int): Random seed for reproducible data

    Returns:
        pd.DataFrame: Columns "color" (codes 0, 1), "size" (codes 0, 1, 2)
        and "label", equal to the color code
    """
    rng = np.random.default_rng(seed)

    data = pd.DataFrame(
        {
            "color": np.tile([0.0, 1.0], rows // 2 + 1)[:rows],
            "size": rng.integers(0, 3, size=rows).astype(float),
        }
    )
    data["label"] = data["color"]

    return data


def create_noisy_categorical_data(rows=200, noise=0.1, seed=42):
    """
    Create a categorical data set whose label depends on two features.

    The label is 1 when color is 1 and size is not 0, and is flipped on
    a ``noise`` share of the rows.

    Returns:
        pd.DataFrame: Columns "color", "size" and "label"
    """
    rng = np.random.default_rng(seed)

    color = rng.integers(0, 2, size=rows).astype(float)
    size = rng.integers(0, 3, size=rows).astype(float)
    label = ((color == 1.0) & (size != 0.0)).astype(float)

    flipped = rng.random(rows) < noise
    label[flipped] = 1.0 - label[flipped]

    return pd.DataFrame({"color": color, "size": size, "label": label})


# Sample run configurations for testing
SAMPLE_CONFIGS = {
    "continuous": {
        "version": "1.0",
        "name": "Sphere",
        "context": {
            "type": "continuous",
            "objective": "ce_research.optimization.benchmarks:sphere",
            "optimization_goal": "minimization",
            "minimum_number_of_iterations": 3,
            "maximum_number_of_iterations": 200,
            "initial_arguments": [3.0, -2.0],
            "mean_smoothing_coefficient": 0.8,
            "standard_deviation_smoothing_coefficient": 0.7,
            "standard_deviation_smoothing_exponent": 6,
            "initial_standard_deviation": 10.0,
            "termination_tolerance": 0.01,
        },
        "optimizer": {
            "rarity": 0.1,
            "sample_size": 200,
            "random_seed": 42,
        },
    },
    "combination": {
        "name": "Feature selection",
        "context": {
            "type": "combination",
            "objective": "tests.fixtures.contexts:feature_selection_objective",
            "optimization_goal": "minimization",
            "minimum_number_of_iterations": 3,
            "maximum_number_of_iterations": 1000,
            "state_dimension": 7,
            "combination_dimension": 2,
            "probability_smoothing_coefficient": 0.8,
        },
        "optimizer": {
            "rarity": 0.01,
            "sample_size": 300,
            "random_seed": 1,
        },
    },
    "partition": {
        "name": "Item partition",
        "context": {
            "type": "partition",
            "objective": "tests.fixtures.contexts:partition_objective",
            "optimization_goal": "minimization",
            "minimum_number_of_iterations": 3,
            "maximum_number_of_iterations": 1000,
            "state_dimension": 12,
            "partition_dimension": 3,
            "probability_smoothing_coefficient": 0.8,
        },
        "optimizer": {
            "rarity": 0.01,
            "sample_size": 2000,
            "random_seed": 1,
        },
    },
}


def get_sample_config(name):
    """Return a deep copy of a sample configuration, safe to modify."""
    return copy.deepcopy(SAMPLE_CONFIGS[name])
