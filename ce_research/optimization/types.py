"""
Type definitions and data classes for the Cross-Entropy framework.

This module provides the enumerations, execution options and result
containers shared by contexts, optimizers and estimators.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from ce_research.core.errors import ArgumentOutOfRangeError

__all__ = [
    "OptimizationGoal",
    "EliteSampleDefinition",
    "RareEventPerformanceBoundedness",
    "ParallelOptions",
    "CrossEntropyResults",
    "SystemPerformanceOptimizationResults",
    "RareEventProbabilityEstimationResults",
]


class OptimizationGoal(Enum):
    """Direction in which a performance function is optimized."""

    MINIMIZATION = "minimization"
    MAXIMIZATION = "maximization"


class EliteSampleDefinition(Enum):
    """Tail of the performance distribution whose points are elite."""

    HIGHER_THAN_LEVEL = "higher_than_level"
    LOWER_THAN_LEVEL = "lower_than_level"


class RareEventPerformanceBoundedness(Enum):
    """
    Side on which a rare event bounds the performance.

    LOWER means the event is {performance >= threshold}, UPPER means
    the event is {performance <= threshold}.
    """

    LOWER = "lower"
    UPPER = "upper"


@dataclass
class ParallelOptions:
    """
    Degree of parallelism for sample generation or performance evaluation.

    A value of 1 runs sequentially, -1 lets the executor choose the
    number of workers.
    """

    max_degree_of_parallelism: int = 1

    def __post_init__(self) -> None:
        if self.max_degree_of_parallelism == 0 or self.max_degree_of_parallelism < -1:
            raise ArgumentOutOfRangeError(
                "max_degree_of_parallelism",
                "must be -1 or positive",
            )

    @property
    def is_sequential(self) -> bool:
        return self.max_degree_of_parallelism == 1

    @property
    def max_workers(self):
        """Worker count for a concurrent.futures executor (None if unbounded)."""
        if self.max_degree_of_parallelism == -1:
            return None
        return self.max_degree_of_parallelism


@dataclass(frozen=True)
class CrossEntropyResults:
    """
    Histories produced by one execution of the Cross-Entropy loop.

    ``parameters`` starts with the initial parameter, so it always holds
    one more entry than ``levels``.
    """

    levels: List[float]
    parameters: List[np.ndarray]

    @property
    def number_of_iterations(self) -> int:
        return len(self.levels)

    @property
    def last_parameter(self) -> np.ndarray:
        return self.parameters[-1]


@dataclass(frozen=True)
class SystemPerformanceOptimizationResults:
    """
    Outcome of a system performance optimization.

    Contains the optimal state and its performance, the parameter of
    the sampling distribution at termination and the execution history.
    """

    optimal_state: np.ndarray
    optimal_performance: float
    optimal_parameter: np.ndarray
    has_converged: bool
    levels: List[float] = field(default_factory=list)
    parameters: List[np.ndarray] = field(default_factory=list)

    @property
    def number_of_iterations(self) -> int:
        return len(self.levels)

    def history_frame(self) -> pd.DataFrame:
        """Level history as a DataFrame indexed by iteration."""
        return pd.DataFrame(
            {"level": self.levels},
            index=pd.RangeIndex(1, len(self.levels) + 1, name="iteration"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "optimal_state": np.asarray(self.optimal_state).tolist(),
            "optimal_performance": float(self.optimal_performance),
            "optimal_parameter": np.asarray(self.optimal_parameter).tolist(),
            "has_converged": bool(self.has_converged),
            "number_of_iterations": self.number_of_iterations,
            "levels": [float(level) for level in self.levels],
        }


@dataclass(frozen=True)
class RareEventProbabilityEstimationResults:
    """Outcome of a rare event probability estimation."""

    rare_event_probability: float
    optimal_parameter: np.ndarray
    has_converged: bool
    levels: List[float] = field(default_factory=list)
    parameters: List[np.ndarray] = field(default_factory=list)

    @property
    def number_of_iterations(self) -> int:
        return len(self.levels)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rare_event_probability": float(self.rare_event_probability),
            "optimal_parameter": np.asarray(self.optimal_parameter).tolist(),
            "has_converged": bool(self.has_converged),
            "number_of_iterations": self.number_of_iterations,
            "levels": [float(level) for level in self.levels],
        }
