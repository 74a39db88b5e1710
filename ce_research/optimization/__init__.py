"""
Cross-Entropy optimization framework.

This module provides the Cross-Entropy method for optimizing system
performances and for estimating the probabilities of rare events.

Key Features:
- Abstract contexts describing sampling distributions, level updates and
  stopping rules
- System performance optimizer and rare event probability estimator
  sharing the same iterative engine
- Optional parallel sample generation and performance evaluation
- Combination, partition, continuous and categorical entailment ensemble
  contexts

Example Usage:
    >>> import numpy as np
    >>> from ce_research.optimization import (
    ...     ContinuousOptimizationContext,
    ...     OptimizationGoal,
    ...     SystemPerformanceOptimizer,
    ... )
    >>>
    >>> context = ContinuousOptimizationContext(
    ...     objective_function=lambda x: float(np.sum((x - 3.0) ** 2)),
    ...     initial_arguments=[0.0, 0.0],
    ...     mean_smoothing_coefficient=0.8,
    ...     standard_deviation_smoothing_coefficient=0.7,
    ...     standard_deviation_smoothing_exponent=6,
    ...     initial_standard_deviation=10.0,
    ...     termination_tolerance=1e-3,
    ...     optimization_goal=OptimizationGoal.MINIMIZATION,
    ...     minimum_number_of_iterations=3,
    ...     maximum_number_of_iterations=1000,
    ... )
    >>> results = SystemPerformanceOptimizer(random_seed=1).optimize(
    ...     context, rarity=0.1, sample_size=1000
    ... )
"""

# Core types and data structures
from ce_research.optimization.types import (
    CrossEntropyResults,
    EliteSampleDefinition,
    OptimizationGoal,
    ParallelOptions,
    RareEventPerformanceBoundedness,
    RareEventProbabilityEstimationResults,
    SystemPerformanceOptimizationResults,
)

# Base abstract classes
from ce_research.optimization.base import (
    CrossEntropyContext,
    ObjectiveFunction,
    RareEventProbabilityEstimationContext,
    SystemPerformanceOptimizationContext,
)

# Programs
from ce_research.optimization.program import CrossEntropyProgram
from ce_research.optimization.optimizer import SystemPerformanceOptimizer
from ce_research.optimization.estimator import RareEventProbabilityEstimator

# Context implementations
from ce_research.optimization.contexts import (
    CategoricalEntailmentEnsembleOptimizationContext,
    CombinationOptimizationContext,
    ContinuousOptimizationContext,
    PartitionOptimizationContext,
)

# One-call continuous optimization
from ce_research.optimization.continuous_optimization import maximize, minimize

__all__ = [
    # Types
    "CrossEntropyResults",
    "EliteSampleDefinition",
    "OptimizationGoal",
    "ParallelOptions",
    "RareEventPerformanceBoundedness",
    "RareEventProbabilityEstimationResults",
    "SystemPerformanceOptimizationResults",
    # Base classes
    "CrossEntropyContext",
    "ObjectiveFunction",
    "RareEventProbabilityEstimationContext",
    "SystemPerformanceOptimizationContext",
    # Programs
    "CrossEntropyProgram",
    "SystemPerformanceOptimizer",
    "RareEventProbabilityEstimator",
    # Contexts
    "CategoricalEntailmentEnsembleOptimizationContext",
    "CombinationOptimizationContext",
    "ContinuousOptimizationContext",
    "PartitionOptimizationContext",
    # Continuous optimization
    "minimize",
    "maximize",
]
