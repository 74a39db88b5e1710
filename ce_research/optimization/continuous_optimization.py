"""
One-call minimization and maximization of functions of real arguments.

Both functions run the system performance optimizer on a
``ContinuousOptimizationContext`` with fixed settings: smoothing
coefficients 0.8 (means) and 0.7 (standard deviations), exponent 6,
initial standard deviation 100, termination tolerance 1e-3, between 3
and 1000 iterations, rarity 0.01 and 100 states per argument.

Example:
    >>> from ce_research.optimization.continuous_optimization import minimize
    >>> minimize(lambda x: float(((x - 3.0) ** 2).sum()), [0.0, 0.0], random_seed=1)
"""

import logging
from typing import Any, Callable, Optional, Sequence

import numpy as np

from ce_research.core.errors import check_not_none
from ce_research.optimization.contexts.continuous import ContinuousOptimizationContext
from ce_research.optimization.optimizer import SystemPerformanceOptimizer
from ce_research.optimization.types import OptimizationGoal

__all__ = ["minimize", "maximize"]

logger = logging.getLogger(__name__)


def _optimize(
    objective_function: Callable[..., float],
    initial_arguments,
    args: Sequence[Any],
    optimization_goal: OptimizationGoal,
    random_seed: Optional[int],
) -> np.ndarray:
    check_not_none(objective_function, "objective_function")

    if args:
        def function(x):
            return objective_function(x, *args)
    else:
        function = objective_function

    context = ContinuousOptimizationContext(
        objective_function=function,
        initial_arguments=initial_arguments,
        mean_smoothing_coefficient=0.8,
        standard_deviation_smoothing_coefficient=0.7,
        standard_deviation_smoothing_exponent=6,
        initial_standard_deviation=100.0,
        termination_tolerance=1e-3,
        optimization_goal=optimization_goal,
        minimum_number_of_iterations=3,
        maximum_number_of_iterations=1000,
    )

    optimizer = SystemPerformanceOptimizer(random_seed=random_seed)
    results = optimizer.optimize(context, rarity=0.01, sample_size=100 * context.state_dimension)

    logger.info(
        "%s found at %s (value: %s)",
        "Minimizer" if optimization_goal is OptimizationGoal.MINIMIZATION else "Maximizer",
        results.optimal_state,
        results.optimal_performance,
    )
    return results.optimal_state


def minimize(
    objective_function: Callable[..., float],
    initial_arguments,
    args: Sequence[Any] = (),
    random_seed: Optional[int] = None,
) -> np.ndarray:
    """
    Find a minimizer of a function of real arguments.

    Args:
        objective_function: Function called as ``f(x, *args)`` with x a
            1-D array of arguments
        initial_arguments: Row vector where the search starts
        args: Extra arguments passed to the objective function
        random_seed: Seed of the optimizer's sampling streams

    Returns:
        The minimizing arguments, as a 1-D array

    Raises:
        ArgumentNullError: If objective_function or initial_arguments is None
        ArgumentError: If initial_arguments is not a row vector
    """
    return _optimize(objective_function, initial_arguments, args, OptimizationGoal.MINIMIZATION, random_seed)


def maximize(
    objective_function: Callable[..., float],
    initial_arguments,
    args: Sequence[Any] = (),
    random_seed: Optional[int] = None,
) -> np.ndarray:
    """Find a maximizer of a function of real arguments; see ``minimize``."""
    return _optimize(objective_function, initial_arguments, args, OptimizationGoal.MAXIMIZATION, random_seed)
