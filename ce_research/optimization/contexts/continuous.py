"""
Continuous optimization context.

States are real vectors drawn from independent Gaussian distributions.
"""

import numpy as np

from ce_research.core.errors import (
    ArgumentError,
    ArgumentOutOfRangeError,
    check_not_none,
)
from ce_research.optimization.base import (
    ObjectiveFunction,
    SystemPerformanceOptimizationContext,
    validate_smoothing_coefficient,
)
from ce_research.optimization.types import OptimizationGoal

__all__ = ["ContinuousOptimizationContext"]


def _as_row_vector(initial_arguments) -> np.ndarray:
    check_not_none(initial_arguments, "initial_arguments")
    arguments = np.asarray(initial_arguments, dtype=float)
    if arguments.ndim > 2 or (arguments.ndim == 2 and arguments.shape[0] != 1) or arguments.size == 0:
        raise ArgumentError("Parameter initial_arguments must be a row vector", "initial_arguments")
    return arguments.ravel()


class ContinuousOptimizationContext(SystemPerformanceOptimizationContext):
    """
    Context for optimizing a function of real arguments.

    The parameter is a ``2 x state_dimension`` matrix: row 0 holds the
    means and row 1 the standard deviations of the sampling Gaussians.
    Means are smoothed with a constant coefficient, standard deviations
    with ``b * (1 - (1 - 1/t) ** q)`` where t is the number of parameters
    in the history, so that the variance shrinks slowly enough to avoid
    premature convergence. Execution stops when every standard deviation
    is below the termination tolerance.

    Example:
        >>> context = ContinuousOptimizationContext(
        ...     objective_function=lambda x: (x[0] - 1.0) ** 2,
        ...     initial_arguments=[10.0],
        ...     mean_smoothing_coefficient=0.8,
        ...     standard_deviation_smoothing_coefficient=0.7,
        ...     standard_deviation_smoothing_exponent=6,
        ...     initial_standard_deviation=100.0,
        ...     termination_tolerance=1e-3,
        ...     optimization_goal=OptimizationGoal.MINIMIZATION,
        ...     minimum_number_of_iterations=3,
        ...     maximum_number_of_iterations=1000,
        ... )
    """

    def __init__(
        self,
        objective_function: ObjectiveFunction,
        initial_arguments,
        mean_smoothing_coefficient: float,
        standard_deviation_smoothing_coefficient: float,
        standard_deviation_smoothing_exponent: int,
        initial_standard_deviation: float,
        termination_tolerance: float,
        optimization_goal: OptimizationGoal,
        minimum_number_of_iterations: int,
        maximum_number_of_iterations: int,
    ):
        """
        Initialize the context.

        Args:
            objective_function: Performance of a vector of arguments
            initial_arguments: Row vector of the initial means
            mean_smoothing_coefficient: Weight of the new means, in (0, 1)
            standard_deviation_smoothing_coefficient: Upper bound of the weight
                of the new standard deviations, in (0, 1)
            standard_deviation_smoothing_exponent: Exponent q of the standard
                deviation smoothing, at least 1
            initial_standard_deviation: Standard deviation of every argument at
                the first iteration
            termination_tolerance: Standard deviation below which an argument
                is considered settled
            optimization_goal: Whether the performance is minimized or maximized
            minimum_number_of_iterations: Iterations to run before stopping
            maximum_number_of_iterations: Hard bound on the number of iterations
        """
        arguments = _as_row_vector(initial_arguments)

        if initial_standard_deviation is None or initial_standard_deviation <= 0.0:
            raise ArgumentOutOfRangeError("initial_standard_deviation")

        super().__init__(
            state_dimension=arguments.size,
            initial_parameter=np.vstack([arguments, np.full(arguments.size, initial_standard_deviation)]),
            optimization_goal=optimization_goal,
            minimum_number_of_iterations=minimum_number_of_iterations,
            maximum_number_of_iterations=maximum_number_of_iterations,
        )

        check_not_none(objective_function, "objective_function")

        if termination_tolerance is None or termination_tolerance <= 0.0:
            raise ArgumentOutOfRangeError("termination_tolerance")

        self.mean_smoothing_coefficient = validate_smoothing_coefficient(
            mean_smoothing_coefficient, "mean_smoothing_coefficient"
        )
        self.standard_deviation_smoothing_coefficient = validate_smoothing_coefficient(
            standard_deviation_smoothing_coefficient, "standard_deviation_smoothing_coefficient"
        )

        if standard_deviation_smoothing_exponent is None or standard_deviation_smoothing_exponent < 1:
            raise ArgumentOutOfRangeError("standard_deviation_smoothing_exponent")

        self.standard_deviation_smoothing_exponent = int(standard_deviation_smoothing_exponent)
        self.initial_arguments = arguments.copy()
        self.initial_standard_deviation = float(initial_standard_deviation)
        self.termination_tolerance = float(termination_tolerance)
        self.objective_function = objective_function

    def performance(self, state: np.ndarray) -> float:
        return float(self.objective_function(np.asarray(state, dtype=float).ravel()))

    def partial_sample(self, rng, parameter, sample_size):
        means, standard_deviations = parameter[0], parameter[1]
        return rng.normal(means, standard_deviations, size=(sample_size, self.state_dimension))

    def update_parameter(self, parameters, elite_sample):
        elite_sample = np.asarray(elite_sample, dtype=float)
        return np.vstack([elite_sample.mean(axis=0), elite_sample.std(axis=0)])

    def smooth_parameter(self, parameters):
        check_not_none(parameters, "parameters")
        t = len(parameters)
        if t < 2:
            return parameters[-1]

        current, previous = parameters[-1], parameters[-2]

        mean_alpha = self.mean_smoothing_coefficient
        means = mean_alpha * current[0] + (1.0 - mean_alpha) * previous[0]

        q = self.standard_deviation_smoothing_exponent
        std_alpha = self.standard_deviation_smoothing_coefficient * (1.0 - (1.0 - 1.0 / t) ** q)
        standard_deviations = std_alpha * current[1] + (1.0 - std_alpha) * previous[1]

        return np.vstack([means, standard_deviations])

    def stop_at_intermediate_iteration(self, iteration, levels, parameters):
        check_not_none(levels, "levels")
        check_not_none(parameters, "parameters")
        return bool(np.all(parameters[-1][1] < self.termination_tolerance))

    def get_optimal_state(self, parameter: np.ndarray) -> np.ndarray:
        return np.asarray(parameter, dtype=float)[0].copy()
