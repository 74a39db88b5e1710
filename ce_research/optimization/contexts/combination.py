"""
Combination optimization context.

Optimizes a performance function over the subsets of fixed size of a
finite set of items. A state is an indicator row with exactly
``combination_dimension`` ones among ``state_dimension`` entries.
"""

from typing import List, Tuple

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
from ce_research.optimization.sampling import conditional_bernoulli_sample
from ce_research.optimization.types import OptimizationGoal

__all__ = ["CombinationOptimizationContext"]


class CombinationOptimizationContext(SystemPerformanceOptimizationContext):
    """
    Context for selecting the best combination of items.

    The parameter is a ``1 x state_dimension`` row of inclusion
    probabilities, initially 0.5. States are drawn by conditional
    Bernoulli sampling, so every state selects exactly
    ``combination_dimension`` items. Execution stops when the
    ``combination_dimension`` most probable items have not changed for
    ``minimum_number_of_iterations`` iterations.
    """

    def __init__(
        self,
        objective_function: ObjectiveFunction,
        state_dimension: int,
        combination_dimension: int,
        probability_smoothing_coefficient: float,
        optimization_goal: OptimizationGoal,
        minimum_number_of_iterations: int,
        maximum_number_of_iterations: int,
    ):
        """
        Initialize the context.

        Args:
            objective_function: Performance of an indicator row
            state_dimension: Number of items to choose from
            combination_dimension: Number of items in each combination
            probability_smoothing_coefficient: Weight of the newly fitted
                probabilities when smoothing, in (0, 1)
            optimization_goal: Whether the performance is minimized or maximized
            minimum_number_of_iterations: Stability window of the stopping rule
            maximum_number_of_iterations: Hard bound on the number of iterations
        """
        if state_dimension is None or state_dimension < 1:
            raise ArgumentOutOfRangeError("state_dimension")

        super().__init__(
            state_dimension=state_dimension,
            initial_parameter=np.full((1, state_dimension), 0.5),
            optimization_goal=optimization_goal,
            minimum_number_of_iterations=minimum_number_of_iterations,
            maximum_number_of_iterations=maximum_number_of_iterations,
        )

        check_not_none(objective_function, "objective_function")

        if combination_dimension is None or combination_dimension < 1:
            raise ArgumentOutOfRangeError("combination_dimension")

        if state_dimension <= combination_dimension:
            raise ArgumentError(
                "Parameter combination_dimension must be less than parameter state_dimension",
                "combination_dimension",
            )

        self.probability_smoothing_coefficient = validate_smoothing_coefficient(
            probability_smoothing_coefficient, "probability_smoothing_coefficient"
        )
        self.combination_dimension = int(combination_dimension)
        self.objective_function = objective_function

        self._top_probabilities_history: List[Tuple[int, ...]] = []

    def performance(self, state: np.ndarray) -> float:
        return float(self.objective_function(np.asarray(state, dtype=float).ravel()))

    def partial_sample(self, rng, parameter, sample_size):
        return conditional_bernoulli_sample(
            rng, parameter[0], self.combination_dimension, sample_size
        )

    def update_parameter(self, parameters, elite_sample):
        probabilities = np.asarray(elite_sample, dtype=float).mean(axis=0)
        return np.clip(probabilities, 1e-9, 1.0 - 1e-9).reshape(1, -1)

    def smooth_parameter(self, parameters):
        check_not_none(parameters, "parameters")
        if len(parameters) < 2:
            return parameters[-1]
        alpha = self.probability_smoothing_coefficient
        return alpha * parameters[-1] + (1.0 - alpha) * parameters[-2]

    def _top_probability_items(self, parameter: np.ndarray) -> Tuple[int, ...]:
        order = np.argsort(-np.asarray(parameter, dtype=float).ravel(), kind="stable")
        return tuple(sorted(int(j) for j in order[: self.combination_dimension]))

    def on_executed_iteration(self, iteration, sample, levels, parameters):
        super().on_executed_iteration(iteration, sample, levels, parameters)
        if iteration == 1:
            self._top_probabilities_history = []
        self._top_probabilities_history.append(self._top_probability_items(parameters[-1]))

    def stop_at_intermediate_iteration(self, iteration, levels, parameters):
        check_not_none(levels, "levels")
        check_not_none(parameters, "parameters")

        window = self.minimum_number_of_iterations
        history = self._top_probabilities_history
        if len(history) <= window:
            return False

        current = history[-1]
        return all(items == current for items in history[-window - 1:-1])

    def get_optimal_state(self, parameter: np.ndarray) -> np.ndarray:
        state = np.zeros(self.state_dimension)
        state[list(self._top_probability_items(parameter))] = 1.0
        return state
