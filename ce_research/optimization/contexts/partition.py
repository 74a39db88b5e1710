"""Partition optimization context."""

from typing import Dict, List, Tuple

import numpy as np

from ce_research.core.errors import (
    ArgumentError,
    ArgumentOutOfRangeError,
    MUST_BE_GREATER_THAN,
    check_not_none,
)
from ce_research.optimization.base import (
    ObjectiveFunction,
    SystemPerformanceOptimizationContext,
    validate_smoothing_coefficient,
)
from ce_research.optimization.sampling import finite_discrete_sample
from ce_research.optimization.types import OptimizationGoal

__all__ = ["PartitionOptimizationContext"]


class PartitionOptimizationContext(SystemPerformanceOptimizationContext):
    """
    Context for assigning ``state_dimension`` items to
    ``partition_dimension`` parts.

    A state holds the part of each item, encoded as 0, 1, ..., k - 1.
    The parameter is a ``k x state_dimension`` matrix whose column j is
    the distribution of the part of item j, initially uniform. Execution
    stops when the most probable part of every item has not changed for
    ``minimum_number_of_iterations`` iterations.
    """

    def __init__(
        self,
        objective_function: ObjectiveFunction,
        state_dimension: int,
        partition_dimension: int,
        probability_smoothing_coefficient: float,
        optimization_goal: OptimizationGoal,
        minimum_number_of_iterations: int,
        maximum_number_of_iterations: int,
    ):
        """
        Initialize the context.

        Args:
            objective_function: Performance of a row of part codes
            state_dimension: Number of items to partition
            partition_dimension: Number of parts, at least 2
            probability_smoothing_coefficient: Weight of the newly fitted
                probabilities when smoothing, in (0, 1)
            optimization_goal: Whether the performance is minimized or maximized
            minimum_number_of_iterations: Stability window of the stopping rule
            maximum_number_of_iterations: Hard bound on the number of iterations
        """
        if state_dimension is None or state_dimension < 1:
            raise ArgumentOutOfRangeError("state_dimension")

        if partition_dimension is None or partition_dimension < 2:
            raise ArgumentOutOfRangeError("partition_dimension", MUST_BE_GREATER_THAN.format(1))

        super().__init__(
            state_dimension=state_dimension,
            initial_parameter=np.full((partition_dimension, state_dimension), 1.0 / partition_dimension),
            optimization_goal=optimization_goal,
            minimum_number_of_iterations=minimum_number_of_iterations,
            maximum_number_of_iterations=maximum_number_of_iterations,
        )

        check_not_none(objective_function, "objective_function")

        if state_dimension <= partition_dimension:
            raise ArgumentError(
                "Parameter partition_dimension must be less than parameter state_dimension",
                "partition_dimension",
            )

        self.probability_smoothing_coefficient = validate_smoothing_coefficient(
            probability_smoothing_coefficient, "probability_smoothing_coefficient"
        )
        self.partition_dimension = int(partition_dimension)
        self.objective_function = objective_function

        self._most_probable_parts_history: List[Tuple[int, ...]] = []

    def performance(self, state: np.ndarray) -> float:
        return float(self.objective_function(np.asarray(state, dtype=float).ravel()))

    def partial_sample(self, rng, parameter, sample_size):
        return finite_discrete_sample(rng, parameter, sample_size).astype(float)

    def update_parameter(self, parameters, elite_sample):
        elite_sample = np.asarray(elite_sample, dtype=float)
        parts = np.arange(self.partition_dimension)
        # Relative frequency of each part, item by item
        return (elite_sample[None, :, :] == parts[:, None, None]).mean(axis=1)

    def smooth_parameter(self, parameters):
        check_not_none(parameters, "parameters")
        if len(parameters) < 2:
            return parameters[-1]
        alpha = self.probability_smoothing_coefficient
        return alpha * parameters[-1] + (1.0 - alpha) * parameters[-2]

    def on_executed_iteration(self, iteration, sample, levels, parameters):
        super().on_executed_iteration(iteration, sample, levels, parameters)
        if iteration == 1:
            self._most_probable_parts_history = []
        self._most_probable_parts_history.append(
            tuple(int(part) for part in np.argmax(parameters[-1], axis=0))
        )

    def stop_at_intermediate_iteration(self, iteration, levels, parameters):
        check_not_none(levels, "levels")
        check_not_none(parameters, "parameters")

        window = self.minimum_number_of_iterations
        history = self._most_probable_parts_history
        if len(history) <= window:
            return False

        current = history[-1]
        return all(parts == current for parts in history[-window - 1:-1])

    def get_optimal_state(self, parameter: np.ndarray) -> np.ndarray:
        return np.argmax(np.asarray(parameter, dtype=float), axis=0).astype(float)

    def get_partition(self, state: np.ndarray) -> Dict[int, List[int]]:
        """
        Decode a state into its parts.

        Returns:
            Mapping from each non-empty part code to the sorted item indexes
            it contains
        """
        check_not_none(state, "state")
        state = np.asarray(state, dtype=float).ravel()
        if state.size != self.state_dimension:
            raise ArgumentError("state is context incompatible", "state")

        partition: Dict[int, List[int]] = {}
        for item, part in enumerate(state.astype(int)):
            partition.setdefault(int(part), []).append(item)
        return dict(sorted(partition.items()))
