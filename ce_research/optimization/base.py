"""
Base abstract classes for the Cross-Entropy framework.

A context describes the problem a Cross-Entropy program solves: how to
sample states from a parameter, how to score them, how to refit the
parameter from an elite sample and when to stop. Programs
(optimizers and estimators) only drive the loop.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

import numpy as np
import pandas as pd

from ce_research.core.errors import (
    ArgumentError,
    ArgumentOutOfRangeError,
    MUST_BE_IN_OPEN_INTERVAL,
    check_not_none,
)
from ce_research.optimization.types import (
    EliteSampleDefinition,
    OptimizationGoal,
    RareEventPerformanceBoundedness,
)

__all__ = [
    "CrossEntropyContext",
    "SystemPerformanceOptimizationContext",
    "RareEventProbabilityEstimationContext",
    "ObjectiveFunction",
    "validate_smoothing_coefficient",
]

logger = logging.getLogger(__name__)

# Type alias for performance functions evaluated on a single state
ObjectiveFunction = Callable[[np.ndarray], float]


def validate_smoothing_coefficient(value: float, param_name: str) -> float:
    """Ensure a smoothing coefficient lies in the open interval (0, 1)."""
    if not 0.0 < value < 1.0:
        raise ArgumentOutOfRangeError(param_name, MUST_BE_IN_OPEN_INTERVAL.format(0.0, 1.0))
    return float(value)


def _sorted_order(performances: np.ndarray) -> np.ndarray:
    return np.argsort(performances, kind="stable")


class CrossEntropyContext(ABC):
    """
    Abstract description of a problem solved by the Cross-Entropy method.

    The sampling distribution of the states is indexed by a parameter,
    a 2-D array whose shape is fixed by the initial parameter. Sample
    matrices hold one state per row.
    """

    def __init__(self, state_dimension: int, initial_parameter):
        """
        Initialize the context.

        Args:
            state_dimension: Number of entries in each state
            initial_parameter: Parameter of the sampling distribution at the
                first iteration

        Raises:
            ArgumentOutOfRangeError: If state_dimension is not positive
            ArgumentNullError: If initial_parameter is None
        """
        if state_dimension is None or state_dimension < 1:
            raise ArgumentOutOfRangeError("state_dimension")
        check_not_none(initial_parameter, "initial_parameter")

        self._state_dimension = int(state_dimension)
        self._initial_parameter = np.atleast_2d(np.array(initial_parameter, dtype=float))

        self.trace_execution = False
        self.trace_logger: logging.Logger = logger

    @property
    def state_dimension(self) -> int:
        return self._state_dimension

    @property
    def initial_parameter(self) -> np.ndarray:
        """Copy of the parameter used at the first iteration."""
        return self._initial_parameter.copy()

    @property
    @abstractmethod
    def elite_sample_definition(self) -> EliteSampleDefinition:
        """Tail of the performance distribution from which elites are taken."""
        pass

    @abstractmethod
    def performance(self, state: np.ndarray) -> float:
        """Evaluate the performance of a single state."""
        pass

    @abstractmethod
    def partial_sample(
        self,
        rng: np.random.Generator,
        parameter: np.ndarray,
        sample_size: int,
    ) -> np.ndarray:
        """
        Draw states from the distribution indexed by parameter.

        Args:
            rng: Generator to draw random numbers from
            parameter: Current parameter of the sampling distribution
            sample_size: Number of states to draw

        Returns:
            Array of shape (sample_size, state_dimension)
        """
        pass

    @abstractmethod
    def update_level(
        self,
        performances: np.ndarray,
        sample: np.ndarray,
        elite_sample_definition: EliteSampleDefinition,
        rarity: float,
    ) -> Tuple[float, np.ndarray]:
        """
        Compute the level of the current iteration.

        Returns:
            Tuple of (level, elite sample rows)
        """
        pass

    @abstractmethod
    def update_parameter(self, parameters: List[np.ndarray], elite_sample: np.ndarray) -> np.ndarray:
        """Fit a new parameter from the elite sample of the current iteration."""
        pass

    @abstractmethod
    def stop_execution(
        self,
        iteration: int,
        levels: List[float],
        parameters: List[np.ndarray],
    ) -> bool:
        """Decide whether the program must stop after the current iteration."""
        pass

    def on_executed_iteration(
        self,
        iteration: int,
        sample: np.ndarray,
        levels: List[float],
        parameters: List[np.ndarray],
    ) -> None:
        """Hook called once the parameter of an iteration has been appended."""
        pass

    def _trace_sorted_sample(self, sorted_sample: np.ndarray, sorted_performances: np.ndarray) -> None:
        frame = pd.DataFrame(
            sorted_sample,
            columns=[f"S{j}" for j in range(sorted_sample.shape[1])],
        )
        frame.insert(0, "Performance", sorted_performances)
        self.trace_logger.info("Sorted sample:\n%s", frame.to_string())


class SystemPerformanceOptimizationContext(CrossEntropyContext):
    """
    Context for optimizing a performance function over a space of states.

    Subclasses provide sampling, refitting and the optimal state implied
    by a parameter. The default policies keep the latest fitted parameter
    as is and stop once the level has not changed during
    ``minimum_number_of_iterations`` consecutive iterations.
    """

    def __init__(
        self,
        state_dimension: int,
        initial_parameter,
        optimization_goal: OptimizationGoal,
        minimum_number_of_iterations: int,
        maximum_number_of_iterations: int,
    ):
        """
        Initialize the context.

        Args:
            state_dimension: Number of entries in each state
            initial_parameter: Parameter of the sampling distribution at the
                first iteration
            optimization_goal: Whether the performance is minimized or maximized
            minimum_number_of_iterations: Iterations to run before the
                intermediate stopping rule is consulted
            maximum_number_of_iterations: Hard bound on the number of iterations

        Raises:
            ArgumentOutOfRangeError: If a dimension or iteration count is not positive
            ArgumentNullError: If initial_parameter is None
            ArgumentError: If optimization_goal is invalid or the maximum number
                of iterations is less than the minimum
        """
        super().__init__(state_dimension, initial_parameter)

        if not isinstance(optimization_goal, OptimizationGoal):
            raise ArgumentError(
                f"Value {optimization_goal!r} is not a valid optimization goal",
                "optimization_goal",
            )

        if minimum_number_of_iterations is None or minimum_number_of_iterations < 1:
            raise ArgumentOutOfRangeError("minimum_number_of_iterations")

        if maximum_number_of_iterations is None or maximum_number_of_iterations < 1:
            raise ArgumentOutOfRangeError("maximum_number_of_iterations")

        if maximum_number_of_iterations < minimum_number_of_iterations:
            raise ArgumentError(
                "Parameter maximum_number_of_iterations must not be less than "
                "parameter minimum_number_of_iterations",
                "maximum_number_of_iterations",
            )

        self._optimization_goal = optimization_goal
        self._minimum_number_of_iterations = int(minimum_number_of_iterations)
        self._maximum_number_of_iterations = int(maximum_number_of_iterations)

    @property
    def optimization_goal(self) -> OptimizationGoal:
        return self._optimization_goal

    @property
    def minimum_number_of_iterations(self) -> int:
        return self._minimum_number_of_iterations

    @property
    def maximum_number_of_iterations(self) -> int:
        return self._maximum_number_of_iterations

    @property
    def elite_sample_definition(self) -> EliteSampleDefinition:
        if self._optimization_goal is OptimizationGoal.MAXIMIZATION:
            return EliteSampleDefinition.HIGHER_THAN_LEVEL
        return EliteSampleDefinition.LOWER_THAN_LEVEL

    @abstractmethod
    def get_optimal_state(self, parameter: np.ndarray) -> np.ndarray:
        """Return the state that is optimal under the given parameter."""
        pass

    def update_level(
        self,
        performances: np.ndarray,
        sample: np.ndarray,
        elite_sample_definition: EliteSampleDefinition,
        rarity: float,
    ) -> Tuple[float, np.ndarray]:
        """
        Compute the rarity quantile of the performances and the elite rows.

        For HIGHER_THAN_LEVEL the elite rows are the top
        ``n - ceil(n * (1 - rarity))`` performers, for LOWER_THAN_LEVEL the
        bottom ``floor(n * rarity) + 1``.

        Raises:
            ArgumentNullError: If performances or sample is None
            ArgumentError: If rarity leaves no elite row
        """
        check_not_none(performances, "performances")
        check_not_none(sample, "sample")

        performances = np.asarray(performances, dtype=float).ravel()
        sample = np.atleast_2d(np.asarray(sample, dtype=float))
        n = performances.size

        order = _sorted_order(performances)
        sorted_performances = performances[order]

        if elite_sample_definition is EliteSampleDefinition.HIGHER_THAN_LEVEL:
            first = int(math.ceil(n * (1.0 - rarity)))
            if first >= n:
                raise ArgumentError("Rarity is too low for the given sample size", "rarity")
            level = sorted_performances[first]
            elite_rows = order[first:]
        else:
            last = int(math.floor(n * rarity))
            if last >= n:
                raise ArgumentError("Rarity is too high for the given sample size", "rarity")
            level = sorted_performances[last]
            elite_rows = order[: last + 1]

        if self.trace_execution:
            self._trace_sorted_sample(sample[order], sorted_performances)

        return float(level), sample[elite_rows]

    def on_executed_iteration(
        self,
        iteration: int,
        sample: np.ndarray,
        levels: List[float],
        parameters: List[np.ndarray],
    ) -> None:
        parameters[-1] = self.smooth_parameter(parameters)

    def smooth_parameter(self, parameters: List[np.ndarray]) -> np.ndarray:
        """
        Smooth the parameter fitted at the latest iteration.

        Args:
            parameters: Parameter history, the last entry being the raw fit

        Returns:
            Parameter replacing the raw fit in the history
        """
        check_not_none(parameters, "parameters")
        return parameters[-1]

    def stop_at_intermediate_iteration(
        self,
        iteration: int,
        levels: List[float],
        parameters: List[np.ndarray],
    ) -> bool:
        """
        Intermediate stopping rule, consulted once the minimum number of
        iterations has been exceeded.

        Stops when the last level equals each of the previous
        ``minimum_number_of_iterations`` levels.
        """
        check_not_none(levels, "levels")
        check_not_none(parameters, "parameters")

        window = self._minimum_number_of_iterations
        if len(levels) <= window:
            return False

        current_level = levels[-1]
        return all(level == current_level for level in levels[-window - 1:-1])

    def stop_execution(
        self,
        iteration: int,
        levels: List[float],
        parameters: List[np.ndarray],
    ) -> bool:
        check_not_none(levels, "levels")
        check_not_none(parameters, "parameters")

        if iteration == self._maximum_number_of_iterations:
            return True

        if self._minimum_number_of_iterations < iteration:
            return self.stop_at_intermediate_iteration(iteration, levels, parameters)

        return False


class RareEventProbabilityEstimationContext(CrossEntropyContext):
    """
    Context for estimating the probability of a rare event.

    The event is {performance >= threshold_level} when boundedness is
    LOWER, and {performance <= threshold_level} when it is UPPER. The
    nominal distribution is the one indexed by the initial parameter.
    """

    def __init__(
        self,
        state_dimension: int,
        initial_parameter,
        threshold_level: float,
        rare_event_performance_boundedness: RareEventPerformanceBoundedness,
        maximum_number_of_iterations: Optional[int] = None,
    ):
        """
        Initialize the context.

        Args:
            state_dimension: Number of entries in each state
            initial_parameter: Nominal parameter of the sampling distribution
            threshold_level: Performance threshold defining the rare event
            rare_event_performance_boundedness: Side of the threshold on which
                the event lies
            maximum_number_of_iterations: Optional bound on the number of
                level-raising iterations; unbounded if None
        """
        super().__init__(state_dimension, initial_parameter)

        if not isinstance(rare_event_performance_boundedness, RareEventPerformanceBoundedness):
            raise ArgumentError(
                f"Value {rare_event_performance_boundedness!r} is not a valid boundedness",
                "rare_event_performance_boundedness",
            )

        if maximum_number_of_iterations is not None and maximum_number_of_iterations < 1:
            raise ArgumentOutOfRangeError("maximum_number_of_iterations")

        self._threshold_level = float(threshold_level)
        self._rare_event_performance_boundedness = rare_event_performance_boundedness
        self._maximum_number_of_iterations = maximum_number_of_iterations

    @property
    def threshold_level(self) -> float:
        return self._threshold_level

    @property
    def rare_event_performance_boundedness(self) -> RareEventPerformanceBoundedness:
        return self._rare_event_performance_boundedness

    @property
    def maximum_number_of_iterations(self) -> Optional[int]:
        return self._maximum_number_of_iterations

    @property
    def elite_sample_definition(self) -> EliteSampleDefinition:
        if self._rare_event_performance_boundedness is RareEventPerformanceBoundedness.UPPER:
            return EliteSampleDefinition.LOWER_THAN_LEVEL
        return EliteSampleDefinition.HIGHER_THAN_LEVEL

    @abstractmethod
    def get_likelihood_ratio(
        self,
        state: np.ndarray,
        nominal_parameter: np.ndarray,
        reference_parameter: np.ndarray,
    ) -> float:
        """
        Ratio of the nominal density to the reference density at state.

        Args:
            state: A single state
            nominal_parameter: Parameter of the nominal distribution
            reference_parameter: Parameter of the sampling distribution
        """
        pass

    def is_rare_event(self, performances: np.ndarray) -> np.ndarray:
        """Boolean mask of the performances lying in the rare event."""
        performances = np.asarray(performances, dtype=float)
        if self.elite_sample_definition is EliteSampleDefinition.HIGHER_THAN_LEVEL:
            return performances >= self._threshold_level
        return performances <= self._threshold_level

    def has_reached_threshold(self, level: float) -> bool:
        if self.elite_sample_definition is EliteSampleDefinition.HIGHER_THAN_LEVEL:
            return level >= self._threshold_level
        return level <= self._threshold_level

    def update_level(
        self,
        performances: np.ndarray,
        sample: np.ndarray,
        elite_sample_definition: EliteSampleDefinition,
        rarity: float,
    ) -> Tuple[float, np.ndarray]:
        """
        Compute the rarity quantile of the performances, capped at the threshold.

        The level never goes past the threshold level, and the elite rows
        are those whose performance is on the rare side of the level.
        """
        check_not_none(performances, "performances")
        check_not_none(sample, "sample")

        performances = np.asarray(performances, dtype=float).ravel()
        sample = np.atleast_2d(np.asarray(sample, dtype=float))
        n = performances.size

        order = _sorted_order(performances)
        sorted_performances = performances[order]

        if elite_sample_definition is EliteSampleDefinition.HIGHER_THAN_LEVEL:
            first = int(math.ceil(n * (1.0 - rarity)))
            if first >= n:
                raise ArgumentError("Rarity is too low for the given sample size", "rarity")
            level = min(sorted_performances[first], self._threshold_level)
            elite_mask = performances >= level
        else:
            last = int(math.ceil(n * rarity))
            if last >= n:
                raise ArgumentError("Rarity is too high for the given sample size", "rarity")
            level = max(sorted_performances[last], self._threshold_level)
            elite_mask = performances <= level

        if self.trace_execution:
            self._trace_sorted_sample(sample[order], sorted_performances)

        return float(level), sample[elite_mask]

    def stop_execution(
        self,
        iteration: int,
        levels: List[float],
        parameters: List[np.ndarray],
    ) -> bool:
        check_not_none(levels, "levels")
        check_not_none(parameters, "parameters")

        if self.has_reached_threshold(levels[-1]):
            return True

        cap = self._maximum_number_of_iterations
        return cap is not None and iteration >= cap
