"""
Iterative engine shared by Cross-Entropy optimizers and estimators.

Each iteration draws a sample from the current parameter, evaluates the
performances of its states, computes the level and elite sample, and
fits the next parameter, until the context asks to stop.
"""

import logging
import math
import os
from abc import ABC
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import numpy as np

from ce_research.core.errors import (
    ArgumentError,
    ArgumentOutOfRangeError,
    MUST_BE_IN_OPEN_INTERVAL,
    check_not_none,
)
from ce_research.optimization.base import CrossEntropyContext
from ce_research.optimization.types import (
    CrossEntropyResults,
    EliteSampleDefinition,
    ParallelOptions,
)

__all__ = ["CrossEntropyProgram"]

logger = logging.getLogger(__name__)


class CrossEntropyProgram(ABC):
    """
    Base class for programs executing the Cross-Entropy loop.

    Sample generation and performance evaluation run sequentially unless
    their parallel options allow more than one worker. Parallel sample
    chunks draw from independent generators spawned from the program's
    seed sequence, so results are reproducible for a given seed and
    degree of parallelism.
    """

    def __init__(
        self,
        random_seed: Optional[int] = None,
        trace_logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the program.

        Args:
            random_seed: Seed of the random number streams used for sampling
            trace_logger: Logger receiving iteration traces of contexts whose
                trace_execution flag is set
        """
        self.random_seed = random_seed
        self.trace_logger = trace_logger if trace_logger is not None else logger

        self._seed_sequence = np.random.SeedSequence(random_seed)
        self._performance_evaluation_parallel_options = ParallelOptions()
        self._sample_generation_parallel_options = ParallelOptions()

    @property
    def performance_evaluation_parallel_options(self) -> ParallelOptions:
        return self._performance_evaluation_parallel_options

    @performance_evaluation_parallel_options.setter
    def performance_evaluation_parallel_options(self, value: ParallelOptions) -> None:
        self._performance_evaluation_parallel_options = self._check_options(value)

    @property
    def sample_generation_parallel_options(self) -> ParallelOptions:
        return self._sample_generation_parallel_options

    @sample_generation_parallel_options.setter
    def sample_generation_parallel_options(self, value: ParallelOptions) -> None:
        self._sample_generation_parallel_options = self._check_options(value)

    @staticmethod
    def _check_options(value: ParallelOptions) -> ParallelOptions:
        check_not_none(value, "value")
        if not isinstance(value, ParallelOptions):
            raise ArgumentError("Value must be a ParallelOptions instance", "value")
        return value

    def _validate_run_arguments(
        self,
        context: CrossEntropyContext,
        rarity: float,
        sample_size: int,
    ) -> None:
        check_not_none(context, "context")

        if sample_size is None or sample_size < 1:
            raise ArgumentOutOfRangeError("sample_size")

        if rarity is None or not 0.0 < rarity < 1.0:
            raise ArgumentOutOfRangeError("rarity", MUST_BE_IN_OPEN_INTERVAL.format(0.0, 1.0))

        if context.elite_sample_definition is EliteSampleDefinition.HIGHER_THAN_LEVEL:
            if math.ceil(sample_size * (1.0 - rarity)) >= sample_size:
                raise ArgumentError(
                    "Rarity is too low for the given sample size: the elite sample would be empty",
                    "rarity",
                )
        else:
            if math.ceil(sample_size * rarity) >= sample_size:
                raise ArgumentError(
                    "Rarity is too high for the given sample size: the level is undefined",
                    "rarity",
                )

    def _run(
        self,
        context: CrossEntropyContext,
        rarity: float,
        sample_size: int,
    ) -> CrossEntropyResults:
        """
        Execute the Cross-Entropy loop until the context stops it.

        Args:
            context: Problem being solved
            rarity: Fraction of the sample taken as elite
            sample_size: Number of states drawn per iteration

        Returns:
            Level and parameter histories
        """
        self._validate_run_arguments(context, rarity, sample_size)

        parameters: List[np.ndarray] = [context.initial_parameter]
        levels: List[float] = []
        elite_sample_definition = context.elite_sample_definition

        iteration = 1
        while True:
            sample = self.sample(context, sample_size, parameters[-1])
            performances = self.evaluate_performances(context, sample)

            level, elite_sample = context.update_level(
                performances, sample, elite_sample_definition, rarity
            )
            levels.append(level)

            parameters.append(
                np.atleast_2d(np.asarray(context.update_parameter(parameters, elite_sample), dtype=float))
            )
            context.on_executed_iteration(iteration, sample, levels, parameters)

            if context.trace_execution:
                self.trace_logger.info("Iteration: %d", iteration)
                self.trace_logger.info("Level: %s", level)
                self.trace_logger.info("Parameter:\n%s", parameters[-1])
            logger.debug("Iteration %d: level=%s, elite size=%d", iteration, level, len(elite_sample))

            if context.stop_execution(iteration, levels, parameters):
                break
            iteration += 1

        return CrossEntropyResults(levels=levels, parameters=parameters)

    def sample(
        self,
        context: CrossEntropyContext,
        sample_size: int,
        parameter: np.ndarray,
    ) -> np.ndarray:
        """
        Draw a sample from the distribution indexed by parameter.

        Args:
            context: Context defining the sampling distribution
            sample_size: Number of states to draw
            parameter: Parameter with the same shape as the context's initial one

        Returns:
            Array of shape (sample_size, state_dimension)

        Raises:
            ArgumentNullError: If context or parameter is None
            ArgumentOutOfRangeError: If sample_size is not positive
            ArgumentError: If parameter is not compatible with the context
        """
        check_not_none(context, "context")

        if sample_size is None or sample_size < 1:
            raise ArgumentOutOfRangeError("sample_size")

        check_not_none(parameter, "parameter")
        parameter = np.atleast_2d(np.asarray(parameter, dtype=float))
        if parameter.shape != context.initial_parameter.shape:
            raise ArgumentError("parameter is context incompatible", "parameter")

        options = self._sample_generation_parallel_options
        if options.is_sequential:
            rng = np.random.default_rng(self._seed_sequence.spawn(1)[0])
            return self._draw(context, rng, parameter, sample_size)

        number_of_chunks = min(options.max_workers or os.cpu_count() or 1, sample_size)
        chunk_sizes = [len(chunk) for chunk in np.array_split(np.arange(sample_size), number_of_chunks)]
        chunk_seeds = self._seed_sequence.spawn(number_of_chunks)

        def draw_chunk(seed, size):
            return self._draw(context, np.random.default_rng(seed), parameter, size)

        with ThreadPoolExecutor(max_workers=options.max_workers) as executor:
            chunks = list(executor.map(draw_chunk, chunk_seeds, chunk_sizes))

        return np.vstack(chunks)

    @staticmethod
    def _draw(context, rng, parameter, size) -> np.ndarray:
        chunk = np.asarray(context.partial_sample(rng, parameter, size), dtype=float)
        return chunk.reshape(size, context.state_dimension)

    def evaluate_performances(self, context: CrossEntropyContext, sample: np.ndarray) -> np.ndarray:
        """
        Evaluate the performance of each state in a sample.

        Raises:
            ArgumentNullError: If context or sample is None
            ArgumentError: If the sample columns do not match the state dimension
        """
        check_not_none(context, "context")
        check_not_none(sample, "sample")

        sample = np.atleast_2d(np.asarray(sample, dtype=float))
        if sample.shape[1] != context.state_dimension:
            raise ArgumentError("sample is context incompatible", "sample")

        options = self._performance_evaluation_parallel_options
        if options.is_sequential:
            return np.array([context.performance(state) for state in sample], dtype=float)

        with ThreadPoolExecutor(max_workers=options.max_workers) as executor:
            performances = list(executor.map(context.performance, sample))

        return np.asarray(performances, dtype=float)
