"""
Rare event probability estimation by the Cross-Entropy method.

The level-raising loop moves the sampling distribution towards the rare
event; a final importance sample drawn from the last parameter is then
reweighted by likelihood ratios back to the nominal distribution.
"""

import logging

import numpy as np

from ce_research.core.errors import ArgumentOutOfRangeError, check_not_none
from ce_research.optimization.base import RareEventProbabilityEstimationContext
from ce_research.optimization.program import CrossEntropyProgram
from ce_research.optimization.types import RareEventProbabilityEstimationResults

__all__ = ["RareEventProbabilityEstimator"]

logger = logging.getLogger(__name__)


class RareEventProbabilityEstimator(CrossEntropyProgram):
    """Cross-Entropy estimator of rare event probabilities."""

    def estimate(
        self,
        context: RareEventProbabilityEstimationContext,
        rarity: float,
        sample_size: int,
        estimation_sample_size: int,
    ) -> RareEventProbabilityEstimationResults:
        """
        Estimate the probability of the rare event described by context.

        Args:
            context: Rare event description and nominal distribution
            rarity: Fraction of each sample taken as elite, in (0, 1)
            sample_size: Number of states drawn per level-raising iteration
            estimation_sample_size: Size of the final importance sample

        Returns:
            Estimated probability and execution history

        Raises:
            ArgumentOutOfRangeError: If a size or rarity is out of range
            ArgumentNullError: If context is None
            ArgumentError: If rarity leaves an empty elite sample
        """
        if estimation_sample_size is None or estimation_sample_size < 1:
            raise ArgumentOutOfRangeError("estimation_sample_size")
        check_not_none(context, "context")

        logger.info(
            "Starting rare event estimation: threshold=%s, boundedness=%s",
            context.threshold_level,
            context.rare_event_performance_boundedness.value,
        )

        execution = self._run(context, rarity, sample_size)

        nominal_parameter = execution.parameters[0]
        reference_parameter = execution.last_parameter

        sample = self.sample(context, estimation_sample_size, reference_parameter)
        performances = self.evaluate_performances(context, sample)

        ratios = [
            context.get_likelihood_ratio(state, nominal_parameter, reference_parameter)
            for state in sample[context.is_rare_event(performances)]
        ]
        rare_event_probability = float(np.sum(ratios)) / estimation_sample_size

        has_converged = context.has_reached_threshold(execution.levels[-1])
        if not has_converged:
            logger.warning(
                "Threshold level %s not reached after %d iterations",
                context.threshold_level,
                execution.number_of_iterations,
            )

        logger.info(
            "Estimated rare event probability %.6g after %d iterations",
            rare_event_probability,
            execution.number_of_iterations,
        )

        return RareEventProbabilityEstimationResults(
            rare_event_probability=rare_event_probability,
            optimal_parameter=reference_parameter,
            has_converged=has_converged,
            levels=execution.levels,
            parameters=execution.parameters,
        )
