"""
System performance optimization by the Cross-Entropy method.

The optimizer moves the sampling distribution of a
SystemPerformanceOptimizationContext towards states of optimal
performance and reports the optimal state implied by the final parameter.
"""

import logging
import time

from ce_research.core.errors import check_not_none
from ce_research.optimization.base import SystemPerformanceOptimizationContext
from ce_research.optimization.program import CrossEntropyProgram
from ce_research.optimization.types import SystemPerformanceOptimizationResults

__all__ = ["SystemPerformanceOptimizer"]

logger = logging.getLogger(__name__)


class SystemPerformanceOptimizer(CrossEntropyProgram):
    """
    Cross-Entropy optimizer of system performances.

    Example:
        >>> optimizer = SystemPerformanceOptimizer(random_seed=42)
        >>> results = optimizer.optimize(context, rarity=0.1, sample_size=1000)
        >>> results.optimal_state, results.has_converged
    """

    def optimize(
        self,
        context: SystemPerformanceOptimizationContext,
        rarity: float,
        sample_size: int,
    ) -> SystemPerformanceOptimizationResults:
        """
        Run the Cross-Entropy method on an optimization context.

        Args:
            context: Optimization problem
            rarity: Fraction of each sample taken as elite, in (0, 1)
            sample_size: Number of states drawn per iteration

        Returns:
            Optimal state, its performance and the execution history.
            ``has_converged`` is False when the maximum number of iterations
            was reached before the stopping rule fired.

        Raises:
            ArgumentNullError: If context is None
            ArgumentOutOfRangeError: If rarity or sample_size is out of range
            ArgumentError: If rarity leaves an empty elite sample
        """
        check_not_none(context, "context")

        start_time = time.time()
        logger.info(
            "Starting optimization: goal=%s, rarity=%s, sample_size=%d",
            context.optimization_goal.value,
            rarity,
            sample_size,
        )

        execution = self._run(context, rarity, sample_size)

        optimal_parameter = execution.last_parameter
        optimal_state = context.get_optimal_state(optimal_parameter)
        optimal_performance = float(context.performance(optimal_state))
        has_converged = execution.number_of_iterations < context.maximum_number_of_iterations

        logger.info(
            "Optimization finished after %d iterations in %.2fs (converged: %s, performance: %s)",
            execution.number_of_iterations,
            time.time() - start_time,
            has_converged,
            optimal_performance,
        )
        if not has_converged:
            logger.warning(
                "Maximum number of iterations (%d) reached without convergence",
                context.maximum_number_of_iterations,
            )

        return SystemPerformanceOptimizationResults(
            optimal_state=optimal_state,
            optimal_performance=optimal_performance,
            optimal_parameter=optimal_parameter,
            has_converged=has_converged,
            levels=execution.levels,
            parameters=execution.parameters,
        )
