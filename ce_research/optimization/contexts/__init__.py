"""
Ready-made system performance optimization contexts.

Each context maps a structured decision space (subsets, partitions, real
vectors, entailment ensembles) onto a parameterized sampling
distribution the optimizer can move towards optimal states.
"""

from ce_research.optimization.contexts.categorical_entailment import (
    CategoricalEntailmentEnsembleOptimizationContext,
)
from ce_research.optimization.contexts.combination import CombinationOptimizationContext
from ce_research.optimization.contexts.continuous import ContinuousOptimizationContext
from ce_research.optimization.contexts.partition import PartitionOptimizationContext

__all__ = [
    "CombinationOptimizationContext",
    "PartitionOptimizationContext",
    "ContinuousOptimizationContext",
    "CategoricalEntailmentEnsembleOptimizationContext",
]
