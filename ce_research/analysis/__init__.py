"""Categorical and cluster analysis modules for the ce_research framework."""

from ce_research.analysis.categorical import CategoricalVariable, Category
from ce_research.analysis.entailment import (
    CategoricalEntailment,
    CategoricalEntailmentEnsembleClassifier,
    CategoricalEntailmentEnsembleTrainer,
)
from ce_research.analysis.clusters import (
    davies_bouldin_index,
    discover,
    explain,
    within_sum_of_squares,
)

__all__ = [
    "Category",
    "CategoricalVariable",
    "CategoricalEntailment",
    "CategoricalEntailmentEnsembleClassifier",
    "CategoricalEntailmentEnsembleTrainer",
    "davies_bouldin_index",
    "within_sum_of_squares",
    "explain",
    "discover",
]
