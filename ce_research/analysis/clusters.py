"""
Cluster discovery and explanation by the Cross-Entropy method.

``discover`` partitions the rows of a data matrix by minimizing the
within-part sum of squared deviations. ``explain`` selects the features
that best separate a given clustering, minimizing the Davies-Bouldin
index computed on the selected features only.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from ce_research.core.errors import (
    ArgumentError,
    ArgumentOutOfRangeError,
    MUST_BE_GREATER_THAN,
    check_not_none,
)

__all__ = [
    "davies_bouldin_index",
    "within_sum_of_squares",
    "explain",
    "discover",
]

logger = logging.getLogger(__name__)


def davies_bouldin_index(data: np.ndarray, labels) -> float:
    """
    Davies-Bouldin index of a clustering of the rows of data.

    Lower values mean compact, well separated clusters. Scatters are mean
    Euclidean distances from the cluster centroid.
    """
    data = np.atleast_2d(np.asarray(data, dtype=float))
    labels = np.asarray(labels).ravel()
    clusters = np.unique(labels)

    centroids = np.array([data[labels == c].mean(axis=0) for c in clusters])
    scatters = np.array([
        np.linalg.norm(data[labels == c] - centroids[i], axis=1).mean()
        for i, c in enumerate(clusters)
    ])

    ratios = []
    for i in range(len(clusters)):
        ratios.append(max(
            (scatters[i] + scatters[j]) / np.linalg.norm(centroids[i] - centroids[j])
            for j in range(len(clusters))
            if j != i
        ))
    return float(np.mean(ratios))


def within_sum_of_squares(data: np.ndarray, labels) -> float:
    """Sum over parts of the squared deviations of their rows from the part means."""
    data = np.atleast_2d(np.asarray(data, dtype=float))
    labels = np.asarray(labels).ravel()

    total = 0.0
    for part in np.unique(labels):
        rows = data[labels == part]
        total += float(((rows - rows.mean(axis=0)) ** 2).sum())
    return total


def explain(
    data: np.ndarray,
    labels,
    number_of_explanatory_features: int,
    random_seed: Optional[int] = None,
) -> np.ndarray:
    """
    Select the features that best explain a clustering of the rows of data.

    Args:
        data: Matrix with one item per row and one feature per column
        labels: Cluster label of each row
        number_of_explanatory_features: Number of features to select
        random_seed: Seed of the optimizer's sampling streams

    Returns:
        Sorted column indexes of the selected features

    Raises:
        ArgumentNullError: If data or labels is None
        ArgumentOutOfRangeError: If number_of_explanatory_features is not positive
        ArgumentError: If there are not more features than those to select, or
            labels do not match the rows of data
    """
    from ce_research.optimization.contexts.combination import CombinationOptimizationContext
    from ce_research.optimization.optimizer import SystemPerformanceOptimizer
    from ce_research.optimization.types import OptimizationGoal

    check_not_none(data, "data")
    data = np.atleast_2d(np.asarray(data, dtype=float))

    if number_of_explanatory_features is None or number_of_explanatory_features < 1:
        raise ArgumentOutOfRangeError("number_of_explanatory_features")

    state_dimension = data.shape[1]
    if state_dimension <= number_of_explanatory_features:
        raise ArgumentError(
            "number_of_explanatory_features must be less than the number of columns in data",
            "number_of_explanatory_features",
        )

    check_not_none(labels, "labels")
    labels = np.asarray(labels).ravel()
    if labels.size != data.shape[0]:
        raise ArgumentError("labels must have one entry per row of data", "labels")

    def objective_function(state):
        selected = np.flatnonzero(state == 1.0)
        return davies_bouldin_index(data[:, selected], labels)

    context = CombinationOptimizationContext(
        objective_function=objective_function,
        state_dimension=state_dimension,
        combination_dimension=number_of_explanatory_features,
        probability_smoothing_coefficient=0.8,
        optimization_goal=OptimizationGoal.MINIMIZATION,
        minimum_number_of_iterations=3,
        maximum_number_of_iterations=1000,
    )

    optimizer = SystemPerformanceOptimizer(random_seed=random_seed)
    results = optimizer.optimize(context, rarity=0.01, sample_size=1000 * state_dimension)

    selected = np.flatnonzero(results.optimal_state == 1.0)
    logger.info(
        "Selected features %s (Davies-Bouldin index: %.4f)",
        selected.tolist(),
        results.optimal_performance,
    )
    return selected


def discover(
    data: np.ndarray,
    maximum_number_of_parts: int,
    random_seed: Optional[int] = None,
) -> Dict[int, List[int]]:
    """
    Partition the rows of data into at most maximum_number_of_parts clusters.

    Args:
        data: Matrix with one item per row
        maximum_number_of_parts: Upper bound on the number of clusters
        random_seed: Seed of the optimizer's sampling streams

    Returns:
        Mapping from part id to the sorted row indexes in that part; parts
        left empty by the optimum are omitted

    Raises:
        ArgumentNullError: If data is None
        ArgumentOutOfRangeError: If maximum_number_of_parts is less than 2
        ArgumentError: If there are not more rows than parts
    """
    from ce_research.optimization.contexts.partition import PartitionOptimizationContext
    from ce_research.optimization.optimizer import SystemPerformanceOptimizer
    from ce_research.optimization.types import OptimizationGoal

    check_not_none(data, "data")
    data = np.atleast_2d(np.asarray(data, dtype=float))

    if maximum_number_of_parts is None or maximum_number_of_parts < 2:
        raise ArgumentOutOfRangeError("maximum_number_of_parts", MUST_BE_GREATER_THAN.format(1))

    state_dimension = data.shape[0]
    if state_dimension <= maximum_number_of_parts:
        raise ArgumentError(
            "maximum_number_of_parts must be less than the number of rows in data",
            "maximum_number_of_parts",
        )

    context = PartitionOptimizationContext(
        objective_function=lambda state: within_sum_of_squares(data, state),
        state_dimension=state_dimension,
        partition_dimension=maximum_number_of_parts,
        probability_smoothing_coefficient=0.8,
        optimization_goal=OptimizationGoal.MINIMIZATION,
        minimum_number_of_iterations=3,
        maximum_number_of_iterations=1000,
    )

    optimizer = SystemPerformanceOptimizer(random_seed=random_seed)
    results = optimizer.optimize(context, rarity=0.01, sample_size=500 * maximum_number_of_parts)

    partition = context.get_partition(results.optimal_state)
    logger.info(
        "Discovered %d clusters (within sum of squares: %.4f)",
        len(partition),
        results.optimal_performance,
    )
    return partition
