"""
Random sampling routines used by the built-in contexts.

All routines draw from a caller-supplied ``numpy.random.Generator`` and
are vectorized over the rows of the sample.
"""

import math

import numpy as np
from scipy.special import xlogy

__all__ = [
    "conditional_bernoulli_sample",
    "finite_discrete_sample",
    "entropy_truth_value",
]


def conditional_bernoulli_sample(
    rng: np.random.Generator,
    probabilities: np.ndarray,
    subset_size: int,
    sample_size: int,
) -> np.ndarray:
    """
    Draw indicator vectors with exactly ``subset_size`` ones.

    Each row is a draw of independent Bernoulli variables with the given
    success probabilities, conditioned on their sum being ``subset_size``.
    Items are visited in order and included with probability
    ``w_j * e(r - 1, j + 1) / e(r, j)``, where ``w = p / (1 - p)``, ``r`` is
    the number of items still to include and ``e(r, j)`` is the elementary
    symmetric polynomial of degree ``r`` in the weights of items ``j..n-1``.

    Args:
        rng: Generator to draw from
        probabilities: Success probabilities, one per item
        subset_size: Number of ones in every row
        sample_size: Number of rows

    Returns:
        Float array of shape (sample_size, n) holding zeros and ones
    """
    p = np.clip(np.asarray(probabilities, dtype=float).ravel(), 1e-12, 1.0 - 1e-12)
    n = p.size
    if not 0 <= subset_size <= n:
        raise ValueError(f"subset_size must be between 0 and {n}, got {subset_size}")

    weights = p / (1.0 - p)
    weights = weights / weights.max()

    # Elementary symmetric polynomials of the weights of items j..n-1
    polynomials = np.zeros((n + 1, subset_size + 1))
    polynomials[n, 0] = 1.0
    for j in range(n - 1, -1, -1):
        polynomials[j, 0] = 1.0
        polynomials[j, 1:] = polynomials[j + 1, 1:] + weights[j] * polynomials[j + 1, :-1]

    sample = np.zeros((sample_size, n))
    remaining = np.full(sample_size, subset_size)
    uniforms = rng.random((sample_size, n))
    for j in range(n):
        active = remaining > 0
        if not active.any():
            break
        r = remaining[active]
        inclusion = weights[j] * polynomials[j + 1, r - 1] / polynomials[j, r]
        # Items must all be taken once as many remain as are still needed
        inclusion[r >= n - j] = 1.0
        included = np.zeros(sample_size, dtype=bool)
        included[active] = uniforms[active, j] < inclusion
        sample[included, j] = 1.0
        remaining -= included

    return sample


def finite_discrete_sample(
    rng: np.random.Generator,
    masses: np.ndarray,
    sample_size: int,
) -> np.ndarray:
    """
    Draw category indexes column by column.

    Args:
        rng: Generator to draw from
        masses: Array of shape (k, n); column j holds the probability masses
            of categories 0..k-1 for the j-th variable
        sample_size: Number of rows

    Returns:
        Integer array of shape (sample_size, n)
    """
    masses = np.atleast_2d(np.asarray(masses, dtype=float))
    number_of_categories = masses.shape[0]

    cumulative = np.cumsum(masses, axis=0)
    cumulative = cumulative / cumulative[-1]
    uniforms = rng.random((sample_size, masses.shape[1]))

    indexes = (uniforms[:, None, :] >= cumulative[None, :, :]).sum(axis=1)
    return np.minimum(indexes, number_of_categories - 1)


def entropy_truth_value(probabilities: np.ndarray) -> float:
    """
    One minus the normalized entropy of a response distribution.

    Equals ``1 + sum(p * log_k(p))`` for k categories: 1 for a degenerate
    distribution, 0 for the uniform one. The result is clipped to [0, 1].
    """
    p = np.asarray(probabilities, dtype=float).ravel()
    if p.size < 2:
        return 1.0
    return float(np.clip(1.0 + xlogy(p, p).sum() / math.log(p.size), 0.0, 1.0))
