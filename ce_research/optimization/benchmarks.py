"""
Benchmark objective functions.

Each function takes a state as a 1-D array and returns its performance.
They can be referenced from run configurations, e.g.
``objective: "ce_research.optimization.benchmarks:rosenbrock"``.
"""

import numpy as np

__all__ = ["rosenbrock", "sphere", "bimodal_gaussian"]


def rosenbrock(x: np.ndarray) -> float:
    """Rosenbrock function, minimized at (1, ..., 1) with value 0."""
    x = np.asarray(x, dtype=float)
    return float(np.sum(100.0 * (x[1:] - x[:-1] ** 2) ** 2 + (1.0 - x[:-1]) ** 2))


def sphere(x: np.ndarray) -> float:
    """Sum of squares, minimized at the origin."""
    x = np.asarray(x, dtype=float)
    return float(np.dot(x, x))


def bimodal_gaussian(x: np.ndarray) -> float:
    """
    Two Gaussian bumps, at 2 with height 1 and at -2 with height 0.8.

    The global maximum lies at x = 2, the local one at x = -2.
    """
    x = float(np.asarray(x, dtype=float).ravel()[0])
    return float(np.exp(-((x - 2.0) ** 2)) + 0.8 * np.exp(-((x + 2.0) ** 2)))
