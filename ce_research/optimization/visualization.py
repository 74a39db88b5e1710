"""
Visualization of Cross-Entropy executions.

Plots the level reached at each iteration together with the trajectory
of the sampling parameter entries.
"""

from pathlib import Path
from typing import Optional, Union

import matplotlib.pyplot as plt
import numpy as np

from ce_research.optimization.types import (
    RareEventProbabilityEstimationResults,
    SystemPerformanceOptimizationResults,
)

__all__ = ["plot_convergence"]

# Parameters with more entries are summarized instead of drawn entry by entry
MAX_PLOTTED_PARAMETER_ENTRIES = 20


def plot_convergence(
    results: Union[SystemPerformanceOptimizationResults, RareEventProbabilityEstimationResults],
    output_path: Optional[Union[str, Path]] = None,
    title: Optional[str] = None,
) -> Optional[str]:
    """
    Plot levels and parameter trajectories of an execution.

    Args:
        results: Results holding the level and parameter histories
        output_path: File to save the figure to; the figure is shown if None
        title: Figure title

    Returns:
        Path to the saved figure, or None when shown interactively
    """
    if not results.levels:
        raise ValueError("Results hold no iteration history")

    iterations = np.arange(1, len(results.levels) + 1)
    parameters = np.array([np.asarray(p, dtype=float).ravel() for p in results.parameters])

    fig, (level_ax, parameter_ax) = plt.subplots(2, 1, figsize=(10, 8), sharex=True)

    level_ax.plot(iterations, results.levels, "o-", linewidth=2, markersize=4, label="Level")
    if isinstance(results, RareEventProbabilityEstimationResults):
        level_ax.set_title("Level raising")
    level_ax.set_ylabel("Level")
    level_ax.legend()
    level_ax.grid(True, alpha=0.3)

    # Entry 0 of the history is the initial parameter
    parameter_iterations = np.arange(0, parameters.shape[0])
    if parameters.shape[1] <= MAX_PLOTTED_PARAMETER_ENTRIES:
        for j in range(parameters.shape[1]):
            parameter_ax.plot(parameter_iterations, parameters[:, j], linewidth=1.5, label=f"p[{j}]")
        parameter_ax.legend(loc="best", fontsize="small", ncol=2)
    else:
        parameter_ax.fill_between(
            parameter_iterations,
            parameters.min(axis=1),
            parameters.max(axis=1),
            alpha=0.3,
            label="Range",
        )
        parameter_ax.plot(parameter_iterations, parameters.mean(axis=1), "r-", linewidth=2, label="Mean")
        parameter_ax.legend()

    parameter_ax.set_xlabel("Iteration")
    parameter_ax.set_ylabel("Parameter")
    parameter_ax.grid(True, alpha=0.3)

    fig.suptitle(title or "Cross-Entropy Convergence")
    plt.tight_layout()

    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        return str(output_path)

    plt.show()
    return None
