"""Command-line interface for Cross-Entropy optimization runs.

This module runs the system performance optimizer on a problem described
by a YAML configuration file, optionally repeating the run with
consecutive seeds to assess the stability of the optimum.

Features:
- Combination, partition and continuous contexts
- Objective functions referenced as ``module:function`` paths
- Sequential or parallel sample generation and performance evaluation
- Repeated runs with progress tracking
- JSON or CSV export of the results and convergence plots
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, List, Optional

import pandas as pd
from tqdm import tqdm

from ce_research.core.errors import ArgumentError
from ce_research.core.schema import ConfigValidationError, load_config, resolve_objective
from ce_research.optimization import (
    CombinationOptimizationContext,
    ContinuousOptimizationContext,
    OptimizationGoal,
    ParallelOptions,
    PartitionOptimizationContext,
    SystemPerformanceOptimizationContext,
    SystemPerformanceOptimizationResults,
    SystemPerformanceOptimizer,
)

logger = logging.getLogger(__name__)


def build_context(context_config: dict[str, Any]) -> SystemPerformanceOptimizationContext:
    """Create the optimization context described by a configuration section."""
    objective = resolve_objective(context_config["objective"])
    common = dict(
        optimization_goal=OptimizationGoal(context_config["optimization_goal"]),
        minimum_number_of_iterations=context_config["minimum_number_of_iterations"],
        maximum_number_of_iterations=context_config["maximum_number_of_iterations"],
    )

    context_type = context_config["type"]
    if context_type == "combination":
        return CombinationOptimizationContext(
            objective_function=objective,
            state_dimension=context_config["state_dimension"],
            combination_dimension=context_config["combination_dimension"],
            probability_smoothing_coefficient=context_config["probability_smoothing_coefficient"],
            **common,
        )
    if context_type == "partition":
        return PartitionOptimizationContext(
            objective_function=objective,
            state_dimension=context_config["state_dimension"],
            partition_dimension=context_config["partition_dimension"],
            probability_smoothing_coefficient=context_config["probability_smoothing_coefficient"],
            **common,
        )
    return ContinuousOptimizationContext(
        objective_function=objective,
        initial_arguments=context_config["initial_arguments"],
        mean_smoothing_coefficient=context_config["mean_smoothing_coefficient"],
        standard_deviation_smoothing_coefficient=context_config["standard_deviation_smoothing_coefficient"],
        standard_deviation_smoothing_exponent=context_config["standard_deviation_smoothing_exponent"],
        initial_standard_deviation=context_config["initial_standard_deviation"],
        termination_tolerance=context_config["termination_tolerance"],
        **common,
    )


def build_optimizer(optimizer_config: dict[str, Any], random_seed: Optional[int]) -> SystemPerformanceOptimizer:
    """Create an optimizer with the configured degrees of parallelism."""
    optimizer = SystemPerformanceOptimizer(random_seed=random_seed)
    optimizer.performance_evaluation_parallel_options = ParallelOptions(
        optimizer_config["performance_evaluation_parallelism"]
    )
    optimizer.sample_generation_parallel_options = ParallelOptions(
        optimizer_config["sample_generation_parallelism"]
    )
    return optimizer


def run_optimization(config: dict[str, Any], runs: int = 1, seed: Optional[int] = None) -> List[SystemPerformanceOptimizationResults]:
    """
    Execute the configured optimization one or more times.

    Run i uses seed ``seed + i`` when a seed is given (from the command
    line or the configuration), fresh entropy otherwise.
    """
    optimizer_config = config["optimizer"]
    base_seed = seed if seed is not None else optimizer_config["random_seed"]

    results = []
    for run in tqdm(range(runs), desc="Cross-Entropy runs", unit="run", disable=runs == 1):
        context = build_context(config["context"])
        context.trace_execution = config["trace_execution"]

        run_seed = None if base_seed is None else base_seed + run
        optimizer = build_optimizer(optimizer_config, run_seed)
        results.append(
            optimizer.optimize(
                context,
                rarity=optimizer_config["rarity"],
                sample_size=optimizer_config["sample_size"],
            )
        )
    return results


def results_frame(results: List[SystemPerformanceOptimizationResults]) -> pd.DataFrame:
    """One row per run with its optimum, performance and convergence flag."""
    rows = []
    for run, result in enumerate(results, start=1):
        row = {
            "run": run,
            "optimal_performance": result.optimal_performance,
            "has_converged": result.has_converged,
            "number_of_iterations": result.number_of_iterations,
        }
        for j, value in enumerate(result.optimal_state):
            row[f"x{j}"] = value
        rows.append(row)
    return pd.DataFrame(rows).set_index("run")


def export_results(
    config: dict[str, Any],
    results: List[SystemPerformanceOptimizationResults],
    output_path: Path,
    output_format: str,
) -> None:
    """Write results as JSON (full detail) or CSV (one row per run)."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if output_format == "csv":
        results_frame(results).to_csv(output_path)
        return

    payload = {
        "name": config["name"],
        "context": config["context"],
        "optimizer": config["optimizer"],
        "runs": [result.to_dict() for result in results],
    }
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the argument parser of the ce-optimise command."""
    parser = argparse.ArgumentParser(
        description="Cross-Entropy optimization of a configured problem",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Single run
  ce-optimise rosenbrock.yaml

  # Ten runs with seeds 100..109, exported as CSV
  ce-optimise rosenbrock.yaml --runs 10 --seed 100 --output results.csv --format csv

  # Trace every iteration and save a convergence plot
  ce-optimise rosenbrock.yaml --trace --plot convergence.png
""",
    )

    parser.add_argument("config", help="Path to YAML run configuration")
    parser.add_argument("--runs", type=int, default=1, help="Number of repeated runs (default: 1)")
    parser.add_argument("--seed", type=int, help="Base random seed, overrides optimizer.random_seed")
    parser.add_argument("--output", help="File to export results to")
    parser.add_argument(
        "--format",
        choices=["json", "csv"],
        default="json",
        help="Export format (default: json)",
    )
    parser.add_argument("--plot", help="File to save the convergence plot of the first run to")
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Log a trace of every iteration (overrides trace_execution)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the ce-optimise command."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.trace else getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    if args.runs < 1:
        print("Error: --runs must be positive", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config)
    except (ConfigValidationError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.trace:
        config["trace_execution"] = True

    print("Cross-Entropy Optimizer")
    print(f"Config: {args.config} ({config['name']})")
    print(f"Context: {config['context']['type']}, goal: {config['context']['optimization_goal']}")
    print("=" * 60)

    start_time = time.time()
    try:
        results = run_optimization(config, runs=args.runs, seed=args.seed)
    except (ArgumentError, ConfigValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    summary = results_frame(results)
    print(summary.to_string())
    print("=" * 60)
    print(f"Converged runs: {int(summary['has_converged'].sum())}/{len(results)}")
    performances = summary["optimal_performance"]
    if config["context"]["optimization_goal"] == "minimization":
        print(f"Best performance: {performances.min()}")
    else:
        print(f"Best performance: {performances.max()}")
    print(f"Elapsed: {time.time() - start_time:.2f}s")

    if args.output:
        export_results(config, results, Path(args.output), args.format)
        print(f"Results exported to {args.output}")

    if args.plot:
        from ce_research.optimization.visualization import plot_convergence

        path = plot_convergence(results[0], output_path=args.plot, title=config["name"])
        print(f"Convergence plot saved to {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
