#!/usr/bin/env python3
"""
Cross-Entropy Demo

This script demonstrates the two uses of the Cross-Entropy engine:
1. Estimating the probability that the shortest path of a small bridge
   network with exponential edge lengths exceeds a threshold
2. Training an ensemble of categorical entailments that classifies a
   synthetic categorical data set

The level history of the estimation is plotted to rare_event_levels.png.
"""

import logging

import numpy as np
import pandas as pd

from ce_research.analysis import CategoricalEntailmentEnsembleClassifier
from ce_research.optimization import (
    RareEventPerformanceBoundedness,
    RareEventProbabilityEstimationContext,
    RareEventProbabilityEstimator,
)
from ce_research.optimization.visualization import plot_convergence


class BridgeNetworkContext(RareEventProbabilityEstimationContext):
    """Shortest path through five edges with exponential lengths."""

    def __init__(self, edge_means, threshold_level):
        super().__init__(
            state_dimension=5,
            initial_parameter=np.array([edge_means], dtype=float),
            threshold_level=threshold_level,
            rare_event_performance_boundedness=RareEventPerformanceBoundedness.LOWER,
        )

    def performance(self, state):
        x = np.asarray(state, dtype=float).ravel()
        return float(min(x[0] + x[3], x[0] + x[2] + x[4], x[1] + x[4], x[1] + x[2] + x[3]))

    def partial_sample(self, rng, parameter, sample_size):
        return rng.exponential(parameter[0], size=(sample_size, self.state_dimension))

    def get_likelihood_ratio(self, state, nominal_parameter, reference_parameter):
        u = np.asarray(nominal_parameter, dtype=float).ravel()
        v = np.asarray(reference_parameter, dtype=float).ravel()
        x = np.asarray(state, dtype=float).ravel()
        return float(np.exp(-np.sum(x * (1.0 / u - 1.0 / v))) * np.prod(v / u))

    def update_parameter(self, parameters, elite_sample):
        nominal, reference = parameters[0], parameters[-1]
        weights = np.array([self.get_likelihood_ratio(x, nominal, reference) for x in elite_sample])
        return (weights @ elite_sample / weights.sum()).reshape(1, -1)


def estimate_shortest_path_probability():
    """Estimate P(shortest path >= 2) for the bridge network."""
    print("\n" + "=" * 60)
    print("RARE EVENT PROBABILITY ESTIMATION")
    print("=" * 60)

    context = BridgeNetworkContext([0.25, 0.4, 0.1, 0.3, 0.2], threshold_level=2.0)
    estimator = RareEventProbabilityEstimator(random_seed=123)

    results = estimator.estimate(context, rarity=0.1, sample_size=1000, estimation_sample_size=100000)

    print(f"Iterations:            {results.number_of_iterations}")
    print(f"Levels:                {', '.join(f'{level:.3f}' for level in results.levels)}")
    print(f"Reference edge means:  {np.round(results.optimal_parameter[0], 3)}")
    print(f"Estimated probability: {results.rare_event_probability:.3e}")

    path = plot_convergence(results, output_path="rare_event_levels.png", title="Bridge network")
    print(f"Level plot saved to {path}")


def create_survey_data(rows=300, seed=42):
    """Synthetic answers whose response follows a two-feature rule, with noise."""
    rng = np.random.default_rng(seed)
    region = rng.integers(0, 3, size=rows).astype(float)
    plan = rng.integers(0, 2, size=rows).astype(float)
    renewed = ((region != 2.0) & (plan == 1.0)).astype(float)
    flipped = rng.random(rows) < 0.05
    renewed[flipped] = 1.0 - renewed[flipped]
    return pd.DataFrame({"region": region, "plan": plan, "renewed": renewed})


def train_entailment_classifier():
    """Train a two-entailment ensemble and report its accuracy."""
    print("\n" + "=" * 60)
    print("CATEGORICAL ENTAILMENT ENSEMBLE TRAINING")
    print("=" * 60)

    data = create_survey_data()
    classifier = CategoricalEntailmentEnsembleClassifier.train(
        data,
        feature_columns=["region", "plan"],
        response_column="renewed",
        number_of_trained_categorical_entailments=2,
        allow_entailment_partial_truth_values=True,
        train_sequentially=False,
        random_seed=11,
    )

    for entailment in classifier.entailments:
        print(entailment)

    predicted = classifier.classify(data)
    accuracy = classifier.evaluate_accuracy(predicted, data["renewed"])
    print(f"Training accuracy: {accuracy:.2%}")


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s: %(message)s")

    estimate_shortest_path_probability()
    train_entailment_classifier()


if __name__ == "__main__":
    main()
