"""
Tests for the rare event probability estimator.

Estimates are compared with closed-form probabilities of events on
exponential variables, and with the known probability of the long
shortest path in a bridge network.
"""

import math

import numpy as np
import pytest

from ce_research.core.errors import ArgumentNullError, ArgumentOutOfRangeError
from ce_research.optimization.estimator import RareEventProbabilityEstimator
from ce_research.optimization.types import ParallelOptions
from tests.fixtures.contexts import (
    ExponentialHeadContext,
    ExponentialTailContext,
    ShortestPathContext,
)


@pytest.fixture
def estimator():
    return RareEventProbabilityEstimator(random_seed=12345)


class TestRareEventProbabilityEstimator:
    """Test RareEventProbabilityEstimator.estimate."""

    def test_exponential_tail(self, estimator):
        context = ExponentialTailContext(threshold_level=10.0)

        results = estimator.estimate(context, rarity=0.1, sample_size=1000, estimation_sample_size=10000)

        assert results.has_converged
        assert results.levels[-1] == 10.0
        assert results.rare_event_probability == pytest.approx(math.exp(-10.0), rel=0.15)

    def test_exponential_head(self, estimator):
        context = ExponentialHeadContext(threshold_level=1e-3)

        results = estimator.estimate(context, rarity=0.1, sample_size=1000, estimation_sample_size=10000)

        assert results.has_converged
        assert results.levels[-1] == 1e-3
        assert results.rare_event_probability == pytest.approx(-math.expm1(-1e-3), rel=0.05)

    def test_shortest_path(self, estimator):
        context = ShortestPathContext(threshold_level=2.0)

        results = estimator.estimate(context, rarity=0.1, sample_size=1000, estimation_sample_size=10000)

        assert results.has_converged
        assert results.rare_event_probability == pytest.approx(1.34e-5, rel=0.3)
        # Edges shared by two paths are sampled longer than nominal
        assert np.all(results.optimal_parameter[0, :2] > ShortestPathContext.NOMINAL_MEANS[:2])

    def test_histories(self, estimator):
        context = ExponentialTailContext(threshold_level=10.0)

        results = estimator.estimate(context, rarity=0.1, sample_size=1000, estimation_sample_size=1000)

        assert len(results.parameters) == results.number_of_iterations + 1
        np.testing.assert_array_equal(results.parameters[0], context.initial_parameter)
        np.testing.assert_array_equal(results.optimal_parameter, results.parameters[-1])
        assert results.levels[-1] == context.threshold_level

    def test_iteration_cap(self, estimator):
        context = ShortestPathContext(threshold_level=2.0, maximum_number_of_iterations=1)

        results = estimator.estimate(context, rarity=0.1, sample_size=1000, estimation_sample_size=1000)

        assert results.number_of_iterations == 1
        assert not results.has_converged
        assert results.rare_event_probability >= 0.0

    def test_parallel_execution(self):
        estimator = RareEventProbabilityEstimator(random_seed=99)
        estimator.sample_generation_parallel_options = ParallelOptions(4)
        estimator.performance_evaluation_parallel_options = ParallelOptions(4)

        results = estimator.estimate(
            ExponentialTailContext(threshold_level=10.0),
            rarity=0.1,
            sample_size=1000,
            estimation_sample_size=10000,
        )

        assert results.has_converged
        assert results.rare_event_probability == pytest.approx(math.exp(-10.0), rel=0.15)

    def test_invalid_estimation_sample_size(self, estimator):
        with pytest.raises(ArgumentOutOfRangeError) as exc_info:
            estimator.estimate(None, rarity=0.1, sample_size=100, estimation_sample_size=0)
        assert exc_info.value.param_name == "estimation_sample_size"

    def test_null_context(self, estimator):
        with pytest.raises(ArgumentNullError) as exc_info:
            estimator.estimate(None, rarity=0.1, sample_size=100, estimation_sample_size=100)
        assert exc_info.value.param_name == "context"

    def test_invalid_rarity(self, estimator):
        with pytest.raises(ArgumentOutOfRangeError) as exc_info:
            estimator.estimate(ExponentialTailContext(), rarity=1.0, sample_size=100, estimation_sample_size=100)
        assert exc_info.value.param_name == "rarity"
