"""Tests for the sampling routines used by the built-in contexts."""

import numpy as np
import pytest

from ce_research.optimization.sampling import (
    conditional_bernoulli_sample,
    entropy_truth_value,
    finite_discrete_sample,
)


@pytest.fixture
def rng():
    return np.random.default_rng(2024)


class TestConditionalBernoulliSample:
    """Test fixed-size sampling with unequal probabilities."""

    def test_every_row_has_subset_size_ones(self, rng):
        sample = conditional_bernoulli_sample(rng, [0.1, 0.5, 0.9, 0.3, 0.7, 0.2], 3, 500)

        assert sample.shape == (500, 6)
        assert set(np.unique(sample)) <= {0.0, 1.0}
        np.testing.assert_array_equal(sample.sum(axis=1), np.full(500, 3.0))

    def test_equal_probabilities_give_uniform_inclusion(self, rng):
        sample = conditional_bernoulli_sample(rng, np.full(5, 0.5), 2, 20000)

        np.testing.assert_allclose(sample.mean(axis=0), np.full(5, 0.4), atol=0.02)

    def test_higher_probabilities_are_included_more_often(self, rng):
        sample = conditional_bernoulli_sample(rng, [0.05, 0.2, 0.5, 0.8, 0.95], 2, 20000)

        inclusion = sample.mean(axis=0)
        assert np.all(np.diff(inclusion) > 0)

    def test_degenerate_probabilities(self, rng):
        sample = conditional_bernoulli_sample(rng, [1.0, 0.0, 1.0, 0.0], 2, 100)

        np.testing.assert_array_equal(sample, np.tile([1.0, 0.0, 1.0, 0.0], (100, 1)))

    def test_full_and_empty_subsets(self, rng):
        np.testing.assert_array_equal(conditional_bernoulli_sample(rng, [0.2, 0.4], 2, 10), np.ones((10, 2)))
        np.testing.assert_array_equal(conditional_bernoulli_sample(rng, [0.2, 0.4], 0, 10), np.zeros((10, 2)))

    def test_invalid_subset_size(self, rng):
        with pytest.raises(ValueError):
            conditional_bernoulli_sample(rng, [0.2, 0.4], 3, 10)


class TestFiniteDiscreteSample:
    """Test column-wise finite discrete sampling."""

    def test_shape_and_range(self, rng):
        masses = np.full((3, 4), 1.0 / 3.0)

        sample = finite_discrete_sample(rng, masses, 1000)

        assert sample.shape == (1000, 4)
        assert sample.min() >= 0
        assert sample.max() <= 2

    def test_frequencies_match_masses(self, rng):
        masses = np.array([[0.2, 1.0], [0.5, 0.0], [0.3, 0.0]])

        sample = finite_discrete_sample(rng, masses, 20000)

        frequencies = [np.mean(sample[:, 0] == k) for k in range(3)]
        np.testing.assert_allclose(frequencies, [0.2, 0.5, 0.3], atol=0.02)
        np.testing.assert_array_equal(sample[:, 1], np.zeros(20000))

    def test_unnormalized_masses(self, rng):
        sample = finite_discrete_sample(rng, np.array([[0.0], [2.0]]), 50)

        np.testing.assert_array_equal(sample[:, 0], np.ones(50))


class TestEntropyTruthValue:
    """Test the entropy based truth value."""

    def test_degenerate_distribution(self):
        assert entropy_truth_value([0.0, 1.0, 0.0]) == pytest.approx(1.0)

    def test_uniform_distribution(self):
        assert entropy_truth_value(np.full(4, 0.25)) == pytest.approx(0.0)

    @pytest.mark.parametrize("number_of_categories", range(2, 12))
    def test_uniform_distribution_stays_in_unit_interval(self, number_of_categories):
        truth_value = entropy_truth_value(np.full(number_of_categories, 1.0 / number_of_categories))

        assert 0.0 <= truth_value <= 1.0
        assert truth_value == pytest.approx(0.0, abs=1e-12)

    def test_intermediate_distribution(self):
        p = np.array([0.8, 0.2])
        expected = 1.0 + (0.8 * np.log(0.8) + 0.2 * np.log(0.2)) / np.log(2.0)

        assert entropy_truth_value(p) == pytest.approx(expected)
        assert 0.0 < entropy_truth_value(p) < 1.0

    def test_single_category(self):
        assert entropy_truth_value([1.0]) == 1.0
