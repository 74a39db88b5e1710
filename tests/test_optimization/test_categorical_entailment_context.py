"""Tests for the categorical entailment ensemble optimization context."""

import numpy as np
import pytest

from ce_research.analysis.categorical import CategoricalVariable
from ce_research.core.errors import (
    ArgumentError,
    ArgumentNullError,
    ArgumentOutOfRangeError,
)
from ce_research.optimization.contexts import CategoricalEntailmentEnsembleOptimizationContext
from ce_research.optimization.types import OptimizationGoal


def create_context(**overrides):
    arguments = dict(
        objective_function=lambda state: float(state.sum()),
        feature_category_counts=[2, 3],
        number_of_response_categories=2,
        number_of_categorical_entailments=1,
        allow_entailment_partial_truth_values=False,
        probability_smoothing_coefficient=0.9,
        optimization_goal=OptimizationGoal.MAXIMIZATION,
        minimum_number_of_iterations=10,
        maximum_number_of_iterations=1000,
    )
    arguments.update(overrides)
    return CategoricalEntailmentEnsembleOptimizationContext(**arguments)


def create_variable(name, number_of_categories):
    variable = CategoricalVariable(name)
    for code in range(number_of_categories):
        variable.add(code, f"{name}{code}")
    return variable


@pytest.fixture
def variables():
    return [create_variable("color", 2), create_variable("size", 3)], create_variable("label", 2)


class TestCategoricalEntailmentEnsembleOptimizationContext:
    """Test CategoricalEntailmentEnsembleOptimizationContext."""

    def test_dimensions(self):
        context = create_context(number_of_categorical_entailments=3)

        assert context.overall_number_of_feature_categories == 5
        assert context.entailment_parameter_length == 7
        assert context.entailment_representation_length == 8
        assert context.state_dimension == 24
        assert context.initial_parameter.shape == (1, 21)

    def test_initial_parameter(self):
        context = create_context(number_of_response_categories=4)

        np.testing.assert_allclose(
            context.initial_parameter,
            [[0.5, 0.5, 0.5, 0.5, 0.5, 0.25, 0.25, 0.25, 0.25]],
        )

    @pytest.mark.parametrize(
        "overrides, error, param_name",
        [
            ({"objective_function": None}, ArgumentNullError, "objective_function"),
            ({"feature_category_counts": None}, ArgumentNullError, "feature_category_counts"),
            ({"feature_category_counts": []}, ArgumentError, "feature_category_counts"),
            ({"feature_category_counts": [2, 0]}, ArgumentOutOfRangeError, "feature_category_counts"),
            ({"number_of_response_categories": 0}, ArgumentOutOfRangeError, "number_of_response_categories"),
            ({"number_of_categorical_entailments": 0}, ArgumentOutOfRangeError, "number_of_categorical_entailments"),
            ({"probability_smoothing_coefficient": 0.0}, ArgumentOutOfRangeError, "probability_smoothing_coefficient"),
            ({"probability_smoothing_coefficient": 1.0}, ArgumentOutOfRangeError, "probability_smoothing_coefficient"),
        ],
    )
    def test_invalid_arguments(self, overrides, error, param_name):
        with pytest.raises(error) as exc_info:
            create_context(**overrides)
        assert exc_info.value.param_name == param_name

    def test_partial_sample(self):
        context = create_context(number_of_categorical_entailments=2)

        sample = context.partial_sample(np.random.default_rng(0), context.initial_parameter, 300)

        assert sample.shape == (300, 16)
        blocks = sample.reshape(300, 2, 8)
        assert set(np.unique(blocks[:, :, :5])) <= {0.0, 1.0}
        np.testing.assert_array_equal(blocks[:, :, 5:7].sum(axis=2), np.ones((300, 2)))
        np.testing.assert_array_equal(blocks[:, :, 7], np.ones((300, 2)))

    def test_partial_truth_values(self):
        context = create_context(allow_entailment_partial_truth_values=True)

        sample = context.partial_sample(np.random.default_rng(0), context.initial_parameter, 10)

        # Uniform response probabilities have no truth
        np.testing.assert_allclose(sample[:, 7], np.zeros(10), atol=1e-12)

    def test_update_parameter_drops_truth_values(self):
        context = create_context()
        elite = np.array([
            [1.0, 0.0, 1.0, 1.0, 0.0, 0.0, 1.0, 1.0],
            [1.0, 1.0, 0.0, 1.0, 0.0, 1.0, 0.0, 1.0],
        ])

        parameter = context.update_parameter([context.initial_parameter], elite)

        np.testing.assert_allclose(parameter, [[1.0, 0.5, 0.5, 1.0, 0.0, 0.5, 0.5]])

    def test_smooth_parameter(self):
        context = create_context()
        previous = context.initial_parameter
        current = np.ones((1, 7))

        smoothed = context.smooth_parameter([previous, current])

        np.testing.assert_allclose(smoothed, 0.9 * current + 0.1 * previous)

    def test_get_optimal_state(self):
        context = create_context(allow_entailment_partial_truth_values=True)
        parameter = np.array([[0.9, 0.1, 0.6, 0.4, 0.2, 1.0, 0.0]])

        state = context.get_optimal_state(parameter)

        np.testing.assert_allclose(state, [1.0, 0.0, 1.0, 0.0, 0.0, 1.0, 0.0, 1.0])

    def test_get_optimal_state_breaks_ties(self):
        context = create_context()

        state = context.get_optimal_state(context.initial_parameter)

        assert state[5] + state[6] == 1.0
        assert state[7] == 1.0

    def test_get_classifier(self, variables):
        feature_variables, response_variable = variables
        context = create_context(number_of_categorical_entailments=2)
        state = np.array([
            1.0, 0.0, 1.0, 1.0, 1.0, 0.0, 1.0, 1.0,
            0.0, 1.0, 0.0, 0.0, 1.0, 1.0, 0.0, 0.5,
        ])

        classifier = context.get_categorical_entailment_ensemble_classifier(
            state, feature_variables, response_variable
        )

        first, second = classifier.entailments
        assert first.feature_premises == [frozenset({0.0}), frozenset({0.0, 1.0, 2.0})]
        assert first.response_conclusion == 1.0
        assert first.truth_value == 1.0
        assert second.feature_premises == [frozenset({1.0}), frozenset({2.0})]
        assert second.response_conclusion == 0.0
        assert second.truth_value == 0.5

    def test_get_classifier_from_uniform_response_probabilities(self):
        context = create_context(
            feature_category_counts=[3],
            number_of_response_categories=5,
            allow_entailment_partial_truth_values=True,
        )

        classifier = context.get_categorical_entailment_ensemble_classifier(
            context.get_optimal_state(context.initial_parameter),
            [create_variable("grade", 3)],
            create_variable("outcome", 5),
        )

        (entailment,) = classifier.entailments
        assert entailment.truth_value == pytest.approx(0.0, abs=1e-12)

    def test_get_classifier_invalid_arguments(self, variables):
        feature_variables, response_variable = variables
        context = create_context()
        state = np.array([1.0, 0.0, 1.0, 1.0, 1.0, 0.0, 1.0, 1.0])

        with pytest.raises(ArgumentNullError):
            context.get_categorical_entailment_ensemble_classifier(None, feature_variables, response_variable)

        with pytest.raises(ArgumentError) as exc_info:
            context.get_categorical_entailment_ensemble_classifier(state[:-1], feature_variables, response_variable)
        assert exc_info.value.param_name == "state"

        with pytest.raises(ArgumentError) as exc_info:
            context.get_categorical_entailment_ensemble_classifier(state, feature_variables[:1], response_variable)
        assert exc_info.value.param_name == "feature_variables"

        with pytest.raises(ArgumentError) as exc_info:
            context.get_categorical_entailment_ensemble_classifier(
                state, [feature_variables[0], create_variable("size", 2)], response_variable
            )
        assert exc_info.value.param_name == "feature_variables"

        with pytest.raises(ArgumentError) as exc_info:
            context.get_categorical_entailment_ensemble_classifier(
                state, feature_variables, create_variable("label", 3)
            )
        assert exc_info.value.param_name == "response_variable"
