"""
Tests for categorical entailments and entailment ensemble classifiers.

Training tests run the Cross-Entropy optimizer on small data sets whose
response is determined, up to noise, by simple rules on the features.
"""

import numpy as np
import pandas as pd
import pytest

from ce_research.analysis.categorical import CategoricalVariable
from ce_research.analysis.entailment import (
    CategoricalEntailment,
    CategoricalEntailmentEnsembleClassifier,
    CategoricalEntailmentEnsembleTrainer,
)
from ce_research.core.errors import (
    ArgumentError,
    ArgumentNullError,
    ArgumentOutOfRangeError,
)
from tests.fixtures import create_categorical_data, create_noisy_categorical_data


def create_variable(name, number_of_categories):
    variable = CategoricalVariable(name)
    for code in range(number_of_categories):
        variable.add(code, f"{name}{code}")
    return variable


@pytest.fixture
def feature_variables():
    return [create_variable("color", 2), create_variable("size", 3)]


@pytest.fixture
def response_variable():
    return create_variable("label", 2)


@pytest.fixture
def classifier(feature_variables, response_variable):
    return CategoricalEntailmentEnsembleClassifier(feature_variables, response_variable)


@pytest.fixture
def categorical_data():
    return create_categorical_data(rows=40)


class TestCategoricalEntailment:
    """Test CategoricalEntailment."""

    def test_validate_premises(self, feature_variables, response_variable):
        entailment = CategoricalEntailment(
            feature_variables, response_variable, [{1}, {0, 1, 2}], 1, 1.0
        )

        assert entailment.validate_premises([1.0, 2.0])
        assert entailment.validate_premises([1.0, 0.0])
        assert not entailment.validate_premises([0.0, 2.0])

    def test_empty_premise_is_unconstrained(self, feature_variables, response_variable):
        entailment = CategoricalEntailment(feature_variables, response_variable, [set(), {2}], 0, 1.0)

        assert entailment.validate_premises([0.0, 2.0])
        assert entailment.validate_premises([1.0, 2.0])
        assert not entailment.validate_premises([1.0, 1.0])

    def test_premises_mask(self, feature_variables, response_variable):
        entailment = CategoricalEntailment(feature_variables, response_variable, [{0}, {1, 2}], 0, 1.0)
        items = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 2.0], [0.0, 2.0]])

        np.testing.assert_array_equal(entailment.premises_mask(items), [False, True, False, True])

    def test_str(self, feature_variables, response_variable):
        entailment = CategoricalEntailment(
            feature_variables, response_variable, [{1}, {0, 1, 2}], 1, 0.75
        )

        assert str(entailment) == (
            "IF color IN {1} AND size IN {0, 1, 2} THEN label IS 1 WITH TRUTH VALUE 0.75"
        )

    def test_invalid_arguments(self, feature_variables, response_variable):
        with pytest.raises(ArgumentNullError):
            CategoricalEntailment(None, response_variable, [{0}, {0}], 0, 1.0)

        with pytest.raises(ArgumentError) as exc_info:
            CategoricalEntailment(feature_variables, response_variable, [{0}], 0, 1.0)
        assert exc_info.value.param_name == "feature_premises"

        with pytest.raises(ArgumentOutOfRangeError) as exc_info:
            CategoricalEntailment(feature_variables, response_variable, [{0}, {0}], 0, 1.5)
        assert exc_info.value.param_name == "truth_value"

    def test_variables_become_read_only(self, feature_variables, response_variable):
        CategoricalEntailment(feature_variables, response_variable, [{0}, {0}], 0, 1.0)

        assert all(variable.is_read_only for variable in feature_variables)
        assert response_variable.is_read_only

    def test_from_representation(self, feature_variables, response_variable):
        representation = np.array([0.0, 1.0, 1.0, 0.0, 1.0, 1.0, 0.0, 0.6])

        entailment = CategoricalEntailment.from_representation(
            representation, feature_variables, response_variable
        )

        assert entailment.feature_premises == [frozenset({1.0}), frozenset({0.0, 2.0})]
        assert entailment.response_conclusion == 0.0
        assert entailment.truth_value == pytest.approx(0.6)

    def test_from_representation_without_response(self, feature_variables, response_variable):
        with pytest.raises(ArgumentError):
            CategoricalEntailment.from_representation(
                np.zeros(8), feature_variables, response_variable
            )


class TestCategoricalEntailmentEnsembleClassifier:
    """Test classification with ensembles of entailments."""

    def test_invalid_variables(self, feature_variables, response_variable):
        with pytest.raises(ArgumentNullError):
            CategoricalEntailmentEnsembleClassifier(None, response_variable)

        with pytest.raises(ArgumentError) as exc_info:
            CategoricalEntailmentEnsembleClassifier([], response_variable)
        assert exc_info.value.param_name == "feature_variables"

        with pytest.raises(ArgumentError) as exc_info:
            CategoricalEntailmentEnsembleClassifier([CategoricalVariable("empty")], response_variable)
        assert exc_info.value.param_name == "feature_variables"

        with pytest.raises(ArgumentNullError):
            CategoricalEntailmentEnsembleClassifier(feature_variables, None)

        with pytest.raises(ArgumentError) as exc_info:
            CategoricalEntailmentEnsembleClassifier(feature_variables, CategoricalVariable("empty"))
        assert exc_info.value.param_name == "response_variable"

    def test_add_validation(self, classifier):
        with pytest.raises(ArgumentNullError):
            classifier.add(None, 0, 1.0)

        with pytest.raises(ArgumentError) as exc_info:
            classifier.add([{0}], 0, 1.0)
        assert exc_info.value.param_name == "feature_premises"

        with pytest.raises(ArgumentError) as exc_info:
            classifier.add([{0}, {5}], 0, 1.0)
        assert exc_info.value.param_name == "feature_premises"

        with pytest.raises(ArgumentError) as exc_info:
            classifier.add([{0}, {1}], 7, 1.0)
        assert exc_info.value.param_name == "response_conclusion"

        with pytest.raises(ArgumentOutOfRangeError) as exc_info:
            classifier.add([{0}, {1}], 0, -0.1)
        assert exc_info.value.param_name == "truth_value"

        assert classifier.entailments == []

    def test_classify_with_perfect_rules(self, classifier, categorical_data):
        classifier.add([{0}, set()], 0, 1.0)
        classifier.add([{1}, set()], 1, 1.0)

        predicted = classifier.classify(categorical_data)

        assert isinstance(predicted, pd.Series)
        assert predicted.name == "label"
        assert predicted.index.equals(categorical_data.index)
        assert classifier.evaluate_accuracy(predicted, categorical_data["label"]) == 1.0

    def test_votes_are_weighted_by_truth_values(self, classifier):
        classifier.add([set(), {0}], 1, 0.9)
        classifier.add([{0}, set()], 0, 0.4)
        data = pd.DataFrame({"color": [0.0, 0.0], "size": [0.0, 1.0]})

        predicted = classifier.classify(data)

        assert list(predicted) == [1.0, 0.0]

    def test_ties_are_broken_reproducibly(self, feature_variables, response_variable, categorical_data):
        first = CategoricalEntailmentEnsembleClassifier(feature_variables, response_variable, random_seed=5)
        second = CategoricalEntailmentEnsembleClassifier(feature_variables, response_variable, random_seed=5)

        predicted = first.classify(categorical_data)

        assert set(predicted.unique()) <= {0.0, 1.0}
        pd.testing.assert_series_equal(predicted, second.classify(categorical_data))

    def test_classify_with_feature_columns(self, classifier):
        classifier.add([{1}, set()], 1, 1.0)
        classifier.add([{0}, set()], 0, 1.0)
        data = pd.DataFrame({"c": [1.0, 0.0], "s": [2.0, 2.0]})

        predicted = classifier.classify(data, feature_columns=["c", "s"])

        assert list(predicted) == [1.0, 0.0]

    def test_classify_missing_columns(self, classifier):
        with pytest.raises(ArgumentError) as exc_info:
            classifier.classify(pd.DataFrame({"color": [0.0]}))
        assert exc_info.value.param_name == "feature_columns"

        with pytest.raises(ArgumentNullError):
            classifier.classify(None)

    def test_evaluate_accuracy(self):
        accuracy = CategoricalEntailmentEnsembleClassifier.evaluate_accuracy(
            [1.0, 0.0, 1.0, 1.0], [1.0, 1.0, 1.0, 0.0]
        )

        assert accuracy == 0.5

    def test_evaluate_accuracy_invalid_arguments(self):
        with pytest.raises(ArgumentNullError):
            CategoricalEntailmentEnsembleClassifier.evaluate_accuracy(None, [1.0])

        with pytest.raises(ArgumentError) as exc_info:
            CategoricalEntailmentEnsembleClassifier.evaluate_accuracy([1.0], [1.0, 0.0])
        assert exc_info.value.param_name == "actual"


class TestTraining:
    """Test training of entailment ensembles by the Cross-Entropy method."""

    def test_trainer_performance(self, feature_variables, response_variable, categorical_data):
        trainer = CategoricalEntailmentEnsembleTrainer(
            [],
            categorical_data[["color", "size"]].to_numpy(),
            categorical_data["label"].to_numpy(),
            feature_variables,
            response_variable,
        )
        perfect = np.array([
            1.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 1.0,
            0.0, 1.0, 1.0, 1.0, 1.0, 0.0, 1.0, 1.0,
        ])

        assert trainer.performance(perfect) == 1.0

    def test_train_jointly(self, categorical_data):
        classifier = CategoricalEntailmentEnsembleClassifier.train(
            categorical_data,
            feature_columns=["color", "size"],
            response_column="label",
            number_of_trained_categorical_entailments=2,
            allow_entailment_partial_truth_values=False,
            train_sequentially=False,
            random_seed=3,
        )

        assert len(classifier.entailments) == 2
        assert [variable.name for variable in classifier.feature_variables] == ["color", "size"]

        predicted = classifier.classify(categorical_data)
        assert classifier.evaluate_accuracy(predicted, categorical_data["label"]) >= 0.75

        # Some trained rule concludes the label from the color alone
        assert any(
            entailment.feature_premises[0] == frozenset({entailment.response_conclusion})
            for entailment in classifier.entailments
        )

    def test_train_sequentially(self):
        data = create_noisy_categorical_data(rows=200)

        classifier = CategoricalEntailmentEnsembleClassifier.train(
            data,
            feature_columns=["color", "size"],
            response_column="label",
            number_of_trained_categorical_entailments=2,
            allow_entailment_partial_truth_values=True,
            train_sequentially=True,
            random_seed=4,
        )

        assert len(classifier.entailments) == 2
        assert all(0.0 <= entailment.truth_value <= 1.0 for entailment in classifier.entailments)
        predicted = classifier.classify(data)
        assert classifier.evaluate_accuracy(predicted, data["label"]) >= 0.6

    def test_train_with_partial_truth_values_and_five_responses(self):
        codes = np.tile(np.arange(5.0), 10)
        data = pd.DataFrame({"grade": codes, "outcome": codes})

        classifier = CategoricalEntailmentEnsembleClassifier.train(
            data,
            feature_columns=["grade"],
            response_column="outcome",
            number_of_trained_categorical_entailments=1,
            allow_entailment_partial_truth_values=True,
            train_sequentially=False,
            random_seed=8,
        )

        (entailment,) = classifier.entailments
        assert 0.0 <= entailment.truth_value <= 1.0
        assert entailment.response_conclusion in classifier.response_variable.category_codes

    def test_add_trained(self, classifier, categorical_data):
        classifier.add([{0}, set()], 0, 1.0)

        classifier.add_trained(
            categorical_data,
            number_of_trained_categorical_entailments=1,
            allow_entailment_partial_truth_values=False,
            train_sequentially=False,
            random_seed=6,
        )

        assert len(classifier.entailments) == 2
        predicted = classifier.classify(categorical_data)
        assert classifier.evaluate_accuracy(predicted, categorical_data["label"]) >= 0.75

    def test_train_invalid_arguments(self, categorical_data):
        with pytest.raises(ArgumentNullError):
            CategoricalEntailmentEnsembleClassifier.train(None, ["color"], "label", 1, False, False)

        with pytest.raises(ArgumentError) as exc_info:
            CategoricalEntailmentEnsembleClassifier.train(categorical_data, ["shape"], "label", 1, False, False)
        assert exc_info.value.param_name == "feature_columns"

        with pytest.raises(ArgumentError) as exc_info:
            CategoricalEntailmentEnsembleClassifier.train(categorical_data, ["color"], "target", 1, False, False)
        assert exc_info.value.param_name == "response_column"

        with pytest.raises(ArgumentOutOfRangeError) as exc_info:
            CategoricalEntailmentEnsembleClassifier.train(categorical_data, ["color"], "label", 0, False, False)
        assert exc_info.value.param_name == "number_of_trained_categorical_entailments"
