"""
Categorical entailments and ensemble classifiers built on them.

An ensemble classifies an item by letting every entailment whose
premises hold for the item vote for its response conclusion, with a
weight equal to its truth value. The response with most votes wins;
ties are broken at random. Ensembles can be trained by the Cross-Entropy
method to maximize their accuracy on a categorical data set.
"""

import logging
from typing import Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from ce_research.analysis.categorical import CategoricalVariable
from ce_research.core.errors import (
    ArgumentError,
    ArgumentOutOfRangeError,
    MUST_BE_IN_CLOSED_INTERVAL,
    check_not_none,
)

__all__ = [
    "CategoricalEntailment",
    "CategoricalEntailmentEnsembleClassifier",
    "CategoricalEntailmentEnsembleTrainer",
]

logger = logging.getLogger(__name__)


class CategoricalEntailment:
    """
    A rule "IF f1 IN P1 AND ... AND fn IN Pn THEN r IS c WITH TRUTH VALUE t".

    A premise constrains its feature only if it is a non-empty proper
    subset of the feature's category codes; empty or full premises are
    always satisfied.
    """

    def __init__(
        self,
        feature_variables: Sequence[CategoricalVariable],
        response_variable: CategoricalVariable,
        feature_premises: Sequence[Iterable[float]],
        response_conclusion: float,
        truth_value: float,
    ):
        check_not_none(feature_variables, "feature_variables")
        check_not_none(response_variable, "response_variable")
        check_not_none(feature_premises, "feature_premises")

        if len(feature_premises) != len(feature_variables):
            raise ArgumentError(
                "feature_premises must have as many premises as feature variables",
                "feature_premises",
            )

        if not 0.0 <= truth_value <= 1.0:
            raise ArgumentOutOfRangeError("truth_value", MUST_BE_IN_CLOSED_INTERVAL.format(0.0, 1.0))

        self.feature_variables: List[CategoricalVariable] = list(feature_variables)
        self.response_variable = response_variable
        self.feature_premises: List[frozenset] = [
            frozenset(float(code) for code in premise) for premise in feature_premises
        ]
        self.response_conclusion = float(response_conclusion)
        self.truth_value = float(truth_value)

        for variable in self.feature_variables:
            variable.set_as_read_only()
        response_variable.set_as_read_only()

        # (feature position, sorted premise codes) of constraining premises
        self._constraints = [
            (j, np.array(sorted(premise)))
            for j, (premise, variable) in enumerate(zip(self.feature_premises, self.feature_variables))
            if premise and premise < frozenset(variable.category_codes)
        ]

    @classmethod
    def from_representation(
        cls,
        representation: np.ndarray,
        feature_variables: Sequence[CategoricalVariable],
        response_variable: CategoricalVariable,
    ) -> "CategoricalEntailment":
        """
        Decode an entailment from its numeric representation.

        The representation holds one bit per feature category (1 meaning
        the category belongs to the premise), a one-hot block over the
        response categories and the truth value.
        """
        representation = np.asarray(representation, dtype=float).ravel()

        position = 0
        premises = []
        for variable in feature_variables:
            bits = representation[position:position + variable.number_of_categories]
            premises.append({code for code, bit in zip(variable.category_codes, bits) if bit == 1.0})
            position += variable.number_of_categories

        response_bits = representation[position:position + response_variable.number_of_categories]
        selected = np.flatnonzero(response_bits == 1.0)
        if selected.size == 0:
            raise ArgumentError("representation selects no response category", "representation")
        conclusion = response_variable.category_codes[selected[0]]
        position += response_variable.number_of_categories

        return cls(feature_variables, response_variable, premises, conclusion, representation[position])

    def validate_premises(self, item: Sequence[float]) -> bool:
        """Whether an item, given as feature codes, satisfies every premise."""
        item = np.asarray(item, dtype=float).ravel()
        return all(item[j] in set(codes) for j, codes in self._constraints)

    def premises_mask(self, items: np.ndarray) -> np.ndarray:
        """Boolean mask of the rows of items satisfying every premise."""
        items = np.atleast_2d(np.asarray(items, dtype=float))
        mask = np.ones(items.shape[0], dtype=bool)
        for j, codes in self._constraints:
            mask &= np.isin(items[:, j], codes)
        return mask

    def __str__(self) -> str:
        constrained = {j: codes for j, codes in self._constraints}
        premises = []
        for j, variable in enumerate(self.feature_variables):
            codes = constrained[j] if j in constrained else variable.category_codes
            premises.append(f"{variable.name} IN {{{', '.join(f'{code:g}' for code in codes)}}}")
        return (
            f"IF {' AND '.join(premises)} "
            f"THEN {self.response_variable.name} IS {self.response_conclusion:g} "
            f"WITH TRUTH VALUE {self.truth_value:g}"
        )

    def __repr__(self) -> str:
        return f"CategoricalEntailment({self})"


def _classify(
    entailments: Sequence[CategoricalEntailment],
    items: np.ndarray,
    response_variable: CategoricalVariable,
    rng: np.random.Generator,
) -> np.ndarray:
    """Predicted response codes of the rows of items."""
    items = np.atleast_2d(np.asarray(items, dtype=float))
    response_codes = np.asarray(response_variable.category_codes, dtype=float)

    votes = np.zeros((items.shape[0], response_codes.size))
    for entailment in entailments:
        mask = entailment.premises_mask(items)
        votes[mask, response_variable.index_of(entailment.response_conclusion)] += entailment.truth_value

    is_maximum = votes == votes.max(axis=1, keepdims=True)
    number_of_maximums = is_maximum.sum(axis=1)
    # Pick one of the maximum votes uniformly at random
    position = np.floor(number_of_maximums * rng.random(items.shape[0]))
    chosen = np.argmax(np.cumsum(is_maximum, axis=1) > position[:, None], axis=1)

    return response_codes[chosen]


class CategoricalEntailmentEnsembleClassifier:
    """
    Classifier voting with an ensemble of categorical entailments.

    Example:
        >>> classifier = CategoricalEntailmentEnsembleClassifier.train(
        ...     data, ["color", "size"], "label",
        ...     number_of_trained_categorical_entailments=2,
        ...     allow_entailment_partial_truth_values=False,
        ...     train_sequentially=True,
        ... )
        >>> predicted = classifier.classify(data)
        >>> CategoricalEntailmentEnsembleClassifier.evaluate_accuracy(predicted, data["label"])
    """

    def __init__(
        self,
        feature_variables: Sequence[CategoricalVariable],
        response_variable: CategoricalVariable,
        random_seed: Optional[int] = 777777,
    ):
        """
        Initialize an empty ensemble.

        Args:
            feature_variables: Variables the premises refer to
            response_variable: Variable the conclusions refer to
            random_seed: Seed used to break ties among votes

        Raises:
            ArgumentNullError: If a variable is None
            ArgumentError: If there are no features or a variable has no categories
        """
        check_not_none(feature_variables, "feature_variables")
        if len(feature_variables) == 0:
            raise ArgumentError("Parameter feature_variables must be non empty", "feature_variables")
        for j, variable in enumerate(feature_variables):
            if variable.number_of_categories == 0:
                raise ArgumentError(f"The {j}-th feature variable has no categories", "feature_variables")

        check_not_none(response_variable, "response_variable")
        if response_variable.number_of_categories == 0:
            raise ArgumentError("The response variable has no categories", "response_variable")

        self._feature_variables: List[CategoricalVariable] = list(feature_variables)
        for variable in self._feature_variables:
            variable.set_as_read_only()
        self._response_variable = response_variable
        response_variable.set_as_read_only()

        self._entailments: List[CategoricalEntailment] = []
        self._rng = np.random.default_rng(random_seed)

    @property
    def feature_variables(self) -> List[CategoricalVariable]:
        return list(self._feature_variables)

    @property
    def response_variable(self) -> CategoricalVariable:
        return self._response_variable

    @property
    def entailments(self) -> List[CategoricalEntailment]:
        return list(self._entailments)

    def add(
        self,
        feature_premises: Sequence[Iterable[float]],
        response_conclusion: float,
        truth_value: float,
    ) -> CategoricalEntailment:
        """
        Add an entailment to the ensemble.

        Args:
            feature_premises: For each feature, the codes of its premise
            response_conclusion: Code of the concluded response category
            truth_value: Weight of the entailment's vote, in [0, 1]

        Raises:
            ArgumentNullError: If feature_premises is None
            ArgumentError: If the premises do not match the features or the
                response code is unknown
            ArgumentOutOfRangeError: If truth_value is outside [0, 1]
        """
        check_not_none(feature_premises, "feature_premises")

        if len(feature_premises) != len(self._feature_variables):
            raise ArgumentError(
                "feature_premises must have as many premises as feature variables",
                "feature_premises",
            )

        for j, (premise, variable) in enumerate(zip(feature_premises, self._feature_variables)):
            if not {float(code) for code in premise} <= set(variable.category_codes):
                raise ArgumentError(
                    f"The {j}-th premise is not a subset of its feature categories",
                    "feature_premises",
                )

        if self._response_variable.try_get(response_conclusion) is None:
            raise ArgumentError("Unrecognized response category code", "response_conclusion")

        if not 0.0 <= truth_value <= 1.0:
            raise ArgumentOutOfRangeError("truth_value", MUST_BE_IN_CLOSED_INTERVAL.format(0.0, 1.0))

        entailment = CategoricalEntailment(
            self._feature_variables,
            self._response_variable,
            feature_premises,
            response_conclusion,
            truth_value,
        )
        self._entailments.append(entailment)
        return entailment

    def add_entailment(self, entailment: CategoricalEntailment) -> None:
        """Add an entailment already bound to this ensemble's variables."""
        check_not_none(entailment, "entailment")
        self._entailments.append(entailment)

    def _feature_data(self, data: pd.DataFrame, feature_columns: Optional[Sequence[str]]) -> np.ndarray:
        check_not_none(data, "data")
        if feature_columns is None:
            feature_columns = [variable.name for variable in self._feature_variables]

        if len(feature_columns) != len(self._feature_variables):
            raise ArgumentError(
                "feature_columns must have as many columns as feature variables",
                "feature_columns",
            )

        missing = [column for column in feature_columns if column not in data.columns]
        if missing:
            raise ArgumentError(f"Columns not found in data: {missing}", "feature_columns")

        return data[list(feature_columns)].to_numpy(dtype=float)

    def classify(self, data: pd.DataFrame, feature_columns: Optional[Sequence[str]] = None) -> pd.Series:
        """
        Predict the response of each row of a categorical data set.

        Args:
            data: Data set whose columns hold category codes
            feature_columns: Columns holding the features, in the order of the
                feature variables; defaults to the feature variable names

        Returns:
            Series of predicted response codes, named after the response variable
        """
        items = self._feature_data(data, feature_columns)
        predicted = _classify(
            self._entailments,
            items,
            self._response_variable,
            self._rng,
        )
        return pd.Series(predicted, index=data.index, name=self._response_variable.name)

    @staticmethod
    def evaluate_accuracy(predicted, actual) -> float:
        """
        Share of predicted response codes equal to the actual ones.

        Raises:
            ArgumentNullError: If an argument is None
            ArgumentError: If the arguments have different lengths
        """
        check_not_none(predicted, "predicted")
        check_not_none(actual, "actual")

        predicted = np.asarray(predicted, dtype=float).ravel()
        actual = np.asarray(actual, dtype=float).ravel()
        if predicted.size != actual.size:
            raise ArgumentError("predicted and actual must have the same number of rows", "actual")
        if predicted.size == 0:
            return 0.0

        return float(np.mean(predicted == actual))

    @classmethod
    def train(
        cls,
        data: pd.DataFrame,
        feature_columns: Sequence[str],
        response_column: str,
        number_of_trained_categorical_entailments: int,
        allow_entailment_partial_truth_values: bool,
        train_sequentially: bool,
        feature_variables: Optional[Sequence[CategoricalVariable]] = None,
        response_variable: Optional[CategoricalVariable] = None,
        random_seed: Optional[int] = None,
    ) -> "CategoricalEntailmentEnsembleClassifier":
        """
        Train a new ensemble maximizing its accuracy on a data set.

        Args:
            data: Training data whose columns hold category codes
            feature_columns: Columns holding the features
            response_column: Column holding the response
            number_of_trained_categorical_entailments: Size of the ensemble
            allow_entailment_partial_truth_values: Whether truth values may be
                lower than 1
            train_sequentially: Train the entailments one at a time, each one
                given those already trained, instead of jointly
            feature_variables: Feature variables; inferred from the data if None
            response_variable: Response variable; inferred from the data if None
            random_seed: Seed of the optimizer's sampling streams

        Returns:
            The trained classifier
        """
        check_not_none(data, "data")
        check_not_none(feature_columns, "feature_columns")
        feature_columns = list(feature_columns)
        _check_columns(data, feature_columns, response_column, number_of_trained_categorical_entailments)

        if feature_variables is None:
            feature_variables = [CategoricalVariable.from_series(data[column]) for column in feature_columns]
        if response_variable is None:
            response_variable = CategoricalVariable.from_series(data[response_column])

        classifier = cls(feature_variables, response_variable)
        classifier.add_trained(
            data,
            number_of_trained_categorical_entailments,
            allow_entailment_partial_truth_values,
            train_sequentially,
            feature_columns=feature_columns,
            response_column=response_column,
            random_seed=random_seed,
        )
        return classifier

    def add_trained(
        self,
        data: pd.DataFrame,
        number_of_trained_categorical_entailments: int,
        allow_entailment_partial_truth_values: bool,
        train_sequentially: bool,
        feature_columns: Optional[Sequence[str]] = None,
        response_column: Optional[str] = None,
        random_seed: Optional[int] = None,
    ) -> None:
        """
        Train new entailments given those already in the ensemble, and add them.

        Columns default to the names of the ensemble's variables.
        """
        check_not_none(data, "data")
        if response_column is None:
            response_column = self._response_variable.name
        items = self._feature_data(data, feature_columns)
        _check_columns(data, [], response_column, number_of_trained_categorical_entailments)
        responses = data[response_column].to_numpy(dtype=float)

        trainer = CategoricalEntailmentEnsembleTrainer(
            self._entailments,
            items,
            responses,
            self._feature_variables,
            self._response_variable,
        )

        if train_sequentially:
            for _ in range(number_of_trained_categorical_entailments):
                trained = _train_entailments(trainer, 1, allow_entailment_partial_truth_values, random_seed)
                trainer.entailments.extend(trained)
                self._entailments.extend(trained)
        else:
            trained = _train_entailments(
                trainer,
                number_of_trained_categorical_entailments,
                allow_entailment_partial_truth_values,
                random_seed,
            )
            self._entailments.extend(trained)

        logger.info("Ensemble now holds %d categorical entailments", len(self._entailments))


def _check_columns(data, feature_columns, response_column, number_of_trained_categorical_entailments):
    missing = [column for column in feature_columns if column not in data.columns]
    if missing:
        raise ArgumentError(f"Columns not found in data: {missing}", "feature_columns")
    if response_column not in data.columns:
        raise ArgumentError(f"Column {response_column!r} not found in data", "response_column")
    if number_of_trained_categorical_entailments is None or number_of_trained_categorical_entailments < 1:
        raise ArgumentOutOfRangeError("number_of_trained_categorical_entailments")


class CategoricalEntailmentEnsembleTrainer:
    """
    Accuracy of candidate entailments added to an existing ensemble.

    Used as the objective function of the optimization context: a state
    encodes the candidates, and its performance is the accuracy on the
    training data of the existing entailments plus the candidates.
    """

    def __init__(
        self,
        entailments: Sequence[CategoricalEntailment],
        features: np.ndarray,
        responses: np.ndarray,
        feature_variables: Sequence[CategoricalVariable],
        response_variable: CategoricalVariable,
        random_seed: int = 7777777,
    ):
        self.entailments: List[CategoricalEntailment] = list(entailments)
        self.features = np.atleast_2d(np.asarray(features, dtype=float))
        self.responses = np.asarray(responses, dtype=float).ravel()
        self.feature_variables = list(feature_variables)
        self.response_variable = response_variable
        self.random_seed = random_seed

        self._representation_length = (
            sum(variable.number_of_categories for variable in self.feature_variables)
            + response_variable.number_of_categories
            + 1
        )

    def performance(self, state: np.ndarray) -> float:
        state = np.asarray(state, dtype=float).ravel()
        length = self._representation_length

        candidates = [
            CategoricalEntailment.from_representation(
                state[start:start + length], self.feature_variables, self.response_variable
            )
            for start in range(0, state.size, length)
        ]

        # A generator per call keeps evaluations independent across threads
        rng = np.random.default_rng(self.random_seed)
        predicted = _classify(
            self.entailments + candidates,
            self.features,
            self.response_variable,
            rng,
        )
        return float(np.mean(predicted == self.responses))


def _train_entailments(
    trainer: CategoricalEntailmentEnsembleTrainer,
    number_of_entailments: int,
    allow_entailment_partial_truth_values: bool,
    random_seed: Optional[int],
) -> List[CategoricalEntailment]:
    from ce_research.optimization.contexts.categorical_entailment import (
        CategoricalEntailmentEnsembleOptimizationContext,
    )
    from ce_research.optimization.optimizer import SystemPerformanceOptimizer
    from ce_research.optimization.types import OptimizationGoal

    feature_category_counts = [variable.number_of_categories for variable in trainer.feature_variables]
    number_of_response_categories = trainer.response_variable.number_of_categories

    context = CategoricalEntailmentEnsembleOptimizationContext(
        objective_function=trainer.performance,
        feature_category_counts=feature_category_counts,
        number_of_response_categories=number_of_response_categories,
        number_of_categorical_entailments=number_of_entailments,
        allow_entailment_partial_truth_values=allow_entailment_partial_truth_values,
        probability_smoothing_coefficient=0.9,
        optimization_goal=OptimizationGoal.MAXIMIZATION,
        minimum_number_of_iterations=10,
        maximum_number_of_iterations=1000,
    )

    number_of_parameters = number_of_entailments * (sum(feature_category_counts) + number_of_response_categories)

    optimizer = SystemPerformanceOptimizer(random_seed=random_seed)
    results = optimizer.optimize(context, rarity=0.01, sample_size=100 * number_of_parameters)

    partial_classifier = context.get_categorical_entailment_ensemble_classifier(
        results.optimal_state,
        trainer.feature_variables,
        trainer.response_variable,
    )
    logger.debug("Trained entailments with accuracy %.4f", results.optimal_performance)
    return partial_classifier.entailments
