"""
Optimization context for ensembles of categorical entailments.

A categorical entailment is a rule "IF features in premises THEN
response is c WITH TRUTH VALUE t". A state stacks E entailment
representations, each of length F + R + 1: one premise bit per feature
category (F in total), a one-hot block over the R response categories
and the truth value.
"""

from typing import List, Optional, Sequence

import numpy as np

from ce_research.analysis.categorical import CategoricalVariable
from ce_research.analysis.entailment import (
    CategoricalEntailment,
    CategoricalEntailmentEnsembleClassifier,
)
from ce_research.core.errors import (
    ArgumentError,
    ArgumentOutOfRangeError,
    check_not_none,
)
from ce_research.optimization.base import (
    ObjectiveFunction,
    SystemPerformanceOptimizationContext,
    validate_smoothing_coefficient,
)
from ce_research.optimization.sampling import entropy_truth_value, finite_discrete_sample
from ce_research.optimization.types import OptimizationGoal

__all__ = ["CategoricalEntailmentEnsembleOptimizationContext"]


class CategoricalEntailmentEnsembleOptimizationContext(SystemPerformanceOptimizationContext):
    """
    Context for training ensembles of categorical entailments.

    The parameter is a single row with, for each entailment, the
    probabilities that each feature category belongs to the premises,
    followed by the probabilities of the response categories. Premise
    bits start at 0.5, response probabilities at ``1 / R``.

    When partial truth values are allowed, the truth value of an
    entailment is one minus the normalized entropy of its response
    probabilities; otherwise it is 1.
    """

    def __init__(
        self,
        objective_function: ObjectiveFunction,
        feature_category_counts: Sequence[int],
        number_of_response_categories: int,
        number_of_categorical_entailments: int,
        allow_entailment_partial_truth_values: bool,
        probability_smoothing_coefficient: float,
        optimization_goal: OptimizationGoal,
        minimum_number_of_iterations: int,
        maximum_number_of_iterations: int,
        random_seed: Optional[int] = 777777,
    ):
        """
        Initialize the context.

        Args:
            objective_function: Performance of a state stacking the entailments
            feature_category_counts: Number of categories of each feature
            number_of_response_categories: Number of response categories
            number_of_categorical_entailments: Number of entailments per state
            allow_entailment_partial_truth_values: Whether truth values may be
                lower than 1
            probability_smoothing_coefficient: Weight of the newly fitted
                probabilities when smoothing, in (0, 1)
            optimization_goal: Whether the performance is minimized or maximized
            minimum_number_of_iterations: Stability window of the stopping rule
            maximum_number_of_iterations: Hard bound on the number of iterations
            random_seed: Seed used to break ties among most probable responses
        """
        check_not_none(feature_category_counts, "feature_category_counts")
        counts = [int(count) for count in feature_category_counts]
        if not counts:
            raise ArgumentError("Parameter feature_category_counts must be non empty", "feature_category_counts")
        if any(count < 1 for count in counts):
            raise ArgumentOutOfRangeError(
                "feature_category_counts", "must contain positive category counts only"
            )

        if number_of_response_categories is None or number_of_response_categories < 1:
            raise ArgumentOutOfRangeError("number_of_response_categories")

        if number_of_categorical_entailments is None or number_of_categorical_entailments < 1:
            raise ArgumentOutOfRangeError("number_of_categorical_entailments")

        F = sum(counts)
        R = int(number_of_response_categories)
        E = int(number_of_categorical_entailments)

        entailment_parameter = np.concatenate([np.full(F, 0.5), np.full(R, 1.0 / R)])

        super().__init__(
            state_dimension=(F + R + 1) * E,
            initial_parameter=np.tile(entailment_parameter, E).reshape(1, -1),
            optimization_goal=optimization_goal,
            minimum_number_of_iterations=minimum_number_of_iterations,
            maximum_number_of_iterations=maximum_number_of_iterations,
        )

        check_not_none(objective_function, "objective_function")

        self.probability_smoothing_coefficient = validate_smoothing_coefficient(
            probability_smoothing_coefficient, "probability_smoothing_coefficient"
        )
        self.objective_function = objective_function
        self.feature_category_counts: List[int] = counts
        self.number_of_response_categories = R
        self.number_of_categorical_entailments = E
        self.allow_entailment_partial_truth_values = bool(allow_entailment_partial_truth_values)
        self._rng = np.random.default_rng(random_seed)

    @property
    def overall_number_of_feature_categories(self) -> int:
        return sum(self.feature_category_counts)

    @property
    def entailment_parameter_length(self) -> int:
        return self.overall_number_of_feature_categories + self.number_of_response_categories

    @property
    def entailment_representation_length(self) -> int:
        return self.entailment_parameter_length + 1

    def _truth_value(self, response_probabilities: np.ndarray) -> float:
        if not self.allow_entailment_partial_truth_values:
            return 1.0
        return entropy_truth_value(response_probabilities)

    def _blocks(self, parameter: np.ndarray):
        """Yield (premise probabilities, response probabilities) per entailment."""
        F = self.overall_number_of_feature_categories
        blocks = np.asarray(parameter, dtype=float).reshape(
            self.number_of_categorical_entailments, self.entailment_parameter_length
        )
        for block in blocks:
            yield block[:F], block[F:]

    def performance(self, state: np.ndarray) -> float:
        return float(self.objective_function(np.asarray(state, dtype=float).ravel()))

    def partial_sample(self, rng, parameter, sample_size):
        F = self.overall_number_of_feature_categories
        R = self.number_of_response_categories

        entailments = []
        for premise_probabilities, response_probabilities in self._blocks(parameter):
            premises = (rng.random((sample_size, F)) < premise_probabilities).astype(float)

            responses = finite_discrete_sample(rng, response_probabilities.reshape(R, 1), sample_size)[:, 0]
            conclusions = np.zeros((sample_size, R))
            conclusions[np.arange(sample_size), responses] = 1.0

            truth_values = np.full((sample_size, 1), self._truth_value(response_probabilities))
            entailments.append(np.hstack([premises, conclusions, truth_values]))

        return np.hstack(entailments)

    def update_parameter(self, parameters, elite_sample):
        elite_sample = np.asarray(elite_sample, dtype=float).reshape(
            -1, self.number_of_categorical_entailments, self.entailment_representation_length
        )
        # Drop the truth value column of each entailment
        probabilities = elite_sample[:, :, :-1].mean(axis=0)
        return probabilities.reshape(1, -1)

    def smooth_parameter(self, parameters):
        check_not_none(parameters, "parameters")
        if len(parameters) < 2:
            return parameters[-1]
        alpha = self.probability_smoothing_coefficient
        return alpha * parameters[-1] + (1.0 - alpha) * parameters[-2]

    def get_optimal_state(self, parameter: np.ndarray) -> np.ndarray:
        R = self.number_of_response_categories

        entailments = []
        for premise_probabilities, response_probabilities in self._blocks(parameter):
            premises = (premise_probabilities > 0.5).astype(float)

            maximum_indexes = np.flatnonzero(response_probabilities == response_probabilities.max())
            conclusion = np.zeros(R)
            conclusion[self._rng.choice(maximum_indexes)] = 1.0

            truth_value = self._truth_value(response_probabilities)
            entailments.append(np.concatenate([premises, conclusion, [truth_value]]))

        return np.concatenate(entailments)

    def get_categorical_entailment_ensemble_classifier(
        self,
        state: np.ndarray,
        feature_variables: Sequence[CategoricalVariable],
        response_variable: CategoricalVariable,
    ) -> CategoricalEntailmentEnsembleClassifier:
        """
        Build the classifier whose entailments are represented by state.

        Raises:
            ArgumentNullError: If an argument is None
            ArgumentError: If the state length or the variables do not match
                the context
        """
        check_not_none(state, "state")
        state = np.asarray(state, dtype=float).ravel()

        length = self.entailment_representation_length
        if state.size != length * self.number_of_categorical_entailments:
            raise ArgumentError("state has an invalid number of entries", "state")

        check_not_none(feature_variables, "feature_variables")
        if len(feature_variables) != len(self.feature_category_counts):
            raise ArgumentError(
                "feature_variables must have as many variables as the feature category counts",
                "feature_variables",
            )
        for variable, count in zip(feature_variables, self.feature_category_counts):
            if variable.number_of_categories != count:
                raise ArgumentError(
                    f"Feature variable {variable.name} has an invalid number of categories",
                    "feature_variables",
                )

        check_not_none(response_variable, "response_variable")
        if response_variable.number_of_categories != self.number_of_response_categories:
            raise ArgumentError("response_variable has an invalid number of categories", "response_variable")

        classifier = CategoricalEntailmentEnsembleClassifier(list(feature_variables), response_variable)
        for e in range(self.number_of_categorical_entailments):
            classifier.add_entailment(
                CategoricalEntailment.from_representation(
                    state[e * length:(e + 1) * length],
                    feature_variables,
                    response_variable,
                )
            )
        return classifier
