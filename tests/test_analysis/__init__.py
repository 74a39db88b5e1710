"""Tests for categorical variables, entailment ensemble classifiers and clusters."""
