"""
Categorical variables.

A categorical variable has a name and an ordered list of categories,
each identified by a numeric code and carrying a label. Categorical data
sets are pandas DataFrames whose columns, named after the variables,
hold category codes.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import pandas as pd

from ce_research.core.errors import ArgumentError, check_not_none

__all__ = ["Category", "CategoricalVariable"]


@dataclass(frozen=True)
class Category:
    """A category of a categorical variable."""

    code: float
    label: str

    def __str__(self) -> str:
        return self.label


class CategoricalVariable:
    """
    A named set of categories.

    Categories are kept in insertion order. Once set as read only, no
    category can be added.
    """

    def __init__(self, name: str, categories: Optional[Iterable[Category]] = None):
        check_not_none(name, "name")
        self.name = name
        self._categories: List[Category] = []
        self._codes: Dict[float, Category] = {}
        self._labels: Dict[str, Category] = {}
        self._is_read_only = False

        for category in categories or []:
            self.add(category.code, category.label)

    @classmethod
    def from_series(cls, series: pd.Series, name: Optional[str] = None) -> "CategoricalVariable":
        """
        Infer a variable from the distinct codes of a pandas Series.

        Codes are sorted increasingly and labelled by their string form.
        """
        check_not_none(series, "series")
        variable = cls(name if name is not None else str(series.name))
        for code in sorted(pd.unique(series.dropna())):
            variable.add(float(code), _label_of(code))
        return variable

    @property
    def categories(self) -> List[Category]:
        return list(self._categories)

    @property
    def category_codes(self) -> List[float]:
        return [category.code for category in self._categories]

    @property
    def number_of_categories(self) -> int:
        return len(self._categories)

    @property
    def is_read_only(self) -> bool:
        return self._is_read_only

    def set_as_read_only(self) -> None:
        self._is_read_only = True

    def add(self, code: float, label: Optional[str] = None) -> Category:
        """
        Add a category.

        Raises:
            ArgumentError: If the variable is read only, or the code or label
                is already in use
        """
        if self._is_read_only:
            raise ArgumentError(f"Variable {self.name} is read only", "code")

        code = float(code)
        label = label if label is not None else _label_of(code)

        if code in self._codes:
            raise ArgumentError(f"Code {code} already belongs to variable {self.name}", "code")
        if label in self._labels:
            raise ArgumentError(f"Label {label} already belongs to variable {self.name}", "label")

        category = Category(code, label)
        self._categories.append(category)
        self._codes[code] = category
        self._labels[label] = category
        return category

    def try_get(self, code: float) -> Optional[Category]:
        """Return the category with the given code, or None."""
        return self._codes.get(float(code))

    def index_of(self, code: float) -> int:
        return self._categories.index(self._codes[float(code)])

    def __repr__(self) -> str:
        labels = ", ".join(category.label for category in self._categories)
        return f"CategoricalVariable({self.name!r}: {labels})"


def _label_of(code) -> str:
    code = float(code)
    return str(int(code)) if code.is_integer() else str(code)
