"""
Reporting period value type.

Periods are calendar month buckets labelled ``MM/YYYY``. Labels must be parsed
into a ``Period`` before any chronological comparison: ``"02/2025" < "1/2025"``
holds lexically even though February 2025 is the later month.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Union

import pandas as pd


_LABEL_RE = re.compile(r"^\s*(\d{1,2})/(\d{4})\s*$")


@dataclass(frozen=True, order=True)
class Period:
    """A calendar month. Ordered by (year, month)."""

    year: int
    month: int

    def __post_init__(self):
        if not 1 <= int(self.month) <= 12:
            raise ValueError(f"Invalid month {self.month!r} for period")
        if not 1 <= int(self.year) <= 9999:
            raise ValueError(f"Invalid year {self.year!r} for period")

    @classmethod
    def parse(cls, label: str) -> "Period":
        """Parse an ``MM/YYYY`` (or ``M/YYYY``) label.

        Raises:
            ValueError: if the label is not a valid month/year pair.
        """
        match = _LABEL_RE.match(str(label or ""))
        if not match:
            raise ValueError(f"Malformed period label {label!r}; expected MM/YYYY")
        return cls(year=int(match.group(2)), month=int(match.group(1)))

    @classmethod
    def from_date(cls, value: Union[date, pd.Timestamp]) -> "Period":
        return cls(year=value.year, month=value.month)

    @classmethod
    def coerce(cls, value: Union["Period", str, date, pd.Timestamp, pd.Period]) -> "Period":
        """Accept a Period, an ``MM/YYYY`` label, a date/Timestamp or a pandas Period."""
        if isinstance(value, Period):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, pd.Period):
            return cls(year=value.year, month=value.month)
        if isinstance(value, (date, pd.Timestamp)):
            return cls.from_date(value)
        raise TypeError(f"Cannot interpret {value!r} as a Period")

    @classmethod
    def from_ordinal(cls, ordinal: int) -> "Period":
        return cls(year=int(ordinal) // 12, month=int(ordinal) % 12 + 1)

    @property
    def label(self) -> str:
        return f"{self.month:02d}/{self.year:04d}"

    @property
    def ordinal(self) -> int:
        """Months since year 0; differences give month distances."""
        return self.year * 12 + (self.month - 1)

    def shift(self, months: int) -> "Period":
        return Period.from_ordinal(self.ordinal + months)

    def previous(self) -> "Period":
        return self.shift(-1)

    def months_until(self, other: "Period") -> int:
        return other.ordinal - self.ordinal

    def to_pandas(self) -> pd.Period:
        return pd.Period(year=self.year, month=self.month, freq="M")

    def __str__(self) -> str:
        return self.label


def sort_periods(periods: Iterable[Period]) -> list[Period]:
    """Unique periods in chronological order."""
    return sorted(set(periods))
