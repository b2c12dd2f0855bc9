"""
Tests for the Period value type
===============================

Parsing, ordering and month arithmetic of MM/YYYY reporting periods.
"""

from datetime import date

import pandas as pd
import pytest

from portfolio_performance_engine.period import Period, sort_periods


class TestParse:
    """Tests for Period.parse."""

    @pytest.mark.parametrize("label", ["1/2025", "01/2025", " 01/2025 "])
    def test_accepts_one_or_two_digit_months(self, label):
        assert Period.parse(label) == Period(2025, 1)

    @pytest.mark.parametrize("label", ["", "2025-01", "13/2025", "00/2025", "1/25", "jan/2025", None])
    def test_rejects_malformed_labels(self, label):
        with pytest.raises(ValueError):
            Period.parse(label)

    def test_label_round_trips_zero_padded(self):
        assert Period.parse("3/2024").label == "03/2024"
        assert str(Period(2024, 11)) == "11/2024"


class TestOrdering:
    """Periods order chronologically, never lexically."""

    def test_february_after_january(self):
        # Lexically "02/2025" < "1/2025"; chronologically it is later.
        assert Period.parse("02/2025") > Period.parse("1/2025")

    def test_year_dominates_month(self):
        assert Period(2024, 12) < Period(2025, 1)

    def test_sort_periods_dedupes_and_orders(self):
        periods = [Period(2025, 2), Period(2024, 12), Period(2025, 2), Period(2025, 1)]
        assert sort_periods(periods) == [Period(2024, 12), Period(2025, 1), Period(2025, 2)]


class TestArithmetic:
    """Tests for shift / previous / months_until."""

    def test_previous_crosses_year_boundary(self):
        assert Period(2025, 1).previous() == Period(2024, 12)

    def test_shift_forward_and_back(self):
        assert Period(2024, 11).shift(3) == Period(2025, 2)
        assert Period(2025, 2).shift(-14) == Period(2023, 12)

    def test_months_until(self):
        assert Period(2024, 10).months_until(Period(2025, 3)) == 5
        assert Period(2025, 3).months_until(Period(2024, 10)) == -5


class TestCoerce:
    """Tests for Period.coerce and pandas interop."""

    def test_coerce_variants(self):
        expected = Period(2025, 4)
        assert Period.coerce(expected) is expected
        assert Period.coerce("04/2025") == expected
        assert Period.coerce(date(2025, 4, 30)) == expected
        assert Period.coerce(pd.Timestamp("2025-04-15")) == expected
        assert Period.coerce(pd.Period("2025-04", freq="M")) == expected

    def test_coerce_rejects_other_types(self):
        with pytest.raises(TypeError):
            Period.coerce(202504)

    def test_to_pandas(self):
        assert Period(2025, 4).to_pandas() == pd.Period("2025-04", freq="M")

    def test_invalid_month_rejected_at_construction(self):
        with pytest.raises(ValueError):
            Period(2025, 13)
