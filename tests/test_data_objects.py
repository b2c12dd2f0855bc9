"""
Tests for record data objects
=============================

Validation at construction, DataFrame ingestion and content keys.
"""

from datetime import date

import pandas as pd
import pytest

from portfolio_performance_engine.data_objects import (
    BalanceRecord,
    PolicyBand,
    PositionRecord,
    content_key,
    ensure_unique_keys,
)
from portfolio_performance_engine.period import Period

from factories import make_balance, make_position


class TestPositionRecord:
    """Tests for PositionRecord validation."""

    def test_normalizes_period_currency_and_dates(self):
        record = make_position("3/2025", "Tesla", "Exterior - Ações", 10.0, currency="Dólar", maturity="2026-01-15")
        assert record.period == Period(2025, 3)
        assert record.currency == "USD"
        assert record.maturity == date(2026, 1, 15)

    def test_is_immutable(self):
        record = make_position("03/2025", "CDB", "CDI - Liquidez", 10.0)
        with pytest.raises(Exception):
            record.position = 20.0

    def test_malformed_period_raises(self):
        with pytest.raises(ValueError):
            make_position("2025/03", "CDB", "CDI - Liquidez", 10.0)

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), "10", True])
    def test_rejects_non_finite_position(self, bad):
        with pytest.raises(ValueError):
            make_position("03/2025", "CDB", "CDI - Liquidez", bad)

    def test_from_dataframe(self):
        df = pd.DataFrame(
            [
                {"period": "01/2025", "institution": "XP", "asset": "CDB", "strategy": "CDI - Liquidez",
                 "position": 100.0, "currency": "BRL", "monthly_return": 0.01, "issuer": None, "extra": "x"},
                {"period": "02/2025", "institution": "XP", "asset": "CDB", "strategy": "CDI - Liquidez",
                 "position": 101.0, "currency": "Real", "monthly_return": 0.01, "issuer": "Banco A", "extra": "y"},
            ]
        )
        records = PositionRecord.from_dataframe(df)
        assert [r.period for r in records] == [Period(2025, 1), Period(2025, 2)]
        assert records[0].issuer is None
        assert records[1].currency == "BRL"

    def test_from_dataframe_requires_frame(self):
        with pytest.raises(ValueError):
            PositionRecord.from_dataframe(None)


class TestBalanceRecord:
    """Tests for BalanceRecord validation."""

    def test_key_identity(self):
        record = make_balance("01/2025", 100.0, 0.01, institution="BTG", account="123")
        assert record.key == (Period(2025, 1), "BTG", "123")

    def test_empty_institution_rejected(self):
        with pytest.raises(ValueError):
            make_balance("01/2025", 100.0, 0.01, institution="  ")

    def test_duplicate_keys_detected(self):
        records = [make_balance("01/2025", 100.0, 0.01), make_balance("01/2025", 200.0, 0.02)]
        with pytest.raises(ValueError):
            ensure_unique_keys(records)


class TestPolicyBand:
    """Tests for PolicyBand construction."""

    def test_from_config(self):
        bands = PolicyBand.from_config({"Ações": {"minimum": 5, "maximum": 20, "ideal": 10}, "COE": {"maximum": 5}})
        assert bands[0] == PolicyBand("Ações", 5.0, 20.0, 10.0)
        assert bands[1].minimum == 0.0
        assert bands[1].ideal is None

    def test_min_above_max_rejected(self):
        with pytest.raises(ValueError):
            PolicyBand("Ações", 30, 20)


class TestContentKey:
    """Content keys depend only on values."""

    def test_equal_inputs_equal_keys(self):
        a = [make_balance("01/2025", 100.0, 0.01)]
        b = [make_balance("1/2025", 100.0, 0.01)]
        assert content_key(a, {"start": None}) == content_key(b, {"start": None})

    def test_changed_value_changes_key(self):
        a = [make_balance("01/2025", 100.0, 0.01)]
        b = [make_balance("01/2025", 100.0, 0.011)]
        assert content_key(a) != content_key(b)

    def test_mapping_key_order_irrelevant(self):
        assert content_key({"x": 1, "y": 2}) == content_key({"y": 2, "x": 1})
