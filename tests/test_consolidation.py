"""
Tests for period consolidation
==============================

Grouping, weighted returns, filters and trailing windows.
"""

import pytest

from portfolio_performance_engine.consolidation import (
    breakdown,
    consolidate,
    filter_records,
    latest_period,
    records_for_period,
    trailing_window,
)
from portfolio_performance_engine.constants import UNGROUPED_STRATEGY, group_strategy
from portfolio_performance_engine.period import Period
from portfolio_performance_engine.returns import trailing_return

from factories import make_balance, make_position


@pytest.fixture
def two_bank_balances():
    return [
        make_balance("01/2025", 100.0, 0.01, institution="XP", account="1", net_flows=10.0, taxes=-1.0),
        make_balance("01/2025", 300.0, 0.03, institution="BTG", account="9", net_flows=5.0),
        make_balance("02/2025", 400.0, 0.02, institution="XP", account="1"),
    ]


class TestConsolidate:
    """Tests for consolidate()."""

    def test_weighted_return_by_closing_balance(self, two_bank_balances, brl_normalizer):
        result = consolidate(two_bank_balances, normalizer=brl_normalizer)
        january = result[0]
        assert january.period == Period(2025, 1)
        assert january.closing_balance == pytest.approx(400.0)
        assert january.weighted_return == pytest.approx((100 * 0.01 + 300 * 0.03) / 400)
        assert january.net_flows == pytest.approx(15.0)
        assert january.taxes == pytest.approx(-1.0)
        assert january.record_count == 2
        assert january.currency == "BRL"

    def test_sorted_chronologically(self, brl_normalizer):
        records = [
            make_balance("02/2025", 1.0, 0.0),
            make_balance("12/2024", 1.0, 0.0),
            make_balance("1/2025", 1.0, 0.0),
        ]
        periods = [r.period for r in consolidate(records, normalizer=brl_normalizer)]
        assert periods == [Period(2024, 12), Period(2025, 1), Period(2025, 2)]

    def test_zero_weight_group_returns_zero(self, brl_normalizer):
        records = [make_balance("01/2025", 0.0, 0.05), make_balance("01/2025", 0.0, -0.02, institution="BTG")]
        (row,) = consolidate(records, normalizer=brl_normalizer)
        assert row.weighted_return == 0.0

    def test_period_without_records_is_absent(self, brl_normalizer):
        records = [make_balance("01/2025", 1.0, 0.0), make_balance("03/2025", 1.0, 0.0)]
        periods = [r.period for r in consolidate(records, normalizer=brl_normalizer)]
        assert Period(2025, 2) not in periods

    def test_idempotent(self, two_bank_balances, brl_normalizer):
        assert consolidate(two_bank_balances, normalizer=brl_normalizer) == consolidate(
            two_bank_balances, normalizer=brl_normalizer
        )

    def test_group_by_institution(self, two_bank_balances, brl_normalizer):
        result = consolidate(two_bank_balances, ("period", "institution"), brl_normalizer)
        assert [(r.period, r.institution) for r in result] == [
            (Period(2025, 1), "BTG"),
            (Period(2025, 1), "XP"),
            (Period(2025, 2), "XP"),
        ]
        assert result[0].weighted_return == pytest.approx(0.03)

    def test_group_by_strategy_uses_grouping_rules(self, sample_positions, brl_normalizer):
        result = consolidate(records_for_period(sample_positions, "03/2025"), ("period", "strategy"), brl_normalizer)
        by_strategy = {r.strategy: r.closing_balance for r in result}
        assert by_strategy["Pós Fixado"] == pytest.approx(300.0)
        assert by_strategy["Inflação"] == pytest.approx(200.0)
        assert by_strategy["Ações"] == pytest.approx(100.0)

    def test_positions_count_as_closing_balance(self, brl_normalizer):
        records = [make_position("01/2025", "CDB", "CDI - Liquidez", 250.0, 0.01)]
        (row,) = consolidate(records, normalizer=brl_normalizer)
        assert row.closing_balance == 250.0
        assert row.opening_balance == 0.0
        assert row.weighted_return == pytest.approx(0.01)

    def test_mixed_currencies_are_normalized(self, brl_normalizer):
        records = [
            make_balance("01/2025", 1000.0, 0.01),
            make_balance("01/2025", 100.0, 0.01, institution="Avenue", currency="USD"),
        ]
        (row,) = consolidate(records, normalizer=brl_normalizer)
        usd_return = 1.01 * 1.10 - 1
        assert row.closing_balance == pytest.approx(1550.0)
        assert row.weighted_return == pytest.approx((1000 * 0.01 + 550 * usd_return) / 1550)

    def test_empty_input(self, brl_normalizer):
        assert consolidate([], normalizer=brl_normalizer) == []

    @pytest.mark.parametrize("keys", [("institution",), ("period", "client"), ()])
    def test_invalid_group_keys(self, keys, two_bank_balances, brl_normalizer):
        with pytest.raises(ValueError):
            consolidate(two_bank_balances, keys, brl_normalizer)

    def test_duplicate_positions_rejected(self, brl_normalizer):
        record = make_position("01/2025", "CDB", "CDI - Liquidez", 100.0, 0.01)
        with pytest.raises(ValueError, match="Duplicate"):
            consolidate([record, record], normalizer=brl_normalizer)

    def test_same_asset_in_two_accounts_is_not_a_duplicate(self, brl_normalizer):
        records = [
            make_position("01/2025", "CDB", "CDI - Liquidez", 100.0, 0.01, account="1"),
            make_position("01/2025", "CDB", "CDI - Liquidez", 100.0, 0.01, account="2"),
        ]
        (row,) = consolidate(records, normalizer=brl_normalizer)
        assert row.closing_balance == pytest.approx(200.0)

    def test_strategy_requires_positions(self, two_bank_balances, brl_normalizer):
        with pytest.raises(ValueError):
            consolidate(two_bank_balances, ("period", "strategy"), brl_normalizer)


class TestFilterRecords:
    """Tests for filter_records()."""

    def test_inclusive_calendar_window(self):
        records = [make_balance(f"{m}/2025", 1.0, 0.0) for m in range(1, 13)]
        kept = filter_records(records, start="02/2025", end="10/2025")
        assert [r.period.month for r in kept] == list(range(2, 11))

    def test_institution_and_account_filters(self, two_bank_balances):
        assert len(filter_records(two_bank_balances, institutions=["XP"])) == 2
        assert len(filter_records(two_bank_balances, accounts=["9"])) == 1
        assert filter_records(two_bank_balances, institutions=[]) == []


class TestTrailingWindow:
    """Tests for trailing_window() and the trailing slice it feeds."""

    def test_window_clamped_to_series_start(self, three_period_balances, brl_normalizer):
        series = consolidate(three_period_balances, normalizer=brl_normalizer)
        window = trailing_window(series, "03/2025", 12)
        assert [r.period for r in window] == [Period(2025, 1), Period(2025, 2), Period(2025, 3)]

    def test_window_ends_at_target(self, three_period_balances, brl_normalizer):
        series = consolidate(three_period_balances, normalizer=brl_normalizer)
        window = trailing_window(series, "02/2025", 1)
        assert [r.period for r in window] == [Period(2025, 2)]

    def test_trailing_return_compounds(self, three_period_balances, brl_normalizer):
        series = consolidate(three_period_balances, normalizer=brl_normalizer)
        assert trailing_return(series, 2, end_period="03/2025") == pytest.approx(0.995 * 1.02 - 1)

    def test_latest_period(self, two_bank_balances):
        assert latest_period(two_bank_balances) == Period(2025, 2)
        assert latest_period([]) is None


class TestBreakdown:
    def test_latest_period_by_institution(self, two_bank_balances, brl_normalizer):
        rows = breakdown(two_bank_balances, "institution", normalizer=brl_normalizer)
        assert [(r.institution, r.closing_balance) for r in rows] == [("XP", 400.0)]

    def test_unknown_key(self, two_bank_balances):
        with pytest.raises(ValueError):
            breakdown(two_bank_balances, "issuer")


class TestStrategyGrouping:
    """Tests for group_strategy()."""

    @pytest.mark.parametrize(
        "label, expected",
        [
            ("CDI - Liquidez", "Pós Fixado - Liquidez"),
            ("CDI - Titulos", "Pós Fixado"),
            ("Inflação - Fundos", "Inflação"),
            ("Exterior - Ações", "Exterior"),
            ("AÇÕES - LONG BIAS", "Ações"),
            ("Pré Fixado - Títulos", "Pré Fixado"),
        ],
    )
    def test_rules(self, label, expected):
        assert group_strategy(label) == expected

    @pytest.mark.parametrize("label", [None, "", "Debêntures"])
    def test_unmatched_labels(self, label):
        assert group_strategy(label) == UNGROUPED_STRATEGY
