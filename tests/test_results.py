"""Tests for result object serialization and helpers."""

import json

from portfolio_performance_engine.analysis import build_performance_view
from portfolio_performance_engine.period import Period
from portfolio_performance_engine.results import DrawdownEvent, HitRateSummary, PolicyComplianceResult, StrategyCompliance


class TestPerformanceViewSerialization:
    def test_api_response_is_json_safe(self, three_period_balances, sample_positions, brl_normalizer):
        view = build_performance_view(three_period_balances, sample_positions, normalizer=brl_normalizer)
        payload = view.to_api_response()
        json.dumps(payload)
        assert payload["start"] == "01/2025"
        assert payload["series"][0]["period"] == "01/2025"
        assert payload["risk"]["drawdown_events"][0]["peak_period"] == "01/2025"
        assert payload["summary"]["as_of"] == "03/2025"
        assert payload["summary"]["policy_score"] == view.policy.overall_score
        assert payload["allocation"]["Pós Fixado"] == view.allocation["Pós Fixado"]
        assert isinstance(payload["flags"][0]["strategies"], list)

    def test_cli_report(self, three_period_balances, brl_normalizer):
        report = build_performance_view(three_period_balances, normalizer=brl_normalizer).to_cli_report()
        assert report.splitlines()[0] == "PerformanceView"
        assert "  display_currency: BRL" in report


class TestResultHelpers:
    def test_drawdown_open(self):
        event = DrawdownEvent(
            peak_period=Period(2025, 1),
            trough_period=Period(2025, 2),
            recovery_period=None,
            peak_value=100.0,
            trough_value=90.0,
            depth_pct=10.0,
            duration_months=1,
            recovery_months=None,
            pain_index=0.2,
        )
        assert event.is_open
        assert event.to_api_response()["recovery_period"] is None

    def test_hit_rate_classified(self):
        summary = HitRateSummary(home_runs=1, hits=2, near_misses=1, misses=1, unclassified=3)
        assert summary.classified == 5

    def test_get_strategy(self):
        item = StrategyCompliance("Ouro", 3.0, 0.0, 5.0, 2.0, 1.0, "compliant")
        result = PolicyComplianceResult(100.0, (item,), (), (), ("Ouro",))
        assert result.get_strategy("Ouro") is item
        assert result.get_strategy("COE") is None
