"""Result objects produced by the performance engine.

All results are frozen dataclasses. Returns and ratios are decimal fractions;
drawdown depths and allocation figures are in percent where the field name
says so (``*_pct``). ``to_api_response()`` gives a JSON-safe dict.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from portfolio_performance_engine._vendor import freeze, make_json_safe
from portfolio_performance_engine.period import Period


@dataclass(frozen=True)
class _BaseResult:
    def to_api_response(self) -> Dict[str, Any]:
        return make_json_safe(self)

    def to_cli_report(self) -> str:
        lines = [type(self).__name__]
        for key, value in self.to_api_response().items():
            if isinstance(value, (dict, list)):
                value = f"<{len(value)} items>"
            lines.append(f"  {key}: {value}")
        return "\n".join(lines)


@dataclass(frozen=True)
class DrawdownEvent(_BaseResult):
    """Peak-to-trough decline of the closing balance.

    ``recovery_period``/``recovery_months`` are None while the event is open.
    ``pain_index`` = depth_pct * (duration + recovery) / 100, using months
    elapsed since the trough for open events.
    """

    peak_period: Period
    trough_period: Period
    recovery_period: Optional[Period]
    peak_value: float
    trough_value: float
    depth_pct: float
    duration_months: int
    recovery_months: Optional[int]
    pain_index: float

    @property
    def is_open(self) -> bool:
        return self.recovery_period is None


@dataclass(frozen=True)
class HitRateSummary(_BaseResult):
    home_runs: int = 0
    hits: int = 0
    near_misses: int = 0
    misses: int = 0
    unclassified: int = 0
    hit_rate_pct: float = 0.0
    tiers: Tuple[Tuple[Period, str], ...] = ()

    @property
    def classified(self) -> int:
        return self.home_runs + self.hits + self.near_misses + self.misses


@dataclass(frozen=True)
class RiskMetricsSnapshot(_BaseResult):
    """
    Risk statistics over one filtered window of monthly returns.

    Statistics are population statistics (divide by N). ``geometric_mean``
    is the headline average return; ``arithmetic_mean`` is kept for the
    volatility computations and exposed for completeness.
    """

    period_count: int = 0
    arithmetic_mean: float = 0.0
    geometric_mean: float = 0.0
    variance: float = 0.0
    std_dev: float = 0.0
    downside_deviation: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    upside_volatility: float = 0.0
    downside_volatility: float = 0.0
    volatility_ratio: float = 0.0
    max_drawdown: float = 0.0
    drawdown_events: Tuple[DrawdownEvent, ...] = ()
    hit_rate: HitRateSummary = field(default_factory=HitRateSummary)
    best_period: Optional[Period] = None
    best_return: float = 0.0
    worst_period: Optional[Period] = None
    worst_return: float = 0.0
    months_above_target: int = 0
    months_below_target: int = 0
    risk_free_rate: float = 0.0

    def get_summary(self) -> Dict[str, Any]:
        return {
            "period_count": self.period_count,
            "geometric_mean": self.geometric_mean,
            "std_dev": self.std_dev,
            "sharpe_ratio": self.sharpe_ratio,
            "sortino_ratio": self.sortino_ratio,
            "max_drawdown": self.max_drawdown,
            "hit_rate_pct": self.hit_rate.hit_rate_pct,
        }


@dataclass(frozen=True)
class WindowReturns(_BaseResult):
    month: float
    year: float
    inception: float
    trailing: float
    trailing_months: int
    as_of: Optional[Period]


@dataclass(frozen=True)
class StrategyCompliance(_BaseResult):
    strategy: str
    current_pct: float
    minimum: float
    maximum: float
    ideal: Optional[float]
    deviation_pp: Optional[float]
    status: str
    banded: bool = True


@dataclass(frozen=True)
class PolicyComplianceResult(_BaseResult):
    overall_score: float
    strategies: Tuple[StrategyCompliance, ...]
    violations: Tuple[str, ...]
    warnings: Tuple[str, ...]
    compliant: Tuple[str, ...]

    def get_strategy(self, strategy: str) -> Optional[StrategyCompliance]:
        for item in self.strategies:
            if item.strategy == strategy:
                return item
        return None


@dataclass(frozen=True)
class YearSummary(_BaseResult):
    """Per-year (or whole-history when ``year`` is None) balance movement and return.

    ``relative_performance_pct`` compares portfolio and benchmark over the
    periods the benchmark covers.
    """

    year: Optional[int]
    first_period: Period
    last_period: Period
    opening_balance: float
    net_flows: float
    taxes: float
    gain: float
    closing_balance: float
    compounded_return: float
    benchmark_return: Optional[float] = None
    relative_performance_pct: Optional[float] = None


@dataclass(frozen=True)
class PerformanceView(_BaseResult):
    """
    Everything a dashboard needs for one client over one filter window.

    Built by ``analysis.build_performance_view``; every figure derives from
    the same consolidated series so cards, tables and flags agree.

    Key Data Categories:
    - **series**: consolidated per-period records in the display currency
    - **returns**: month / year / inception / trailing compounded returns
    - **risk**: ``RiskMetricsSnapshot`` over the window
    - **years / total**: balance movement per calendar year and overall
    - **policy**: allocation vs. policy bands for the latest period (when positions given)
    - **flags**: severity-sorted interpretive flags

    ``allocation`` and ``flags`` are stored read-only; cached views are shared.
    """

    display_currency: str
    start: Optional[Period]
    end: Optional[Period]
    series: Tuple[Any, ...]
    returns: WindowReturns
    risk: RiskMetricsSnapshot
    years: Tuple[YearSummary, ...]
    total: Optional[YearSummary]
    policy: Optional[PolicyComplianceResult] = None
    allocation: Mapping[str, float] = field(default_factory=dict)
    flags: Tuple[Mapping[str, Any], ...] = ()
    missing_fx: Tuple[Tuple[str, Period], ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "allocation", freeze(self.allocation))
        object.__setattr__(self, "flags", freeze(self.flags))

    def get_summary(self) -> Dict[str, Any]:
        return {
            "display_currency": self.display_currency,
            "as_of": self.returns.as_of,
            "closing_balance": self.series[-1].closing_balance if self.series else 0.0,
            "month_return": self.returns.month,
            "year_return": self.returns.year,
            "inception_return": self.returns.inception,
            "trailing_return": self.returns.trailing,
            "policy_score": self.policy.overall_score if self.policy else None,
            **self.risk.get_summary(),
        }

    def to_api_response(self) -> Dict[str, Any]:
        payload = make_json_safe(self)
        payload["summary"] = make_json_safe(self.get_summary())
        return payload


__all__: List[str] = [
    "DrawdownEvent",
    "HitRateSummary",
    "RiskMetricsSnapshot",
    "WindowReturns",
    "StrategyCompliance",
    "PolicyComplianceResult",
    "YearSummary",
    "PerformanceView",
]
