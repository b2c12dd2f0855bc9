"""Public API for portfolio_performance_engine."""

from portfolio_performance_engine.analysis import (
    PerformanceViewCache,
    build_performance_view,
    clear_performance_view_cache,
    get_performance_view_cache_stats,
)
from portfolio_performance_engine.consolidation import (
    consolidate,
    filter_records,
    latest_period,
    records_for_period,
    trailing_window,
)
from portfolio_performance_engine.currency import CurrencyNormalizer
from portfolio_performance_engine.data_objects import (
    BalanceRecord,
    ConsolidatedPeriodRecord,
    PolicyBand,
    PositionRecord,
)
from portfolio_performance_engine.fx import FXRateTable
from portfolio_performance_engine.period import Period
from portfolio_performance_engine.policy_compliance import allocation_by_strategy, score
from portfolio_performance_engine.providers import (
    BalanceSource,
    FXProvider,
    MarketIndicators,
    MarketIndicatorSource,
    PositionSource,
    get_fx_provider,
    get_market_indicator_source,
    set_fx_provider,
    set_market_indicator_source,
)
from portfolio_performance_engine.returns import (
    compound,
    compound_by_period,
    cumulative_returns,
    inception_return,
    window_returns,
)
from portfolio_performance_engine.risk_metrics import analyze, classify_hit, drawdown_events, volatility_bands

__all__ = [
    "PerformanceViewCache",
    "build_performance_view",
    "clear_performance_view_cache",
    "get_performance_view_cache_stats",
    "consolidate",
    "filter_records",
    "latest_period",
    "records_for_period",
    "trailing_window",
    "CurrencyNormalizer",
    "BalanceRecord",
    "ConsolidatedPeriodRecord",
    "PolicyBand",
    "PositionRecord",
    "FXRateTable",
    "Period",
    "allocation_by_strategy",
    "score",
    "BalanceSource",
    "FXProvider",
    "MarketIndicators",
    "MarketIndicatorSource",
    "PositionSource",
    "get_fx_provider",
    "get_market_indicator_source",
    "set_fx_provider",
    "set_market_indicator_source",
    "compound",
    "compound_by_period",
    "cumulative_returns",
    "inception_return",
    "window_returns",
    "analyze",
    "classify_hit",
    "drawdown_events",
    "volatility_bands",
]
