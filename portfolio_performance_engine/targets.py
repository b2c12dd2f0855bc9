"""Client return targets and benchmark comparison.

A client target is stated as an inflation spread (``"IPCA+5%"``). Its monthly
equivalent is that month's inflation plus the de-annualized spread.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Optional

from portfolio_performance_engine._logging import log_data_quality, portfolio_logger
from portfolio_performance_engine.period import Period
from portfolio_performance_engine.providers import MarketIndicatorSource, get_market_indicator_source
from portfolio_performance_engine.returns import compound

_SPREAD_RE = re.compile(r"(\d+(?:[.,]\d+)?)")


def parse_target_spread(label: Optional[str]) -> Optional[float]:
    """Annual spread as a decimal from a target label: ``"IPCA+5.5%"`` -> 0.055.

    Returns None when the label carries no number.
    """
    if label is None:
        return None
    match = _SPREAD_RE.search(str(label))
    if not match:
        return None
    return float(match.group(1).replace(",", ".")) / 100.0


def monthly_target(annual_spread: float, monthly_inflation: float) -> float:
    """``inflation + ((1 + spread) ** (1/12) - 1)``."""
    return float(monthly_inflation) + ((1.0 + float(annual_spread)) ** (1.0 / 12.0) - 1.0)


def _source(source: Optional[MarketIndicatorSource]) -> Optional[MarketIndicatorSource]:
    return source if source is not None else get_market_indicator_source()


def collect_targets(
    source: Optional[MarketIndicatorSource],
    periods: Iterable[Period],
    annual_spread: Optional[float] = None,
) -> Dict[Period, Optional[float]]:
    """
    Monthly target per period.

    With ``annual_spread`` the target is derived from each month's inflation;
    otherwise the source's own ``target_return`` is used. Periods with no
    usable indicator map to None (left unclassified by the hit-rate tiers).
    """
    source = _source(source)
    periods = sorted({Period.coerce(p) for p in periods})
    if source is None:
        log_data_quality("missing_indicator_source", "no market indicator source registered")
        return {p: None for p in periods}

    targets: Dict[Period, Optional[float]] = {}
    for period in periods:
        indicators = source.fetch(period)
        value = None
        if indicators is not None:
            if annual_spread is not None and indicators.inflation is not None:
                value = monthly_target(annual_spread, indicators.inflation)
            elif indicators.target_return is not None:
                value = float(indicators.target_return)
        if value is None:
            log_data_quality("missing_target", f"no target for {period.label}", period=period.label)
        targets[period] = value
    return targets


def benchmark_series(
    source: Optional[MarketIndicatorSource],
    periods: Iterable[Period],
    name: str,
) -> Dict[Period, float]:
    """Monthly returns of benchmark ``name`` for the periods the source covers."""
    source = _source(source)
    if source is None:
        log_data_quality("missing_indicator_source", "no market indicator source registered")
        return {}
    out: Dict[Period, float] = {}
    for period in sorted({Period.coerce(p) for p in periods}):
        indicators = source.fetch(period)
        value = indicators.benchmark_returns.get(name) if indicators is not None else None
        if value is None:
            log_data_quality("missing_benchmark", f"no {name} return for {period.label}", period=period.label)
            continue
        out[period] = float(value)
    return out


def relative_performance(portfolio_return: float, benchmark_return: float) -> float:
    """Portfolio return as a percentage of the benchmark's (0 when the benchmark is 0)."""
    if benchmark_return == 0:
        portfolio_logger.debug("relative_performance: benchmark return is 0")
        return 0.0
    return float(portfolio_return) / float(benchmark_return) * 100.0


def benchmark_return(
    source: Optional[MarketIndicatorSource],
    periods: Iterable[Period],
    name: str,
) -> Optional[float]:
    """Compounded benchmark return over ``periods``; None when no period is covered."""
    series = benchmark_series(source, periods, name)
    if not series:
        return None
    return compound(series[p] for p in sorted(series))
