"""
Performance view facade.

``build_performance_view`` runs the whole pipeline for one client and one
filter window:

    records -> filter -> consolidate (display currency) -> window returns
            -> risk snapshot -> year summaries -> policy compliance -> flags

Results are memoized in a bounded LRU keyed by a content hash of every
input (records, filters, FX fingerprint, targets, bands and the relevant
configuration), so two calls with equal inputs share one computation and
any change to an input is a miss.
"""

from __future__ import annotations

import dataclasses
import time
from collections import OrderedDict
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Union

from portfolio_performance_engine import config
from portfolio_performance_engine._logging import (
    log_errors,
    log_portfolio_operation,
    log_timing,
    portfolio_logger,
)
from portfolio_performance_engine.consolidation import consolidate, filter_records
from portfolio_performance_engine.currency import CurrencyNormalizer
from portfolio_performance_engine.data_objects import BalanceRecord, PositionRecord, content_key
from portfolio_performance_engine.period import Period
from portfolio_performance_engine.policy_compliance import Bands, allocation_by_strategy, score
from portfolio_performance_engine.results import PerformanceView
from portfolio_performance_engine.returns import window_returns
from portfolio_performance_engine.risk_metrics import analyze
from portfolio_performance_engine.summaries import total_summary, year_summaries
from portfolio_performance_engine.targets import benchmark_series, collect_targets, parse_target_spread

TargetsArg = Union[None, float, str, Mapping[Any, Optional[float]]]


class PerformanceViewCache:
    """
    LRU cache of ``PerformanceView`` objects keyed by input content hash.

    Keys are opaque strings from ``data_objects.content_key``; values are
    frozen views, safe to share between callers.
    """

    def __init__(self, maxsize: Optional[int] = None):
        self.maxsize = int(maxsize if maxsize is not None else config.PERFORMANCE_VIEW_CACHE_SIZE)
        self.cache: "OrderedDict[str, PerformanceView]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[PerformanceView]:
        if key not in self.cache:
            self.misses += 1
            return None
        self.hits += 1
        self.cache.move_to_end(key)
        return self.cache[key]

    def put(self, key: str, value: PerformanceView) -> None:
        if self.maxsize <= 0:
            return
        self.cache[key] = value
        self.cache.move_to_end(key)
        while len(self.cache) > self.maxsize:
            self.cache.popitem(last=False)

    def clear(self) -> None:
        self.cache.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self.cache)

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "cache_type": "LRU",
            "cache_size": len(self.cache),
            "max_size": self.maxsize,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total > 0 else 0,
        }


_VIEW_CACHE = PerformanceViewCache()


def clear_performance_view_cache() -> None:
    """Clear the module-level performance view cache."""
    _VIEW_CACHE.clear()


def get_performance_view_cache_stats() -> Dict[str, Any]:
    """Get LRU cache statistics."""
    return _VIEW_CACHE.stats()


def _resolve_targets(targets: TargetsArg, periods: Sequence[Period]) -> Any:
    if isinstance(targets, str):
        spread = parse_target_spread(targets)
        if spread is None:
            portfolio_logger.warning("Unparseable target %r, using default monthly target", targets)
            return None
        return collect_targets(None, periods, annual_spread=spread)
    return targets


def _compute_view(
    balances: Sequence[BalanceRecord],
    positions: Sequence[PositionRecord],
    normalizer: CurrencyNormalizer,
    start: Optional[Period],
    end: Optional[Period],
    targets: TargetsArg,
    bands: Bands,
    trailing_months: Optional[int],
    benchmark: Optional[str],
) -> PerformanceView:
    from core.performance_flags import generate_performance_flags

    series = consolidate(balances if balances else positions, ("period",), normalizer)
    periods = [r.period for r in series]

    bench = benchmark_series(None, periods, benchmark) if benchmark and periods else None
    years = year_summaries(series, bench)
    total = total_summary(series, bench)

    allocation: Dict[str, float] = {}
    policy = None
    if positions:
        allocation = allocation_by_strategy(positions, normalizer=normalizer)
        policy = score(allocation, bands)

    view = PerformanceView(
        display_currency=normalizer.display_currency,
        start=start if start is not None else (periods[0] if periods else None),
        end=end if end is not None else (periods[-1] if periods else None),
        series=tuple(series),
        returns=window_returns(series, trailing_months),
        risk=analyze(series, _resolve_targets(targets, periods)),
        years=tuple(years),
        total=total,
        policy=policy,
        allocation=allocation,
        missing_fx=tuple(sorted(normalizer.missing_rates, key=lambda item: (item[1], item[0]))),
    )
    flags = generate_performance_flags(view.to_api_response())
    return dataclasses.replace(view, flags=tuple(flags))


@log_errors("high")
@log_timing(1.0)
def build_performance_view(
    balances: Iterable[BalanceRecord],
    positions: Optional[Iterable[PositionRecord]] = None,
    *,
    start: Optional[Union[Period, str]] = None,
    end: Optional[Union[Period, str]] = None,
    institutions: Optional[Iterable[str]] = None,
    accounts: Optional[Iterable[str]] = None,
    normalizer: Optional[CurrencyNormalizer] = None,
    targets: TargetsArg = None,
    bands: Bands = None,
    trailing_months: Optional[int] = None,
    benchmark: Optional[str] = None,
    cache: Union[PerformanceViewCache, bool, None] = None,
) -> PerformanceView:
    """
    Build the full performance view for one client.

    Args:
        balances: balance records; when empty, positions are consolidated
            instead for the return series.
        positions: position records, used for allocation and policy compliance.
        start, end: inclusive filter window.
        institutions, accounts: restrict to these institutions / accounts.
        normalizer: currency normalizer (display currency + FX provider).
        targets: mapping Period -> monthly target, a single monthly target, a
            spread label such as ``"IPCA+5%"`` (resolved through the registered
            market indicator source), or None for the configured default.
        bands: policy bands; None uses ``config.POLICY_BANDS``.
        trailing_months: trailing window length; None uses the config default.
        benchmark: benchmark name for year-summary comparisons.
        cache: a ``PerformanceViewCache``; None uses the module cache and
            False disables caching.

    Returns:
        PerformanceView
    """
    started = time.perf_counter()
    normalizer = normalizer or CurrencyNormalizer()
    start_p = Period.coerce(start) if start is not None else None
    end_p = Period.coerce(end) if end is not None else None
    institution_list = sorted(institutions) if institutions is not None else None
    account_list = sorted(accounts) if accounts is not None else None

    window = dict(start=start_p, end=end_p, institutions=institution_list, accounts=account_list)
    balances_f = filter_records(balances, **window)
    positions_f = filter_records(positions or [], **window)

    if cache is None or cache is True:
        view_cache = _VIEW_CACHE
    elif cache is False:
        view_cache = None
    else:
        view_cache = cache
    fx_fingerprint = normalizer.fingerprint()
    # Indicator-source lookups are not part of the key.
    uses_indicator_source = isinstance(targets, str) or bool(benchmark)
    key = None
    if view_cache is not None and fx_fingerprint is not None and not uses_indicator_source:
        key = content_key(
            balances_f,
            positions_f,
            window,
            fx_fingerprint,
            targets,
            bands if bands is not None else config.POLICY_BANDS,
            trailing_months if trailing_months is not None else config.TRAILING_WINDOW_MONTHS,
            benchmark,
            {
                "rf": config.RISK_FREE_RATE_MONTHLY,
                "default_target": config.DEFAULT_MONTHLY_TARGET,
                "policy": config.POLICY_THRESHOLDS,
                "flags": config.FLAG_THRESHOLDS,
            },
        )
        cached = view_cache.get(key)
        if cached is not None:
            portfolio_logger.debug("performance view cache hit %s", key)
            return cached
    elif view_cache is not None:
        portfolio_logger.debug("performance view cache bypassed (unhashable FX provider or indicator source)")

    view = _compute_view(
        balances_f,
        positions_f,
        normalizer.fork(),
        start_p,
        end_p,
        targets,
        bands,
        trailing_months,
        benchmark,
    )
    if key is not None:
        view_cache.put(key, view)

    log_portfolio_operation(
        "build_performance_view",
        {
            "periods": len(view.series),
            "display_currency": view.display_currency,
            "flags": len(view.flags),
            "missing_fx": len(view.missing_fx),
        },
        execution_time=time.perf_counter() - started,
    )
    return view
