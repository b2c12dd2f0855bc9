"""
Risk and hit-rate analysis over a window of monthly returns.

All statistics are population statistics (divide by N). The geometric mean
``(prod(1 + r)) ** (1/N) - 1`` is the headline average return and feeds the
Sharpe- and Sortino-like ratios; the arithmetic mean is only used for
dispersion (variance, upside/downside volatility, volatility bands).

Every function is total: empty or degenerate input returns zeros rather
than raising.
"""

from __future__ import annotations

import math
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from portfolio_performance_engine import config
from portfolio_performance_engine._logging import log_data_quality, log_timing
from portfolio_performance_engine.constants import HIT, HOME_RUN, MISS, NEAR_MISS
from portfolio_performance_engine.period import Period
from portfolio_performance_engine.results import (
    DrawdownEvent,
    HitRateSummary,
    RiskMetricsSnapshot,
)
from portfolio_performance_engine.returns import cumulative_returns, period_returns

Targets = Union[None, float, Mapping[Any, Optional[float]]]


def geometric_mean(returns: Sequence[float]) -> float:
    """``(prod(1 + r)) ** (1/N) - 1``; 0 for empty input, -1 after a total loss."""
    if len(returns) == 0:
        return 0.0
    growth = float(np.prod(1.0 + np.asarray(returns, dtype=float)))
    if growth <= 0:
        return -1.0
    return growth ** (1.0 / len(returns)) - 1.0


def _resolve_targets(periods: Sequence[Period], targets: Targets) -> List[Optional[float]]:
    if targets is None:
        return [float(config.DEFAULT_MONTHLY_TARGET)] * len(periods)
    if isinstance(targets, (int, float)):
        return [float(targets)] * len(periods)
    by_period = {Period.coerce(k): v for k, v in targets.items()}
    resolved = []
    for period in periods:
        value = by_period.get(period)
        resolved.append(None if value is None or pd.isna(value) else float(value))
    return resolved


def classify_hit(monthly_return: float, target: float, sigma: float) -> str:
    """Tier of one period's return against its target.

    Checked in order: ``r >= t + sigma`` Home Run; ``r >= t`` Hit;
    ``r > 0`` Near Miss; otherwise Miss.
    """
    if monthly_return >= target + sigma:
        return HOME_RUN
    if monthly_return >= target:
        return HIT
    if monthly_return > 0:
        return NEAR_MISS
    return MISS


def hit_rate_summary(
    periods: Sequence[Period],
    returns: Sequence[float],
    targets: Sequence[Optional[float]],
    sigma: float,
) -> HitRateSummary:
    """Tier counts; hit rate = (Home Runs + Hits) / classified periods, in percent."""
    counts = {HOME_RUN: 0, HIT: 0, NEAR_MISS: 0, MISS: 0}
    tiers: List[Tuple[Period, str]] = []
    unclassified = 0
    for period, r, t in zip(periods, returns, targets):
        if t is None:
            unclassified += 1
            continue
        tier = classify_hit(r, t, sigma)
        counts[tier] += 1
        tiers.append((period, tier))
    if unclassified:
        log_data_quality("missing_target", f"{unclassified} period(s) without a target left unclassified")
    classified = sum(counts.values())
    hit_rate_pct = (counts[HOME_RUN] + counts[HIT]) / classified * 100.0 if classified else 0.0
    return HitRateSummary(
        home_runs=counts[HOME_RUN],
        hits=counts[HIT],
        near_misses=counts[NEAR_MISS],
        misses=counts[MISS],
        unclassified=unclassified,
        hit_rate_pct=hit_rate_pct,
        tiers=tuple(tiers),
    )


def drawdown_events(balances: Sequence[float], periods: Sequence[Period]) -> List[DrawdownEvent]:
    """
    Peak-to-trough events over a closing-balance path.

    An event opens when the balance drops below the running peak and closes
    on the first period whose balance is at or above that peak. Durations are
    index distances: ``duration_months`` peak -> trough, ``recovery_months``
    trough -> recovery (None while open).
    """
    events: List[DrawdownEvent] = []
    if len(balances) == 0:
        return events
    values = [float(b) for b in balances]
    periods = [Period.coerce(p) for p in periods]
    last_index = len(values) - 1

    peak_idx = 0
    trough_idx: Optional[int] = None

    def _close(recovery_idx: Optional[int]) -> None:
        peak_value = values[peak_idx]
        trough_value = values[trough_idx]
        depth_pct = (peak_value - trough_value) / peak_value * 100.0 if peak_value > 0 else 0.0
        duration = trough_idx - peak_idx
        if recovery_idx is None:
            recovery = None
            elapsed = last_index - trough_idx
        else:
            recovery = recovery_idx - trough_idx
            elapsed = recovery
        events.append(
            DrawdownEvent(
                peak_period=periods[peak_idx],
                trough_period=periods[trough_idx],
                recovery_period=periods[recovery_idx] if recovery_idx is not None else None,
                peak_value=peak_value,
                trough_value=trough_value,
                depth_pct=depth_pct,
                duration_months=duration,
                recovery_months=recovery,
                pain_index=depth_pct * (duration + elapsed) / 100.0,
            )
        )

    for i in range(1, len(values)):
        value = values[i]
        if trough_idx is None:
            if value >= values[peak_idx]:
                peak_idx = i
            else:
                trough_idx = i
        elif value >= values[peak_idx]:
            _close(i)
            peak_idx = i
            trough_idx = None
        elif value < values[trough_idx]:
            trough_idx = i

    if trough_idx is not None:
        _close(None)
    return events


def max_drawdown(balances: Sequence[float]) -> float:
    """Largest (peak - trough) / peak along the running peak, as a fraction."""
    if len(balances) == 0:
        return 0.0
    s = pd.Series(balances, dtype=float)
    running_peak = s.cummax()
    depth = (running_peak - s) / running_peak.where(running_peak > 0)
    result = depth.max()
    return float(result) if pd.notna(result) else 0.0


def _growth_path(returns: Sequence[float]) -> List[float]:
    return [1.0] + [1.0 + c for c in cumulative_returns(returns)]


@log_timing(0.5)
def analyze(
    periods: Any,
    targets: Targets = None,
    risk_free_rate: Optional[float] = None,
) -> RiskMetricsSnapshot:
    """
    Risk snapshot of a chronologically sortable return series.

    Args:
        periods: consolidated records (uses ``weighted_return`` and
            ``closing_balance``), a mapping Period -> return, or pairs.
        targets: mapping Period -> monthly target, a single monthly target,
            or None for ``config.DEFAULT_MONTHLY_TARGET``.
        risk_free_rate: monthly risk-free rate; defaults to
            ``config.RISK_FREE_RATE_MONTHLY``.

    When closing balances are available, drawdowns run on them; otherwise
    on the compounded growth path of the returns.
    """
    rf = float(config.RISK_FREE_RATE_MONTHLY if risk_free_rate is None else risk_free_rate)
    items = list(periods) if not isinstance(periods, (Mapping, pd.Series)) else periods
    pairs = period_returns(items)
    if not pairs:
        return RiskMetricsSnapshot(risk_free_rate=rf)

    period_list = [p for p, _ in pairs]
    r = np.asarray([v for _, v in pairs], dtype=float)
    n = len(r)

    mean = float(r.mean())
    geo = geometric_mean(r)
    variance = float(np.mean((r - mean) ** 2))
    sigma = math.sqrt(variance)

    target_list = _resolve_targets(period_list, targets)
    with_target = [(v, t) for v, t in zip(r, target_list) if t is not None]
    mean_target = float(np.mean([t for _, t in with_target])) if with_target else 0.0
    below = np.asarray([v - t for v, t in with_target if v < t], dtype=float)
    downside_dev = math.sqrt(float(np.mean(below ** 2))) if below.size else 0.0

    up = r[r > mean]
    down = r[r < mean]
    upside_vol = math.sqrt(float(np.mean((up - mean) ** 2))) if up.size else 0.0
    downside_vol = math.sqrt(float(np.mean((down - mean) ** 2))) if down.size else 0.0

    has_balances = isinstance(items, list) and all(hasattr(x, "closing_balance") for x in items)
    if has_balances:
        ordered = sorted(items, key=lambda x: x.period)
        balances = [x.closing_balance for x in ordered]
        dd_periods = period_list
    else:
        balances = _growth_path(r)
        dd_periods = [period_list[0].previous()] + period_list

    best_idx = int(np.argmax(r))
    worst_idx = int(np.argmin(r))

    return RiskMetricsSnapshot(
        period_count=n,
        arithmetic_mean=mean,
        geometric_mean=geo,
        variance=variance,
        std_dev=sigma,
        downside_deviation=downside_dev,
        sharpe_ratio=(geo - rf) / sigma if sigma > 0 else 0.0,
        sortino_ratio=(geo - mean_target) / downside_dev if downside_dev > 0 else 0.0,
        upside_volatility=upside_vol,
        downside_volatility=downside_vol,
        volatility_ratio=upside_vol / downside_vol if downside_vol > 0 else 0.0,
        max_drawdown=max_drawdown(balances),
        drawdown_events=tuple(drawdown_events(balances, dd_periods)),
        hit_rate=hit_rate_summary(period_list, r.tolist(), target_list, sigma),
        best_period=period_list[best_idx],
        best_return=float(r[best_idx]),
        worst_period=period_list[worst_idx],
        worst_return=float(r[worst_idx]),
        months_above_target=sum(1 for v, t in with_target if v >= t),
        months_below_target=sum(1 for v, t in with_target if v < t),
        risk_free_rate=rf,
    )


def volatility_bands(series: Any) -> pd.DataFrame:
    """
    Cumulative return against a mean path with +-1 and +-2 sigma bands.

    At step ``t`` (1-based) the mean path is ``(1 + mean) ** t - 1`` and the
    bands are ``mean_path +- k * sigma * sqrt(t)``. Indexed by monthly
    ``pd.Period``.
    """
    pairs = period_returns(series)
    columns = ["return", "cumulative", "mean_path", "upper_1sd", "lower_1sd", "upper_2sd", "lower_2sd"]
    if not pairs:
        return pd.DataFrame(columns=columns, index=pd.PeriodIndex([], freq="M", name="period"))

    r = np.asarray([v for _, v in pairs], dtype=float)
    mean = float(r.mean())
    sigma = float(r.std())
    steps = np.arange(1, len(r) + 1, dtype=float)
    mean_path = (1.0 + mean) ** steps - 1.0
    width = sigma * np.sqrt(steps)

    frame = pd.DataFrame(
        {
            "return": r,
            "cumulative": cumulative_returns(r),
            "mean_path": mean_path,
            "upper_1sd": mean_path + width,
            "lower_1sd": mean_path - width,
            "upper_2sd": mean_path + 2 * width,
            "lower_2sd": mean_path - 2 * width,
        },
        index=pd.PeriodIndex([p.to_pandas() for p, _ in pairs], freq="M", name="period"),
    )
    return frame[columns]
