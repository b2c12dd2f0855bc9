"""
Return composition.

Monthly returns are combined geometrically, never summed:
``acc = (1 + acc) * (1 + r) - 1`` folded left to right from 0.

``compound`` takes the sequence as given; ordering is the caller's job.
``compound_by_period`` and every window helper below sort by Period first.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from portfolio_performance_engine import config
from portfolio_performance_engine.period import Period
from portfolio_performance_engine.results import WindowReturns

PeriodReturns = List[Tuple[Period, float]]


def compound(returns: Iterable[float]) -> float:
    """Geometric composition of ``returns`` in the order given; empty -> 0."""
    acc = 0.0
    for r in returns:
        acc = (1.0 + acc) * (1.0 + float(r)) - 1.0
    return acc


def cumulative_returns(returns: Iterable[float]) -> List[float]:
    """Running compounded return after each element."""
    out = []
    acc = 0.0
    for r in returns:
        acc = (1.0 + acc) * (1.0 + float(r)) - 1.0
        out.append(acc)
    return out


def period_returns(series: Any) -> PeriodReturns:
    """
    Normalize a return series into chronologically sorted ``(Period, return)`` pairs.

    Accepts a mapping or pandas Series keyed by period, an iterable of
    ``(period, return)`` pairs, or consolidated records (``weighted_return``)
    / position and balance records (``monthly_return``).
    """
    if series is None:
        return []
    if isinstance(series, pd.Series):
        items = list(series.items())
    elif isinstance(series, Mapping):
        items = list(series.items())
    else:
        items = []
        for item in series:
            if hasattr(item, "weighted_return"):
                items.append((item.period, item.weighted_return))
            elif hasattr(item, "monthly_return"):
                items.append((item.period, item.monthly_return))
            else:
                period, value = item
                items.append((period, value))
    pairs = [(Period.coerce(p), float(r)) for p, r in items]
    pairs.sort(key=lambda pair: pair[0])
    return pairs


def compound_by_period(series: Union[Mapping, Sequence, pd.Series]) -> float:
    """Like ``compound`` but re-sorts by Period before composing."""
    return compound(r for _, r in period_returns(series))


def month_return(series: Any) -> float:
    """Return of the latest period (0 for an empty series)."""
    pairs = period_returns(series)
    return pairs[-1][1] if pairs else 0.0


def year_return(series: Any, year: Optional[int] = None) -> float:
    """Compounded return of the calendar year of the latest period (or ``year``)."""
    pairs = period_returns(series)
    if not pairs:
        return 0.0
    target_year = year if year is not None else pairs[-1][0].year
    return compound(r for p, r in pairs if p.year == target_year)


def inception_return(series: Any) -> float:
    """Compounded return over the whole series."""
    return compound(r for _, r in period_returns(series))


def trailing_return(series: Any, months: int, end_period: Optional[Any] = None) -> float:
    """Compounded return of the last ``months`` periods ending at ``end_period`` (default latest)."""
    pairs = period_returns(series)
    if end_period is not None:
        end = Period.coerce(end_period)
        pairs = [pair for pair in pairs if pair[0] <= end]
    if months <= 0 or not pairs:
        return 0.0
    return compound(r for _, r in pairs[-months:])


def window_returns(series: Any, trailing_months: Optional[int] = None) -> WindowReturns:
    """Month / year-to-date / inception / trailing returns as of the latest period."""
    months = int(trailing_months if trailing_months is not None else config.TRAILING_WINDOW_MONTHS)
    pairs = period_returns(series)
    if not pairs:
        return WindowReturns(
            month=0.0, year=0.0, inception=0.0, trailing=0.0, trailing_months=months, as_of=None
        )
    return WindowReturns(
        month=month_return(pairs),
        year=year_return(pairs),
        inception=inception_return(pairs),
        trailing=trailing_return(pairs, months),
        trailing_months=months,
        as_of=pairs[-1][0],
    )


def returns_frame(series: Any) -> pd.DataFrame:
    """Period-indexed frame with ``return`` and ``cumulative`` columns."""
    pairs = period_returns(series)
    index = pd.PeriodIndex([p.to_pandas() for p, _ in pairs], freq="M", name="period")
    values = [r for _, r in pairs]
    return pd.DataFrame({"return": values, "cumulative": cumulative_returns(values)}, index=index)
