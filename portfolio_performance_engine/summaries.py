"""Year-by-year and whole-history summaries of a consolidated series."""

from __future__ import annotations

from itertools import groupby
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from portfolio_performance_engine.data_objects import ConsolidatedPeriodRecord
from portfolio_performance_engine.period import Period
from portfolio_performance_engine.returns import compound, period_returns
from portfolio_performance_engine.results import YearSummary
from portfolio_performance_engine.targets import relative_performance


def _summarize(
    rows: Sequence[ConsolidatedPeriodRecord],
    year: Optional[int],
    benchmark: Optional[Mapping[Period, float]],
) -> YearSummary:
    compounded = compound(r.weighted_return for r in rows)
    bench_return = None
    relative = None
    if benchmark:
        covered = [r for r in rows if r.period in benchmark]
        if covered:
            bench_return = compound(benchmark[r.period] for r in covered)
            # compared over the periods the benchmark covers
            relative = relative_performance(compound(r.weighted_return for r in covered), bench_return)
    return YearSummary(
        year=year,
        first_period=rows[0].period,
        last_period=rows[-1].period,
        opening_balance=rows[0].opening_balance,
        net_flows=sum(r.net_flows for r in rows),
        taxes=sum(r.taxes for r in rows),
        gain=sum(r.gain for r in rows),
        closing_balance=rows[-1].closing_balance,
        compounded_return=compounded,
        benchmark_return=bench_return,
        relative_performance_pct=relative,
    )


def year_summaries(
    consolidated: Sequence[ConsolidatedPeriodRecord],
    benchmark: Optional[Mapping[Period, float]] = None,
) -> List[YearSummary]:
    """One summary per calendar year, oldest first.

    Opening balance is the first period's, closing the last period's; flows,
    taxes and gain are summed; the return is compounded.
    """
    rows = sorted(consolidated, key=lambda r: r.period)
    return [
        _summarize(list(group), year, benchmark)
        for year, group in groupby(rows, key=lambda r: r.period.year)
    ]


def total_summary(
    consolidated: Sequence[ConsolidatedPeriodRecord],
    benchmark: Optional[Mapping[Period, float]] = None,
) -> Optional[YearSummary]:
    rows = sorted(consolidated, key=lambda r: r.period)
    if not rows:
        return None
    return _summarize(rows, None, benchmark)


def best_period(series) -> Optional[Tuple[Period, float]]:
    """Highest-return period; the earliest one wins ties."""
    pairs = period_returns(series)
    if not pairs:
        return None
    return max(pairs, key=lambda pair: (pair[1], -pair[0].ordinal))


def worst_period(series) -> Optional[Tuple[Period, float]]:
    """Lowest-return period; the earliest one wins ties."""
    pairs = period_returns(series)
    if not pairs:
        return None
    return min(pairs, key=lambda pair: (pair[1], pair[0].ordinal))


def returns_by_year(series) -> Dict[int, float]:
    """Compounded return per calendar year."""
    pairs = period_returns(series)
    return {
        year: compound(r for _, r in group)
        for year, group in groupby(pairs, key=lambda pair: pair[0].year)
    }
