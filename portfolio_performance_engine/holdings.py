"""
Holdings breakdowns for one snapshot period.

Issuer exposure, maturity schedule, diversification counts and allocation
by institution/account. Amounts are converted into the display currency
through a ``CurrencyNormalizer`` and each view defaults to the latest period
present in the position records.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from portfolio_performance_engine import config
from portfolio_performance_engine.constants import group_strategy
from portfolio_performance_engine.consolidation import breakdown, latest_period, records_for_period
from portfolio_performance_engine.currency import CurrencyNormalizer
from portfolio_performance_engine.data_objects import PositionRecord
from portfolio_performance_engine.period import Period

UNSPECIFIED_ISSUER = "Unspecified"


def _snapshot_frame(
    positions: Iterable[PositionRecord],
    period: Optional[Union[Period, str]],
    normalizer: Optional[CurrencyNormalizer],
) -> pd.DataFrame:
    positions = list(positions)
    target = Period.coerce(period) if period is not None else latest_period(positions)
    columns = ["period", "institution", "account", "asset", "strategy", "issuer", "maturity", "rate_label", "value"]
    if target is None:
        return pd.DataFrame(columns=columns)
    normalizer = normalizer or CurrencyNormalizer()
    rows = [
        {
            "period": p.period,
            "institution": p.institution,
            "account": p.account,
            "asset": p.asset,
            "strategy": group_strategy(p.strategy),
            "issuer": p.issuer or UNSPECIFIED_ISSUER,
            "maturity": p.maturity,
            "rate_label": p.rate_label,
            "value": normalizer.convert_value(p.position, p.period, p.currency),
        }
        for p in records_for_period(positions, target)
    ]
    return pd.DataFrame(rows, columns=columns)


def issuer_exposure(
    positions: Iterable[PositionRecord],
    period: Optional[Union[Period, str]] = None,
    normalizer: Optional[CurrencyNormalizer] = None,
    top_n: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Largest issuers by exposure: ``[{issuer, value, pct, positions}]``."""
    top_n = int(top_n if top_n is not None else config.TOP_ISSUERS)
    df = _snapshot_frame(positions, period, normalizer)
    if df.empty:
        return []
    total = float(df["value"].sum())
    grouped = (
        df.groupby("issuer")
        .agg(value=("value", "sum"), positions=("asset", "size"))
        .sort_values("value", ascending=False)
        .head(top_n)
    )
    return [
        {
            "issuer": issuer,
            "value": float(row["value"]),
            "pct": float(row["value"]) * 100.0 / total if total else 0.0,
            "positions": int(row["positions"]),
        }
        for issuer, row in grouped.iterrows()
    ]


def maturity_schedule(
    positions: Iterable[PositionRecord],
    period: Optional[Union[Period, str]] = None,
    normalizer: Optional[CurrencyNormalizer] = None,
    horizon_months: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Maturing amounts per month over the next ``horizon_months`` after the snapshot period.

    Each entry: ``{period, value, positions, by_strategy}``; months with
    nothing maturing are omitted.
    """
    horizon = int(horizon_months if horizon_months is not None else config.MATURITY_HORIZON_MONTHS)
    df = _snapshot_frame(positions, period, normalizer)
    df = df[df["maturity"].notna()]
    if df.empty:
        return []
    as_of = df["period"].iloc[0]
    df = df.assign(maturity_period=[Period.from_date(m) for m in df["maturity"]])
    df = df[[as_of < mp <= as_of.shift(horizon) for mp in df["maturity_period"]]]

    schedule = []
    for maturity_period, group in sorted(df.groupby("maturity_period", sort=False), key=lambda item: item[0]):
        schedule.append(
            {
                "period": maturity_period,
                "value": float(group["value"].sum()),
                "positions": int(len(group)),
                "by_strategy": group.groupby("strategy")["value"].sum().astype(float).to_dict(),
            }
        )
    return schedule


def next_maturity(
    positions: Iterable[PositionRecord],
    as_of: Optional[date] = None,
    period: Optional[Union[Period, str]] = None,
    normalizer: Optional[CurrencyNormalizer] = None,
) -> Optional[Dict[str, Any]]:
    """Earliest maturity strictly after ``as_of`` (default: end of the snapshot month)."""
    df = _snapshot_frame(positions, period, normalizer)
    df = df[df["maturity"].notna()]
    if df.empty:
        return None
    if as_of is None:
        snapshot = df["period"].iloc[0]
        as_of = (pd.Timestamp(year=snapshot.year, month=snapshot.month, day=1) + pd.offsets.MonthEnd(0)).date()
    upcoming = df[[m > as_of for m in df["maturity"]]]
    if upcoming.empty:
        return None
    first = min(upcoming["maturity"])
    due = upcoming[[m == first for m in upcoming["maturity"]]]
    return {
        "date": first,
        "value": float(due["value"].sum()),
        "assets": sorted(due["asset"].unique().tolist()),
    }


def diversification(positions: Iterable[PositionRecord]) -> Dict[Period, Dict[str, int]]:
    """Unique assets, strategies, issuers and institutions per period."""
    out: Dict[Period, Dict[str, int]] = {}
    positions = list(positions)
    for period in sorted({p.period for p in positions}):
        current = records_for_period(positions, period)
        out[period] = {
            "assets": len({p.asset for p in current}),
            "strategies": len({group_strategy(p.strategy) for p in current}),
            "issuers": len({p.issuer for p in current if p.issuer}),
            "institutions": len({p.institution for p in current}),
        }
    return out


def allocation_by_institution(
    records: Iterable[Any],
    period: Optional[Union[Period, str]] = None,
    normalizer: Optional[CurrencyNormalizer] = None,
    by_account: bool = False,
) -> Dict[str, float]:
    """Percent of the period's closing balance per institution (or ``institution / account``)."""
    rows = breakdown(records, "account" if by_account else "institution", period, normalizer)
    total = sum(r.closing_balance for r in rows)
    if total == 0:
        return {}
    out = {}
    for r in rows:
        label = r.institution if not by_account else f"{r.institution} / {r.account or '-'}"
        out[label] = r.closing_balance * 100.0 / total
    return dict(sorted(out.items(), key=lambda item: item[1], reverse=True))
