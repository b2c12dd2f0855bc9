"""
Period consolidation.

Groups raw position or balance records by period (optionally refined by
institution, account or strategy), normalizes every amount and return into
the display currency, and aggregates each group into a
``ConsolidatedPeriodRecord`` whose return is the closing-balance weighted
average of its members.

Consolidated records are derived on every read and never stored.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, List, Optional, Sequence, Union

import pandas as pd

from portfolio_performance_engine._logging import log_operation, portfolio_logger
from portfolio_performance_engine.constants import (
    GROUP_BY_PERIOD,
    GROUP_KEYS,
    MONETARY_FIELDS,
    group_strategy,
)
from portfolio_performance_engine.currency import CurrencyNormalizer
from portfolio_performance_engine.data_objects import (
    BalanceRecord,
    ConsolidatedPeriodRecord,
    PositionRecord,
    ensure_unique_keys,
)
from portfolio_performance_engine.period import Period

Record = Union[PositionRecord, BalanceRecord]
PeriodLike = Union[Period, str, date, pd.Period]

_OPTIONAL_KEYS = ("institution", "account", "strategy")


def _validate_group_keys(group_keys: Sequence[str], records: Sequence[Record]) -> tuple[str, ...]:
    keys = tuple(group_keys)
    unknown = [k for k in keys if k not in GROUP_KEYS]
    if unknown:
        raise ValueError(f"Unknown group keys {unknown}; allowed: {list(GROUP_KEYS)}")
    if "period" not in keys:
        raise ValueError("'period' must be one of the group keys")
    if "strategy" in keys and any(isinstance(r, BalanceRecord) for r in records):
        raise ValueError("'strategy' grouping requires PositionRecords")
    return keys


def _normalized_row(record: Record, normalizer: CurrencyNormalizer) -> dict[str, Any]:
    period = record.period
    origin = record.currency
    if isinstance(record, PositionRecord):
        amounts = {name: 0.0 for name in MONETARY_FIELDS}
        amounts["closing_balance"] = normalizer.convert_value(record.position, period, origin)
        strategy = group_strategy(record.strategy)
    else:
        amounts = {
            name: normalizer.convert_value(getattr(record, name), period, origin)
            for name in MONETARY_FIELDS
        }
        strategy = None
    monthly_return = normalizer.adjust_return_with_fx(record.monthly_return, period, origin)
    return {
        "period_ordinal": period.ordinal,
        "institution": record.institution,
        "account": record.account or "",
        "strategy": strategy or "",
        **amounts,
        "weighted_component": monthly_return * amounts["closing_balance"],
    }


@log_operation("consolidate")
def consolidate(
    records: Iterable[Record],
    group_keys: Sequence[str] = GROUP_BY_PERIOD,
    normalizer: Optional[CurrencyNormalizer] = None,
) -> List[ConsolidatedPeriodRecord]:
    """
    Aggregate records into one consolidated row per group.

    Args:
        records: PositionRecords (position counts as closing balance) or
            BalanceRecords. Mixing both in one call is allowed for period
            and institution groupings.
        group_keys: subset of ``("period", "institution", "account",
            "strategy")``; ``"period"`` is required.
        normalizer: currency normalizer; defaults to the configured display
            currency and registered FX provider. Missing rates are added to
            its ``missing_rates`` and kept across calls.

    Returns:
        Records sorted by period, then institution, account and strategy.
        Periods with no input records are absent.

    Raises:
        ValueError: invalid group keys, or two PositionRecords sharing
            (period, institution, account, asset).
    """
    records = list(records)
    keys = _validate_group_keys(group_keys, records)
    ensure_unique_keys([r for r in records if isinstance(r, PositionRecord)])
    if not records:
        return []
    normalizer = normalizer or CurrencyNormalizer()

    df = pd.DataFrame([_normalized_row(r, normalizer) for r in records])
    frame_keys = ["period_ordinal" if k == "period" else k for k in keys]
    totals = df.groupby(frame_keys, sort=False).agg(
        **{name: (name, "sum") for name in MONETARY_FIELDS},
        weighted_component=("weighted_component", "sum"),
        record_count=("closing_balance", "size"),
    )

    out: List[ConsolidatedPeriodRecord] = []
    for group, row in totals.iterrows():
        group = group if isinstance(group, tuple) else (group,)
        labels = dict(zip(frame_keys, group))
        total_weight = float(row["closing_balance"])
        weighted_return = float(row["weighted_component"]) / total_weight if total_weight != 0 else 0.0
        out.append(
            ConsolidatedPeriodRecord(
                period=Period.from_ordinal(int(labels["period_ordinal"])),
                opening_balance=float(row["opening_balance"]),
                net_flows=float(row["net_flows"]),
                taxes=float(row["taxes"]),
                gain=float(row["gain"]),
                closing_balance=total_weight,
                weighted_return=weighted_return,
                currency=normalizer.display_currency,
                institution=labels.get("institution") or None,
                account=labels.get("account") or None,
                strategy=labels.get("strategy") or None,
                record_count=int(row["record_count"]),
            )
        )
    out.sort(key=lambda r: r.sort_key)
    portfolio_logger.debug("consolidate: %d records -> %d groups by %s", len(records), len(out), keys)
    return out


def filter_records(
    records: Iterable[Record],
    start: Optional[PeriodLike] = None,
    end: Optional[PeriodLike] = None,
    institutions: Optional[Iterable[str]] = None,
    accounts: Optional[Iterable[str]] = None,
) -> List[Record]:
    """Records inside the inclusive [start, end] window and the given institutions/accounts."""
    start_p = Period.coerce(start) if start is not None else None
    end_p = Period.coerce(end) if end is not None else None
    institution_set = set(institutions) if institutions is not None else None
    account_set = set(accounts) if accounts is not None else None

    out = []
    for record in records:
        if start_p is not None and record.period < start_p:
            continue
        if end_p is not None and record.period > end_p:
            continue
        if institution_set is not None and record.institution not in institution_set:
            continue
        if account_set is not None and record.account not in account_set:
            continue
        out.append(record)
    return out


def latest_period(records: Iterable[Any]) -> Optional[Period]:
    """Most recent period among ``records`` (None when empty)."""
    periods = [r.period for r in records]
    return max(periods) if periods else None


def records_for_period(records: Iterable[Any], period: PeriodLike) -> List[Any]:
    target = Period.coerce(period)
    return [r for r in records if r.period == target]


def trailing_window(
    consolidated: Sequence[ConsolidatedPeriodRecord],
    target_period: PeriodLike,
    months: int,
) -> List[ConsolidatedPeriodRecord]:
    """
    Up to ``months`` records ending at ``target_period``, chronologically.

    The window is clamped to the start of the series. ``consolidated`` is
    expected to hold one record per period (a ``("period",)`` grouping).
    """
    if months <= 0:
        return []
    target = Period.coerce(target_period)
    eligible = sorted((r for r in consolidated if r.period <= target), key=lambda r: r.period)
    return eligible[-months:]


def breakdown(
    records: Iterable[Record],
    by: str,
    period: Optional[PeriodLike] = None,
    normalizer: Optional[CurrencyNormalizer] = None,
) -> List[ConsolidatedPeriodRecord]:
    """One period's consolidation split by ``institution``, ``account`` or ``strategy``.

    Defaults to the latest period present in ``records``.
    """
    if by not in _OPTIONAL_KEYS:
        raise ValueError(f"Unknown breakdown key {by!r}; allowed: {list(_OPTIONAL_KEYS)}")
    records = list(records)
    target = Period.coerce(period) if period is not None else latest_period(records)
    if target is None:
        return []
    keys = ("period", "institution", "account") if by == "account" else ("period", by)
    return consolidate(records_for_period(records, target), keys, normalizer)
