"""
Core Data Objects Module

Immutable record types consumed and produced by the performance engine.

Classes:
- PositionRecord: one holding of one asset for one institution/account in one period
- BalanceRecord: one consolidated balance row per (period, institution, account)
- ConsolidatedPeriodRecord: the consolidator's output row (display currency)
- PolicyBand: min / max / ideal allocation percent for one strategy

Records validate at construction and fail fast: a malformed period label or a
non-finite amount raises ``ValueError`` at the ingestion boundary so the
downstream math can assume well-formed inputs.

Usage: build records with the dataclass constructors or ``from_dataframe``
and hand them to ``consolidation.consolidate``.
"""

from __future__ import annotations

import hashlib
import json
import math
import numbers
from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from portfolio_performance_engine.constants import normalize_currency
from portfolio_performance_engine.period import Period


def _require_text(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} must be a non-empty string")
    return value.strip()


def _require_finite(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValueError(f"{name} must be numeric")
    if pd.isna(value) or not math.isfinite(float(value)):
        raise ValueError(f"{name} must be finite")
    return float(value)


def _optional_text(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    text = str(value).strip()
    return text or None


def _coerce_date(value: Any, name: str) -> Optional[date]:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return pd.Timestamp(value).date()
        except ValueError as e:
            raise ValueError(f"{name} is not a valid date: {value!r}") from e
    raise ValueError(f"{name} must be a date")


def _frame_rows(df: Optional[pd.DataFrame]) -> List[Dict[str, Any]]:
    if df is None:
        raise ValueError("df must be provided")
    df_copy = df.copy()
    df_copy = df_copy.astype(object).where(pd.notnull(df_copy), None)
    return df_copy.to_dict(orient="records")


@dataclass(frozen=True)
class PositionRecord:
    """
    One holding of one asset for one institution/account in one period.

    ``position`` is expressed in ``currency`` (currency of origin);
    ``monthly_return`` is a decimal fraction (0.01 == 1%).
    """

    period: Period
    institution: str
    asset: str
    strategy: str
    position: float
    currency: str
    monthly_return: float
    account: Optional[str] = None
    maturity: Optional[date] = None
    issuer: Optional[str] = None
    rate_label: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "period", Period.coerce(self.period))
        object.__setattr__(self, "institution", _require_text(self.institution, "institution"))
        object.__setattr__(self, "asset", _require_text(self.asset, "asset"))
        object.__setattr__(self, "strategy", _require_text(self.strategy, "strategy"))
        object.__setattr__(self, "position", _require_finite(self.position, "position"))
        object.__setattr__(self, "monthly_return", _require_finite(self.monthly_return, "monthly_return"))
        object.__setattr__(self, "currency", normalize_currency(self.currency))
        object.__setattr__(self, "account", _optional_text(self.account))
        object.__setattr__(self, "maturity", _coerce_date(self.maturity, "maturity"))
        object.__setattr__(self, "issuer", _optional_text(self.issuer))
        object.__setattr__(self, "rate_label", _optional_text(self.rate_label))

    @property
    def key(self) -> tuple:
        """Identity of the holding: (period, institution, account, asset)."""
        return (self.period, self.institution, self.account, self.asset)

    @classmethod
    def from_dataframe(cls, df: Optional[pd.DataFrame]) -> List["PositionRecord"]:
        """Create records from a DataFrame whose columns match the field names."""
        allowed = {f.name for f in fields(cls)}
        return [cls(**{k: v for k, v in row.items() if k in allowed}) for row in _frame_rows(df)]


@dataclass(frozen=True)
class BalanceRecord:
    """One consolidated balance row per (period, institution, account)."""

    period: Period
    institution: str
    currency: str
    opening_balance: float
    net_flows: float
    taxes: float
    gain: float
    closing_balance: float
    monthly_return: float
    account: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "period", Period.coerce(self.period))
        object.__setattr__(self, "institution", _require_text(self.institution, "institution"))
        object.__setattr__(self, "currency", normalize_currency(self.currency))
        for name in ("opening_balance", "net_flows", "taxes", "gain", "closing_balance", "monthly_return"):
            object.__setattr__(self, name, _require_finite(getattr(self, name), name))
        object.__setattr__(self, "account", _optional_text(self.account))

    @property
    def key(self) -> tuple:
        return (self.period, self.institution, self.account)

    @classmethod
    def from_dataframe(cls, df: Optional[pd.DataFrame]) -> List["BalanceRecord"]:
        """Create records from a DataFrame whose columns match the field names."""
        allowed = {f.name for f in fields(cls)}
        return [cls(**{k: v for k, v in row.items() if k in allowed}) for row in _frame_rows(df)]


@dataclass(frozen=True)
class ConsolidatedPeriodRecord:
    """Aggregated totals for one group of records, in the display currency."""

    period: Period
    opening_balance: float
    net_flows: float
    taxes: float
    gain: float
    closing_balance: float
    weighted_return: float
    currency: str
    institution: Optional[str] = None
    account: Optional[str] = None
    strategy: Optional[str] = None
    record_count: int = 0

    @property
    def sort_key(self) -> tuple:
        return (self.period, self.institution or "", self.account or "", self.strategy or "")


@dataclass(frozen=True)
class PolicyBand:
    """Allocation band for one strategy, in percent of the total portfolio."""

    strategy: str
    minimum: float
    maximum: float
    ideal: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "strategy", _require_text(self.strategy, "strategy"))
        minimum = _require_finite(self.minimum, "minimum")
        maximum = _require_finite(self.maximum, "maximum")
        if minimum > maximum:
            raise ValueError(f"Policy band for {self.strategy!r} has minimum > maximum")
        object.__setattr__(self, "minimum", minimum)
        object.__setattr__(self, "maximum", maximum)
        if self.ideal is not None:
            object.__setattr__(self, "ideal", _require_finite(self.ideal, "ideal"))

    @classmethod
    def from_config(cls, bands: Dict[str, Dict[str, Any]]) -> List["PolicyBand"]:
        """Build bands from the ``{strategy: {minimum, maximum, ideal}}`` config shape."""
        return [
            cls(
                strategy=strategy,
                minimum=limits.get("minimum", 0.0),
                maximum=limits.get("maximum", 100.0),
                ideal=limits.get("ideal"),
            )
            for strategy, limits in bands.items()
        ]


def _key_payload(obj: Any) -> Any:
    if isinstance(obj, Period):
        return obj.label
    if isinstance(obj, (PositionRecord, BalanceRecord, PolicyBand)):
        return {f.name: _key_payload(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, dict):
        return {str(_key_payload(k)): _key_payload(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        items = [_key_payload(item) for item in obj]
        if isinstance(obj, (set, frozenset)):
            items = sorted(items, key=str)
        return items
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    return obj


def content_key(*parts: Any) -> str:
    """MD5 of the JSON-serialized inputs; equal inputs give equal keys."""
    json_str = json.dumps([_key_payload(p) for p in parts], sort_keys=True, default=str)
    return hashlib.md5(json_str.encode()).hexdigest()


def ensure_unique_keys(records: Sequence[Any]) -> None:
    """Raise ``ValueError`` when two records share the same identity key."""
    seen = set()
    for record in records:
        if record.key in seen:
            raise ValueError(f"Duplicate record for {record.key!r}")
        seen.add(record.key)
