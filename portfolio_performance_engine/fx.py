"""
FX rate table.

Rates are stored per currency as base-currency units per one unit of that
currency at period end (for a BRL base, the PTAX closing quote is BRL per
USD). Lookups fall back to the nearest prior period when the exact month is
missing; there is no forward fallback.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Mapping, Optional

import pandas as pd

from portfolio_performance_engine import config
from portfolio_performance_engine._logging import portfolio_logger
from portfolio_performance_engine._vendor import _to_float
from portfolio_performance_engine.constants import normalize_currency
from portfolio_performance_engine.period import Period


def _value_at_or_before(series: Optional[pd.Series], when: pd.Period) -> Optional[float]:
    """Latest series value at or before ``when``; None if nothing qualifies."""
    if series is None or len(series) == 0:
        return None
    prior = series[series.index <= when]
    if prior.empty:
        return None
    return _to_float(prior.iloc[-1])


class FXRateTable:
    """In-memory ``FXProvider`` backed by one pandas series per currency."""

    def __init__(self, rates: Optional[Mapping[str, pd.Series]] = None, base_currency: Optional[str] = None):
        self.base_currency = normalize_currency(base_currency or config.BASE_CURRENCY)
        self._rates: Dict[str, pd.Series] = {}
        for currency, series in (rates or {}).items():
            cleaned = self._clean_series(series)
            if not cleaned.empty:
                self._rates[normalize_currency(currency)] = cleaned

    @staticmethod
    def _clean_series(series: pd.Series) -> pd.Series:
        s = pd.to_numeric(series, errors="coerce").dropna()
        s = s[s > 0]
        if s.empty:
            return pd.Series(dtype=float, index=pd.PeriodIndex([], freq="M"))
        index = pd.PeriodIndex([Period.coerce(p).to_pandas() for p in s.index], freq="M")
        cleaned = pd.Series(s.to_numpy(dtype=float), index=index)
        # Last quote wins for duplicate months.
        cleaned = cleaned[~cleaned.index.duplicated(keep="last")]
        return cleaned.sort_index()

    @classmethod
    def from_quotes(
        cls,
        quotes: Mapping[str, Mapping[Any, float]],
        base_currency: Optional[str] = None,
    ) -> "FXRateTable":
        """Build from ``{currency: {period: rate}}``; periods may be labels or Periods."""
        rates = {
            currency: pd.Series(list(by_period.values()), index=list(by_period.keys()), dtype=float)
            for currency, by_period in quotes.items()
        }
        return cls(rates, base_currency=base_currency)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, base_currency: Optional[str] = None) -> "FXRateTable":
        """Build from a long frame (``period``, ``currency``, ``rate`` columns) or a
        wide frame indexed by period with one column per currency."""
        if df is None or df.empty:
            return cls({}, base_currency=base_currency)
        if {"period", "currency", "rate"}.issubset(df.columns):
            rates = {
                currency: pd.Series(group["rate"].to_numpy(), index=group["period"].tolist())
                for currency, group in df.groupby("currency", sort=True)
            }
        else:
            rates = {column: df[column] for column in df.columns}
        return cls(rates, base_currency=base_currency)

    @property
    def currencies(self) -> list[str]:
        return sorted(self._rates)

    def get_fx_rate(self, currency: str, period: Period) -> Optional[float]:
        """Rate for ``currency`` at ``period`` or the nearest prior period.

        The base currency always returns 1.0. Unknown currencies, or periods
        before the first quote, return None.
        """
        code = normalize_currency(currency)
        if code == self.base_currency:
            return 1.0
        target = Period.coerce(period)
        rate = _value_at_or_before(self._rates.get(code), target.to_pandas())
        if rate is not None and target.to_pandas() not in self._rates[code].index:
            portfolio_logger.debug("FX %s for %s: using nearest prior quote", code, target.label)
        return rate

    def fingerprint(self) -> str:
        """Content hash of every quote, for cache keys."""
        payload = {
            "base": self.base_currency,
            "rates": {
                currency: [[str(p), float(v)] for p, v in series.items()]
                for currency, series in sorted(self._rates.items())
            },
        }
        return hashlib.md5(json.dumps(payload, sort_keys=True).encode()).hexdigest()

    def __len__(self) -> int:
        return sum(len(s) for s in self._rates.values())

    def __repr__(self) -> str:
        return f"FXRateTable(base={self.base_currency!r}, currencies={self.currencies!r})"
