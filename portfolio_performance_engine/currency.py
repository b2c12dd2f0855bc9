"""Currency normalization of amounts and monthly returns into a display currency."""

from __future__ import annotations

import copy
from typing import Optional

from portfolio_performance_engine import config
from portfolio_performance_engine._logging import log_data_quality
from portfolio_performance_engine.constants import normalize_currency
from portfolio_performance_engine.period import Period
from portfolio_performance_engine.providers import FXProvider, get_fx_provider


class CurrencyNormalizer:
    """
    Convert values and returns from their currency of origin into ``display_currency``.

    ``fx_provider`` answers ``get_fx_rate(currency, period)`` in base-currency
    units per unit of ``currency``; the base currency itself is always 1.
    Falls back to the registered provider (``providers.set_fx_provider``).

    Missing rates never raise: the value is returned unconverted (or the
    return unadjusted) and a data-quality warning is logged. Every
    fallback is recorded in ``missing_rates`` so views can surface it. The set
    accumulates across every call made with this normalizer (``consolidate``,
    ``allocation_by_strategy``, the ``holdings`` views); ``fork()`` gives a
    copy with an empty log for per-call tracking.
    """

    def __init__(
        self,
        display_currency: Optional[str] = None,
        fx_provider: Optional[FXProvider] = None,
        base_currency: Optional[str] = None,
    ):
        self.display_currency = normalize_currency(display_currency or config.DISPLAY_CURRENCY)
        self.base_currency = normalize_currency(base_currency or config.BASE_CURRENCY)
        self.fx_provider = fx_provider if fx_provider is not None else get_fx_provider()
        self.missing_rates: set[tuple[str, Period]] = set()

    def _rate(self, currency: str, period: Period) -> Optional[float]:
        if currency == self.base_currency:
            return 1.0
        if self.fx_provider is None:
            return None
        rate = self.fx_provider.get_fx_rate(currency, period)
        if rate is None or rate <= 0:
            return None
        return float(rate)

    def multiplier(self, period, origin_currency: str) -> Optional[float]:
        """Factor turning one unit of ``origin_currency`` into display currency at ``period``."""
        period = Period.coerce(period)
        origin = normalize_currency(origin_currency)
        if origin == self.display_currency:
            return 1.0
        origin_rate = self._rate(origin, period)
        display_rate = self._rate(self.display_currency, period)
        if origin_rate is None or display_rate is None:
            return None
        return origin_rate / display_rate

    def _record_missing(self, origin: str, period: Period, what: str) -> None:
        self.missing_rates.add((origin, period))
        log_data_quality(
            "missing_fx_rate",
            f"no {origin}->{self.display_currency} rate for {period.label}; {what}",
            currency=origin,
            period=period.label,
        )

    def convert_value(self, amount: float, period, origin_currency: str) -> float:
        """``amount`` expressed in the display currency (identity for same currency)."""
        period = Period.coerce(period)
        origin = normalize_currency(origin_currency)
        if origin == self.display_currency:
            return float(amount)
        factor = self.multiplier(period, origin)
        if factor is None:
            self._record_missing(origin, period, "value left unconverted")
            return float(amount)
        return float(amount) * factor

    def fx_variation(self, period, origin_currency: str) -> Optional[float]:
        """Month-over-month change of the origin->display multiplier, or None."""
        period = Period.coerce(period)
        current = self.multiplier(period, origin_currency)
        previous = self.multiplier(period.previous(), origin_currency)
        if current is None or previous is None or previous == 0:
            return None
        return current / previous - 1.0

    def adjust_return_with_fx(self, monthly_return: float, period, origin_currency: str) -> float:
        """Compose a local-currency return with the currency's move: (1+r)(1+v) - 1."""
        period = Period.coerce(period)
        origin = normalize_currency(origin_currency)
        if origin == self.display_currency:
            return float(monthly_return)
        variation = self.fx_variation(period, origin)
        if variation is None:
            self._record_missing(origin, period, "return left unadjusted")
            return float(monthly_return)
        return (1.0 + float(monthly_return)) * (1.0 + variation) - 1.0

    def fork(self) -> "CurrencyNormalizer":
        """Copy sharing the FX provider, with an empty ``missing_rates`` log."""
        clone = copy.copy(self)
        clone.missing_rates = set()
        return clone

    def fingerprint(self) -> Optional[str]:
        """Cache identity of this normalizer, or None when the provider cannot be hashed."""
        if self.fx_provider is None:
            return f"{self.display_currency}/{self.base_currency}/none"
        provider_fp = getattr(self.fx_provider, "fingerprint", None)
        if not callable(provider_fp):
            return None
        return f"{self.display_currency}/{self.base_currency}/{provider_fp()}"
