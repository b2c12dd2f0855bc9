"""Provider protocols and registry for stored records, market indicators and FX rates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, runtime_checkable

from portfolio_performance_engine.data_objects import BalanceRecord, PositionRecord
from portfolio_performance_engine.period import Period


@dataclass(frozen=True)
class MarketIndicators:
    """Monthly market data for one period. Returns are decimal fractions."""

    benchmark_returns: Dict[str, float] = field(default_factory=dict)
    target_return: Optional[float] = None
    inflation: Optional[float] = None


@runtime_checkable
class PositionSource(Protocol):
    def fetch(self, client_id: str) -> List[PositionRecord]: ...


@runtime_checkable
class BalanceSource(Protocol):
    def fetch(self, client_id: str) -> List[BalanceRecord]: ...


@runtime_checkable
class MarketIndicatorSource(Protocol):
    def fetch(self, period: Period) -> Optional[MarketIndicators]: ...


@runtime_checkable
class FXProvider(Protocol):
    def get_fx_rate(self, currency: str, period: Period) -> Optional[float]: ...


_fx_provider: Optional[FXProvider] = None
_market_indicator_source: Optional[MarketIndicatorSource] = None


def set_fx_provider(provider: Optional[FXProvider]) -> None:
    global _fx_provider
    _fx_provider = provider


def get_fx_provider() -> Optional[FXProvider]:
    return _fx_provider


def set_market_indicator_source(source: Optional[MarketIndicatorSource]) -> None:
    global _market_indicator_source
    _market_indicator_source = source


def get_market_indicator_source() -> Optional[MarketIndicatorSource]:
    return _market_indicator_source
