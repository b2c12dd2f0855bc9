"""
Pytest Configuration
====================

Shared fixtures for the performance engine tests.
"""

import pytest

from portfolio_performance_engine import config
from portfolio_performance_engine.analysis import clear_performance_view_cache
from portfolio_performance_engine.currency import CurrencyNormalizer
from portfolio_performance_engine.fx import FXRateTable
from portfolio_performance_engine.providers import set_fx_provider, set_market_indicator_source

from factories import make_balance, make_position


@pytest.fixture(autouse=True)
def isolated_engine(monkeypatch):
    """Pin config defaults and reset registries/caches between tests."""
    monkeypatch.setattr(config, "DISPLAY_CURRENCY", "BRL")
    monkeypatch.setattr(config, "BASE_CURRENCY", "BRL")
    monkeypatch.setattr(config, "RISK_FREE_RATE_MONTHLY", 0.005)
    monkeypatch.setattr(config, "DEFAULT_MONTHLY_TARGET", 0.007)
    monkeypatch.setattr(config, "TRAILING_WINDOW_MONTHS", 12)
    set_fx_provider(None)
    set_market_indicator_source(None)
    clear_performance_view_cache()
    yield
    set_fx_provider(None)
    set_market_indicator_source(None)
    clear_performance_view_cache()


@pytest.fixture
def fx_table():
    """BRL per USD closing quotes; 02/2025 deliberately missing."""
    return FXRateTable.from_quotes(
        {"USD": {"12/2024": 5.0, "01/2025": 5.5, "03/2025": 6.05}},
        base_currency="BRL",
    )


@pytest.fixture
def brl_normalizer(fx_table):
    return CurrencyNormalizer("BRL", fx_table, base_currency="BRL")


@pytest.fixture
def usd_normalizer(fx_table):
    return CurrencyNormalizer("USD", fx_table, base_currency="BRL")


@pytest.fixture
def three_period_balances():
    """Single BRL account: +1%, -0.5%, +2%."""
    return [
        make_balance("01/2025", 1010.0, 0.01, opening_balance=1000.0, gain=10.0),
        make_balance("02/2025", 1004.95, -0.005, opening_balance=1010.0, gain=-5.05),
        make_balance("03/2025", 1025.049, 0.02, opening_balance=1004.95, gain=20.099),
    ]


@pytest.fixture
def sample_positions():
    """Latest-period holdings across strategies plus one older period."""
    return [
        make_position("02/2025", "CDB Banco A", "CDI - Liquidez", 100.0, 0.01, issuer="Banco A"),
        make_position("03/2025", "CDB Banco A", "CDI - Liquidez", 100.0, 0.01, issuer="Banco A",
                      maturity="2025-05-15"),
        make_position("03/2025", "LCA Banco B", "CDI - Títulos", 300.0, 0.01, issuer="Banco B",
                      maturity="2025-06-30"),
        make_position("03/2025", "NTN-B 2030", "Inflação - Títulos", 200.0, 0.008, issuer="Tesouro Nacional",
                      maturity="2030-08-15"),
        make_position("03/2025", "FIA Alpha", "Ações - Long Only", 100.0, -0.02, issuer="Gestora Alpha"),
        make_position("03/2025", "Fundo Macro", "Multimercado", 200.0, 0.005, issuer="Gestora Beta",
                      maturity="2025-05-01"),
        make_position("03/2025", "FII Logística", "Imobiliário - Fundos", 100.0, 0.0),
    ]
