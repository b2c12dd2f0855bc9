"""Configuration surface for portfolio_performance_engine.

Defaults are read from the process environment (a local ``.env`` is loaded
first) and can be overridden programmatically with ``configure()``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from portfolio_performance_engine._logging import portfolio_logger


load_dotenv(Path.cwd() / ".env", override=False)

_POLICY_BANDS_PATH = Path(__file__).resolve().parent / "policy_bands.yaml"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


_FALLBACK_POLICY_BANDS: dict[str, dict[str, float]] = {
    "Pós Fixado - Liquidez": {"minimum": 5, "maximum": 15, "ideal": 10},
    "Pós Fixado": {"minimum": 20, "maximum": 40, "ideal": 30},
    "Inflação": {"minimum": 15, "maximum": 30, "ideal": 20},
    "Pré Fixado": {"minimum": 5, "maximum": 15, "ideal": 10},
    "Multimercado": {"minimum": 5, "maximum": 20, "ideal": 10},
    "Ações": {"minimum": 5, "maximum": 20, "ideal": 10},
    "Imobiliário": {"minimum": 0, "maximum": 10, "ideal": 5},
    "Exterior": {"minimum": 5, "maximum": 15, "ideal": 10},
}


def load_policy_bands(path: str | Path | None = None) -> dict[str, dict[str, float]]:
    """Load strategy policy bands from YAML, falling back to the built-in defaults."""
    yaml_path = Path(path or os.getenv("PERF_POLICY_BANDS_FILE") or _POLICY_BANDS_PATH)
    try:
        with open(yaml_path, "r", encoding="utf-8") as f:
            payload = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        portfolio_logger.warning("Policy bands: %s unavailable (%s), using hardcoded", yaml_path, e)
        return {k: dict(v) for k, v in _FALLBACK_POLICY_BANDS.items()}

    bands = payload.get("policy_bands") or {}
    if not bands:
        portfolio_logger.warning("Policy bands: %s has no 'policy_bands' section, using hardcoded", yaml_path)
        return {k: dict(v) for k, v in _FALLBACK_POLICY_BANDS.items()}
    return {str(k): dict(v or {}) for k, v in bands.items()}


_DEFAULTS: dict[str, Any] = {
    "DISPLAY_CURRENCY": os.getenv("PERF_DISPLAY_CURRENCY", "BRL").upper(),
    "BASE_CURRENCY": os.getenv("PERF_BASE_CURRENCY", "BRL").upper(),
    # Monthly rates, decimal fractions.
    "RISK_FREE_RATE_MONTHLY": _env_float("PERF_RISK_FREE_RATE_MONTHLY", 0.005),
    "DEFAULT_MONTHLY_TARGET": _env_float("PERF_DEFAULT_MONTHLY_TARGET", 0.007),
    "TRAILING_WINDOW_MONTHS": _env_int("PERF_TRAILING_WINDOW_MONTHS", 12),
    "POLICY_THRESHOLDS": {
        "warning_deviation_pp": _env_float("PERF_POLICY_WARNING_PP", 5.0),
        "score_penalty": _env_float("PERF_POLICY_SCORE_PENALTY", 2.0),
    },
    "FLAG_THRESHOLDS": {
        "deep_drawdown_pct": _env_float("PERF_FLAG_DEEP_DRAWDOWN_PCT", 10.0),
        "low_hit_rate_pct": _env_float("PERF_FLAG_LOW_HIT_RATE_PCT", 50.0),
        "low_sharpe": _env_float("PERF_FLAG_LOW_SHARPE", 0.0),
        "min_periods_for_ratios": _env_int("PERF_FLAG_MIN_PERIODS", 6),
    },
    "MATURITY_HORIZON_MONTHS": _env_int("PERF_MATURITY_HORIZON_MONTHS", 12),
    "TOP_ISSUERS": _env_int("PERF_TOP_ISSUERS", 10),
    "PERFORMANCE_VIEW_CACHE_SIZE": _env_int("PERF_VIEW_CACHE_SIZE", 64),
    "POLICY_BANDS": load_policy_bands(),
}


DISPLAY_CURRENCY = str(_DEFAULTS["DISPLAY_CURRENCY"])
BASE_CURRENCY = str(_DEFAULTS["BASE_CURRENCY"])
RISK_FREE_RATE_MONTHLY = float(_DEFAULTS["RISK_FREE_RATE_MONTHLY"])
DEFAULT_MONTHLY_TARGET = float(_DEFAULTS["DEFAULT_MONTHLY_TARGET"])
TRAILING_WINDOW_MONTHS = int(_DEFAULTS["TRAILING_WINDOW_MONTHS"])
POLICY_THRESHOLDS = _DEFAULTS["POLICY_THRESHOLDS"]
FLAG_THRESHOLDS = _DEFAULTS["FLAG_THRESHOLDS"]
MATURITY_HORIZON_MONTHS = int(_DEFAULTS["MATURITY_HORIZON_MONTHS"])
TOP_ISSUERS = int(_DEFAULTS["TOP_ISSUERS"])
PERFORMANCE_VIEW_CACHE_SIZE = int(_DEFAULTS["PERFORMANCE_VIEW_CACHE_SIZE"])
POLICY_BANDS = _DEFAULTS["POLICY_BANDS"]


def configure(**overrides: Any) -> None:
    """Programmatically override package configuration values."""
    globals_dict = globals()
    for key, value in overrides.items():
        if key not in _DEFAULTS:
            raise KeyError(f"Unknown config key: {key}")
        globals_dict[key] = value
