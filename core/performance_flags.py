"""Performance-level interpretive flags for dashboard and agent responses."""

from __future__ import annotations

import math
from typing import Any

from portfolio_performance_engine import config


_SEVERITY_ORDER = {"error": 0, "warning": 1, "info": 2, "success": 3}


def _to_float(value: Any) -> float | None:
    """Convert to finite float; return None for missing/invalid values."""
    if value is None:
        return None
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(numeric):
        return None
    return numeric


def generate_performance_flags(view: dict) -> list[dict]:
    """Generate actionable flags from a ``PerformanceView.to_api_response()`` payload."""
    flags: list[dict] = []
    if not isinstance(view, dict):
        return flags

    thresholds = config.FLAG_THRESHOLDS
    returns = view.get("returns") or {}
    risk = view.get("risk") or {}
    policy = view.get("policy") or {}
    hit_rate = risk.get("hit_rate") or {}
    period_count = int(risk.get("period_count") or 0)
    min_periods = int(thresholds.get("min_periods_for_ratios", 6))

    violations = list(policy.get("violations") or [])
    if violations:
        flags.append(
            {
                "type": "policy_violation",
                "severity": "error",
                "message": f"{len(violations)} strateg{'y' if len(violations) == 1 else 'ies'} outside policy bands: {', '.join(violations)}",
                "strategies": violations,
            }
        )

    policy_warnings = list(policy.get("warnings") or [])
    if policy_warnings:
        flags.append(
            {
                "type": "policy_drift",
                "severity": "warning",
                "message": f"Allocation drifting from ideal in {', '.join(policy_warnings)}",
                "strategies": policy_warnings,
            }
        )

    score = _to_float(policy.get("overall_score"))
    if score is not None and not violations and not policy_warnings:
        flags.append(
            {
                "type": "policy_compliant",
                "severity": "success",
                "message": f"Allocation within policy (score {score:.0f}/100)",
                "overall_score": round(score, 1),
            }
        )

    deep_pct = float(thresholds.get("deep_drawdown_pct", 10.0))
    for event in risk.get("drawdown_events") or []:
        depth = _to_float(event.get("depth_pct"))
        if depth is None:
            continue
        is_open = event.get("recovery_period") is None
        if is_open:
            flags.append(
                {
                    "type": "open_drawdown",
                    "severity": "warning" if depth >= deep_pct else "info",
                    "message": f"Portfolio is {depth:.1f}% below its {event.get('peak_period')} peak and has not recovered",
                    "depth_pct": round(depth, 2),
                    "peak_period": event.get("peak_period"),
                }
            )
        elif depth >= deep_pct:
            flags.append(
                {
                    "type": "deep_drawdown",
                    "severity": "warning",
                    "message": f"Drawdown of {depth:.1f}% from {event.get('peak_period')} (recovered in {event.get('recovery_months')} months)",
                    "depth_pct": round(depth, 2),
                    "peak_period": event.get("peak_period"),
                }
            )

    classified = sum(int(hit_rate.get(k) or 0) for k in ("home_runs", "hits", "near_misses", "misses"))
    rate = _to_float(hit_rate.get("hit_rate_pct"))
    low_rate = float(thresholds.get("low_hit_rate_pct", 50.0))
    if rate is not None and classified >= min_periods and rate < low_rate:
        flags.append(
            {
                "type": "low_hit_rate",
                "severity": "warning",
                "message": f"Target met in only {rate:.0f}% of months",
                "hit_rate_pct": round(rate, 1),
            }
        )

    inception = _to_float(returns.get("inception"))
    if inception is not None and period_count > 0 and inception < 0:
        flags.append(
            {
                "type": "negative_inception_return",
                "severity": "warning",
                "message": f"Portfolio is down {abs(inception) * 100:.1f}% since inception",
                "inception_return": round(inception, 6),
            }
        )

    sharpe = _to_float(risk.get("sharpe_ratio"))
    if sharpe is not None and period_count >= min_periods and sharpe < float(thresholds.get("low_sharpe", 0.0)):
        flags.append(
            {
                "type": "low_sharpe",
                "severity": "info",
                "message": f"Sharpe ratio is {sharpe:.2f} (returns below the risk-free rate)",
                "sharpe_ratio": round(sharpe, 3),
            }
        )

    missing_fx = list(view.get("missing_fx") or [])
    if missing_fx:
        currencies = sorted({item[0] for item in missing_fx})
        flags.append(
            {
                "type": "missing_fx_rates",
                "severity": "warning",
                "message": f"No FX rate for {', '.join(currencies)} in {len(missing_fx)} period(s); values shown unconverted",
                "currencies": currencies,
                "periods": list(dict.fromkeys(item[1] for item in missing_fx)),
            }
        )

    flags.sort(key=lambda f: _SEVERITY_ORDER.get(f.get("severity"), 9))
    return flags
