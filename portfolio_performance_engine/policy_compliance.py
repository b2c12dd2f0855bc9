"""
Investment policy compliance.

Compares the current allocation percent per strategy against its policy
band. A strategy strictly outside ``[minimum, maximum]`` is a violation;
inside the band but more than ``POLICY_THRESHOLDS["warning_deviation_pp"]``
percentage points from its ideal is a warning; anything else is compliant.

Overall score: ``max(0, 100 - score_penalty * mean |current - ideal|)`` over
strategies that have an ideal (100 when none do).
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from portfolio_performance_engine import config
from portfolio_performance_engine._logging import log_operation, portfolio_logger
from portfolio_performance_engine.constants import COMPLIANT, VIOLATION, WARNING
from portfolio_performance_engine.consolidation import consolidate, latest_period, records_for_period
from portfolio_performance_engine.currency import CurrencyNormalizer
from portfolio_performance_engine.data_objects import PolicyBand, PositionRecord
from portfolio_performance_engine.period import Period
from portfolio_performance_engine.results import PolicyComplianceResult, StrategyCompliance

Bands = Union[None, Sequence[PolicyBand], Mapping[str, Mapping[str, float]]]


def resolve_bands(bands: Bands = None) -> Dict[str, PolicyBand]:
    """Bands keyed by strategy; None loads ``config.POLICY_BANDS``."""
    if bands is None:
        bands = config.POLICY_BANDS
    if isinstance(bands, Mapping):
        bands = PolicyBand.from_config(bands)
    return {band.strategy: band for band in bands}


def evaluate_strategy(current_pct: float, band: PolicyBand, banded: bool = True) -> StrategyCompliance:
    warning_pp = float(config.POLICY_THRESHOLDS.get("warning_deviation_pp", 5.0))
    deviation = abs(current_pct - band.ideal) if band.ideal is not None else None
    if current_pct < band.minimum or current_pct > band.maximum:
        status = VIOLATION
    elif deviation is not None and deviation > warning_pp:
        status = WARNING
    else:
        status = COMPLIANT
    return StrategyCompliance(
        strategy=band.strategy,
        current_pct=float(current_pct),
        minimum=band.minimum,
        maximum=band.maximum,
        ideal=band.ideal,
        deviation_pp=deviation,
        status=status,
        banded=banded,
    )


@log_operation("policy_score")
def score(current_allocation: Mapping[str, float], bands: Bands = None) -> PolicyComplianceResult:
    """
    Score an allocation (strategy -> percent of total) against policy bands.

    Strategies in the allocation with no band get an unconstrained (0, 100)
    band with no ideal and are left out of the score average. Banded
    strategies missing from the allocation count as 0%.
    """
    banded = resolve_bands(bands)
    penalty = float(config.POLICY_THRESHOLDS.get("score_penalty", 2.0))

    strategies: List[StrategyCompliance] = []
    for strategy, band in banded.items():
        strategies.append(evaluate_strategy(float(current_allocation.get(strategy, 0.0)), band))
    for strategy, pct in current_allocation.items():
        if strategy in banded:
            continue
        portfolio_logger.debug("policy: %s has no band, treated as unconstrained", strategy)
        open_band = PolicyBand(strategy=strategy, minimum=0.0, maximum=100.0)
        strategies.append(evaluate_strategy(float(pct), open_band, banded=False))

    deviations = [s.deviation_pp for s in strategies if s.deviation_pp is not None]
    if deviations:
        overall = max(0.0, 100.0 - penalty * (sum(deviations) / len(deviations)))
    else:
        overall = 100.0

    return PolicyComplianceResult(
        overall_score=overall,
        strategies=tuple(strategies),
        violations=tuple(s.strategy for s in strategies if s.status == VIOLATION),
        warnings=tuple(s.strategy for s in strategies if s.status == WARNING),
        compliant=tuple(s.strategy for s in strategies if s.status == COMPLIANT),
    )


def allocation_by_strategy(
    positions: Iterable[PositionRecord],
    period: Optional[Union[Period, str]] = None,
    normalizer: Optional[CurrencyNormalizer] = None,
) -> Dict[str, float]:
    """Percent of total normalized position per grouped strategy for one period.

    Defaults to the latest period present. Empty or zero-total input gives
    an empty mapping.
    """
    positions = list(positions)
    target = Period.coerce(period) if period is not None else latest_period(positions)
    if target is None:
        return {}
    rows = consolidate(records_for_period(positions, target), ("period", "strategy"), normalizer)
    totals = pd.Series({r.strategy: r.closing_balance for r in rows}, dtype=float)
    grand_total = float(totals.sum())
    if grand_total == 0:
        return {}
    return (totals * 100.0 / grand_total).sort_values(ascending=False).to_dict()
