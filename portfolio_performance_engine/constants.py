"""
Core Constants Module

Centralized definitions for currencies, strategy grouping, hit-rate tiers and
compliance statuses. This prevents hardcoded labels scattered throughout the
codebase and keeps every view using the same vocabulary.
"""

# Currency Constants
# ==================
# Canonical ISO codes plus the free-text aliases found in custodian exports.

CURRENCY_ALIASES = {
    'dolar': 'USD',
    'dólar': 'USD',
    'us$': 'USD',
    'usd': 'USD',
    'real': 'BRL',
    'reais': 'BRL',
    'r$': 'BRL',
    'brl': 'BRL',
    'euro': 'EUR',
    'eur': 'EUR',
    'libra': 'GBP',
    'gbp': 'GBP',
}


def normalize_currency(code: str | None, default: str = 'BRL') -> str:
    """Map a currency code or alias to its canonical ISO code (case-insensitive)."""
    if code is None:
        return default
    key = str(code).strip().lower()
    if not key:
        return default
    return CURRENCY_ALIASES.get(key, key.upper())


# Strategy Grouping
# =================
# Raw asset-class labels (as exported by custodians) are grouped into the
# strategies used by the investment policy. Rules are checked in order; the
# first rule whose substring appears in the lower-cased label wins.

STRATEGY_GROUP_RULES = (
    (('exterior',), 'Exterior'),
    (('cdi - liquidez',), 'Pós Fixado - Liquidez'),
    (('cdi - fundos', 'cdi - titulos', 'cdi - títulos'), 'Pós Fixado'),
    (('inflação - titulos', 'inflação - títulos', 'inflação - fundos'), 'Inflação'),
    (('pré fixado',), 'Pré Fixado'),
    (('multimercado',), 'Multimercado'),
    (('imobiliário',), 'Imobiliário'),
    (('ações', 'long bias'), 'Ações'),
    (('private equity', 'venture capital', 'special sits'), 'Private Equity'),
    (('coe',), 'COE'),
    (('ouro',), 'Ouro'),
    (('criptoativos',), 'Criptoativos'),
)

UNGROUPED_STRATEGY = 'Outros'


def group_strategy(label: str | None) -> str:
    """Return the policy strategy for a raw asset-class label."""
    if not label:
        return UNGROUPED_STRATEGY
    lowered = str(label).lower()
    for needles, strategy in STRATEGY_GROUP_RULES:
        if any(needle in lowered for needle in needles):
            return strategy
    return UNGROUPED_STRATEGY


# Hit-Rate Tiers
# ==============

HOME_RUN = 'Home Run'
HIT = 'Hit'
NEAR_MISS = 'Near Miss'
MISS = 'Miss'


# Policy Compliance Statuses
# ==========================

COMPLIANT = 'compliant'
WARNING = 'warning'
VIOLATION = 'violation'


# Consolidation Group Keys
# ========================
# 'period' is always part of the key; the others refine it.

GROUP_KEYS = ('period', 'institution', 'account', 'strategy')

GROUP_BY_PERIOD = ('period',)

MONETARY_FIELDS = ('opening_balance', 'net_flows', 'taxes', 'gain', 'closing_balance')
