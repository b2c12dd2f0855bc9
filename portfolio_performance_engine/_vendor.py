"""Small helpers for serialization/coercion of engine results."""

from __future__ import annotations

import dataclasses
import math
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

import numpy as np
import pandas as pd

from portfolio_performance_engine.period import Period


def make_json_safe(obj: Any) -> Any:
    """Recursively convert values into JSON-serializable forms.

    Periods serialize as their ``MM/YYYY`` label, dates as ISO strings and
    non-finite floats as ``None``.
    """
    if isinstance(obj, Period):
        return obj.label

    if isinstance(obj, Enum):
        return obj.value

    if isinstance(obj, Mapping):
        out = {}
        for key, value in obj.items():
            if isinstance(key, Period):
                safe_key = key.label
            elif isinstance(key, (pd.Timestamp, datetime, date)):
                safe_key = key.isoformat()
            elif isinstance(key, (int, float, str, bool, type(None))):
                safe_key = key
            else:
                safe_key = str(key)
            out[safe_key] = make_json_safe(value)
        return out

    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: make_json_safe(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
            if not f.name.startswith("_")
        }

    if isinstance(obj, (list, tuple, set, frozenset)):
        return [make_json_safe(item) for item in obj]

    if isinstance(obj, pd.DataFrame):
        return [make_json_safe(row) for row in obj.to_dict("records")]

    if isinstance(obj, pd.Series):
        return {str(k): make_json_safe(v) for k, v in obj.to_dict().items()}

    if isinstance(obj, np.ndarray):
        return [make_json_safe(item) for item in obj.tolist()]

    if isinstance(obj, np.integer):
        return int(obj)

    if isinstance(obj, np.bool_):
        return bool(obj)

    if isinstance(obj, (np.floating, float)):
        value = float(obj)
        return value if math.isfinite(value) else None

    if isinstance(obj, (pd.Timestamp, datetime, date)):
        return obj.isoformat()

    if isinstance(obj, (int, str, bool, type(None))):
        return obj

    return str(obj)


def _to_float(value: Any) -> float | None:
    try:
        if value is None:
            return None
        numeric = float(value)
    except (TypeError, ValueError):
        return None
    return numeric if math.isfinite(numeric) else None


def freeze(obj: Any) -> Any:
    """Read-only copy of nested dict/list payloads (mappings become proxies, lists tuples)."""
    if isinstance(obj, Mapping):
        return MappingProxyType({key: freeze(value) for key, value in obj.items()})
    if isinstance(obj, (list, tuple)):
        return tuple(freeze(item) for item in obj)
    return obj
