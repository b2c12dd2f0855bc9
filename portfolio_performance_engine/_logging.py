"""Logging helpers.

Package logger plus the instrumentation decorators used across the engine.
Data-quality conditions (missing FX rates, missing targets) are logged here
rather than raised, so callers always get a value back.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Any, Callable


portfolio_logger = logging.getLogger("portfolio_performance_engine")


def log_operation(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Log entry and exit of an engine operation at DEBUG level."""

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            portfolio_logger.debug("[%s] start", name)
            result = fn(*args, **kwargs)
            portfolio_logger.debug("[%s] done", name)
            return result

        return wrapper

    return deco


def log_timing(threshold: float = 0.0) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Warn when the wrapped call takes longer than ``threshold`` seconds."""

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - started
                if threshold and elapsed > threshold:
                    portfolio_logger.warning(
                        "slow_operation: %s took %.3fs (threshold %.3fs)",
                        fn.__qualname__,
                        elapsed,
                        threshold,
                    )
                else:
                    portfolio_logger.debug("%s took %.3fs", fn.__qualname__, elapsed)

        return wrapper

    return deco


def log_errors(severity: str = "medium") -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Log exceptions escaping the wrapped call with a severity tag, then re-raise."""

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return fn(*args, **kwargs)
            except Exception:
                portfolio_logger.exception("[%s] %s failed", severity, fn.__qualname__)
                raise

        return wrapper

    return deco


def log_portfolio_operation(
    event: str,
    details: dict[str, Any] | None = None,
    execution_time: float | None = None,
) -> dict[str, Any]:
    """Emit a structured event line and return it as a dict."""
    if details:
        portfolio_logger.info("[%s] %s", event, details)
    else:
        portfolio_logger.info("[%s]", event)
    return {"event": event, "details": details or {}, "execution_time": execution_time}


def log_data_quality(condition: str, message: str, **details: Any) -> None:
    """Warn about a degraded-but-continuing input condition (missing rate, missing target)."""
    if details:
        portfolio_logger.warning("data_quality[%s]: %s %s", condition, message, details)
    else:
        portfolio_logger.warning("data_quality[%s]: %s", condition, message)
