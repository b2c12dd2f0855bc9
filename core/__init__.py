"""
Core package for interpretive layers built on top of portfolio_performance_engine.

Flag generators are available via `core.performance_flags` directly.
"""
