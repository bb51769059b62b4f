"""Exceptions raised by the engine.

Data insufficiency is *not* an exception here: indicators return ``None`` and
the runners return an :class:`~ta_engine.types.InsufficientData` value.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all engine failures."""


class InvalidConfig(EngineError, ValueError):
    """A configuration value is out of range (checked before any computation)."""


class PriceSeriesError(EngineError, ValueError):
    """A PriceSeries violates its contract (e.g. mismatched array lengths)."""


class BacktestCancelled(EngineError):
    """Raised at a per-bar checkpoint when the caller cancels or the deadline passes."""

    def __init__(self, bar_index: int, reason: str = "cancelled"):
        super().__init__(f"backtest {reason} at bar {bar_index}")
        self.bar_index = bar_index
        self.reason = reason
