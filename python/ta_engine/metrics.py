"""Performance metrics."""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple, TypeVar

import numpy as np

T = TypeVar("T")

TRADING_DAYS = 252


def daily_returns(equity: Sequence[float]) -> np.ndarray:
    """Simple bar-to-bar returns of an equity series."""
    x = np.asarray(equity, dtype=float)
    if len(x) < 2:
        return np.empty(0, dtype=float)
    return (x[1:] - x[:-1]) / x[:-1]


def sharpe_ratio(returns: np.ndarray, periods_per_year: int = TRADING_DAYS) -> float:
    """Annualised mean over annualised volatility (population std); 0 when flat."""
    if len(returns) == 0:
        return 0.0
    mu = float(np.mean(returns))
    sigma = float(np.std(returns))
    if sigma == 0:
        return 0.0
    return (mu * periods_per_year) / (sigma * math.sqrt(periods_per_year))


def profit_factor(gross_profit: float, gross_loss: float) -> float:
    """Gross profit / gross loss; ``inf`` without losses, 0 without profit."""
    if gross_loss > 0:
        return gross_profit / gross_loss
    return float("inf") if gross_profit > 0 else 0.0


def last_n(items: Sequence[T], n: Optional[int]) -> Tuple[T, ...]:
    if n is None:
        return tuple(items)
    return tuple(items[-n:]) if n > 0 else ()


def every_nth(items: Sequence[T], step: int) -> Tuple[T, ...]:
    return tuple(items[::step])
