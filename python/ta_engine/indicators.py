"""Indicator computation utilities.

Every indicator exists in two shapes:

- a ``*_series`` function returning a pandas Series/DataFrame with one row per
  bar (NaN during warm-up),
- a scalar function (``rsi(closes)``) returning the last row of the series
  evaluated on the given sequence, or ``None`` when it is too short.

Rolling windows and ``ewm(adjust=False)`` are forward recurrences, so the
value at bar ``i`` of a full-series column equals the last value computed on
the prefix ``[:i + 1]`` bit-for-bit.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from .config import IndicatorConfig
from .types import (
    BollingerResult,
    IndicatorSnapshot,
    MacdResult,
    PriceSeries,
    TrendResult,
    VolumeResult,
)

UPTREND = "uptrend"
DOWNTREND = "downtrend"
SIDEWAYS = "sideways"
UNKNOWN = "unknown"

CROSS_BULLISH = "bullish"
CROSS_BEARISH = "bearish"
CROSS_NONE = "none"

Values = Union[Sequence[float], pd.Series]


def _check_period(period: int) -> int:
    if period <= 0:
        raise ValueError("period must be positive")
    return int(period)


def _as_series(values: Values) -> pd.Series:
    if isinstance(values, pd.Series):
        return values.astype(float)
    return pd.Series(list(values), dtype=float)


def _empty(index: pd.Index) -> pd.Series:
    return pd.Series(np.nan, index=index, dtype=float)


def _seeded(values: pd.Series, start: int, period: int) -> pd.Series:
    """Blank the warm-up and put the mean of ``values[start:start + period]``
    at the first smoothed bar, so ``ewm`` starts from an SMA seed."""
    first = start + period - 1
    out = values.astype(float).copy()
    out.iloc[:first] = np.nan
    out.iloc[first] = values.iloc[start : start + period].mean()
    return out


def _ema_from(values: pd.Series, start: int, period: int) -> pd.Series:
    if len(values) < start + period:
        return _empty(values.index)
    return _seeded(values, start, period).ewm(span=period, adjust=False).mean()


def _wilder(values: pd.Series, period: int) -> pd.Series:
    """Wilder smoothing of a diff-based series (first usable value at bar 1)."""
    if len(values) < period + 1:
        return _empty(values.index)
    return _seeded(values, 1, period).ewm(alpha=1.0 / period, adjust=False).mean()


def _last(series: pd.Series) -> Optional[float]:
    value = series.iloc[-1]
    return None if pd.isna(value) else float(value)


# ---------------------------------------------------------------------------
# Moving averages
# ---------------------------------------------------------------------------


def sma_series(series: Values, period: int) -> pd.Series:
    period = _check_period(period)
    return _as_series(series).rolling(period).mean()


def sma(series: Values, period: int) -> Optional[float]:
    """Arithmetic mean of the last ``period`` values."""
    if len(series) < _check_period(period):
        return None
    return _last(sma_series(series, period))


def ema_series(series: Values, period: int) -> pd.Series:
    """EMA seeded with the SMA of the first ``period`` values."""
    period = _check_period(period)
    return _ema_from(_as_series(series), 0, period)


def ema(series: Values, period: int) -> Optional[float]:
    if len(series) < _check_period(period):
        return None
    return _last(ema_series(series, period))


# ---------------------------------------------------------------------------
# RSI (Wilder)
# ---------------------------------------------------------------------------


def rsi_series(closes: Values, period: int = 14) -> pd.Series:
    period = _check_period(period)
    delta = _as_series(closes).diff()
    avg_gain = _wilder(delta.clip(lower=0), period)
    avg_loss = _wilder((-delta).clip(lower=0), period)

    rs = avg_gain / avg_loss.where(avg_loss > 0)
    value = 100.0 - 100.0 / (1.0 + rs)
    # no losses in the window
    return value.mask(avg_loss == 0, 100.0)


def rsi(closes: Values, period: int = 14) -> Optional[float]:
    if len(closes) < _check_period(period) + 1:
        return None
    return _last(rsi_series(closes, period))


# ---------------------------------------------------------------------------
# MACD
# ---------------------------------------------------------------------------


def macd_series(
    closes: Values,
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
    crossover_mode: str = "prior_signal",
) -> pd.DataFrame:
    """MACD line, signal, histogram and crossover per bar.

    The line starts at bar ``slow`` (first update of the slow EMA after its
    seed); the signal line is an SMA-seeded EMA of it, so the first full row
    is bar ``slow + signal - 1``.

    ``crossover_mode="prior_signal"`` compares the previous MACD value with
    the previous signal value; ``"legacy"`` compares both MACD values with the
    current signal line.
    """
    fast = _check_period(fast)
    slow = _check_period(slow)
    signal = _check_period(signal)
    close = _as_series(closes)

    line = ema_series(close, fast) - ema_series(close, slow)
    line.iloc[:slow] = np.nan
    signal_line = _ema_from(line, slow, signal)

    prev_line = line.shift(1)
    prev_ref = signal_line if crossover_mode == "legacy" else signal_line.shift(1)
    bullish = (prev_line < prev_ref) & (line > signal_line)
    bearish = (prev_line > prev_ref) & (line < signal_line)

    ready = signal_line.notna()
    line = line.where(ready)
    cross = pd.Series(
        np.where(bullish, CROSS_BULLISH, np.where(bearish, CROSS_BEARISH, CROSS_NONE)),
        index=close.index,
        dtype=object,
    ).where(ready)

    return pd.DataFrame(
        {
            "line": line,
            "signal": signal_line,
            "histogram": line - signal_line,
            "crossover": cross,
        }
    )


def macd(
    closes: Values,
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
    crossover_mode: str = "prior_signal",
) -> Optional[MacdResult]:
    if len(closes) < _check_period(slow) + _check_period(signal):
        return None
    row = macd_series(closes, fast, slow, signal, crossover_mode).iloc[-1]
    return MacdResult(
        line=float(row["line"]),
        signal=float(row["signal"]),
        histogram=float(row["histogram"]),
        crossover=str(row["crossover"]),
    )


# ---------------------------------------------------------------------------
# Bollinger Bands
# ---------------------------------------------------------------------------


def bollinger_series(closes: Values, period: int = 20, std_dev_multiplier: float = 2.0) -> pd.DataFrame:
    """Bands from the population standard deviation (``ddof=0``)."""
    period = _check_period(period)
    close = _as_series(closes)
    middle = close.rolling(period).mean()
    std = close.rolling(period).std(ddof=0)
    upper = middle + std_dev_multiplier * std
    lower = middle - std_dev_multiplier * std
    width = upper - lower

    # zero-width band: price sits on the middle line
    percent_b = ((close - lower) / width.where(width > 0)).mask(width == 0, 0.5)
    bandwidth = (width / middle.where(middle != 0) * 100).mask(middle == 0, 0.0)
    return pd.DataFrame(
        {
            "upper": upper,
            "middle": middle,
            "lower": lower,
            "percentB": percent_b,
            "bandwidth": bandwidth,
        }
    )


def bollinger(closes: Values, period: int = 20, std_dev_multiplier: float = 2.0) -> Optional[BollingerResult]:
    if len(closes) < _check_period(period):
        return None
    row = bollinger_series(closes, period, std_dev_multiplier).iloc[-1]
    return BollingerResult(
        upper=float(row["upper"]),
        middle=float(row["middle"]),
        lower=float(row["lower"]),
        percent_b=float(row["percentB"]),
        bandwidth=float(row["bandwidth"]),
    )


# ---------------------------------------------------------------------------
# ATR (Wilder)
# ---------------------------------------------------------------------------


def atr_series(highs: Values, lows: Values, closes: Values, period: int = 14) -> pd.Series:
    period = _check_period(period)
    high = _as_series(highs)
    low = _as_series(lows)
    prev_close = _as_series(closes).shift(1)
    tr = pd.concat(
        [
            (high - low).abs(),
            (high - prev_close).abs(),
            (low - prev_close).abs(),
        ],
        axis=1,
    ).max(axis=1)
    return _wilder(tr, period)


def atr(highs: Values, lows: Values, closes: Values, period: int = 14) -> Optional[float]:
    if len(highs) < _check_period(period) + 1:
        return None
    return _last(atr_series(highs, lows, closes, period))


# ---------------------------------------------------------------------------
# Trend / volume classification
# ---------------------------------------------------------------------------


def trend_series(closes: Values, short: int = 20, long: int = 50) -> pd.DataFrame:
    """Direction and strength (distance from the long SMA in %, capped at 100)."""
    price = _as_series(closes)
    short_sma = sma_series(price, short)
    long_sma = sma_series(price, long)

    up = (price > short_sma) & (short_sma > long_sma)
    down = (price < short_sma) & (short_sma < long_sma)
    known = short_sma.notna() & long_sma.notna()

    direction = np.where(~known, UNKNOWN, np.where(up, UPTREND, np.where(down, DOWNTREND, SIDEWAYS)))
    strength = np.where(
        up,
        (price - long_sma) / long_sma * 100,
        np.where(down, (long_sma - price) / long_sma * 100, 0.0),
    )
    return pd.DataFrame(
        {"direction": direction, "strength": np.minimum(strength, 100.0)},
        index=price.index,
    )


def classify_trend(closes: Values, short: int = 20, long: int = 50) -> TrendResult:
    if len(closes) == 0:
        return TrendResult(direction=UNKNOWN, strength=0.0)
    row = trend_series(closes, short, long).iloc[-1]
    return TrendResult(direction=str(row["direction"]), strength=float(row["strength"]))


def volume_series(
    volumes: Values, period: int = 20, increasing: float = 1.2, decreasing: float = 0.8
) -> pd.DataFrame:
    period = _check_period(period)
    current = _as_series(volumes)
    average = current.rolling(period).mean()
    # all-zero volume carries no information
    ratio = (current / average.where(average > 0)).mask(average <= 0, 1.0)
    direction = pd.Series(
        np.where(ratio > increasing, "increasing", np.where(ratio < decreasing, "decreasing", "normal")),
        index=current.index,
        dtype=object,
    ).where(ratio.notna())
    return pd.DataFrame(
        {
            "current": current.where(average.notna()),
            "average": average,
            "ratio": ratio,
            "direction": direction,
        }
    )


def classify_volume(
    volumes: Values, period: int = 20, increasing: float = 1.2, decreasing: float = 0.8
) -> Optional[VolumeResult]:
    if len(volumes) < _check_period(period):
        return None
    row = volume_series(volumes, period, increasing, decreasing).iloc[-1]
    return VolumeResult(
        current=float(row["current"]),
        average=float(row["average"]),
        ratio=float(row["ratio"]),
        direction=str(row["direction"]),
    )


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


def compute_snapshot(series: PriceSeries, cfg: IndicatorConfig = IndicatorConfig()) -> IndicatorSnapshot:
    """All indicators evaluated on the last bar of ``series`` (from scratch)."""
    if len(series) == 0:
        raise ValueError("cannot compute a snapshot of an empty series")
    closes = series.closes
    return IndicatorSnapshot(
        current_price=closes[-1],
        rsi=rsi(closes, cfg.rsi_period),
        macd=macd(closes, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal, cfg.macd_crossover_mode),
        bollinger=bollinger(closes, cfg.bollinger_period, cfg.bollinger_std),
        atr=atr(series.highs, series.lows, closes, cfg.atr_period),
        trend=classify_trend(closes, cfg.trend_short, cfg.trend_long),
        volume=classify_volume(series.volumes, cfg.volume_period, cfg.volume_increasing, cfg.volume_decreasing),
        sma_short=sma(closes, cfg.trend_short),
        sma_long=sma(closes, cfg.trend_long),
        ema_fast=ema(closes, cfg.ema_fast),
        ema_slow=ema(closes, cfg.ema_slow),
    )
