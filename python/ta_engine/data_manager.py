"""Data manager: computes the indicator table once and serves per-bar snapshots.

The table is built from the ``*_series`` functions, so ``get_snapshot(i)``
equals ``compute_snapshot(series.head(i + 1))`` exactly while costing O(1)
per bar instead of O(i).
"""

from __future__ import annotations

from typing import Any, Optional

import pandas as pd

from .config import IndicatorConfig
from .indicators import (
    atr_series,
    bollinger_series,
    ema_series,
    macd_series,
    rsi_series,
    sma_series,
    trend_series,
    volume_series,
)
from .types import BollingerResult, IndicatorSnapshot, MacdResult, PriceSeries, TrendResult, VolumeResult


def _opt(x: Any) -> Optional[float]:
    """NaN/None -> None, anything else -> float."""
    if x is None or pd.isna(x):
        return None
    return float(x)


class IndicatorDataManager:
    """Holds a PriceSeries and its per-bar indicator columns."""

    def __init__(self, series: PriceSeries, ind_cfg: IndicatorConfig = IndicatorConfig()):
        self.series = series
        self.ind_cfg = ind_cfg
        self.df = pd.DataFrame(
            {
                "close": series.closes,
                "high": series.highs,
                "low": series.lows,
                "volume": series.volumes,
            },
            index=pd.RangeIndex(len(series)),
            dtype=float,
        )

        self._compute_indicators()

    def _compute_indicators(self) -> None:
        df = self.df
        cfg = self.ind_cfg

        close = df["close"]

        df["rsi"] = rsi_series(close, cfg.rsi_period)
        df["atr"] = atr_series(df["high"], df["low"], close, cfg.atr_period)
        df["smaShort"] = sma_series(close, cfg.trend_short)
        df["smaLong"] = sma_series(close, cfg.trend_long)
        df["emaFast"] = ema_series(close, cfg.ema_fast)
        df["emaSlow"] = ema_series(close, cfg.ema_slow)

        macd = macd_series(close, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal, cfg.macd_crossover_mode)
        df["macdLine"] = macd["line"]
        df["macdSignal"] = macd["signal"]
        df["macdHist"] = macd["histogram"]
        df["macdCross"] = macd["crossover"]

        bb = bollinger_series(close, cfg.bollinger_period, cfg.bollinger_std)
        df["bbUpper"] = bb["upper"]
        df["bbMiddle"] = bb["middle"]
        df["bbLower"] = bb["lower"]
        df["bbPercentB"] = bb["percentB"]
        df["bbBandwidth"] = bb["bandwidth"]

        trend = trend_series(close, cfg.trend_short, cfg.trend_long)
        df["trendDir"] = trend["direction"]
        df["trendStrength"] = trend["strength"]

        vol = volume_series(df["volume"], cfg.volume_period, cfg.volume_increasing, cfg.volume_decreasing)
        df["volCurrent"] = vol["current"]
        df["volAverage"] = vol["average"]
        df["volRatio"] = vol["ratio"]
        df["volDir"] = vol["direction"]

    def __len__(self) -> int:
        return int(len(self.df))

    def get_snapshot(self, i: int) -> IndicatorSnapshot:
        """Indicator snapshot for the prefix ending at bar ``i`` (inclusive)."""
        row = self.df.iloc[i]

        macd = None
        if _opt(row["macdLine"]) is not None:
            macd = MacdResult(
                line=float(row["macdLine"]),
                signal=float(row["macdSignal"]),
                histogram=float(row["macdHist"]),
                crossover=str(row["macdCross"]),
            )

        bollinger = None
        if _opt(row["bbMiddle"]) is not None:
            bollinger = BollingerResult(
                upper=float(row["bbUpper"]),
                middle=float(row["bbMiddle"]),
                lower=float(row["bbLower"]),
                percent_b=float(row["bbPercentB"]),
                bandwidth=float(row["bbBandwidth"]),
            )

        volume = None
        if _opt(row["volRatio"]) is not None:
            volume = VolumeResult(
                current=float(row["volCurrent"]),
                average=float(row["volAverage"]),
                ratio=float(row["volRatio"]),
                direction=str(row["volDir"]),
            )

        return IndicatorSnapshot(
            current_price=float(row["close"]),
            rsi=_opt(row["rsi"]),
            macd=macd,
            bollinger=bollinger,
            atr=_opt(row["atr"]),
            trend=TrendResult(direction=str(row["trendDir"]), strength=float(row["trendStrength"])),
            volume=volume,
            sma_short=_opt(row["smaShort"]),
            sma_long=_opt(row["smaLong"]),
            ema_fast=_opt(row["emaFast"]),
            ema_slow=_opt(row["emaSlow"]),
        )
