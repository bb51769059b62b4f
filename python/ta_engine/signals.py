"""Composite signal scoring.

Each present indicator yields a sub-score in [0, 100], a category and a
reason. The composite is the weighted mean over present indicators only and
is mapped to a signal through the ordered rules of ``SignalConfig``.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import List, Optional, Tuple

from .config import SignalConfig
from .indicators import DOWNTREND, UNKNOWN, UPTREND
from .types import (
    BUY,
    CAUTION,
    NEUTRAL,
    SELL,
    STRONG_BUY,
    IndicatorSignal,
    IndicatorSnapshot,
    ScoreContribution,
    SignalResult,
)

_Scored = Tuple[float, IndicatorSignal]


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _score_rsi(value: float, cfg: SignalConfig) -> _Scored:
    shown = f"{value:.1f}"
    if value < cfg.rsi_oversold:
        return cfg.rsi_oversold_base + (cfg.rsi_oversold - value), IndicatorSignal("RSI", shown, BUY, "Oversold zone")
    if value > cfg.rsi_overbought:
        return cfg.rsi_overbought_base - (value - cfg.rsi_overbought), IndicatorSignal("RSI", shown, SELL, "Overbought zone")
    if value < cfg.rsi_near_oversold:
        return cfg.rsi_near_oversold_score, IndicatorSignal("RSI", shown, NEUTRAL, "Approaching oversold")
    if value > cfg.rsi_near_overbought:
        return cfg.rsi_near_overbought_score, IndicatorSignal("RSI", shown, NEUTRAL, "Approaching overbought")
    return cfg.neutral_score, IndicatorSignal("RSI", shown, NEUTRAL, "Neutral zone")


def _score_macd(snapshot: IndicatorSnapshot, cfg: SignalConfig) -> _Scored:
    m = snapshot.macd
    shown = f"{m.histogram:.4f}"
    if m.crossover == "bullish":
        return cfg.macd_bullish_score, IndicatorSignal("MACD", shown, BUY, "Bullish crossover")
    if m.crossover == "bearish":
        return cfg.macd_bearish_score, IndicatorSignal("MACD", shown, SELL, "Bearish crossover")
    if m.histogram > 0:
        boost = min(m.histogram * cfg.macd_histogram_scale, cfg.macd_histogram_cap)
        return cfg.macd_positive_base + boost, IndicatorSignal("MACD", shown, NEUTRAL, "Positive momentum")
    drag = min(abs(m.histogram) * cfg.macd_histogram_scale, cfg.macd_histogram_cap)
    return cfg.macd_negative_base - drag, IndicatorSignal("MACD", shown, NEUTRAL, "Negative momentum")


def _score_bollinger(percent_b: float, cfg: SignalConfig) -> _Scored:
    shown = f"%B: {percent_b * 100:.1f}%"
    if percent_b < 0:
        return cfg.bollinger_below_score, IndicatorSignal("Bollinger", shown, BUY, "Below the lower band")
    if percent_b > 1:
        return cfg.bollinger_above_score, IndicatorSignal("Bollinger", shown, SELL, "Above the upper band")
    if percent_b < cfg.bollinger_near_lower:
        return cfg.bollinger_near_lower_score, IndicatorSignal("Bollinger", shown, NEUTRAL, "Near the lower band")
    if percent_b > cfg.bollinger_near_upper:
        return cfg.bollinger_near_upper_score, IndicatorSignal("Bollinger", shown, NEUTRAL, "Near the upper band")
    return cfg.neutral_score, IndicatorSignal("Bollinger", shown, NEUTRAL, "Inside the bands")


def _score_trend(snapshot: IndicatorSnapshot, cfg: SignalConfig) -> _Scored:
    t = snapshot.trend
    boost = min(t.strength * cfg.trend_strength_scale, cfg.trend_strength_cap)
    if t.direction == UPTREND:
        return cfg.trend_up_base + boost, IndicatorSignal("Trend", f"Up ({t.strength:.1f}%)", BUY, "Uptrend")
    if t.direction == DOWNTREND:
        return cfg.trend_down_base - boost, IndicatorSignal("Trend", f"Down ({t.strength:.1f}%)", SELL, "Downtrend")
    return cfg.neutral_score, IndicatorSignal("Trend", "Sideways", NEUTRAL, "Sideways trend")


def _score_volume(snapshot: IndicatorSnapshot, cfg: SignalConfig) -> _Scored:
    v = snapshot.volume
    shown = f"x{v.ratio:.2f}"
    if v.direction == "increasing":
        if snapshot.trend.direction == UPTREND:
            return cfg.volume_up_score, IndicatorSignal("Volume", shown, BUY, "Rising volume in an uptrend")
        return cfg.volume_down_score, IndicatorSignal("Volume", shown, SELL, "Rising volume without an uptrend")
    if v.direction == "decreasing":
        return cfg.volume_decreasing_score, IndicatorSignal("Volume", shown, NEUTRAL, "Falling volume")
    return cfg.neutral_score, IndicatorSignal("Volume", shown, NEUTRAL, "Normal volume")


def classify_score(score: float, cfg: SignalConfig = SignalConfig()) -> str:
    """Map a composite score to a signal; rules are tried in order, first match wins."""
    for op, threshold, category in cfg.category_rules:
        if op == ">=" and score >= threshold:
            return category
        if op == "<=" and score <= threshold:
            return category
    return cfg.default_category


def score_signal(snapshot: IndicatorSnapshot, cfg: SignalConfig = SignalConfig()) -> SignalResult:
    scored: List[Tuple[float, IndicatorSignal, float]] = []

    if snapshot.rsi is not None:
        scored.append((*_score_rsi(snapshot.rsi, cfg), cfg.rsi_weight))
    if snapshot.macd is not None:
        scored.append((*_score_macd(snapshot, cfg), cfg.macd_weight))
    if snapshot.bollinger is not None:
        scored.append((*_score_bollinger(snapshot.bollinger.percent_b, cfg), cfg.bollinger_weight))
    # an unknown trend is absent, not a neutral 50
    if snapshot.trend.direction != UNKNOWN:
        scored.append((*_score_trend(snapshot, cfg), cfg.trend_weight))
    if snapshot.volume is not None:
        scored.append((*_score_volume(snapshot, cfg), cfg.volume_weight))

    contributions = tuple(ScoreContribution(sig.name, _clamp(score), weight) for score, sig, weight in scored)
    indicators = tuple(sig for _, sig, _ in scored)

    total_weight = sum(c.weight for c in contributions)
    weighted = sum(c.score * c.weight for c in contributions)
    composite = weighted / total_weight if total_weight > 0 else cfg.neutral_score

    signal = classify_score(composite, cfg)
    confidence = _round_half_up(composite)
    result = SignalResult(
        signal=signal,
        confidence=confidence,
        score=composite,
        indicators=indicators,
        contributions=contributions,
        summary="",
    )
    return replace(result, summary=build_summary(snapshot, result))


def _trend_label(direction: Optional[str]) -> str:
    if direction == UPTREND:
        return "Up"
    if direction == DOWNTREND:
        return "Down"
    return "Sideways"


def build_summary(snapshot: IndicatorSnapshot, result: SignalResult) -> str:
    rsi = f"{snapshot.rsi:.1f}" if snapshot.rsi is not None else "?"
    text = f"Price: {snapshot.current_price:.2f} | RSI: {rsi} | Trend: {_trend_label(snapshot.trend.direction)}. "

    buys = result.count(BUY)
    sells = result.count(SELL)
    if result.signal == STRONG_BUY:
        text += f"{buys} indicators give a strong buy signal. Confidence: {result.confidence}%."
    elif result.signal == BUY:
        text += f"{buys} indicators give a buy signal. Confidence: {result.confidence}%."
    elif result.signal == SELL:
        text += f"{sells} indicators give a sell signal. Confidence: {result.confidence}%. Consider closing the position."
    elif result.signal == CAUTION:
        text += f"Selling pressure: {sells} indicators are negative."
    else:
        text += "No clear signal. Waiting is reasonable."
    return text
