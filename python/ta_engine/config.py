"""Configuration objects.

Style rules:
- keep signatures stable (no alias chaos)
- prefer explicit field names
- validate before computing, never halfway through
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import InvalidConfig
from .types import BUY, CAUTION, HOLD, SELL, STRONG_BUY, WAIT


@dataclass(frozen=True)
class IndicatorConfig:
    """Indicator lookback configuration."""

    rsi_period: int = 14

    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    # "prior_signal": compare against the previous bar's signal value.
    # "legacy": compare both MACD values against the current signal line.
    macd_crossover_mode: str = "prior_signal"

    bollinger_period: int = 20
    bollinger_std: float = 2.0

    atr_period: int = 14

    trend_short: int = 20
    trend_long: int = 50

    volume_period: int = 20
    volume_increasing: float = 1.2
    volume_decreasing: float = 0.8

    ema_fast: int = 12
    ema_slow: int = 26

    def validate(self) -> "IndicatorConfig":
        periods = {
            "rsi_period": self.rsi_period,
            "macd_fast": self.macd_fast,
            "macd_slow": self.macd_slow,
            "macd_signal": self.macd_signal,
            "bollinger_period": self.bollinger_period,
            "atr_period": self.atr_period,
            "trend_short": self.trend_short,
            "trend_long": self.trend_long,
            "volume_period": self.volume_period,
            "ema_fast": self.ema_fast,
            "ema_slow": self.ema_slow,
        }
        for name, value in periods.items():
            if int(value) <= 0:
                raise InvalidConfig(f"{name} must be positive, got {value}")
        if self.macd_fast >= self.macd_slow:
            raise InvalidConfig("macd_fast must be shorter than macd_slow")
        if self.macd_crossover_mode not in ("prior_signal", "legacy"):
            raise InvalidConfig(f"unknown macd_crossover_mode: {self.macd_crossover_mode!r}")
        if self.bollinger_std <= 0:
            raise InvalidConfig("bollinger_std must be positive")
        return self


# Ordered (operator, threshold, category) rules; the first match wins.
DEFAULT_CATEGORY_RULES: Tuple[Tuple[str, float, str], ...] = (
    (">=", 75.0, STRONG_BUY),
    (">=", 60.0, BUY),
    ("<=", 39.0, SELL),
    ("<=", 44.0, CAUTION),
    (">=", 55.0, WAIT),
)


@dataclass(frozen=True)
class SignalConfig:
    """Weights and thresholds of the composite signal."""

    rsi_weight: float = 0.25
    macd_weight: float = 0.25
    bollinger_weight: float = 0.15
    trend_weight: float = 0.20
    volume_weight: float = 0.15

    # RSI zones
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    rsi_near_oversold: float = 40.0
    rsi_near_overbought: float = 60.0
    rsi_oversold_base: float = 80.0
    rsi_overbought_base: float = 20.0
    rsi_near_oversold_score: float = 65.0
    rsi_near_overbought_score: float = 35.0

    # MACD
    macd_bullish_score: float = 85.0
    macd_bearish_score: float = 15.0
    macd_positive_base: float = 60.0
    macd_negative_base: float = 40.0
    macd_histogram_scale: float = 100.0
    macd_histogram_cap: float = 20.0

    # Bollinger %B zones
    bollinger_below_score: float = 80.0
    bollinger_above_score: float = 20.0
    bollinger_near_lower: float = 0.2
    bollinger_near_upper: float = 0.8
    bollinger_near_lower_score: float = 70.0
    bollinger_near_upper_score: float = 30.0

    # Trend
    trend_up_base: float = 60.0
    trend_down_base: float = 40.0
    trend_strength_scale: float = 2.0
    trend_strength_cap: float = 30.0

    # Volume
    volume_up_score: float = 70.0
    volume_down_score: float = 30.0
    volume_decreasing_score: float = 45.0

    neutral_score: float = 50.0

    category_rules: Tuple[Tuple[str, float, str], ...] = DEFAULT_CATEGORY_RULES
    default_category: str = HOLD

    def validate(self) -> "SignalConfig":
        weights = (
            self.rsi_weight,
            self.macd_weight,
            self.bollinger_weight,
            self.trend_weight,
            self.volume_weight,
        )
        if any(w < 0 for w in weights):
            raise InvalidConfig("indicator weights must be >= 0")
        for op, _, _ in self.category_rules:
            if op not in (">=", "<="):
                raise InvalidConfig(f"unsupported category rule operator: {op!r}")
        return self


@dataclass(frozen=True)
class RiskConfig:
    """Live-analysis risk levels and portfolio limits."""

    stop_loss_atr_multiplier: float = 2.0
    risk_reward_ratio: float = 2.0
    # used when ATR is not available yet
    atr_fallback_pct: float = 0.02

    max_single_position: float = 0.20
    max_sector: float = 0.40
    max_positions: int = 10

    default_sector: str = "Other"

    min_analysis_bars: int = 50

    def validate(self) -> "RiskConfig":
        if self.stop_loss_atr_multiplier <= 0:
            raise InvalidConfig("stop_loss_atr_multiplier must be > 0")
        if self.risk_reward_ratio <= 0:
            raise InvalidConfig("risk_reward_ratio must be > 0")
        if not (0 < self.max_single_position <= 1) or not (0 < self.max_sector <= 1):
            raise InvalidConfig("position and sector limits must be in (0, 1]")
        if self.max_positions < 1:
            raise InvalidConfig("max_positions must be >= 1")
        if self.min_analysis_bars < 1:
            raise InvalidConfig("min_analysis_bars must be >= 1")
        return self


@dataclass(frozen=True)
class BacktestConfig:
    """Backtest run configuration.

    Notes:
    - ``min_data_points`` is the warm-up: the walk-forward loop starts at that bar.
    - ``min_history`` is the shortest series accepted at all.
    - ``incremental`` selects the rolling indicator table; results are identical
      to the from-scratch recomputation, only faster.
    """

    initial_capital: float = 100_000.0
    position_size_percent: float = 10.0
    stop_loss_atr_multiplier: float = 2.0
    take_profit_risk_reward_ratio: float = 2.0
    min_data_points: int = 50
    min_history: int = 100

    entry_min_confidence: int = 60
    exit_min_confidence: int = 60
    atr_fallback_pct: float = 0.02

    # report truncation (presentation concern)
    max_trades: Optional[int] = 20
    equity_sample_every: int = 5

    incremental: bool = True

    @property
    def required_bars(self) -> int:
        return max(int(self.min_history), int(self.min_data_points) + 1)

    @property
    def allocation(self) -> float:
        """Nominal capital committed per trade."""
        return self.initial_capital * self.position_size_percent / 100.0

    def validate(self) -> "BacktestConfig":
        if not self.initial_capital > 0:
            raise InvalidConfig(f"initial_capital must be > 0, got {self.initial_capital}")
        if not (0 < self.position_size_percent <= 100):
            raise InvalidConfig(f"position_size_percent must be in (0, 100], got {self.position_size_percent}")
        if not self.stop_loss_atr_multiplier > 0:
            raise InvalidConfig("stop_loss_atr_multiplier must be > 0")
        if not self.take_profit_risk_reward_ratio > 0:
            raise InvalidConfig("take_profit_risk_reward_ratio must be > 0")
        if int(self.min_data_points) < 1:
            raise InvalidConfig("min_data_points must be >= 1")
        if int(self.min_history) < 1:
            raise InvalidConfig("min_history must be >= 1")
        if not (0 <= self.entry_min_confidence <= 100) or not (0 <= self.exit_min_confidence <= 100):
            raise InvalidConfig("confidence thresholds must be in [0, 100]")
        if self.atr_fallback_pct <= 0:
            raise InvalidConfig("atr_fallback_pct must be > 0")
        if self.max_trades is not None and int(self.max_trades) < 1:
            raise InvalidConfig("max_trades must be >= 1 or None")
        if int(self.equity_sample_every) < 1:
            raise InvalidConfig("equity_sample_every must be >= 1")
        return self

    @classmethod
    def from_params_dict(cls, d: dict) -> "BacktestConfig":
        """Create BacktestConfig from an API-layer params dict.

        Keys are camelCase (e.g., initialCapital). Unknown keys are ignored.
        """
        mapping = {
            "initialCapital": "initial_capital",
            "positionSizePercent": "position_size_percent",
            "stopLossMultiplier": "stop_loss_atr_multiplier",
            "stopLossATRMultiplier": "stop_loss_atr_multiplier",
            "takeProfitRatio": "take_profit_risk_reward_ratio",
            "takeProfitRiskRewardRatio": "take_profit_risk_reward_ratio",
            "minDataPoints": "min_data_points",
            "minHistory": "min_history",
            "entryMinConfidence": "entry_min_confidence",
            "exitMinConfidence": "exit_min_confidence",
            "maxTrades": "max_trades",
            "equitySampleEvery": "equity_sample_every",
        }
        kwargs = {}
        for k, v in (d or {}).items():
            if k in mapping:
                kwargs[mapping[k]] = v
        return cls(**kwargs)
