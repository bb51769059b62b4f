"""Shared value types.

Everything here is a small frozen dataclass produced and consumed within a
single analysis or backtest call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .errors import PriceSeriesError

# per-indicator categories
BUY = "BUY"
SELL = "SELL"
NEUTRAL = "NEUTRAL"

# composite signal categories
STRONG_BUY = "STRONG_BUY"
WAIT = "WAIT"
HOLD = "HOLD"
CAUTION = "CAUTION"

# trade exit reasons
EXIT_STOP_LOSS = "stop_loss"
EXIT_TAKE_PROFIT = "take_profit"
EXIT_SIGNAL_SELL = "signal_sell"
EXIT_END_OF_TEST = "end_of_test"


@dataclass(frozen=True)
class PriceSeries:
    """Index-aligned daily bars, ascending by date.

    Values are stored as tuples of float so a series can be sliced and
    compared cheaply.
    """

    dates: Tuple[Any, ...]
    closes: Tuple[float, ...]
    highs: Tuple[float, ...]
    lows: Tuple[float, ...]
    volumes: Tuple[float, ...]

    def __post_init__(self):
        object.__setattr__(self, "dates", tuple(self.dates))
        for name in ("closes", "highs", "lows", "volumes"):
            object.__setattr__(self, name, tuple(float(x) for x in getattr(self, name)))
        lengths = {
            "dates": len(self.dates),
            "closes": len(self.closes),
            "highs": len(self.highs),
            "lows": len(self.lows),
            "volumes": len(self.volumes),
        }
        if len(set(lengths.values())) > 1:
            raise PriceSeriesError(f"PriceSeries arrays must have equal length, got {lengths}")

    def __len__(self) -> int:
        return len(self.closes)

    def head(self, n: int) -> "PriceSeries":
        """Prefix with the first ``n`` bars."""
        return PriceSeries(
            dates=self.dates[:n],
            closes=self.closes[:n],
            highs=self.highs[:n],
            lows=self.lows[:n],
            volumes=self.volumes[:n],
        )


@dataclass(frozen=True)
class InsufficientData:
    """Returned instead of a result when the input is too short."""

    min_required: int
    actual: int
    error: str = "insufficient_data"


# ---------------------------------------------------------------------------
# Indicators
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MacdResult:
    line: float
    signal: float
    histogram: float
    crossover: str  # 'bullish' / 'bearish' / 'none'


@dataclass(frozen=True)
class BollingerResult:
    upper: float
    middle: float
    lower: float
    percent_b: float
    bandwidth: float


@dataclass(frozen=True)
class TrendResult:
    direction: str  # 'uptrend' / 'downtrend' / 'sideways' / 'unknown'
    strength: float = 0.0


@dataclass(frozen=True)
class VolumeResult:
    current: float
    average: float
    ratio: float
    direction: str  # 'increasing' / 'decreasing' / 'normal'


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator values at one bar; ``None`` means the lookback is not filled yet."""

    current_price: float
    rsi: Optional[float]
    macd: Optional[MacdResult]
    bollinger: Optional[BollingerResult]
    atr: Optional[float]
    trend: TrendResult
    volume: Optional[VolumeResult]
    sma_short: Optional[float]
    sma_long: Optional[float]
    ema_fast: Optional[float]
    ema_slow: Optional[float]


# ---------------------------------------------------------------------------
# Signal
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IndicatorSignal:
    name: str
    value: str  # formatted for display
    category: str  # BUY / SELL / NEUTRAL
    reason: str


@dataclass(frozen=True)
class ScoreContribution:
    name: str
    score: float
    weight: float


@dataclass(frozen=True)
class SignalResult:
    signal: str
    confidence: int
    score: float
    indicators: Tuple[IndicatorSignal, ...]
    contributions: Tuple[ScoreContribution, ...]
    summary: str

    def count(self, category: str) -> int:
        """Number of per-indicator entries in ``category``."""
        return sum(1 for s in self.indicators if s.category == category)


# ---------------------------------------------------------------------------
# Risk
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RiskLevels:
    stop_loss: float
    take_profit: float
    risk_percent: float
    reward_percent: float
    risk_reward_ratio: float
    atr_multiplier: float
    atr: float


@dataclass(frozen=True)
class TechnicalLevels:
    supports: Tuple[float, float]
    resistances: Tuple[float, float]


@dataclass(frozen=True)
class AnalysisSnapshot:
    indicators: IndicatorSnapshot
    signal: SignalResult
    risk: RiskLevels
    levels: TechnicalLevels
    data_points: int


# ---------------------------------------------------------------------------
# Backtest
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TradeRecord:
    """A closed round trip."""

    entry_date: Any
    entry_price: float
    exit_date: Any
    exit_price: float
    shares: int
    profit: float
    profit_percent: float
    exit_reason: str
    stop_loss: float
    take_profit: float


@dataclass(frozen=True)
class BacktestSummary:
    initial_capital: float
    final_capital: float
    total_return: float  # percent
    total_trades: int
    wins: int
    losses: int
    win_rate: float  # percent
    avg_win: float
    avg_loss: float
    avg_win_percent: float
    avg_loss_percent: float
    gross_profit: float
    gross_loss: float
    profit_factor: float
    max_drawdown: float  # percent of peak
    sharpe_ratio: float
    bars_tested: int


@dataclass(frozen=True)
class BacktestReport:
    summary: BacktestSummary
    trades: Tuple[TradeRecord, ...]
    equity_curve: Tuple[Tuple[Any, float], ...]
