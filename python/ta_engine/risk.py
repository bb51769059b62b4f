"""Risk levels, position sizing and portfolio limit checks."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from .config import RiskConfig
from .types import SELL, RiskLevels


@dataclass(frozen=True)
class StopLoss:
    stop_loss: float
    risk_percent: float
    atr_multiplier: float


@dataclass(frozen=True)
class TakeProfit:
    take_profit: float
    reward_percent: float
    risk_reward_ratio: float


@dataclass(frozen=True)
class PositionSize:
    shares: int
    total_value: float
    risk_amount: float
    actual_risk_percent: float


@dataclass(frozen=True)
class KellyResult:
    full_kelly: float
    half_kelly: float
    suggested_position_value: float
    max_position_percent: float


@dataclass(frozen=True)
class Holding:
    """An open portfolio position valued at cost."""

    shares: float
    average_cost: float

    @property
    def value(self) -> float:
        return self.shares * self.average_cost


@dataclass(frozen=True)
class NewPosition:
    symbol: str
    value: float


@dataclass(frozen=True)
class DiversificationWarning:
    kind: str  # 'single_stock_limit' / 'sector_limit' / 'position_count'
    message: str
    severity: str  # 'high' / 'medium'


@dataclass(frozen=True)
class DiversificationResult:
    is_allowed: bool
    warnings: Tuple[DiversificationWarning, ...]
    diversification_score: float


@dataclass(frozen=True)
class PortfolioRiskReport:
    portfolio_value: float
    position_count: int
    largest_position: Optional[Tuple[str, float, float]]  # (symbol, value, percent)
    recommendations: Tuple[str, ...]


# ---------------------------------------------------------------------------
# Levels
# ---------------------------------------------------------------------------


def stop_loss(price: float, atr: float, multiplier: float = 2.0) -> StopLoss:
    """ATR stop below ``price``."""
    level = price - atr * multiplier
    return StopLoss(stop_loss=level, risk_percent=(price - level) / price * 100, atr_multiplier=multiplier)


def take_profit(price: float, stop: float, rr_ratio: float = 2.0) -> TakeProfit:
    """Target placed ``rr_ratio`` times the stop distance above ``price``."""
    risk = price - stop
    level = price + risk * rr_ratio
    return TakeProfit(take_profit=level, reward_percent=(level - price) / price * 100, risk_reward_ratio=rr_ratio)


def risk_levels(price: float, atr: Optional[float], cfg: RiskConfig = RiskConfig()) -> RiskLevels:
    if atr is None:
        atr = price * cfg.atr_fallback_pct
    sl = stop_loss(price, atr, cfg.stop_loss_atr_multiplier)
    tp = take_profit(price, sl.stop_loss, cfg.risk_reward_ratio)
    return RiskLevels(
        stop_loss=sl.stop_loss,
        take_profit=tp.take_profit,
        risk_percent=sl.risk_percent,
        reward_percent=tp.reward_percent,
        risk_reward_ratio=tp.risk_reward_ratio,
        atr_multiplier=sl.atr_multiplier,
        atr=atr,
    )


# ---------------------------------------------------------------------------
# Sizing
# ---------------------------------------------------------------------------


def position_size_fixed_risk(
    portfolio_value: float, risk_per_trade_percent: float, entry_price: float, stop: float
) -> PositionSize:
    """Shares such that hitting ``stop`` loses ``risk_per_trade_percent`` of the portfolio."""
    risk_amount = portfolio_value * (risk_per_trade_percent / 100)
    risk_per_share = entry_price - stop
    if risk_per_share <= 0:
        return PositionSize(shares=0, total_value=0.0, risk_amount=0.0, actual_risk_percent=0.0)

    shares = int(math.floor(risk_amount / risk_per_share))
    actual = shares * risk_per_share / portfolio_value * 100 if portfolio_value > 0 else 0.0
    return PositionSize(
        shares=shares,
        total_value=shares * entry_price,
        risk_amount=risk_amount,
        actual_risk_percent=actual,
    )


def kelly_position(
    win_rate: float, avg_win: float, avg_loss: float, portfolio_value: float, cap: float = 0.25
) -> KellyResult:
    """Half-Kelly allocation, capped at ``cap`` of the portfolio.

    f* = (b*p - q) / b with b = avg_win / avg_loss, p = win_rate, q = 1 - p.
    """
    b = avg_win / avg_loss if avg_loss != 0 else 0.0
    if b <= 0:
        return KellyResult(full_kelly=0.0, half_kelly=0.0, suggested_position_value=0.0, max_position_percent=0.0)

    p = win_rate
    q = 1 - p
    kelly = (b * p - q) / b
    half = max(0.0, min(kelly / 2, cap))
    return KellyResult(
        full_kelly=kelly,
        half_kelly=half,
        suggested_position_value=portfolio_value * half,
        max_position_percent=half * 100,
    )


# ---------------------------------------------------------------------------
# Portfolio
# ---------------------------------------------------------------------------


def diversification_score(holdings: Mapping[str, Holding]) -> float:
    """0..100, from 1 - HHI normalised by the best HHI reachable with this many positions."""
    if not holdings:
        return 100.0
    values = [h.value for h in holdings.values()]
    total = sum(values)
    if total == 0:
        return 100.0
    n = len(values)
    if n == 1:
        return 0.0

    hhi = sum((v / total) ** 2 for v in values)
    min_hhi = 1.0 / n
    score = 100 * (1 - hhi) / (1 - min_hhi)
    return max(0.0, min(100.0, score))


def diversification_check(
    holdings: Mapping[str, Holding],
    new_position: NewPosition,
    sector_map: Mapping[str, str],
    cfg: RiskConfig = RiskConfig(),
) -> DiversificationResult:
    warnings: List[DiversificationWarning] = []

    total = 0.0
    sectors: Dict[str, float] = {}
    for symbol, h in holdings.items():
        total += h.value
        sector = sector_map.get(symbol, cfg.default_sector)
        sectors[sector] = sectors.get(sector, 0.0) + h.value

    new_total = total + new_position.value
    position_share = new_position.value / new_total if new_total > 0 else 0.0
    if position_share > cfg.max_single_position:
        warnings.append(
            DiversificationWarning(
                kind="single_stock_limit",
                message=(
                    f"{new_position.symbol} would be {position_share * 100:.1f}% of the portfolio "
                    f"(limit {cfg.max_single_position * 100:.0f}%)"
                ),
                severity="high",
            )
        )

    sector = sector_map.get(new_position.symbol, cfg.default_sector)
    sector_share = (sectors.get(sector, 0.0) + new_position.value) / new_total if new_total > 0 else 0.0
    if sector_share > cfg.max_sector:
        warnings.append(
            DiversificationWarning(
                kind="sector_limit",
                message=f"{sector} would be {sector_share * 100:.1f}% of the portfolio (limit {cfg.max_sector * 100:.0f}%)",
                severity="medium",
            )
        )

    if new_position.symbol not in holdings and len(holdings) >= cfg.max_positions:
        warnings.append(
            DiversificationWarning(
                kind="position_count",
                message=f"At most {cfg.max_positions} different symbols can be held",
                severity="high",
            )
        )

    return DiversificationResult(
        is_allowed=not any(w.severity == "high" for w in warnings),
        warnings=tuple(warnings),
        diversification_score=diversification_score(holdings),
    )


def portfolio_risk_report(
    holdings: Mapping[str, Holding], cash_balance: float, signal: Optional[str] = None
) -> PortfolioRiskReport:
    portfolio_value = 0.0
    largest: Optional[Tuple[str, float]] = None
    for symbol, h in holdings.items():
        portfolio_value += h.value
        if largest is None or h.value > largest[1]:
            largest = (symbol, h.value)
    portfolio_value += cash_balance

    recommendations: List[str] = []
    if len(holdings) < 3:
        recommendations.append("The portfolio is under-diversified; hold at least 3-5 different symbols.")

    largest_position = None
    if largest is not None:
        percent = largest[1] / portfolio_value * 100 if portfolio_value > 0 else 0.0
        largest_position = (largest[0], largest[1], percent)
        if percent > 30:
            recommendations.append(f"{largest[0]} is too large ({percent:.1f}%); consider trimming it.")

    if signal == SELL and holdings:
        recommendations.append("A sell signal is active; review the open positions.")

    return PortfolioRiskReport(
        portfolio_value=portfolio_value,
        position_count=len(holdings),
        largest_position=largest_position,
        recommendations=tuple(recommendations),
    )
