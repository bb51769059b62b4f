"""Single-symbol long-only trade simulator.

The loop walks forward one bar at a time:
- indicators and signal use only bars up to and including ``t``
- an open position is checked for exit first (stop, target, sell signal)
- a flat book may open a position at Close(t)
- equity is marked to Close(t)

A position is first checked for exit on the bar after its entry. Stop and
target are not tested against the entry bar's own low/high, which may
predate the close the position was bought at. No new position is opened on
the bar where one was closed.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple, Union

from .config import BacktestConfig, IndicatorConfig, SignalConfig
from .data_manager import IndicatorDataManager
from .errors import BacktestCancelled
from .indicators import compute_snapshot
from .risk import stop_loss, take_profit
from .signals import score_signal
from .types import (
    BUY,
    EXIT_END_OF_TEST,
    EXIT_SIGNAL_SELL,
    EXIT_STOP_LOSS,
    EXIT_TAKE_PROFIT,
    SELL,
    STRONG_BUY,
    IndicatorSnapshot,
    PriceSeries,
    SignalResult,
    TradeRecord,
)

_LOGGER = logging.getLogger(__name__)

_ENTRY_SIGNALS = (BUY, STRONG_BUY)


@dataclass(frozen=True)
class Flat:
    """No open position."""


@dataclass(frozen=True)
class Long:
    """Exactly one open long position; levels are fixed at entry."""

    entry_index: int
    entry_date: Any
    entry_price: float
    shares: int
    stop_loss: float
    take_profit: float

    @property
    def cost(self) -> float:
        return self.shares * self.entry_price


PositionState = Union[Flat, Long]

FLAT = Flat()


class BacktestSimulator:
    """Replays the composite-signal strategy over a PriceSeries.

    Accounting keeps ``capital`` as realised capital (initial + closed-trade
    profits); cash while long is ``capital - cost``.
    """

    def __init__(
        self,
        series: PriceSeries,
        bt_cfg: BacktestConfig = BacktestConfig(),
        ind_cfg: IndicatorConfig = IndicatorConfig(),
        signal_cfg: SignalConfig = SignalConfig(),
        should_cancel: Optional[Callable[[int], bool]] = None,
        timeout: Optional[float] = None,
    ):
        self.series = series
        self.bt_cfg = bt_cfg
        self.ind_cfg = ind_cfg
        self.signal_cfg = signal_cfg
        self.should_cancel = should_cancel
        self._deadline = time.monotonic() + timeout if timeout is not None else None

        self.dm = IndicatorDataManager(series, ind_cfg) if bt_cfg.incremental else None

        self.capital = float(bt_cfg.initial_capital)
        self.state: PositionState = FLAT

        self.wins = 0
        self.losses = 0
        self.gross_profit = 0.0
        self.gross_loss = 0.0

        self.peak = float(bt_cfg.initial_capital)
        self.max_drawdown = 0.0  # percent of peak

        self.trade_log: List[TradeRecord] = []
        warmup = int(bt_cfg.min_data_points)
        self.equity_curve: List[Tuple[Any, float]] = [(series.dates[warmup - 1], self.capital)]

    # ---------- public API ----------

    def run_full_backtest(self) -> None:
        """Run from the end of the warm-up to the last bar, then liquidate."""
        n = len(self.series)
        for t in range(int(self.bt_cfg.min_data_points), n):
            self._checkpoint(t)
            self.step(t)

        if isinstance(self.state, Long):
            self._close(n - 1, self.state, self.series.closes[-1], EXIT_END_OF_TEST)

        _LOGGER.info(
            "backtest done: %d trades, final capital %.2f, max drawdown %.2f%%",
            len(self.trade_log),
            self.capital,
            self.max_drawdown,
        )

    def step(self, t: int) -> None:
        """Process bar index t."""
        snapshot = self.snapshot_at(t)
        signal = score_signal(snapshot, self.signal_cfg)

        if isinstance(self.state, Long):
            self._maybe_exit(t, self.state, signal)
        else:
            self._maybe_enter(t, snapshot, signal)

        self._append_equity(t)

    def snapshot_at(self, t: int) -> IndicatorSnapshot:
        if self.dm is not None:
            return self.dm.get_snapshot(t)
        return compute_snapshot(self.series.head(t + 1), self.ind_cfg)

    @property
    def cash(self) -> float:
        if isinstance(self.state, Long):
            return self.capital - self.state.cost
        return self.capital

    # ---------- internal helpers ----------

    def _checkpoint(self, t: int) -> None:
        if self.should_cancel is not None and self.should_cancel(t):
            raise BacktestCancelled(t)
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise BacktestCancelled(t, reason="timed out")

    def _maybe_enter(self, t: int, snapshot: IndicatorSnapshot, signal: SignalResult) -> None:
        cfg = self.bt_cfg
        if signal.signal not in _ENTRY_SIGNALS or signal.confidence < cfg.entry_min_confidence:
            return

        price = self.series.closes[t]
        budget = self.capital * (cfg.position_size_percent / 100)
        shares = int(math.floor(budget / price))
        if shares < 1:
            return

        atr = snapshot.atr if snapshot.atr is not None else price * cfg.atr_fallback_pct
        sl = stop_loss(price, atr, cfg.stop_loss_atr_multiplier)
        tp = take_profit(price, sl.stop_loss, cfg.take_profit_risk_reward_ratio)

        self.state = Long(
            entry_index=t,
            entry_date=self.series.dates[t],
            entry_price=price,
            shares=shares,
            stop_loss=sl.stop_loss,
            take_profit=tp.take_profit,
        )
        _LOGGER.debug(
            "bar %d: enter %d @ %.4f (stop %.4f, target %.4f, %s %d%%)",
            t,
            shares,
            price,
            sl.stop_loss,
            tp.take_profit,
            signal.signal,
            signal.confidence,
        )

    def _maybe_exit(self, t: int, pos: Long, signal: SignalResult) -> None:
        if self.series.lows[t] <= pos.stop_loss:
            self._close(t, pos, pos.stop_loss, EXIT_STOP_LOSS)
        elif self.series.highs[t] >= pos.take_profit:
            self._close(t, pos, pos.take_profit, EXIT_TAKE_PROFIT)
        elif signal.signal == SELL and signal.confidence >= self.bt_cfg.exit_min_confidence:
            self._close(t, pos, self.series.closes[t], EXIT_SIGNAL_SELL)

    def _close(self, t: int, pos: Long, exit_price: float, reason: str) -> None:
        profit = pos.shares * exit_price - pos.cost
        self.capital += profit
        if profit > 0:
            self.wins += 1
            self.gross_profit += profit
        else:
            self.losses += 1
            self.gross_loss += abs(profit)

        self.trade_log.append(
            TradeRecord(
                entry_date=pos.entry_date,
                entry_price=pos.entry_price,
                exit_date=self.series.dates[t],
                exit_price=exit_price,
                shares=pos.shares,
                profit=profit,
                profit_percent=profit / pos.cost * 100,
                exit_reason=reason,
                stop_loss=pos.stop_loss,
                take_profit=pos.take_profit,
            )
        )
        self.state = FLAT
        _LOGGER.debug("bar %d: exit @ %.4f (%s), profit %.2f", t, exit_price, reason, profit)

    def _append_equity(self, t: int) -> None:
        equity = self.cash
        if isinstance(self.state, Long):
            equity += self.state.shares * self.series.closes[t]
        self.equity_curve.append((self.series.dates[t], equity))

        self.peak = max(self.peak, equity)
        drawdown = (self.peak - equity) / self.peak * 100 if self.peak > 0 else 0.0
        self.max_drawdown = max(self.max_drawdown, drawdown)
