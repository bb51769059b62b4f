"""Backtest runner: validation, simulation and the bounded report."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from .config import BacktestConfig, IndicatorConfig, SignalConfig
from .metrics import daily_returns, every_nth, last_n, profit_factor, sharpe_ratio
from .simulator import BacktestSimulator
from .types import BacktestReport, BacktestSummary, InsufficientData, PriceSeries

_LOGGER = logging.getLogger(__name__)


def summarize(sim: BacktestSimulator) -> BacktestSummary:
    """Post-loop metrics of a finished simulation."""
    cfg = sim.bt_cfg
    wins, losses = sim.wins, sim.losses
    total = wins + losses
    avg_win = sim.gross_profit / wins if wins > 0 else 0.0
    avg_loss = sim.gross_loss / losses if losses > 0 else 0.0
    allocation = cfg.allocation

    returns = daily_returns([equity for _, equity in sim.equity_curve])
    return BacktestSummary(
        initial_capital=float(cfg.initial_capital),
        final_capital=sim.capital,
        total_return=(sim.capital - cfg.initial_capital) / cfg.initial_capital * 100,
        total_trades=total,
        wins=wins,
        losses=losses,
        win_rate=wins / total * 100 if total > 0 else 0.0,
        avg_win=avg_win,
        avg_loss=avg_loss,
        avg_win_percent=avg_win / allocation * 100,
        avg_loss_percent=avg_loss / allocation * 100,
        gross_profit=sim.gross_profit,
        gross_loss=sim.gross_loss,
        profit_factor=profit_factor(sim.gross_profit, sim.gross_loss),
        max_drawdown=sim.max_drawdown,
        sharpe_ratio=sharpe_ratio(returns),
        bars_tested=len(sim.series) - int(cfg.min_data_points),
    )


def run_backtest(
    series: PriceSeries,
    bt_cfg: BacktestConfig = BacktestConfig(),
    ind_cfg: IndicatorConfig = IndicatorConfig(),
    signal_cfg: SignalConfig = SignalConfig(),
    should_cancel: Optional[Callable[[int], bool]] = None,
    timeout: Optional[float] = None,
) -> Union[BacktestReport, InsufficientData]:
    """Simulate the strategy over ``series``.

    Raises ``InvalidConfig`` before simulating if any config is out of range and
    ``BacktestCancelled`` if ``should_cancel(bar)`` returns True or ``timeout``
    seconds elapse. A too-short series returns ``InsufficientData``.
    """
    bt_cfg.validate()
    ind_cfg.validate()
    signal_cfg.validate()

    required = bt_cfg.required_bars
    if len(series) < required:
        _LOGGER.warning("backtest needs %d bars, got %d", required, len(series))
        return InsufficientData(min_required=required, actual=len(series))

    sim = BacktestSimulator(
        series,
        bt_cfg=bt_cfg,
        ind_cfg=ind_cfg,
        signal_cfg=signal_cfg,
        should_cancel=should_cancel,
        timeout=timeout,
    )
    sim.run_full_backtest()

    return BacktestReport(
        summary=summarize(sim),
        trades=last_n(sim.trade_log, bt_cfg.max_trades),
        equity_curve=every_nth(sim.equity_curve, int(bt_cfg.equity_sample_every)),
    )
