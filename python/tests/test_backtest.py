from __future__ import annotations

import math
import time

import pytest

from ta_engine.backtest import run_backtest
from ta_engine.config import BacktestConfig, SignalConfig
from ta_engine.errors import BacktestCancelled, InvalidConfig
from ta_engine.indicators import atr
from ta_engine.simulator import FLAT, BacktestSimulator, Long
from ta_engine.types import BacktestReport, InsufficientData

# composite == trend sub-score: uptrend -> BUY/STRONG_BUY, downtrend -> SELL
TREND_ONLY = SignalConfig(rsi_weight=0.0, macd_weight=0.0, bollinger_weight=0.0, volume_weight=0.0)


def _trend_run(series, **overrides):
    params = dict(exit_min_confidence=0, max_trades=None, equity_sample_every=1)
    params.update(overrides)
    return run_backtest(series, BacktestConfig(**params), signal_cfg=TREND_ONLY)


def test_short_series_is_insufficient(make_series):
    result = run_backtest(make_series([100.0 + i for i in range(99)]))
    assert isinstance(result, InsufficientData)
    assert result.min_required == 100
    assert result.actual == 99


def test_invalid_config_raises(wave_series):
    with pytest.raises(InvalidConfig):
        run_backtest(wave_series, BacktestConfig(position_size_percent=0))
    with pytest.raises(InvalidConfig):
        run_backtest(wave_series, BacktestConfig(initial_capital=-1))


def test_accounting_identity(wave_series):
    report = _trend_run(wave_series)
    assert isinstance(report, BacktestReport)
    s = report.summary
    assert s.total_trades == len(report.trades) > 0
    assert s.wins + s.losses == s.total_trades

    # same summation order as the simulator: exact equality
    capital = s.initial_capital
    for trade in report.trades:
        capital += trade.profit
    assert capital == s.final_capital
    assert s.gross_profit - s.gross_loss == pytest.approx(s.final_capital - s.initial_capital, abs=1e-6)
    assert s.total_return == pytest.approx((s.final_capital - s.initial_capital) / s.initial_capital * 100)


def test_trades_never_overlap(wave_series):
    trades = _trend_run(wave_series).trades
    for trade in trades:
        assert trade.entry_date <= trade.exit_date
        assert trade.shares >= 1
    for prev, nxt in zip(trades, trades[1:]):
        # no re-entry on the exit bar
        assert prev.exit_date < nxt.entry_date


def test_exit_prices_match_reasons(wave_series):
    closes = wave_series.closes
    for trade in _trend_run(wave_series).trades:
        if trade.exit_reason == "stop_loss":
            assert trade.exit_price == trade.stop_loss
        elif trade.exit_reason == "take_profit":
            assert trade.exit_price == trade.take_profit
        else:
            assert trade.exit_price == closes[trade.exit_date]
        assert trade.stop_loss < trade.entry_price < trade.take_profit


def test_signal_sell_exits_happen_with_low_threshold(wave_series):
    # stops and targets far away: only the downtrend signal closes positions
    report = _trend_run(wave_series, stop_loss_atr_multiplier=20.0, take_profit_risk_reward_ratio=50.0)
    reasons = {t.exit_reason for t in report.trades}
    assert "signal_sell" in reasons


def test_default_exit_threshold_blocks_signal_sell(wave_series):
    # a SELL composite is at most 39, below the default threshold of 60
    report = _trend_run(wave_series, exit_min_confidence=60)
    assert all(t.exit_reason != "signal_sell" for t in report.trades)


def test_incremental_matches_from_scratch(wave_series):
    series = wave_series.head(180)
    fast = _trend_run(series, incremental=True)
    slow = _trend_run(series, incremental=False)
    assert fast == slow

    default_fast = run_backtest(series, BacktestConfig(incremental=True))
    default_slow = run_backtest(series, BacktestConfig(incremental=False))
    assert default_fast == default_slow


def test_stop_loss_exit_at_stop_price(make_series):
    closes = []
    price = 100.0
    for i in range(200):
        if i == 52:
            price *= 0.9
        elif i > 0:
            price *= 1.005
        closes.append(price)
    series = make_series(closes)

    report = _trend_run(series, take_profit_risk_reward_ratio=50.0)
    stops = [t for t in report.trades if t.exit_reason == "stop_loss"]
    assert len(stops) == 1

    first = report.trades[0]
    assert first is stops[0]
    assert first.entry_date == 50
    assert first.exit_date == 52
    assert first.entry_price == series.closes[50]

    expected_atr = atr(series.highs[:51], series.lows[:51], series.closes[:51])
    assert first.stop_loss == series.closes[50] - expected_atr * 2.0
    assert first.exit_price == first.stop_loss
    assert first.shares == math.floor(100_000 * 0.10 / series.closes[50])
    assert first.profit < 0


def test_position_open_at_end_is_liquidated(make_series):
    series = make_series([100.0 * 1.005**i for i in range(150)])
    report = _trend_run(series, take_profit_risk_reward_ratio=50.0)
    last = report.trades[-1]
    assert last.exit_reason == "end_of_test"
    assert last.exit_date == 149
    assert last.exit_price == series.closes[-1]
    assert report.summary.final_capital > report.summary.initial_capital


def test_no_trades_report(make_series):
    report = run_backtest(make_series([100.0] * 120))
    s = report.summary
    assert s.total_trades == 0
    assert s.final_capital == s.initial_capital
    assert s.win_rate == 0.0
    assert s.profit_factor == 0.0
    assert s.sharpe_ratio == 0.0
    assert s.max_drawdown == 0.0
    assert s.bars_tested == 70
    assert report.equity_curve[0] == (49, 100_000.0)


def test_report_truncation(wave_series):
    full = _trend_run(wave_series)
    short = _trend_run(wave_series, max_trades=2, equity_sample_every=5)
    assert short.trades == full.trades[-2:]
    assert short.equity_curve == full.equity_curve[::5]
    # warm-up anchor plus one point per simulated bar
    assert len(full.equity_curve) == 1 + len(wave_series) - 50
    assert short.summary == full.summary


def test_max_drawdown_and_sharpe_are_finite(wave_series):
    s = _trend_run(wave_series).summary
    assert 0.0 <= s.max_drawdown < 100.0
    assert math.isfinite(s.sharpe_ratio)


def test_cancellation(wave_series):
    with pytest.raises(BacktestCancelled) as exc:
        run_backtest(wave_series, should_cancel=lambda bar: bar >= 60)
    assert exc.value.bar_index == 60
    assert exc.value.reason == "cancelled"


def test_expired_deadline(wave_series):
    with pytest.raises(BacktestCancelled) as exc:
        run_backtest(wave_series, timeout=-1.0)
    assert exc.value.bar_index == 50
    assert exc.value.reason == "timed out"


def _best_time(series, repeats=3):
    best = float("inf")
    for _ in range(repeats):
        started = time.perf_counter()
        run_backtest(series)
        best = min(best, time.perf_counter() - started)
    return best


def test_incremental_runtime_grows_linearly(make_series):
    closes = [100.0 + 10 * math.sin(i / 7.0) + i * 0.01 for i in range(1600)]
    small = _best_time(make_series(closes[:400]))
    large = _best_time(make_series(closes))
    # 4x the bars: linear growth is ~4x, quadratic would be ~16x
    assert large < small * 10


def test_exit_is_checked_from_the_bar_after_entry(wave_series):
    for trade in _trend_run(wave_series).trades:
        if trade.exit_reason != "end_of_test":
            assert trade.exit_date > trade.entry_date


def test_step_closes_the_open_position_at_its_stop(wave_series):
    sim = BacktestSimulator(wave_series, BacktestConfig(), signal_cfg=TREND_ONLY)
    t = 60
    price = wave_series.closes[t - 1]
    sim.state = Long(
        entry_index=t - 1,
        entry_date=wave_series.dates[t - 1],
        entry_price=price,
        shares=10,
        stop_loss=wave_series.lows[t] + 0.01,
        take_profit=price * 10,
    )
    sim.step(t)

    assert sim.state is FLAT
    (trade,) = sim.trade_log
    assert trade.exit_reason == "stop_loss"
    assert trade.exit_price == wave_series.lows[t] + 0.01
    assert sim.capital == 100_000.0 + trade.profit
