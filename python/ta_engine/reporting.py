"""Plain-text reports for analysis snapshots and backtests."""

from __future__ import annotations

import math

from .types import AnalysisSnapshot, BacktestReport


def _trend_name(direction: str) -> str:
    return {"uptrend": "Up", "downtrend": "Down", "sideways": "Sideways"}.get(direction, "Unknown")


def format_analysis_report(snapshot: AnalysisSnapshot) -> str:
    ind = snapshot.indicators
    sig = snapshot.signal
    lines = ["TECHNICAL ANALYSIS REPORT", "=" * 50, "", f"PRICE: {ind.current_price:.2f}", ""]

    lines += ["INDICATORS:", "-" * 30]
    if ind.rsi is not None:
        zone = "Oversold" if ind.rsi < 30 else "Overbought" if ind.rsi > 70 else "Neutral"
        lines += [f"RSI: {ind.rsi:.2f}", f"  -> {zone}"]
    if ind.macd is not None:
        cross = {"bullish": "Bullish crossover", "bearish": "Bearish crossover"}.get(ind.macd.crossover, "No crossover")
        lines += [
            f"MACD: {ind.macd.line:.4f}",
            f"  Signal: {ind.macd.signal:.4f}",
            f"  Histogram: {ind.macd.histogram:.4f}",
            f"  -> {cross}",
        ]
    if ind.bollinger is not None:
        bb = ind.bollinger
        lines += [
            "Bollinger Bands:",
            f"  Upper: {bb.upper:.2f}",
            f"  Middle: {bb.middle:.2f}",
            f"  Lower: {bb.lower:.2f}",
            f"  %B: {bb.percent_b * 100:.1f}%",
        ]
    if ind.sma_short is not None and ind.sma_long is not None:
        lines += [f"SMA short: {ind.sma_short:.2f}", f"SMA long: {ind.sma_long:.2f}"]
    if ind.atr is not None:
        lines += [f"ATR: {ind.atr:.2f}", f"  -> Stop-loss: {snapshot.risk.stop_loss:.2f}"]

    lines += ["", "TREND:", "-" * 30]
    lines += [f"Trend: {_trend_name(ind.trend.direction)}", f"Strength: {ind.trend.strength:.2f}%"]

    lines += ["", "SIGNALS:", "-" * 30]
    for s in sig.indicators:
        lines.append(f"{s.name}: {s.value} -> {s.category} ({s.reason})")

    lines += ["", f"FINAL: {sig.signal} ({sig.confidence}% confidence)"]
    return "\n".join(lines)


def _assessment(win_rate: float, pf: float, sharpe: float) -> str:
    if win_rate > 50 and pf > 1.5 and sharpe > 1:
        return "successful: the strategy looks profitable"
    if win_rate > 40 and pf > 1:
        return "marginal: the strategy may need tuning"
    return "weak: the strategy is not recommended"


def format_backtest_summary(report: BacktestReport) -> str:
    s = report.summary
    pf = "inf" if math.isinf(s.profit_factor) else f"{s.profit_factor:.2f}"
    lines = [
        "BACKTEST RESULTS",
        "=" * 40,
        "",
        f"Initial capital: {s.initial_capital:,.2f}",
        f"Final capital: {s.final_capital:,.2f}",
        f"Total return: {s.total_return:.2f}%",
        "",
        "TRADES:",
        f"Total: {s.total_trades}",
        f"Wins: {s.wins} ({s.win_rate:.1f}%)",
        f"Losses: {s.losses}",
        f"Avg win: {s.avg_win_percent:.2f}%",
        f"Avg loss: {s.avg_loss_percent:.2f}%",
        "",
        "RISK:",
        f"Profit factor: {pf}",
        f"Max drawdown: {s.max_drawdown:.2f}%",
        f"Sharpe ratio: {s.sharpe_ratio:.2f}",
        "",
        f"ASSESSMENT: {_assessment(s.win_rate, s.profit_factor, s.sharpe_ratio)}",
    ]
    return "\n".join(lines)
