from __future__ import annotations

import pytest

from ta_engine.config import RiskConfig
from ta_engine.risk import (
    Holding,
    NewPosition,
    diversification_check,
    diversification_score,
    kelly_position,
    portfolio_risk_report,
    position_size_fixed_risk,
    risk_levels,
    stop_loss,
    take_profit,
)


def test_stop_loss_and_take_profit():
    sl = stop_loss(100.0, 2.0, 2.0)
    assert sl.stop_loss == 96.0
    assert sl.risk_percent == pytest.approx(4.0)

    tp = take_profit(100.0, sl.stop_loss, 2.0)
    assert tp.take_profit == 108.0
    assert tp.reward_percent == pytest.approx(8.0)


def test_risk_levels_reward_is_ratio_times_risk():
    levels = risk_levels(250.0, 3.7, RiskConfig(risk_reward_ratio=3.0))
    assert levels.stop_loss < 250.0
    assert levels.take_profit - 250.0 == pytest.approx(3.0 * (250.0 - levels.stop_loss))
    assert levels.reward_percent == pytest.approx(3.0 * levels.risk_percent)
    assert levels.atr == 3.7


def test_risk_levels_fall_back_to_price_percent():
    levels = risk_levels(100.0, None)
    assert levels.atr == pytest.approx(2.0)
    assert levels.stop_loss == pytest.approx(96.0)
    assert levels.take_profit == pytest.approx(108.0)


def test_position_size_fixed_risk():
    size = position_size_fixed_risk(100_000, 1.0, 50.0, 48.0)
    assert size.shares == 500
    assert size.total_value == 25_000.0
    assert size.risk_amount == pytest.approx(1_000.0)
    assert size.actual_risk_percent == pytest.approx(1.0)

    bad = position_size_fixed_risk(100_000, 1.0, 50.0, 50.0)
    assert bad.shares == 0
    assert bad.total_value == 0.0


def test_kelly_position():
    k = kelly_position(0.6, 2.0, 1.0, 100_000)
    assert k.full_kelly == pytest.approx(0.4)
    assert k.half_kelly == pytest.approx(0.2)
    assert k.suggested_position_value == pytest.approx(20_000)
    assert k.max_position_percent == pytest.approx(20.0)

    capped = kelly_position(0.9, 2.0, 1.0, 100_000)
    assert capped.half_kelly == 0.25

    losing = kelly_position(0.2, 1.0, 1.0, 100_000)
    assert losing.full_kelly < 0
    assert losing.half_kelly == 0.0

    no_losses = kelly_position(1.0, 2.0, 0.0, 100_000)
    assert no_losses.full_kelly == 0.0
    assert no_losses.suggested_position_value == 0.0


def test_diversification_score_bounds():
    assert diversification_score({}) == 100.0
    assert diversification_score({"A": Holding(10, 100)}) == 0.0

    equal = {s: Holding(10, 100) for s in "ABCD"}
    assert diversification_score(equal) == pytest.approx(100.0)

    skewed = {"A": Holding(100, 100), "B": Holding(1, 100), "C": Holding(1, 100)}
    score = diversification_score(skewed)
    assert 0.0 <= score < 100.0
    assert score < diversification_score(equal)


def test_diversification_check_flags_limits():
    holdings = {"A": Holding(500, 100), "B": Holding(500, 100)}
    sectors = {"A": "Tech", "B": "Tech", "C": "Tech"}
    result = diversification_check(holdings, NewPosition("C", 30_000), sectors)
    kinds = [w.kind for w in result.warnings]
    assert "single_stock_limit" in kinds
    assert "sector_limit" in kinds
    assert result.is_allowed is False


def test_diversification_check_allows_small_position():
    holdings = {s: Holding(200, 100) for s in "ABCDE"}
    sectors = {"A": "Tech", "B": "Health", "C": "Energy", "D": "Finance", "E": "Retail", "F": "Utilities"}
    result = diversification_check(holdings, NewPosition("F", 10_000), sectors)
    assert result.warnings == ()
    assert result.is_allowed is True
    assert result.diversification_score == pytest.approx(100.0)


def test_diversification_check_position_count():
    holdings = {f"S{i}": Holding(1, 100) for i in range(10)}
    result = diversification_check(holdings, NewPosition("NEW", 1.0), {}, RiskConfig(max_sector=1.0))
    assert [w.kind for w in result.warnings] == ["position_count"]
    assert result.is_allowed is False


def test_sector_warning_alone_is_allowed():
    holdings = {s: Holding(100, 100) for s in "ABCDEF"}
    sectors = {"A": "Tech", "B": "Tech", "C": "Tech"}
    # unknown symbols fall into the default sector
    result = diversification_check(holdings, NewPosition("G", 5_000), sectors)
    assert [w.kind for w in result.warnings] == ["sector_limit"]
    assert result.warnings[0].severity == "medium"
    assert result.is_allowed is True


def test_portfolio_risk_report():
    report = portfolio_risk_report({"A": Holding(500, 100)}, cash_balance=50_000, signal="SELL")
    assert report.portfolio_value == 100_000
    assert report.position_count == 1
    assert report.largest_position == ("A", 50_000, 50.0)
    assert len(report.recommendations) == 3

    empty = portfolio_risk_report({}, cash_balance=1_000)
    assert empty.largest_position is None
    assert empty.portfolio_value == 1_000


@pytest.mark.parametrize("price,atr_value,multiplier", [(100.0, 0.5, 1.0), (12.3, 0.01, 3.0), (5000.0, 80.0, 2.0)])
def test_stop_is_below_price(price, atr_value, multiplier):
    sl = stop_loss(price, atr_value, multiplier)
    assert sl.stop_loss < price
    for rr in (0.5, 2.0, 3.5):
        tp = take_profit(price, sl.stop_loss, rr)
        assert tp.reward_percent == pytest.approx(rr * sl.risk_percent)


def test_diversification_score_decreases_with_concentration():
    scores = [
        diversification_score({"A": Holding(a, 1.0), "B": Holding(b, 1.0), "C": Holding(c, 1.0)})
        for a, b, c in [(100, 100, 100), (150, 100, 50), (200, 50, 50), (280, 10, 10)]
    ]
    assert scores == sorted(scores, reverse=True)
    assert len(set(scores)) == len(scores)
