from __future__ import annotations

import logging

import pytest

from ta_engine.errors import BacktestCancelled, PriceSeriesError
from ta_engine.log import setup_logger
from ta_engine.types import PriceSeries


def test_price_series_coerces_and_slices():
    s = PriceSeries(dates=["d1", "d2", "d3"], closes=[1, 2, 3], highs=[1, 2, 3], lows=[1, 2, 3], volumes=[0, 0, 0])
    assert len(s) == 3
    assert s.closes == (1.0, 2.0, 3.0)
    head = s.head(2)
    assert head.dates == ("d1", "d2")
    assert head.volumes == (0.0, 0.0)


def test_price_series_length_mismatch():
    with pytest.raises(PriceSeriesError):
        PriceSeries(dates=[1, 2], closes=[1.0, 2.0], highs=[1.0], lows=[1.0, 2.0], volumes=[1.0, 2.0])
    assert issubclass(PriceSeriesError, ValueError)


def test_backtest_cancelled_message():
    err = BacktestCancelled(42, reason="timed out")
    assert err.bar_index == 42
    assert "timed out at bar 42" in str(err)


def test_setup_logger_adds_one_handler():
    logger = setup_logger("ta_engine.test_logger", logging.DEBUG)
    again = setup_logger("ta_engine.test_logger", logging.DEBUG)
    assert logger is again
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG


def test_library_modules_do_not_attach_handlers():
    import ta_engine.analysis  # noqa: F401
    import ta_engine.backtest  # noqa: F401
    import ta_engine.simulator  # noqa: F401

    for name in ("ta_engine.analysis", "ta_engine.backtest", "ta_engine.simulator"):
        logger = logging.getLogger(name)
        assert logger.handlers == []
        assert logger.level == logging.NOTSET
