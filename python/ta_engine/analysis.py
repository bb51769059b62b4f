"""Single-point analysis on the latest bar: indicators -> signal -> risk levels."""

from __future__ import annotations

import logging
from typing import Union

from .config import IndicatorConfig, RiskConfig, SignalConfig
from .indicators import compute_snapshot
from .risk import risk_levels
from .signals import score_signal
from .types import AnalysisSnapshot, IndicatorSnapshot, InsufficientData, PriceSeries, TechnicalLevels

_LOGGER = logging.getLogger(__name__)


def technical_levels(snapshot: IndicatorSnapshot) -> TechnicalLevels:
    """Two supports and two resistances from the bands and moving averages.

    Percent offsets of the price stand in for indicators that are not available yet.
    """
    price = snapshot.current_price
    bb = snapshot.bollinger
    supports = (
        bb.lower if bb is not None else price * 0.97,
        snapshot.sma_long if snapshot.sma_long is not None else price * 0.94,
    )
    resistances = (
        bb.upper if bb is not None else price * 1.03,
        snapshot.sma_short * 1.02 if snapshot.sma_short is not None else price * 1.06,
    )
    return TechnicalLevels(supports=supports, resistances=resistances)


def analyze(
    series: PriceSeries,
    ind_cfg: IndicatorConfig = IndicatorConfig(),
    signal_cfg: SignalConfig = SignalConfig(),
    risk_cfg: RiskConfig = RiskConfig(),
) -> Union[AnalysisSnapshot, InsufficientData]:
    ind_cfg.validate()
    signal_cfg.validate()
    risk_cfg.validate()

    if len(series) < risk_cfg.min_analysis_bars:
        _LOGGER.warning("analysis needs %d bars, got %d", risk_cfg.min_analysis_bars, len(series))
        return InsufficientData(min_required=risk_cfg.min_analysis_bars, actual=len(series))

    snapshot = compute_snapshot(series, ind_cfg)
    signal = score_signal(snapshot, signal_cfg)
    risk = risk_levels(snapshot.current_price, snapshot.atr, risk_cfg)

    _LOGGER.info("analysis ready: signal=%s confidence=%d", signal.signal, signal.confidence)
    return AnalysisSnapshot(
        indicators=snapshot,
        signal=signal,
        risk=risk,
        levels=technical_levels(snapshot),
        data_points=len(series),
    )
