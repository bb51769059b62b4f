import sys
from pathlib import Path

import numpy as np
import pytest

# make the python/ directory importable so tests can `import ta_engine`
ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from ta_engine.types import PriceSeries  # noqa: E402


def _build(closes, volumes=None, spread=0.01):
    closes = [float(c) for c in closes]
    if volumes is None:
        volumes = [1_000_000.0] * len(closes)
    return PriceSeries(
        dates=list(range(len(closes))),
        closes=closes,
        highs=[c * (1 + spread) for c in closes],
        lows=[c * (1 - spread) for c in closes],
        volumes=volumes,
    )


@pytest.fixture
def make_series():
    """Factory: closes -> PriceSeries with integer dates and a fixed high/low spread."""
    return _build


@pytest.fixture
def rising_series():
    # +1% per bar
    return _build([100.0 * 1.01**i for i in range(120)])


@pytest.fixture
def wave_series():
    # slow sine wave with noise: alternating up and down trends
    rng = np.random.default_rng(7)
    n = 300
    i = np.arange(n)
    closes = 100 + 20 * np.sin(2 * np.pi * i / 80) + rng.normal(0, 0.8, n)
    volumes = rng.uniform(5e5, 2e6, n)
    return _build(closes.tolist(), volumes=volumes.tolist())
