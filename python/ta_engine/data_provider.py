"""Input adapter: pandas OHLCV frame -> PriceSeries.

Fetching data is the caller's job; this only normalises whatever frame the
acquisition layer hands over.
"""

from __future__ import annotations

import pandas as pd

from .types import PriceSeries

REQUIRED_COLUMNS = ["High", "Low", "Close", "Volume"]


def _standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    # Chart APIs can return MultiIndex columns (field, ticker).
    # We standardize to a simple 1-level column index.
    if isinstance(df.columns, pd.MultiIndex):
        tickers = list(dict.fromkeys(df.columns.get_level_values(-1)))
        if len(tickers) == 1:
            df = df.copy()
            df.columns = df.columns.get_level_values(0)
        else:
            # multiple tickers -> keep only the first ticker's fields
            df = df.xs(tickers[0], axis=1, level=-1, drop_level=True)

    rename_map = {}
    for col in df.columns:
        c = str(col).strip().lower()
        if c in {"high", "low", "close", "volume", "open"}:
            rename_map[col] = c.capitalize()
        elif c in {"adj close", "adjclose"}:
            # Keep adjusted close separate to avoid duplicate "Close" columns.
            rename_map[col] = "AdjClose"
    df = df.rename(columns=rename_map)

    # If the source only has AdjClose, use it as Close.
    if "Close" not in df.columns and "AdjClose" in df.columns:
        df = df.rename(columns={"AdjClose": "Close"})

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required OHLCV columns: {missing}")

    df = df[REQUIRED_COLUMNS].astype(float)
    df = df[~df.index.duplicated(keep="last")].sort_index()
    return df.dropna(subset=["Close"])


def _to_date(x):
    return x.to_pydatetime() if isinstance(x, pd.Timestamp) else x


def price_series_from_frame(df: pd.DataFrame) -> PriceSeries:
    """Build a PriceSeries from a date-indexed OHLCV frame.

    Missing highs/lows fall back to the close, missing volume to 0.
    """
    frame = _standardize_columns(df)
    close = frame["Close"]
    high = frame["High"].fillna(close)
    low = frame["Low"].fillna(close)
    volume = frame["Volume"].fillna(0.0)
    return PriceSeries(
        dates=[_to_date(x) for x in frame.index],
        closes=close.tolist(),
        highs=high.tolist(),
        lows=low.tolist(),
        volumes=volume.tolist(),
    )
