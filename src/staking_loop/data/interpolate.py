"""Resample sparse price points onto a gap-free daily grid."""

from __future__ import annotations

from typing import Any, Iterable, List

import pandas as pd

from staking_loop.models.market import DAY_SECONDS, PricePoint, PriceSeries


def daily_grid(start_ts: int, end_ts: int) -> pd.Index:
    return pd.Index(range(int(start_ts), int(end_ts) + 1, DAY_SECONDS), dtype="int64")


def interpolate_daily(
    points: Iterable[Any],
    start_ts: int,
    end_ts: int,
    round_prices: bool = False,
) -> List[PricePoint]:
    """Linear interpolation between known neighbours, edges filled from the nearest point."""
    known = PriceSeries(points).series
    if known.empty:
        raise ValueError("Cannot interpolate an empty price series")
    grid = daily_grid(start_ts, end_ts)
    if grid.empty:
        return []

    combined = known.reindex(known.index.union(grid))
    combined = combined.interpolate(method="index").ffill().bfill()
    resampled = combined.loc[grid]
    if round_prices:
        resampled = resampled.round()
    return [PricePoint(int(ts), float(price)) for ts, price in resampled.items()]
