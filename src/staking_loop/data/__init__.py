"""Historical data collaborators: fetch, resample and cache."""

from staking_loop.data.cache import FileCache
from staking_loop.data.interpolate import daily_grid, interpolate_daily
from staking_loop.data.price_client import (
    DEFAULT_TOKENS,
    PriceDataError,
    PriceHistoryClient,
    to_timestamp,
)

__all__ = [
    "DEFAULT_TOKENS",
    "FileCache",
    "PriceDataError",
    "PriceHistoryClient",
    "daily_grid",
    "interpolate_daily",
    "to_timestamp",
]
