"""Price series and market condition models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping, Optional, Tuple

import pandas as pd


DAY_SECONDS = 86400


class PriceTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class GasConditions(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class PricePoint:
    timestamp: int
    price: float

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "price": self.price}


def _coerce_point(point: Any) -> Tuple[int, float]:
    if isinstance(point, PricePoint):
        return point.timestamp, point.price
    if isinstance(point, Mapping):
        try:
            return int(point["timestamp"]), float(point["price"])
        except KeyError as exc:
            raise ValueError(f"Price point missing field: {exc}") from exc
    if isinstance(point, (tuple, list)) and len(point) == 2:
        return int(point[0]), float(point[1])
    raise ValueError(f"Unsupported price point: {point!r}")


class PriceSeries:
    """Immutable daily price series indexed by unix timestamp (seconds)."""

    def __init__(self, points: Iterable[Any] = (), name: str = "price") -> None:
        timestamps = []
        prices = []
        for point in points:
            ts, price = _coerce_point(point)
            timestamps.append(ts)
            prices.append(price)
        series = pd.Series(
            prices, index=pd.Index(timestamps, dtype="int64"), dtype=float, name=name
        )
        self._series = series[~series.index.duplicated(keep="last")].sort_index()
        self.name = name

    @classmethod
    def from_series(cls, series: pd.Series, name: Optional[str] = None) -> "PriceSeries":
        return cls(zip(series.index, series.values), name=name or str(series.name))

    @property
    def empty(self) -> bool:
        return self._series.empty

    @property
    def first(self) -> PricePoint:
        return PricePoint(int(self._series.index[0]), float(self._series.iloc[0]))

    @property
    def last(self) -> PricePoint:
        return PricePoint(int(self._series.index[-1]), float(self._series.iloc[-1]))

    @property
    def series(self) -> pd.Series:
        return self._series.copy()

    def __len__(self) -> int:
        return len(self._series)

    def __iter__(self) -> Iterator[PricePoint]:
        for ts, price in self._series.items():
            yield PricePoint(int(ts), float(price))

    def price_at(self, timestamp: int) -> Optional[float]:
        """Exact-timestamp lookup; None marks a missing data point."""
        value = self._series.get(int(timestamp))
        if value is None or pd.isna(value):
            return None
        return float(value)

    def last_known(self, timestamp: int) -> Optional[PricePoint]:
        eligible = self._series[self._series.index <= int(timestamp)]
        if eligible.empty:
            return None
        return PricePoint(int(eligible.index[-1]), float(eligible.iloc[-1]))

    def window(self, timestamp: int, lookback_days: int) -> pd.Series:
        """Points with timestamp - lookback < t <= timestamp."""
        start = int(timestamp) - lookback_days * DAY_SECONDS
        index = self._series.index
        return self._series[(index > start) & (index <= int(timestamp))]

    def to_list(self) -> list[dict]:
        return [point.to_dict() for point in self]


@dataclass(frozen=True)
class HistoricalData:
    eth_prices: PriceSeries
    wsteth_prices: PriceSeries
    gas_prices: PriceSeries

    @classmethod
    def from_points(
        cls,
        eth_prices: Iterable[Any],
        wsteth_prices: Iterable[Any],
        gas_prices: Iterable[Any],
    ) -> "HistoricalData":
        return cls(
            eth_prices=PriceSeries(eth_prices or (), name="eth"),
            wsteth_prices=PriceSeries(wsteth_prices or (), name="wsteth"),
            gas_prices=PriceSeries(gas_prices or (), name="gas"),
        )

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "HistoricalData":
        def pick(*keys: str) -> Iterable[Any]:
            for key in keys:
                if payload.get(key) is not None:
                    return payload[key]
            return ()

        return cls.from_points(
            pick("ethPrices", "eth_prices"),
            pick("wstethPrices", "wsteth_prices"),
            pick("gasPrices", "gas_prices"),
        )

    def to_dict(self) -> dict:
        return {
            "ethPrices": self.eth_prices.to_list(),
            "wstethPrices": self.wsteth_prices.to_list(),
            "gasPrices": self.gas_prices.to_list(),
        }


@dataclass(frozen=True)
class MarketConditions:
    is_favorable: bool
    volatility: float
    price_trend: PriceTrend
    profit_potential: float
    gas_conditions: GasConditions

    def to_dict(self) -> dict:
        return {
            "isFavorable": self.is_favorable,
            "volatility": self.volatility,
            "priceTrend": self.price_trend.value,
            "profitPotential": self.profit_potential,
            "gasConditions": self.gas_conditions.value,
        }


@dataclass(frozen=True)
class RiskMetrics:
    volatility: float
    projected_health_factor: float
    safety_margin: float
