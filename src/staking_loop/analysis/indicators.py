"""Market indicator helpers over daily price windows."""

from __future__ import annotations

from typing import Iterable, Union

import pandas as pd

from staking_loop.models.market import GasConditions, PriceTrend


PriceInput = Union[pd.Series, Iterable[float]]


def _as_series(prices: PriceInput) -> pd.Series:
    if isinstance(prices, pd.Series):
        return prices.astype(float)
    return pd.Series(list(prices), dtype=float)


def daily_returns(prices: PriceInput) -> pd.Series:
    series = _as_series(prices).reset_index(drop=True)
    return (series.diff() / series.shift(1)).iloc[1:]


def volatility(prices: PriceInput) -> float:
    """Population std-dev of day-over-day returns; 0 with fewer than 2 points."""
    series = _as_series(prices)
    if len(series) < 2:
        return 0.0
    return float(daily_returns(series).std(ddof=0))


def price_trend(prices: PriceInput, threshold: float = 0.02) -> PriceTrend:
    series = _as_series(prices)
    if len(series) < 2:
        return PriceTrend.STABLE
    first = float(series.iloc[0])
    last = float(series.iloc[-1])
    change = (last - first) / first
    if change > threshold:
        return PriceTrend.UP
    if change < -threshold:
        return PriceTrend.DOWN
    return PriceTrend.STABLE


def gas_conditions(
    avg_gas_gwei: float, high_gwei: float = 100.0, medium_gwei: float = 50.0
) -> GasConditions:
    if avg_gas_gwei > high_gwei:
        return GasConditions.HIGH
    if avg_gas_gwei > medium_gwei:
        return GasConditions.MEDIUM
    return GasConditions.LOW


def mean_gas(gas_prices: PriceInput) -> float:
    series = _as_series(gas_prices)
    if series.empty:
        return 0.0
    return float(series.mean())


def profit_potential(
    eth_price: float,
    wsteth_price: float,
    eth_trend: PriceTrend,
    wsteth_trend: PriceTrend,
    gas: GasConditions,
) -> float:
    """Spread of the derivative over the base asset in percent, nudged by trend and gas."""
    if eth_price <= 0:
        return 0.0
    potential = (wsteth_price - eth_price) / eth_price * 100
    if eth_trend == PriceTrend.UP and wsteth_trend == PriceTrend.UP:
        potential += 2
    if eth_trend == PriceTrend.DOWN and wsteth_trend == PriceTrend.DOWN:
        potential -= 2
    if gas == GasConditions.HIGH:
        potential -= 1
    if gas == GasConditions.LOW:
        potential += 1
    return potential
