"""Rolling-window market condition analysis."""

from __future__ import annotations

from typing import Optional

from staking_loop.analysis.indicators import (
    gas_conditions,
    mean_gas,
    price_trend,
    profit_potential,
    volatility,
)
from staking_loop.config import LoopPolicy
from staking_loop.models.market import HistoricalData, MarketConditions, PriceTrend


class MarketAnalyzer:
    """Derive MarketConditions for a timestamp from the trailing lookback window.

    Stateless apart from its policy: the same history and timestamp always
    produce the same conditions.
    """

    def __init__(self, policy: Optional[LoopPolicy] = None) -> None:
        self.policy = policy or LoopPolicy()

    def analyze(
        self,
        history: HistoricalData,
        timestamp: int,
        lookback_days: Optional[int] = None,
    ) -> MarketConditions:
        lookback = lookback_days or self.policy.lookback_days
        eth_window = history.eth_prices.window(timestamp, lookback)
        wsteth_window = history.wsteth_prices.window(timestamp, lookback)
        gas_window = history.gas_prices.window(timestamp, lookback)

        vol = volatility(eth_window)
        eth_trend = price_trend(eth_window, self.policy.trend_threshold)
        wsteth_trend = price_trend(wsteth_window, self.policy.trend_threshold)
        gas = gas_conditions(
            mean_gas(gas_window),
            high_gwei=self.policy.high_gas_gwei,
            medium_gwei=self.policy.medium_gas_gwei,
        )

        eth_price = float(eth_window.iloc[-1]) if not eth_window.empty else 0.0
        wsteth_price = float(wsteth_window.iloc[-1]) if not wsteth_window.empty else 0.0
        potential = profit_potential(eth_price, wsteth_price, eth_trend, wsteth_trend, gas)

        return MarketConditions(
            is_favorable=vol < self.policy.favorable_volatility
            and eth_trend != PriceTrend.DOWN,
            volatility=vol,
            price_trend=eth_trend,
            profit_potential=potential,
            gas_conditions=gas,
        )
