import pandas as pd
import pytest

from staking_loop.analysis.indicators import (
    daily_returns,
    gas_conditions,
    mean_gas,
    price_trend,
    profit_potential,
    volatility,
)
from staking_loop.models.market import GasConditions, PriceTrend


def test_daily_returns_are_relative_changes():
    returns = daily_returns([100.0, 110.0, 99.0])
    assert list(returns) == pytest.approx([0.1, -0.1])


def test_volatility_is_population_std_of_returns():
    assert volatility([100.0, 110.0, 99.0]) == pytest.approx(0.1)


def test_volatility_needs_two_points():
    assert volatility([]) == 0.0
    assert volatility([2000.0]) == 0.0


def test_volatility_accepts_indexed_series():
    series = pd.Series([100.0, 110.0, 99.0], index=[1_000, 87_400, 173_800])
    assert volatility(series) == pytest.approx(0.1)


def test_price_trend_thresholds():
    assert price_trend([100.0, 101.0, 103.0]) == PriceTrend.UP
    assert price_trend([100.0, 97.0]) == PriceTrend.DOWN
    assert price_trend([100.0, 102.0]) == PriceTrend.STABLE
    assert price_trend([100.0, 98.0]) == PriceTrend.STABLE
    assert price_trend([100.0]) == PriceTrend.STABLE


def test_gas_tiers_use_strict_bounds():
    assert gas_conditions(101) == GasConditions.HIGH
    assert gas_conditions(100) == GasConditions.MEDIUM
    assert gas_conditions(51) == GasConditions.MEDIUM
    assert gas_conditions(50) == GasConditions.LOW
    assert gas_conditions(20, high_gwei=15, medium_gwei=10) == GasConditions.HIGH


def test_mean_gas_of_empty_window_is_zero():
    assert mean_gas([]) == 0.0
    assert mean_gas([30.0, 50.0]) == pytest.approx(40.0)


def test_profit_potential_adjusts_spread():
    assert profit_potential(
        2000.0, 2050.0, PriceTrend.UP, PriceTrend.UP, GasConditions.LOW
    ) == pytest.approx(5.5)
    assert profit_potential(
        2000.0, 2050.0, PriceTrend.DOWN, PriceTrend.DOWN, GasConditions.HIGH
    ) == pytest.approx(-0.5)
    assert profit_potential(
        2000.0, 2050.0, PriceTrend.UP, PriceTrend.DOWN, GasConditions.MEDIUM
    ) == pytest.approx(2.5)


def test_profit_potential_without_base_price():
    assert profit_potential(0.0, 2050.0, PriceTrend.UP, PriceTrend.UP, GasConditions.LOW) == 0.0
