import pytest

from conftest import BASE_TS
from staking_loop.analysis.market import MarketAnalyzer
from staking_loop.config import LoopPolicy
from staking_loop.models.market import DAY_SECONDS, GasConditions, PriceTrend


def test_first_tick_sees_single_point(rising_history):
    conditions = MarketAnalyzer().analyze(rising_history, BASE_TS)

    assert conditions.volatility == 0.0
    assert conditions.price_trend == PriceTrend.STABLE
    assert conditions.is_favorable is True
    assert conditions.gas_conditions == GasConditions.LOW
    assert conditions.profit_potential == pytest.approx(2.5 + 1)


def test_trailing_window_trend_and_potential(rising_history):
    conditions = MarketAnalyzer().analyze(rising_history, BASE_TS + 9 * DAY_SECONDS)

    assert conditions.price_trend == PriceTrend.UP
    assert conditions.profit_potential == pytest.approx((2158 - 2090) / 2090 * 100 + 3)


def test_window_excludes_points_older_than_lookback(make_history):
    history = make_history([1000] + [2000] * 7, [2050] * 8, 30)
    conditions = MarketAnalyzer().analyze(history, BASE_TS + 7 * DAY_SECONDS)

    assert conditions.volatility == 0.0
    assert conditions.price_trend == PriceTrend.STABLE


def test_lookback_override(make_history):
    history = make_history([2000, 1800, 2000], [2050] * 3, 30)
    analyzer = MarketAnalyzer()
    ts = BASE_TS + 2 * DAY_SECONDS

    assert analyzer.analyze(history, ts).volatility > 0
    assert analyzer.analyze(history, ts, lookback_days=1).volatility == 0.0


def test_down_trend_is_not_favorable(decline_history):
    conditions = MarketAnalyzer().analyze(decline_history, BASE_TS + 5 * DAY_SECONDS)

    assert conditions.price_trend == PriceTrend.DOWN
    assert conditions.is_favorable is False


def test_high_gas_window(make_history):
    history = make_history([2000] * 3, [2050] * 3, [120, 130, 140])
    conditions = MarketAnalyzer().analyze(history, BASE_TS + 2 * DAY_SECONDS)

    assert conditions.gas_conditions == GasConditions.HIGH
    assert conditions.profit_potential == pytest.approx(2.5 - 1)


def test_policy_thresholds_are_used(make_history):
    history = make_history([2000, 2010], [2050, 2060], 30)
    policy = LoopPolicy(trend_threshold=0.001, medium_gas_gwei=20.0)
    conditions = MarketAnalyzer(policy).analyze(history, BASE_TS + DAY_SECONDS)

    assert conditions.price_trend == PriceTrend.UP
    assert conditions.gas_conditions == GasConditions.MEDIUM


def test_analysis_is_pure(crash_history):
    analyzer = MarketAnalyzer()
    before = crash_history.to_dict()
    ts = BASE_TS + 8 * DAY_SECONDS

    first = analyzer.analyze(crash_history, ts)
    second = analyzer.analyze(crash_history, ts)

    assert first == second
    assert crash_history.to_dict() == before
