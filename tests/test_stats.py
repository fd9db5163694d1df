import math

import pytest

from staking_loop.config import LoopPolicy
from staking_loop.simulation.simulator import LoopSimulator, SimulationParams
from staking_loop.simulation.stats import summarize_steps


def _steps(history, policy=None, risk_engine=None):
    return LoopSimulator(policy=policy, risk_engine=risk_engine).run(
        SimulationParams(initial_capital=10000.0, historical_data=history)
    )


def test_summary_of_losing_loop(crash_history):
    stats = summarize_steps(_steps(crash_history))

    assert stats.total_loops == 1
    assert stats.successful_loops == 0
    assert stats.exit_points == [("2024-01-09", "Position showing loss beyond safety margin")]
    assert stats.reentry_points == []
    assert stats.average_loop_duration_days == pytest.approx(8.0)
    assert stats.average_loop_profit_pct == pytest.approx(-5.12, abs=0.01)
    assert stats.max_drawdown_pct == pytest.approx(-5.12, abs=0.01)
    assert math.isinf(stats.final_health_factor)


def test_total_profit_uses_closing_value(rising_history):
    stats = summarize_steps(_steps(rising_history))

    assert stats.total_loops == 1
    assert stats.exit_points == []
    assert stats.total_profit_pct == pytest.approx((10000 / 2050 * 2158 - 10000) / 100, abs=0.01)


def test_repeated_loops(flat_history, churn_engine):
    policy = LoopPolicy(max_loops=3)
    stats = summarize_steps(_steps(flat_history, policy, churn_engine(policy)))

    assert stats.total_loops == 3
    assert len(stats.exit_points) == 3
    assert stats.average_loop_duration_days == pytest.approx(1.0)
    assert stats.profit_loss_volatility == pytest.approx(0.0, abs=1e-9)


def test_stats_serialize_to_wire_names(crash_history):
    payload = summarize_steps(_steps(crash_history)).to_dict()

    assert payload["totalLoops"] == 1
    assert payload["finalHealthFactor"] is None
    assert payload["exitPoints"][0]["reason"] == "Position showing loss beyond safety margin"
    assert set(payload) >= {"totalProfit", "maxDrawdown", "averageLoopDuration", "reentryPoints"}


def test_empty_step_list_is_rejected():
    with pytest.raises(ValueError):
        summarize_steps([])
