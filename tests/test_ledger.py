import math

import pytest

from conftest import BASE_TS
from staking_loop.models.market import GasConditions, MarketConditions, PriceTrend
from staking_loop.models.step import StepType
from staking_loop.risk.manager import RiskEngine
from staking_loop.simulation.ledger import (
    COMPLETE_TASK,
    PositionState,
    TickPrices,
    build_step,
    calculate_position_metrics,
    format_currency,
    parse_currency,
)


CONDITIONS = MarketConditions(
    is_favorable=True,
    volatility=0.01,
    price_trend=PriceTrend.STABLE,
    profit_potential=3.5,
    gas_conditions=GasConditions.LOW,
)


def test_format_currency():
    assert format_currency(1234.567) == "$1,234.57"
    assert format_currency(0) == "$0.00"
    assert format_currency(-1234.5) == "-$1,234.50"


def test_parse_currency_reads_formatted_values():
    assert parse_currency("$10,526.83") == pytest.approx(10526.83)
    assert parse_currency("-$512.20") == pytest.approx(-512.2)


def test_position_metrics_net_out_debt():
    metrics = calculate_position_metrics(2.75, 4.878, 2.75, 2000.0, 2050.0, 10000.0)

    assert metrics.total_value_usd == pytest.approx(4.878 * 2050)
    assert metrics.borrow_value_usd == pytest.approx(5500.0)
    assert metrics.profit_loss_pct == pytest.approx((4.878 * 2050 - 10000) / 100)


def test_build_step_details_and_health():
    state = PositionState(eth_balance=2.75, wsteth_balance=4.878, borrowed_eth=2.75, loop_count=1)
    prices = TickPrices(timestamp=BASE_TS, eth=2000.0, wsteth=2050.0, gas=30.0)

    step = build_step(
        RiskEngine(),
        state,
        prices,
        step_type=StepType.BORROW,
        task="Borrow ETH Against Collateral - Loop 1",
        initial_capital=10000.0,
        conditions=CONDITIONS,
        reason="Borrowed 2.7500 ETH optimally",
    )

    assert step.loop_no == 1
    assert step.date == "2024-01-01"
    assert step.time == "00:00:00"
    assert step.details.borrowed_eth == "2.7500"
    assert step.details.current_capital == "$10,000.00"
    assert step.health_factor == pytest.approx(4.878 * 2050 * 0.825 / 5500)
    assert step.risk_metrics.safety_margin == pytest.approx(step.profit_loss)
    assert step.to_dict()["reason"] == "Borrowed 2.7500 ETH optimally"


def test_unleveraged_step_has_infinite_health():
    state = PositionState(eth_balance=5.0)
    prices = TickPrices(timestamp=BASE_TS, eth=2000.0, wsteth=2050.0, gas=30.0)

    step = build_step(
        RiskEngine(),
        state,
        prices,
        step_type=StepType.ENTER,
        task="Initialize Strategy",
        initial_capital=10000.0,
        conditions=CONDITIONS,
        loop_no=0,
    )
    payload = step.to_dict()

    assert math.isinf(step.health_factor)
    assert payload["healthFactor"] is None
    assert "reason" not in payload
    assert "priceCarriedForward" not in payload


def test_closing_step_reports_parsed_result():
    state = PositionState(eth_balance=5.0, last_exit_profit_pct=-5.12)
    prices = TickPrices(timestamp=BASE_TS, eth=1850.0, wsteth=1890.0, gas=75.0)

    step = build_step(
        RiskEngine(),
        state,
        prices,
        step_type=StepType.EXIT,
        task=COMPLETE_TASK,
        initial_capital=10000.0,
        conditions=CONDITIONS,
        reason="Final strategy result: -5.12% profit/loss | Final Total Value: $9,250.00",
    )

    assert step.profit_loss == pytest.approx(-5.12)
    assert step.details.total_value_usd == "$9,250.00"


def test_carried_forward_flag_is_serialized():
    state = PositionState(eth_balance=5.0)
    prices = TickPrices(timestamp=BASE_TS, eth=2000.0, wsteth=2050.0, gas=30.0, carried_forward=True)

    step = build_step(
        RiskEngine(),
        state,
        prices,
        step_type=StepType.SWAP,
        task="Swap ETH to wstETH - Loop 1",
        initial_capital=10000.0,
        conditions=CONDITIONS,
    )

    assert step.to_dict()["priceCarriedForward"] is True
