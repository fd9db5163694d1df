"""Strategy simulation exports."""

from staking_loop.simulation.errors import MissingPriceError, SimulationInputError
from staking_loop.simulation.ledger import (
    PositionMetrics,
    PositionState,
    TickPrices,
    build_step,
    calculate_position_metrics,
    format_currency,
)
from staking_loop.simulation.simulator import (
    LoopSimulator,
    SimulationParams,
    simulate_strategy,
)
from staking_loop.simulation.stats import StrategyStats, summarize_steps

__all__ = [
    "LoopSimulator",
    "MissingPriceError",
    "PositionMetrics",
    "PositionState",
    "SimulationInputError",
    "SimulationParams",
    "StrategyStats",
    "TickPrices",
    "build_step",
    "calculate_position_metrics",
    "format_currency",
    "simulate_strategy",
    "summarize_steps",
]
