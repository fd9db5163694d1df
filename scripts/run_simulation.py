"""Run the staking loop simulation from a JSON history file or fetched data."""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from staking_loop.config import settings
from staking_loop.data import PriceHistoryClient
from staking_loop.models.market import HistoricalData
from staking_loop.simulation import SimulationParams, simulate_strategy, summarize_steps


def _parse_date(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Leveraged staking loop simulation.")
    parser.add_argument(
        "--history",
        default="",
        help="JSON file with ethPrices/wstethPrices/gasPrices (see fetch_history.py).",
    )
    parser.add_argument("--start", type=_parse_date, default=None, help="Start date, YYYY-MM-DD")
    parser.add_argument("--end", type=_parse_date, default=None, help="End date, YYYY-MM-DD")
    parser.add_argument(
        "--initial-capital",
        type=float,
        default=10000.0,
        help="Initial capital in USD.",
    )
    parser.add_argument(
        "--steps",
        action="store_true",
        help="Print every step as JSON instead of the summary.",
    )
    return parser.parse_args()


def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    args = parse_args()
    if args.history:
        payload = json.loads(Path(args.history).read_text(encoding="utf-8"))
        history = HistoricalData.from_mapping(payload)
    elif args.start and args.end:
        history = PriceHistoryClient(settings=settings).fetch_historical_data(args.start, args.end)
    else:
        print("Provide --history or both --start and --end.")
        return

    steps = simulate_strategy(
        SimulationParams(
            initial_capital=args.initial_capital,
            historical_data=history,
            start_date=args.start,
            end_date=args.end,
        ),
        policy=settings.policy(),
    )
    if args.steps:
        print(json.dumps([step.to_dict() for step in steps], indent=2))
        return

    stats = summarize_steps(steps)
    print("Simulation Summary")
    print(f"Days: {len(history.eth_prices)} | Steps: {len(steps)}")
    print(f"Total Profit: {stats.total_profit_pct:.2f}%")
    print(f"Max Drawdown: {stats.max_drawdown_pct:.2f}%")
    print(f"Loops: {stats.total_loops} (successful {stats.successful_loops})")
    print(f"Average Loop Duration: {stats.average_loop_duration_days:.1f} days")
    print(f"Final Health Factor: {stats.final_health_factor:.2f}")
    if stats.exit_points:
        print("Last Exit:", stats.exit_points[-1])


if __name__ == "__main__":
    main()
