"""Fetch daily ETH, wstETH and gas history and write it as replayable JSON."""

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


logger = logging.getLogger(__name__)


def _parse_date(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch historical market data")
    parser.add_argument("--start", required=True, type=_parse_date, help="Start date, YYYY-MM-DD")
    parser.add_argument("--end", required=True, type=_parse_date, help="End date, YYYY-MM-DD")
    parser.add_argument(
        "--out",
        default="",
        help="Output JSON path (prints to stdout when omitted).",
    )
    return parser.parse_args()


def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    args = parse_args()
    history = PriceHistoryClient(settings=settings).fetch_historical_data(args.start, args.end)
    payload = json.dumps(history.to_dict(), indent=2)
    if args.out:
        Path(args.out).write_text(payload, encoding="utf-8")
        logger.info("Wrote %d daily points to %s", len(history.eth_prices), args.out)
    else:
        print(payload)


if __name__ == "__main__":
    main()
