"""HTTP API server for the staking loop simulator."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

import uvicorn

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from staking_loop.api import create_app
from staking_loop.config import settings


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Staking loop simulator API server.")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host.")
    parser.add_argument("--port", type=int, default=3001, help="Bind port.")
    return parser.parse_args()


def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    args = parse_args()
    app = create_app(settings)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
