"""HTTP API exports."""

from staking_loop.api.app import ReplayRequest, SimulateRequest, create_app

__all__ = ["ReplayRequest", "SimulateRequest", "create_app"]
