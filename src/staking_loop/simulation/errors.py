"""Simulation error types."""


class SimulationInputError(ValueError):
    """Raised before a run starts when the inputs cannot be simulated."""


class MissingPriceError(LookupError):
    """Raised when a series has no price for a tick the simulator needs."""

    def __init__(self, series: str, timestamp: int) -> None:
        super().__init__(f"Missing {series} price at timestamp {timestamp}")
        self.series = series
        self.timestamp = timestamp
