"""Error taxonomy for the signal pipeline.

None of these are fatal: the engine logs them and moves on to the next
instrument.  Only configuration loading raises (``ValueError``) at startup.
"""


class SignalForgeError(Exception):
    """Base class for recoverable pipeline errors."""


class InsufficientDataError(SignalForgeError):
    """Too few candles to compute a full indicator snapshot."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"Need at least {required} candles, got {available}"
        )
        self.required = required
        self.available = available


class TransientFetchError(SignalForgeError):
    """Market data could not be fetched after all retries."""


class AnalyzerUnavailableError(SignalForgeError):
    """A structure analyzer failed; callers substitute an empty result."""


class PersistenceWriteError(SignalForgeError):
    """Writing to the signal store failed."""
