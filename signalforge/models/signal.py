"""Persisted signal entity."""

from dataclasses import dataclass, field
from typing import Literal, Optional


SignalStatus = Literal["OPEN", "TP_HIT", "SL_HIT"]


@dataclass
class Signal:
    """A published trade signal as stored in the signal store.

    ``id`` is assigned by the store on insert.  Exit fields stay ``None``
    while the signal is OPEN.
    """

    timestamp: str
    symbol: str
    direction: str
    regime: str
    strategy: str
    entry: float
    stop: float
    target: float
    size: float
    score: float
    atr: float
    timeframe: str
    reasons: list[str] = field(default_factory=list)
    status: SignalStatus = "OPEN"
    exit_price: Optional[float] = None
    exit_time: Optional[str] = None
    pnl_percent: Optional[float] = None
    pnl_usdt: Optional[float] = None
    id: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.status == "OPEN"

    @property
    def stop_percent(self) -> float:
        return abs(self.entry - self.stop) / self.entry * 100

    @property
    def target_percent(self) -> float:
        return abs(self.target - self.entry) / self.entry * 100
