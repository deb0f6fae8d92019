"""Performance tracker — decides when an open signal hit its target or stop."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from signalforge.models.signal import Signal
from signalforge.rl.rewards import TradeOutcomeForReward


@dataclass(frozen=True)
class SignalOutcome:
    """Closing details for a signal whose target or stop was reached."""

    status: str  # "TP_HIT" | "SL_HIT"
    exit_price: float
    exit_time: str
    pnl_percent: float
    pnl_usdt: float
    hold_minutes: float

    def for_reward(self) -> TradeOutcomeForReward:
        return TradeOutcomeForReward(
            pnl_percent=self.pnl_percent,
            hold_minutes=self.hold_minutes,
            exit_reason=self.status,
        )


def pnl_percent(direction: str, entry: float, price: float) -> float:
    """Signed PnL percent of a position opened at *entry*, marked at *price*."""
    if direction == "LONG":
        return (price - entry) / entry * 100
    return (entry - price) / entry * 100


class PerformanceTracker:
    """Checks open signals against the latest traded price."""

    def unrealized_pnl_percent(self, signal: Signal, price: float) -> float:
        return pnl_percent(signal.direction, signal.entry, price)

    def check(
        self,
        signal: Signal,
        price: float,
        now: Optional[datetime] = None,
    ) -> Optional[SignalOutcome]:
        """Return the outcome if *price* reached the target or stop, else ``None``.

        LONG: price ≥ target → TP_HIT, price ≤ stop → SL_HIT.
        SHORT: price ≤ target → TP_HIT, price ≥ stop → SL_HIT.
        The exit is booked at the level that was hit.
        """
        if not signal.is_open:
            return None

        if signal.direction == "LONG":
            if price >= signal.target:
                status, exit_price = "TP_HIT", signal.target
            elif price <= signal.stop:
                status, exit_price = "SL_HIT", signal.stop
            else:
                return None
        else:
            if price <= signal.target:
                status, exit_price = "TP_HIT", signal.target
            elif price >= signal.stop:
                status, exit_price = "SL_HIT", signal.stop
            else:
                return None

        now = now or datetime.now(timezone.utc)
        opened = datetime.fromisoformat(signal.timestamp)
        if opened.tzinfo is None:
            opened = opened.replace(tzinfo=timezone.utc)
        hold_minutes = max(0.0, (now - opened).total_seconds() / 60)

        pnl = pnl_percent(signal.direction, signal.entry, exit_price)
        return SignalOutcome(
            status=status,
            exit_price=exit_price,
            exit_time=now.isoformat(),
            pnl_percent=pnl,
            pnl_usdt=signal.size * pnl / 100,
            hold_minutes=hold_minutes,
        )
