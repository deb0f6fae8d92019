"""Strategy protocol and score accumulator.

Defines the interface that all strategy generators must implement.
"""

from __future__ import annotations

from typing import Mapping, Optional, Protocol, runtime_checkable

from signalforge.strategy.models import IndicatorSnapshot, LONG, StrategySignal


@runtime_checkable
class StrategyProtocol(Protocol):
    """Interface that all strategy generators must satisfy."""

    name: str

    def compute(self, indicators: IndicatorSnapshot) -> StrategySignal:
        """Score long/short bias for the given snapshot."""
        ...


def merge_weights(
    defaults: Mapping[str, float], overrides: Optional[Mapping[str, float]]
) -> dict[str, float]:
    """Overlay *overrides* on a default weight table.

    Raises ``KeyError`` for a condition name the table does not define.
    """
    merged = dict(defaults)
    for key, value in (overrides or {}).items():
        if key not in merged:
            raise KeyError(
                f"Unknown condition '{key}'. "
                f"Available: {', '.join(merged.keys())}"
            )
        merged[key] = float(value)
    return merged


class ScoreTally:
    """Accumulates points and reasons per side for one strategy run."""

    def __init__(self, strategy: str) -> None:
        self.strategy = strategy
        self._long = 0.0
        self._short = 0.0
        self._long_reasons: list[str] = []
        self._short_reasons: list[str] = []

    def award(self, side: str, points: float, reason: str) -> None:
        if points <= 0:
            return
        if side == LONG:
            self._long += points
            self._long_reasons.append(reason)
        else:
            self._short += points
            self._short_reasons.append(reason)

    def result(self) -> StrategySignal:
        return StrategySignal(
            strategy=self.strategy,
            long_score=self._long,
            short_score=self._short,
            long_reasons=tuple(self._long_reasons),
            short_reasons=tuple(self._short_reasons),
        )
