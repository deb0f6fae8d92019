"""Structure analyzer results — liquidity zones, order blocks, gaps,
Fibonacci levels and divergences.

All of these are recomputed every cycle from the candle window; nothing
here is persisted.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional


# ── Liquidity ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LiquidityZone:
    """Clustered swing points (or a round number) where stops tend to sit."""

    price: float
    side: Literal["above", "below", "at"]
    touch_count: int
    is_round_number: bool
    tested: bool
    strength: float


@dataclass(frozen=True)
class LiquidityMap:
    above: list[LiquidityZone] = field(default_factory=list)  # closest first
    below: list[LiquidityZone] = field(default_factory=list)  # closest first
    nearest: Optional[LiquidityZone] = None
    strongest: Optional[LiquidityZone] = None
    zones: list[LiquidityZone] = field(default_factory=list)  # strongest first


# ── Order blocks ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OrderBlock:
    """Last opposite-coloured candle before a strong move."""

    kind: Literal["bullish", "bearish"]
    top: float
    bottom: float
    high: float
    low: float
    move_size: float  # fraction, 0.025 = 2.5 %
    timestamp: int
    test_count: int
    tested: bool
    strength: float
    valid: bool

    @property
    def midpoint(self) -> float:
        return (self.top + self.bottom) / 2


@dataclass(frozen=True)
class OrderBlockMap:
    bullish: list[OrderBlock] = field(default_factory=list)  # below price, closest first
    bearish: list[OrderBlock] = field(default_factory=list)  # above price, closest first
    nearest: Optional[OrderBlock] = None
    all: list[OrderBlock] = field(default_factory=list)  # valid blocks, strongest first

    def nearest_of(self, kind: str) -> Optional[OrderBlock]:
        """Closest valid block of one kind, or ``None``."""
        blocks = self.bullish if kind == "bullish" else self.bearish
        return blocks[0] if blocks else None


# ── Gaps ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Gap:
    """Price imbalance: a 2-candle gap or a 3-candle fair-value gap."""

    kind: Literal["bullish", "bearish"]
    pattern: Literal["gap", "fvg"]
    top: float
    bottom: float
    size: float
    size_percent: float
    timestamp: int
    filled: float  # max historical fill, 0..1
    strength: float
    valid: bool

    @property
    def midpoint(self) -> float:
        return (self.top + self.bottom) / 2


@dataclass(frozen=True)
class GapMap:
    bullish: list[Gap] = field(default_factory=list)  # below price, closest first
    bearish: list[Gap] = field(default_factory=list)  # above price, closest first
    nearest: Optional[Gap] = None
    all: list[Gap] = field(default_factory=list)  # valid gaps, strongest first


# ── Fibonacci ────────────────────────────────────────────────────────────


FIB_RATIOS: tuple[float, ...] = (0.236, 0.382, 0.5, 0.618, 0.786)
ENTRY_RATIOS: tuple[float, ...] = (0.382, 0.5, 0.618)


@dataclass(frozen=True)
class FibonacciLevels:
    trend: Literal["UP", "DOWN"]
    swing_high: float
    swing_low: float
    levels: dict[float, float]  # ratio -> price


@dataclass(frozen=True)
class FibonacciEntry:
    """Nearest entry-zone retracement level and how close price is to it."""

    levels: FibonacciLevels
    ratio: float
    price: float
    distance_percent: float
    proximity: Literal["SPOT_ON", "NEAR", "FAR"]


# ── Divergence ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Divergence:
    """Regular price/RSI divergence between the two most recent pivots."""

    direction: Literal["bullish", "bearish"]
    strength: float
    pivot_indices: tuple[int, int]  # (previous, latest) candle indices


# ── Aggregate ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StructureReport:
    """Output of every analyzer for one cycle."""

    liquidity: LiquidityMap = field(default_factory=LiquidityMap)
    order_blocks: OrderBlockMap = field(default_factory=OrderBlockMap)
    gaps: GapMap = field(default_factory=GapMap)
    fibonacci: Optional[FibonacciEntry] = None
    divergences: list[Divergence] = field(default_factory=list)
