"""Strategy data models — typed representations for pipeline values."""

from dataclasses import dataclass, field
from typing import Literal, Optional


Direction = Literal["LONG", "SHORT"]

LONG: Direction = "LONG"
SHORT: Direction = "SHORT"


def opposite(direction: str) -> Direction:
    """Return the opposite trade direction."""
    return SHORT if direction == LONG else LONG


@dataclass(frozen=True)
class CandleData:
    """A single candlestick bar.  ``timestamp`` is epoch milliseconds."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Latest indicator values for one evaluation cycle."""

    close: float
    ema9: float
    ema21: float
    ema50: float
    ema200: float
    rsi: float
    rsi_prev: float
    macd: float
    macd_signal: float
    macd_histogram: float
    macd_prev: float
    macd_histogram_prev: float
    bb_upper: float
    bb_middle: float
    bb_lower: float
    bb_width: float
    atr: float
    adx: float
    plus_di: float
    minus_di: float
    stoch_rsi_k: float
    stoch_rsi_d: float
    stoch_rsi_k_prev: float
    obv: float
    obv_prev: float
    volume_avg: float
    volume_ratio: float

    @property
    def volatility_pct(self) -> float:
        """ATR as a percentage of the close."""
        if self.close <= 0:
            return 0.0
        return self.atr / self.close * 100.0


RegimeKind = Literal["TRENDING", "RANGING", "BREAKOUT", "HIGH_VOLATILITY", "NEUTRAL"]


@dataclass(frozen=True)
class Regime:
    """Market condition for the current cycle."""

    kind: RegimeKind
    direction: Literal["UP", "DOWN", "NEUTRAL"] = "NEUTRAL"

    def __str__(self) -> str:
        if self.direction == "NEUTRAL":
            return self.kind
        return f"{self.kind}/{self.direction}"


@dataclass(frozen=True)
class StrategySignal:
    """Long/short bias scored by one strategy generator."""

    strategy: str
    long_score: float = 0.0
    short_score: float = 0.0
    long_reasons: tuple[str, ...] = ()
    short_reasons: tuple[str, ...] = ()
    # Set when the two sides were won by different generators
    long_strategy: str = ""
    short_strategy: str = ""

    @property
    def reasons(self) -> list[str]:
        """All reasons, long conditions first."""
        return [*self.long_reasons, *self.short_reasons]

    @property
    def direction(self) -> Optional[Direction]:
        """Winning side, or ``None`` on a tie or when nothing scored."""
        if self.long_score > self.short_score and self.long_score > 0:
            return LONG
        if self.short_score > self.long_score and self.short_score > 0:
            return SHORT
        return None

    def score_for(self, direction: str) -> float:
        return self.long_score if direction == LONG else self.short_score

    def reasons_for(self, direction: str) -> list[str]:
        return list(self.long_reasons if direction == LONG else self.short_reasons)

    def strategy_for(self, direction: str) -> str:
        side = self.long_strategy if direction == LONG else self.short_strategy
        return side or self.strategy


@dataclass(frozen=True)
class CandidateSignal:
    """A scored trade setup that passed the risk filter."""

    direction: Direction
    strategy_name: str
    regime: Regime
    entry_price: float
    stop_loss: float
    take_profit: float
    risk_reward: float
    score: float
    atr: float
    reasons: list[str] = field(default_factory=list)
    tp_source: str = "structure"
