"""Strategy registry — maps strategy names and regimes to generators.

TRENDING runs Momentum, RANGING runs MeanReversion, BREAKOUT runs Breakout.
NEUTRAL and HIGH_VOLATILITY run all three and keep the best long score and,
independently, the best short score; on equal scores the generator listed
later in ``STRATEGY_REGISTRY`` wins.
"""

from typing import Optional

from signalforge.strategy.base import StrategyProtocol
from signalforge.strategy.breakout import BreakoutStrategy
from signalforge.strategy.mean_reversion import MeanReversionStrategy
from signalforge.strategy.models import IndicatorSnapshot, Regime, StrategySignal
from signalforge.strategy.momentum import MomentumStrategy


STRATEGY_REGISTRY: dict[str, type] = {
    "Momentum": MomentumStrategy,
    "MeanReversion": MeanReversionStrategy,
    "Breakout": BreakoutStrategy,
}

REGIME_STRATEGY: dict[str, str] = {
    "TRENDING": "Momentum",
    "RANGING": "MeanReversion",
    "BREAKOUT": "Breakout",
}


def get_strategy(name: str) -> StrategyProtocol:
    """Look up and instantiate a strategy by registry key.

    Raises ``KeyError`` if the strategy name is not registered.
    """
    if name not in STRATEGY_REGISTRY:
        raise KeyError(
            f"Unknown strategy '{name}'. "
            f"Available: {', '.join(STRATEGY_REGISTRY.keys())}"
        )
    return STRATEGY_REGISTRY[name]()


def _best(signals: list[StrategySignal], side: str) -> StrategySignal:
    best = signals[0]
    for sig in signals[1:]:
        if sig.score_for(side) >= best.score_for(side):
            best = sig
    return best


def select_signal(
    regime: Regime,
    ind: IndicatorSnapshot,
    strategies: Optional[dict[str, StrategyProtocol]] = None,
) -> StrategySignal:
    """Run the generator(s) the regime calls for and return one signal.

    *strategies* maps registry names to instances (e.g. with tuned weights);
    missing names are instantiated from ``STRATEGY_REGISTRY``.
    """
    pool = strategies or {}

    def _instance(name: str) -> StrategyProtocol:
        return pool[name] if name in pool else get_strategy(name)

    name = REGIME_STRATEGY.get(regime.kind)
    if name is not None:
        return _instance(name).compute(ind)

    results = [_instance(n).compute(ind) for n in STRATEGY_REGISTRY]
    best_long = _best(results, "LONG")
    best_short = _best(results, "SHORT")

    # Headline name follows whichever side is ahead
    headline = best_short if best_short.short_score > best_long.long_score else best_long
    return StrategySignal(
        strategy=headline.strategy,
        long_score=best_long.long_score,
        short_score=best_short.short_score,
        long_reasons=best_long.long_reasons,
        short_reasons=best_short.short_reasons,
        long_strategy=best_long.strategy,
        short_strategy=best_short.strategy,
    )
