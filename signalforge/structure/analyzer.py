"""Runs every structure analyzer for one cycle.

An analyzer that raises is logged and replaced by its empty result; the
rest of the report is still produced.
"""

import logging
from typing import Callable, TypeVar

from signalforge.errors import AnalyzerUnavailableError
from signalforge.strategy.models import CandleData
from signalforge.structure.divergence import detect_divergences
from signalforge.structure.fibonacci import analyze_fibonacci
from signalforge.structure.gaps import analyze_gaps
from signalforge.structure.liquidity import analyze_liquidity
from signalforge.structure.models import GapMap, LiquidityMap, OrderBlockMap, StructureReport
from signalforge.structure.order_blocks import analyze_order_blocks


logger = logging.getLogger("signalforge")

T = TypeVar("T")


def _guarded(name: str, fn: Callable[[], T], empty: T) -> T:
    try:
        return fn()
    except Exception as exc:
        err = AnalyzerUnavailableError(f"{name} analyzer failed: {exc}")
        logger.warning("%s (using empty result)", err)
        return empty


def analyze_structure(candles: list[CandleData], current_price: float) -> StructureReport:
    """Liquidity, order blocks, gaps, Fibonacci and divergence for *candles*."""
    report = StructureReport(
        liquidity=_guarded(
            "Liquidity", lambda: analyze_liquidity(candles, current_price), LiquidityMap()
        ),
        order_blocks=_guarded(
            "Order block", lambda: analyze_order_blocks(candles, current_price), OrderBlockMap()
        ),
        gaps=_guarded("Gap", lambda: analyze_gaps(candles, current_price), GapMap()),
        fibonacci=_guarded(
            "Fibonacci", lambda: analyze_fibonacci(candles, current_price), None
        ),
        divergences=_guarded("Divergence", lambda: detect_divergences(candles), []),
    )
    logger.debug(
        "Structure: %d liquidity zones, %d order blocks, %d gaps, fib=%s, %d divergences",
        len(report.liquidity.zones),
        len(report.order_blocks.all),
        len(report.gaps.all),
        report.fibonacci.proximity if report.fibonacci else "none",
        len(report.divergences),
    )
    return report
