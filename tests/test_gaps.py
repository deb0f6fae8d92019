"""Tests for signalforge.structure.gaps — gaps, FVGs and fill tracking."""

import pytest

from signalforge.strategy.models import CandleData
from signalforge.structure.gaps import FILLED_THRESHOLD, analyze_gaps, find_gaps


_STEP_MS = 900_000


def _candle(i: int, o: float, h: float, low: float, c: float, volume: float = 1000.0) -> CandleData:
    return CandleData(i * _STEP_MS, o, h, low, c, volume)


def _gap_up_candles(extra: list[tuple[float, float, float, float]] = ()) -> list[CandleData]:
    """10 candles around 100, a gap-up candle (low 101.0), a follow-through
    candle, then *extra* ``(open, high, low, close)`` candles."""
    candles = [_candle(i, 100.0, 100.2, 99.8, 100.0) for i in range(10)]
    candles.append(_candle(10, 101.2, 101.8, 101.0, 101.5))
    candles.append(_candle(11, 101.5, 101.9, 101.4, 101.8))
    for k, (o, h, low, c) in enumerate(extra):
        candles.append(_candle(12 + k, o, h, low, c))
    return candles


def _classic_gap(gaps):
    return next(g for g in gaps if g.pattern == "gap" and g.timestamp == 10 * _STEP_MS)


class TestFindGaps:
    def test_detects_gap_and_fvg(self):
        gaps = find_gaps(_gap_up_candles())
        gap = _classic_gap(gaps)
        assert gap.kind == "bullish"
        assert gap.top == 101.0
        assert gap.bottom == 100.2
        assert gap.size_percent == pytest.approx(0.8 / 100.2 * 100)
        assert gap.valid
        assert gap.filled == 0.0
        assert any(g.pattern == "fvg" for g in gaps)

    def test_fvg_bonus(self):
        gaps = find_gaps(_gap_up_candles())
        gap = _classic_gap(gaps)
        fvg = next(g for g in gaps if g.pattern == "fvg" and g.timestamp == gap.timestamp)
        # Same bounds; only the pattern bonus (and displacement volume) differ
        assert (fvg.top, fvg.bottom) == (gap.top, gap.bottom)
        assert fvg.strength == pytest.approx(gap.strength + 5.0)

    def test_partial_fill_stays_valid(self):
        gaps = find_gaps(_gap_up_candles([(101.8, 101.9, 100.8, 101.5)]))
        gap = _classic_gap(gaps)
        assert gap.filled == pytest.approx(0.25)
        assert gap.valid

    def test_filled_gap_is_invalid(self):
        gaps = find_gaps(_gap_up_candles([(101.8, 101.9, 100.21, 101.0)]))
        gap = _classic_gap(gaps)
        assert gap.filled >= FILLED_THRESHOLD
        assert not gap.valid
        assert gap.strength == 0.0

    def test_below_minimum_size(self):
        candles = [_candle(i, 100.0, 100.2, 99.8, 100.0) for i in range(5)]
        candles.append(_candle(5, 100.3, 100.5, 100.25, 100.4))
        assert [g for g in find_gaps(candles) if g.pattern == "gap"] == []

    def test_bearish_gap(self):
        candles = [_candle(i, 100.0, 100.2, 99.8, 100.0) for i in range(10)]
        candles.append(_candle(10, 98.8, 99.0, 98.4, 98.5))
        gaps = find_gaps(candles)
        gap = _classic_gap(gaps)
        assert gap.kind == "bearish"
        assert gap.top == 99.8
        assert gap.bottom == 99.0

    def test_too_few_candles(self):
        assert find_gaps([_candle(0, 1, 1, 1, 1)]) == []


class TestAnalyzeGaps:
    def test_bullish_gaps_below_price(self):
        result = analyze_gaps(_gap_up_candles(), 101.8)
        assert result.bullish
        assert result.bearish == []
        bottoms = [g.bottom for g in result.bullish]
        assert bottoms == sorted(bottoms, reverse=True)
        assert len(result.bullish) <= 3

    def test_filled_gaps_excluded(self):
        result = analyze_gaps(_gap_up_candles([(101.8, 101.9, 100.0, 100.1)]), 100.1)
        assert all(g.valid for g in result.all)
        assert all(g.timestamp != 10 * _STEP_MS or g.pattern != "gap" for g in result.all)
