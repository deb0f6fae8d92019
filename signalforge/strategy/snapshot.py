"""Indicator engine — one ``IndicatorSnapshot`` per candle window.

Fixed periods: EMA 9/21/50/200, RSI 14, MACD 12/26/9, Bollinger 20×2σ,
ATR 14, ADX 14, Stochastic RSI 14/14/3/3, OBV, volume SMA 20.

When an indicator has not warmed up on the latest candle (or on the one
before it for the ``*_prev`` fields) the value falls back to a neutral
constant instead of failing:

    ADX / +DI / -DI      20
    Bollinger bands      close × 1.02 / close / close × 0.98
    Bollinger width      0.04
    Stochastic RSI K/D   50
    MACD line/signal/hist 0
    RSI                  50
    EMAs                 close
    ATR                  1% of close

``*_prev`` fields fall back to the latest value of the same indicator.
"""

from signalforge.errors import InsufficientDataError
from signalforge.strategy.indicators import (
    calculate_adx,
    calculate_atr,
    calculate_bollinger,
    calculate_ema,
    calculate_macd,
    calculate_obv,
    calculate_rsi,
    calculate_sma,
    calculate_stoch_rsi,
    value_at,
)
from signalforge.strategy.models import CandleData, IndicatorSnapshot


MIN_CANDLES = 200

NEUTRAL_ADX = 20.0
NEUTRAL_DI = 20.0
NEUTRAL_BB_WIDTH = 0.04
NEUTRAL_BB_OFFSET = 0.02
NEUTRAL_STOCH = 50.0
NEUTRAL_RSI = 50.0
NEUTRAL_ATR_PCT = 0.01


def compute_snapshot(candles: list[CandleData]) -> IndicatorSnapshot:
    """Compute every indicator over *candles* (oldest-first).

    Raises ``InsufficientDataError`` when fewer than 200 candles are given;
    there is no partial snapshot.
    """
    if len(candles) < MIN_CANDLES:
        raise InsufficientDataError(MIN_CANDLES, len(candles))

    close = candles[-1].close

    ema9 = calculate_ema(candles, 9)
    ema21 = calculate_ema(candles, 21)
    ema50 = calculate_ema(candles, 50)
    ema200 = calculate_ema(candles, 200)
    rsi = calculate_rsi(candles, 14)
    macd, macd_signal, macd_hist = calculate_macd(candles, 12, 26, 9)
    bb_upper, bb_middle, bb_lower = calculate_bollinger(candles, 20, 2.0)
    atr = calculate_atr(candles, 14)
    adx, plus_di, minus_di = calculate_adx(candles, 14)
    stoch_k, stoch_d = calculate_stoch_rsi(candles, 14, 14, 3, 3)
    obv = calculate_obv(candles)
    volume_sma = calculate_sma([c.volume for c in candles], 20)

    rsi_now = value_at(rsi, 0, NEUTRAL_RSI)
    macd_now = value_at(macd, 0, 0.0)
    hist_now = value_at(macd_hist, 0, 0.0)
    stoch_k_now = value_at(stoch_k, 0, NEUTRAL_STOCH)
    obv_now = value_at(obv, 0, 0.0)

    upper = value_at(bb_upper, 0, close * (1 + NEUTRAL_BB_OFFSET))
    middle = value_at(bb_middle, 0, close)
    lower = value_at(bb_lower, 0, close * (1 - NEUTRAL_BB_OFFSET))
    middle_raw = value_at(bb_middle, 0, 0.0)
    bb_width = (upper - lower) / middle_raw if middle_raw else NEUTRAL_BB_WIDTH

    volume_avg = value_at(volume_sma, 0, 0.0)
    volume_ratio = candles[-1].volume / volume_avg if volume_avg > 0 else 1.0

    return IndicatorSnapshot(
        close=close,
        ema9=value_at(ema9, 0, close),
        ema21=value_at(ema21, 0, close),
        ema50=value_at(ema50, 0, close),
        ema200=value_at(ema200, 0, close),
        rsi=rsi_now,
        rsi_prev=value_at(rsi, 1, rsi_now),
        macd=macd_now,
        macd_signal=value_at(macd_signal, 0, 0.0),
        macd_histogram=hist_now,
        macd_prev=value_at(macd, 1, macd_now),
        macd_histogram_prev=value_at(macd_hist, 1, hist_now),
        bb_upper=upper,
        bb_middle=middle,
        bb_lower=lower,
        bb_width=bb_width,
        atr=value_at(atr, 0, close * NEUTRAL_ATR_PCT),
        adx=value_at(adx, 0, NEUTRAL_ADX),
        plus_di=value_at(plus_di, 0, NEUTRAL_DI),
        minus_di=value_at(minus_di, 0, NEUTRAL_DI),
        stoch_rsi_k=stoch_k_now,
        stoch_rsi_d=value_at(stoch_d, 0, NEUTRAL_STOCH),
        stoch_rsi_k_prev=value_at(stoch_k, 1, stoch_k_now),
        obv=obv_now,
        obv_prev=value_at(obv, 1, obv_now),
        volume_avg=volume_avg,
        volume_ratio=volume_ratio,
    )
