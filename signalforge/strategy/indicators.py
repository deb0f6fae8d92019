"""Technical indicators — EMA, RSI, MACD, Bollinger, ATR, ADX/DMI, Stochastic RSI,
OBV, SMA.  Pure functions, no I/O.

Every series function returns a list aligned to its input: the same length,
with ``float('nan')`` in the warm-up slots.  Read values through
``value_at()`` rather than raw negative indexing so that series with
different warm-up lengths always resolve against the same candle.
"""

import math

from signalforge.strategy.models import CandleData


NAN = float("nan")


def value_at(series: list[float], offset: int = 0, default: float = NAN) -> float:
    """Return the value *offset* candles before the latest one.

    ``offset=0`` is the latest candle, ``offset=1`` the one before it.
    Falls back to *default* when the slot is out of range or still in the
    indicator's warm-up (``nan``).
    """
    idx = len(series) - 1 - offset
    if idx < 0 or idx >= len(series):
        return default
    value = series[idx]
    if value is None or math.isnan(value):
        return default
    return value


def _first_valid(values: list[float]) -> int:
    for i, v in enumerate(values):
        if not math.isnan(v):
            return i
    return len(values)


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(values: list[float], period: int) -> list[float]:
    """Simple moving average over *period* values.

    Leading ``nan`` entries (from an upstream indicator's warm-up) are
    skipped; a window containing any ``nan`` yields ``nan``.
    """
    n = len(values)
    out: list[float] = [NAN] * n
    start = _first_valid(values)
    for i in range(start + period - 1, n):
        window = values[i - period + 1 : i + 1]
        if any(math.isnan(v) for v in window):
            continue
        out[i] = sum(window) / period
    return out


def calculate_ema_values(values: list[float], period: int) -> list[float]:
    """Exponential moving average of an arbitrary value series.

    Uses the standard EMA formula:
        ``EMA_today = value × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (period + 1)``.  The first EMA value is seeded with the
    SMA of the first *period* valid values.

    Raises ``ValueError`` if fewer than *period* valid values are provided.
    """
    n = len(values)
    start = _first_valid(values)
    if n - start < period:
        raise ValueError(
            f"Need at least {period} values for EMA({period}), "
            f"got {n - start}"
        )

    k = 2.0 / (period + 1)
    ema: list[float] = [NAN] * n
    seed_idx = start + period - 1
    ema[seed_idx] = sum(values[start : seed_idx + 1]) / period

    for i in range(seed_idx + 1, n):
        ema[i] = values[i] * k + ema[i - 1] * (1 - k)

    return ema


def calculate_ema(candles: list[CandleData], period: int) -> list[float]:
    """EMA of candle closes.  See ``calculate_ema_values``."""
    if len(candles) < period:
        raise ValueError(
            f"Need at least {period} candles for EMA({period}), "
            f"got {len(candles)}"
        )
    return calculate_ema_values([c.close for c in candles], period)


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi_values(values: list[float], period: int = 14) -> list[float]:
    """Wilder's Relative Strength Index of a value series.

    Algorithm (Wilder-smoothed):
        1. delta = value[i] - value[i-1]
        2. Separate gains (positive) and losses (|negative|).
        3. Seed average gain/loss = SMA of first *period* deltas.
        4. Subsequent: avg = (prev_avg × (period-1) + current) / period
        5. RSI = 100 - 100 / (1 + avg_gain / avg_loss)

    Requires at least ``period + 1`` values.
    """
    if len(values) < period + 1:
        raise ValueError(
            f"Need at least {period + 1} values for RSI({period}), "
            f"got {len(values)}"
        )

    deltas = [values[i] - values[i - 1] for i in range(1, len(values))]
    gains = [max(d, 0.0) for d in deltas]
    losses = [abs(min(d, 0.0)) for d in deltas]

    rsi: list[float] = [NAN] * len(values)

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    def _rsi_from_avgs(ag: float, al: float) -> float:
        if al == 0:
            return 100.0
        rs = ag / al
        return 100.0 - 100.0 / (1.0 + rs)

    rsi[period] = _rsi_from_avgs(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        # Index in rsi is i+1 because deltas are offset by 1
        rsi[i + 1] = _rsi_from_avgs(avg_gain, avg_loss)

    return rsi


def calculate_rsi(candles: list[CandleData], period: int = 14) -> list[float]:
    """RSI of candle closes.  See ``calculate_rsi_values``."""
    return calculate_rsi_values([c.close for c in candles], period)


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(
    candles: list[CandleData],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> tuple[list[float], list[float], list[float]]:
    """Calculate MACD line, signal line and histogram.

    MACD      = EMA(close, fast) − EMA(close, slow)
    Signal    = EMA(MACD, signal)
    Histogram = MACD − Signal

    Requires at least ``slow + signal - 1`` candles.
    """
    min_candles = slow + signal - 1
    if len(candles) < min_candles:
        raise ValueError(
            f"Need at least {min_candles} candles for MACD({fast},{slow},{signal}), "
            f"got {len(candles)}"
        )

    closes = [c.close for c in candles]
    ema_fast = calculate_ema_values(closes, fast)
    ema_slow = calculate_ema_values(closes, slow)

    macd_line = [
        f - s if not (math.isnan(f) or math.isnan(s)) else NAN
        for f, s in zip(ema_fast, ema_slow)
    ]
    signal_line = calculate_ema_values(macd_line, signal)
    histogram = [
        m - s if not (math.isnan(m) or math.isnan(s)) else NAN
        for m, s in zip(macd_line, signal_line)
    ]
    return macd_line, signal_line, histogram


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    candles: list[CandleData],
    period: int = 20,
    std_dev: float = 2.0,
) -> tuple[list[float], list[float], list[float]]:
    """Calculate Bollinger Bands.

    Middle = SMA(close, *period*)
    Upper  = middle + *std_dev* × σ
    Lower  = middle − *std_dev* × σ

    Returns ``(upper, middle, lower)``.
    """
    if len(candles) < period:
        raise ValueError(
            f"Need at least {period} candles for Bollinger({period}), "
            f"got {len(candles)}"
        )

    closes = [c.close for c in candles]
    n = len(closes)

    upper: list[float] = [NAN] * n
    middle: list[float] = [NAN] * n
    lower: list[float] = [NAN] * n

    for i in range(period - 1, n):
        window = closes[i - period + 1 : i + 1]
        sma = sum(window) / period
        variance = sum((x - sma) ** 2 for x in window) / period
        sigma = math.sqrt(variance)

        middle[i] = sma
        upper[i] = sma + std_dev * sigma
        lower[i] = sma - std_dev * sigma

    return upper, middle, lower


# ── ATR ──────────────────────────────────────────────────────────────────


def _true_ranges(candles: list[CandleData]) -> list[float]:
    """TR per bar; index 0 has no previous close and is 0.0."""
    tr: list[float] = [0.0]
    for i in range(1, len(candles)):
        high = candles[i].high
        low = candles[i].low
        prev_close = candles[i - 1].close
        tr.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))
    return tr


def calculate_atr(candles: list[CandleData], period: int = 14) -> list[float]:
    """Calculate the Average True Range series (Wilder smoothing).

    Uses the standard True Range definition:
        TR = max(high - low, |high - prev_close|, |low - prev_close|)

    The first ATR is the simple average of the first *period* true ranges;
    subsequent values are ``(prev × (period-1) + TR) / period``.

    Requires at least ``period + 1`` candles.
    """
    if len(candles) < period + 1:
        raise ValueError(
            f"Need at least {period + 1} candles for ATR({period}), "
            f"got {len(candles)}"
        )

    tr = _true_ranges(candles)
    atr: list[float] = [NAN] * len(candles)
    atr[period] = sum(tr[1 : period + 1]) / period
    for i in range(period + 1, len(candles)):
        atr[i] = (atr[i - 1] * (period - 1) + tr[i]) / period
    return atr


# ── ADX / DMI ────────────────────────────────────────────────────────────


def calculate_adx(
    candles: list[CandleData], period: int = 14
) -> tuple[list[float], list[float], list[float]]:
    """Calculate the Average Directional Index with its directional lines.

    Algorithm:
        1. +DM / -DM directional movement per bar.
        2. Wilder-smooth +DM, -DM, and TR over *period*.
        3. +DI = 100 × smoothed_+DM / smoothed_TR
        4. -DI = 100 × smoothed_-DM / smoothed_TR
        5. DX = 100 × |+DI − −DI| / (+DI + −DI)
        6. ADX = Wilder-smoothed DX over *period*.

    Requires at least ``2 × period + 1`` candles.

    Returns ``(adx, plus_di, minus_di)``.
    """
    min_candles = 2 * period + 1
    if len(candles) < min_candles:
        raise ValueError(
            f"Need at least {min_candles} candles for ADX({period}), "
            f"got {len(candles)}"
        )

    n = len(candles)
    tr_raw = _true_ranges(candles)
    plus_dm_raw: list[float] = [0.0]
    minus_dm_raw: list[float] = [0.0]

    for i in range(1, n):
        up_move = candles[i].high - candles[i - 1].high
        down_move = candles[i - 1].low - candles[i].low
        plus_dm_raw.append(up_move if (up_move > down_move and up_move > 0) else 0.0)
        minus_dm_raw.append(down_move if (down_move > up_move and down_move > 0) else 0.0)

    adx: list[float] = [NAN] * n
    plus_di: list[float] = [NAN] * n
    minus_di: list[float] = [NAN] * n
    dx: list[float] = [NAN] * n

    def _fill(i: int, s_pdm: float, s_mdm: float, s_tr: float) -> None:
        pdi = 100.0 * s_pdm / s_tr if s_tr else 0.0
        mdi = 100.0 * s_mdm / s_tr if s_tr else 0.0
        plus_di[i] = pdi
        minus_di[i] = mdi
        di_sum = pdi + mdi
        dx[i] = 100.0 * abs(pdi - mdi) / di_sum if di_sum else 0.0

    # Seed with the sum of the first *period* bars (Wilder)
    s_pdm = sum(plus_dm_raw[1 : period + 1])
    s_mdm = sum(minus_dm_raw[1 : period + 1])
    s_tr = sum(tr_raw[1 : period + 1])
    _fill(period, s_pdm, s_mdm, s_tr)

    for i in range(period + 1, n):
        s_pdm = s_pdm - s_pdm / period + plus_dm_raw[i]
        s_mdm = s_mdm - s_mdm / period + minus_dm_raw[i]
        s_tr = s_tr - s_tr / period + tr_raw[i]
        _fill(i, s_pdm, s_mdm, s_tr)

    # ADX seed: mean of the first *period* DX values
    seed_idx = 2 * period - 1
    adx[seed_idx] = sum(dx[period : seed_idx + 1]) / period
    for i in range(seed_idx + 1, n):
        adx[i] = (adx[i - 1] * (period - 1) + dx[i]) / period

    return adx, plus_di, minus_di


# ── Stochastic RSI ───────────────────────────────────────────────────────


def calculate_stoch_rsi(
    candles: list[CandleData],
    rsi_period: int = 14,
    stoch_period: int = 14,
    k_period: int = 3,
    d_period: int = 3,
) -> tuple[list[float], list[float]]:
    """Calculate Stochastic RSI %K and %D (0-100 scale).

    StochRSI = (RSI − min(RSI, n)) / (max(RSI, n) − min(RSI, n)) × 100
    %K = SMA(StochRSI, *k_period*), %D = SMA(%K, *d_period*).

    A flat RSI window (max == min) yields the neutral value 50.
    """
    rsi = calculate_rsi(candles, rsi_period)
    n = len(rsi)
    stoch: list[float] = [NAN] * n
    start = _first_valid(rsi)

    for i in range(start + stoch_period - 1, n):
        window = rsi[i - stoch_period + 1 : i + 1]
        lo = min(window)
        hi = max(window)
        if hi == lo:
            stoch[i] = 50.0
        else:
            stoch[i] = (rsi[i] - lo) / (hi - lo) * 100.0

    k = calculate_sma(stoch, k_period)
    d = calculate_sma(k, d_period)
    return k, d


# ── Volume ───────────────────────────────────────────────────────────────


def calculate_obv(candles: list[CandleData]) -> list[float]:
    """On-Balance Volume, starting from 0 at the first candle."""
    if not candles:
        return []
    obv: list[float] = [0.0]
    for i in range(1, len(candles)):
        prev = obv[-1]
        if candles[i].close > candles[i - 1].close:
            obv.append(prev + candles[i].volume)
        elif candles[i].close < candles[i - 1].close:
            obv.append(prev - candles[i].volume)
        else:
            obv.append(prev)
    return obv
