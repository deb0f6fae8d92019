"""Binance-compatible REST market-data async client.

Fetches klines (candles) and last traded prices.  Public endpoints only;
no authentication and no order placement.
"""

import asyncio
import logging
from typing import Optional

import httpx

from signalforge.config import Config
from signalforge.errors import TransientFetchError
from signalforge.strategy.models import CandleData

logger = logging.getLogger("signalforge")

_RETRYABLE_STATUS_CODES = {500, 502, 503, 504, 429}


class MarketDataClient:
    """Async client for a Binance-style ``/api/v3`` market-data API.

    Args:
        base_url: API root, e.g. ``https://api.binance.com``.
        max_retries: Attempts per request before giving up.
        retry_base_delay: Seconds before the first retry; doubles each attempt.
    """

    def __init__(
        self,
        base_url: str = "https://api.binance.com",
        max_retries: int = 3,
        retry_base_delay: float = 2.0,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._max_retries = max(1, max_retries)
        self._retry_base_delay = retry_base_delay
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: Config) -> "MarketDataClient":
        return cls(
            base_url=config.market_data_url,
            max_retries=config.fetch_retries,
            retry_base_delay=config.fetch_retry_delay,
        )

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _get_with_retry(self, path: str, params: dict) -> httpx.Response:
        """GET with exponential-backoff retry.

        Retries on transport errors, 5xx server errors and rate limits
        (429).  Other HTTP errors are raised immediately.  Raises
        ``TransientFetchError`` once every attempt has failed.
        """
        url = f"{self._base_url}{path}"
        last_exc: Optional[Exception] = None

        for attempt in range(self._max_retries):
            delay = self._retry_base_delay * (2 ** attempt)
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(url, params=params, timeout=self._timeout)

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    logger.warning(
                        "GET %s returned %d — retry %d/%d in %.1fs",
                        url, resp.status_code, attempt + 1, self._max_retries, delay,
                    )
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                else:
                    resp.raise_for_status()
                    return resp

            except httpx.TransportError as exc:
                logger.warning(
                    "GET %s transport error (%s) — retry %d/%d in %.1fs",
                    url, exc, attempt + 1, self._max_retries, delay,
                )
                last_exc = exc

            if attempt + 1 < self._max_retries:
                await asyncio.sleep(delay)

        raise TransientFetchError(
            f"GET {url} failed after {self._max_retries} attempts: {last_exc}"
        )

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        symbol: str,
        interval: str = "15m",
        limit: int = 250,
    ) -> list[CandleData]:
        """Fetch klines for *symbol*.

        Args:
            symbol: e.g. ``"BTCUSDT"``
            interval: e.g. ``"15m"``, ``"1h"``
            limit: number of candles to request

        Returns:
            List of ``CandleData`` ordered oldest-first.
        """
        resp = await self._get_with_retry(
            "/api/v3/klines",
            {"symbol": symbol, "interval": interval, "limit": limit},
        )
        candles = [
            CandleData(
                timestamp=int(k[0]),
                open=float(k[1]),
                high=float(k[2]),
                low=float(k[3]),
                close=float(k[4]),
                volume=float(k[5]),
            )
            for k in resp.json()
        ]
        logger.debug("Fetched %d %s candles for %s", len(candles), interval, symbol)
        return candles

    # ── Ticker ───────────────────────────────────────────────────────────

    async def fetch_price(self, symbol: str) -> float:
        """Return the last traded price of *symbol*."""
        resp = await self._get_with_retry("/api/v3/ticker/price", {"symbol": symbol})
        return float(resp.json()["price"])
