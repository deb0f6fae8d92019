"""Signal engine — the scan loop.

Ties together the market client, the signal pipeline, the performance
tracker, the decision gate, the signal repo and the notifier.  Symbols are
processed sequentially with a short delay between them; every external
call failure is contained to its symbol.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from signalforge.api.routers import update_engine_status, update_strategy_insight
from signalforge.config import Config
from signalforge.errors import (
    InsufficientDataError,
    PersistenceWriteError,
    TransientFetchError,
)
from signalforge.market.client import MarketDataClient
from signalforge.models.signal import Signal
from signalforge.notify.formatting import format_outcome_message, format_signal_message
from signalforge.notify.telegram import TelegramNotifier
from signalforge.pipeline import SignalPipeline
from signalforge.repos.signal_repo import SignalRepo
from signalforge.rl.gate import DecisionGate
from signalforge.strategy.models import CandleData
from signalforge.tracker import PerformanceTracker

logger = logging.getLogger("signalforge")


class SignalEngine:
    """Scans every configured symbol once per cycle.

    A symbol with an open signal is only tracked (target / stop check);
    new signals are generated for a symbol only when nothing is open.

    Args:
        config: Application configuration.
        client: Market data client.
        repo: Signal repository.
        pipeline: Rule pipeline, usually wired to ``gate``.
        notifier: Telegram notifier (may be disabled).
        tracker: Performance tracker.
        gate: Decision gate fed with outcomes; defaults to ``pipeline.gate``.
        agent_model_path: Where to save agent weights after each cycle.
    """

    def __init__(
        self,
        config: Config,
        client: MarketDataClient,
        repo: SignalRepo,
        pipeline: SignalPipeline,
        notifier: Optional[TelegramNotifier] = None,
        tracker: Optional[PerformanceTracker] = None,
        gate: Optional[DecisionGate] = None,
        agent_model_path: Optional[str] = None,
    ) -> None:
        self._config = config
        self._client = client
        self._repo = repo
        self._pipeline = pipeline
        self._notifier = notifier
        self._tracker = tracker or PerformanceTracker()
        self._gate = gate if gate is not None else pipeline.gate
        self._agent_model_path = agent_model_path
        self._running = True
        self._cycle_count = 0

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    def stop(self) -> None:
        """Signal the engine to stop after the current cycle."""
        self._running = False

    # ── Polling loop ─────────────────────────────────────────────────────

    async def run(
        self,
        poll_interval: Optional[float] = None,
        max_cycles: int = 0,
    ) -> list[list[dict]]:
        """Run scan cycles until stopped.

        Args:
            poll_interval: Seconds between cycles.  Defaults to the
                configured check interval.
            max_cycles: Stop after this many cycles (0 = unlimited).

        Returns:
            The per-symbol results of every cycle.
        """
        if poll_interval is None:
            poll_interval = self._config.poll_interval_seconds

        update_engine_status(running=True)
        history: list[list[dict]] = []
        cycle = 0

        while self._running:
            cycle += 1
            try:
                results = await self.run_once()
                history.append(results)
                signals = sum(1 for r in results if r["action"] == "signal")
                logger.info(
                    "Cycle %d: %d symbols, %d new signals", cycle, len(results), signals
                )
            except Exception as exc:
                logger.exception("Cycle %d failed: %s", cycle, exc)

            if max_cycles > 0 and cycle >= max_cycles:
                break

            # Interruptible sleep, checks _running every second
            remaining = poll_interval
            while remaining > 0 and self._running:
                step = min(1.0, remaining)
                await asyncio.sleep(step)
                remaining -= step

        update_engine_status(running=False)
        return history

    # ── Single cycle ─────────────────────────────────────────────────────

    async def run_once(self) -> list[dict]:
        """Process every configured symbol once.

        Returns one dict per symbol:

        - ``{"symbol": ..., "action": "skipped", "reason": "..."}``
        - ``{"symbol": ..., "action": "tracking" | "closed", ...}``
        - ``{"symbol": ..., "action": "signal" | "rejected" | "held", ...}``
        - ``{"symbol": ..., "action": "error", "reason": "..."}``
        """
        results: list[dict] = []
        symbols = self._config.symbols

        for i, symbol in enumerate(symbols):
            try:
                result = await self._process_symbol(symbol)
            except Exception as exc:
                logger.exception("%s: cycle error: %s", symbol, exc)
                result = {"action": "error", "reason": str(exc)}
            results.append({"symbol": symbol, **result})

            if i + 1 < len(symbols) and self._config.symbol_delay_seconds > 0:
                await asyncio.sleep(self._config.symbol_delay_seconds)

        self._cycle_count += 1
        self._save_agent()
        update_engine_status(
            cycle_count=self._cycle_count,
            last_cycle_at=datetime.now(timezone.utc).isoformat(),
            agent_epsilon=self._agent_epsilon(),
        )
        return results

    async def _process_symbol(self, symbol: str) -> dict:
        try:
            candles = await self._client.fetch_candles(
                symbol, self._config.timeframe, self._config.candle_limit
            )
        except TransientFetchError as exc:
            logger.warning("%s: market data unavailable, skipping: %s", symbol, exc)
            return {"action": "skipped", "reason": "market_data_unavailable"}

        if not candles:
            return {"action": "skipped", "reason": "no_candles"}

        open_signals = self._repo.get_open_signals(symbol)
        if open_signals:
            return await self._track(symbol, open_signals[0], candles)

        evaluation = self._pipeline.evaluate(symbol, candles)
        update_strategy_insight(symbol, {"action": evaluation.action, **evaluation.insight})

        if evaluation.action != "signal":
            return {"action": evaluation.action, "reason": evaluation.reason}

        signal = evaluation.signal
        try:
            self._repo.insert_signal(signal)
        except PersistenceWriteError as exc:
            logger.error("%s: failed to store signal: %s", symbol, exc)
            # Nothing will be tracked, so the gate decision can never resolve
            if self._gate is not None:
                self._gate.discard(symbol)

        if self._notifier is not None:
            await self._notifier.send(format_signal_message(signal))

        return {
            "action": "signal",
            "reason": evaluation.reason,
            "direction": signal.direction,
            "score": signal.score,
            "signal_id": signal.id,
        }

    # ── Tracking ─────────────────────────────────────────────────────────

    async def _track(self, symbol: str, signal: Signal, candles: list[CandleData]) -> dict:
        """Check *signal* against the last traded price and feed the gate."""
        price = await self._last_price(symbol, candles)
        outcome = self._tracker.check(signal, price)

        if outcome is None:
            if self._gate is not None and self._gate.pending(symbol) is not None:
                state = self._decision_state(candles)
                if state is not None:
                    self._gate.observe(
                        symbol, state, self._tracker.unrealized_pnl_percent(signal, price)
                    )
            return {"action": "tracking", "reason": f"signal {signal.id} open"}

        try:
            self._repo.close_signal(
                signal.id,
                outcome.status,
                outcome.exit_price,
                outcome.exit_time,
                outcome.pnl_percent,
                outcome.pnl_usdt,
            )
        except PersistenceWriteError as exc:
            logger.error("%s: failed to close signal %s: %s", symbol, signal.id, exc)

        logger.info(
            "%s: signal %s %s at %.6g (%.2f%%)",
            symbol, signal.id, outcome.status, outcome.exit_price, outcome.pnl_percent,
        )

        if self._notifier is not None:
            await self._notifier.send(format_outcome_message(signal, outcome))

        if self._gate is not None:
            self._gate.resolve(symbol, outcome.for_reward(), self._decision_state(candles))

        return {
            "action": "closed",
            "reason": outcome.status,
            "signal_id": signal.id,
            "pnl_percent": round(outcome.pnl_percent, 3),
        }

    async def _last_price(self, symbol: str, candles: list[CandleData]) -> float:
        """Ticker price, or the last close when the ticker is unavailable."""
        try:
            return await self._client.fetch_price(symbol)
        except TransientFetchError as exc:
            logger.warning("%s: ticker unavailable, using last close: %s", symbol, exc)
            return candles[-1].close

    def _decision_state(self, candles: list[CandleData]):
        try:
            return self._pipeline.market_view(candles).decision_state()
        except InsufficientDataError:
            return None

    # ── Agent persistence ────────────────────────────────────────────────

    def _agent(self):
        return self._gate.agent if self._gate is not None else None

    def _agent_epsilon(self) -> Optional[float]:
        agent = self._agent()
        epsilon = getattr(agent, "epsilon", None)
        return round(epsilon, 4) if epsilon is not None else None

    def _save_agent(self) -> None:
        agent = self._agent()
        if agent is None or not self._agent_model_path or not hasattr(agent, "save"):
            return
        try:
            agent.save(self._agent_model_path)
        except OSError as exc:
            logger.error("Failed to save decision agent: %s", exc)
