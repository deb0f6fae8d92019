"""SignalForge — application entry point.

Boots the read-only FastAPI server and provides the CLI entry point for
the scan loop.
"""

import logging

from fastapi import FastAPI

from signalforge.api.routers import router

app = FastAPI(title="SignalForge API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("signalforge")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


# ── Wiring ───────────────────────────────────────────────────────────────


def build_engine(config):
    """Assemble the engine and its collaborators from *config*."""
    import os

    from signalforge.api.routers import configure_routers
    from signalforge.engine import SignalEngine
    from signalforge.market.client import MarketDataClient
    from signalforge.notify.telegram import TelegramNotifier
    from signalforge.pipeline import SignalPipeline
    from signalforge.repos.signal_repo import SignalRepo
    from signalforge.risk.scorer import SignalScorer
    from signalforge.rl.gate import DecisionGate, DecisionJournal

    agent = None
    if config.agent_enabled:
        from signalforge.rl.agent import DecisionAgent

        agent = DecisionAgent()
        if os.path.isfile(config.agent_model_path):
            agent.load(config.agent_model_path)
        else:
            logger.info("No saved decision agent at %s; starting fresh", config.agent_model_path)

    journal_path = os.path.join(os.path.dirname(config.db_path) or ".", "decision_journal.jsonl")
    gate = DecisionGate(
        agent=agent,
        override_size_factor=config.agent_override_size_factor,
        journal=DecisionJournal(journal_path) if agent is not None else None,
    )
    pipeline = SignalPipeline(
        scorer=SignalScorer(
            min_score=config.min_signal_score,
            min_risk_reward=config.min_risk_reward,
        ),
        gate=gate,
        position_size=config.position_size_usdt,
        timeframe=config.timeframe,
    )
    repo = SignalRepo(config.db_path)
    configure_routers(
        signal_repo=repo,
        status={
            "symbols": list(config.symbols),
            "timeframe": config.timeframe,
            "agent_enabled": agent is not None,
        },
    )
    return SignalEngine(
        config=config,
        client=MarketDataClient.from_config(config),
        repo=repo,
        pipeline=pipeline,
        notifier=TelegramNotifier.from_config(config),
        gate=gate,
        agent_model_path=config.agent_model_path if agent is not None else None,
    )


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and start the scan loop (and the API)."""
    import argparse
    import asyncio
    import signal

    from signalforge.config import load_config
    from signalforge.repos.db import init_db

    parser = argparse.ArgumentParser(description="SignalForge market signal scanner")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single scan cycle and exit",
    )
    parser.add_argument(
        "--api",
        action="store_true",
        help="Serve the read-only API alongside the scan loop",
    )
    args = parser.parse_args()

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    init_db(config.db_path)

    engine = build_engine(config)
    logger.info(
        "Starting SignalForge: %d symbol(s) on %s, profile %s (score ≥ %.0f, R:R ≥ %.1f)",
        len(config.symbols), config.timeframe, config.signal_profile,
        config.min_signal_score, config.min_risk_reward,
    )
    if not config.telegram_enabled:
        logger.warning("Telegram not configured; signals are only stored")

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal received — stopping after this cycle.")
        engine.stop()

    signal.signal(signal.SIGINT, handle_shutdown)

    if args.once:
        results = asyncio.run(engine.run_once())
        for result in results:
            logger.info("%s: %s (%s)", result["symbol"], result["action"], result["reason"])
    elif args.api:
        asyncio.run(_run_with_api(engine, config.api_port))
    else:
        asyncio.run(engine.run())


async def _run_with_api(engine, port: int = 8080) -> None:
    """Run the API server and the scan loop concurrently."""
    import asyncio
    import uvicorn

    uvi_config = uvicorn.Config(app, host="0.0.0.0", port=port, log_level="info")
    server = uvicorn.Server(uvi_config)

    logger.info("API available at http://localhost:%d", port)
    results = await asyncio.gather(
        server.serve(),
        engine.run(),
        return_exceptions=True,
    )
    logger.info("SignalForge stopped. Results: %s", [type(r).__name__ for r in results])


if __name__ == "__main__":
    _run_cli()
