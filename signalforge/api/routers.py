"""Read-only API routers — /status, /signals, /signals/active, /stats,
/strategy/insight endpoints.

No business logic.  Delegates to the signal repo and shared state the
engine updates each cycle.
"""

from typing import Optional

from fastapi import APIRouter, Query

router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_DEFAULT_STATUS: dict = {
    "running": False,
    "symbols": [],
    "timeframe": None,
    "cycle_count": 0,
    "last_cycle_at": None,
    "agent_enabled": False,
    "agent_epsilon": None,
}

_status: dict = {**_DEFAULT_STATUS}
_signal_repo = None  # Set via configure_routers()
_strategy_insight: dict = {}  # Updated by engine each cycle, keyed by symbol


def configure_routers(signal_repo, status: Optional[dict] = None) -> None:
    """Inject dependencies from the application startup.

    Args:
        signal_repo: A ``SignalRepo`` instance (or duck-type for tests).
        status: Optional initial status fields.
    """
    global _signal_repo  # noqa: PLW0603
    _signal_repo = signal_repo
    _status.clear()
    _status.update(_DEFAULT_STATUS)
    if status:
        _status.update(status)
    _strategy_insight.clear()


def update_engine_status(**fields) -> None:
    """Update individual fields of the engine status dict."""
    _status.update(fields)


def update_strategy_insight(symbol: str, insight: dict) -> None:
    """Store per-cycle evaluation detail for one symbol."""
    _strategy_insight[symbol] = insight


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/status")
async def get_status():
    """Return engine status."""
    return dict(_status)


@router.get("/signals")
async def get_signals(
    limit: int = Query(default=50, ge=1, le=500),
    status: Optional[str] = Query(default=None),
    symbol: Optional[str] = Query(default=None),
):
    """Return recent signals, newest first."""
    if _signal_repo is None:
        return {"signals": [], "total": 0}
    return _signal_repo.get_signals(limit=limit, status_filter=status, symbol=symbol)


@router.get("/signals/active")
async def get_active_signals():
    """Return signals that are still OPEN."""
    if _signal_repo is None:
        return {"signals": []}
    open_signals = _signal_repo.get_open_signals()
    return {
        "signals": [
            {
                "id": s.id,
                "timestamp": s.timestamp,
                "symbol": s.symbol,
                "direction": s.direction,
                "strategy": s.strategy,
                "regime": s.regime,
                "entry": s.entry,
                "stop": s.stop,
                "target": s.target,
                "size": s.size,
                "score": s.score,
            }
            for s in open_signals
        ]
    }


@router.get("/stats")
async def get_stats():
    """Return aggregate performance statistics."""
    if _signal_repo is None:
        return {"total_signals": 0, "open_signals": 0, "closed_signals": 0}
    return _signal_repo.get_stats()


@router.get("/strategy/insight")
async def get_strategy_insight():
    """Return the latest per-symbol evaluation detail."""
    return {"insights": dict(_strategy_insight)}
