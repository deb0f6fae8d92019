"""Tests for the read-only API endpoints."""

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from signalforge.api.routers import (
    configure_routers,
    update_engine_status,
    update_strategy_insight,
)
from signalforge.main import app
from signalforge.models.signal import Signal

client = TestClient(app)


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_signal_repo(signals=None, total=0, open_signals=None, stats=None):
    """Return a mock SignalRepo with canned responses."""
    repo = MagicMock()
    repo.get_signals.return_value = {"signals": signals or [], "total": total}
    repo.get_open_signals.return_value = open_signals or []
    repo.get_stats.return_value = stats or {}
    return repo


def _open_signal() -> Signal:
    return Signal(
        timestamp="2025-03-01T12:00:00+00:00",
        symbol="ETHUSDT",
        direction="SHORT",
        regime="TRENDING/DOWN",
        strategy="Momentum",
        entry=2000.0,
        stop=2030.0,
        target=1940.0,
        size=100.0,
        score=72.0,
        atr=20.0,
        timeframe="15m",
        id=3,
    )


# ── Tests ────────────────────────────────────────────────────────────────


class TestHealth:
    def test_health(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestSignalsEndpoint:
    def test_returns_repo_payload(self):
        rows = [{"id": 2, "symbol": "BTCUSDT", "status": "OPEN"}]
        configure_routers(signal_repo=_make_signal_repo(signals=rows, total=1))
        resp = client.get("/signals")
        assert resp.status_code == 200
        assert resp.json() == {"signals": rows, "total": 1}

    def test_passes_filters(self):
        repo = _make_signal_repo()
        configure_routers(signal_repo=repo)
        client.get("/signals", params={"limit": 5, "status": "TP_HIT", "symbol": "BTCUSDT"})
        repo.get_signals.assert_called_once_with(
            limit=5, status_filter="TP_HIT", symbol="BTCUSDT"
        )

    def test_limit_validated(self):
        configure_routers(signal_repo=_make_signal_repo())
        assert client.get("/signals", params={"limit": 0}).status_code == 422
        assert client.get("/signals", params={"limit": 501}).status_code == 422

    def test_without_repo(self):
        configure_routers(signal_repo=None)
        assert client.get("/signals").json() == {"signals": [], "total": 0}


class TestActiveSignalsEndpoint:
    def test_lists_open_signals(self):
        configure_routers(signal_repo=_make_signal_repo(open_signals=[_open_signal()]))
        data = client.get("/signals/active").json()
        assert len(data["signals"]) == 1
        item = data["signals"][0]
        assert item["id"] == 3
        assert item["symbol"] == "ETHUSDT"
        assert item["direction"] == "SHORT"
        assert item["stop"] == 2030.0
        assert item["target"] == 1940.0

    def test_empty(self):
        configure_routers(signal_repo=_make_signal_repo())
        assert client.get("/signals/active").json() == {"signals": []}


class TestStatsEndpoint:
    def test_returns_repo_stats(self):
        stats = {"total_signals": 4, "win_rate": 66.7, "profit_factor": 4.0}
        configure_routers(signal_repo=_make_signal_repo(stats=stats))
        assert client.get("/stats").json() == stats


class TestStatusEndpoint:
    def test_defaults_and_initial_fields(self):
        configure_routers(
            signal_repo=_make_signal_repo(),
            status={"symbols": ["BTCUSDT"], "timeframe": "15m"},
        )
        data = client.get("/status").json()
        assert data["running"] is False
        assert data["symbols"] == ["BTCUSDT"]
        assert data["timeframe"] == "15m"
        assert data["cycle_count"] == 0

    def test_engine_updates(self):
        configure_routers(signal_repo=_make_signal_repo())
        update_engine_status(running=True, cycle_count=3, agent_epsilon=0.42)
        data = client.get("/status").json()
        assert data["running"] is True
        assert data["cycle_count"] == 3
        assert data["agent_epsilon"] == 0.42


class TestStrategyInsightEndpoint:
    def test_insight_per_symbol(self):
        configure_routers(signal_repo=_make_signal_repo())
        update_strategy_insight("BTCUSDT", {"action": "rejected", "regime": "RANGING"})
        data = client.get("/strategy/insight").json()
        assert data == {"insights": {"BTCUSDT": {"action": "rejected", "regime": "RANGING"}}}

    def test_reset_on_configure(self):
        update_strategy_insight("BTCUSDT", {"action": "signal"})
        configure_routers(signal_repo=_make_signal_repo())
        assert client.get("/strategy/insight").json() == {"insights": {}}
