"""Tests for application wiring in signalforge.main."""

import pytest

from signalforge.api import routers
from signalforge.config import load_config
from signalforge.engine import SignalEngine
from signalforge.main import build_engine
from signalforge.rl.agent import DecisionAgent


@pytest.fixture
def config(monkeypatch, tmp_path):
    monkeypatch.setenv("SYMBOLS", "BTCUSDT,ETHUSDT")
    monkeypatch.setenv("DB_PATH", str(tmp_path / "signals.db"))
    monkeypatch.setenv("AGENT_MODEL_PATH", str(tmp_path / "agent.pt"))
    monkeypatch.setenv("AGENT_ENABLED", "false")
    monkeypatch.setenv("SIGNAL_PROFILE", "conservative")
    return load_config(str(tmp_path / "nonexistent.env"))


class TestBuildEngine:
    @pytest.mark.asyncio
    async def test_rule_only_engine(self, config):
        engine = build_engine(config)
        assert isinstance(engine, SignalEngine)
        assert engine._gate.agent is None
        assert engine._pipeline.scorer.min_score == 75.0

        status = await routers.get_status()
        assert status["symbols"] == ["BTCUSDT", "ETHUSDT"]
        assert status["agent_enabled"] is False

    def test_agent_loaded_from_saved_weights(self, monkeypatch, config, tmp_path):
        DecisionAgent(epsilon_start=0.25).save(str(tmp_path / "agent.pt"))
        monkeypatch.setenv("AGENT_ENABLED", "true")
        engine = build_engine(load_config(str(tmp_path / "nonexistent.env")))

        agent = engine._gate.agent
        assert isinstance(agent, DecisionAgent)
        assert agent.epsilon == pytest.approx(0.25)
        assert engine._agent_model_path == str(tmp_path / "agent.pt")
