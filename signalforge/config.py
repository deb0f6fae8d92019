"""SignalForge — application configuration.

Loads .env variables into a typed config object.
Validates values on startup; a bad value is the only fatal error.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


# profile -> (min_signal_score, min_risk_reward)
SIGNAL_PROFILES: dict[str, tuple[float, float]] = {
    "aggressive": (60.0, 1.3),
    "standard": (60.0, 1.5),
    "conservative": (75.0, 1.5),
}

_DEFAULT_SYMBOLS = "BTCUSDT,ETHUSDT,BNBUSDT,SOLUSDT,XRPUSDT"


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    symbols: tuple[str, ...]
    timeframe: str
    candle_limit: int
    signal_profile: str
    min_signal_score: float
    min_risk_reward: float
    check_interval_minutes: float
    symbol_delay_seconds: float
    fetch_retries: int
    fetch_retry_delay: float
    market_data_url: str
    position_size_usdt: float
    telegram_token: str
    telegram_chat_id: str
    db_path: str
    log_level: str
    api_port: int
    agent_enabled: bool
    agent_model_path: str
    agent_override_size_factor: float

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_token and self.telegram_chat_id)

    @property
    def poll_interval_seconds(self) -> float:
        return self.check_interval_minutes * 60


def _bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` for an unknown ``SIGNAL_PROFILE``, a non-numeric
    numeric setting, an empty symbol list or ``CANDLE_LIMIT`` below 200.
    """
    load_dotenv(dotenv_path=env_path)

    profile = os.environ.get("SIGNAL_PROFILE", "standard").strip().lower()
    if profile not in SIGNAL_PROFILES:
        raise ValueError(
            f"Unknown SIGNAL_PROFILE '{profile}'. "
            f"Available: {', '.join(SIGNAL_PROFILES.keys())}"
        )
    profile_score, profile_rr = SIGNAL_PROFILES[profile]

    symbols = tuple(
        s.strip().upper()
        for s in os.environ.get("SYMBOLS", _DEFAULT_SYMBOLS).split(",")
        if s.strip()
    )
    if not symbols:
        raise ValueError("SYMBOLS must name at least one instrument")

    candle_limit = int(os.environ.get("CANDLE_LIMIT", "250"))
    if candle_limit < 200:
        raise ValueError(f"CANDLE_LIMIT must be at least 200, got {candle_limit}")

    return Config(
        symbols=symbols,
        timeframe=os.environ.get("TIMEFRAME", "15m"),
        candle_limit=candle_limit,
        signal_profile=profile,
        min_signal_score=float(os.environ.get("MIN_SIGNAL_SCORE", profile_score)),
        min_risk_reward=float(os.environ.get("MIN_RISK_REWARD", profile_rr)),
        check_interval_minutes=float(os.environ.get("CHECK_INTERVAL_MINUTES", "15")),
        symbol_delay_seconds=float(os.environ.get("SYMBOL_DELAY_SECONDS", "0.5")),
        fetch_retries=int(os.environ.get("FETCH_RETRIES", "3")),
        fetch_retry_delay=float(os.environ.get("FETCH_RETRY_DELAY", "2.0")),
        market_data_url=os.environ.get("MARKET_DATA_URL", "https://api.binance.com"),
        position_size_usdt=float(os.environ.get("POSITION_SIZE_USDT", "100")),
        telegram_token=os.environ.get("TELEGRAM_TOKEN", ""),
        telegram_chat_id=os.environ.get("TELEGRAM_CHAT_ID", ""),
        db_path=os.environ.get("DB_PATH", "data/signalforge.db"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=int(os.environ.get("API_PORT", "8080")),
        agent_enabled=_bool(os.environ.get("AGENT_ENABLED", "true")),
        agent_model_path=os.environ.get("AGENT_MODEL_PATH", "data/decision_agent.pt"),
        agent_override_size_factor=float(
            os.environ.get("AGENT_OVERRIDE_SIZE_FACTOR", "0.5")
        ),
    )
