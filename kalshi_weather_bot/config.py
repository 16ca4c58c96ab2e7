"""
Configuration module for Kalshi Weather Bot.

Contains API configurations, city/series mappings, and process settings.
Trading tunables live in trading/config.py.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import os
from dotenv import load_dotenv

from .trading.config import TradingConfig

load_dotenv()


class ConfigError(ValueError):
    """Raised when the environment describes an unusable configuration."""


@dataclass
class CityConfig:
    """Configuration for a tradeable city."""
    name: str
    series_ticker: str  # Kalshi KXHIGH series for this city
    latitude: float
    longitude: float
    timezone: str


# Kalshi settles KXHIGH markets on the NWS Daily Climate Report
CITY_CONFIGS: dict[str, CityConfig] = {
    "KXHIGHNY": CityConfig(
        name="New York",
        series_ticker="KXHIGHNY",
        latitude=40.7128,
        longitude=-74.0060,
        timezone="America/New_York",
    ),
    "KXHIGHCHI": CityConfig(
        name="Chicago",
        series_ticker="KXHIGHCHI",
        latitude=41.8781,
        longitude=-87.6298,
        timezone="America/Chicago",
    ),
    "KXHIGHMI": CityConfig(
        name="Miami",
        series_ticker="KXHIGHMI",
        latitude=25.7617,
        longitude=-80.1918,
        timezone="America/New_York",
    ),
    "KXHIGHAT": CityConfig(
        name="Austin",
        series_ticker="KXHIGHAT",
        latitude=30.2672,
        longitude=-97.7431,
        timezone="America/Chicago",
    ),
}


def _cities_from_env() -> list[CityConfig]:
    """Filter configured cities by the comma-separated CITIES variable."""
    raw = os.getenv("CITIES", "").strip()
    if not raw:
        return list(CITY_CONFIGS.values())
    allowed = [s.strip() for s in raw.split(",") if s.strip()]
    return [c for key, c in CITY_CONFIGS.items() if key in allowed]


@dataclass
class APIConfig:
    """API configuration settings."""
    # Kalshi trade API (v2)
    kalshi_api_base_url: str = field(
        default_factory=lambda: os.getenv(
            "KALSHI_BASE_URL", "https://api.elections.kalshi.com/trade-api/v2"
        )
    )

    # Open-Meteo (no API key required)
    open_meteo_base_url: str = "https://api.open-meteo.com/v1"
    open_meteo_ensemble_url: str = "https://ensemble-api.open-meteo.com/v1"
    ensemble_models: str = "icon_seamless,gfs_seamless,ecmwf_ifs025"

    # NWS API (no API key required, but needs User-Agent)
    nws_base_url: str = "https://api.weather.gov"
    nws_user_agent: str = "(kalshi-weather-bot, contact@example.com)"

    # OpenRouter (only used by the LLM brain)
    openrouter_url: str = field(
        default_factory=lambda: os.getenv(
            "OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1/chat/completions"
        )
    )
    openrouter_api_key: str = field(
        default_factory=lambda: os.getenv("OPENROUTER_API_KEY", "")
    )
    openrouter_model: str = field(
        default_factory=lambda: os.getenv("OPENROUTER_MODEL", "moonshotai/kimi-k2.5")
    )
    openrouter_timeout: float = field(
        default_factory=lambda: float(os.getenv("OPENROUTER_TIMEOUT_S", "60"))
    )


@dataclass
class KalshiConfig:
    """Kalshi API credentials."""
    key_id: str = field(
        default_factory=lambda: os.getenv("KALSHI_API_KEY_ID", "")
    )
    private_key_path: str = field(
        default_factory=lambda: os.getenv("KALSHI_PRIVATE_KEY_PATH", "./kalshi_private_key.pem")
    )

    def read_private_key_pem(self) -> str:
        """Return the PEM text, or an empty string when the file is missing."""
        path = Path(self.private_key_path)
        if not path.exists():
            return ""
        return path.read_text()


@dataclass
class AlertConfig:
    """Alert configuration for notifications."""
    discord_webhook_url: Optional[str] = field(
        default_factory=lambda: os.getenv("DISCORD_WEBHOOK_URL") or None
    )
    telegram_bot_token: Optional[str] = field(
        default_factory=lambda: os.getenv("TELEGRAM_BOT_TOKEN") or None
    )
    telegram_chat_id: Optional[str] = field(
        default_factory=lambda: os.getenv("TELEGRAM_CHAT_ID") or None
    )


@dataclass
class Config:
    """Main configuration container."""
    api: APIConfig = field(default_factory=APIConfig)
    kalshi: KalshiConfig = field(default_factory=KalshiConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    cities: list[CityConfig] = field(default_factory=_cities_from_env)

    # "rules" (deterministic) or "llm" (OpenRouter)
    brain: str = field(
        default_factory=lambda: os.getenv("BRAIN", "rules").lower()
    )
    data_dir: str = field(
        default_factory=lambda: os.getenv("DATA_DIR", "data")
    )
    lockfile_path: str = field(
        default_factory=lambda: os.getenv("LOCKFILE_PATH", "/tmp/kalshi-bot.lock")
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )

    def __post_init__(self):
        if self.brain not in ("rules", "llm"):
            raise ConfigError(f"Unknown BRAIN={self.brain!r}. Valid options: rules, llm")

    @property
    def is_live(self) -> bool:
        return not self.trading.paper_trade


# Global configuration instance
config = Config()


def city_for_event(event_ticker: str) -> Optional[CityConfig]:
    """Resolve the city from an event ticker like 'KXHIGHNY-26JAN28'."""
    series = event_ticker.split("-", 1)[0].upper()
    return CITY_CONFIGS.get(series)
