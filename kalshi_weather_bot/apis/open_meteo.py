"""
Open-Meteo API Client

Provides two views of today's temperature for a city:
- Deterministic: current temperature, today's hourly curve and daily high
- Ensemble: one daily high per member across ICON, GFS and ECMWF

Free API with no key required.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

import httpx

from ..config import config, CityConfig
from ..core.types import HourlyForecast
from ..monitoring.logger import get_logger

logger = get_logger("open_meteo")


# Rate limiting state
_rate_limit_until: Optional[datetime] = None
_consecutive_failures: int = 0
MAX_RETRIES = 3
BASE_BACKOFF = 2.0  # seconds


def reset_rate_limit():
    """Reset the rate limit state to allow fresh API calls."""
    global _rate_limit_until, _consecutive_failures
    _rate_limit_until = None
    _consecutive_failures = 0


class OpenMeteoError(Exception):
    """Raised when Open-Meteo returns no usable data."""


@dataclass
class DeterministicForecast:
    """Today's deterministic forecast for one city."""
    current_temp_f: float
    forecast_high_f: float
    hourly: list[HourlyForecast] = field(default_factory=list)


def city_today(city_config: CityConfig) -> str:
    """Today's date (YYYY-MM-DD) in the city's local timezone."""
    return datetime.now(ZoneInfo(city_config.timezone)).strftime("%Y-%m-%d")


class OpenMeteoClient:
    """Client for Open-Meteo weather API."""

    def __init__(self, timeout: float = 10.0):
        self.base_url = config.api.open_meteo_base_url
        self.ensemble_url = config.api.open_meteo_ensemble_url
        self.ensemble_models = config.api.ensemble_models
        self.client = httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _request_with_retry(self, endpoint: str, params: dict) -> dict:
        """Make a request with retry logic and exponential backoff."""
        global _rate_limit_until, _consecutive_failures

        # Check if we're in a rate limit cooldown
        if _rate_limit_until and datetime.now() < _rate_limit_until:
            wait_seconds = (_rate_limit_until - datetime.now()).total_seconds()
            logger.warning(f"Rate limited, {wait_seconds:.0f}s of cooldown left")
            raise OpenMeteoError(f"Rate limited - retry after {wait_seconds:.0f}s")

        last_error: Optional[Exception] = None
        for attempt in range(MAX_RETRIES):
            try:
                response = await self.client.get(endpoint, params=params)

                if response.status_code == 429:
                    _consecutive_failures += 1
                    cooldown = min(300, BASE_BACKOFF ** (_consecutive_failures + 2))  # Max 5 min
                    _rate_limit_until = datetime.now() + timedelta(seconds=cooldown)
                    logger.warning(f"Rate limited (429). Cooldown: {cooldown}s")
                    raise OpenMeteoError(f"Rate limited - cooldown {cooldown}s")

                response.raise_for_status()
                _consecutive_failures = 0
                return response.json()

            except (httpx.HTTPError, ValueError) as e:
                last_error = e
                if attempt < MAX_RETRIES - 1:
                    wait = BASE_BACKOFF ** attempt
                    logger.debug(f"Request to {endpoint} failed ({e}), retrying in {wait}s")
                    await asyncio.sleep(wait)

        raise OpenMeteoError(f"Request to {endpoint} failed after retries: {last_error}")

    async def get_today_forecast(
        self,
        city_config: CityConfig,
        today: Optional[str] = None,
    ) -> DeterministicForecast:
        """
        Get current temperature and today's hourly curve.

        Args:
            city_config: City configuration with coordinates
            today: Local date override (YYYY-MM-DD)

        Raises:
            OpenMeteoError: request failed or no data for today
        """
        endpoint = f"{self.base_url}/forecast"
        params = {
            "latitude": city_config.latitude,
            "longitude": city_config.longitude,
            "hourly": "temperature_2m",
            "current": "temperature_2m",
            "temperature_unit": "fahrenheit",
            "timezone": city_config.timezone,
            "forecast_days": 2,
        }

        data = await self._request_with_retry(endpoint, params)
        today = today or city_today(city_config)

        current_temp = (data.get("current") or {}).get("temperature_2m")
        if current_temp is None:
            raise OpenMeteoError("Missing current temp from Open-Meteo")

        hourly_data = data.get("hourly") or {}
        times = hourly_data.get("time")
        temps = hourly_data.get("temperature_2m")
        if times is None or temps is None:
            raise OpenMeteoError("Missing hourly data from Open-Meteo")

        hourly = [
            HourlyForecast(time=t, temperature_f=float(temp))
            for t, temp in zip(times, temps)
            if temp is not None and t.startswith(today)
        ]
        if not hourly:
            raise OpenMeteoError(f"No hourly data for {today}")

        return DeterministicForecast(
            current_temp_f=float(current_temp),
            forecast_high_f=max(h.temperature_f for h in hourly),
            hourly=hourly,
        )

    async def get_ensemble_member_highs(
        self,
        city_config: CityConfig,
        today: Optional[str] = None,
    ) -> list[float]:
        """
        Get today's high for every ensemble member.

        Each member is a separate `temperature_2m*` key under "hourly";
        a member's high is its max over today's hours.

        Raises:
            OpenMeteoError: request failed
        """
        endpoint = f"{self.ensemble_url}/ensemble"
        params = {
            "latitude": city_config.latitude,
            "longitude": city_config.longitude,
            "hourly": "temperature_2m",
            "models": self.ensemble_models,
            "temperature_unit": "fahrenheit",
            "timezone": city_config.timezone,
            "forecast_days": 2,
        }

        data = await self._request_with_retry(endpoint, params)
        return member_highs_for_day(data.get("hourly") or {}, today or city_today(city_config))


def member_highs_for_day(hourly: dict, day: str) -> list[float]:
    """Max temperature per ensemble member over the hours of `day`."""
    times = hourly.get("time") or []
    day_indices = [i for i, t in enumerate(times) if isinstance(t, str) and t.startswith(day)]

    highs = []
    for key, values in hourly.items():
        if key == "time" or not key.startswith("temperature_2m") or not isinstance(values, list):
            continue
        member = [values[i] for i in day_indices if i < len(values) and values[i] is not None]
        if member:
            highs.append(float(max(member)))
    return highs
