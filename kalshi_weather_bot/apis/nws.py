"""
National Weather Service (NWS) API Client

Kalshi settles KXHIGH markets on NWS data, so the NWS point forecast is
the most direct read on the settlement source.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import config, CityConfig
from ..monitoring.logger import get_logger

logger = get_logger("nws")

# Periods scanned for the first daytime high and night low
FORECAST_PERIODS = 4


@dataclass
class NWSForecast:
    """Near-term NWS forecast for one city."""
    high: Optional[float] = None
    low: Optional[float] = None
    short_forecast: Optional[str] = None


class NWSClient:
    """Client for the NWS points/forecast API."""

    def __init__(self, timeout: float = 10.0):
        self.nws_base_url = config.api.nws_base_url
        self.user_agent = config.api.nws_user_agent
        self.client = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": self.user_agent}
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def get_forecast(self, city_config: CityConfig) -> Optional[NWSForecast]:
        """
        Get the next daytime high and night low for a city.

        Resolves the gridpoint forecast URL via /points, then reads the
        first few forecast periods.

        Returns:
            NWSForecast, or None when NWS is unavailable
        """
        points_url = (
            f"{self.nws_base_url}/points/"
            f"{city_config.latitude:.4f},{city_config.longitude:.4f}"
        )

        try:
            response = await self.client.get(points_url)
            response.raise_for_status()
            forecast_url = response.json()["properties"]["forecast"]

            response = await self.client.get(forecast_url)
            response.raise_for_status()
            periods = response.json()["properties"]["periods"]
        except httpx.HTTPStatusError as e:
            logger.warning(f"NWS {e.request.url} -> {e.response.status_code}")
            return None
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"NWS forecast failed for {city_config.name}: {e}")
            return None

        return parse_periods(periods)


def parse_periods(periods: list[dict]) -> NWSForecast:
    """First daytime temperature is the high, first night temperature the low."""
    result = NWSForecast()

    for period in periods[:FORECAST_PERIODS]:
        temp = period.get("temperature")
        temp = float(temp) if temp is not None else None
        if period.get("isDaytime", False):
            if result.high is None:
                result.high = temp
                result.short_forecast = period.get("shortForecast")
        elif result.low is None:
            result.low = temp
        if result.high is not None and result.low is not None:
            break

    return result
