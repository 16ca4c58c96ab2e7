"""
Weather Feed

Combines NWS and Open-Meteo (deterministic + ensemble) into one
WeatherSnapshot per city. The three fetches run concurrently.
"""

import asyncio
from typing import Optional, Protocol

from ..config import CityConfig
from ..core.types import WeatherSnapshot
from ..models.ensemble import build_buckets, confidence_from_ensemble, summarize_members
from ..monitoring.logger import get_logger
from .nws import NWSClient
from .open_meteo import OpenMeteoClient

logger = get_logger("weather_feed")


class WeatherFeed(Protocol):
    """Source of per-city weather snapshots."""

    async def forecast(self, city: CityConfig) -> Optional[WeatherSnapshot]:
        ...


class WeatherClient:
    """
    WeatherFeed backed by NWS and Open-Meteo.

    Open-Meteo deterministic data is required; NWS and the ensemble are
    optional and the snapshot is built without them when they fail.
    """

    def __init__(
        self,
        nws: Optional[NWSClient] = None,
        open_meteo: Optional[OpenMeteoClient] = None,
    ):
        self.nws = nws or NWSClient()
        self.open_meteo = open_meteo or OpenMeteoClient()

    async def close(self):
        await self.nws.close()
        await self.open_meteo.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def forecast(self, city: CityConfig) -> Optional[WeatherSnapshot]:
        """Fetch all sources for a city; None if Open-Meteo deterministic fails."""
        nws_result, det_result, ens_result = await asyncio.gather(
            self.nws.get_forecast(city),
            self.open_meteo.get_today_forecast(city),
            self.open_meteo.get_ensemble_member_highs(city),
            return_exceptions=True,
        )

        if isinstance(det_result, Exception):
            logger.error(f"Open-Meteo deterministic failed for {city.name}: {det_result}")
            return None

        nws_high = nws_low = nws_short = None
        if isinstance(nws_result, Exception) or nws_result is None:
            logger.warning("NWS forecast unavailable, continuing without it")
        else:
            nws_high, nws_low, nws_short = nws_result.high, nws_result.low, nws_result.short_forecast

        member_highs: list[float] = []
        if isinstance(ens_result, Exception):
            logger.warning(f"Open-Meteo ensemble unavailable, continuing without it: {ens_result}")
        else:
            member_highs = ens_result

        ensemble = summarize_members(member_highs)
        if ensemble is None and not isinstance(ens_result, Exception):
            logger.warning("Open-Meteo ensemble returned no members for today")

        snapshot = WeatherSnapshot(
            city=city.name,
            current_temp_f=det_result.current_temp_f,
            open_meteo_forecast_high=det_result.forecast_high_f,
            nws_forecast_high=nws_high,
            nws_forecast_low=nws_low,
            nws_short_forecast=nws_short,
            hourly_forecasts=det_result.hourly,
            ensemble=ensemble,
            bucket_probabilities=build_buckets(member_highs),
            ensemble_member_highs=member_highs,
            confidence=confidence_from_ensemble(ensemble),
        )

        logger.info(
            f"Weather {city.name}: now {snapshot.current_temp_f:.1f}°F | "
            f"OM high {snapshot.open_meteo_forecast_high:.1f}°F | "
            f"NWS high {nws_high if nws_high is not None else 'n/a'} | "
            f"members {len(member_highs)} | confidence {snapshot.confidence.value}"
        )
        return snapshot
