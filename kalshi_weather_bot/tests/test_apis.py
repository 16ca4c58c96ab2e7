"""
Tests for the NWS, Open-Meteo, weather feed and OpenRouter adapters.

HTTP is served by httpx.MockTransport; no network access.
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from kalshi_weather_bot.apis import open_meteo
from kalshi_weather_bot.apis.nws import NWSClient, NWSForecast, parse_periods
from kalshi_weather_bot.apis.open_meteo import (
    DeterministicForecast,
    OpenMeteoClient,
    OpenMeteoError,
    member_highs_for_day,
)
from kalshi_weather_bot.apis.openrouter import OpenRouterClient, OpenRouterError
from kalshi_weather_bot.apis.weather_feed import WeatherClient
from kalshi_weather_bot.config import CITY_CONFIGS
from kalshi_weather_bot.core.types import ForecastConfidence, HourlyForecast


NYC = CITY_CONFIGS["KXHIGHNY"]
TODAY = "2026-01-28"


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture(autouse=True)
def clear_rate_limit():
    open_meteo.reset_rate_limit()
    yield
    open_meteo.reset_rate_limit()


class TestNWS:
    """Tests for NWS period parsing and the points/forecast flow."""

    def test_parse_day_then_night(self):
        periods = [
            {"isDaytime": True, "temperature": 71, "shortForecast": "Sunny"},
            {"isDaytime": False, "temperature": 55, "shortForecast": "Clear"},
        ]
        assert parse_periods(periods) == NWSForecast(high=71.0, low=55.0, short_forecast="Sunny")

    def test_parse_night_first(self):
        periods = [
            {"isDaytime": False, "temperature": 40, "shortForecast": "Cloudy"},
            {"isDaytime": True, "temperature": 62, "shortForecast": "Rain"},
            {"isDaytime": False, "temperature": 38},
        ]
        assert parse_periods(periods) == NWSForecast(high=62.0, low=40.0, short_forecast="Rain")

    def test_parse_only_first_four_periods(self):
        periods = [{"isDaytime": False, "temperature": 40}] * 4 + [{"isDaytime": True, "temperature": 60}]
        assert parse_periods(periods).high is None

    def test_parse_empty(self):
        assert parse_periods([]) == NWSForecast()

    @pytest.mark.asyncio
    async def test_get_forecast_follows_points_url(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/points/"):
                return httpx.Response(200, json={"properties": {"forecast": "https://api.weather.gov/gridpoints/OKX/33,35/forecast"}})
            return httpx.Response(200, json={"properties": {"periods": [
                {"isDaytime": True, "temperature": 70, "shortForecast": "Sunny"},
                {"isDaytime": False, "temperature": 52},
            ]}})

        nws = NWSClient()
        nws.client = mock_client(handler)
        forecast = await nws.get_forecast(NYC)
        await nws.close()

        assert forecast == NWSForecast(high=70.0, low=52.0, short_forecast="Sunny")

    @pytest.mark.asyncio
    async def test_get_forecast_error_returns_none(self):
        nws = NWSClient()
        nws.client = mock_client(lambda request: httpx.Response(503, text="unavailable"))
        assert await nws.get_forecast(NYC) is None
        await nws.close()


class TestOpenMeteo:
    """Tests for deterministic and ensemble Open-Meteo parsing."""

    def test_member_highs_for_day(self):
        hourly = {
            "time": ["2026-01-27T23:00", "2026-01-28T00:00", "2026-01-28T14:00", "2026-01-29T14:00"],
            "temperature_2m": [80.0, 60.0, 70.0, 90.0],
            "temperature_2m_member01": [80.0, 61.0, 72.5, 90.0],
            "temperature_2m_member02": [80.0, None, None, 90.0],
            "relative_humidity_2m": [1, 2, 3, 4],
        }
        assert member_highs_for_day(hourly, TODAY) == [70.0, 72.5]

    def test_member_highs_no_data(self):
        assert member_highs_for_day({}, TODAY) == []

    @pytest.mark.asyncio
    async def test_today_forecast(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/forecast"
            assert request.url.params["timezone"] == "America/New_York"
            return httpx.Response(200, json={
                "current": {"temperature_2m": 58.1},
                "hourly": {
                    "time": ["2026-01-28T09:00", "2026-01-28T15:00", "2026-01-29T15:00"],
                    "temperature_2m": [55.0, 66.4, 80.0],
                },
            })

        client = OpenMeteoClient()
        client.client = mock_client(handler)
        forecast = await client.get_today_forecast(NYC, today=TODAY)
        await client.close()

        assert forecast.current_temp_f == 58.1
        assert forecast.forecast_high_f == 66.4
        assert [h.time for h in forecast.hourly] == ["2026-01-28T09:00", "2026-01-28T15:00"]

    @pytest.mark.asyncio
    async def test_today_forecast_missing_current(self):
        client = OpenMeteoClient()
        client.client = mock_client(lambda request: httpx.Response(200, json={"hourly": {}}))
        with pytest.raises(OpenMeteoError):
            await client.get_today_forecast(NYC, today=TODAY)
        await client.close()

    @pytest.mark.asyncio
    async def test_rate_limit_enters_cooldown(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429)

        client = OpenMeteoClient()
        client.client = mock_client(handler)
        with pytest.raises(OpenMeteoError):
            await client.get_ensemble_member_highs(NYC, today=TODAY)
        with pytest.raises(OpenMeteoError, match="Rate limited"):
            await client.get_ensemble_member_highs(NYC, today=TODAY)
        await client.close()

        assert len(calls) == 1


class TestWeatherClient:
    """Tests for combining the three weather sources."""

    def _feed(self, nws=None, det=None, members=None):
        nws_client = AsyncMock()
        nws_client.get_forecast.return_value = nws
        om = AsyncMock()
        if isinstance(det, Exception):
            om.get_today_forecast.side_effect = det
        else:
            om.get_today_forecast.return_value = det
        if isinstance(members, Exception):
            om.get_ensemble_member_highs.side_effect = members
        else:
            om.get_ensemble_member_highs.return_value = members or []
        return WeatherClient(nws=nws_client, open_meteo=om)

    def _det(self):
        return DeterministicForecast(
            current_temp_f=60.0,
            forecast_high_f=71.2,
            hourly=[HourlyForecast("2026-01-28T15:00", 71.2)],
        )

    @pytest.mark.asyncio
    async def test_full_snapshot(self):
        feed = self._feed(
            nws=NWSForecast(high=72.0, low=55.0, short_forecast="Sunny"),
            det=self._det(),
            members=[70.0, 71.0, 71.5, 72.0],
        )

        snapshot = await feed.forecast(NYC)

        assert snapshot.city == "New York"
        assert snapshot.open_meteo_forecast_high == 71.2
        assert snapshot.nws_forecast_high == 72.0
        assert snapshot.ensemble.model_count == 4
        assert snapshot.confidence == ForecastConfidence.HIGH
        assert sum(b.probability for b in snapshot.bucket_probabilities) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_deterministic_failure_returns_none(self):
        feed = self._feed(det=OpenMeteoError("down"), members=[70.0])
        assert await feed.forecast(NYC) is None

    @pytest.mark.asyncio
    async def test_optional_sources_degrade(self):
        feed = self._feed(nws=None, det=self._det(), members=OpenMeteoError("down"))

        snapshot = await feed.forecast(NYC)

        assert snapshot.nws_forecast_high is None
        assert snapshot.ensemble is None
        assert snapshot.ensemble_member_highs == []
        assert snapshot.bucket_probabilities == []
        assert snapshot.confidence == ForecastConfidence.MEDIUM


class TestOpenRouterClient:
    """Tests for the chat-completions client."""

    @pytest.mark.asyncio
    async def test_returns_content(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer sk-test"
            return httpx.Response(200, json={"choices": [{"message": {"content": '{"action": "PASS"}'}}]})

        client = OpenRouterClient(api_key="sk-test", model="test/model", base_url="https://openrouter.test/chat")
        client.client = mock_client(handler)
        assert await client.complete("prompt") == '{"action": "PASS"}'
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_key(self):
        client = OpenRouterClient(api_key="", model="test/model", base_url="https://openrouter.test/chat")
        with pytest.raises(OpenRouterError, match="not configured"):
            await client.complete("prompt")
        await client.close()

    @pytest.mark.asyncio
    async def test_http_error_includes_body_excerpt(self):
        client = OpenRouterClient(api_key="sk-test", model="test/model", base_url="https://openrouter.test/chat")
        client.client = mock_client(lambda request: httpx.Response(402, text="  insufficient\n credits "))
        with pytest.raises(OpenRouterError, match="status=402.*insufficient credits"):
            await client.complete("prompt")
        await client.close()

    @pytest.mark.asyncio
    async def test_empty_content(self):
        client = OpenRouterClient(api_key="sk-test", model="test/model", base_url="https://openrouter.test/chat")
        client.client = mock_client(lambda request: httpx.Response(200, json={"choices": [{"message": {"content": ""}}]}))
        with pytest.raises(OpenRouterError, match="No content"):
            await client.complete("prompt")
        await client.close()
