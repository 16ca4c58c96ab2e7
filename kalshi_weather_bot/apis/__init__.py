"""
Weather and reasoning API clients.

Includes:
- NWS point forecasts
- Open-Meteo deterministic and ensemble forecasts
- Combined weather feed
- OpenRouter chat completions
"""

from .nws import NWSClient, NWSForecast
from .open_meteo import OpenMeteoClient, OpenMeteoError, DeterministicForecast
from .weather_feed import WeatherClient, WeatherFeed
from .openrouter import OpenRouterClient, OpenRouterError

__all__ = [
    "NWSClient",
    "NWSForecast",
    "OpenMeteoClient",
    "OpenMeteoError",
    "DeterministicForecast",
    "WeatherClient",
    "WeatherFeed",
    "OpenRouterClient",
    "OpenRouterError",
]
