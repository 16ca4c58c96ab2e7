"""
Kalshi exchange integration.

Includes:
- RSA-PSS request signing
- Market discovery for KXHIGH series
- Authenticated trading client
"""

from .auth import KalshiAuth, KalshiAuthError
from .client import KalshiClient, KalshiAPIError
from .markets import KalshiMarketFinder, parse_market, nearest_event

__all__ = [
    "KalshiAuth",
    "KalshiAuthError",
    "KalshiClient",
    "KalshiAPIError",
    "KalshiMarketFinder",
    "parse_market",
    "nearest_event",
]
