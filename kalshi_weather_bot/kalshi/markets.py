"""
Kalshi weather market discovery.

Finds open KXHIGH (daily high temperature) brackets across the configured
city series and picks the event that closes soonest.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

import httpx

from ..config import CityConfig
from ..core.types import MarketState
from ..monitoring.logger import get_logger

logger = get_logger("kalshi.markets")

MARKETS_PAGE_LIMIT = 200


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _cents(value) -> Optional[int]:
    return int(value) if value is not None else None


def _strike(value) -> Optional[float]:
    return float(value) if value is not None else None


def parse_market(market_data: dict, now: Optional[datetime] = None) -> MarketState:
    """Parse a market from the Kalshi API response."""
    now = now or datetime.now(timezone.utc)
    close_time = market_data.get("close_time") or market_data.get("expiration_time") or ""
    closes = _parse_time(close_time)
    minutes = (closes - now).total_seconds() / 60.0 if closes else 0.0

    return MarketState(
        ticker=market_data.get("ticker", ""),
        event_ticker=market_data.get("event_ticker", ""),
        title=market_data.get("title", "") or market_data.get("subtitle", ""),
        yes_bid=_cents(market_data.get("yes_bid")),
        yes_ask=_cents(market_data.get("yes_ask")),
        no_bid=_cents(market_data.get("no_bid")),
        no_ask=_cents(market_data.get("no_ask")),
        last_price=_cents(market_data.get("last_price")),
        volume=market_data.get("volume", 0) or 0,
        volume_24h=market_data.get("volume_24h", 0) or 0,
        open_interest=market_data.get("open_interest", 0) or 0,
        expiration_time=close_time,
        minutes_to_expiry=minutes,
        floor_strike=_strike(market_data.get("floor_strike")),
        cap_strike=_strike(market_data.get("cap_strike")),
        strike_type=market_data.get("strike_type", "") or "",
    )


def nearest_event(markets: list[MarketState]) -> list[MarketState]:
    """
    Group brackets by event and return the event closing soonest.

    Brackets keep their API order; an event's close is its earliest bracket.
    """
    by_event: dict[str, list[MarketState]] = defaultdict(list)
    for m in markets:
        by_event[m.event_ticker].append(m)

    if not by_event:
        return []

    best = min(by_event.values(), key=lambda group: min(m.minutes_to_expiry for m in group))
    return best


class KalshiMarketFinder:
    """Discovers open bracket markets for the configured KXHIGH series."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def fetch_series_markets(self, series_ticker: str) -> list[dict]:
        """Fetch every open market in a series, following the cursor."""
        markets: list[dict] = []
        cursor = None
        while True:
            params = {"series_ticker": series_ticker, "status": "open", "limit": MARKETS_PAGE_LIMIT}
            if cursor:
                params["cursor"] = cursor
            resp = await self._client.get("/markets", params=params)
            resp.raise_for_status()
            data = resp.json()
            markets.extend(data.get("markets") or [])
            cursor = data.get("cursor")
            if not cursor:
                return markets

    async def find_active_markets(self, cities: list[CityConfig]) -> list[MarketState]:
        """Brackets of the nearest-closing open event across all cities."""
        now = datetime.now(timezone.utc)
        found: list[MarketState] = []

        for city in cities:
            raw = await self.fetch_series_markets(city.series_ticker)
            logger.debug(f"{city.series_ticker}: {len(raw)} open markets")
            found.extend(parse_market(m, now) for m in raw)

        # Closed-but-not-yet-settled brackets can still be listed as open
        found = [m for m in found if m.minutes_to_expiry > 0]
        return nearest_event(found)
