"""
Kalshi exchange client.

Handles authenticated REST API calls for trading: balance, orders,
positions, settlements, orderbooks and market discovery.
"""

import uuid
from typing import Optional
from urllib.parse import urlparse

import httpx

from ..config import config, CityConfig
from ..core.types import (
    MarketState,
    Orderbook,
    OrderRequest,
    OrderResult,
    Position,
    RestingOrder,
    Settlement,
    Side,
)
from ..monitoring.logger import get_logger
from .auth import KalshiAuth
from .markets import KalshiMarketFinder

logger = get_logger("kalshi.client")


class KalshiAPIError(Exception):
    """Raised when Kalshi rejects a request."""

    def __init__(self, method: str, path: str, status_code: int, message: str):
        self.method = method
        self.path = path
        self.status_code = status_code
        self.message = message
        super().__init__(f"{method} {path} -> {status_code}: {message}")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message") or str(error)
        return body.get("message") or error or str(body)
    return str(body)


def parse_settlement(data: dict) -> Settlement:
    """
    Parse a Kalshi settlement record.

    The held side is whichever side has contracts; P&L is revenue minus
    that side's cost. Win when the market result matches the held side.
    """
    yes_count = data.get("yes_count", 0) or 0
    no_count = data.get("no_count", 0) or 0
    side = Side.YES if yes_count > 0 else Side.NO
    count = yes_count if side == Side.YES else no_count
    cost = (data.get("yes_total_cost") if side == Side.YES else data.get("no_total_cost")) or 0
    revenue = data.get("revenue", 0) or 0
    market_result = (data.get("market_result") or "").lower()

    if market_result in ("yes", "no"):
        result = "win" if market_result == side.value else "loss"
    else:
        result = "unknown"

    return Settlement(
        ticker=data.get("ticker", ""),
        side=side,
        count=count,
        price_cents=cost // count if count else 0,
        result=result,
        pnl_cents=revenue - cost,
        settled_time=data.get("settled_time", ""),
        market_result=market_result or "unknown",
    )


def parse_levels(levels: Optional[list]) -> list[tuple[int, int]]:
    """Orderbook levels as (price_cents, quantity) pairs."""
    return [(int(level[0]), int(level[1])) for level in (levels or []) if len(level) >= 2]


class KalshiClient:
    """Authenticated client for Kalshi trading API."""

    def __init__(
        self,
        auth: Optional[KalshiAuth] = None,
        base_url: str = "",
        cities: Optional[list[CityConfig]] = None,
    ):
        self._auth = auth or KalshiAuth()
        self._base_url = base_url or config.api.kalshi_api_base_url
        self._cities = cities if cities is not None else config.cities
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=15.0,
            headers={"Accept": "application/json"},
        )
        self._finder = KalshiMarketFinder(self._client)

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        """Make an authenticated request to the Kalshi API.

        Args:
            method: HTTP method (GET, POST, DELETE)
            path: API path relative to the base URL (e.g., /portfolio/balance)
            **kwargs: Additional arguments to httpx (json, params, etc.)

        Raises:
            KalshiAPIError: non-2xx response
            httpx.HTTPError: transport failure
        """
        # Signature covers the full path relative to the domain
        base_path = urlparse(self._base_url).path.rstrip("/")
        full_path = f"{base_path}/{path.lstrip('/')}"

        headers = self._auth.get_auth_headers(method, full_path)
        resp = await self._client.request(method, path, headers=headers, **kwargs)
        if resp.is_error:
            raise KalshiAPIError(method, path, resp.status_code, _error_message(resp))

        if resp.status_code == 204 or not resp.content:
            return {}
        return resp.json()

    async def resting_orders(self) -> list[RestingOrder]:
        data = await self._request("GET", "/portfolio/orders", params={"status": "resting"})
        return [
            RestingOrder(order_id=o.get("order_id", ""), ticker=o.get("ticker", ""))
            for o in data.get("orders") or []
        ]

    async def cancel_order(self, order_id: str) -> None:
        await self._request("DELETE", f"/portfolio/orders/{order_id}")
        logger.info(f"Cancelled resting order {order_id}")

    async def settlements(self, ticker: str) -> list[Settlement]:
        """Settlements for a market ticker, newest first as returned."""
        data = await self._request("GET", "/portfolio/settlements", params={"ticker": ticker})
        return [
            parse_settlement(s)
            for s in data.get("settlements") or []
            if s.get("ticker") == ticker
        ]

    async def balance(self) -> int:
        """Available balance in cents."""
        data = await self._request("GET", "/portfolio/balance")
        return int(data.get("balance", 0) or 0)

    async def positions(self) -> list[Position]:
        """Open positions; positive position is YES, negative is NO."""
        data = await self._request("GET", "/portfolio/positions")
        positions = []
        for p in data.get("market_positions") or []:
            qty = p.get("position", 0) or 0
            if qty == 0:
                continue
            positions.append(Position(
                ticker=p.get("ticker", ""),
                side=Side.YES if qty > 0 else Side.NO,
                count=abs(qty),
            ))
        return positions

    async def orderbook(self, ticker: str) -> Orderbook:
        data = await self._request("GET", f"/markets/{ticker}/orderbook")
        book = data.get("orderbook") or {}
        return Orderbook(yes=parse_levels(book.get("yes")), no=parse_levels(book.get("no")))

    async def place_order(self, order: OrderRequest) -> OrderResult:
        """Place a limit buy order.

        Raises:
            ValueError: price outside 1-99 cents or non-positive count
            KalshiAPIError: order rejected
        """
        if not (1 <= order.price_cents <= 99):
            raise ValueError(f"Invalid price: {order.price_cents} cents. Must be between 1 and 99.")
        if order.shares <= 0:
            raise ValueError(f"Invalid count: {order.shares}. Must be positive.")

        body = {
            "ticker": order.ticker,
            "action": "buy",
            "side": order.side.value,
            "count": order.shares,
            "type": "limit",
            "client_order_id": str(uuid.uuid4()),
        }
        if order.side == Side.YES:
            body["yes_price"] = order.price_cents
        else:
            body["no_price"] = order.price_cents

        data = await self._request("POST", "/portfolio/orders", json=body)
        placed = data.get("order", data)
        return OrderResult(
            order_id=placed.get("order_id", ""),
            status=placed.get("status", "unknown"),
        )

    async def active_markets(self) -> list[MarketState]:
        """Brackets of the nearest-closing open event across configured cities."""
        return await self._finder.find_active_markets(self._cities)
