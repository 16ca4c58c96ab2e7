"""
Alert System

Sends notifications for important events via:
- Discord webhooks
- Telegram bots

Alert levels:
- INFO: Trade executions (paper or live)
- ERROR: Failed cycles
- CRITICAL: Order placed with no ledger record
"""

import httpx
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from enum import Enum

from ..config import config
from .logger import get_logger

logger = get_logger("alerts")


class AlertLevel(Enum):
    """Alert severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class Alert:
    """An alert to be sent."""
    level: AlertLevel
    title: str
    message: str
    details: Optional[dict] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()

    def to_discord_embed(self) -> dict:
        """Format as Discord embed."""
        colors = {
            AlertLevel.INFO: 0x3498db,      # Blue
            AlertLevel.WARNING: 0xf39c12,   # Orange
            AlertLevel.ERROR: 0xe74c3c,     # Red
            AlertLevel.CRITICAL: 0x9b59b6,  # Purple
        }

        embed = {
            "title": f"{self._level_emoji()} {self.title}",
            "description": self.message,
            "color": colors.get(self.level, 0x95a5a6),
            "timestamp": self.timestamp.isoformat(),
            "footer": {"text": "Kalshi Weather Bot"},
        }

        if self.details:
            embed["fields"] = [
                {"name": k, "value": str(v), "inline": True}
                for k, v in self.details.items()
            ]

        return embed

    def to_telegram_message(self) -> str:
        """Format as Telegram message."""
        msg = f"{self._level_emoji()} *{self.title}*\n\n{self.message}"

        if self.details:
            msg += "\n\n*Details:*"
            for k, v in self.details.items():
                msg += f"\n• {k}: `{v}`"

        msg += f"\n\n_{self.timestamp.strftime('%Y-%m-%d %H:%M:%S')}_"
        return msg

    def _level_emoji(self) -> str:
        emojis = {
            AlertLevel.INFO: "ℹ️",
            AlertLevel.WARNING: "⚠️",
            AlertLevel.ERROR: "❌",
            AlertLevel.CRITICAL: "🚨",
        }
        return emojis.get(self.level, "📢")


class AlertManager:
    """
    Manages sending alerts to configured channels.
    """

    def __init__(
        self,
        discord_webhook: Optional[str] = None,
        telegram_token: Optional[str] = None,
        telegram_chat_id: Optional[str] = None,
    ):
        self.discord_webhook = discord_webhook or config.alerts.discord_webhook_url
        self.telegram_token = telegram_token or config.alerts.telegram_bot_token
        self.telegram_chat_id = telegram_chat_id or config.alerts.telegram_chat_id

        self.client = httpx.AsyncClient(timeout=10.0)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def is_configured(self) -> bool:
        """Check if any alert channel is configured."""
        return bool(self.discord_webhook) or bool(self.telegram_token and self.telegram_chat_id)

    async def send(self, alert: Alert) -> bool:
        """
        Send an alert to all configured channels.

        Delivery failures are logged, never raised: an unreachable webhook
        must not mask the condition being reported.

        Returns:
            True if alert was sent successfully to at least one channel
        """
        success = False

        if self.discord_webhook:
            try:
                success = await self._send_discord(alert) or success
            except httpx.HTTPError as e:
                logger.warning(f"Discord alert failed: {e}")

        if self.telegram_token and self.telegram_chat_id:
            try:
                success = await self._send_telegram(alert) or success
            except httpx.HTTPError as e:
                logger.warning(f"Telegram alert failed: {e}")

        return success

    async def _send_discord(self, alert: Alert) -> bool:
        response = await self.client.post(
            self.discord_webhook,
            json={"embeds": [alert.to_discord_embed()]},
        )
        return response.status_code in [200, 204]

    async def _send_telegram(self, alert: Alert) -> bool:
        url = f"https://api.telegram.org/bot{self.telegram_token}/sendMessage"

        payload = {
            "chat_id": self.telegram_chat_id,
            "text": alert.to_telegram_message(),
            "parse_mode": "Markdown",
        }

        response = await self.client.post(url, json=payload)
        return response.status_code == 200

    # Convenience methods for common alerts

    async def trade_executed(self, ticker: str, side: str, shares: int, price_cents: int, edge: float, paper: bool):
        """Send alert for an executed trade."""
        mode = "PAPER" if paper else "LIVE"
        alert = Alert(
            level=AlertLevel.INFO,
            title=f"{mode} Trade: {ticker}",
            message=f"Bought {shares}x {side.upper()} @ {price_cents}¢",
            details={
                "Edge": f"{edge*100:.1f}pp",
                "Side": side.upper(),
            },
        )
        await self.send(alert)

    async def cycle_failed(self, error: str):
        """Send alert for a cycle that aborted with an error."""
        alert = Alert(
            level=AlertLevel.ERROR,
            title="Trading Cycle Failed",
            message=error,
        )
        await self.send(alert)

    async def ledger_desync(self, order_id: str, ticker: str, error: str):
        """Send alert for an order the ledger failed to record."""
        alert = Alert(
            level=AlertLevel.CRITICAL,
            title="Order Placed, Ledger Write Failed",
            message="Reconcile the ledger against the exchange before the next cycle.",
            details={
                "Order": order_id,
                "Ticker": ticker,
                "Error": error,
            },
        )
        await self.send(alert)
