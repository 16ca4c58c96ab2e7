"""
Tests for alert formatting and delivery.
"""

import json

import httpx
import pytest

from kalshi_weather_bot.monitoring.alerts import Alert, AlertLevel, AlertManager


def manager(handler, discord="https://discord.test/webhook", token=None, chat_id=None) -> AlertManager:
    alerts = AlertManager(discord_webhook=discord, telegram_token=token, telegram_chat_id=chat_id)
    alerts.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return alerts


class TestAlert:
    """Tests for channel formatting."""

    def test_discord_embed(self):
        alert = Alert(AlertLevel.CRITICAL, "Desync", "Reconcile", details={"Order": "ord-1"})
        embed = alert.to_discord_embed()

        assert embed["title"].endswith("Desync")
        assert embed["color"] == 0x9b59b6
        assert embed["fields"] == [{"name": "Order", "value": "ord-1", "inline": True}]

    def test_telegram_message(self):
        alert = Alert(AlertLevel.INFO, "PAPER Trade", "Bought 10x YES @ 40¢", details={"Edge": "8.0pp"})
        msg = alert.to_telegram_message()

        assert "*PAPER Trade*" in msg
        assert "• Edge: `8.0pp`" in msg


class TestAlertManager:
    """Tests for sending through configured channels."""

    @pytest.mark.asyncio
    async def test_trade_alert_posts_embed(self):
        posted = []

        def handler(request: httpx.Request) -> httpx.Response:
            posted.append(json.loads(request.content))
            return httpx.Response(204)

        alerts = manager(handler)
        await alerts.trade_executed("KXHIGHNY-26JAN28-T70", "yes", 10, 40, 0.08, paper=True)
        await alerts.close()

        embed = posted[0]["embeds"][0]
        assert embed["title"].endswith("PAPER Trade: KXHIGHNY-26JAN28-T70")
        assert embed["description"] == "Bought 10x YES @ 40¢"

    @pytest.mark.asyncio
    async def test_telegram_channel(self):
        urls = []

        def handler(request: httpx.Request) -> httpx.Response:
            urls.append(str(request.url))
            return httpx.Response(200, json={"ok": True})

        alerts = manager(handler, discord=None, token="bot-token", chat_id="42")
        assert alerts.is_configured
        assert await alerts.send(Alert(AlertLevel.ERROR, "Trading Cycle Failed", "boom"))
        await alerts.close()

        assert urls == ["https://api.telegram.org/botbot-token/sendMessage"]

    @pytest.mark.asyncio
    async def test_delivery_failure_is_not_raised(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        alerts = manager(handler)
        assert not await alerts.send(Alert(AlertLevel.CRITICAL, "Desync", "Reconcile"))
        await alerts.close()

    @pytest.mark.asyncio
    async def test_unconfigured_sends_nothing(self):
        alerts = manager(lambda request: httpx.Response(500), discord=None)
        assert not alerts.is_configured
        assert not await alerts.send(Alert(AlertLevel.INFO, "x", "y"))
        await alerts.close()
