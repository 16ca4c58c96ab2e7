"""
Shared fixtures for the test suite.
"""

import pytest

from kalshi_weather_bot.core.types import (
    ForecastConfidence,
    MarketState,
    Orderbook,
    WeatherSnapshot,
)
from kalshi_weather_bot.models.ensemble import build_buckets, summarize_members
from kalshi_weather_bot.trading.config import TradingConfig
from kalshi_weather_bot.trading.ledger import LedgerStore


@pytest.fixture
def trading_config():
    """Deterministic config independent of the environment."""
    return TradingConfig(
        paper_trade=True,
        confirm_live=False,
        max_shares=25,
        max_daily_loss_cents=1000,
        max_consecutive_losses=7,
        min_balance_cents=500,
        min_minutes_to_expiry=2.0,
        min_net_edge=0.05,
        sizing_mode="fixed",
        order_shares=50,
    )


@pytest.fixture
def ledger(tmp_path):
    store = LedgerStore(tmp_path / "data")
    store.data_dir.mkdir(parents=True)
    store.prompt_path.write_text("# Strategy\nTrade the weather.\n")
    return store


@pytest.fixture
def make_market():
    def _make(
        ticker="KXHIGHNY-26JAN28-T70",
        event_ticker="KXHIGHNY-26JAN28",
        yes_bid=38,
        yes_ask=40,
        no_bid=58,
        no_ask=62,
        volume_24h=500,
        open_interest=300,
        floor_strike=70.0,
        cap_strike=None,
        strike_type="greater",
        minutes_to_expiry=600.0,
    ):
        return MarketState(
            ticker=ticker,
            event_ticker=event_ticker,
            title=f"High temp in NYC ({ticker})",
            yes_bid=yes_bid,
            yes_ask=yes_ask,
            no_bid=no_bid,
            no_ask=no_ask,
            last_price=yes_ask,
            volume=1000,
            volume_24h=volume_24h,
            open_interest=open_interest,
            expiration_time="2026-01-29T05:00:00Z",
            minutes_to_expiry=minutes_to_expiry,
            floor_strike=floor_strike,
            cap_strike=cap_strike,
            strike_type=strike_type,
        )
    return _make


@pytest.fixture
def make_weather():
    def _make(member_highs=None, confidence=ForecastConfidence.HIGH, forecast_high=71.0):
        member_highs = list(member_highs or [])
        return WeatherSnapshot(
            city="New York",
            current_temp_f=60.0,
            open_meteo_forecast_high=forecast_high,
            nws_forecast_high=71.0,
            nws_forecast_low=55.0,
            nws_short_forecast="Sunny",
            ensemble=summarize_members(member_highs),
            bucket_probabilities=build_buckets(member_highs),
            ensemble_member_highs=member_highs,
            confidence=confidence,
        )
    return _make


@pytest.fixture
def empty_orderbook():
    return Orderbook(yes=[], no=[])
