"""
Core data types shared by the orchestrator, decision engines and adapters.
"""

from .types import (
    Action,
    Side,
    TradeDecision,
    MarketState,
    Orderbook,
    Above,
    Below,
    Between,
    MarketType,
    market_type_from_market,
    market_type_label,
    ForecastConfidence,
    HourlyForecast,
    EnsembleForecast,
    TempBucketProbability,
    WeatherSnapshot,
    OrderRequest,
    OrderResult,
    RestingOrder,
    Position,
    Settlement,
    TradeResult,
    LedgerRow,
    Stats,
)

__all__ = [
    "Action",
    "Side",
    "TradeDecision",
    "MarketState",
    "Orderbook",
    "Above",
    "Below",
    "Between",
    "MarketType",
    "market_type_from_market",
    "market_type_label",
    "ForecastConfidence",
    "HourlyForecast",
    "EnsembleForecast",
    "TempBucketProbability",
    "WeatherSnapshot",
    "OrderRequest",
    "OrderResult",
    "RestingOrder",
    "Position",
    "Settlement",
    "TradeResult",
    "LedgerRow",
    "Stats",
]
