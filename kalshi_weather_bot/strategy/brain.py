"""
Decision engine contract.

A Brain maps one bracket's context to exactly one TradeDecision. It never
raises for missing or malformed optional data; those degrade to PASS.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol

from ..core.types import (
    LedgerRow,
    MarketState,
    Orderbook,
    Stats,
    TradeDecision,
    WeatherSnapshot,
)


@dataclass
class DecisionContext:
    """Everything a decision engine sees for one bracket."""
    prompt_md: str
    stats: Stats
    market: MarketState
    orderbook: Orderbook
    weather: Optional[WeatherSnapshot] = None
    last_n_trades: list[LedgerRow] = field(default_factory=list)


class Brain(Protocol):
    """Decision engine interface shared by the rules and LLM engines."""

    async def decide(self, ctx: DecisionContext) -> TradeDecision:
        ...
