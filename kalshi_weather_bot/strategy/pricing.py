"""
Fees, sizing and limit-price selection for the rules engine.
"""

from ..core.types import MarketState, Orderbook, Side
from ..trading.config import TradingConfig, default_config


# (minimum net edge, share of order_shares) - first match wins
SIZING_TIERS: list[tuple[float, float]] = [
    (0.15, 1.0),
    (0.10, 0.6),
    (0.0, 0.3),
]


def estimate_fee_pp(price_cents: int, fee_rate: float = 0.07) -> float:
    """
    Estimate the Kalshi taker fee in probability points.

    Kalshi charges roughly min(price, 100 - price) * fee_rate cents per
    contract; dividing by 100 expresses it on the same scale as edge.

    Args:
        price_cents: Price paid per contract (1-99)
        fee_rate: Taker fee rate

    Returns:
        Fee as a fraction of a $1 contract (e.g. 0.021 at 30¢)
    """
    capped = min(price_cents, 100 - price_cents)
    return capped * fee_rate / 100.0


def size_from_edge(net_edge: float, config: TradingConfig = None) -> int:
    """Contracts to buy for a given net edge."""
    config = config or default_config
    if config.sizing_mode == "fixed":
        return config.order_shares

    for min_edge, share in SIZING_TIERS:
        if net_edge >= min_edge:
            return max(1, int(config.order_shares * share))
    return 1


def spread_aware_price(
    market: MarketState,
    orderbook: Orderbook,
    side: Side,
    narrow_spread_cents: int = 4,
    min_ask_depth: int = 10,
) -> int:
    """
    Pick the limit price for a buy on one side.

    Narrow spreads take the ask. Wide spreads only take the ask when enough
    size rests at that price; otherwise bid at the (integer) midpoint.
    """
    if side == Side.YES:
        bid = market.yes_bid if market.yes_bid is not None else 1
        ask = market.yes_ask if market.yes_ask is not None else 99
        levels = orderbook.yes
    else:
        bid = market.no_bid if market.no_bid is not None else 1
        ask = market.no_ask if market.no_ask is not None else 99
        levels = orderbook.no

    spread = max(0, ask - bid)
    if spread <= narrow_spread_cents:
        return ask

    ask_depth = sum(qty for price, qty in levels if price == ask)
    if ask_depth >= min_ask_depth:
        return ask
    return (bid + ask) // 2
