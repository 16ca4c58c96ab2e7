"""
Rules Brain

Deterministic decision engine: compares the ensemble-implied probability
of a bracket with the market-implied probability and buys the side with
the larger confidence-adjusted, fee-aware edge. No network access.
"""

from ..core.types import (
    Action,
    ForecastConfidence,
    Side,
    TradeDecision,
    market_type_from_market,
)
from ..monitoring.logger import get_logger
from ..trading.config import TradingConfig, default_config
from .brain import DecisionContext
from .pricing import estimate_fee_pp, size_from_edge, spread_aware_price
from .probability import estimate_yes_probability

logger = get_logger("rules_brain")


class RulesBrain:
    """
    Pure deterministic brain.

    Decision flow:
    1. Require weather and a YES ask
    2. Derive payout shape from strike fields
    3. Skip extreme (settled/stale) prices
    4. Estimate ensemble YES probability
    5. Confidence-adjust both sides' edge, pick the better side
    6. Subtract the taker fee, apply edge/price/liquidity filters
    7. Size and price the order
    """

    def __init__(self, config: TradingConfig = None):
        self.config = config or default_config

    def confidence_multiplier(self, confidence: ForecastConfidence) -> float:
        """Edge multiplier for a forecast confidence tier."""
        if confidence == ForecastConfidence.HIGH:
            return self.config.confidence_multiplier_high
        if confidence == ForecastConfidence.MEDIUM:
            return self.config.confidence_multiplier_medium
        return self.config.confidence_multiplier_low

    async def decide(self, ctx: DecisionContext) -> TradeDecision:
        return self.evaluate(ctx)

    def evaluate(self, ctx: DecisionContext) -> TradeDecision:
        """Synchronous core of decide()."""
        cfg = self.config
        market = ctx.market
        weather = ctx.weather

        if weather is None:
            return TradeDecision.pass_("No weather data available")

        market_type = market_type_from_market(market)
        logger.info(
            f"Market: '{market.title}' | ticker: {market.ticker} | MarketType: {market_type} | "
            f"floor={market.floor_strike} cap={market.cap_strike} strike_type='{market.strike_type}' | "
            f"Confidence: {weather.confidence.value}"
        )

        if market.yes_ask is None:
            return TradeDecision.pass_("No yes_ask price available")

        yes_ask = market.yes_ask
        no_ask = market.no_ask if market.no_ask is not None else 100
        market_implied = yes_ask / 100.0

        logger.info(
            f"Prices: yes_ask={yes_ask}¢ no_ask={no_ask}¢ | "
            f"Market implied YES={market_implied * 100:.0f}%"
        )

        if market_implied > cfg.max_implied_probability or market_implied < cfg.min_implied_probability:
            return TradeDecision.pass_(
                f"Extreme price: yes_ask={yes_ask}¢ (implied {market_implied * 100:.0f}%), "
                f"likely settled or stale"
            )

        if market_type is None:
            return TradeDecision.pass_(
                f"Cannot determine market type for '{market.title}' from strike fields"
            )

        estimate = estimate_yes_probability(weather, market_type, cfg.logistic_scale_f)
        if estimate is None:
            logger.info("No ensemble data and non-Above market type, cannot estimate")
            return TradeDecision.pass_(
                f"Cannot determine ensemble probability for '{market.title}'"
            )

        ens_yes = estimate.probability
        logger.info(
            f"Ensemble YES ({estimate.method}): {estimate.detail} = {ens_yes * 100:.1f}% | {market_type}"
        )

        edge_yes = ens_yes - market_implied
        edge_no = (1.0 - ens_yes) - no_ask / 100.0

        multiplier = self.confidence_multiplier(weather.confidence)
        adj_edge_yes = edge_yes * multiplier
        adj_edge_no = edge_no * multiplier

        if adj_edge_yes >= adj_edge_no:
            side, adj_edge, price = Side.YES, adj_edge_yes, yes_ask
        else:
            side, adj_edge, price = Side.NO, adj_edge_no, no_ask

        fee_pp = estimate_fee_pp(price, cfg.taker_fee_rate)
        net_edge = adj_edge - fee_pp
        side_label = side.value.upper()

        logger.info(
            f"Edge: YES={edge_yes * 100:+.1f}pp NO={edge_no * 100:+.1f}pp "
            f"(adj YES={adj_edge_yes * 100:+.1f}pp NO={adj_edge_no * 100:+.1f}pp) -> best={side_label} | "
            f"Gross edge: {adj_edge * 100:.1f}pp, fee: ~{fee_pp * 100:.1f}pp, net edge: {net_edge * 100:.1f}pp"
        )

        if net_edge < cfg.min_net_edge:
            return TradeDecision.pass_(
                f"Edge too small: {net_edge * 100:.1f}pp net ({adj_edge * 100:.1f}pp adj) on {side_label}. "
                f"Ensemble YES={ens_yes * 100:.0f}% vs market={market_implied * 100:.0f}%. "
                f"{weather.confidence.value} confidence."
            )

        if price > cfg.max_price_cents:
            return TradeDecision.pass_(
                f"Edge {adj_edge * 100:.1f}pp on {side_label} but price {price}¢ > {cfg.max_price_cents}¢ cap"
            )

        shares = size_from_edge(net_edge, cfg)
        max_price = spread_aware_price(
            market, ctx.orderbook, side, cfg.narrow_spread_cents, cfg.min_ask_depth
        )

        if max_price > cfg.max_price_cents:
            return TradeDecision.pass_(
                f"Edge {adj_edge * 100:.1f}pp on {side_label} but spread-aware price "
                f"{max_price}¢ > {cfg.max_price_cents}¢"
            )

        if market.volume_24h < cfg.min_liquidity and market.open_interest < cfg.min_liquidity:
            return TradeDecision.pass_(
                f"Net edge {net_edge * 100:.1f}pp on {side_label} but illiquid: "
                f"vol_24h={market.volume_24h}, OI={market.open_interest}"
            )

        reasoning = (
            f"Ensemble YES={ens_yes * 100:.0f}% ({estimate.method}) vs market={market_implied * 100:.0f}% -> "
            f"{net_edge * 100:.1f}pp net edge on {side_label} "
            f"(gross {adj_edge * 100:.1f}pp - fee ~{fee_pp * 100:.1f}pp, {weather.confidence.value} confidence). "
            f"{shares}x @ {max_price}¢. vol_24h={market.volume_24h} OI={market.open_interest}"
        )

        return TradeDecision(
            action=Action.BUY,
            side=side,
            shares=shares,
            max_price_cents=max_price,
            reasoning=reasoning,
            edge_magnitude=abs(net_edge),
        )
