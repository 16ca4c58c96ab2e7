"""
Cycle Orchestrator

Runs one trading cycle to completion or a safe early exit:

    cancel stale orders -> settle pending trade -> risk gate -> market scan
    -> event dedup -> weather -> evaluate brackets -> select best
    -> race guard -> execute (order first, ledger second)

Safe exits (veto, nothing to trade, position conflicts) return a
CycleResult. Exchange and ledger failures propagate. An order that was
acknowledged but could not be recorded raises LedgerDesyncError.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol

from ..apis.weather_feed import WeatherFeed
from ..config import city_for_event
from ..core.types import (
    LedgerRow,
    MarketState,
    Orderbook,
    OrderRequest,
    OrderResult,
    Position,
    RestingOrder,
    Settlement,
    Side,
    TradeDecision,
    TradeResult,
    WeatherSnapshot,
    market_type_from_market,
    market_type_label,
)
from ..monitoring.logger import get_logger, trade_logger
from ..strategy.brain import Brain, DecisionContext
from ..strategy.probability import yes_from_members
from .config import TradingConfig
from .ledger import LedgerStore
from .risk_manager import RiskManager
from .stats import compute

logger = get_logger("engine")


class Exchange(Protocol):
    """Exchange operations the orchestrator depends on."""

    async def resting_orders(self) -> list[RestingOrder]: ...

    async def cancel_order(self, order_id: str) -> None: ...

    async def settlements(self, ticker: str) -> list[Settlement]: ...

    async def balance(self) -> int: ...

    async def active_markets(self) -> list[MarketState]: ...

    async def positions(self) -> list[Position]: ...

    async def orderbook(self, ticker: str) -> Orderbook: ...

    async def place_order(self, order: OrderRequest) -> OrderResult: ...


class LedgerDesyncError(Exception):
    """An order was placed on the exchange but the ledger write failed.

    Carries the confirmed order id so the operator can reconcile by hand.
    """

    def __init__(self, order_id: str, ticker: str, cause: Exception):
        self.order_id = order_id
        self.ticker = ticker
        self.cause = cause
        super().__init__(f"Order {order_id} on {ticker} placed but ledger write failed: {cause}")


class CycleOutcome(Enum):
    """How a cycle ended."""
    RISK_VETO = "risk_veto"
    NO_MARKETS = "no_markets"
    EVENT_HELD = "event_held"
    NO_CANDIDATES = "no_candidates"
    RACE_ABORTED = "race_aborted"
    PENDING_UNRESOLVED = "pending_unresolved"
    TRADED = "traded"


@dataclass
class CycleResult:
    """Summary of one cycle."""
    outcome: CycleOutcome
    event_ticker: Optional[str] = None
    scan_lines: list[str] = field(default_factory=list)
    decision: Optional[TradeDecision] = None
    ticker: Optional[str] = None
    order_id: Optional[str] = None
    shares: int = 0
    price_cents: int = 0
    paper: bool = False
    reason: str = ""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _age_minutes(row: LedgerRow, now: datetime) -> Optional[float]:
    opened = row.opened_at
    if opened is None:
        return None
    if opened.tzinfo is None:
        opened = opened.replace(tzinfo=timezone.utc)
    return (now - opened).total_seconds() / 60.0


def scan_line(market: MarketState, weather: Optional[WeatherSnapshot], decision: TradeDecision) -> str:
    """One row of the bracket scan table."""
    market_type = market_type_from_market(market)

    ens_pct = "n/a"
    if weather is not None and market_type is not None and weather.ensemble_member_highs:
        ens_pct = f"{yes_from_members(weather.ensemble_member_highs, market_type) * 100:.0f}%"

    mkt_pct = f"{market.yes_ask}%" if market.yes_ask is not None else "n/a"

    if decision.is_buy:
        action = f"BUY {decision.side.value.upper()}"
    else:
        action = "PASS"

    return (
        f"  {market.short_ticker:<12} ({market_type_label(market_type):<8}): "
        f"ens={ens_pct:<5} mkt={mkt_pct:<5} edge={decision.edge_magnitude * 100:+.1f}pp → {action}"
    )


async def reap_stale_orders(exchange: Exchange, ledger: LedgerStore) -> int:
    """
    Cancel every resting order and mark its ledger row cancelled.

    Every order is attempted; the first failure is raised afterwards.
    """
    errors: list[Exception] = []
    cancelled = 0
    for order in await exchange.resting_orders():
        try:
            await exchange.cancel_order(order.order_id)
            ledger.cancel_trade(order.order_id)
        except Exception as e:
            logger.error(f"Failed to cancel stale order {order.order_id}: {e}")
            errors.append(e)
            continue
        cancelled += 1
        logger.info(f"Canceled stale order: {order.order_id} (ledger marked cancelled)")

    if errors:
        raise errors[0]
    return cancelled


async def settle_pending(
    exchange: Exchange,
    ledger: LedgerStore,
    config: TradingConfig,
    now: Optional[datetime] = None,
) -> Optional[TradeResult]:
    """
    Resolve the newest pending ledger row.

    Writes the exchange settlement when one exists; otherwise marks the
    row unknown once it is older than the staleness threshold.

    Returns:
        The terminal result written, or None if nothing changed
    """
    pending = ledger.last_pending()
    if pending is None:
        return None

    now = now or _utc_now()
    settlements = await exchange.settlements(pending.ticker)
    if settlements:
        s = settlements[0]
        if not ledger.settle_last_trade(s):
            return None
        ledger.write_stats(compute(ledger.read_ledger()))
        trade_logger.log_settlement(s.ticker, s.result, s.market_result, s.pnl_cents)
        logger.info(f"Settled: {s.result.upper()} (market_result={s.market_result}) | {s.ticker} {s.pnl_cents}¢")
        return TradeResult(s.result) if s.result in ("win", "loss") else TradeResult.UNKNOWN

    age = _age_minutes(pending, now)
    if age is None or age <= config.stale_pending_minutes:
        return None

    zombie = Settlement(
        ticker=pending.ticker,
        side=Side.YES,
        count=0,
        price_cents=0,
        result="unknown",
        pnl_cents=0,
        settled_time=now.isoformat(),
        market_result="unknown",
    )
    if not ledger.settle_last_trade(zombie):
        return None
    ledger.write_stats(compute(ledger.read_ledger()))
    logger.warning(
        f"Zombie cleanup: pending entry for {pending.ticker} was {age:.0f}min old, marked unknown"
    )
    return TradeResult.UNKNOWN


def select_best(candidates: list[tuple[MarketState, TradeDecision]]) -> Optional[tuple[MarketState, TradeDecision]]:
    """Highest edge wins; ties keep the earliest candidate."""
    best = None
    for candidate in candidates:
        if best is None or candidate[1].edge_magnitude > best[1].edge_magnitude:
            best = candidate
    return best


async def run_cycle(
    exchange: Exchange,
    brain: Brain,
    weather_feed: WeatherFeed,
    ledger: LedgerStore,
    config: TradingConfig,
) -> CycleResult:
    """Run one trading cycle."""
    # 1. Cancel stale resting orders from previous cycles
    await reap_stale_orders(exchange, ledger)

    # 2. Settle the previous trade (or clean up a zombie)
    await settle_pending(exchange, ledger, config)

    # 3. Risk gate
    rows = ledger.read_ledger()
    stats = compute(rows)
    balance = await exchange.balance()
    veto = RiskManager(config).veto_reason(stats, balance)
    if veto:
        logger.info(f"Risk veto: {veto}")
        return CycleResult(CycleOutcome.RISK_VETO, reason=veto)

    # 4. Markets: all brackets of the nearest event
    brackets = await exchange.active_markets()
    if not brackets:
        logger.info("No active markets")
        return CycleResult(CycleOutcome.NO_MARKETS, reason="No active markets")

    brackets = [m for m in brackets if m.minutes_to_expiry >= config.min_minutes_to_expiry]
    if not brackets:
        logger.info("All brackets too close to expiry")
        return CycleResult(CycleOutcome.NO_MARKETS, reason="All brackets too close to expiry")

    event_ticker = brackets[0].event_ticker
    bracket_tickers = {m.ticker for m in brackets}
    logger.info(
        f"Found {len(brackets)} brackets for event {event_ticker} "
        f"(expiry in {brackets[0].minutes_to_expiry:.1f}min)"
    )

    # 5. Event-level position check
    positions = await exchange.positions()
    if any(p.ticker in bracket_tickers for p in positions):
        logger.warning(f"Existing position on event {event_ticker}, skipping entire event")
        return CycleResult(CycleOutcome.EVENT_HELD, event_ticker=event_ticker, reason="Existing position on event")

    # 6. Weather: fetched once, shared across brackets
    weather: Optional[WeatherSnapshot] = None
    city = city_for_event(event_ticker)
    if city is None:
        logger.warning(f"No city configured for event {event_ticker}, evaluating without weather")
    else:
        try:
            weather = await weather_feed.forecast(city)
        except Exception as e:
            logger.warning(f"Weather forecast failed: {e}")

    # 7. Evaluate every bracket
    prompt_md = ledger.read_prompt()
    recent = list(reversed(rows))[:config.recent_trades]
    candidates: list[tuple[MarketState, TradeDecision]] = []
    scan_lines: list[str] = []

    for market in brackets:
        orderbook = await exchange.orderbook(market.ticker)
        ctx = DecisionContext(
            prompt_md=prompt_md,
            stats=stats,
            market=market,
            orderbook=orderbook,
            weather=weather,
            last_n_trades=recent,
        )
        decision = await brain.decide(ctx)

        trade_logger.log_decision(
            market.ticker,
            decision.action.value,
            decision.side.value if decision.side else None,
            decision.edge_magnitude,
            decision.reasoning,
        )
        scan_lines.append(scan_line(market, weather, decision))
        if decision.is_buy and decision.shares < 1:
            logger.warning(f"Ignoring BUY on {market.ticker} with {decision.shares} shares")
        elif decision.is_buy:
            candidates.append((market, decision))

    logger.info(f"Bracket scan for {event_ticker}:")
    for line in scan_lines:
        logger.info(line)

    # 8. Select the best bracket
    best = select_best(candidates)
    if best is None:
        logger.info("PASS: No bracket has sufficient edge")
        return CycleResult(
            CycleOutcome.NO_CANDIDATES,
            event_ticker=event_ticker,
            scan_lines=scan_lines,
            reason="No bracket has sufficient edge",
        )

    market, decision = best
    side = decision.side
    shares = min(decision.shares, config.max_shares)
    price = max(1, min(99, decision.max_price_cents))
    logger.info(
        f"Best bracket: {market.ticker} | edge={decision.edge_magnitude * 100:.1f}pp | "
        f"{side.value.upper()} {shares}x @ {price}¢ | {decision.reasoning}"
    )

    # 9. Race guard: a position may have appeared during evaluation
    fresh_positions = await exchange.positions()
    if any(p.ticker in bracket_tickers for p in fresh_positions):
        logger.warning(f"Position appeared on event {event_ticker} during evaluation, aborting")
        return CycleResult(
            CycleOutcome.RACE_ABORTED,
            event_ticker=event_ticker,
            scan_lines=scan_lines,
            decision=decision,
            ticker=market.ticker,
            reason="Position appeared during evaluation",
        )

    # One pending row at a time
    pending = ledger.last_pending()
    if pending is not None:
        logger.warning(f"Pending trade on {pending.ticker} not yet settled, not opening another")
        return CycleResult(
            CycleOutcome.PENDING_UNRESOLVED,
            event_ticker=event_ticker,
            scan_lines=scan_lines,
            decision=decision,
            ticker=market.ticker,
            reason=f"Pending trade {pending.order_id} unresolved",
        )

    # 10. Execute: order first, ledger second
    def ledger_row(order_id: str) -> LedgerRow:
        return LedgerRow(
            timestamp=_utc_now().isoformat(),
            ticker=market.ticker,
            side=side.value,
            shares=shares,
            price=price,
            result=TradeResult.PENDING,
            pnl_cents=0,
            cumulative_cents=stats.total_pnl_cents,
            order_id=order_id,
        )

    if config.paper_trade:
        order_id = f"paper-{int(time.time() * 1000)}"
        ledger.append_ledger(ledger_row(order_id))
        logger.info(f"PAPER: {side.value.upper()} {shares}x @ {price}¢ | {market.ticker} ({order_id})")
    else:
        try:
            result = await exchange.place_order(OrderRequest(
                ticker=market.ticker,
                side=side,
                shares=shares,
                price_cents=price,
            ))
        except Exception as e:
            logger.error(f"Order placement failed: {e}")
            raise

        order_id = result.order_id
        logger.info(
            f"LIVE: {side.value.upper()} {shares}x @ {price}¢ | {market.ticker} "
            f"(order {order_id} status: {result.status})"
        )
        try:
            ledger.append_ledger(ledger_row(order_id))
        except Exception as e:
            logger.critical(f"CRITICAL: Order {order_id} placed but ledger write failed: {e}")
            trade_logger.log_critical(order_id, market.ticker, str(e))
            raise LedgerDesyncError(order_id, market.ticker, e) from e

    trade_logger.log_execution(market.ticker, side.value, shares, price, order_id, config.paper_trade)
    return CycleResult(
        CycleOutcome.TRADED,
        event_ticker=event_ticker,
        scan_lines=scan_lines,
        decision=decision,
        ticker=market.ticker,
        order_id=order_id,
        shares=shares,
        price_cents=price,
        paper=config.paper_trade,
    )
