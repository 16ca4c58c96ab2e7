"""
LLM Brain

Decision engine that forwards the full bracket context to an external
reasoning service (OpenRouter) and parses a JSON verdict from the reply.

Expected verdict shape:
    {"action": "BUY" | "PASS", "side": "yes" | "no", "shares": int,
     "max_price_cents": int, "reasoning": str, "edge_magnitude": float}
"""

import json
from typing import Optional

from ..apis.openrouter import OpenRouterClient, OpenRouterError
from ..core.types import (
    Action,
    ForecastConfidence,
    LedgerRow,
    MarketState,
    Side,
    Stats,
    TradeDecision,
    WeatherSnapshot,
)
from ..monitoring.logger import get_logger
from .brain import DecisionContext
from .indicators import ensemble_summary, forecast_agreement

logger = get_logger("llm_brain")

PARSE_FAILURE = "Failed to parse AI response"

CONFIDENCE_LABELS = {
    ForecastConfidence.HIGH: "HIGH (<2°F std dev)",
    ForecastConfidence.MEDIUM: "MEDIUM (2-4°F std dev)",
    ForecastConfidence.LOW: "LOW (>4°F std dev)",
}


def format_stats(s: Stats) -> str:
    return (
        f"Trades: {s.total_trades} | W/L: {s.wins}/{s.losses} | Win rate: {s.win_rate * 100:.1f}% | "
        f"P&L: {s.total_pnl_cents}¢ | Today: {s.today_pnl_cents}¢ | Streak: {s.current_streak} | "
        f"Drawdown: {s.max_drawdown_cents}¢"
    )


def format_ledger(trades: list[LedgerRow]) -> str:
    if not trades:
        return "No trades yet."
    return "\n".join(
        f"{t.timestamp} | {t.ticker} | {t.side} | {t.shares}x @ {t.price}¢ | {t.result.value} | {t.pnl_cents}¢"
        for t in trades
    )


def format_market(m: MarketState) -> str:
    return (
        f"Ticker: {m.ticker} | Title: {m.title} | Yes bid/ask: {m.yes_bid}/{m.yes_ask} | "
        f"No bid/ask: {m.no_bid}/{m.no_ask} | Last: {m.last_price} | Vol: {m.volume} | "
        f"24h Vol: {m.volume_24h} | OI: {m.open_interest} | "
        f"Expiry: {m.expiration_time} ({m.minutes_to_expiry:.1f}min)"
    )


def format_ob_side(levels: list[tuple[int, int]]) -> str:
    if not levels:
        return "empty"
    return ", ".join(f"{price}¢ x{qty}" for price, qty in levels[:5])


def format_weather(w: WeatherSnapshot) -> str:
    """Weather narrative: sources, ensemble, bucket table and trajectory."""
    lines = [
        f"Current temp: {w.current_temp_f:.1f}°F",
        f"Forecast confidence: {CONFIDENCE_LABELS[w.confidence]}",
        f"Source agreement: {forecast_agreement(w)}",
    ]

    if w.nws_forecast_high is not None:
        nws = f"NWS forecast high: {w.nws_forecast_high:.0f}°F"
        if w.nws_short_forecast:
            nws += f" ({w.nws_short_forecast})"
        lines.append(nws)
    if w.nws_forecast_low is not None:
        lines.append(f"NWS forecast low: {w.nws_forecast_low:.0f}°F")

    lines.append(f"Open-Meteo forecast high: {w.open_meteo_forecast_high:.1f}°F")

    if w.ensemble is not None:
        lines.append(f"Ensemble: {ensemble_summary(w.ensemble)}")

    if w.bucket_probabilities:
        lines.append("")
        lines.append("Temperature bucket probabilities (ensemble-derived):")
        for b in w.bucket_probabilities:
            lines.append(f"  {b.label} → {b.probability * 100:.0f}%")

    if w.hourly_forecasts:
        lines.append("")
        lines.append("Hourly trajectory (today):")
        for h in w.hourly_forecasts[::3]:
            time_short = h.time.split("T", 1)[1] if "T" in h.time else h.time
            lines.append(f"  {time_short} → {h.temperature_f:.1f}°F")

    return "\n".join(lines) + "\n"


def build_prompt(ctx: DecisionContext) -> str:
    """Serialize the decision context into a single prompt."""
    if ctx.weather is not None:
        weather = f"\n\n---\n## WEATHER FORECAST ({ctx.weather.city})\n{format_weather(ctx.weather)}"
    else:
        weather = "\n\n---\n## WEATHER FORECAST\nUnavailable this cycle."

    return (
        f"{ctx.prompt_md}\n\n---\n## STATS\n{format_stats(ctx.stats)}"
        f"\n\n---\n## LAST {len(ctx.last_n_trades)} TRADES\n{format_ledger(ctx.last_n_trades)}"
        f"\n\n---\n## MARKET\n{format_market(ctx.market)}"
        f"\n\n---\n## ORDERBOOK\nYes bids: {format_ob_side(ctx.orderbook.yes)}"
        f"\nNo bids: {format_ob_side(ctx.orderbook.no)}{weather}"
    )


def _extract_json(raw: str) -> Optional[str]:
    """Locate the JSON verdict: fenced ```json block, bare object, or the
    span from the first '{' to the last '}'."""
    marker = raw.find("```json")
    if marker != -1:
        start = marker + len("```json")
        end = raw.find("```", start)
        return raw[start:end if end != -1 else len(raw)]

    stripped = raw.strip()
    if stripped.startswith("{"):
        return stripped

    first, last = raw.find("{"), raw.rfind("}")
    if first != -1 and last > first:
        return raw[first:last + 1]
    return None


def _order_int(value, low: int, high: Optional[int] = None) -> int:
    """Whole-number order field within [low, high]; ValueError otherwise."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"expected an integer, got {value!r}")
    if value < low or (high is not None and value > high):
        raise ValueError(f"{value} outside [{low}, {high}]")
    return value


def parse_decision(raw: str) -> TradeDecision:
    """
    Parse a completion into a TradeDecision.

    Never raises: any unrecognized shape, invalid JSON, or verdict that
    breaks the BUY/PASS invariants yields a PASS.
    """
    json_str = _extract_json(raw)
    if json_str is None:
        return TradeDecision.pass_(PARSE_FAILURE)

    try:
        data = json.loads(json_str.strip())
    except json.JSONDecodeError:
        return TradeDecision.pass_(PARSE_FAILURE)
    if not isinstance(data, dict):
        return TradeDecision.pass_(PARSE_FAILURE)

    try:
        action = Action(str(data["action"]).upper())
        reasoning = str(data.get("reasoning", ""))
        edge = abs(float(data.get("edge_magnitude") or 0.0))

        if action == Action.PASS:
            return TradeDecision(action=action, reasoning=reasoning, edge_magnitude=edge)

        return TradeDecision(
            action=action,
            side=Side(str(data["side"]).lower()),
            shares=_order_int(data["shares"], 1),
            max_price_cents=_order_int(data["max_price_cents"], 1, 99),
            reasoning=reasoning,
            edge_magnitude=edge,
        )
    except (KeyError, TypeError, ValueError):
        return TradeDecision.pass_(PARSE_FAILURE)


class LLMBrain:
    """Brain backed by an OpenRouter chat completion."""

    def __init__(self, client: OpenRouterClient = None):
        self.client = client or OpenRouterClient()

    async def close(self):
        await self.client.close()

    async def decide(self, ctx: DecisionContext) -> TradeDecision:
        prompt = build_prompt(ctx)
        try:
            content = await self.client.complete(prompt)
        except OpenRouterError as e:
            logger.warning(f"Reasoning service failed for {ctx.market.ticker}: {e}")
            return TradeDecision.pass_(f"Reasoning service unavailable: {e}")

        decision = parse_decision(content)
        if decision.reasoning == PARSE_FAILURE:
            logger.warning(f"Unparseable completion for {ctx.market.ticker}: {content[:200]!r}")
        return decision
