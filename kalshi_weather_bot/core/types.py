"""
Shared data types.

Market, weather, decision, ledger and exchange payloads passed between the
cycle orchestrator, the decision engines and the external collaborators.
Prices are integer cents (1-99), P&L is integer cents.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import math
from typing import Optional, Union


# ========================
# DECISIONS
# ========================

class Action(Enum):
    """Verdict of a decision engine."""
    BUY = "BUY"
    PASS = "PASS"


class Side(Enum):
    """Contract side."""
    YES = "yes"
    NO = "no"


@dataclass
class TradeDecision:
    """Verdict from a decision engine.

    A BUY always carries side, shares and limit price; a PASS carries none
    of them. edge_magnitude is finite and non-negative.
    """
    action: Action
    reasoning: str
    side: Optional[Side] = None
    shares: Optional[int] = None
    max_price_cents: Optional[int] = None
    edge_magnitude: float = 0.0

    def __post_init__(self):
        if not math.isfinite(self.edge_magnitude) or self.edge_magnitude < 0:
            raise ValueError(f"edge_magnitude must be finite and >= 0, got {self.edge_magnitude}")
        fields = (self.side, self.shares, self.max_price_cents)
        if self.action == Action.BUY and any(f is None for f in fields):
            raise ValueError("BUY decision requires side, shares and max_price_cents")
        if self.action == Action.PASS and any(f is not None for f in fields):
            raise ValueError("PASS decision must not carry side, shares or max_price_cents")

    @classmethod
    def pass_(cls, reasoning: str) -> "TradeDecision":
        """Build a PASS verdict."""
        return cls(action=Action.PASS, reasoning=reasoning)

    @property
    def is_buy(self) -> bool:
        return self.action == Action.BUY


# ========================
# MARKET DATA
# ========================

@dataclass
class MarketState:
    """One tradable bracket contract."""
    ticker: str
    event_ticker: str
    title: str
    yes_bid: Optional[int] = None
    yes_ask: Optional[int] = None
    no_bid: Optional[int] = None
    no_ask: Optional[int] = None
    last_price: Optional[int] = None
    volume: int = 0
    volume_24h: int = 0
    open_interest: int = 0
    expiration_time: str = ""
    minutes_to_expiry: float = 0.0
    floor_strike: Optional[float] = None
    cap_strike: Optional[float] = None
    strike_type: str = ""

    @property
    def short_ticker(self) -> str:
        """Bracket suffix of the ticker, e.g. 'T52' for 'KXHIGHNY-26JAN28-T52'."""
        return self.ticker.split("-")[-1]


@dataclass
class Orderbook:
    """Resting liquidity for one contract as (price_cents, quantity) levels."""
    yes: list[tuple[int, int]] = field(default_factory=list)
    no: list[tuple[int, int]] = field(default_factory=list)


# ========================
# MARKET TYPE (payout shape)
# ========================

@dataclass(frozen=True)
class Above:
    """YES pays when the high is strictly above the threshold."""
    threshold: float


@dataclass(frozen=True)
class Below:
    """YES pays when the high is strictly below the threshold."""
    threshold: float


@dataclass(frozen=True)
class Between:
    """YES pays when low <= high < high bound."""
    low: float
    high: float


MarketType = Union[Above, Below, Between]


def market_type_from_market(market: MarketState) -> Optional[MarketType]:
    """Derive the payout shape from strike fields and the strike_type tag.

    Falls back to inferring the shape from which strikes are populated when
    the tag is unrecognized.
    """
    floor, cap = market.floor_strike, market.cap_strike
    tag = market.strike_type

    if tag in ("greater", ">"):
        return Above(floor) if floor is not None else None
    if tag in ("less", "<"):
        return Below(cap) if cap is not None else None
    if tag in ("between", "between_inclusive"):
        if floor is not None and cap is not None:
            return Between(floor, cap)
        return None

    if floor is not None and cap is not None:
        return Between(floor, cap)
    if floor is not None:
        return Above(floor)
    if cap is not None:
        return Below(cap)
    return None


def market_type_label(market_type: Optional[MarketType]) -> str:
    """Short label for scan tables, e.g. '>70°', '<60°', '68-70°'."""
    if isinstance(market_type, Above):
        return f">{market_type.threshold:.0f}°"
    if isinstance(market_type, Below):
        return f"<{market_type.threshold:.0f}°"
    if isinstance(market_type, Between):
        return f"{market_type.low:.0f}-{market_type.high:.0f}°"
    return "???"


# ========================
# WEATHER DATA
# ========================

class ForecastConfidence(Enum):
    """Confidence tier derived from ensemble spread."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


@dataclass
class HourlyForecast:
    """One point of the hourly temperature trajectory."""
    time: str
    temperature_f: float


@dataclass
class EnsembleForecast:
    """Summary of forecast-model disagreement on the daily high."""
    model_count: int
    mean_high: float
    min_high: float
    max_high: float
    std_dev: float
    p10: float
    p25: float
    p75: float
    p90: float


@dataclass
class TempBucketProbability:
    """Share of ensemble members whose high falls in [lower, upper)."""
    label: str
    lower: float
    upper: float
    probability: float


@dataclass
class WeatherSnapshot:
    """One forecast cycle for one location."""
    city: str
    current_temp_f: float
    open_meteo_forecast_high: float
    nws_forecast_high: Optional[float] = None
    nws_forecast_low: Optional[float] = None
    nws_short_forecast: Optional[str] = None
    hourly_forecasts: list[HourlyForecast] = field(default_factory=list)
    ensemble: Optional[EnsembleForecast] = None
    bucket_probabilities: list[TempBucketProbability] = field(default_factory=list)
    ensemble_member_highs: list[float] = field(default_factory=list)
    confidence: ForecastConfidence = ForecastConfidence.MEDIUM


# ========================
# ORDERS, POSITIONS, SETTLEMENTS
# ========================

@dataclass
class OrderRequest:
    """Limit buy order for one side of a contract."""
    ticker: str
    side: Side
    shares: int
    price_cents: int


@dataclass
class OrderResult:
    """Exchange acknowledgement of an order."""
    order_id: str
    status: str


@dataclass
class RestingOrder:
    """An order still resting on the book."""
    order_id: str
    ticker: str


@dataclass
class Position:
    """An open position reported by the exchange."""
    ticker: str
    side: Side
    count: int


@dataclass
class Settlement:
    """Terminal outcome of a held contract."""
    ticker: str
    side: Side
    count: int
    price_cents: int
    result: str  # "win", "loss" or "unknown"
    pnl_cents: int
    settled_time: str
    market_result: str


# ========================
# LEDGER & STATS
# ========================

class TradeResult(Enum):
    """Lifecycle state of a ledger row."""
    PENDING = "pending"
    WIN = "win"
    LOSS = "loss"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        """Settled rows that count toward stats (cancelled trades never filled)."""
        return self in (TradeResult.WIN, TradeResult.LOSS, TradeResult.UNKNOWN)


@dataclass
class LedgerRow:
    """One trade attempt."""
    timestamp: str  # ISO-8601, UTC
    ticker: str
    side: str
    shares: int
    price: int
    result: TradeResult
    pnl_cents: int
    cumulative_cents: int
    order_id: str

    @property
    def opened_at(self) -> Optional[datetime]:
        try:
            return datetime.fromisoformat(self.timestamp)
        except ValueError:
            return None


@dataclass
class Stats:
    """Rolling account performance derived from the ledger."""
    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    total_pnl_cents: int = 0
    today_pnl_cents: int = 0
    current_streak: int = 0
    max_drawdown_cents: int = 0
    avg_win_cents: float = 0.0
    avg_loss_cents: float = 0.0
