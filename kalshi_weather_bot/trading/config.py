"""
Trading Configuration

All configurable parameters for the cycle orchestrator, risk gate and the
rules decision engine.
"""

from dataclasses import dataclass, field
import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


@dataclass
class TradingConfig:
    """
    Trading engine configuration parameters.

    These can be adjusted based on risk tolerance and market conditions.
    """

    # ========================
    # EXECUTION MODE
    # ========================

    # Paper mode writes the ledger without contacting the exchange
    paper_trade: bool = field(
        default_factory=lambda: os.getenv("PAPER_TRADE", "true").strip().lower() != "false"
    )

    # Required acknowledgement for real-money trading
    confirm_live: bool = field(
        default_factory=lambda: _env_bool("CONFIRM_LIVE", "false")
    )

    # ========================
    # RISK LIMITS
    # ========================

    # Hard cap on contracts per order
    max_shares: int = field(
        default_factory=lambda: int(os.getenv("MAX_SHARES", "25"))
    )

    # Stop trading once today's realized loss reaches this (cents)
    max_daily_loss_cents: int = field(
        default_factory=lambda: int(os.getenv("MAX_DAILY_LOSS_CENTS", "1000"))
    )

    # Stop trading after this many losses in a row
    max_consecutive_losses: int = field(
        default_factory=lambda: int(os.getenv("MAX_CONSECUTIVE_LOSSES", "7"))
    )

    # Stop trading when the account balance drops below this (cents)
    min_balance_cents: int = field(
        default_factory=lambda: int(os.getenv("MIN_BALANCE_CENTS", "500"))
    )

    # ========================
    # CYCLE PARAMETERS
    # ========================

    # Brackets closer to expiry than this are not scanned
    min_minutes_to_expiry: float = field(
        default_factory=lambda: float(os.getenv("MIN_MINUTES_TO_EXPIRY", "2.0"))
    )

    # A pending row older than this with no settlement is marked unknown
    stale_pending_minutes: float = 30.0

    # Ledger rows handed to decision engines as recent history
    recent_trades: int = 20

    # ========================
    # RULES ENGINE PARAMETERS
    # ========================

    # Market-implied YES outside (low, high) is treated as settled or stale
    min_implied_probability: float = 0.10
    max_implied_probability: float = 0.90

    # Logistic temperature scale for the point-estimate fallback (°F)
    logistic_scale_f: float = 2.0

    # Edge multipliers by forecast confidence tier
    confidence_multiplier_high: float = 1.0
    confidence_multiplier_medium: float = 0.8
    confidence_multiplier_low: float = 0.5

    # Kalshi taker fee rate applied to min(price, 100 - price)
    taker_fee_rate: float = 0.07

    # Minimum net edge (after confidence and fees) to buy
    min_net_edge: float = field(
        default_factory=lambda: float(os.getenv("MIN_NET_EDGE", "0.05"))
    )

    # Never pay more than this per contract (cents)
    max_price_cents: int = 50

    # Pass when BOTH 24h volume and open interest are under this
    min_liquidity: int = 10

    # Spreads at or under this (cents) take the ask outright
    narrow_spread_cents: int = 4

    # Resting size at the ask required to pay a wide spread
    min_ask_depth: int = 10

    # "fixed" buys order_shares every time, "tiered" scales with net edge
    sizing_mode: str = field(
        default_factory=lambda: os.getenv("SIZING_MODE", "fixed").lower()
    )
    order_shares: int = field(
        default_factory=lambda: int(os.getenv("ORDER_SHARES", "50"))
    )

    def __post_init__(self):
        """Validate configuration values."""
        assert 0 < self.min_net_edge < 1, "min_net_edge must be between 0 and 1"
        assert 0 < self.min_implied_probability < self.max_implied_probability < 1, \
            "implied probability band must satisfy 0 < low < high < 1"
        assert 1 <= self.max_price_cents <= 99, "max_price_cents must be between 1 and 99"
        assert self.max_shares > 0, "max_shares must be positive"
        assert self.order_shares > 0, "order_shares must be positive"
        assert self.sizing_mode in ("fixed", "tiered"), "sizing_mode must be 'fixed' or 'tiered'"
        assert self.logistic_scale_f > 0, "logistic_scale_f must be positive"


# Global default configuration
default_config = TradingConfig()
