"""
Risk Manager

Account-level circuit breakers checked once per cycle before any market
is scanned. Limits come from TradingConfig.
"""

from dataclasses import dataclass
from enum import Enum

from ..core.types import Stats
from .config import TradingConfig, default_config


class RiskCheck(Enum):
    """Types of risk checks."""
    DAILY_LOSS_LIMIT = "daily_loss_limit"
    CONSECUTIVE_LOSSES = "consecutive_losses"
    MIN_BALANCE = "min_balance"


@dataclass
class RiskViolation:
    """Details of a risk limit violation."""
    check: RiskCheck
    message: str
    current_value: float
    limit_value: float
    severity: str = "critical"


class RiskManager:
    """
    Vetoes trading when the account is in a bad state.

    Checks:
    - Today's realized loss at or beyond the daily limit
    - Losing streak at or beyond the consecutive-loss limit
    - Balance below the minimum
    """

    def __init__(self, config: TradingConfig = None):
        self.config = config or default_config

    def check_can_trade(self, stats: Stats, balance_cents: int) -> tuple[bool, list[RiskViolation]]:
        """
        Returns:
            (can_trade, list of violations)
        """
        cfg = self.config
        violations: list[RiskViolation] = []

        if stats.today_pnl_cents <= -cfg.max_daily_loss_cents:
            violations.append(RiskViolation(
                check=RiskCheck.DAILY_LOSS_LIMIT,
                message=f"Daily loss {-stats.today_pnl_cents}¢ >= limit {cfg.max_daily_loss_cents}¢",
                current_value=stats.today_pnl_cents,
                limit_value=-cfg.max_daily_loss_cents,
            ))

        if stats.current_streak <= -cfg.max_consecutive_losses:
            violations.append(RiskViolation(
                check=RiskCheck.CONSECUTIVE_LOSSES,
                message=f"{-stats.current_streak} consecutive losses >= limit {cfg.max_consecutive_losses}",
                current_value=stats.current_streak,
                limit_value=-cfg.max_consecutive_losses,
            ))

        if balance_cents < cfg.min_balance_cents:
            violations.append(RiskViolation(
                check=RiskCheck.MIN_BALANCE,
                message=f"Balance {balance_cents}¢ < minimum {cfg.min_balance_cents}¢",
                current_value=balance_cents,
                limit_value=cfg.min_balance_cents,
            ))

        return not violations, violations

    def veto_reason(self, stats: Stats, balance_cents: int) -> str:
        """Joined violation messages, or an empty string when trading is allowed."""
        _, violations = self.check_can_trade(stats, balance_cents)
        return "; ".join(v.message for v in violations)
