"""
Performance statistics derived from the trade ledger.

Stats are always recomputed from the ledger; the cached stats file is
only for operators.
"""

from datetime import date, datetime, timezone
from typing import Optional

from ..core.types import LedgerRow, Stats, TradeResult


def _utc_date(row: LedgerRow) -> Optional[date]:
    opened = row.opened_at
    if opened is None:
        return None
    if opened.tzinfo is None:
        opened = opened.replace(tzinfo=timezone.utc)
    return opened.astimezone(timezone.utc).date()


def current_streak(rows: list[LedgerRow]) -> int:
    """+N for N most recent consecutive wins, -N for losses. Unknown rows are skipped."""
    streak = 0
    for row in reversed(rows):
        if row.result == TradeResult.WIN:
            if streak < 0:
                break
            streak += 1
        elif row.result == TradeResult.LOSS:
            if streak > 0:
                break
            streak -= 1
    return streak


def max_drawdown(pnls: list[int]) -> int:
    """Largest peak-to-trough drop of the running P&L (starting at 0)."""
    running = peak = worst = 0
    for pnl in pnls:
        running += pnl
        peak = max(peak, running)
        worst = max(worst, peak - running)
    return worst


def compute(ledger: list[LedgerRow], today: Optional[date] = None) -> Stats:
    """
    Compute Stats from ledger rows (oldest first).

    Only terminal rows (win, loss, unknown) count; pending and cancelled
    rows are ignored.
    """
    today = today or datetime.now(timezone.utc).date()
    settled = [r for r in ledger if r.result.is_terminal]

    wins = [r.pnl_cents for r in settled if r.result == TradeResult.WIN]
    losses = [r.pnl_cents for r in settled if r.result == TradeResult.LOSS]
    decided = len(wins) + len(losses)

    return Stats(
        total_trades=len(settled),
        wins=len(wins),
        losses=len(losses),
        win_rate=len(wins) / decided if decided else 0.0,
        total_pnl_cents=sum(r.pnl_cents for r in settled),
        today_pnl_cents=sum(r.pnl_cents for r in settled if _utc_date(r) == today),
        current_streak=current_streak(settled),
        max_drawdown_cents=max_drawdown([r.pnl_cents for r in settled]),
        avg_win_cents=sum(wins) / len(wins) if wins else 0.0,
        avg_loss_cents=sum(losses) / len(losses) if losses else 0.0,
    )
