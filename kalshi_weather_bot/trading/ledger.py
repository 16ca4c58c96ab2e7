"""
Trade Ledger

File-backed trade history under the data directory:
- ledger.jsonl: one JSON object per trade attempt, oldest first
- stats.json:   last computed Stats, for operators
- prompt.md:    strategy prompt handed to the decision engine

Rows are append-only except the newest pending row, which transitions
once to a terminal result (or to cancelled by order id).
"""

import json
import os
import tempfile
from dataclasses import asdict
from pathlib import Path
from typing import Optional, Union

from ..core.types import LedgerRow, Settlement, Stats, TradeResult
from ..monitoring.logger import get_logger

logger = get_logger("ledger")

LEDGER_FILE = "ledger.jsonl"
STATS_FILE = "stats.json"
PROMPT_FILE = "prompt.md"


class LedgerError(Exception):
    """Raised when the ledger cannot be read or written."""


def row_to_dict(row: LedgerRow) -> dict:
    data = asdict(row)
    data["result"] = row.result.value
    return data


def row_from_dict(data: dict) -> LedgerRow:
    return LedgerRow(
        timestamp=data["timestamp"],
        ticker=data["ticker"],
        side=data["side"],
        shares=int(data["shares"]),
        price=int(data["price"]),
        result=TradeResult(data["result"]),
        pnl_cents=int(data.get("pnl_cents", 0)),
        cumulative_cents=int(data.get("cumulative_cents", 0)),
        order_id=data.get("order_id", ""),
    )


def settlement_result(settlement: Settlement) -> TradeResult:
    """Map a settlement's result string onto a terminal TradeResult."""
    try:
        result = TradeResult(settlement.result.lower())
    except ValueError:
        return TradeResult.UNKNOWN
    return result if result.is_terminal else TradeResult.UNKNOWN


class LedgerStore:
    """JSON-lines ledger plus stats and prompt files in one directory."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)
        self.ledger_path = self.data_dir / LEDGER_FILE
        self.stats_path = self.data_dir / STATS_FILE
        self.prompt_path = self.data_dir / PROMPT_FILE

    def read_ledger(self) -> list[LedgerRow]:
        """All rows, oldest first. A missing file is an empty ledger."""
        if not self.ledger_path.exists():
            return []
        try:
            with open(self.ledger_path, "r") as f:
                return [row_from_dict(json.loads(line)) for line in f if line.strip()]
        except (OSError, ValueError, KeyError) as e:
            raise LedgerError(f"Cannot read {self.ledger_path}: {e}") from e

    def append_ledger(self, row: LedgerRow) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(self.ledger_path, "a") as f:
                f.write(json.dumps(row_to_dict(row)) + "\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise LedgerError(f"Cannot append to {self.ledger_path}: {e}") from e

    def _rewrite(self, rows: list[LedgerRow]) -> None:
        """Replace the ledger atomically (temp file + rename)."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=".ledger-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    for row in rows:
                        f.write(json.dumps(row_to_dict(row)) + "\n")
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp, self.ledger_path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise LedgerError(f"Cannot rewrite {self.ledger_path}: {e}") from e

    def last_pending(self) -> Optional[LedgerRow]:
        for row in reversed(self.read_ledger()):
            if row.result == TradeResult.PENDING:
                return row
        return None

    def settle_last_trade(self, settlement: Settlement) -> bool:
        """
        Move the newest pending row to a terminal result.

        Returns:
            False when no row is pending (nothing written)
        """
        rows = self.read_ledger()
        idx = next(
            (i for i in range(len(rows) - 1, -1, -1) if rows[i].result == TradeResult.PENDING),
            None,
        )
        if idx is None:
            return False

        prior = sum(r.pnl_cents for r in rows[:idx] if r.result.is_terminal)
        row = rows[idx]
        row.result = settlement_result(settlement)
        row.pnl_cents = settlement.pnl_cents
        row.cumulative_cents = prior + settlement.pnl_cents
        self._rewrite(rows)
        return True

    def cancel_trade(self, order_id: str) -> bool:
        """
        Mark the pending row for an order as cancelled.

        Returns:
            False when no pending row carries this order id
        """
        rows = self.read_ledger()
        for row in reversed(rows):
            if row.order_id == order_id and row.result == TradeResult.PENDING:
                row.result = TradeResult.CANCELLED
                self._rewrite(rows)
                return True
        return False

    def read_stats(self) -> Optional[Stats]:
        """Last cached Stats, or None if never written."""
        if not self.stats_path.exists():
            return None
        try:
            return Stats(**json.loads(self.stats_path.read_text()))
        except (OSError, ValueError, TypeError) as e:
            raise LedgerError(f"Cannot read {self.stats_path}: {e}") from e

    def write_stats(self, stats: Stats) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self.stats_path.write_text(json.dumps(asdict(stats), indent=2))
        except OSError as e:
            raise LedgerError(f"Cannot write {self.stats_path}: {e}") from e

    def read_prompt(self) -> str:
        try:
            return self.prompt_path.read_text()
        except OSError as e:
            raise LedgerError(f"Cannot read {self.prompt_path}: {e}") from e
