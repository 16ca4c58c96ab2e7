"""
Logging Configuration

Uses loguru for structured, colorful logging with:
- Console output with colors
- File rotation
- JSON trade events for later analysis
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config import config


def setup_logging(
    log_dir: str = "logs",
    log_level: str = None,
    rotation: str = "10 MB",
    retention: str = "30 days",
) -> None:
    """
    Configure logging for the application.

    Args:
        log_dir: Directory for log files
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        rotation: Log file rotation size
        retention: How long to keep old logs
    """
    log_level = log_level or config.log_level

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logger.remove()

    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan> - <level>{message}</level>",
        colorize=True,
    )

    logger.add(
        log_path / "bot.log",
        level=log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}",
        rotation=rotation,
        retention=retention,
        compression="gz",
    )

    # Trade events (JSON lines)
    logger.add(
        log_path / "trades.json",
        level="INFO",
        format="{message}",
        filter=lambda record: record["extra"].get("trade_log", False),
        rotation="1 day",
        retention="90 days",
        serialize=True,
    )

    logger.add(
        log_path / "errors.log",
        level="ERROR",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}\n{exception}",
        rotation=rotation,
        retention=retention,
        compression="gz",
    )

    logger.configure(extra={"name": "kalshi_weather_bot"})
    logger.info(f"Logging initialized at level {log_level}")


def get_logger(name: str = "kalshi_weather_bot"):
    """
    Get a named logger instance.

    Args:
        name: Logger name for context

    Returns:
        Logger instance bound to the name
    """
    return logger.bind(name=name)


class TradeLogger:
    """
    Specialized logger for trade events.

    Logs decisions, executions and settlements as structured records.
    """

    def __init__(self):
        self.logger = logger.bind(trade_log=True, name="trades")

    def log_decision(
        self,
        ticker: str,
        action: str,
        side: Optional[str],
        edge: float,
        reasoning: str,
    ):
        """Log one decision engine verdict."""
        self.logger.info({
            "event": "decision",
            "ticker": ticker,
            "action": action,
            "side": side,
            "edge": edge,
            "reasoning": reasoning,
        })

    def log_execution(
        self,
        ticker: str,
        side: str,
        shares: int,
        price_cents: int,
        order_id: str,
        paper: bool,
    ):
        """Log an order placement (or paper fill)."""
        self.logger.info({
            "event": "execution",
            "ticker": ticker,
            "side": side,
            "shares": shares,
            "price_cents": price_cents,
            "order_id": order_id,
            "paper": paper,
        })

    def log_settlement(
        self,
        ticker: str,
        result: str,
        market_result: str,
        pnl_cents: int,
    ):
        """Log a settlement written to the ledger."""
        self.logger.info({
            "event": "settlement",
            "ticker": ticker,
            "result": result,
            "market_result": market_result,
            "pnl_cents": pnl_cents,
        })

    def log_critical(self, order_id: str, ticker: str, error: str):
        """Log an order that exists on the exchange but not in the ledger."""
        self.logger.critical({
            "event": "ledger_desync",
            "order_id": order_id,
            "ticker": ticker,
            "error": error,
        })


# Global trade logger instance
trade_logger = TradeLogger()
