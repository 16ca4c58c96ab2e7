"""
Monitoring module for logging and alerts.

Provides:
- Structured logging with loguru
- Discord/Telegram alert notifications
"""

from .logger import setup_logging, get_logger, trade_logger, TradeLogger
from .alerts import AlertManager, Alert, AlertLevel

__all__ = [
    "setup_logging",
    "get_logger",
    "trade_logger",
    "TradeLogger",
    "AlertManager",
    "Alert",
    "AlertLevel",
]
