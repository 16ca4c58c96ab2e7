"""
Startup safety checks and the single-instance process lock.
"""

import fcntl
import os
from pathlib import Path
from typing import Optional, Union

from .config import Config
from .monitoring.logger import get_logger
from .trading.ledger import LedgerError, LedgerStore

logger = get_logger("safety")


class StartupError(RuntimeError):
    """Raised when the bot must not start."""


class LockHeldError(StartupError):
    """Another instance holds the process lock."""

    def __init__(self, path: str, pid: Optional[str]):
        self.path = path
        self.pid = pid
        super().__init__(f"Another instance running (PID {pid or '?'}), lock {path}")


class ProcessLock:
    """
    Exclusive OS-level lock on a pid file.

    The flock is held while the descriptor stays open and is released by
    the OS if the process dies, so a stale file never blocks a new run.

    Usage:
        with ProcessLock("/tmp/kalshi-bot.lock"):
            ...
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._fd: Optional[int] = None

    def acquire(self) -> "ProcessLock":
        fd = os.open(str(self.path), os.O_CREAT | os.O_RDWR, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            holder = os.read(fd, 32).decode(errors="replace").strip() or None
            os.close(fd)
            raise LockHeldError(str(self.path), holder)

        os.ftruncate(fd, 0)
        os.write(fd, str(os.getpid()).encode())
        os.fsync(fd)
        self._fd = fd
        logger.debug(f"Lock acquired: {self.path} (PID {os.getpid()})")
        return self

    def release(self) -> None:
        if self._fd is None:
            return
        # The file stays in place; unlinking it would let two processes
        # lock different inodes at the same path.
        os.ftruncate(self._fd, 0)
        os.close(self._fd)
        self._fd = None
        logger.debug(f"Lock released: {self.path}")

    @property
    def held(self) -> bool:
        return self._fd is not None

    def __enter__(self):
        return self.acquire()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


def validate_startup(config: Config, ledger: LedgerStore) -> None:
    """
    Refuse to start with credentials, files or settings that cannot work.

    Raises:
        StartupError: describing the first problem found
    """
    pem = config.kalshi.read_private_key_pem()
    if not pem:
        raise StartupError("KALSHI_PRIVATE_KEY_PATH is empty or file not found")
    if "BEGIN" not in pem:
        raise StartupError("PEM file doesn't look like a private key")

    if not config.cities:
        raise StartupError("No cities configured, check CITIES env var")

    if not config.kalshi.key_id:
        raise StartupError("KALSHI_API_KEY_ID not set")

    try:
        ledger.read_ledger()
    except LedgerError as e:
        raise StartupError(str(e)) from e

    if not ledger.prompt_path.exists():
        raise StartupError(f"{ledger.prompt_path} not found")

    if config.brain == "llm" and not config.api.openrouter_api_key:
        raise StartupError("BRAIN=llm but OPENROUTER_API_KEY is not set")

    if config.is_live and not config.trading.confirm_live:
        raise StartupError(
            "PAPER_TRADE=false but CONFIRM_LIVE is not true. "
            "Set CONFIRM_LIVE=true to acknowledge real money trading."
        )

    if config.is_live:
        logger.warning("LIVE TRADING ENABLED, real money at risk")
