"""
Task Scheduler

Runs trading cycles at a fixed interval. Each cycle takes the process
lock, so a manual or cron-launched run cannot overlap a scheduled one.
"""

import asyncio
import signal
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .monitoring import get_logger
from .safety import LockHeldError
from .trading.engine import LedgerDesyncError

if TYPE_CHECKING:
    from .main import WeatherBot

logger = get_logger("scheduler")


class TradingScheduler:
    """
    Manages scheduled trading cycles.
    """

    def __init__(self, bot: "WeatherBot", interval_minutes: float = 5.0):
        """
        Initialize scheduler.

        Args:
            bot: Initialized WeatherBot
            interval_minutes: Minutes between cycles
        """
        self.bot = bot
        self.interval_minutes = interval_minutes
        self.scheduler = AsyncIOScheduler()

        # Track state
        self._running = False
        self._cycles = 0
        self._last_cycle_time: Optional[datetime] = None
        self._halted_reason: Optional[str] = None

    def setup_jobs(self):
        """Configure scheduled jobs."""
        self.scheduler.add_job(
            self._run_trading_cycle,
            IntervalTrigger(minutes=self.interval_minutes),
            id="trading_cycle",
            name="Trading Cycle",
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(),
        )
        logger.info(f"Trading cycle scheduled every {self.interval_minutes:g} minutes")

    async def _run_trading_cycle(self):
        """Execute a trading cycle."""
        if not self._running:
            return

        try:
            await self.bot.run_cycle()
        except LockHeldError as e:
            logger.warning(f"Skipping cycle: {e}")
            return
        except LedgerDesyncError as e:
            # The ledger no longer matches the exchange; trading on would compound it
            self._halted_reason = str(e)
            logger.critical(f"Halting scheduler: {e}")
            self.stop()
            return
        except Exception as e:
            # Already logged and alerted by the bot; the next cycle retries
            logger.error(f"Trading cycle failed: {e}")
            return

        self._cycles += 1
        self._last_cycle_time = datetime.now()
        logger.debug(f"Cycles run: {self._cycles}")

    def start(self):
        """Start the scheduler."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._running = True
        self.setup_jobs()
        self.scheduler.start()
        logger.info("Scheduler started")

    def stop(self):
        """Stop the scheduler."""
        if not self._running:
            return

        self._running = False
        self.scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    async def run_forever(self):
        """
        Run the scheduler until interrupted.

        Raises:
            RuntimeError: the scheduler halted on a ledger desync
        """
        self.start()

        loop = asyncio.get_running_loop()

        def shutdown():
            logger.info("Shutdown signal received")
            self.stop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, shutdown)

        logger.info("Running scheduler... Press Ctrl+C to stop")

        try:
            while self._running:
                await asyncio.sleep(1)
        except asyncio.CancelledError:
            pass
        finally:
            self.stop()

        if self._halted_reason:
            raise RuntimeError(f"Scheduler halted: {self._halted_reason}")
