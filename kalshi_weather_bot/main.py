"""
Kalshi Weather Bot - Main Entry Point

Runs one trading cycle (cron-friendly) or, with --loop, a cycle on a
fixed interval.
"""

import asyncio
import sys
from typing import Optional

from .apis.openrouter import OpenRouterClient
from .apis.weather_feed import WeatherClient
from .config import config as default_app_config, Config
from .kalshi.client import KalshiClient
from .monitoring import AlertManager, get_logger, setup_logging
from .safety import ProcessLock, validate_startup
from .strategy.brain import Brain
from .strategy.llm_brain import LLMBrain
from .strategy.rules_brain import RulesBrain
from .trading.engine import CycleOutcome, CycleResult, LedgerDesyncError, run_cycle
from .trading.ledger import LedgerStore

logger = get_logger("main")


def build_brain(app_config: Config) -> Brain:
    """Decision engine selected by BRAIN."""
    if app_config.brain == "llm":
        return LLMBrain(OpenRouterClient())
    return RulesBrain(app_config.trading)


class WeatherBot:
    """
    Wires the exchange, weather feed, decision engine and ledger together.
    """

    def __init__(self, app_config: Config = None):
        self.config = app_config or default_app_config
        self.ledger = LedgerStore(self.config.data_dir)

        # Components (initialized in initialize())
        self._exchange: Optional[KalshiClient] = None
        self._weather: Optional[WeatherClient] = None
        self._brain: Optional[Brain] = None
        self._alerts: Optional[AlertManager] = None

    async def initialize(self):
        """Validate the environment and build all components."""
        city_names = ", ".join(c.name for c in self.config.cities)
        logger.info(
            f"paper_trade={self.config.trading.paper_trade} "
            f"confirm_live={self.config.trading.confirm_live} "
            f"brain={self.config.brain} cities=[{city_names}]"
        )

        validate_startup(self.config, self.ledger)

        self._exchange = KalshiClient(cities=self.config.cities)
        self._weather = WeatherClient()
        self._brain = build_brain(self.config)
        self._alerts = AlertManager()

    async def close(self):
        """Clean up resources."""
        if self._exchange:
            await self._exchange.close()
        if self._weather:
            await self._weather.close()
        if isinstance(self._brain, LLMBrain):
            await self._brain.close()
        if self._alerts:
            await self._alerts.close()

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def run_cycle(self) -> CycleResult:
        """
        Run one cycle under the process lock.

        Failures are alerted and re-raised; a ledger desync is alerted at
        CRITICAL level.
        """
        with ProcessLock(self.config.lockfile_path):
            try:
                result = await run_cycle(
                    self._exchange,
                    self._brain,
                    self._weather,
                    self.ledger,
                    self.config.trading,
                )
            except LedgerDesyncError as e:
                logger.critical(
                    f"Order {e.order_id} on {e.ticker} is live but missing from the ledger. "
                    f"Reconcile manually: {e.cause}"
                )
                await self._alerts.ledger_desync(e.order_id, e.ticker, str(e.cause))
                raise
            except Exception as e:
                logger.exception(f"Trading cycle failed: {e}")
                await self._alerts.cycle_failed(str(e))
                raise

        if result.outcome == CycleOutcome.TRADED:
            await self._alerts.trade_executed(
                result.ticker,
                result.decision.side.value,
                result.shares,
                result.price_cents,
                result.decision.edge_magnitude,
                result.paper,
            )

        logger.info(f"Cycle complete: {result.outcome.value} {result.reason}".rstrip())
        return result


async def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    import argparse

    parser = argparse.ArgumentParser(description="Kalshi weather bracket trader")
    parser.add_argument("--loop", action="store_true",
                        help="Run cycles on a fixed interval instead of once")
    parser.add_argument("--interval", type=float, default=5.0,
                        help="Minutes between cycles with --loop (default: 5)")
    parser.add_argument("--log-dir", default="logs",
                        help="Directory for log files")

    args = parser.parse_args(argv)

    setup_logging(log_dir=args.log_dir)

    try:
        async with WeatherBot() as bot:
            if args.loop:
                from .scheduler import TradingScheduler
                await TradingScheduler(bot, interval_minutes=args.interval).run_forever()
            else:
                await bot.run_cycle()
    except Exception as e:
        logger.error(f"Exiting with error: {e}")
        return 1
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
