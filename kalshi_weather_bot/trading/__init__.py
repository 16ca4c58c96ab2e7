"""
Trading Engine Module

Cycle orchestration, ledger persistence, ledger-derived stats and the risk
gate. Import submodules directly; kalshi_weather_bot.config depends on
trading.config, so this package does not re-export eagerly.
"""
