"""
Kalshi Weather Bot - Temperature Bracket Trading

Runs one trading cycle at a time against Kalshi daily high-temperature
markets: reconciles orders and settlements, enforces risk limits, compares
weather-ensemble probabilities with market prices and places at most one
order per cycle.
"""

__version__ = "0.2.0"
