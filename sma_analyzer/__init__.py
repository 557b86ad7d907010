"""
SMA Signal Analyzer

Offline research tool: reduces a (timestamp, price) series to a single
BUY / SELL / HOLD suggestion from SMA(20)/SMA(50) crossovers, breakouts,
pullbacks and trend bias.
"""

__version__ = "1.0.0"
