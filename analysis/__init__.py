"""
Analysis Engine Module

Calculates market statistics from daily price records:
- Mean daily price (average of open/high/low/close)
- Daily returns and their volatility (population standard deviation)
- Global or per-decade partitions
- Serial, thread and process execution backends
"""

__version__ = "0.1.0"
