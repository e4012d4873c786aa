"""
Data Ingestion Module

Turns daily OHLCV CSV files into canonical records:
- CSV discovery and parsing (malformed rows skipped)
- DailyRecord type
- Data-quality policy for price and return contributions
"""

__version__ = "0.1.0"
