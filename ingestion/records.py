"""
Canonical daily price record shared by the reader and the statistics engine.
"""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class DailyRecord:
    """One trading day of OHLCV data for a single instrument."""
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def year(self) -> int:
        return self.date.year
