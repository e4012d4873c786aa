"""
Partition keys for the statistics engine.

A key function maps a DailyRecord to a hashable partition key, or to None
when the record must be left out of every partition.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ingestion.records import DailyRecord


# Allowed year range for decade bucketing
MIN_YEAR = 1900
MAX_YEAR = 2100

# Decade the legacy report layout labels "2010–2020"
LEGACY_FINAL_DECADE = 2010

GLOBAL_KEY = 'all'


class DecadeError(ValueError):
    """Raised when a decade range is misconfigured."""
    pass


def global_key(record: DailyRecord) -> str:
    """Every record falls into the single global partition."""
    return GLOBAL_KEY


def decade_index(year: int, min_year: int = MIN_YEAR, max_year: int = MAX_YEAR) -> Optional[int]:
    """
    Decade bucket index for a year.

    Formula: (year - min_year) // 10, for min_year <= year <= max_year

    Out-of-range years return None (dropped, not clamped to the nearest
    bucket). Within range the difference is non-negative, so floor and
    truncation agree.
    """
    if year < min_year or year > max_year:
        return None
    return (year - min_year) // 10


def decade_start(index: int, min_year: int = MIN_YEAR) -> int:
    """First year of a decade bucket."""
    return min_year + 10 * index


def decade_bounds(
    start: int,
    legacy_labels: bool = False,
    legacy_final_decade: int = LEGACY_FINAL_DECADE
) -> Tuple[int, int]:
    """
    Inclusive (start, end) years used to label a decade.

    Every decade ends at start + 9. With legacy_labels the decade starting
    at legacy_final_decade ends one year later (2010-2020). Use
    legacy_reported() to drop the decades the legacy layout never prints.
    """
    if legacy_labels and start == legacy_final_decade:
        return start, start + 10
    return start, start + 9


def legacy_reported(start: int, legacy_final_decade: int = LEGACY_FINAL_DECADE) -> bool:
    """
    Whether the legacy report layout prints the decade starting at start.

    The legacy report stops after its widened 2010-2020 block, so later
    decades are never printed and 2020 is not shown under two labels.
    """
    return start <= legacy_final_decade


@dataclass(frozen=True)
class DecadeKey:
    """Picklable key function bucketing records by decade index."""
    min_year: int = MIN_YEAR
    max_year: int = MAX_YEAR

    def __post_init__(self):
        if self.min_year > self.max_year:
            raise DecadeError(
                f"min_year ({self.min_year}) must be <= max_year ({self.max_year})"
            )

    def __call__(self, record: DailyRecord) -> Optional[int]:
        return decade_index(record.date.year, self.min_year, self.max_year)

    def start_of(self, index: int) -> int:
        return decade_start(index, self.min_year)
