"""
Data-quality validators for daily price records.
Pure functions - no IO, network, or side effects.
"""

import math
from dataclasses import dataclass
from typing import Sequence

from ingestion.records import DailyRecord


# Logical price bounds used to clean unrealistic stock prices
MIN_PRICE = 0.01
MAX_PRICE = 10000.0

# Single-day moves beyond this magnitude are treated as data artifacts
MAX_ABS_RETURN = 1.0


class ValidationError(ValueError):
    """Raised when data validation fails."""
    pass


@dataclass(frozen=True)
class QualityPolicy:
    """
    Filter deciding which records and return pairs may contribute.

    A rejected price or return is excluded from the sums, never clipped.
    """
    min_price: float = MIN_PRICE
    max_price: float = MAX_PRICE
    max_abs_return: float = MAX_ABS_RETURN

    def __post_init__(self):
        for name in ('min_price', 'max_price', 'max_abs_return'):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValidationError(f"{name} must be a finite number, got {value!r}")

        if self.min_price < 0:
            raise ValidationError(f"min_price must be non-negative, got {self.min_price}")

        if self.min_price > self.max_price:
            raise ValidationError(
                f"min_price ({self.min_price}) must be <= max_price ({self.max_price})"
            )

        if self.max_abs_return <= 0:
            raise ValidationError(f"max_abs_return must be positive, got {self.max_abs_return}")

    def price_in_bounds(self, price: float) -> bool:
        return self.min_price <= price <= self.max_price

    def accepts_prices(self, record: DailyRecord) -> bool:
        """True if all four of open/high/low/close lie within the bounds."""
        return (
            self.price_in_bounds(record.open)
            and self.price_in_bounds(record.high)
            and self.price_in_bounds(record.low)
            and self.price_in_bounds(record.close)
        )

    def accepts_return(self, prev_close: float, curr_close: float, ret: float) -> bool:
        """True if both closes are in bounds, prev_close is non-zero and |ret| is small enough."""
        return (
            self.price_in_bounds(prev_close)
            and self.price_in_bounds(curr_close)
            and prev_close != 0.0
            and abs(ret) <= self.max_abs_return
        )


def check_date_monotonicity(records: Sequence[DailyRecord]) -> None:
    """
    Check that record dates are strictly increasing.

    Args:
        records: Records of a single instrument in file order

    Raises:
        ValidationError: If dates are duplicated or out of order
    """
    for i in range(1, len(records)):
        if records[i].date <= records[i - 1].date:
            raise ValidationError(
                f"Dates not monotonic at row {i}: "
                f"{records[i - 1].date} >= {records[i].date}"
            )
