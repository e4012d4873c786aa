"""
Volatility calculation utilities.

The engine never buffers returns: it keeps the running sum and sum of
squares and derives the population variance as E[X^2] - E[X]^2. That form
can lose the last few significant digits against a two-pass
mean-then-deviation computation when returns are large or tightly
clustered; reference_volatility() gives the two-pass value for comparison.
"""

import math
import numpy as np
from typing import Optional, Sequence


class VolatilityError(Exception):
    """Raised when volatility calculation fails."""
    pass


def variance_from_moments(
    sum_of_values: float,
    sum_of_squares: float,
    count: int
) -> Optional[float]:
    """
    Population variance from running sums.

    Formula: var = max(0, sum_sq / n - (sum / n)^2)

    Round-off can make the raw difference slightly negative; it is clamped
    to zero so the square root is always defined. Overflowed sums give an
    undefined difference (inf - inf), which is clamped the same way.

    Args:
        sum_of_values: Sum of the observations
        sum_of_squares: Sum of the squared observations
        count: Number of observations

    Returns:
        Variance, or None if count is zero

    Raises:
        VolatilityError: If count is negative
    """
    if count < 0:
        raise VolatilityError(f"count must be non-negative, got {count}")

    if count == 0:
        return None

    mean = sum_of_values / count
    mean_sq = sum_of_squares / count
    variance = mean_sq - mean * mean

    # NaN fails every comparison
    if not variance >= 0.0:
        variance = 0.0

    return variance


def volatility_from_moments(
    sum_of_returns: float,
    sum_of_squared_returns: float,
    count: int
) -> Optional[float]:
    """Standard deviation of returns from running sums (None if no returns)."""
    variance = variance_from_moments(sum_of_returns, sum_of_squared_returns, count)
    if variance is None:
        return None
    return math.sqrt(variance)


def reference_volatility(returns: Sequence[float]) -> Optional[float]:
    """
    Two-pass population standard deviation of a buffered return series.

    Not used by the engine; kept as the numerically stable yardstick.
    """
    if len(returns) == 0:
        return None

    values = np.asarray(returns, dtype=np.float64)

    if not np.all(np.isfinite(values)):
        raise VolatilityError("NaN or infinite values not allowed in returns")

    return float(np.std(values, ddof=0))
