"""
Per-record price and return formulas.
Pure functions used by the streaming accumulator.
"""

from ingestion.records import DailyRecord


# Trading days per year, a stated approximation for annualizing
TRADING_DAYS_PER_YEAR = 252


def daily_average(record: DailyRecord) -> float:
    """
    Average of the four daily prices.

    Formula: (open + high + low + close) / 4
    """
    return (record.open + record.high + record.low + record.close) / 4.0


def daily_return(prev_close: float, curr_close: float) -> float:
    """
    Simple return between two adjacent closes.

    Formula: R_t = (C_t - C_{t-1}) / C_{t-1}

    A previous close of exactly zero yields 0.0 instead of a division
    error. The comparison is exact, with no tolerance.

    Args:
        prev_close: Close of the earlier day
        curr_close: Close of the later day

    Returns:
        Return as decimal (0.05 = 5%)
    """
    if prev_close == 0:
        return 0.0
    return (curr_close - prev_close) / prev_close


def annualize_return(mean_daily_return: float, periods: int = TRADING_DAYS_PER_YEAR) -> float:
    """Approximate annual return by linear scaling: mean daily return * periods."""
    return mean_daily_return * periods
