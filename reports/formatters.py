"""
Display formatters for market statistics reports.
Deterministic string formatting for numbers, percentages, and year ranges.
"""

from typing import Optional, Union


NOT_AVAILABLE = "N/A"


class FormatterError(Exception):
    """Raised when formatter input validation fails."""
    pass


def _check_numeric(value, label: str) -> None:
    # bool is an int subclass but never a statistic
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FormatterError(f"{label} value must be numeric, got {type(value)}")


def format_number(value: Optional[Union[int, float]], decimal_places: int = 4) -> str:
    """
    Format a statistic with fixed precision.

    Args:
        value: Number to format, None when undefined
        decimal_places: Number of decimal places (default: 4)

    Returns:
        Formatted string (e.g., "12.3457") or "N/A"
    """
    if value is None:
        return NOT_AVAILABLE

    _check_numeric(value, "Number")

    if decimal_places < 0:
        raise FormatterError(f"decimal_places must be >= 0, got {decimal_places}")

    return f"{value:.{decimal_places}f}"


def format_percentage(value: Optional[float], decimal_places: int = 4) -> str:
    """
    Format decimal as percentage with specified precision.

    Args:
        value: Decimal value (0.0123 = 1.23%)
        decimal_places: Number of decimal places (default: 4)

    Returns:
        Formatted percentage string (e.g., "1.2300%") or "N/A"
    """
    if value is None:
        return NOT_AVAILABLE

    _check_numeric(value, "Percentage")

    return f"{format_number(value * 100, decimal_places)}%"


def format_with_percentage(value: Optional[float], decimal_places: int = 4, pct_places: int = 4) -> str:
    """
    Format a decimal followed by its percentage, e.g. "0.0123 (1.2300%)".

    None renders as "N/A" without the parenthesised part.
    """
    if value is None:
        return NOT_AVAILABLE
    return f"{format_number(value, decimal_places)} ({format_percentage(value, pct_places)})"


def format_year_range(start: Optional[int], end: Optional[int]) -> str:
    """
    Format an inclusive year range (e.g., "1970–1979").

    Returns "N/A" when either end is unknown.
    """
    if start is None or end is None:
        return NOT_AVAILABLE

    if not isinstance(start, int) or not isinstance(end, int):
        raise FormatterError(f"Years must be integers, got {type(start)} and {type(end)}")

    if start > end:
        raise FormatterError(f"Year range start {start} is after end {end}")

    return f"{start}–{end}"


def format_seconds(value: Optional[float]) -> str:
    """Format an elapsed time as "0.123456 seconds"."""
    if value is None:
        return NOT_AVAILABLE
    return f"{format_number(value, 6)} seconds"
