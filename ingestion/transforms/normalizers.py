"""
Normalizers for transforming raw CSV frames to canonical DailyRecords.
Pure functions - no IO, network, or side effects.
Malformed rows are dropped, never repaired.
"""

import numpy as np
import pandas as pd
from typing import List, Optional

from ingestion.records import DailyRecord


# Date, Open, High, Low, Close, Volume is the narrowest layout we accept
MIN_COLUMNS = 6


class NormalizationError(Exception):
    """Raised when a raw frame does not have a usable column layout."""
    pass


def normalize_prices(
    frame: pd.DataFrame,
    max_rows: Optional[int] = None
) -> List[DailyRecord]:
    """
    Transform a raw price frame to canonical DailyRecords.

    Columns are read by position rather than by header name:
    - column 0: trading date (YYYY-MM-DD, anything after the 10th char ignored)
    - columns 1-4: open, high, low, close
    - last column: volume (an optional Adj Close before it is ignored)

    Rows with an unparseable date or a missing/non-finite number are
    dropped. Row order is preserved.

    Args:
        frame: Raw DataFrame as read from CSV (header already consumed)
        max_rows: Keep at most this many valid rows (None = all)

    Returns:
        List of DailyRecord in file order

    Raises:
        NormalizationError: If the frame has fewer than 6 columns
    """
    if frame.empty:
        return []

    if frame.shape[1] < MIN_COLUMNS:
        raise NormalizationError(
            f"Expected at least {MIN_COLUMNS} columns, got {frame.shape[1]}"
        )

    dates = frame.iloc[:, 0].astype(str).str.strip().str.slice(0, 10)

    canonical = pd.DataFrame({
        'date': pd.to_datetime(dates, format='%Y-%m-%d', errors='coerce'),
        'open': pd.to_numeric(frame.iloc[:, 1], errors='coerce'),
        'high': pd.to_numeric(frame.iloc[:, 2], errors='coerce'),
        'low': pd.to_numeric(frame.iloc[:, 3], errors='coerce'),
        'close': pd.to_numeric(frame.iloc[:, 4], errors='coerce'),
        'volume': pd.to_numeric(frame.iloc[:, -1], errors='coerce'),
    })

    canonical = canonical.replace([np.inf, -np.inf], np.nan).dropna()

    if max_rows is not None:
        canonical = canonical.head(max_rows)

    return [
        DailyRecord(
            date=row.date.date(),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for row in canonical.itertuples(index=False)
    ]
