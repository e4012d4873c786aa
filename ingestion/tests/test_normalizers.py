"""
Tests for normalizer functions - raw CSV frames to canonical DailyRecords.
"""

import pytest
import pandas as pd
from datetime import date

from ingestion.records import DailyRecord
from ingestion.transforms.normalizers import normalize_prices, NormalizationError


def make_frame(rows, columns=None):
    """Build a raw all-string frame the way the CSV reader does."""
    if columns is None:
        columns = ['Date', 'Open', 'High', 'Low', 'Close', 'Adj Close', 'Volume']
    return pd.DataFrame(rows, columns=columns, dtype=str)


class TestPriceNormalizer:
    """Tests for normalize_prices function."""

    def test_normalize_seven_column_layout(self):
        """Adj Close is ignored and volume comes from the last column."""
        frame = make_frame([
            ['2020-01-02', '10', '12', '9', '11', '10.5', '1000'],
            ['2020-01-03', '11', '13', '10', '12', '11.5', '1200'],
        ])

        result = normalize_prices(frame)

        assert result == [
            DailyRecord(date(2020, 1, 2), 10.0, 12.0, 9.0, 11.0, 1000.0),
            DailyRecord(date(2020, 1, 3), 11.0, 13.0, 10.0, 12.0, 1200.0),
        ]

    def test_normalize_six_column_layout(self):
        """Frames without Adj Close are read the same way."""
        frame = make_frame(
            [['1975-03-01', '5', '5.5', '4.5', '5.2', '300']],
            columns=['Date', 'Open', 'High', 'Low', 'Close', 'Volume']
        )

        result = normalize_prices(frame)

        assert len(result) == 1
        assert result[0].close == 5.2
        assert result[0].volume == 300.0
        assert result[0].year == 1975

    def test_header_names_are_not_used(self):
        """Columns are positional; unusual header names do not matter."""
        frame = make_frame(
            [['2020-01-02', '1', '2', '0.5', '1.5', '10']],
            columns=['d', 'a', 'b', 'c', 'e', 'v']
        )

        result = normalize_prices(frame)

        assert result[0].open == 1.0
        assert result[0].high == 2.0

    def test_timestamp_suffix_ignored(self):
        """Only the first ten characters of the date field are parsed."""
        frame = make_frame([['2020-01-02 00:00:00-05:00', '1', '1', '1', '1', '1', '1']])

        result = normalize_prices(frame)

        assert result[0].date == date(2020, 1, 2)

    def test_malformed_rows_dropped(self):
        """Bad dates, non-numeric or missing values drop the row, order is kept."""
        frame = make_frame([
            ['2020-01-02', '10', '12', '9', '11', '11', '1000'],
            ['garbage', '10', '12', '9', '11', '11', '1000'],
            ['2020-01-04', 'abc', '12', '9', '11', '11', '1000'],
            ['2020-01-05', '10', '12', '9', None, '11', '1000'],
            ['2020-01-06', '10', '12', '9', 'inf', '11', '1000'],
            ['2020-01-07', '10', '12', '9', '11', '11', '1000'],
        ])

        result = normalize_prices(frame)

        assert [r.date for r in result] == [date(2020, 1, 2), date(2020, 1, 7)]

    def test_max_rows_counts_valid_rows(self):
        """max_rows keeps the first N valid rows, skipping bad ones."""
        frame = make_frame([
            ['bad', '1', '1', '1', '1', '1', '1'],
            ['2020-01-02', '1', '1', '1', '1', '1', '1'],
            ['2020-01-03', '1', '1', '1', '1', '1', '1'],
            ['2020-01-06', '1', '1', '1', '1', '1', '1'],
        ])

        result = normalize_prices(frame, max_rows=2)

        assert [r.date for r in result] == [date(2020, 1, 2), date(2020, 1, 3)]

    def test_empty_frame(self):
        """Empty frame returns empty list."""
        assert normalize_prices(make_frame([])) == []

    def test_too_few_columns(self):
        """Frames narrower than Date..Volume are rejected."""
        frame = pd.DataFrame([['2020-01-02', '1', '2']], columns=['a', 'b', 'c'])

        with pytest.raises(NormalizationError, match="at least 6 columns"):
            normalize_prices(frame)
