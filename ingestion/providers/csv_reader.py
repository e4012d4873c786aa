"""
CSV price file reader and input discovery.
Thin IO layer - parsing rules live in ingestion.transforms.normalizers.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import pandas as pd

from ingestion.records import DailyRecord
from ingestion.transforms.normalizers import normalize_prices, NormalizationError
from ingestion.transforms.validators import check_date_monotonicity, ValidationError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class CsvReadError(Exception):
    """Raised when a CSV file or directory cannot be read."""
    pass


def read_price_csv(path: PathLike, max_rows: Optional[int] = None) -> List[DailyRecord]:
    """
    Read one daily price CSV file into DailyRecords.

    The first line is treated as a header. Lines with too many fields are
    skipped by the parser; lines with bad values are dropped during
    normalization. A header-only or empty file yields an empty list.

    Args:
        path: Path to the CSV file
        max_rows: Keep at most this many valid rows (None = all)

    Returns:
        List of DailyRecord in file order

    Raises:
        CsvReadError: If the file is missing, unreadable or not a price file
    """
    csv_path = Path(path)
    if not csv_path.is_file():
        raise CsvReadError(f"CSV file not found: {csv_path}")

    try:
        frame = pd.read_csv(
            csv_path,
            header=0,
            dtype=str,
            index_col=False,
            on_bad_lines='skip',
            skip_blank_lines=True,
            encoding_errors='replace',
        )
    except pd.errors.EmptyDataError:
        logger.debug("Empty CSV file: %s", csv_path)
        return []
    except (OSError, pd.errors.ParserError) as e:
        raise CsvReadError(f"Cannot read {csv_path}: {e}") from e

    try:
        records = normalize_prices(frame, max_rows=max_rows)
    except NormalizationError as e:
        raise CsvReadError(f"{csv_path} is not a price file: {e}") from e

    logger.debug("Read %d records from %s", len(records), csv_path)
    return records


def list_csv_files(directory: PathLike, extension: str = '.csv') -> List[Path]:
    """
    List candidate price files in a directory (non-recursive, sorted).

    Args:
        directory: Directory to scan
        extension: File name suffix to keep

    Returns:
        Sorted list of file paths

    Raises:
        CsvReadError: If the directory does not exist
    """
    dir_path = Path(directory)
    if not dir_path.is_dir():
        raise CsvReadError(f"Cannot open directory: {dir_path}")

    return sorted(
        p for p in dir_path.iterdir()
        if p.is_file() and p.name.endswith(extension)
    )


def resolve_inputs(inputs: Sequence[PathLike], extension: str = '.csv') -> List[Path]:
    """
    Expand a mix of directories and file paths into a flat file list.

    Directories contribute their matching files; explicit file paths are
    kept whatever their extension.

    Raises:
        CsvReadError: If an input path does not exist
    """
    paths: List[Path] = []
    for item in inputs:
        item_path = Path(item)
        if item_path.is_dir():
            paths.extend(list_csv_files(item_path, extension))
        elif item_path.exists():
            paths.append(item_path)
        else:
            raise CsvReadError(f"Input not found: {item_path}")
    return paths


def symbol_from_path(path: PathLike) -> str:
    """Instrument symbol for a price file, e.g. 'data/AAPL.csv' -> 'AAPL'."""
    return Path(path).stem


def load_price_file(path: PathLike, max_rows: Optional[int] = None) -> List[DailyRecord]:
    """
    Read a price file and warn when its rows are not in chronological order.

    Out-of-order files are still returned as read; adjacent-pair returns
    then follow file order.

    Raises:
        CsvReadError: If the file cannot be read
    """
    records = read_price_csv(path, max_rows=max_rows)
    try:
        check_date_monotonicity(records)
    except ValidationError as e:
        logger.warning("%s: %s", path, e)
    return records
