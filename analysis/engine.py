"""
Streaming statistics engine.

One pass over chronologically ordered DailyRecords keeps running sums per
partition (see analysis.calculations.accumulator) instead of buffering the
return series. Parallel execution is an explicit fan-out of independent
chunk or file tasks over a backend, followed by a fan-in merge of the
partial AccumulatorSets. Merging is addition, so the result does not depend
on chunk boundaries or worker count beyond floating-point summation order.

Chunking is by returns, not rows: a chunk covering rows [start, stop)
carries row `stop` as a look-ahead so the pair (stop - 1, stop) is counted
by exactly one chunk.
"""

import logging
from dataclasses import dataclass
from functools import reduce
from pathlib import Path
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

from analysis.backends import SerialBackend
from analysis.calculations.accumulator import Accumulator, AccumulatorSet, Summary, finalize
from analysis.calculations.decades import GLOBAL_KEY, global_key
from analysis.calculations.returns import daily_average, daily_return
from ingestion.providers.csv_reader import CsvReadError, load_price_file, symbol_from_path
from ingestion.records import DailyRecord
from ingestion.transforms.validators import QualityPolicy

logger = logging.getLogger(__name__)

KeyFunction = Callable[[DailyRecord], Optional[Hashable]]


class EngineError(Exception):
    """Raised when the engine is called with invalid arguments."""
    pass


def _pair_return(
    prev: DailyRecord,
    curr: DailyRecord,
    quality: Optional[QualityPolicy]
) -> Optional[float]:
    """Return for an adjacent pair, or None if the quality policy rejects it."""
    ret = daily_return(prev.close, curr.close)
    if quality is not None and not quality.accepts_return(prev.close, curr.close, ret):
        return None
    return ret


def accumulate_span(
    records: Iterable[DailyRecord],
    *,
    key_fn: KeyFunction = global_key,
    quality: Optional[QualityPolicy] = None,
    price_rows: Optional[int] = None,
    track_excluded_years: bool = True
) -> AccumulatorSet:
    """
    Single streaming pass over one contiguous run of records.

    Per record (only the first price_rows records when given):
    - year is recorded for the partition and the overall range
    - daily_average is added if the key is defined and the policy accepts it
    Per adjacent pair (r[i], r[i+1]), over the whole run:
    - daily_return is added to r[i]'s partition if the policy accepts it

    Args:
        records: Chronologically ordered records of one instrument
        key_fn: Maps a record to its partition key, None to exclude it
        quality: Optional data-quality policy
        price_rows: Count prices for this many leading records only; the
            rest are look-ahead rows used for return pairs
        track_excluded_years: Let records with no partition still widen
            the overall min/max year

    Returns:
        AccumulatorSet with one Accumulator per partition seen
    """
    result = AccumulatorSet()
    prev: Optional[DailyRecord] = None
    prev_key: Optional[Hashable] = None

    for i, record in enumerate(records):
        key = key_fn(record)

        if price_rows is None or i < price_rows:
            year = record.date.year
            if key is not None:
                acc = result.get(key)
                acc.observe_year(year)
                result.observe_year(year)
                if quality is None or quality.accepts_prices(record):
                    acc.add_price(daily_average(record))
            elif track_excluded_years:
                result.observe_year(year)

        if prev is not None and prev_key is not None:
            ret = _pair_return(prev, record, quality)
            if ret is not None:
                result.get(prev_key).add_return(ret)

        prev, prev_key = record, key

    return result


def chunk_bounds(n: int, parts: int) -> List[Tuple[int, int]]:
    """
    Split [0, n) into at most `parts` contiguous, near-equal ranges.

    The remainder is spread over the first ranges; no row is dropped and
    no empty range is returned.

    Example:
        chunk_bounds(10, 3) -> [(0, 4), (4, 7), (7, 10)]
    """
    if n < 0:
        raise EngineError(f"n must be non-negative, got {n}")
    if parts < 1:
        raise EngineError(f"parts must be >= 1, got {parts}")

    if n == 0:
        return []

    parts = min(parts, n)
    base, extra = divmod(n, parts)

    bounds = []
    start = 0
    for j in range(parts):
        stop = start + base + (1 if j < extra else 0)
        bounds.append((start, stop))
        start = stop

    return bounds


@dataclass(frozen=True)
class ChunkTask:
    """One contiguous slice handed to a worker (plus one look-ahead row)."""
    records: Sequence[DailyRecord]
    price_rows: int
    key_fn: KeyFunction = global_key
    quality: Optional[QualityPolicy] = None
    track_excluded_years: bool = True


def split_into_chunks(
    records: Sequence[DailyRecord],
    parts: int,
    **options
) -> List[ChunkTask]:
    """Build chunk tasks for one instrument's record sequence."""
    return [
        ChunkTask(records=records[start:stop + 1], price_rows=stop - start, **options)
        for start, stop in chunk_bounds(len(records), parts)
    ]


def _accumulate_chunk(task: ChunkTask) -> AccumulatorSet:
    return accumulate_span(
        task.records,
        key_fn=task.key_fn,
        quality=task.quality,
        price_rows=task.price_rows,
        track_excluded_years=task.track_excluded_years,
    )


def merge_partials(partials: Iterable[AccumulatorSet]) -> AccumulatorSet:
    """Fan-in: combine partial results by addition."""
    return reduce(lambda left, right: left.merge(right), partials, AccumulatorSet())


def accumulate_partials(
    sequences: Iterable[Sequence[DailyRecord]],
    *,
    key_fn: KeyFunction = global_key,
    quality: Optional[QualityPolicy] = None,
    backend=None,
    chunks: Optional[int] = None,
    track_excluded_years: bool = True
) -> AccumulatorSet:
    """
    Fan chunks of in-memory sequences out over a backend and merge them.

    Each sequence is one instrument; chunks never straddle two sequences,
    so no return is computed across instruments.

    Args:
        sequences: Record sequences, one per instrument
        key_fn: Partition key function
        quality: Optional data-quality policy
        backend: Execution backend (default SerialBackend)
        chunks: Chunks per sequence (default backend.workers)
        track_excluded_years: See accumulate_span

    Returns:
        Merged AccumulatorSet
    """
    if backend is None:
        backend = SerialBackend()

    parts = chunks if chunks is not None else backend.workers
    if parts < 1:
        raise EngineError(f"chunks must be >= 1, got {parts}")

    tasks: List[ChunkTask] = []
    for records in sequences:
        if not isinstance(records, (list, tuple)):
            records = list(records)
        tasks.extend(split_into_chunks(
            records,
            parts,
            key_fn=key_fn,
            quality=quality,
            track_excluded_years=track_excluded_years,
        ))

    return merge_partials(backend.map(_accumulate_chunk, tasks))


def _sorted_keys(partitions: Dict[Hashable, object]) -> List[Hashable]:
    try:
        return sorted(partitions)
    except TypeError:
        return list(partitions)


def summarize(acc_set: AccumulatorSet, key_fn: Optional[KeyFunction] = None) -> Dict[Hashable, Summary]:
    """
    Finalize every partition, ordered by key.

    With the global key function the global partition is always present,
    so an empty input still reports (insufficient) statistics.
    """
    partitions = dict(acc_set.partitions)
    if key_fn is global_key and GLOBAL_KEY not in partitions:
        partitions[GLOBAL_KEY] = Accumulator()

    return {key: finalize(partitions[key]) for key in _sorted_keys(partitions)}


def accumulate(
    records: Iterable[DailyRecord],
    key_fn: Optional[KeyFunction] = None,
    quality: Optional[QualityPolicy] = None,
    backend=None,
    chunks: Optional[int] = None,
    track_excluded_years: bool = True
) -> Dict[Hashable, Summary]:
    """
    Compute one Summary per partition for an ordered record sequence.

    The backend only changes how the pass is executed, never the result
    (up to floating-point summation order).

    Example:
        >>> accumulate(records)['all'].volatility
        >>> accumulate(records, key_fn=DecadeKey(), quality=QualityPolicy())
    """
    if key_fn is None:
        key_fn = global_key

    acc_set = accumulate_partials(
        [records],
        key_fn=key_fn,
        quality=quality,
        backend=backend,
        chunks=chunks,
        track_excluded_years=track_excluded_years,
    )
    return summarize(acc_set, key_fn)


@dataclass
class FileResult:
    """Outcome of reading and accumulating one price file."""
    path: str
    symbol: str
    records_loaded: int = 0
    partials: Optional[AccumulatorSet] = None
    error: Optional[str] = None

    @property
    def used(self) -> bool:
        return self.partials is not None


@dataclass(frozen=True)
class FileTask:
    """One price file handed to a worker, which reads it itself."""
    path: str
    max_rows: Optional[int] = None
    min_records: int = 2
    key_fn: KeyFunction = global_key
    quality: Optional[QualityPolicy] = None
    track_excluded_years: bool = True


def _accumulate_file(task: FileTask) -> FileResult:
    symbol = symbol_from_path(task.path)
    try:
        records = load_price_file(task.path, max_rows=task.max_rows)
    except CsvReadError as e:
        logger.warning("Skipping %s: %s", task.path, e)
        return FileResult(path=task.path, symbol=symbol, error=str(e))

    if len(records) < task.min_records:
        logger.info("Not enough data in file: %s (%d rows)", task.path, len(records))
        return FileResult(path=task.path, symbol=symbol, records_loaded=len(records))

    partials = accumulate_span(
        records,
        key_fn=task.key_fn,
        quality=task.quality,
        track_excluded_years=task.track_excluded_years,
    )
    return FileResult(
        path=task.path,
        symbol=symbol,
        records_loaded=len(records),
        partials=partials,
    )


def accumulate_files(
    paths: Sequence[Path],
    *,
    key_fn: KeyFunction = global_key,
    quality: Optional[QualityPolicy] = None,
    backend=None,
    max_rows: Optional[int] = None,
    min_records: int = 2,
    track_excluded_years: bool = True
) -> List[FileResult]:
    """
    Fan whole files out to workers; each reads and accumulates its file.

    Unreadable files and files with fewer than min_records rows come back
    with partials=None and contribute nothing.

    Returns:
        One FileResult per path, in path order
    """
    if backend is None:
        backend = SerialBackend()

    tasks = [
        FileTask(
            path=str(path),
            max_rows=max_rows,
            min_records=min_records,
            key_fn=key_fn,
            quality=quality,
            track_excluded_years=track_excluded_years,
        )
        for path in paths
    ]
    return backend.map(_accumulate_file, tasks)
