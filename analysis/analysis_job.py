"""
Orchestrated analysis job - CSV files to per-partition summaries.
Resolves inputs, fans the work out over the configured backend, merges the
partial sums and optionally persists the result as JSON.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from analysis.backends import BackendError, get_backend
from analysis.calculations.accumulator import AccumulatorSet, Summary
from analysis.calculations.decades import DecadeKey, decade_bounds, legacy_reported
from analysis.config import AnalysisConfig
from analysis.engine import (
    EngineError,
    accumulate_files,
    accumulate_partials,
    merge_partials,
    summarize,
)
from ingestion.providers.csv_reader import (
    CsvReadError,
    load_price_file,
    resolve_inputs,
    symbol_from_path,
)
from ingestion.records import DailyRecord

logger = logging.getLogger(__name__)


class AnalysisJobError(Exception):
    """Raised when analysis results cannot be persisted."""
    pass


def run_analysis(config: AnalysisConfig, backend=None) -> Dict[str, Any]:
    """
    Run a complete analysis and return its results.

    Run-level problems (no inputs, bad backend) are reported through
    status='failed' and error_message rather than raised. Per-file problems
    only count toward files_skipped.

    Args:
        config: Analysis configuration
        backend: Pre-built backend (default: built from config)

    Returns:
        Dictionary with status, file counts, summaries and timing
    """
    start_time = datetime.now()

    result: Dict[str, Any] = {
        'status': 'running',
        'partition': config.partition,
        'group': config.group,
        'backend': config.backend,
        'workers': None,
        'split': config.split,
        'quality_filter': config.use_quality_filter,
        'legacy_decade_labels': config.legacy_decade_labels,
        'files_found': 0,
        'files_used': 0,
        'files_skipped': 0,
        'records_loaded': 0,
        'min_year': None,
        'max_year': None,
        'summaries': {},
        'bounds': {},
        'error_message': None,
    }

    try:
        paths = resolve_inputs(config.inputs, config.extension)
        result['files_found'] = len(paths)

        if not paths:
            return _failed(result, f"No {config.extension} files found in: {', '.join(config.inputs)}", start_time)

        if backend is None:
            backend = get_backend(config.backend, config.workers)
        result['workers'] = backend.workers

        logger.info(
            "Analyzing %d files (partition=%s, group=%s, backend=%s, workers=%d, split=%s)",
            len(paths), config.partition, config.group, config.backend,
            backend.workers, config.split
        )

        if config.group == 'combined':
            overall = _run_combined(config, paths, backend, result)
        else:
            overall = _run_per_file(config, paths, backend, result)

    except (CsvReadError, EngineError, BackendError) as e:
        return _failed(result, str(e), start_time)

    result['min_year'] = overall.min_year
    result['max_year'] = overall.max_year
    result['bounds'] = _partition_bounds(config, overall)
    result['status'] = 'completed'
    result['duration_seconds'] = (datetime.now() - start_time).total_seconds()

    if config.output_path:
        write_result_json(result, Path(config.output_path))
        result['output_path'] = config.output_path

    return result


def _failed(result: Dict[str, Any], message: str, start_time: datetime) -> Dict[str, Any]:
    logger.error("Analysis failed: %s", message)
    result['status'] = 'failed'
    result['error_message'] = message
    result['duration_seconds'] = (datetime.now() - start_time).total_seconds()
    return result


def _load_files(
    paths: List[Path],
    max_rows: Optional[int],
    min_records: int,
    result: Dict[str, Any]
) -> List[Tuple[Path, List[DailyRecord]]]:
    """
    Coordinator-side load for the row-split strategy.

    Unreadable files and files shorter than min_records are counted as
    skipped and left out.
    """
    loaded = []
    for path in paths:
        try:
            records = load_price_file(path, max_rows=max_rows)
        except CsvReadError as e:
            logger.warning("Skipping %s: %s", path, e)
            result['files_skipped'] += 1
            continue

        if len(records) < min_records:
            logger.info("Not enough data in file: %s (%d rows)", path, len(records))
            result['files_skipped'] += 1
            continue

        loaded.append((path, records))
    return loaded


def _run_combined(
    config: AnalysisConfig,
    paths: List[Path],
    backend,
    result: Dict[str, Any]
) -> AccumulatorSet:
    """All files pooled into one set of partitions; files with < 2 rows skipped."""
    key_fn = config.key_function()
    options = dict(
        key_fn=key_fn,
        quality=config.quality_policy(),
        track_excluded_years=config.track_excluded_years,
    )

    if config.split == 'files':
        file_results = accumulate_files(
            paths, backend=backend, max_rows=config.max_rows, min_records=2, **options
        )
        used = [r for r in file_results if r.used]
        result['files_used'] = len(used)
        result['files_skipped'] = len(file_results) - len(used)
        result['records_loaded'] = sum(r.records_loaded for r in used)
        overall = merge_partials(r.partials for r in used)
    else:
        loaded = _load_files(paths, config.max_rows, 2, result)
        result['files_used'] = len(loaded)
        result['records_loaded'] = sum(len(records) for _, records in loaded)
        overall = accumulate_partials(
            [records for _, records in loaded], backend=backend, **options
        )

    result['summaries'] = summarize(overall, key_fn)
    return overall


def _run_per_file(
    config: AnalysisConfig,
    paths: List[Path],
    backend,
    result: Dict[str, Any]
) -> AccumulatorSet:
    """One set of summaries per instrument; short files report insufficient data."""
    key_fn = config.key_function()
    options = dict(
        key_fn=key_fn,
        quality=config.quality_policy(),
        track_excluded_years=config.track_excluded_years,
    )

    per_file: List[Tuple[Path, int, AccumulatorSet]] = []

    if config.split == 'files':
        file_results = accumulate_files(
            paths, backend=backend, max_rows=config.max_rows, min_records=0, **options
        )
        for r in file_results:
            if r.used:
                per_file.append((Path(r.path), r.records_loaded, r.partials))
            else:
                result['files_skipped'] += 1
    else:
        for path, records in _load_files(paths, config.max_rows, 0, result):
            partials = accumulate_partials([records], backend=backend, **options)
            per_file.append((path, len(records), partials))

    summaries: Dict[str, Dict[Any, Summary]] = {}
    for path, records_loaded, partials in per_file:
        symbol = symbol_from_path(path)
        if symbol in summaries:
            symbol = str(path)
        summaries[symbol] = summarize(partials, key_fn)
        result['records_loaded'] += records_loaded

    result['files_used'] = len(per_file)
    result['summaries'] = summaries
    return merge_partials(partials for _, _, partials in per_file)


def _partition_bounds(config: AnalysisConfig, overall: AccumulatorSet) -> Dict[Any, Tuple[int, int]]:
    """
    Inclusive year labels for decade partitions (empty for global).

    Reports only print partitions that have bounds, so with legacy labels
    the decades after 2010-2020 are left out here.
    """
    key_fn = config.key_function()
    if not isinstance(key_fn, DecadeKey):
        return {}

    bounds = {}
    for index in sorted(overall.partitions):
        start = key_fn.start_of(index)
        if config.legacy_decade_labels and not legacy_reported(start):
            continue
        bounds[index] = decade_bounds(start, config.legacy_decade_labels)
    return bounds


def result_to_dict(result: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-ready copy of a run result (Summaries converted to dicts)."""
    data = dict(result)

    if result.get('group') == 'per_file':
        data['summaries'] = {
            symbol: {str(key): summary.to_dict() for key, summary in summaries.items()}
            for symbol, summaries in result['summaries'].items()
        }
    else:
        data['summaries'] = {
            str(key): summary.to_dict() for key, summary in result['summaries'].items()
        }

    data['bounds'] = {str(key): list(bounds) for key, bounds in result['bounds'].items()}
    return data


def write_result_json(result: Dict[str, Any], output_path: Path) -> None:
    """
    Save a run result as JSON.

    Raises:
        AnalysisJobError: If the file cannot be written
    """
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            json.dump(result_to_dict(result), f, indent=2, default=str)
    except OSError as e:
        raise AnalysisJobError(f"Cannot write results to {output_path}: {e}") from e

    logger.info("Results saved to %s", output_path)
