"""
Benchmark harness - repeated timed analysis runs per backend and worker count.
Composes: Config → Run N times → Average → Append summary CSV.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from analysis.analysis_job import run_analysis
from analysis.backends import BACKENDS
from analysis.config import AnalysisConfig

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = ['timestamp', 'label', 'backend', 'workers', 'dataset', 'avg_time', 'runs']

DEFAULT_RUNS = 10


class BenchmarkError(Exception):
    """Raised when a benchmark cannot be configured or a run fails."""
    pass


@dataclass
class BenchmarkConfig:
    """Configuration for one benchmark campaign."""
    analysis: AnalysisConfig
    backends: List[str] = field(default_factory=lambda: ['serial'])
    worker_counts: List[int] = field(default_factory=lambda: [1])
    runs: int = DEFAULT_RUNS
    label: str = 'benchmark'
    summary_path: Optional[str] = None

    def __post_init__(self):
        """Validate backends, worker counts and run count."""
        if self.runs < 1:
            raise BenchmarkError(f"runs must be >= 1, got {self.runs}")

        if not self.backends:
            raise BenchmarkError("at least one backend is required")

        unknown = [b for b in self.backends if b not in BACKENDS]
        if unknown:
            raise BenchmarkError(f"Unknown backends: {unknown}. Available: {', '.join(BACKENDS)}")

        if not self.worker_counts or any(w < 1 for w in self.worker_counts):
            raise BenchmarkError(f"worker counts must be >= 1, got {self.worker_counts}")

    @property
    def dataset(self) -> str:
        return ', '.join(self.analysis.inputs)

    def combinations(self) -> List[Tuple[str, int]]:
        """(backend, workers) pairs to time; serial runs once with one worker."""
        combos = []
        for backend in self.backends:
            if backend == 'serial':
                combos.append((backend, 1))
            else:
                combos.extend((backend, workers) for workers in self.worker_counts)
        return combos


def _summaries_match(left: Dict[Any, Any], right: Dict[Any, Any], rel_tol: float = 1e-9) -> bool:
    """Compare combined-mode summaries of two runs within a relative tolerance."""
    if set(left) != set(right):
        return False

    for key in left:
        a, b = left[key], right[key]
        if (a.record_count, a.return_count) != (b.record_count, b.return_count):
            return False
        for name in ('mean_price', 'volatility', 'mean_daily_return'):
            x, y = getattr(a, name), getattr(b, name)
            if x is None or y is None:
                if x is not y:
                    return False
            elif not math.isclose(x, y, rel_tol=rel_tol, abs_tol=1e-12):
                return False
    return True


def time_configuration(analysis_config: AnalysisConfig, runs: int) -> Tuple[List[float], Dict[str, Any]]:
    """
    Run one configuration `runs` times.

    Returns:
        Tuple of (per-run durations in seconds, result of the last run)

    Raises:
        BenchmarkError: If any run fails
    """
    times = []
    result: Dict[str, Any] = {}

    for i in range(runs):
        result = run_analysis(analysis_config)
        if result['status'] != 'completed':
            raise BenchmarkError(
                f"Run {i + 1} ({analysis_config.backend}, workers={analysis_config.workers}) "
                f"failed: {result['error_message']}"
            )
        times.append(result['duration_seconds'])
        logger.info("Run %d/%d: %.6f seconds", i + 1, runs, result['duration_seconds'])

    return times, result


def append_summary(rows: List[Dict[str, Any]], summary_path: Path) -> None:
    """Append benchmark rows to the cumulative summary CSV, writing the header once."""
    summary_path.parent.mkdir(parents=True, exist_ok=True)
    write_header = not summary_path.exists() or summary_path.stat().st_size == 0

    frame = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    frame.to_csv(summary_path, mode='a', header=write_header, index=False)
    logger.info("Appended %d rows to %s", len(rows), summary_path)


def run_benchmark(config: BenchmarkConfig) -> Dict[str, Any]:
    """
    Time every (backend, workers) combination and optionally record a summary.

    Args:
        config: Benchmark configuration

    Returns:
        Dictionary with status, one entry per combination (times, avg_time,
        consistent flag) and timing
    """
    start_time = datetime.now()

    result: Dict[str, Any] = {
        'status': 'running',
        'label': config.label,
        'dataset': config.dataset,
        'runs': config.runs,
        'results': [],
        'summary_path': config.summary_path,
        'error_message': None,
    }

    baseline = None
    rows = []

    try:
        for backend, workers in config.combinations():
            analysis_config = replace(
                config.analysis, backend=backend, workers=workers, output_path=None
            )
            times, last = time_configuration(analysis_config, config.runs)
            avg_time = sum(times) / len(times)

            consistent = True
            if config.analysis.group == 'combined':
                if baseline is None:
                    baseline = last['summaries']
                else:
                    consistent = _summaries_match(baseline, last['summaries'])
                    if not consistent:
                        logger.warning("%s with %d workers disagrees with first configuration",
                                       backend, workers)

            result['results'].append({
                'backend': backend,
                'workers': workers,
                'times': times,
                'avg_time': avg_time,
                'consistent': consistent,
            })
            rows.append({
                'timestamp': datetime.now().isoformat(timespec='seconds'),
                'label': config.label,
                'backend': backend,
                'workers': workers,
                'dataset': config.dataset,
                'avg_time': round(avg_time, 6),
                'runs': config.runs,
            })

    except BenchmarkError as e:
        logger.error("Benchmark failed: %s", e)
        result['status'] = 'failed'
        result['error_message'] = str(e)
        result['duration_seconds'] = (datetime.now() - start_time).total_seconds()
        return result

    if config.summary_path and rows:
        append_summary(rows, Path(config.summary_path))

    result['status'] = 'completed'
    result['duration_seconds'] = (datetime.now() - start_time).total_seconds()
    return result
