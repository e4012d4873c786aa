"""
Benchmark runner CLI - repeated timed runs with a cumulative summary.
Usage: python pipeline/run.py DATA_DIR [options]
"""

import sys
import argparse
import logging
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from analysis.backends import BACKENDS
from analysis.config import ConfigError, PARTITIONS, SPLITS, load_config
from pipeline.benchmark import BenchmarkConfig, BenchmarkError, DEFAULT_RUNS, run_benchmark


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Benchmark the market statistics engine across backends',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python pipeline/run.py data/stocks
  python pipeline/run.py data/stocks --backends thread process --workers 2 4 8 --runs 5
  python pipeline/run.py data/stocks --partition decade --summary results/summary.csv --label decade
        """
    )
    parser.add_argument('inputs', nargs='+', help='Directory of CSV files and/or CSV files')
    parser.add_argument('--backends', nargs='+', choices=tuple(BACKENDS), default=['serial'],
                       help='Backends to time (default: serial)')
    parser.add_argument('--workers', nargs='+', type=int, default=[2, 4, 8],
                       help='Worker counts for thread/process backends (default: 2 4 8)')
    parser.add_argument('--runs', type=int, default=DEFAULT_RUNS,
                       help=f'Runs per configuration (default: {DEFAULT_RUNS})')
    parser.add_argument('--partition', choices=PARTITIONS, help='global or decade')
    parser.add_argument('--split', choices=SPLITS, help='files or rows')
    parser.add_argument('--max-rows', type=int, help='Use at most this many rows per file')
    parser.add_argument('--config', help='YAML config file')
    parser.add_argument('--label', default='benchmark', help='Label written to the summary CSV')
    parser.add_argument('--summary', help='Append averages to this CSV file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log every run')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    try:
        analysis_config = load_config(
            args.config,
            inputs=args.inputs,
            partition=args.partition,
            split=args.split,
            max_rows=args.max_rows,
        )
        config = BenchmarkConfig(
            analysis=analysis_config,
            backends=args.backends,
            worker_counts=args.workers,
            runs=args.runs,
            label=args.label,
            summary_path=args.summary,
        )
    except (ConfigError, BenchmarkError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    print(f"Benchmarking {config.dataset}")
    print(f"Runs per configuration: {config.runs}")
    print()

    result = run_benchmark(config)

    for entry in result['results']:
        print(f"Backend: {entry['backend']}  Workers: {entry['workers']}")
        for i, seconds in enumerate(entry['times'], start=1):
            print(f"   Run {i}: {seconds:.6f} seconds")
        print(f"   Average time: {entry['avg_time']:.6f} seconds")
        if not entry['consistent']:
            print("   Warning: results differ from the first configuration")
        print()

    if result['status'] != 'completed':
        print(f"Benchmark failed: {result['error_message']}", file=sys.stderr)
        return 1

    if result['summary_path']:
        print(f"Summary appended to: {result['summary_path']}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
