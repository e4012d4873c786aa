#!/usr/bin/env python3
"""
CLI tool for market statistics over daily price CSV files.
Usage: python analysis/analyze_market.py DATA_DIR_OR_FILES... [options]
"""

import sys
import argparse
import logging
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from analysis.analysis_job import AnalysisJobError, run_analysis
from analysis.backends import BACKENDS
from analysis.config import ConfigError, PARTITIONS, SPLITS, load_config
from reports.market_report import render_report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Mean daily price and volatility of daily OHLCV CSV files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python analysis/analyze_market.py data/stocks
  python analysis/analyze_market.py data/stocks --partition decade --backend process --workers 4
  python analysis/analyze_market.py AAPL.csv MSFT.csv --per-file --max-rows 500
        """
    )

    parser.add_argument('inputs', nargs='*',
                       help='Directory of CSV files and/or individual CSV files')
    parser.add_argument('--partition',
                       choices=PARTITIONS,
                       help='Statistics for all data (global) or per decade (default: global)')
    parser.add_argument('--per-file',
                       action='store_const', const='per_file', dest='group',
                       help='Report each file separately instead of pooling them')
    parser.add_argument('--backend',
                       choices=tuple(BACKENDS),
                       help='Execution backend (default: serial)')
    parser.add_argument('--workers', type=int,
                       help='Worker count for thread/process backends')
    parser.add_argument('--split',
                       choices=SPLITS,
                       help='Give workers whole files or contiguous row chunks (default: files)')
    parser.add_argument('--max-rows', type=int,
                       help='Use at most this many valid rows per file')
    parser.add_argument('--quality-filter',
                       action='store_true', dest='quality_filter', default=None,
                       help='Drop out-of-bounds prices and extreme returns (default in decade mode)')
    parser.add_argument('--no-quality-filter',
                       action='store_false', dest='quality_filter',
                       help='Use every parsed row')
    parser.add_argument('--legacy-decade-labels',
                       action='store_true', default=None,
                       help='Label the 2010s decade as 2010–2020')
    parser.add_argument('--config',
                       help='YAML config file (default: $MARKET_STATS_CONFIG)')
    parser.add_argument('--output',
                       help='Also save the results as JSON to this path')
    parser.add_argument('--quiet', '-q',
                       action='store_true',
                       help='Minimal output (just success/failure)')
    parser.add_argument('--verbose', '-v',
                       action='store_true',
                       help='Log progress to stderr')
    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    try:
        config = load_config(
            args.config,
            inputs=args.inputs or None,
            partition=args.partition,
            group=args.group,
            backend=args.backend,
            workers=args.workers,
            split=args.split,
            max_rows=args.max_rows,
            quality_filter=args.quality_filter,
            legacy_decade_labels=args.legacy_decade_labels,
            output_path=args.output,
        )
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    if not config.inputs:
        parser.print_usage(sys.stderr)
        print("No input directory or CSV files given", file=sys.stderr)
        return 1

    try:
        result = run_analysis(config)
    except AnalysisJobError as e:
        print(f"Analysis failed: {e}", file=sys.stderr)
        return 1

    if result['status'] != 'completed':
        print(f"Analysis failed: {result['error_message']}", file=sys.stderr)
        return 1

    if args.quiet:
        print(f"Analysis complete: {result['files_used']} files, "
              f"{result['records_loaded']} records")
    else:
        print(render_report(result), end='')
        if result.get('output_path'):
            print(f"Results saved to: {result['output_path']}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
