"""
Plain-text market statistics reports.
Turns run_analysis results into the console report layout.
"""

from typing import Any, Dict, Hashable, List, Mapping, Optional, Tuple

from analysis.calculations.accumulator import Summary
from analysis.calculations.decades import GLOBAL_KEY
from reports.formatters import (
    format_number,
    format_percentage,
    format_seconds,
    format_with_percentage,
    format_year_range,
)

RULE = "=" * 43
THIN_RULE = "-" * 60
FILE_RULE = "-" * 45


def render_global_report(summary: Summary, records_loaded: Optional[int] = None) -> List[str]:
    """
    Global statistics block.

    Args:
        summary: Summary of the single global partition
        records_loaded: Rows read before filtering (default: summary.record_count)

    Returns:
        Report lines
    """
    if summary.insufficient_data:
        return ["No sufficient data loaded."]

    if records_loaded is None:
        records_loaded = summary.record_count

    return [
        f"Total records loaded: {records_loaded}",
        f"Average daily price (all files): {format_number(summary.mean_price, 4)}",
        f"Volatility (std. dev of returns): {format_number(summary.volatility, 6)}",
        f"Volatility (percentage): {format_percentage(summary.volatility, 4)}",
        f"Mean daily return: {format_with_percentage(summary.mean_daily_return, 6, 4)}",
        f"Approx annual return: {format_with_percentage(summary.annualized_return, 6, 4)}",
    ]


def render_decade_block(bounds: Tuple[int, int], summary: Summary) -> List[str]:
    """One decade section; returns an empty list for an empty decade."""
    if summary.record_count == 0 and summary.return_count == 0:
        return []

    return [
        f"Decade {format_year_range(*bounds)}:",
        f"  Rows used:             {summary.record_count}",
        f"  Mean market price:     {format_number(summary.mean_price, 4)}",
        f"  Market volatility:     {format_with_percentage(summary.volatility, 4, 4)}",
        f"  Mean daily return:     {format_with_percentage(summary.mean_daily_return, 6, 4)}",
        f"  Approx annual return:  {format_with_percentage(summary.annualized_return, 6, 4)}",
        "",
    ]


def render_decade_report(
    summaries: Mapping[Hashable, Summary],
    bounds: Mapping[Hashable, Tuple[int, int]],
    min_year: Optional[int] = None,
    max_year: Optional[int] = None
) -> List[str]:
    """
    Decade-by-decade statistics followed by the overall year range.

    Decades with neither rows nor returns are omitted.
    """
    lines = ["Market Summary by Decade:", THIN_RULE]

    for key, summary in summaries.items():
        if key not in bounds:
            continue
        lines.extend(render_decade_block(bounds[key], summary))

    lines.append(f"Overall Years Range in Data: {format_year_range(min_year, max_year)}")
    return lines


def render_per_file_report(
    symbol: str,
    summaries: Mapping[Hashable, Summary],
    bounds: Optional[Mapping[Hashable, Tuple[int, int]]] = None
) -> List[str]:
    """
    Report block for one instrument.

    Global partitioning prints the per-symbol figures; decade partitioning
    prints one decade block per populated decade.
    """
    lines = [f"Symbol: {symbol}"]

    if bounds:
        populated = [s for key, s in summaries.items() if key in bounds]
        if not populated or all(s.insufficient_data for s in populated):
            lines.append(f"Not enough data in file: {symbol}")
        else:
            for key, summary in summaries.items():
                if key in bounds:
                    lines.extend(render_decade_block(bounds[key], summary))
        lines.append(FILE_RULE)
        return lines

    summary = summaries.get(GLOBAL_KEY)
    if summary is None or summary.insufficient_data:
        lines.append(f"Not enough data in file: {symbol}")
    else:
        lines.extend([
            f"Records loaded: {summary.record_count}",
            f"Average daily price (USD): {format_number(summary.mean_price, 4)}",
            f"Volatility (std. dev of returns): {format_number(summary.volatility, 6)}",
            f"Volatility (percentage): {format_percentage(summary.volatility, 4)}",
        ])
    lines.append(FILE_RULE)
    return lines


def _header(result: Dict[str, Any]) -> List[str]:
    if result.get('partition') == 'decade':
        title = "Market Statistics by Decade"
    else:
        title = "Market Statistics (All Files Combined)"
    if result.get('group') == 'per_file':
        title = "Market Statistics per File"

    workers = result.get('workers')
    backend = result.get('backend', 'serial')
    if workers and backend != 'serial':
        backend = f"{backend} ({workers} workers)"

    return [
        title,
        RULE,
        f"Files: {result.get('files_found', 0)} found, "
        f"{result.get('files_used', 0)} used, {result.get('files_skipped', 0)} skipped",
        f"Backend: {backend}",
        "",
    ]


def render_report(result: Dict[str, Any]) -> str:
    """
    Render a full run_analysis result.

    Args:
        result: Dictionary returned by analysis.analysis_job.run_analysis

    Returns:
        Report text ending with a newline
    """
    if result.get('status') != 'completed':
        return f"Analysis failed: {result.get('error_message') or 'Unknown error'}\n"

    lines = _header(result)
    summaries = result.get('summaries', {})
    bounds = result.get('bounds', {})

    if result.get('group') == 'per_file':
        for symbol, file_summaries in summaries.items():
            lines.extend(render_per_file_report(symbol, file_summaries, bounds))
        if result.get('partition') == 'decade':
            lines.append(
                f"Overall Years Range in Data: "
                f"{format_year_range(result.get('min_year'), result.get('max_year'))}"
            )
    elif result.get('partition') == 'decade':
        lines.extend(render_decade_report(
            summaries, bounds, result.get('min_year'), result.get('max_year')
        ))
    else:
        summary = summaries.get(GLOBAL_KEY)
        if summary is None:
            lines.append("No sufficient data loaded.")
        else:
            lines.extend(render_global_report(summary, result.get('records_loaded')))

    lines.append(f"Execution time ({result.get('backend', 'serial')}): "
                 f"{format_seconds(result.get('duration_seconds'))}")
    lines.append(RULE)
    return "\n".join(lines) + "\n"
