"""
Tests for the analyze_market CLI - subprocess calls in a temp workspace.
"""

import json
import os
import shutil
import subprocess
import sys
import tempfile
import pytest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent.parent
SCRIPT = PROJECT_ROOT / 'analysis' / 'analyze_market.py'
FIXTURES = PROJECT_ROOT / 'tests' / 'fixtures'


@pytest.fixture
def workspace():
    """Temp workspace with a stocks directory of fixture CSVs."""
    with tempfile.TemporaryDirectory() as temp_dir:
        workspace = Path(temp_dir)
        shutil.copytree(FIXTURES, workspace / 'stocks')
        yield workspace


def run_cli(*args, cwd):
    return subprocess.run(
        [sys.executable, str(SCRIPT), *args],
        capture_output=True,
        text=True,
        encoding='utf-8',
        env=dict(os.environ, PYTHONIOENCODING='utf-8'),
        cwd=cwd,
        timeout=120,
    )


class TestAnalyzeMarketCli:
    """End-to-end CLI runs."""

    def test_global_report(self, workspace):
        """Default run prints the combined global report."""
        result = run_cli('stocks', cwd=workspace)

        assert result.returncode == 0, result.stderr
        assert "Market Statistics (All Files Combined)" in result.stdout
        assert "Total records loaded: 13" in result.stdout
        assert "Volatility (std. dev of returns):" in result.stdout
        assert "Execution time (serial):" in result.stdout

    def test_decade_report(self, workspace):
        """Decade partitioning prints one block per populated decade."""
        result = run_cli('stocks', '--partition', 'decade', '--backend', 'thread',
                         '--workers', '2', cwd=workspace)

        assert result.returncode == 0, result.stderr
        assert "Decade 1970–1979:" in result.stdout
        assert "Decade 2010–2019:" in result.stdout
        assert "Overall Years Range in Data: 1975–2021" in result.stdout
        assert "Execution time (thread):" in result.stdout

    def test_legacy_decade_labels(self, workspace):
        """Legacy flag reproduces the 2010–2020 label."""
        result = run_cli('stocks', '--partition', 'decade', '--legacy-decade-labels',
                         cwd=workspace)

        assert result.returncode == 0, result.stderr
        assert "Decade 2010–2020:" in result.stdout
        assert "Decade 2020–2029:" not in result.stdout

    def test_per_file_report(self, workspace):
        """Per-file mode prints a block per symbol."""
        result = run_cli('stocks', '--per-file', cwd=workspace)

        assert result.returncode == 0, result.stderr
        assert "Symbol: AAA" in result.stdout
        assert "Records loaded: 5" in result.stdout
        assert "Not enough data in file: header_only" in result.stdout

    def test_json_output(self, workspace):
        """--output saves the result as JSON."""
        result = run_cli('stocks', '--output', 'out/result.json', '--quiet', cwd=workspace)

        assert result.returncode == 0, result.stderr
        assert "Analysis complete: 3 files, 13 records" in result.stdout
        with open(workspace / 'out' / 'result.json') as f:
            saved = json.load(f)
        assert saved['summaries']['all']['record_count'] == 13

    def test_config_file(self, workspace):
        """Options can come from a YAML config file."""
        (workspace / 'analysis.yml').write_text("partition: decade\nmax_rows: 2\n")

        result = run_cli('stocks', '--config', 'analysis.yml', cwd=workspace)

        assert result.returncode == 0, result.stderr
        assert "Market Statistics by Decade" in result.stdout

    def test_empty_directory_fails(self, workspace):
        """No CSV files exits with code 1."""
        (workspace / 'empty').mkdir()

        result = run_cli('empty', cwd=workspace)

        assert result.returncode == 1
        assert "No .csv files found" in result.stderr

    def test_missing_directory_fails(self, workspace):
        """Missing input path exits with code 1."""
        result = run_cli('nowhere', cwd=workspace)

        assert result.returncode == 1
        assert "Input not found" in result.stderr

    def test_no_inputs(self, workspace):
        """Running without inputs prints usage and fails."""
        result = run_cli(cwd=workspace)

        assert result.returncode == 1
        assert "No input directory or CSV files given" in result.stderr

    def test_invalid_workers(self, workspace):
        """Invalid worker count is a configuration error."""
        result = run_cli('stocks', '--backend', 'thread', '--workers', '0', cwd=workspace)

        assert result.returncode == 1
        assert "Invalid configuration" in result.stderr
