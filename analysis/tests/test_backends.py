"""
Tests for execution backends.
"""

import pytest
from datetime import date, timedelta

from analysis.backends import (
    BACKENDS,
    BackendError,
    ProcessBackend,
    SerialBackend,
    ThreadBackend,
    default_workers,
    get_backend,
)
from analysis.calculations.decades import DecadeKey, GLOBAL_KEY
from analysis.engine import accumulate
from ingestion.records import DailyRecord
from ingestion.transforms.validators import QualityPolicy


class TestGetBackend:
    """Tests for get_backend factory."""

    def test_known_names(self):
        """Every registered name builds its class."""
        assert set(BACKENDS) == {'serial', 'thread', 'process'}
        assert isinstance(get_backend('serial'), SerialBackend)
        assert isinstance(get_backend('thread', 2), ThreadBackend)
        assert isinstance(get_backend('process', 2), ProcessBackend)

    def test_unknown_name(self):
        """Unknown names list the available backends."""
        with pytest.raises(BackendError, match="serial, thread, process"):
            get_backend('gpu')

    def test_serial_ignores_workers(self):
        """Serial backend always reports one worker."""
        assert get_backend('serial', 8).workers == 1

    def test_default_workers(self):
        """Pool backends default to min(8, cpu_count) workers."""
        assert 1 <= default_workers() <= 8
        assert ThreadBackend().workers == default_workers()

    @pytest.mark.parametrize("name", ['thread', 'process'])
    def test_invalid_workers(self, name):
        """Worker count below one is rejected."""
        with pytest.raises(BackendError):
            get_backend(name, 0)


class TestMap:
    """Tests for map ordering and results."""

    @pytest.mark.parametrize("backend", [
        SerialBackend(), ThreadBackend(1), ThreadBackend(4), ProcessBackend(2),
    ])
    def test_results_in_task_order(self, backend):
        """Results come back in task order whatever the backend."""
        tasks = list(range(-20, 0))

        assert backend.map(abs, tasks) == [abs(t) for t in tasks]

    def test_empty_tasks(self):
        """No tasks, no results."""
        assert ThreadBackend(4).map(abs, []) == []


class TestProcessBackendEngine:
    """Process backend running real engine tasks."""

    def test_process_matches_serial(self):
        """Chunks shipped to worker processes merge to the serial result."""
        start = date(1985, 1, 1)
        records = [
            DailyRecord(start + timedelta(days=i), 10.0 + i % 5, 11.0 + i % 5,
                        9.0 + i % 5, 10.5 + i % 7, 1000.0)
            for i in range(6000)
        ]
        options = dict(key_fn=DecadeKey(), quality=QualityPolicy())

        serial = accumulate(records, **options)
        parallel = accumulate(records, backend=ProcessBackend(2), chunks=4, **options)

        assert sorted(parallel) == sorted(serial)
        for key in serial:
            assert parallel[key].record_count == serial[key].record_count
            assert parallel[key].return_count == serial[key].return_count
            assert parallel[key].volatility == pytest.approx(serial[key].volatility, rel=1e-9)

    def test_global_key_over_processes(self):
        """The default global key function is picklable too."""
        records = [
            DailyRecord(date(2020, 1, 1) + timedelta(days=i), 5.0, 6.0, 4.0, 5.0 + i % 3, 1.0)
            for i in range(100)
        ]

        result = accumulate(records, backend=ProcessBackend(2))

        assert result[GLOBAL_KEY].return_count == 99
