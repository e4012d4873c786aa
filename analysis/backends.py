"""
Execution backends for the fan-out step of the statistics engine.

Every backend exposes map(fn, tasks) -> list with results in task order, so
the fan-in merge is identical whichever backend produced the partials.
"""

import logging
import os
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')


class BackendError(Exception):
    """Raised when a backend is unknown or misconfigured."""
    pass


def default_workers() -> int:
    return min(8, os.cpu_count() or 2)


class SerialBackend:
    """Single pass in the calling thread."""
    name = 'serial'

    def __init__(self, workers: Optional[int] = None):
        self.workers = 1

    def map(self, fn: Callable[[T], R], tasks: Iterable[T]) -> List[R]:
        return [fn(task) for task in tasks]


class _PoolBackend:
    name = 'pool'
    executor_class = ThreadPoolExecutor

    def __init__(self, workers: Optional[int] = None):
        if workers is None:
            workers = default_workers()
        if workers < 1:
            raise BackendError(f"workers must be >= 1, got {workers}")
        self.workers = workers

    def map(self, fn: Callable[[T], R], tasks: Iterable[T]) -> List[R]:
        task_list = list(tasks)

        # Sequential path when a pool would only add overhead
        if self.workers == 1 or len(task_list) <= 1:
            return [fn(task) for task in task_list]

        logger.debug(
            "Dispatching %d tasks to %s backend with %d workers",
            len(task_list), self.name, self.workers
        )
        with self.executor_class(max_workers=self.workers) as pool:
            return list(pool.map(fn, task_list))


class ThreadBackend(_PoolBackend):
    """Shared-memory workers; each task builds its own private accumulator."""
    name = 'thread'
    executor_class = ThreadPoolExecutor


class ProcessBackend(_PoolBackend):
    """
    Worker processes coordinated by the calling process.

    The coordinator owns the parsed data and ships each task only its own
    contiguous slice; tasks and their functions must be picklable.
    """
    name = 'process'
    executor_class = ProcessPoolExecutor


BACKENDS = {
    'serial': SerialBackend,
    'thread': ThreadBackend,
    'process': ProcessBackend,
}


def get_backend(name: str = 'serial', workers: Optional[int] = None):
    """
    Build a backend by name.

    Args:
        name: One of 'serial', 'thread', 'process'
        workers: Worker count (ignored by 'serial', default min(8, cpu_count))

    Returns:
        Backend instance

    Raises:
        BackendError: If the name is unknown or workers < 1
    """
    backend_class = BACKENDS.get(name)
    if backend_class is None:
        raise BackendError(
            f"Unknown backend: {name}. Available backends: {', '.join(BACKENDS)}"
        )
    return backend_class(workers)
