"""
Parallel accumulation of many matrix files into one total.

Every file is accumulated by its own task into a private partial matrix. The
calling thread is the only one that touches the total: it adds each partial as
soon as its task completes. The first fatal error sets a shared cancellation
event so that running tasks stop at their next chunk boundary, and is then
re-raised to the caller.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass

import numpy as np

from .accumulate import FileReport, accumulate_file
from .errors import AllocationError, ConfigError
from .tokenizer import ACCUMULATOR_DTYPE
from .utils import format_bytes, get_available_memory_bytes

logger = logging.getLogger(__name__)

# Fraction of available memory the matrices may use
MEMORY_FRACTION = 0.8


def allocate_matrix(shape: tuple[int, int], dtype=ACCUMULATOR_DTYPE) -> np.ndarray:
    """Allocate a zeroed accumulator, reporting failures with the dimensions."""
    nrows, ncols = shape
    try:
        return np.zeros((nrows, ncols), dtype=dtype)
    except (MemoryError, ValueError) as e:
        raise AllocationError(nrows, ncols) from e


def plan_workers(shape: tuple[int, int], requested_workers: int,
                 itemsize: int = np.dtype(ACCUMULATOR_DTYPE).itemsize) -> int:
    """
    Choose how many files to accumulate concurrently within available memory.

    One worker accumulates straight into the total. With more workers the total
    is joined by one partial per worker. The count is lowered until the plan
    fits in ``MEMORY_FRACTION`` of available memory.

    Raises:
        AllocationError: If not even a single worker fits, unless
            ``settings.override_memory_check`` is set
    """
    from chunklengths import settings

    nrows, ncols = shape
    matrix_bytes = nrows * ncols * itemsize
    available = int(get_available_memory_bytes() * MEMORY_FRACTION)

    def needed(workers: int) -> int:
        return matrix_bytes if workers == 1 else matrix_bytes * (1 + workers)

    workers = max(1, requested_workers)
    while workers > 1 and needed(workers) > available:
        workers -= 1
    if workers < requested_workers:
        logger.info("Reducing workers from %d to %d to fit in memory", requested_workers, workers)

    if needed(workers) > available:
        msg = (
            f"Matrix of size {nrows} x {ncols} needs {format_bytes(needed(workers))} "
            f"but only {format_bytes(available)} is available"
        )
        if not settings.override_memory_check:
            raise AllocationError(nrows, ncols, msg)
        logger.warning("%s; continuing because override_memory_check is set", msg)
    return workers


@dataclass
class _PartialResult:
    report: FileReport
    values: np.ndarray | None


class ParallelReducer:
    """
    Sum many matrix files of the same shape.

    Args:
        shape: (nrows, ncols) of the combined matrix
        max_workers: Worker thread cap (default: ``settings.max_workers``, then CPU count)
        chunk_size: Decompression chunk size for every file
        dtype: Accumulator dtype
    """

    def __init__(self, shape: tuple[int, int], max_workers: int | None = None,
                 chunk_size: int | None = None, dtype=ACCUMULATOR_DTYPE):
        self.shape = (int(shape[0]), int(shape[1]))
        self.max_workers = max_workers
        self.chunk_size = chunk_size
        self.dtype = np.dtype(dtype)

    def resolve_workers(self, n_files: int) -> int:
        from chunklengths import settings

        workers = self.max_workers or settings.max_workers or os.cpu_count() or 1
        return max(1, min(workers, n_files))

    def _accumulate_partial(self, path, remove_index: int,
                            cancel_event: threading.Event) -> _PartialResult:
        partial = allocate_matrix(self.shape, self.dtype)
        report = accumulate_file(path, remove_index, partial,
                                 chunk_size=self.chunk_size, cancel_event=cancel_event)
        return _PartialResult(report, partial)

    def _merge(self, total: np.ndarray, result: _PartialResult) -> None:
        total += result.values
        # Free the partial now rather than when the future is dropped
        result.values = None

    def run(self, paths, remove_index: int) -> tuple[np.ndarray, list[FileReport]]:
        """
        Accumulate every file in ``paths`` and return the total.

        Returns:
            (total, reports) where reports follow the order of ``paths``

        Raises:
            ConfigError: If ``paths`` is empty
            MatrixIOError: If any file cannot be opened or read
            AllocationError: If the matrices do not fit in memory
        """
        paths = list(paths)
        if not paths:
            raise ConfigError("No input files to combine")

        workers = plan_workers(self.shape, self.resolve_workers(len(paths)), self.dtype.itemsize)
        total = allocate_matrix(self.shape, self.dtype)

        if workers == 1:
            reports = [
                accumulate_file(p, remove_index, total, chunk_size=self.chunk_size)
                for p in paths
            ]
            return total, reports

        logger.info("Accumulating %d files with %d workers", len(paths), workers)
        cancel_event = threading.Event()
        reports: list[FileReport | None] = [None] * len(paths)

        todo = iter(enumerate(paths))
        pending = {}

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="chunklengths") as ex:

            def submit_next() -> None:
                for i, p in todo:
                    pending[ex.submit(self._accumulate_partial, p, remove_index, cancel_event)] = i
                    return

            try:
                # At most `workers` partials exist at once, finished or not
                for _ in range(workers):
                    submit_next()
                while pending:
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    for fut in done:
                        i = pending.pop(fut)
                        result = fut.result()
                        self._merge(total, result)
                        reports[i] = result.report
                        submit_next()
            except BaseException:
                cancel_event.set()
                for fut in pending:
                    fut.cancel()
                raise

        return total, reports
