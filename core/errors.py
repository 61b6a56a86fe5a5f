"""Exception hierarchy for chunklengths.

Fatal conditions are raised as subclasses of :class:`CombineError` and unwind to
the top level. Recoverable conditions (malformed tokens, row-count mismatches) are
never raised; they are recorded on :class:`~chunklengths.core.accumulate.FileReport`
and logged.
"""

from __future__ import annotations


class CombineError(Exception):
    """Base class for fatal errors raised while combining matrices."""


class ConfigError(CombineError, ValueError):
    """The run cannot start: bad identity column, header or configuration."""


class MatrixIOError(CombineError, OSError):
    """A matrix file could not be opened, created or read."""


class AllocationError(CombineError, MemoryError):
    """The matrix buffers do not fit in available memory."""

    def __init__(self, nrows: int, ncols: int, message: str | None = None):
        self.nrows = nrows
        self.ncols = ncols
        if message is None:
            message = f"Memory allocation failed for matrix of size {nrows} x {ncols}"
        super().__init__(message)


class CombineCancelled(CombineError):
    """Raised inside a worker that stopped because another worker failed."""
