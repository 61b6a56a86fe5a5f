"""
chunklengths - Streaming combiner for per-chromosome ChromoPainter, pbwt and SparsePainter matrices.
"""

from __future__ import annotations

__version__ = "0.1.0"

from chunklengths._settings import settings
from chunklengths.core import (
    ColumnIndex,
    ConfigError,
    MatrixIOError,
    MergedMatrix,
    ParallelReducer,
    read_matrix,
    write_matrix,
)
from chunklengths.combine.combine import combine_chunklengths, main
from chunklengths.combine.config import CombineConfig, ProgramType

__all__ = [
    "ColumnIndex",
    "CombineConfig",
    "ConfigError",
    "MatrixIOError",
    "MergedMatrix",
    "ParallelReducer",
    "ProgramType",
    "__version__",
    "settings",
    "combine_chunklengths",
    "main",
    "read_matrix",
    "write_matrix",
]
