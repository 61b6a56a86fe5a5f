"""
Core modules for chunklengths.
"""

from __future__ import annotations

from .accumulate import FileReport, accumulate_file
from .columns import ColumnIndex
from .errors import (
    AllocationError,
    CombineCancelled,
    CombineError,
    ConfigError,
    MatrixIOError,
)
from .output import MergedMatrix, read_matrix, write_matrix
from .reduce import ParallelReducer, allocate_matrix, plan_workers
from .rows import RowCatalog, build_row_catalog, discover_row_labels
from .tokenizer import ACCUMULATOR_DTYPE, ChunkTokenizer, ParsedValue, parse_token

__all__ = [
    "ACCUMULATOR_DTYPE",
    "AllocationError",
    "ChunkTokenizer",
    "ColumnIndex",
    "CombineCancelled",
    "CombineError",
    "ConfigError",
    "FileReport",
    "MatrixIOError",
    "MergedMatrix",
    "ParallelReducer",
    "ParsedValue",
    "RowCatalog",
    "accumulate_file",
    "allocate_matrix",
    "build_row_catalog",
    "discover_row_labels",
    "parse_token",
    "plan_workers",
    "read_matrix",
    "write_matrix",
]
