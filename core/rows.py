"""
Row discovery.

Square matrices (pbwt, ChromoPainter) have one row per column, so the row labels
are the column names. Ragged matrices (SparsePainter) have their own row set,
found by scanning the identity column of a reference file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import numpy as np

from .columns import ColumnIndex, decode_label
from .tokenizer import ChunkTokenizer

logger = logging.getLogger(__name__)

# Rough number of compressed bytes per row, used to size the first reservation
_COMPRESSED_BYTES_PER_ROW = 64
_MIN_ROW_CAPACITY = 1024


@dataclass(frozen=True)
class RowCatalog:
    """Ordered row labels of the combined matrix."""

    labels: tuple[str, ...]
    ragged: bool

    @property
    def nrows(self) -> int:
        return len(self.labels)


def _estimate_row_capacity(path) -> int:
    from chunklengths import settings

    try:
        size = os.path.getsize(path)
    except OSError:
        size = 0
    estimate = size // _COMPRESSED_BYTES_PER_ROW
    return max(_MIN_ROW_CAPACITY, min(estimate, settings.row_capacity_hint))


def discover_row_labels(path, remove_index: int, chunk_size: int | None = None) -> list[str]:
    """
    Scan ``path`` once and collect the identity token of every record.

    Args:
        path: Reference matrix file
        remove_index: Position of the identity column
        chunk_size: Decompression chunk size (default: ``settings.chunk_size``)

    Returns:
        Row labels in file order. Duplicates are kept; records too short to
        have an identity token are skipped.
    """
    labels = np.empty(_estimate_row_capacity(path), dtype=object)
    n = 0

    with ChunkTokenizer(path, chunk_size=chunk_size) as tok:
        tok.read_header()
        for record in tok.raw_records():
            # Only the leading tokens up to the identity column are needed
            tokens = record.split(None, remove_index + 1)
            if len(tokens) <= remove_index:
                continue
            if n == len(labels):
                grown = np.empty(2 * len(labels), dtype=object)
                grown[:n] = labels
                labels = grown
            labels[n] = decode_label(tokens[remove_index])
            n += 1

    return labels[:n].tolist()


def build_row_catalog(column_index: ColumnIndex, reference_path, ragged: bool,
                      chunk_size: int | None = None) -> RowCatalog:
    """Return the rows of the combined matrix.

    In square mode the column names are reused as-is and no file is read.
    """
    if not ragged:
        return RowCatalog(labels=column_index.names, ragged=False)

    logger.info("Discovering rows in %s", reference_path)
    labels = discover_row_labels(reference_path, column_index.remove_index, chunk_size=chunk_size)
    return RowCatalog(labels=tuple(labels), ragged=True)
