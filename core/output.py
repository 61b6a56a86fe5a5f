"""
Reading and writing the gzip text matrix format.

    <identityLabel> <col_1> <col_2> ... <col_N>
    <row_1_label> <v_1_1> <v_1_2> ... <v_1_N>
    ...

Values are written with six decimal digits and single spaces.
"""

from __future__ import annotations

import gzip
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import numpy as np
import polars as pl

from .columns import ColumnIndex, decode_label
from .errors import MatrixIOError
from .tokenizer import ACCUMULATOR_DTYPE, ChunkTokenizer, parse_token

logger = logging.getLogger(__name__)


@dataclass
class MergedMatrix:
    """A labelled matrix: the result of a combine run or of :func:`read_matrix`."""

    identity_label: str
    column_names: tuple[str, ...]
    row_labels: tuple[str, ...]
    values: np.ndarray

    @property
    def shape(self) -> tuple[int, int]:
        return self.values.shape

    def to_polars(self) -> pl.DataFrame:
        """Return the matrix as a DataFrame with the row labels as first column."""
        labels = pl.DataFrame({self.identity_label: list(self.row_labels)},
                              schema={self.identity_label: pl.String})
        if not self.column_names:
            return labels
        body = pl.from_numpy(self.values, schema=list(self.column_names), orient="row")
        return pl.concat([labels, body], how="horizontal")


def write_matrix(path, identity_label: str, column_names: Sequence[str],
                 row_labels: Sequence[str], total: np.ndarray) -> Path:
    """
    Write a labelled matrix as gzip text.

    Args:
        path: Output file (gzip-compressed)
        identity_label: First token of the header line
        column_names: Header names after the identity label
        row_labels: One label per row of ``total``
        total: Array of shape (len(row_labels), len(column_names))

    Returns:
        Path of the written file

    Raises:
        MatrixIOError: If the output cannot be created or written
    """
    path = Path(path)
    nrows, ncols = total.shape
    if len(row_labels) != nrows or len(column_names) != ncols:
        raise ValueError(
            f"Labels ({len(row_labels)} rows, {len(column_names)} cols) do not match "
            f"matrix shape {total.shape}"
        )

    row_fmt = "%s" + " %.6f" * ncols + "\n"
    logger.info("Writing gzipped output to %s", path)
    try:
        with gzip.open(path, "wt", encoding="utf-8", errors="surrogateescape", newline="\n") as fh:
            fh.write(" ".join([identity_label, *column_names]) + "\n")
            for label, row in zip(row_labels, total):
                fh.write(row_fmt % (label, *row.tolist()))
    except OSError as e:
        raise MatrixIOError(f"Cannot create output {path}: {e}") from e
    return path


def read_matrix(path, identity_label: str | None = None,
                chunk_size: int | None = None) -> MergedMatrix:
    """
    Read a gzip text matrix written by :func:`write_matrix` or by the painting tools.

    Args:
        path: gzip matrix file
        identity_label: Identity column label; defaults to the first header token
        chunk_size: Decompression chunk size

    Returns:
        MergedMatrix with float32 values. Non-numeric cells read as 0.
    """
    with ChunkTokenizer(path, chunk_size=chunk_size) as tok:
        header = tok.header_tokens()
        if not header:
            raise MatrixIOError(f"Header of {path} is blank")
        label = identity_label if identity_label is not None else decode_label(header[0])
        columns = ColumnIndex.from_tokens(header, label, source=f"header of {path}")

        row_labels = []
        rows = []
        for tokens in tok.records():
            if len(tokens) <= columns.remove_index:
                continue
            row_labels.append(decode_label(tokens.pop(columns.remove_index)))
            values = np.zeros(columns.ncols, dtype=ACCUMULATOR_DTYPE)
            for i, token in enumerate(tokens[:columns.ncols]):
                values[i] = parse_token(token).value
            rows.append(values)

    if rows:
        matrix = np.vstack(rows)
    else:
        matrix = np.zeros((0, columns.ncols), dtype=ACCUMULATOR_DTYPE)
    return MergedMatrix(
        identity_label=label,
        column_names=columns.names,
        row_labels=tuple(row_labels),
        values=matrix,
    )
