"""
Accumulate one matrix file into a dense buffer.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .tokenizer import ChunkTokenizer, has_rejected_bytes, parse_token

logger = logging.getLogger(__name__)


@dataclass
class FileReport:
    """Outcome of accumulating one file.

    Attributes:
        path: The file that was read
        rows: Number of data records found in the file
        expected_rows: Number of rows of the destination matrix
        parse_failures: Number of tokens that were not numeric (added as zero)
        truncated: True if the stream ended with a decompression error
    """

    path: Path
    rows: int = 0
    expected_rows: int = 0
    parse_failures: int = 0
    truncated: bool = False

    @property
    def size_mismatch(self) -> bool:
        return self.rows != self.expected_rows


def _convert_row(tokens: list[bytes], dtype, path, row: int, remove_index: int,
                 report: FileReport) -> np.ndarray:
    """Convert the numeric tokens of one record.

    Records convert in one numpy call; tokens numpy cannot convert, or that
    come out non-finite, go through :func:`parse_token` one at a time. Records
    holding bytes that numpy would accept but :func:`parse_token` rejects skip
    the numpy call, so both paths give the same values.
    """
    from chunklengths import settings

    values = None
    if not has_rejected_bytes(b" ".join(tokens)):
        try:
            values = np.array(tokens, dtype=np.bytes_).astype(np.float64)
        except ValueError:
            values = None

    if values is not None:
        limit = np.finfo(dtype).max
        bad = np.flatnonzero(~np.isfinite(values) | (np.abs(values) > limit))
        if bad.size == 0:
            return values
        positions = bad.tolist()
    else:
        values = np.zeros(len(tokens), dtype=np.float64)
        positions = range(len(tokens))

    for i in positions:
        parsed = parse_token(tokens[i], dtype)
        values[i] = parsed.value
        if not parsed.succeeded:
            report.parse_failures += 1
            if settings.log_parse_errors:
                # Source column, counting the identity column
                col = i if i < remove_index else i + 1
                logger.warning(
                    "Non-numeric token %r in %s at row %d, column %d; counted as 0",
                    tokens[i], path, row, col,
                )
    return values


def accumulate_file(
    path,
    remove_index: int,
    out: np.ndarray,
    chunk_size: int | None = None,
    cancel_event: threading.Event | None = None,
) -> FileReport:
    """
    Add the numeric contents of one matrix file into ``out``.

    Args:
        path: gzip matrix file
        remove_index: Position of the identity column, which is skipped
        out: Destination array of shape (nrows, ncols), updated in place
        chunk_size: Decompression chunk size (default: ``settings.chunk_size``)
        cancel_event: Event checked between chunks

    Returns:
        FileReport for the file. Extra rows or columns are ignored; a row-count
        mismatch is logged as a warning, not raised.

    Raises:
        MatrixIOError: If the file cannot be opened or its header cannot be read
    """
    nrows, ncols = out.shape
    report = FileReport(path=Path(path), expected_rows=nrows)

    logger.info("Processing %s", path)
    with ChunkTokenizer(path, chunk_size=chunk_size, cancel_event=cancel_event) as tok:
        tok.read_header()

        for row, tokens in enumerate(tok.records()):
            if row < nrows and tokens:
                if remove_index < len(tokens):
                    del tokens[remove_index]
                del tokens[ncols:]
                if tokens:
                    values = _convert_row(tokens, out.dtype, path, row, remove_index, report)
                    out[row, :len(values)] += values.astype(out.dtype)

        report.rows = tok.records_read
        report.truncated = tok.truncated

    if report.size_mismatch:
        logger.warning("Warning: %s has %d rows (expected %d)", path, report.rows, nrows)
    logger.info("Finished %s  rows=%d", path, report.rows)
    return report
