"""
Streaming tokenizer for gzip-compressed, whitespace-delimited matrices.

The tokenizer decompresses a file in fixed-size chunks and reassembles records
that straddle chunk boundaries, so memory stays bounded by one chunk plus the
unterminated tail of the current record, whatever the file size.
"""

from __future__ import annotations

import gzip
import logging
import math
import threading
import zlib
from pathlib import Path
from typing import Iterator, NamedTuple

import numpy as np

from .errors import CombineCancelled, MatrixIOError

logger = logging.getLogger(__name__)

# Accumulators are single precision, like the matrices ChromoPainter writes.
ACCUMULATOR_DTYPE = np.float32

# Errors zlib/gzip raise for corrupt or truncated streams
_STREAM_ERRORS = (OSError, EOFError, zlib.error)

# Bytes that make a token non-numeric even where float() or numpy would accept it
REJECTED_BYTES = (b"_", b"\x00")


class ParsedValue(NamedTuple):
    """Result of converting one token to a number."""

    value: float
    succeeded: bool


def has_rejected_bytes(data: bytes) -> bool:
    return any(b in data for b in REJECTED_BYTES)


def parse_token(token: bytes, dtype=ACCUMULATOR_DTYPE) -> ParsedValue:
    """Convert a token to a float, tolerating garbage.

    Non-numeric tokens give ``ParsedValue(0.0, False)``. Finite values too large
    for ``dtype`` are clamped to its largest finite value, keeping the sign.
    Literal ``inf``/``nan`` are passed through unchanged. Tokens holding an
    underscore or a NUL byte are non-numeric.
    """
    if has_rejected_bytes(token):
        return ParsedValue(0.0, False)
    try:
        value = float(token)
    except ValueError:
        return ParsedValue(0.0, False)

    limit = float(np.finfo(dtype).max)
    if math.isinf(value):
        if b"inf" in token.lower():
            return ParsedValue(value, True)
        return ParsedValue(math.copysign(limit, value), True)
    if abs(value) > limit:
        return ParsedValue(math.copysign(limit, value), True)
    return ParsedValue(value, True)


class ChunkTokenizer:
    """
    Read a gzip matrix file as a header line followed by token records.

    Use as a context manager::

        with ChunkTokenizer(path) as tok:
            header = tok.read_header()
            for tokens in tok.records():
                ...

    Args:
        path: Path to a gzip-compressed text matrix
        chunk_size: Bytes decompressed per read (default: ``settings.chunk_size``)
        line_buffer_size: Bytes per header read step (default: ``settings.line_buffer_size``)
        cancel_event: Optional event; when set, :meth:`records` stops at the next
            chunk boundary by raising :class:`CombineCancelled`
    """

    def __init__(
        self,
        path,
        chunk_size: int | None = None,
        line_buffer_size: int | None = None,
        cancel_event: threading.Event | None = None,
    ):
        from chunklengths import settings

        self.path = Path(path)
        self.chunk_size = chunk_size if chunk_size is not None else settings.chunk_size
        self.line_buffer_size = (
            line_buffer_size if line_buffer_size is not None else settings.line_buffer_size
        )
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.line_buffer_size < 1:
            raise ValueError(f"line_buffer_size must be positive, got {self.line_buffer_size}")
        self.cancel_event = cancel_event
        self.records_read = 0
        self.truncated = False
        self._header_read = False
        self._fh = None

    def __enter__(self) -> ChunkTokenizer:
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def open(self) -> None:
        """Open the underlying gzip stream."""
        try:
            self._fh = gzip.open(self.path, "rb")
        except OSError as e:
            raise MatrixIOError(f"Cannot open {self.path}: {e}") from e

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def _require_open(self):
        if self._fh is None:
            raise RuntimeError(f"ChunkTokenizer for {self.path} is not open")
        return self._fh

    def read_header(self) -> bytes:
        """Read the first line, however long it is.

        The line is accumulated in steps of ``line_buffer_size`` bytes until a
        newline or the end of the stream. The trailing newline is stripped.

        Raises:
            MatrixIOError: If the stream is empty or cannot be decompressed
        """
        fh = self._require_open()
        header = bytearray()
        while True:
            try:
                piece = fh.readline(self.line_buffer_size)
            except _STREAM_ERRORS as e:
                raise MatrixIOError(f"Cannot read header from {self.path}: {e}") from e
            if not piece:
                break
            header += piece
            if header.endswith(b"\n"):
                break
        if not header:
            raise MatrixIOError(f"Cannot read header from {self.path}: file is empty")
        self._header_read = True
        return bytes(header.rstrip(b"\r\n"))

    def header_tokens(self) -> list[bytes]:
        """Read the header and split it on whitespace."""
        return self.read_header().split()

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise CombineCancelled(f"Cancelled while reading {self.path}")

    def chunks(self) -> Iterator[bytes]:
        """Yield decompressed chunks of the rest of the stream.

        Each chunk is filled with ``read1`` calls, so bytes decoded before a
        decompression failure are still yielded. The failure is fatal only if
        neither the header nor any body bytes were decoded. Otherwise it ends
        the stream early and sets :attr:`truncated`.
        """
        fh = self._require_open()
        got_data = self._header_read
        while True:
            self._check_cancelled()
            chunk = bytearray()
            error = None
            while len(chunk) < self.chunk_size:
                try:
                    piece = fh.read1(self.chunk_size - len(chunk))
                except _STREAM_ERRORS as e:
                    error = e
                    break
                if not piece:
                    break
                chunk += piece

            if chunk:
                got_data = True
                yield bytes(chunk)
            if error is not None:
                if not got_data:
                    raise MatrixIOError(f"Cannot read {self.path}: {error}") from error
                logger.warning("Stream error in %s after partial read: %s", self.path, error)
                self.truncated = True
                return
            if len(chunk) < self.chunk_size:
                return

    def raw_records(self) -> Iterator[bytes]:
        """Yield each record (line) of the body without its newline."""
        spill = bytearray()
        for chunk in self.chunks():
            lines = chunk.split(b"\n")
            if len(lines) == 1:
                spill += chunk
                continue
            spill += lines[0]
            self.records_read += 1
            yield bytes(spill)
            spill.clear()
            for line in lines[1:-1]:
                self.records_read += 1
                yield line
            spill += lines[-1]

        if spill and not self.truncated:
            self.records_read += 1
            yield bytes(spill)

    def records(self) -> Iterator[list[bytes]]:
        """Yield the whitespace-delimited tokens of each record in file order."""
        for record in self.raw_records():
            yield record.split()
