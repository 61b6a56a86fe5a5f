"""
Pytest configuration and fixtures for chunklengths tests.

This module provides reusable fixtures that write small gzip matrices to a
temporary directory.
"""

from __future__ import annotations

import gzip
from pathlib import Path

import numpy as np
import pytest


SQUARE_TEXT = (
    "RECIPIENT A B C\n"
    "A 1.0 2.0 3.0\n"
    "B 4.0 5.0 6.0\n"
    "C 7.0 8.0 9.0\n"
)

SQUARE_VALUES = np.array(
    [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0], [7.0, 8.0, 9.0]], dtype=np.float32
)

RAGGED_TEXT = (
    "indnames popA popB\n"
    "ind1 0.5 1.5\n"
    "ind2 2.5 3.5\n"
    "ind3 4.5 5.5\n"
    "ind4 6.5 7.5\n"
)


@pytest.fixture
def make_matrix(tmp_path: Path):
    """Return a function writing ``text`` gzip-compressed under ``tmp_path``."""

    def _make(name: str, text: str | bytes) -> Path:
        path = tmp_path / name
        data = text.encode() if isinstance(text, str) else text
        with gzip.open(path, "wb") as f:
            f.write(data)
        return path

    return _make


@pytest.fixture
def square_values() -> np.ndarray:
    """Values of ``square_file`` without its labels."""
    return SQUARE_VALUES.copy()


@pytest.fixture
def square_file(make_matrix) -> Path:
    """A 3x3 pbwt-style matrix."""
    return make_matrix("square.gz", SQUARE_TEXT)


@pytest.fixture
def ragged_file(make_matrix) -> Path:
    """A 4x2 SparsePainter-style matrix."""
    return make_matrix("ragged.gz", RAGGED_TEXT)


@pytest.fixture
def chromosome_files(make_matrix) -> dict[str, Path]:
    """Three square chromosome files chr1..chr3, chr<n> holding n times the base values."""
    files = {}
    for n in (1, 2, 3):
        lines = ["RECIPIENT A B C"]
        for label, row in zip("ABC", SQUARE_VALUES * n):
            lines.append(label + " " + " ".join(f"{v:.1f}" for v in row))
        files[str(n)] = make_matrix(f"chr{n}.out.gz", "\n".join(lines) + "\n")
    return files


@pytest.fixture
def truncated_file(tmp_path: Path) -> Path:
    """A 2000-row RECIPIENT matrix whose gzip stream is cut 40 bytes short."""
    body = "".join(f"r{i} {i}.0\n" for i in range(2000))
    blob = gzip.compress(("RECIPIENT A\n" + body).encode())
    path = tmp_path / "cut.gz"
    path.write_bytes(blob[: len(blob) - 40])
    return path


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset chunklengths settings after each test."""
    from chunklengths import settings

    # Store original values
    original_values = {
        "chunk_size": settings.chunk_size,
        "line_buffer_size": settings.line_buffer_size,
        "row_capacity_hint": settings.row_capacity_hint,
        "max_workers": settings.max_workers,
        "log_parse_errors": settings.log_parse_errors,
        "override_memory_check": settings.override_memory_check,
    }

    yield

    # Restore original values
    for key, value in original_values.items():
        setattr(settings, key, value)
