"""Utility functions for chunklengths.

General-purpose helpers used by the memory planning of the reducer.
"""

from __future__ import annotations

import psutil


def get_available_memory_bytes() -> int:
    """Get available system memory in bytes.

    Returns
    -------
    int
        Memory that can be given to new allocations without swapping, in bytes.

    Examples
    --------
    >>> mem_bytes = get_available_memory_bytes()
    >>> mem_gb = mem_bytes / (1024 ** 3)
    >>> print(f"Available memory: {mem_gb:.2f} GB")
    """
    return psutil.virtual_memory().available


def format_bytes(n: int) -> str:
    """Format a byte count with a binary unit, e.g. ``1.5 GiB``."""
    value = float(n)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if value < 1024:
            return f"{int(value)} B" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TiB"
