"""
Configuration and entry points for combining chromosome matrices.
"""

from __future__ import annotations

from .combine import combine_chunklengths, main
from .config import CombineConfig, ProgramType, split_chromosomes

__all__ = [
    "CombineConfig",
    "ProgramType",
    "combine_chunklengths",
    "main",
    "split_chromosomes",
]
