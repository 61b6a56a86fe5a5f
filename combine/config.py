"""
Run configuration for combining per-chromosome matrices.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from chunklengths.core.errors import ConfigError


class ProgramType(Enum):
    """The tool that produced the matrices, which fixes the identity column."""

    pbwt = "pbwt"
    chromopainter = "chromopainter"
    SparsePainter = "SparsePainter"

    @property
    def identity_label(self) -> str:
        return _IDENTITY_LABELS[self]

    @property
    def ragged(self) -> bool:
        """SparsePainter rows are individuals, not the header's columns."""
        return self is ProgramType.SparsePainter

    @classmethod
    def parse(cls, value) -> ProgramType:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(p.value for p in cls)
            raise ConfigError(f"--type must be one of {allowed}, got {value!r}") from None


_IDENTITY_LABELS = {
    ProgramType.pbwt: "RECIPIENT",
    ProgramType.chromopainter: "Recipient",
    ProgramType.SparsePainter: "indnames",
}


def split_chromosomes(chrs: str, delimiter: str = ",") -> tuple[str, ...]:
    """Split a list like ``"1, 2,3"`` into ids, trimming whitespace and dropping blanks."""
    return tuple(part.strip() for part in chrs.split(delimiter) if part.strip())


@dataclass(frozen=True)
class CombineConfig:
    """
    Everything needed to combine one set of chromosome matrices.

    Input files are ``pre_chr + chromosome_id + post_chr`` for each id.

    Attributes:
        pre_chr: Path prefix before the chromosome id
        post_chr: Path suffix after the chromosome id
        chromosome_ids: Ordered chromosome ids (repeats are processed repeatedly)
        output_path: gzip file to write
        program_type: Tool that produced the inputs
        max_workers: Optional worker thread cap
        chunk_size: Optional decompression chunk size
    """

    pre_chr: str
    post_chr: str
    chromosome_ids: tuple[str, ...]
    output_path: str
    program_type: ProgramType
    max_workers: int | None = field(default=None)
    chunk_size: int | None = field(default=None)

    def __post_init__(self):
        object.__setattr__(self, "chromosome_ids", tuple(self.chromosome_ids))
        object.__setattr__(self, "program_type", ProgramType.parse(self.program_type))

    @classmethod
    def from_strings(cls, pre_chr: str, post_chr: str, chrs: str, output_path: str,
                     program_type: str, **kwargs) -> CombineConfig:
        """Build a config from command-line style strings (``chrs`` comma separated)."""
        return cls(
            pre_chr=pre_chr,
            post_chr=post_chr,
            chromosome_ids=split_chromosomes(chrs),
            output_path=output_path,
            program_type=program_type,
            **kwargs,
        )

    def validate(self) -> None:
        """Check the configuration before any file is touched.

        Raises:
            ConfigError: If no chromosome is given or a numeric option is not positive
        """
        if not self.chromosome_ids:
            raise ConfigError("No chromosomes specified")
        if not self.output_path:
            raise ConfigError("No output path specified")
        for name in ("max_workers", "chunk_size"):
            value = getattr(self, name)
            if value is not None and value < 1:
                raise ConfigError(f"{name} must be positive, got {value}")

    @property
    def identity_label(self) -> str:
        return self.program_type.identity_label

    @property
    def ragged(self) -> bool:
        return self.program_type.ragged

    def input_paths(self) -> list[Path]:
        return [Path(f"{self.pre_chr}{chrom}{self.post_chr}") for chrom in self.chromosome_ids]

    @property
    def reference_path(self) -> Path:
        """The first chromosome's file, whose header defines the columns."""
        if not self.chromosome_ids:
            raise ConfigError("No chromosomes specified")
        return self.input_paths()[0]
