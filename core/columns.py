"""
Column discovery from the header of a reference matrix file.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigError
from .tokenizer import ChunkTokenizer


def decode_label(token: bytes) -> str:
    """Decode a label token so that it encodes back to the same bytes."""
    return token.decode("utf-8", errors="surrogateescape")


def encode_label(label: str) -> bytes:
    return label.encode("utf-8", errors="surrogateescape")


@dataclass(frozen=True)
class ColumnIndex:
    """
    Output columns of the combined matrix.

    Attributes:
        identity_label: Label of the identity column (e.g. "RECIPIENT")
        names: Column names in header order, identity column removed
        remove_index: Position of the identity column in the original header
    """

    identity_label: str
    names: tuple[str, ...]
    remove_index: int

    @property
    def ncols(self) -> int:
        return len(self.names)

    @classmethod
    def from_tokens(cls, header_tokens, identity_label: str, source: str = "header") -> ColumnIndex:
        """Build the index from already-split header tokens.

        Raises:
            ConfigError: If the identity column is absent or names are duplicated
        """
        labels = [decode_label(t) if isinstance(t, bytes) else t for t in header_tokens]
        try:
            remove_index = labels.index(identity_label)
        except ValueError:
            raise ConfigError(
                f"identity column {identity_label!r} not found in {source}"
            ) from None

        names = tuple(labels[:remove_index] + labels[remove_index + 1:])
        if len(set(names)) != len(names):
            seen = set()
            dupes = sorted({n for n in names if n in seen or seen.add(n)})
            raise ConfigError(f"duplicate column names in {source}: {', '.join(dupes[:5])}")

        return cls(
            identity_label=identity_label,
            names=names,
            remove_index=remove_index,
        )

    @classmethod
    def from_file(cls, path, identity_label: str, line_buffer_size: int | None = None) -> ColumnIndex:
        """Read the header of ``path`` and locate ``identity_label`` in it."""
        with ChunkTokenizer(path, line_buffer_size=line_buffer_size) as tok:
            tokens = tok.header_tokens()
        return cls.from_tokens(tokens, identity_label, source=f"header of {path}")
