from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, BinaryIO

if TYPE_CHECKING:
    from enum import StrEnum
elif sys.version_info >= (3, 11):
    from enum import StrEnum
else:
    from backports.strenum import StrEnum

__all__ = [
    "EntryKind",
    "Entry",
    "ExtractionResult",
    "META_SUFFIX",
]

META_SUFFIX = ".meta"


class EntryKind(StrEnum):
    """Kind of a package record. Values are the record basenames."""

    CONTENT = "asset"
    META_CONTENT = "asset.meta"
    PATH_NAME = "pathname"
    OTHER = "other"


@dataclass
class Entry:
    """A single record read from a package."""

    identifier: str
    """The opaque key shared by all records of one asset."""

    kind: EntryKind
    """What the record holds."""

    size: int
    """Declared size of the payload in bytes. May be 0."""

    payload: BinaryIO | None
    """Stream with the record data. Only valid until the next entry is read."""

    name: str = ""
    """The raw record name inside the tar stream."""


@dataclass
class ExtractionResult:
    """Summary of one extraction run."""

    output_dir: str

    extracted: dict[str, str] = field(default_factory=dict)
    """Normalized final path (``/``-separated) of every asset with a file in place, by identifier."""

    unresolved: dict[str, list[str]] = field(default_factory=dict)
    """Files still named after their identifier when the stream ended."""

    files_written: int = 0
    bytes_written: int = 0
