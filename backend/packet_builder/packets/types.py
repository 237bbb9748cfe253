"""Data structures shared by the packet assembly engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import IO, Any, Hashable, Iterable, Protocol, Sequence, Union

# bytes, a readable binary file object, or an iterable of chunks
ByteSource = Union[bytes, bytearray, memoryview, IO[bytes], Iterable[bytes]]


class Attachment(Protocol):
    """Attachment as exposed by the store; ``content`` is read at most once."""

    id: Any
    filename: str

    @property
    def readable(self) -> bool: ...

    def content(self) -> ByteSource: ...


class Record(Protocol):
    id: Hashable

    @property
    def attachments(self) -> Sequence[Attachment]: ...


class PacketMode(str, Enum):
    SINGLE = "single"
    BATCH = "batch"


class SkipReason(str, Enum):
    UNREADABLE = "unreadable"
    READ_ERROR = "read_error"


@dataclass(slots=True, frozen=True)
class ArchiveEntry:
    """Entry committed to an archive."""

    entry_path: str
    size: int


@dataclass(slots=True, frozen=True)
class SkippedAttachment:
    record_id: Any
    attachment_id: Any
    filename: str
    reason: SkipReason
    detail: str | None = None


@dataclass(slots=True)
class PacketResult:
    """Finalized archive plus what went into it."""

    mode: PacketMode
    data: bytes
    entries: list[ArchiveEntry] = field(default_factory=list)
    skipped: list[SkippedAttachment] = field(default_factory=list)

    @property
    def entry_paths(self) -> list[str]:
        return [entry.entry_path for entry in self.entries]

    def stats(self) -> dict[str, int]:
        return {
            "entries": len(self.entries),
            "skipped": len(self.skipped),
            "failed": sum(1 for item in self.skipped if item.reason is SkipReason.READ_ERROR),
            "bytes": len(self.data),
        }


__all__ = [
    "ByteSource",
    "Attachment",
    "Record",
    "PacketMode",
    "SkipReason",
    "ArchiveEntry",
    "SkippedAttachment",
    "PacketResult",
]
