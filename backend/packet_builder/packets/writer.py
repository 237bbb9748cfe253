"""Append-only streaming ZIP writer."""

from __future__ import annotations

import io
import tempfile
import time
import zipfile
from dataclasses import dataclass, field
from typing import IO, Iterator

from packet_builder.core.errors import DuplicateEntryError, InvalidStateError, WriteError
from packet_builder.core.logging import get_logger
from packet_builder.packets.types import ArchiveEntry, ByteSource

logger = get_logger(__name__)

COMPRESSION_METHODS = {
    "stored": zipfile.ZIP_STORED,
    "deflated": zipfile.ZIP_DEFLATED,
}

# earliest timestamp a ZIP header can hold
FIXED_TIMESTAMP = (1980, 1, 1, 0, 0, 0)
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_SPOOL_MAX_BYTES = 16 * 1024 * 1024


@dataclass(slots=True)
class ArchiveHandle:
    """One in-progress archive. Owned by a single assembly call."""

    sink: IO[bytes]
    archive: zipfile.ZipFile
    entries: list[ArchiveEntry] = field(default_factory=list)
    names: set[str] = field(default_factory=set)
    closed: bool = False
    failed: bool = False

    @property
    def entry_paths(self) -> list[str]:
        return [entry.entry_path for entry in self.entries]


class ArchiveWriter:
    """Build ZIP archives entry by entry, in caller order."""

    def __init__(
        self,
        compression: str = "deflated",
        compress_level: int | None = None,
        reproducible: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        spool_max_bytes: int = DEFAULT_SPOOL_MAX_BYTES,
    ) -> None:
        if compression not in COMPRESSION_METHODS:
            raise ValueError(f"Unsupported compression: {compression}")
        self.compression = COMPRESSION_METHODS[compression]
        self.compress_level = compress_level
        self.reproducible = reproducible
        self.chunk_size = chunk_size
        self.spool_max_bytes = spool_max_bytes

    def open(self) -> ArchiveHandle:
        sink = self._new_sink()
        try:
            archive = zipfile.ZipFile(sink, mode="w", compression=self.compression, compresslevel=self.compress_level)
        except OSError as exc:
            sink.close()
            raise WriteError(None, str(exc)) from exc
        return ArchiveHandle(sink=sink, archive=archive)

    def write_entry(self, handle: ArchiveHandle, path: str, data: ByteSource) -> ArchiveEntry:
        self._check_writable(handle)
        if path in handle.names:
            raise DuplicateEntryError(path)

        info = zipfile.ZipInfo(path, date_time=self._timestamp())
        info.compress_type = self.compression
        info.external_attr = 0o644 << 16
        if self.compress_level is not None:
            # renamed from _compresslevel in Python 3.13
            level_attr = "compress_level" if hasattr(zipfile.ZipInfo, "compress_level") else "_compresslevel"
            setattr(info, level_attr, self.compress_level)
        known_size = _source_size(data)
        if known_size is not None:
            # lets zipfile pick ZIP64 headers up front for large entries
            info.file_size = known_size

        written = 0
        try:
            with handle.archive.open(info, mode="w") as dest:
                for chunk in iter_chunks(data, self.chunk_size):
                    dest.write(chunk)
                    written += len(chunk)
        except (OSError, RuntimeError, zipfile.LargeZipFile) as exc:
            handle.failed = True
            raise WriteError(path, str(exc)) from exc
        except BaseException:
            # zipfile has already committed whatever part of the entry was written
            handle.failed = True
            raise

        entry = ArchiveEntry(entry_path=path, size=written)
        handle.names.add(path)
        handle.entries.append(entry)
        return entry

    def finalize(self, handle: ArchiveHandle) -> bytes:
        self._check_writable(handle)
        handle.closed = True
        try:
            handle.archive.close()
            handle.sink.seek(0)
            return handle.sink.read()
        except OSError as exc:
            raise WriteError(None, str(exc)) from exc
        finally:
            handle.sink.close()

    def discard(self, handle: ArchiveHandle) -> None:
        """Drop an unfinished archive; nothing is returned to the caller."""
        if handle.closed:
            return
        handle.closed = True
        try:
            handle.archive.close()
        except (OSError, ValueError) as exc:
            # the sink is already broken when a write failed
            logger.debug("Ignoring close error on discarded archive: %s", exc)
        finally:
            handle.sink.close()

    # Internal helpers -------------------------------------------------

    def _new_sink(self) -> IO[bytes]:
        if self.spool_max_bytes <= 0:
            return io.BytesIO()
        return tempfile.SpooledTemporaryFile(max_size=self.spool_max_bytes, mode="w+b")

    def _timestamp(self) -> tuple[int, int, int, int, int, int]:
        if self.reproducible:
            return FIXED_TIMESTAMP
        return time.localtime(time.time())[:6]

    @staticmethod
    def _check_writable(handle: ArchiveHandle) -> None:
        if handle.closed:
            raise InvalidStateError("Archive has already been finalized")
        if handle.failed:
            raise InvalidStateError("Archive is unusable after a failed write")


def iter_chunks(data: ByteSource, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield ``data`` as byte chunks of at most ``chunk_size``."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        view = memoryview(data)
        for offset in range(0, len(view), chunk_size):
            yield bytes(view[offset : offset + chunk_size])
        return
    read = getattr(data, "read", None)
    if callable(read):
        for chunk in iter(lambda: read(chunk_size), b""):
            yield chunk
        return
    for chunk in data:
        if chunk:
            yield bytes(chunk)


def _source_size(data: ByteSource) -> int | None:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return memoryview(data).nbytes
    seekable = getattr(data, "seekable", None)
    if callable(seekable) and seekable():
        position = data.tell()  # type: ignore[union-attr]
        end = data.seek(0, io.SEEK_END)  # type: ignore[union-attr]
        data.seek(position)  # type: ignore[union-attr]
        return end - position
    return None


__all__ = ["ArchiveHandle", "ArchiveWriter", "iter_chunks", "FIXED_TIMESTAMP"]
