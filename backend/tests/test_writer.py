"""Tests for the streaming archive writer."""

from __future__ import annotations

import io
import zipfile

import pytest

from conftest import zip_contents, zip_names
from packet_builder.core.errors import DuplicateEntryError, InvalidStateError, WriteError
from packet_builder.packets.writer import FIXED_TIMESTAMP, ArchiveWriter, iter_chunks


class FlakySink(io.BytesIO):
    """Sink that starts failing once ``limit`` bytes have been written."""

    def __init__(self, limit: int) -> None:
        super().__init__()
        self.limit = limit

    def write(self, data) -> int:
        if self.tell() + len(data) > self.limit:
            raise OSError(28, "No space left on device")
        return super().write(data)


def test_entries_keep_caller_order() -> None:
    writer = ArchiveWriter()
    handle = writer.open()
    writer.write_entry(handle, "z.txt", b"last letter")
    writer.write_entry(handle, "a.txt", io.BytesIO(b"first letter"))
    writer.write_entry(handle, "dir/m.txt", iter([b"mid", b"dle"]))
    data = writer.finalize(handle)

    assert zip_names(data) == ["z.txt", "a.txt", "dir/m.txt"]
    assert zip_contents(data)["dir/m.txt"] == b"middle"
    assert data.startswith(b"PK")


def test_reproducible_output() -> None:
    def build() -> bytes:
        writer = ArchiveWriter(reproducible=True)
        handle = writer.open()
        writer.write_entry(handle, "ticket_1.pdf", b"%PDF-1.4")
        return writer.finalize(handle)

    first = build()
    assert first == build()
    with zipfile.ZipFile(io.BytesIO(first)) as archive:
        assert archive.getinfo("ticket_1.pdf").date_time == FIXED_TIMESTAMP


def test_stored_compression() -> None:
    writer = ArchiveWriter(compression="stored")
    handle = writer.open()
    writer.write_entry(handle, "a.bin", b"x" * 1000)
    data = writer.finalize(handle)
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        assert archive.getinfo("a.bin").compress_type == zipfile.ZIP_STORED


def test_unknown_compression_rejected() -> None:
    with pytest.raises(ValueError):
        ArchiveWriter(compression="lzma-ish")


def test_write_after_finalize_is_invalid() -> None:
    writer = ArchiveWriter()
    handle = writer.open()
    writer.finalize(handle)
    with pytest.raises(InvalidStateError):
        writer.write_entry(handle, "late.txt", b"too late")
    with pytest.raises(InvalidStateError):
        writer.finalize(handle)


def test_duplicate_path_is_rejected_not_overwritten() -> None:
    writer = ArchiveWriter()
    handle = writer.open()
    writer.write_entry(handle, "a.txt", b"one")
    with pytest.raises(DuplicateEntryError):
        writer.write_entry(handle, "a.txt", b"two")
    data = writer.finalize(handle)
    assert zip_contents(data) == {"a.txt": b"one"}


def test_sink_failure_raises_write_error(monkeypatch: pytest.MonkeyPatch) -> None:
    writer = ArchiveWriter(compression="stored")
    monkeypatch.setattr(writer, "_new_sink", lambda: FlakySink(limit=200))
    handle = writer.open()
    with pytest.raises(WriteError) as excinfo:
        writer.write_entry(handle, "big.bin", b"y" * 4096)
    assert excinfo.value.entry_path == "big.bin"
    with pytest.raises(InvalidStateError):
        writer.write_entry(handle, "next.bin", b"z")
    writer.discard(handle)
    assert handle.closed


def test_spool_moves_to_disk_for_large_archives() -> None:
    writer = ArchiveWriter(compression="stored", spool_max_bytes=1024)
    handle = writer.open()
    payload = bytes(range(256)) * 64
    writer.write_entry(handle, "large.bin", payload)
    data = writer.finalize(handle)
    assert zip_contents(data)["large.bin"] == payload


def test_iter_chunks_sizes() -> None:
    assert list(iter_chunks(b"abcdefg", chunk_size=3)) == [b"abc", b"def", b"g"]
    assert list(iter_chunks(io.BytesIO(b"abcd"), chunk_size=2)) == [b"ab", b"cd"]
    assert list(iter_chunks([b"a", b"", b"bc"])) == [b"a", b"bc"]


def test_failing_byte_source_poisons_handle() -> None:
    def stream():
        yield b"partial"
        raise ValueError("store went away")

    writer = ArchiveWriter()
    handle = writer.open()
    with pytest.raises(ValueError):
        writer.write_entry(handle, "a.txt", stream())
    assert handle.failed
    with pytest.raises(InvalidStateError):
        writer.write_entry(handle, "a.txt", b"retry")
    with pytest.raises(InvalidStateError):
        writer.finalize(handle)
    writer.discard(handle)
