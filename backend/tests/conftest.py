"""Test fixtures for Packet Builder."""

from __future__ import annotations

import io
import sys
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from packet_builder.api import dependencies as deps  # noqa: E402


@dataclass
class FakeAttachment:
    id: str
    filename: str
    data: bytes = b""
    readable: bool = True
    error: Exception | None = None
    fail_after_first_chunk: bool = False
    reads: int = 0

    def content(self) -> Any:
        self.reads += 1
        if self.error is not None and not self.fail_after_first_chunk:
            raise self.error
        if self.fail_after_first_chunk:
            return self._broken_stream()
        return io.BytesIO(self.data)

    def _broken_stream(self) -> Iterator[bytes]:
        yield self.data[:1]
        raise self.error or OSError("connection reset while reading")


@dataclass
class FakeRecord:
    id: Any
    attachments: list[FakeAttachment] = field(default_factory=list)


@pytest.fixture
def make_record() -> Callable[..., FakeRecord]:
    def _make(record_id: Any, *attachments: FakeAttachment) -> FakeRecord:
        return FakeRecord(id=record_id, attachments=list(attachments))

    return _make


def zip_names(data: bytes) -> list[str]:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return archive.namelist()


def zip_contents(data: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("PKTB_DB_PATH", str(tmp_path / "packets.db"))
    monkeypatch.setenv("PKTB_ATTACHMENTS_DIR", str(tmp_path / "attachments"))
    monkeypatch.setenv("PKTB_ADMIN_ACTORS", "admin")
    monkeypatch.delenv("PKTB_CONFIG", raising=False)
    monkeypatch.delenv("PKTB_MAX_ATTACHMENT_FAILURE_RATIO", raising=False)
    deps.reset_state()
    yield
    deps.reset_state()
