"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import IO

from packet_builder.utils.time import ms_to_datetime


@dataclass(slots=True)
class Project:
    id: str
    name: str
    is_public: bool
    packets_enabled: bool


@dataclass(slots=True)
class StoredAttachment:
    """File-backed attachment; readable when the stored file still exists."""

    id: str
    record_id: int
    filename: str
    disk_path: Path
    content_type: str | None = None
    size_bytes: int | None = None
    sha256: str | None = None

    @property
    def readable(self) -> bool:
        return self.disk_path.is_file()

    def content(self) -> IO[bytes]:
        return self.disk_path.open("rb")


@dataclass(slots=True)
class StoredRecord:
    id: int
    project: Project
    subject: str
    has_document: bool
    created_at: int
    updated_at: int
    attachments: list[StoredAttachment] = field(default_factory=list)

    @property
    def created(self) -> datetime:
        return ms_to_datetime(self.created_at)

    @property
    def updated(self) -> datetime:
        return ms_to_datetime(self.updated_at)
