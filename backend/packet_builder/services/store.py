"""SQLite-backed record and attachment storage."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Sequence

from packet_builder.core.errors import RecordNotFoundError
from packet_builder.core.logging import get_logger
from packet_builder.db.sqlite import SQLiteDatabase
from packet_builder.models.entities import Project, StoredAttachment, StoredRecord
from packet_builder.utils.ids import content_digest, new_id
from packet_builder.utils.text import safe_filename
from packet_builder.utils.time import now_ms

logger = get_logger(__name__)

_RECORD_COLUMNS = """
    r.id, r.subject, r.created_at, r.updated_at, r.document IS NOT NULL AS has_document,
    p.id AS project_id, p.name AS project_name, p.is_public, p.packets_enabled
"""


class SQLiteRecordStore:
    """Records, their projects, and file-backed attachments."""

    def __init__(self, db: SQLiteDatabase, attachments_dir: Path) -> None:
        self.db = db
        self.attachments_dir = attachments_dir.expanduser()

    # Reads ----------------------------------------------------------

    def get(self, record_id: Any) -> StoredRecord:
        key = _coerce_id(record_id)
        row = self.db.fetch_one(
            f"SELECT {_RECORD_COLUMNS} FROM records r JOIN projects p ON p.id = r.project_id WHERE r.id = ?",
            [key],
        )
        if row is None:
            raise RecordNotFoundError(record_id)
        record = _row_to_record(row)
        record.attachments = self._attachments_for(record.id)
        return record

    def get_many(self, record_ids: Sequence[Any]) -> list[StoredRecord]:
        return [self.get(record_id) for record_id in record_ids]

    def list_records(self, project_id: str | None = None) -> list[StoredRecord]:
        sql = f"SELECT {_RECORD_COLUMNS} FROM records r JOIN projects p ON p.id = r.project_id"
        params: list[Any] = []
        if project_id:
            sql += " WHERE r.project_id = ?"
            params.append(project_id)
        rows = self.db.query(sql + " ORDER BY r.id", params)
        records = [_row_to_record(row) for row in rows]
        for record in records:
            record.attachments = self._attachments_for(record.id)
        return records

    def get_document(self, record_id: Any) -> bytes | None:
        row = self.db.fetch_one("SELECT document FROM records WHERE id = ?", [_coerce_id(record_id)])
        if row is None:
            raise RecordNotFoundError(record_id)
        document = row["document"]
        return bytes(document) if document is not None else None

    def get_project(self, project_id: str) -> Project | None:
        row = self.db.fetch_one("SELECT id, name, is_public, packets_enabled FROM projects WHERE id = ?", [project_id])
        return _row_to_project(row) if row else None

    def list_projects(self) -> list[Project]:
        rows = self.db.query("SELECT id, name, is_public, packets_enabled FROM projects ORDER BY id")
        return [_row_to_project(row) for row in rows]

    def has_grant(self, actor: str, project_id: str, permission: str) -> bool:
        row = self.db.fetch_one(
            "SELECT 1 FROM grants WHERE actor = ? AND project_id = ? AND permission = ?",
            [actor, project_id, permission],
        )
        return row is not None

    # Writes ---------------------------------------------------------

    def create_project(self, project_id: str, name: str, is_public: bool = False, packets_enabled: bool = True) -> Project:
        self.db.execute(
            """
            INSERT INTO projects (id, name, is_public, packets_enabled, created_at) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET name = excluded.name, is_public = excluded.is_public,
              packets_enabled = excluded.packets_enabled
            """,
            [project_id, name, int(is_public), int(packets_enabled), now_ms()],
        )
        self.db.commit()
        return Project(id=project_id, name=name, is_public=is_public, packets_enabled=packets_enabled)

    def create_record(self, project_id: str, subject: str, document: bytes | None = None) -> StoredRecord:
        now = now_ms()
        try:
            cursor = self.db.execute(
                "INSERT INTO records (project_id, subject, document, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                [project_id, subject, document, now, now],
            )
        except sqlite3.IntegrityError as exc:
            raise ValueError(f"Unknown project {project_id}") from exc
        self.db.commit()
        return self.get(cursor.lastrowid)

    def set_document(self, record_id: Any, document: bytes) -> None:
        cursor = self.db.execute(
            "UPDATE records SET document = ?, updated_at = ? WHERE id = ?",
            [document, now_ms(), _coerce_id(record_id)],
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(record_id)
        self.db.commit()

    def add_attachment(
        self,
        record_id: Any,
        filename: str,
        data: bytes,
        content_type: str | None = None,
    ) -> StoredAttachment:
        record = self.get(record_id)
        attachment_id = new_id("att")
        disk_path = self.attachments_dir / str(record.id) / attachment_id
        disk_path.parent.mkdir(parents=True, exist_ok=True)
        disk_path.write_bytes(data)

        position_row = self.db.fetch_one(
            "SELECT COALESCE(MAX(position), -1) + 1 AS next FROM attachments WHERE record_id = ?",
            [record.id],
        )
        attachment = StoredAttachment(
            id=attachment_id,
            record_id=record.id,
            filename=safe_filename(filename),
            disk_path=disk_path,
            content_type=content_type,
            size_bytes=len(data),
            sha256=content_digest(data),
        )
        self.db.execute(
            """
            INSERT INTO attachments (id, record_id, filename, disk_path, content_type, size_bytes, sha256, position, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                attachment.id,
                attachment.record_id,
                attachment.filename,
                str(disk_path),
                attachment.content_type,
                attachment.size_bytes,
                attachment.sha256,
                position_row["next"] if position_row else 0,
                now_ms(),
            ],
        )
        self.db.commit()
        logger.info("Stored attachment %s for record %s", attachment.filename, record.id)
        return attachment

    def grant(self, actor: str, project_id: str, permissions: Sequence[str]) -> int:
        now = now_ms()
        added = 0
        with self.db.transaction() as cursor:
            for permission in permissions:
                cursor.execute(
                    "INSERT OR IGNORE INTO grants (actor, project_id, permission, created_at) VALUES (?, ?, ?, ?)",
                    [actor, project_id, permission, now],
                )
                added += cursor.rowcount
        return added

    # Internal helpers -------------------------------------------------

    def _attachments_for(self, record_id: int) -> list[StoredAttachment]:
        rows = self.db.query(
            """
            SELECT id, record_id, filename, disk_path, content_type, size_bytes, sha256
            FROM attachments WHERE record_id = ? ORDER BY position, created_at
            """,
            [record_id],
        )
        return [
            StoredAttachment(
                id=row["id"],
                record_id=row["record_id"],
                filename=row["filename"],
                disk_path=Path(row["disk_path"]),
                content_type=row["content_type"],
                size_bytes=row["size_bytes"],
                sha256=row["sha256"],
            )
            for row in rows
        ]


def _coerce_id(record_id: Any) -> int:
    try:
        return int(record_id)
    except (TypeError, ValueError):
        raise RecordNotFoundError(record_id) from None


def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        is_public=bool(row["is_public"]),
        packets_enabled=bool(row["packets_enabled"]),
    )


def _row_to_record(row: sqlite3.Row) -> StoredRecord:
    return StoredRecord(
        id=int(row["id"]),
        project=Project(
            id=row["project_id"],
            name=row["project_name"],
            is_public=bool(row["is_public"]),
            packets_enabled=bool(row["packets_enabled"]),
        ),
        subject=row["subject"],
        has_document=bool(row["has_document"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


__all__ = ["SQLiteRecordStore"]
