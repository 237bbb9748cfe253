"""Packet service: authorize, render, assemble, and audit."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Sequence

import orjson

from packet_builder.core.errors import EmptyInputError, PacketError, PermissionDeniedError, RecordNotFoundError
from packet_builder.core.logging import get_logger, log_context
from packet_builder.core.metrics import ASSEMBLY_DURATION, ATTACHMENTS_SKIPPED, PACKET_BYTES, PACKETS_BUILT
from packet_builder.db.sqlite import SQLiteDatabase
from packet_builder.packets.assembly import PacketAssembler
from packet_builder.packets.types import PacketMode, PacketResult
from packet_builder.services.contracts import Authorizer, DocumentRenderer, RecordStore
from packet_builder.utils.ids import new_id
from packet_builder.utils.time import archive_stamp, now_ms

logger = get_logger(__name__)

ZIP_MEDIA_TYPE = "application/zip"


@dataclass(slots=True)
class PacketDownload:
    job_id: str
    filename: str
    data: bytes
    result: PacketResult
    media_type: str = ZIP_MEDIA_TYPE


class PacketService:
    """Coordinate collaborators around the assembly engine for one actor."""

    def __init__(
        self,
        database: SQLiteDatabase,
        store: RecordStore,
        authorizer: Authorizer,
        renderer: DocumentRenderer,
        assembler: PacketAssembler,
    ) -> None:
        self.db = database
        self.store = store
        self.authorizer = authorizer
        self.renderer = renderer
        self.assembler = assembler

    def create_packet(self, actor: str | None, record_id: Any) -> PacketDownload:
        record = self.store.get(record_id)
        if not self.authorizer.is_authorized(actor, record, "create_packet"):
            raise PermissionDeniedError(record.id, "create_packet")

        context = log_context(record_id=record.id, actor=actor, mode=PacketMode.SINGLE.value)
        logger.info("Creating packet for record %s", record.id, extra=context)
        job_id = self._start_job(PacketMode.SINGLE, actor, [record.id])
        started = time.perf_counter()
        try:
            document = self.renderer.render(record)
            result = self.assembler.build_single(record, document)
        except Exception as exc:
            self._record_failure(job_id, PacketMode.SINGLE, exc, context)
            raise
        self._record_success(job_id, result, time.perf_counter() - started)
        logger.info("Packet created successfully for record %s", record.id, extra={**context, **log_context(job_id=job_id)})
        return PacketDownload(job_id=job_id, filename=f"packet_{record.id}.zip", data=result.data, result=result)

    def create_batch(self, actor: str | None, record_ids: Sequence[Any] | None) -> PacketDownload:
        unique_ids = _dedupe(record_ids or [])
        if not unique_ids:
            raise EmptyInputError()
        records = []
        for record_id in unique_ids:
            record = self.store.get(record_id)
            # unauthorized records are reported as missing so their existence does not leak
            if not self.authorizer.is_authorized(actor, record, "view_records"):
                raise RecordNotFoundError(record_id)
            records.append(record)

        ids = [record.id for record in records]
        context = log_context(actor=actor, mode=PacketMode.BATCH.value)
        logger.info("Creating multi packet for records %s", ids, extra=context)
        job_id = self._start_job(PacketMode.BATCH, actor, ids)
        started = time.perf_counter()
        try:
            documents = {record.id: self.renderer.render(record) for record in records}
            result = self.assembler.build_batch(records, documents)
        except Exception as exc:
            self._record_failure(job_id, PacketMode.BATCH, exc, context)
            raise
        self._record_success(job_id, result, time.perf_counter() - started)
        logger.info("Multi packet created successfully for %s records", len(records), extra={**context, **log_context(job_id=job_id)})
        filename = f"multi_packet_{archive_stamp()}.zip"
        return PacketDownload(job_id=job_id, filename=filename, data=result.data, result=result)

    def list_jobs(self, limit: int = 50) -> list[dict[str, Any]]:
        rows = self.db.query(
            """
            SELECT id, mode, actor, record_ids, status, stats_json, started_at, finished_at
            FROM packet_jobs ORDER BY started_at DESC LIMIT ?
            """,
            [limit],
        )
        return [
            {
                "id": row["id"],
                "mode": row["mode"],
                "actor": row["actor"],
                "record_ids": orjson.loads(row["record_ids"]),
                "status": row["status"],
                "stats": orjson.loads(row["stats_json"]) if row["stats_json"] else None,
                "started_at": row["started_at"],
                "finished_at": row["finished_at"],
            }
            for row in rows
        ]

    # Internal helpers -------------------------------------------------

    def _record_success(self, job_id: str, result: PacketResult, duration: float) -> None:
        mode = result.mode.value
        ASSEMBLY_DURATION.labels(mode=mode).observe(duration)
        PACKET_BYTES.labels(mode=mode).observe(len(result.data))
        PACKETS_BUILT.labels(mode=mode, status="completed").inc()
        for item in result.skipped:
            ATTACHMENTS_SKIPPED.labels(mode=mode, reason=item.reason.value).inc()
        self._finish_job(job_id, "completed", result.stats())

    def _record_failure(self, job_id: str, mode: PacketMode, exc: Exception, context: dict[str, Any]) -> None:
        PACKETS_BUILT.labels(mode=mode.value, status="failed").inc()
        extra = {**context, **log_context(job_id=job_id)}
        if isinstance(exc, PacketError):
            logger.error("Packet creation failed: %s", exc.message, extra=extra)
            detail: Any = exc.detail
        else:
            logger.exception("Packet creation failed: %s", exc, extra=extra)
            detail = str(exc)
        self._finish_job(job_id, "failed", {"error": detail})

    def _start_job(self, mode: PacketMode, actor: str | None, record_ids: list[Any]) -> str:
        job_id = new_id("job")
        self.db.execute(
            "INSERT INTO packet_jobs (id, mode, actor, record_ids, status, started_at) VALUES (?, ?, ?, ?, ?, ?)",
            [job_id, mode.value, actor, orjson.dumps(record_ids).decode("utf-8"), "running", now_ms()],
        )
        self.db.commit()
        return job_id

    def _finish_job(self, job_id: str, status: str, stats: dict[str, Any]) -> None:
        self.db.execute(
            "UPDATE packet_jobs SET finished_at = ?, status = ?, stats_json = ? WHERE id = ?",
            [now_ms(), status, orjson.dumps(stats, default=str).decode("utf-8"), job_id],
        )
        self.db.commit()


def _dedupe(values: Sequence[Any]) -> list[Any]:
    """Remove duplicates while preserving order."""
    seen: set[str] = set()
    unique: list[Any] = []
    for item in values:
        key = str(item)
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


__all__ = ["PacketDownload", "PacketService"]
