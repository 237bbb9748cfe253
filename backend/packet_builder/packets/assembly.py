"""Packet assembly: one record per archive, or many records in namespaces.

Both modes write a record's document first and then its readable attachments
in their natural order. They differ only in how an attachment that cannot be
read is treated: single packets log it and carry on, batch packets abort and
discard the whole archive.
"""

from __future__ import annotations

import tempfile
from enum import Enum
from typing import IO, Any, Iterable, Mapping, Sequence

from packet_builder.core.config import Settings
from packet_builder.core.errors import (
    AttachmentProcessingError,
    DuplicateRecordError,
    EmptyInputError,
    FailureThresholdError,
    InvalidStateError,
    MissingContentError,
)
from packet_builder.core.logging import get_logger, log_context
from packet_builder.packets.naming import NameRegistry, document_entry_name, namespace_prefix
from packet_builder.packets.types import (
    Attachment,
    PacketMode,
    PacketResult,
    Record,
    SkippedAttachment,
    SkipReason,
)
from packet_builder.packets.writer import ArchiveHandle, ArchiveWriter, iter_chunks

logger = get_logger(__name__)


class AssemblyState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    WRITING = "writing"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS: dict[AssemblyState, frozenset[AssemblyState]] = {
    AssemblyState.IDLE: frozenset({AssemblyState.VALIDATING}),
    AssemblyState.VALIDATING: frozenset({AssemblyState.WRITING, AssemblyState.FAILED}),
    AssemblyState.WRITING: frozenset({AssemblyState.FINALIZING, AssemblyState.FAILED}),
    AssemblyState.FINALIZING: frozenset({AssemblyState.DONE, AssemblyState.FAILED}),
    AssemblyState.DONE: frozenset(),
    AssemblyState.FAILED: frozenset(),
}


class AssemblyRun:
    """Per-call progress tracker."""

    def __init__(self, mode: PacketMode) -> None:
        self.mode = mode
        self.state = AssemblyState.IDLE

    def advance(self, state: AssemblyState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise InvalidStateError(f"Illegal assembly transition {self.state.value} -> {state.value}")
        logger.debug("Assembly %s: %s -> %s", self.mode.value, self.state.value, state.value)
        self.state = state


class PacketAssembler:
    """Stateless packet builder; safe to share between concurrent calls."""

    def __init__(
        self,
        writer: ArchiveWriter | None = None,
        max_failure_ratio: float | None = None,
    ) -> None:
        self.writer = writer or ArchiveWriter()
        self.max_failure_ratio = max_failure_ratio

    @classmethod
    def from_settings(cls, settings: Settings) -> "PacketAssembler":
        writer = ArchiveWriter(
            compression=settings.compression,
            compress_level=settings.compress_level,
            reproducible=settings.reproducible_timestamps,
            chunk_size=settings.chunk_size,
            spool_max_bytes=settings.spool_max_bytes,
        )
        return cls(writer=writer, max_failure_ratio=settings.max_attachment_failure_ratio)

    def build_single(self, record: Record, document_bytes: bytes | None) -> PacketResult:
        run = AssemblyRun(PacketMode.SINGLE)
        run.advance(AssemblyState.VALIDATING)
        if document_bytes is None:
            run.advance(AssemblyState.FAILED)
            raise MissingContentError(record.id)

        handle: ArchiveHandle | None = None
        try:
            handle = self.writer.open()
            run.advance(AssemblyState.WRITING)
            skipped = self._write_record(handle, record, document_bytes, prefix="", mode=run.mode)
            self._check_failure_ratio(record, handle, skipped)
            run.advance(AssemblyState.FINALIZING)
            data = self.writer.finalize(handle)
        except Exception:
            run.advance(AssemblyState.FAILED)
            if handle is not None:
                self.writer.discard(handle)
            raise
        run.advance(AssemblyState.DONE)
        return PacketResult(mode=run.mode, data=data, entries=list(handle.entries), skipped=skipped)

    def build_batch(
        self,
        records: Iterable[Record],
        document_bytes_by_id: Mapping[Any, bytes],
    ) -> PacketResult:
        run = AssemblyRun(PacketMode.BATCH)
        run.advance(AssemblyState.VALIDATING)
        records = list(records)
        try:
            _validate_batch(records, document_bytes_by_id)
        except Exception:
            run.advance(AssemblyState.FAILED)
            raise

        handle: ArchiveHandle | None = None
        skipped: list[SkippedAttachment] = []
        try:
            handle = self.writer.open()
            run.advance(AssemblyState.WRITING)
            for record in records:
                skipped.extend(
                    self._write_record(
                        handle,
                        record,
                        document_bytes_by_id[record.id],
                        prefix=namespace_prefix(record.id),
                        mode=run.mode,
                    )
                )
            run.advance(AssemblyState.FINALIZING)
            data = self.writer.finalize(handle)
        except Exception:
            run.advance(AssemblyState.FAILED)
            if handle is not None:
                self.writer.discard(handle)
            raise
        run.advance(AssemblyState.DONE)
        return PacketResult(mode=run.mode, data=data, entries=list(handle.entries), skipped=skipped)

    # Internal helpers -------------------------------------------------

    def _write_record(
        self,
        handle: ArchiveHandle,
        record: Record,
        document_bytes: bytes,
        prefix: str,
        mode: PacketMode,
    ) -> list[SkippedAttachment]:
        document_name = document_entry_name(record.id)
        self.writer.write_entry(handle, f"{prefix}{document_name}", document_bytes)
        registry = NameRegistry([document_name])

        skipped: list[SkippedAttachment] = []
        for attachment in record.attachments:
            context = log_context(record_id=record.id, attachment_id=attachment.id, mode=mode.value)
            if not attachment.readable:
                logger.debug("Skipping unreadable attachment %s", attachment.filename, extra=context)
                skipped.append(_skipped(record, attachment, SkipReason.UNREADABLE))
                continue
            try:
                spool = self._read_attachment(attachment)
            except Exception as exc:
                logger.warning(
                    "Failed to add attachment %s to packet %s: %s",
                    attachment.filename,
                    record.id,
                    exc,
                    extra=context,
                )
                if mode is PacketMode.BATCH:
                    raise AttachmentProcessingError(record.id, attachment.id, attachment.filename, str(exc)) from exc
                skipped.append(_skipped(record, attachment, SkipReason.READ_ERROR, str(exc)))
                continue
            with spool:
                name = registry.claim(attachment.filename)
                self.writer.write_entry(handle, f"{prefix}{name}", spool)
        return skipped

    def _read_attachment(self, attachment: Attachment) -> IO[bytes]:
        """Copy attachment content into a spool so a failed read never leaves a partial entry."""
        spool = tempfile.SpooledTemporaryFile(max_size=self.writer.spool_max_bytes, mode="w+b")
        try:
            source = attachment.content()
            try:
                for chunk in iter_chunks(source, self.writer.chunk_size):
                    spool.write(chunk)
            finally:
                close = getattr(source, "close", None)
                if callable(close):
                    close()
        except BaseException:
            spool.close()
            raise
        spool.seek(0)
        return spool

    def _check_failure_ratio(
        self,
        record: Record,
        handle: ArchiveHandle,
        skipped: Sequence[SkippedAttachment],
    ) -> None:
        if self.max_failure_ratio is None:
            return
        failed = sum(1 for item in skipped if item.reason is SkipReason.READ_ERROR)
        readable = failed + len(handle.entries) - 1
        if readable and failed / readable > self.max_failure_ratio:
            raise FailureThresholdError(record.id, failed, readable, self.max_failure_ratio)


def _validate_batch(records: Sequence[Record], document_bytes_by_id: Mapping[Any, bytes]) -> None:
    if not records:
        raise EmptyInputError()
    # uniqueness is per namespace prefix, so 1 and "1" collide
    seen: set[str] = set()
    for record in records:
        prefix = namespace_prefix(record.id)
        if prefix in seen:
            raise DuplicateRecordError(record.id)
        seen.add(prefix)
        if document_bytes_by_id.get(record.id) is None:
            raise MissingContentError(record.id)


def _skipped(
    record: Record,
    attachment: Attachment,
    reason: SkipReason,
    detail: str | None = None,
) -> SkippedAttachment:
    return SkippedAttachment(
        record_id=record.id,
        attachment_id=attachment.id,
        filename=attachment.filename,
        reason=reason,
        detail=detail,
    )


def assemble_single(
    record: Record,
    document_bytes: bytes,
    assembler: PacketAssembler | None = None,
) -> bytes:
    """Build a single-record packet and return the archive bytes."""
    return (assembler or PacketAssembler()).build_single(record, document_bytes).data


def assemble_batch(
    records: Iterable[Record],
    document_bytes_by_id: Mapping[Any, bytes],
    assembler: PacketAssembler | None = None,
) -> bytes:
    """Build a multi-record packet and return the archive bytes."""
    return (assembler or PacketAssembler()).build_batch(records, document_bytes_by_id).data


__all__ = [
    "AssemblyState",
    "AssemblyRun",
    "PacketAssembler",
    "assemble_single",
    "assemble_batch",
]
