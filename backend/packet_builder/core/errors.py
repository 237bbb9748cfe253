"""Typed errors for Packet Builder.

Every error carries the HTTP status the API answers with and a ``detail``
payload identifying the offending record/attachment, so callers can render a
useful message without parsing strings.
"""

from __future__ import annotations

from typing import Any


class PacketError(Exception):
    """Base error for packet assembly and the surrounding service."""

    status_code: int = 500

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = {key: value for key, value in context.items() if value is not None}

    @property
    def detail(self) -> dict[str, Any]:
        return {"error": type(self).__name__, "message": self.message, **self.context}


# Validation -------------------------------------------------------


class EmptyInputError(PacketError):
    status_code = 400

    def __init__(self, message: str = "No records selected") -> None:
        super().__init__(message)


class DuplicateRecordError(PacketError):
    status_code = 400

    def __init__(self, record_id: Any) -> None:
        super().__init__(f"Record {record_id} appears more than once", record_id=record_id)
        self.record_id = record_id


class MissingContentError(PacketError):
    def __init__(self, record_id: Any) -> None:
        super().__init__(f"Missing document content for record {record_id}", record_id=record_id)
        self.record_id = record_id


# Assembly ---------------------------------------------------------


class AttachmentProcessingError(PacketError):
    def __init__(self, record_id: Any, attachment_id: Any, filename: str | None, reason: str) -> None:
        super().__init__(
            f"Failed to process attachment {filename} for record {record_id}: {reason}",
            record_id=record_id,
            attachment_id=attachment_id,
            filename=filename,
        )
        self.record_id = record_id
        self.attachment_id = attachment_id
        self.filename = filename


class FailureThresholdError(PacketError):
    def __init__(self, record_id: Any, failed: int, readable: int, ratio: float) -> None:
        super().__init__(
            f"{failed} of {readable} attachments failed for record {record_id} (limit {ratio:.0%})",
            record_id=record_id,
            failed=failed,
            readable=readable,
        )
        self.record_id = record_id


class WriteError(PacketError):
    def __init__(self, entry_path: str | None, reason: str) -> None:
        super().__init__(f"Archive write failed at {entry_path or '<finalize>'}: {reason}", entry_path=entry_path)
        self.entry_path = entry_path


class InvalidStateError(PacketError):
    pass


class DuplicateEntryError(PacketError):
    def __init__(self, entry_path: str) -> None:
        super().__init__(f"Archive already contains {entry_path}", entry_path=entry_path)
        self.entry_path = entry_path


# Collaborators ----------------------------------------------------


class RenderError(PacketError):
    def __init__(self, record_id: Any, reason: str) -> None:
        super().__init__(f"Could not render document for record {record_id}: {reason}", record_id=record_id)
        self.record_id = record_id


class RecordNotFoundError(PacketError):
    status_code = 404

    def __init__(self, record_id: Any) -> None:
        super().__init__(f"Record {record_id} not found", record_id=record_id)
        self.record_id = record_id


class PermissionDeniedError(PacketError):
    status_code = 403

    def __init__(self, record_id: Any, action: str) -> None:
        super().__init__(f"Not allowed to {action} for record {record_id}", record_id=record_id, action=action)
        self.record_id = record_id
        self.action = action


__all__ = [
    "PacketError",
    "EmptyInputError",
    "DuplicateRecordError",
    "MissingContentError",
    "AttachmentProcessingError",
    "FailureThresholdError",
    "WriteError",
    "InvalidStateError",
    "DuplicateEntryError",
    "RenderError",
    "RecordNotFoundError",
    "PermissionDeniedError",
]
