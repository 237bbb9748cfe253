"""Document renderers."""

from __future__ import annotations

from packet_builder.core.errors import RenderError
from packet_builder.models.entities import StoredRecord
from packet_builder.services.store import SQLiteRecordStore


class StoredDocumentRenderer:
    """Serve the document the upstream system rendered and uploaded for a record."""

    def __init__(self, store: SQLiteRecordStore) -> None:
        self.store = store

    def render(self, record: StoredRecord) -> bytes:
        document = self.store.get_document(record.id)
        if not document:
            raise RenderError(record.id, "no rendered document has been stored")
        return document


__all__ = ["StoredDocumentRenderer"]
