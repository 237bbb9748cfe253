"""Grant-table authorization."""

from __future__ import annotations

from typing import Iterable

from packet_builder.models.entities import StoredRecord
from packet_builder.services.contracts import Action
from packet_builder.services.store import SQLiteRecordStore


class GrantAuthorizer:
    """Project-scoped permissions with an admin override.

    ``create_packet`` needs packets enabled on the project even for admins,
    and always implies being able to view the record.
    """

    def __init__(self, store: SQLiteRecordStore, admin_actors: Iterable[str] = ()) -> None:
        self.store = store
        self.admin_actors = frozenset(admin_actors)

    def is_admin(self, actor: str | None) -> bool:
        return actor is not None and actor in self.admin_actors

    def is_authorized(self, actor: str | None, record: StoredRecord, action: Action) -> bool:
        if action == "view_records":
            return self._can_view(actor, record)
        if action == "create_packet":
            if not record.project.packets_enabled:
                return False
            if not self._can_view(actor, record):
                return False
            return self.is_admin(actor) or self._has_grant(actor, record, "create_packet")
        return False

    def _can_view(self, actor: str | None, record: StoredRecord) -> bool:
        if record.project.is_public or self.is_admin(actor):
            return True
        return self._has_grant(actor, record, "view_records")

    def _has_grant(self, actor: str | None, record: StoredRecord, permission: str) -> bool:
        if actor is None:
            return False
        return self.store.has_grant(actor, record.project.id, permission)


__all__ = ["GrantAuthorizer"]
