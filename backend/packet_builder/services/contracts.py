"""Collaborator contracts consumed by the packet service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, Sequence

from packet_builder.packets.types import Record

Action = Literal["view_records", "create_packet"]


class RecordStore(Protocol):
    def get(self, record_id: Any) -> Record:
        """Return the record or raise ``RecordNotFoundError``."""
        ...


class Authorizer(Protocol):
    def is_authorized(self, actor: str | None, record: Record, action: Action) -> bool: ...


class DocumentRenderer(Protocol):
    def render(self, record: Record) -> bytes:
        """Return the primary document bytes or raise ``RenderError``."""
        ...


@dataclass(slots=True)
class PacketAction:
    """Descriptor for a control that triggers packet creation."""

    name: Literal["create_packet", "create_multi_packet"]
    label: str
    method: str
    href: str
    record_ids: list[Any] = field(default_factory=list)
    confirm: str | None = None


class ActionProvider(Protocol):
    def actions_for(self, actor: str | None, records: Sequence[Record]) -> list[PacketAction]: ...


__all__ = [
    "Action",
    "RecordStore",
    "Authorizer",
    "DocumentRenderer",
    "PacketAction",
    "ActionProvider",
]
