"""Packet creation affordances for a selection of records."""

from __future__ import annotations

from typing import Sequence

from packet_builder.packets.types import Record
from packet_builder.services.contracts import Authorizer, PacketAction


class PacketActionProvider:
    def __init__(self, authorizer: Authorizer) -> None:
        self.authorizer = authorizer

    def actions_for(self, actor: str | None, records: Sequence[Record]) -> list[PacketAction]:
        if not records:
            return []
        if not all(self.authorizer.is_authorized(actor, record, "view_records") for record in records):
            return []
        if len(records) == 1:
            record = records[0]
            if not self.authorizer.is_authorized(actor, record, "create_packet"):
                return []
            return [
                PacketAction(
                    name="create_packet",
                    label="Create Packet",
                    method="POST",
                    href=f"/records/{record.id}/packet",
                    record_ids=[record.id],
                )
            ]
        return [
            PacketAction(
                name="create_multi_packet",
                label="Create Multi Packet",
                method="POST",
                href="/packets",
                record_ids=[record.id for record in records],
                confirm=f"Create a packet archive for {len(records)} records?",
            )
        ]


__all__ = ["PacketActionProvider"]
