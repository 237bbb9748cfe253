"""Packet download routes."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query, Response

from packet_builder.api.dependencies import get_action_provider, get_actor, get_packet_service, get_record_store
from packet_builder.core.errors import RecordNotFoundError
from packet_builder.models.dto import BatchPacketRequest, PacketActionResponse, PacketActionsResponse
from packet_builder.services.contracts import ActionProvider
from packet_builder.services.packets import PacketDownload, PacketService
from packet_builder.services.store import SQLiteRecordStore

router = APIRouter()


@router.post("/records/{record_id}/packet", summary="Download a packet for one record")
async def create_packet(
    record_id: int,
    actor: str | None = Depends(get_actor),
    service: PacketService = Depends(get_packet_service),
) -> Response:
    return _download(service.create_packet(actor, record_id))


@router.post("/packets", summary="Download one archive holding packets for several records")
async def create_multi_packet(
    request: BatchPacketRequest | None = Body(default=None),
    actor: str | None = Depends(get_actor),
    service: PacketService = Depends(get_packet_service),
) -> Response:
    record_ids = request.ids if request is not None else None
    return _download(service.create_batch(actor, record_ids))


@router.get("/packets/actions", response_model=PacketActionsResponse, summary="Packet actions for a selection")
async def packet_actions(
    ids: list[int] = Query(default=[]),
    actor: str | None = Depends(get_actor),
    store: SQLiteRecordStore = Depends(get_record_store),
    provider: ActionProvider = Depends(get_action_provider),
) -> PacketActionsResponse:
    try:
        records = store.get_many(ids)
    except RecordNotFoundError:
        return PacketActionsResponse(actions=[])
    actions = provider.actions_for(actor, records)
    return PacketActionsResponse(
        actions=[
            PacketActionResponse(
                name=action.name,
                label=action.label,
                method=action.method,
                href=action.href,
                record_ids=action.record_ids,
                confirm=action.confirm,
            )
            for action in actions
        ]
    )


def _download(download: PacketDownload) -> Response:
    return Response(
        content=download.data,
        media_type=download.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{download.filename}"',
            "X-Packet-Job": download.job_id,
        },
    )


__all__ = ["router"]
