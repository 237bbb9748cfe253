"""Administrative routes for Packet Builder."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from packet_builder.api.dependencies import get_packet_service, get_record_store
from packet_builder.core.metrics import metrics_response
from packet_builder.models.dto import (
    AttachmentResponse,
    GrantRequest,
    GrantResponse,
    PacketJobResponse,
    ProjectCreateRequest,
    ProjectResponse,
    RecordCreateRequest,
    RecordResponse,
)
from packet_builder.models.entities import Project, StoredRecord
from packet_builder.services.packets import PacketService
from packet_builder.services.store import SQLiteRecordStore

router = APIRouter()


@router.get("/projects", response_model=list[ProjectResponse], summary="List projects")
async def list_projects(store: SQLiteRecordStore = Depends(get_record_store)) -> list[ProjectResponse]:
    return [_project_to_response(project) for project in store.list_projects()]


@router.post("/projects", response_model=ProjectResponse, summary="Create or update a project")
async def create_project(
    request: ProjectCreateRequest,
    store: SQLiteRecordStore = Depends(get_record_store),
) -> ProjectResponse:
    project = store.create_project(
        request.id,
        request.name,
        is_public=request.is_public,
        packets_enabled=request.packets_enabled,
    )
    return _project_to_response(project)


@router.get("/records", response_model=list[RecordResponse], summary="List records")
async def list_records(
    project_id: str | None = Query(default=None),
    store: SQLiteRecordStore = Depends(get_record_store),
) -> list[RecordResponse]:
    return [_record_to_response(record) for record in store.list_records(project_id)]


@router.post("/records", response_model=RecordResponse, summary="Register a record")
async def create_record(
    request: RecordCreateRequest,
    store: SQLiteRecordStore = Depends(get_record_store),
) -> RecordResponse:
    try:
        record = store.create_record(request.project_id, request.subject)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _record_to_response(record)


@router.get("/records/{record_id}", response_model=RecordResponse, summary="Fetch one record")
async def get_record(record_id: int, store: SQLiteRecordStore = Depends(get_record_store)) -> RecordResponse:
    return _record_to_response(store.get(record_id))


@router.put("/records/{record_id}/document", response_model=RecordResponse, summary="Store the rendered document")
async def put_document(
    record_id: int,
    request: Request,
    store: SQLiteRecordStore = Depends(get_record_store),
) -> RecordResponse:
    body = await request.body()
    if not body:
        raise HTTPException(status_code=400, detail="Document body is empty")
    store.set_document(record_id, body)
    return _record_to_response(store.get(record_id))


@router.post("/records/{record_id}/attachments", response_model=AttachmentResponse, summary="Attach a file")
async def add_attachment(
    record_id: int,
    request: Request,
    filename: str = Query(..., min_length=1),
    store: SQLiteRecordStore = Depends(get_record_store),
) -> AttachmentResponse:
    body = await request.body()
    attachment = store.add_attachment(
        record_id,
        filename,
        body,
        content_type=request.headers.get("content-type"),
    )
    return AttachmentResponse(
        id=attachment.id,
        filename=attachment.filename,
        content_type=attachment.content_type,
        size_bytes=attachment.size_bytes,
        sha256=attachment.sha256,
        readable=attachment.readable,
    )


@router.post("/grants", response_model=GrantResponse, summary="Grant permissions on a project")
async def create_grant(
    request: GrantRequest,
    store: SQLiteRecordStore = Depends(get_record_store),
) -> GrantResponse:
    if store.get_project(request.project_id) is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return GrantResponse(added=store.grant(request.actor, request.project_id, request.permissions))


@router.get("/packet-jobs", response_model=list[PacketJobResponse], summary="Recent packet jobs")
async def list_packet_jobs(
    limit: int = Query(default=50, ge=1, le=500),
    service: PacketService = Depends(get_packet_service),
) -> list[PacketJobResponse]:
    return [PacketJobResponse(**job) for job in service.list_jobs(limit)]


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


def _project_to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        name=project.name,
        is_public=project.is_public,
        packets_enabled=project.packets_enabled,
    )


def _record_to_response(record: StoredRecord) -> RecordResponse:
    return RecordResponse(
        id=record.id,
        project_id=record.project.id,
        subject=record.subject,
        has_document=record.has_document,
        attachments=[
            AttachmentResponse(
                id=attachment.id,
                filename=attachment.filename,
                content_type=attachment.content_type,
                size_bytes=attachment.size_bytes,
                sha256=attachment.sha256,
                readable=attachment.readable,
            )
            for attachment in record.attachments
        ],
        created_at=record.created,
        updated_at=record.updated,
    )


__all__ = ["router"]
