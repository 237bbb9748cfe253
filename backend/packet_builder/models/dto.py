"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class ProjectCreateRequest(BaseModel):
    id: str = Field(min_length=1, max_length=100)
    name: str
    is_public: bool = False
    packets_enabled: bool = True


class ProjectResponse(ProjectCreateRequest):
    pass


class RecordCreateRequest(BaseModel):
    project_id: str
    subject: str


class AttachmentResponse(BaseModel):
    id: str
    filename: str
    content_type: str | None = None
    size_bytes: int | None = None
    sha256: str | None = None
    readable: bool


class RecordResponse(BaseModel):
    id: int
    project_id: str
    subject: str
    has_document: bool
    attachments: list[AttachmentResponse]
    created_at: datetime
    updated_at: datetime


class GrantRequest(BaseModel):
    actor: str
    project_id: str
    permissions: list[Literal["view_records", "create_packet"]] = Field(min_length=1)


class GrantResponse(BaseModel):
    added: int


class BatchPacketRequest(BaseModel):
    ids: list[int] | None = Field(default=None, description="Record IDs, in archive order")


class PacketActionResponse(BaseModel):
    name: str
    label: str
    method: str
    href: str
    record_ids: list[int]
    confirm: str | None = None


class PacketActionsResponse(BaseModel):
    actions: list[PacketActionResponse]


class PacketJobResponse(BaseModel):
    id: str
    mode: Literal["single", "batch"]
    actor: str | None
    record_ids: list[int]
    status: Literal["running", "completed", "failed"]
    stats: dict[str, Any] | None
    started_at: int
    finished_at: int | None


__all__ = [
    "ProjectCreateRequest",
    "ProjectResponse",
    "RecordCreateRequest",
    "RecordResponse",
    "AttachmentResponse",
    "GrantRequest",
    "GrantResponse",
    "BatchPacketRequest",
    "PacketActionResponse",
    "PacketActionsResponse",
    "PacketJobResponse",
]
