"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Header

from packet_builder.core.config import Settings, get_settings
from packet_builder.db.sqlite import SQLiteDatabase
from packet_builder.packets.assembly import PacketAssembler
from packet_builder.services.actions import PacketActionProvider
from packet_builder.services.auth import GrantAuthorizer
from packet_builder.services.packets import PacketService
from packet_builder.services.render import StoredDocumentRenderer
from packet_builder.services.store import SQLiteRecordStore

_DB: SQLiteDatabase | None = None
_STORE: SQLiteRecordStore | None = None
_AUTHORIZER: GrantAuthorizer | None = None
_PACKET_SERVICE: PacketService | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        settings = get_app_settings()
        db = SQLiteDatabase(settings.db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_record_store() -> SQLiteRecordStore:
    global _STORE
    if _STORE is None:
        _STORE = SQLiteRecordStore(get_database(), get_app_settings().attachments_dir)
    return _STORE


def get_authorizer() -> GrantAuthorizer:
    global _AUTHORIZER
    if _AUTHORIZER is None:
        _AUTHORIZER = GrantAuthorizer(get_record_store(), admin_actors=get_app_settings().admin_actors)
    return _AUTHORIZER


def get_action_provider() -> PacketActionProvider:
    return PacketActionProvider(get_authorizer())


def get_packet_service() -> PacketService:
    global _PACKET_SERVICE
    if _PACKET_SERVICE is None:
        store = get_record_store()
        _PACKET_SERVICE = PacketService(
            database=get_database(),
            store=store,
            authorizer=get_authorizer(),
            renderer=StoredDocumentRenderer(store),
            assembler=PacketAssembler.from_settings(get_app_settings()),
        )
    return _PACKET_SERVICE


def get_actor(x_actor: str | None = Header(default=None)) -> str | None:
    """Acting user, passed explicitly to every authorization check."""
    if x_actor is None:
        return None
    return x_actor.strip() or None


def reset_state() -> None:
    """Drop cached singletons (used by tests and config reloads)."""
    global _DB, _STORE, _AUTHORIZER, _PACKET_SERVICE
    if _DB is not None:
        _DB.close()
    _DB = None
    _STORE = None
    _AUTHORIZER = None
    _PACKET_SERVICE = None
    get_app_settings.cache_clear()
    get_settings.cache_clear()


__all__ = [
    "get_app_settings",
    "get_database",
    "get_record_store",
    "get_authorizer",
    "get_action_provider",
    "get_packet_service",
    "get_actor",
    "reset_state",
]
