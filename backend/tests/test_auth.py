"""Tests for grant-based authorization and packet actions."""

from __future__ import annotations

from pathlib import Path

import pytest

from packet_builder.db.sqlite import SQLiteDatabase
from packet_builder.services.actions import PacketActionProvider
from packet_builder.services.auth import GrantAuthorizer
from packet_builder.services.store import SQLiteRecordStore


@pytest.fixture
def store(tmp_path: Path) -> SQLiteRecordStore:
    db = SQLiteDatabase(tmp_path / "auth.db")
    db.ensure_schema()
    store = SQLiteRecordStore(db, tmp_path / "files")
    store.create_project("ops", "Operations")
    store.create_project("pub", "Public", is_public=True)
    store.create_project("off", "Packets disabled", packets_enabled=False)
    yield store
    db.close()


@pytest.fixture
def authorizer(store: SQLiteRecordStore) -> GrantAuthorizer:
    return GrantAuthorizer(store, admin_actors=["admin"])


def test_private_project_needs_grants(store: SQLiteRecordStore, authorizer: GrantAuthorizer) -> None:
    record = store.create_record("ops", "Printer on fire")
    assert not authorizer.is_authorized("carol", record, "view_records")
    assert not authorizer.is_authorized(None, record, "view_records")

    store.grant("carol", "ops", ["view_records"])
    assert authorizer.is_authorized("carol", record, "view_records")
    assert not authorizer.is_authorized("carol", record, "create_packet")

    store.grant("carol", "ops", ["create_packet"])
    assert authorizer.is_authorized("carol", record, "create_packet")


def test_create_packet_requires_view(store: SQLiteRecordStore, authorizer: GrantAuthorizer) -> None:
    record = store.create_record("ops", "Badge reader")
    store.grant("dave", "ops", ["create_packet"])
    assert not authorizer.is_authorized("dave", record, "create_packet")


def test_public_project_is_viewable_by_anyone(store: SQLiteRecordStore, authorizer: GrantAuthorizer) -> None:
    record = store.create_record("pub", "Announcement")
    assert authorizer.is_authorized(None, record, "view_records")
    assert not authorizer.is_authorized(None, record, "create_packet")


def test_admin_still_needs_packets_enabled(store: SQLiteRecordStore, authorizer: GrantAuthorizer) -> None:
    enabled = store.create_record("ops", "Enabled")
    disabled = store.create_record("off", "Disabled")
    assert authorizer.is_authorized("admin", enabled, "create_packet")
    assert authorizer.is_authorized("admin", disabled, "view_records")
    assert not authorizer.is_authorized("admin", disabled, "create_packet")


def test_actions_single_and_multi(store: SQLiteRecordStore, authorizer: GrantAuthorizer) -> None:
    provider = PacketActionProvider(authorizer)
    first = store.create_record("ops", "One")
    second = store.create_record("ops", "Two")

    [single] = provider.actions_for("admin", [first])
    assert single.name == "create_packet"
    assert single.href == f"/records/{first.id}/packet"
    assert single.confirm is None

    [multi] = provider.actions_for("admin", [first, second])
    assert multi.name == "create_multi_packet"
    assert multi.record_ids == [first.id, second.id]
    assert "2 records" in multi.confirm


def test_actions_hidden_without_permission(store: SQLiteRecordStore, authorizer: GrantAuthorizer) -> None:
    provider = PacketActionProvider(authorizer)
    first = store.create_record("ops", "One")
    second = store.create_record("ops", "Two")
    assert provider.actions_for("eve", [first, second]) == []
    assert provider.actions_for("admin", []) == []
