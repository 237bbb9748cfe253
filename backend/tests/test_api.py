"""API integration tests."""

from __future__ import annotations

import re

import pytest
from fastapi.testclient import TestClient

from conftest import zip_contents, zip_names
from packet_builder.api.dependencies import get_app_settings
from packet_builder.app import app

PDF = b"%PDF-1.4\nfake pdf content"


@pytest.fixture
def client() -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


def _seed_record(client: TestClient, project: str = "ops", subject: str = "Ticket", document: bytes | None = PDF) -> int:
    client.post("/projects", json={"id": project, "name": project.title()})
    record = client.post("/records", json={"project_id": project, "subject": subject}).json()
    if document is not None:
        resp = client.put(f"/records/{record['id']}/document", content=document)
        assert resp.status_code == 200
    return record["id"]


def _attach(client: TestClient, record_id: int, filename: str, data: bytes) -> dict:
    resp = client.post(
        f"/records/{record_id}/attachments",
        params={"filename": filename},
        content=data,
        headers={"Content-Type": "text/plain"},
    )
    assert resp.status_code == 200
    return resp.json()


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_single_packet_download(client: TestClient) -> None:
    record_id = _seed_record(client)
    _attach(client, record_id, "testfile.txt", b"hello")
    _attach(client, record_id, "testfile.txt", b"hello again")

    resp = client.post(f"/records/{record_id}/packet", headers={"X-Actor": "admin"})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/zip"
    disposition = resp.headers["content-disposition"]
    assert disposition.split(";")[0] == "attachment"
    assert f"packet_{record_id}.zip" in disposition
    assert resp.content.startswith(b"PK")
    assert zip_names(resp.content) == [f"ticket_{record_id}.pdf", "testfile.txt", "testfile(1).txt"]


def test_single_packet_skips_missing_file(client: TestClient) -> None:
    record_id = _seed_record(client)
    missing = _attach(client, record_id, "missing.txt", b"soon gone")
    _attach(client, record_id, "kept.txt", b"still here")
    settings = get_app_settings()
    (settings.attachments_dir / str(record_id) / missing["id"]).unlink()

    resp = client.post(f"/records/{record_id}/packet", headers={"X-Actor": "admin"})
    assert resp.status_code == 200
    assert zip_names(resp.content) == [f"ticket_{record_id}.pdf", "kept.txt"]


def test_single_packet_permissions(client: TestClient) -> None:
    record_id = _seed_record(client)
    assert client.post(f"/records/{record_id}/packet").status_code == 403
    assert client.post(f"/records/{record_id}/packet", headers={"X-Actor": "carol"}).status_code == 403

    client.post("/grants", json={"actor": "carol", "project_id": "ops", "permissions": ["view_records", "create_packet"]})
    assert client.post(f"/records/{record_id}/packet", headers={"X-Actor": "carol"}).status_code == 200


def test_single_packet_unknown_record(client: TestClient) -> None:
    resp = client.post("/records/999999/packet", headers={"X-Actor": "admin"})
    assert resp.status_code == 404
    assert resp.json()["detail"]["error"] == "RecordNotFoundError"


def test_single_packet_without_document(client: TestClient) -> None:
    record_id = _seed_record(client, document=None)
    resp = client.post(f"/records/{record_id}/packet", headers={"X-Actor": "admin"})
    assert resp.status_code == 500
    assert resp.json()["detail"]["error"] == "RenderError"

    jobs = client.get("/packet-jobs").json()
    assert jobs[0]["status"] == "failed"


def test_multi_packet_download(client: TestClient) -> None:
    ids = [_seed_record(client, subject=f"Ticket {n}") for n in range(3)]
    _attach(client, ids[0], "notes.txt", b"first")
    _attach(client, ids[1], "notes.txt", b"second")

    resp = client.post("/packets", json={"ids": ids}, headers={"X-Actor": "admin"})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/zip"
    assert re.search(r"multi_packet_\d{8}_\d{6}\.zip", resp.headers["content-disposition"])

    contents = zip_contents(resp.content)
    for record_id in ids:
        assert contents[f"packet_{record_id}/ticket_{record_id}.pdf"] == PDF
    assert contents[f"packet_{ids[0]}/notes.txt"] == b"first"
    assert contents[f"packet_{ids[1]}/notes.txt"] == b"second"


def test_multi_packet_fails_whole_batch_on_broken_attachment(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    first = _seed_record(client, subject="Fine")
    second = _seed_record(client, subject="Broken")
    _attach(client, first, "ok.txt", b"ok")
    broken = _attach(client, second, "bad.txt", b"bad")

    from packet_builder.models.entities import StoredAttachment

    original_content = StoredAttachment.content

    def flaky_content(self):
        if self.id == broken["id"]:
            raise OSError("I/O error")
        return original_content(self)

    monkeypatch.setattr(StoredAttachment, "content", flaky_content)

    resp = client.post("/packets", json={"ids": [first, second]}, headers={"X-Actor": "admin"})
    assert resp.status_code == 500
    detail = resp.json()["detail"]
    assert detail["error"] == "AttachmentProcessingError"
    assert detail["record_id"] == second
    assert detail["attachment_id"] == broken["id"]
    assert not resp.content.startswith(b"PK")


def test_multi_packet_requires_ids(client: TestClient) -> None:
    for body in ({"ids": []}, {}):
        resp = client.post("/packets", json=body, headers={"X-Actor": "admin"})
        assert resp.status_code == 400
        assert "No records selected" in resp.json()["detail"]["message"]


def test_multi_packet_hides_forbidden_and_missing_records(client: TestClient) -> None:
    ids = [_seed_record(client), _seed_record(client)]
    assert client.post("/packets", json={"ids": [999999]}, headers={"X-Actor": "admin"}).status_code == 404
    assert client.post("/packets", json={"ids": ids}, headers={"X-Actor": "nobody"}).status_code == 404


def test_packet_actions(client: TestClient) -> None:
    ids = [_seed_record(client), _seed_record(client)]
    single = client.get("/packets/actions", params={"ids": ids[:1]}, headers={"X-Actor": "admin"}).json()
    assert [action["name"] for action in single["actions"]] == ["create_packet"]

    multi = client.get("/packets/actions", params={"ids": ids}, headers={"X-Actor": "admin"}).json()
    assert multi["actions"][0]["confirm"]

    hidden = client.get("/packets/actions", params={"ids": ids}, headers={"X-Actor": "nobody"}).json()
    assert hidden["actions"] == []


def test_jobs_and_metrics_record_packets(client: TestClient) -> None:
    record_id = _seed_record(client)
    client.post(f"/records/{record_id}/packet", headers={"X-Actor": "admin"})

    jobs = client.get("/packet-jobs").json()
    assert jobs[0]["mode"] == "single"
    assert jobs[0]["status"] == "completed"
    assert jobs[0]["record_ids"] == [record_id]
    assert jobs[0]["stats"]["entries"] == 1

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "pktb_packets_total" in metrics.text
