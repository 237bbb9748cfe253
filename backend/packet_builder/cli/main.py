"""CLI entrypoint for Packet Builder."""

from __future__ import annotations

import json
import mimetypes
import os
import re
from pathlib import Path
from typing import List, Optional

import requests
import typer

app = typer.Typer(name="pktb", help="Packet Builder command-line interface")
projects_app = typer.Typer(name="projects")
records_app = typer.Typer(name="records")
app.add_typer(projects_app, name="projects")
app.add_typer(records_app, name="records")

DEFAULT_HOST = "http://127.0.0.1:5180"
_FILENAME_RE = re.compile(r'filename="?([^";]+)"?')


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("PKTB_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(
    method: str,
    path: str,
    host: Optional[str] = None,
    actor: Optional[str] = None,
    **kwargs,
) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    headers = dict(kwargs.pop("headers", None) or {})
    if actor:
        headers["X-Actor"] = actor
    resp = requests.request(method, url, timeout=300, headers=headers, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _save_download(resp: requests.Response, out: Optional[Path]) -> Path:
    if out is None:
        match = _FILENAME_RE.search(resp.headers.get("Content-Disposition", ""))
        out = Path(match.group(1) if match else "packet.zip")
    out = out.expanduser()
    out.write_bytes(resp.content)
    typer.echo(f"Wrote {len(resp.content)} bytes to {out}")
    return out


@app.command()
def packet(
    record_id: int = typer.Argument(..., help="Record ID"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Where to write the archive"),
    actor: Optional[str] = typer.Option(None, "--actor", envvar="PKTB_ACTOR", help="Acting user"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Download the packet for one record."""
    resp = _request("POST", f"/records/{record_id}/packet", host=host, actor=actor)
    _save_download(resp, out)


@app.command()
def batch(
    record_ids: List[int] = typer.Argument(..., help="Record IDs, in archive order"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Where to write the archive"),
    actor: Optional[str] = typer.Option(None, "--actor", envvar="PKTB_ACTOR", help="Acting user"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Download one archive holding the packets of several records."""
    resp = _request("POST", "/packets", host=host, actor=actor, json={"ids": record_ids})
    _save_download(resp, out)


@app.command()
def attach(
    record_id: int = typer.Argument(..., help="Record ID"),
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to attach"),
    filename: Optional[str] = typer.Option(None, "--name", help="Name to store instead of the file name"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Attach a file to a record."""
    content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    resp = _request(
        "POST",
        f"/records/{record_id}/attachments",
        host=host,
        params={"filename": filename or path.name},
        data=path.read_bytes(),
        headers={"Content-Type": content_type},
    )
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def grant(
    actor_name: str = typer.Argument(..., metavar="ACTOR", help="User to grant"),
    project_id: str = typer.Argument(..., help="Project ID"),
    permissions: List[str] = typer.Argument(..., help="view_records and/or create_packet"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Grant permissions on a project."""
    payload = {"actor": actor_name, "project_id": project_id, "permissions": permissions}
    resp = _request("POST", "/grants", host=host, json=payload)
    typer.echo(json.dumps(resp.json(), indent=2))


@projects_app.command("add")
def add_project(
    project_id: str = typer.Argument(..., help="Project identifier"),
    name: Optional[str] = typer.Option(None, "--name", help="Display name"),
    public: bool = typer.Option(False, "--public/--private", help="Visible to everyone"),
    packets: bool = typer.Option(True, "--packets/--no-packets", help="Allow packet creation"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Create or update a project."""
    payload = {"id": project_id, "name": name or project_id, "is_public": public, "packets_enabled": packets}
    resp = _request("POST", "/projects", host=host, json=payload)
    typer.echo(json.dumps(resp.json(), indent=2))


@records_app.command("list")
def list_records(
    project: Optional[str] = typer.Option(None, "--project", help="Only records of this project"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List records."""
    params = {"project_id": project} if project else None
    resp = _request("GET", "/records", host=host, params=params)
    typer.echo(json.dumps(resp.json(), indent=2))


@records_app.command("add")
def add_record(
    project_id: str = typer.Argument(..., help="Project ID"),
    subject: str = typer.Argument(..., help="Record subject"),
    document: Optional[Path] = typer.Option(None, "--document", exists=True, dir_okay=False, help="Rendered PDF"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Register a record, optionally uploading its rendered document."""
    resp = _request("POST", "/records", host=host, json={"project_id": project_id, "subject": subject})
    record = resp.json()
    if document is not None:
        resp = _request(
            "PUT",
            f"/records/{record['id']}/document",
            host=host,
            data=document.read_bytes(),
            headers={"Content-Type": "application/pdf"},
        )
        record = resp.json()
    typer.echo(json.dumps(record, indent=2))


if __name__ == "__main__":
    app()
