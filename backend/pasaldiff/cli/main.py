"""CLI entrypoint for pasal-diff."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

import requests
import typer

app = typer.Typer(name="pasaldiff", help="pasal-diff command-line interface")
documents_app = typer.Typer(name="documents", help="Manage registered documents")
app.add_typer(documents_app, name="documents")

DEFAULT_HOST = "http://127.0.0.1:8000"
PAGE_BREAK = "\f"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("PASALDIFF_HOST")
    if env_host:
        return env_host.rstrip("/")
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    url = f"{_resolve_host(host)}{path}"
    try:
        resp = requests.request(method, url, timeout=120, **kwargs)
    except requests.RequestException as exc:
        typer.echo(f"Request failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=2 if resp.status_code == 409 else 1)
    return resp


def _echo(resp: requests.Response) -> None:
    typer.echo(json.dumps(resp.json(), indent=2, ensure_ascii=False))


def read_pages(path: Path) -> list[str]:
    """Read a UTF-8 text file whose pages are separated by form feeds."""
    text = path.expanduser().read_text(encoding="utf-8")
    return text.split(PAGE_BREAK)


@documents_app.command("add")
def add_document(
    title: str = typer.Argument(..., help="Document title"),
    kind: str = typer.Option("uploaded", "--kind", help="law, regulation, draft or uploaded"),
    jurisdiction: Optional[str] = typer.Option(None, "--jurisdiction", help="Issuing jurisdiction"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Register a document."""
    payload = {"title": title, "kind": kind, "jurisdiction": jurisdiction}
    _echo(_request("POST", "/documents", host=host, json=payload))


@documents_app.command("show")
def show_document(
    document_id: str = typer.Argument(..., help="Document identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show a document and its versions."""
    _echo(_request("GET", f"/documents/{document_id}", host=host))


@app.command()
def ingest(
    document_id: str = typer.Argument(..., help="Document identifier"),
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Text file, pages split by form feeds"),
    label: str = typer.Option(..., "--label", help="Version label, e.g. 'RUU 2024'"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Segment, embed and store a new version of a document."""
    payload = {"version_label": label, "pages": read_pages(path)}
    _echo(_request("POST", f"/documents/{document_id}/versions", host=host, json=payload))


@app.command()
def segment(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Text file, pages split by form feeds"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Segment a text file without storing it."""
    _echo(_request("POST", "/segment", host=host, json={"pages": read_pages(path)}))


@app.command()
def citations(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Text file to scan"),
    dedupe: bool = typer.Option(False, "--dedupe/--no-dedupe", help="Collapse repeated citations"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List formal legal citations found in a file."""
    text = path.expanduser().read_text(encoding="utf-8")
    _echo(_request("POST", "/citations", host=host, json={"text": text, "dedupe": dedupe}))


@app.command()
def diff(
    version_from: str = typer.Argument(..., help="Older version identifier"),
    version_to: str = typer.Argument(..., help="Newer version identifier"),
    no_cosmetic: bool = typer.Option(False, "--no-cosmetic", help="Hide cosmetic changes"),
    words: bool = typer.Option(True, "--words/--no-words", help="Include word-level changes"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Compare two completed versions."""
    payload = {
        "version_from": version_from,
        "version_to": version_to,
        "options": {"include_cosmetic": not no_cosmetic, "word_changes": words},
    }
    _echo(_request("POST", "/diff", host=host, json=payload))


@app.command()
def conflicts(
    version_id: str = typer.Argument(..., help="Version identifier"),
    threshold: Optional[float] = typer.Option(None, "--threshold", min=0.0, max=1.0, help="Similarity threshold"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Check a version against the corpus of enacted law."""
    payload: dict[str, object] = {"version_id": version_id}
    if threshold is not None:
        payload["threshold"] = threshold
    _echo(_request("POST", "/conflicts", host=host, json=payload))


if __name__ == "__main__":
    app()
