"""JSON snapshot files and JSONL record streaming."""

from __future__ import annotations

from datetime import datetime
import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from sc_archive.errors import RenderError
from sc_archive.models import CollectionKind, Record, Snapshot
from sc_archive.records import RECORD_ADAPTER

SNAPSHOT_FORMAT_VERSION = 1


def record_to_dict(record: Record) -> dict[str, Any]:
    return record.model_dump(mode="json")


def render_record_jsonl(record: Record) -> str:
    return json.dumps(record_to_dict(record), sort_keys=True)


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "format_version": SNAPSHOT_FORMAT_VERSION,
        "collection_kind": snapshot.collection_kind.value,
        "fetched_at": snapshot.fetched_at.isoformat(),
        "record_count": len(snapshot.records),
        "records": [record_to_dict(record) for record in snapshot.records],
    }


def render_snapshot_json(snapshot: Snapshot) -> str:
    return json.dumps(snapshot_to_dict(snapshot), indent=2, sort_keys=True)


def write_snapshot(snapshot: Snapshot, output_dir: str | Path) -> Path:
    """Write ``<output_dir>/<kind>.json`` atomically and return its path."""
    root = Path(output_dir)
    path = root / f"{snapshot.collection_kind.value}.json"
    partial = root / f"{path.name}.partial"
    try:
        root.mkdir(parents=True, exist_ok=True)
        partial.write_text(render_snapshot_json(snapshot), encoding="utf-8")
        partial.replace(path)
    except OSError as exc:
        raise RenderError(f"Could not write snapshot to '{path}': {exc}") from exc
    return path


def load_snapshot(path: str | Path) -> Snapshot:
    """Read a snapshot file back, validating every record against its schema."""
    source = Path(path)
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RenderError(f"Could not read snapshot '{source}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise RenderError(f"Snapshot '{source}' is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise RenderError(f"Snapshot '{source}' must contain a JSON object.")
    if data.get("format_version") != SNAPSHOT_FORMAT_VERSION:
        raise RenderError(
            f"Snapshot '{source}' has format_version {data.get('format_version')!r}, "
            f"expected {SNAPSHOT_FORMAT_VERSION}."
        )

    try:
        kind = CollectionKind(data.get("collection_kind"))
        fetched_at = datetime.fromisoformat(data["fetched_at"])
        records = tuple(RECORD_ADAPTER.validate_python(item) for item in data.get("records", []))
    except (KeyError, TypeError, ValueError, ValidationError) as exc:
        raise RenderError(f"Snapshot '{source}' is malformed: {exc}") from exc

    return Snapshot(collection_kind=kind, records=records, fetched_at=fetched_at)
