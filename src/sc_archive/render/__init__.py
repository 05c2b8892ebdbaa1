"""Snapshot serialization."""

from sc_archive.render.jsonout import (
    SNAPSHOT_FORMAT_VERSION,
    load_snapshot,
    record_to_dict,
    render_record_jsonl,
    render_snapshot_json,
    snapshot_to_dict,
    write_snapshot,
)

__all__ = [
    "SNAPSHOT_FORMAT_VERSION",
    "load_snapshot",
    "record_to_dict",
    "render_record_jsonl",
    "render_snapshot_json",
    "snapshot_to_dict",
    "write_snapshot",
]
