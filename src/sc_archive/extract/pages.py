"""Page payload decoding into typed records and the next cursor."""

from __future__ import annotations

from collections.abc import Mapping
import json
from typing import Any

from pydantic import BaseModel, ValidationError

from sc_archive.errors import DecodeError
from sc_archive.models import CollectionKind, PageResponse, Record
from sc_archive.records import Comment, Like, Playlist

COLLECTION_FIELD = "collection"
NEXT_CURSOR_FIELD = "next_href"

RECORD_MODELS: dict[CollectionKind, type[BaseModel]] = {
    CollectionKind.LIKES: Like,
    CollectionKind.PLAYLISTS: Playlist,
    CollectionKind.COMMENTS: Comment,
}


class EntityDecoder:
    """Decode ``{"collection": [...], "next_href": ...}`` pages for one collection kind.

    Any record that fails its schema fails the whole page. A page is either
    decoded completely or not at all.
    """

    def decode(self, raw_page: Any, kind: CollectionKind) -> PageResponse:
        payload = _coerce_payload(raw_page)

        raw_items = payload.get(COLLECTION_FIELD)
        if not isinstance(raw_items, list):
            raise DecodeError(
                f"Page payload field '{COLLECTION_FIELD}' must be a list, "
                f"got {type(raw_items).__name__}."
            )

        model = RECORD_MODELS[kind]
        items: list[Record] = []
        for index, raw_item in enumerate(raw_items):
            items.append(_decode_record(model, raw_item, kind=kind, label=f"{kind.value} item {index}"))

        return PageResponse(items=tuple(items), next_cursor=_coerce_cursor(payload.get(NEXT_CURSOR_FIELD)))


def decode_playlist_detail(raw_payload: Any) -> Playlist:
    """Decode a single ``playlists/{id}`` payload, tracks included."""
    payload = _coerce_payload(raw_payload)
    return _decode_record(Playlist, payload, kind=CollectionKind.PLAYLISTS, label="playlist detail")


def _coerce_payload(raw_page: Any) -> Mapping[str, Any]:
    if isinstance(raw_page, (bytes, bytearray)):
        try:
            raw_page = raw_page.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Page payload is not valid UTF-8: {exc}") from exc

    if isinstance(raw_page, str):
        try:
            raw_page = json.loads(raw_page)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"Page payload is not valid JSON: {exc}") from exc

    if not isinstance(raw_page, Mapping):
        raise DecodeError(f"Page payload must be a JSON object, got {type(raw_page).__name__}.")
    return raw_page


def _coerce_cursor(raw_cursor: Any) -> str | None:
    if raw_cursor is None:
        return None
    if not isinstance(raw_cursor, str):
        raise DecodeError(
            f"Page payload field '{NEXT_CURSOR_FIELD}' must be a string or null, "
            f"got {type(raw_cursor).__name__}."
        )
    return raw_cursor if raw_cursor.strip() else None


def _decode_record(model: type[BaseModel], raw_item: Any, *, kind: CollectionKind, label: str) -> Any:
    if not isinstance(raw_item, Mapping):
        raise DecodeError(f"{label} must be an object, got {type(raw_item).__name__}.")

    tag = raw_item.get("kind")
    if tag is not None and tag != kind.record_tag:
        raise DecodeError(f"{label} has kind '{tag}', expected '{kind.record_tag}'.")

    try:
        return model.model_validate(raw_item)
    except ValidationError as exc:
        raise DecodeError(f"{label} failed validation: {_summarize(exc)}") from exc


def _summarize(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors()[:3]:
        location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    remaining = exc.error_count() - len(parts)
    if remaining > 0:
        parts.append(f"(+{remaining} more)")
    return "; ".join(parts)
