"""Page decoding into typed records."""

from __future__ import annotations

from datetime import datetime, timezone
import json

import pytest

from sc_archive.errors import DecodeError
from sc_archive.extract import EntityDecoder, decode_playlist_detail
from sc_archive.models import CollectionKind
from sc_archive.records import Comment, Like, Playlist


def _like(track_id: int) -> dict[str, object]:
    return {
        "kind": "like",
        "created_at": "2024-05-01T10:00:00Z",
        "track": {"id": track_id, "title": f"Track {track_id}", "duration": 180000},
    }


def test_decode_likes_page_with_cursor() -> None:
    page = EntityDecoder().decode(
        {"collection": [_like(1), _like(2)], "next_href": "https://api/next?cursor=abc"},
        CollectionKind.LIKES,
    )

    assert [record.id for record in page.items] == [1, 2]
    assert all(isinstance(record, Like) for record in page.items)
    assert page.items[0].track.title == "Track 1"
    assert page.next_cursor == "https://api/next?cursor=abc"
    assert not page.is_last


@pytest.mark.parametrize("raw_cursor", [None, ""])
def test_decode_treats_null_or_empty_cursor_as_last_page(raw_cursor: str | None) -> None:
    page = EntityDecoder().decode({"collection": [], "next_href": raw_cursor}, CollectionKind.LIKES)

    assert page.items == ()
    assert page.next_cursor is None
    assert page.is_last


def test_decode_accepts_json_text_and_bytes() -> None:
    payload = {"collection": [_like(9)], "next_href": None}

    from_text = EntityDecoder().decode(json.dumps(payload), CollectionKind.LIKES)
    from_bytes = EntityDecoder().decode(json.dumps(payload).encode("utf-8"), CollectionKind.LIKES)

    assert from_text == from_bytes
    assert from_text.items[0].id == 9


def test_decode_playlists_and_comments() -> None:
    playlists = EntityDecoder().decode(
        {
            "collection": [
                {
                    "kind": "playlist",
                    "id": 77,
                    "created_at": "2023-01-02T03:04:05Z",
                    "title": "Road trip",
                    "track_count": 2,
                    "tracks": [{"id": 1}, {"id": 2}],
                }
            ]
        },
        CollectionKind.PLAYLISTS,
    )
    comments = EntityDecoder().decode(
        {
            "collection": [
                {
                    "kind": "comment",
                    "id": 5,
                    "created_at": "2023/01/02 03:04:05 +0000",
                    "body": "nice drop",
                    "track_id": 10,
                    "timestamp": 61000,
                }
            ]
        },
        CollectionKind.COMMENTS,
    )

    playlist = playlists.items[0]
    comment = comments.items[0]
    assert isinstance(playlist, Playlist)
    assert playlist.title == "Road trip"
    assert [track.id for track in playlist.tracks or []] == [1, 2]
    assert isinstance(comment, Comment)
    assert comment.body == "nice drop"
    assert comment.created_at == datetime(2023, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_decode_preserves_unknown_fields() -> None:
    raw = _like(3)
    raw["policy"] = "ALLOW"

    record = EntityDecoder().decode({"collection": [raw]}, CollectionKind.LIKES).items[0]

    assert record.model_dump()["policy"] == "ALLOW"


@pytest.mark.parametrize(
    ("raw_page", "message"),
    [
        ("{not json", "not valid JSON"),
        (b"\xff\xfe", "not valid UTF-8"),
        ("[1, 2]", "must be a JSON object"),
        ({"next_href": None}, "'collection' must be a list"),
        ({"collection": {}}, "'collection' must be a list"),
        ({"collection": [], "next_href": 5}, "'next_href' must be a string or null"),
        ({"collection": ["nope"]}, "must be an object"),
    ],
)
def test_decode_rejects_malformed_pages(raw_page: object, message: str) -> None:
    with pytest.raises(DecodeError, match=message):
        EntityDecoder().decode(raw_page, CollectionKind.LIKES)


def test_decode_fails_whole_page_on_one_bad_record() -> None:
    broken = {"kind": "like", "created_at": "2024-05-01T10:00:00Z"}

    with pytest.raises(DecodeError, match="item 1 failed validation"):
        EntityDecoder().decode({"collection": [_like(1), broken]}, CollectionKind.LIKES)


def test_decode_rejects_record_of_another_kind() -> None:
    with pytest.raises(DecodeError, match="expected 'playlist'"):
        EntityDecoder().decode({"collection": [_like(1)]}, CollectionKind.PLAYLISTS)


def test_decode_rejects_comment_missing_body() -> None:
    with pytest.raises(DecodeError, match="body"):
        EntityDecoder().decode(
            {"collection": [{"kind": "comment", "id": 1, "created_at": "2024-01-01T00:00:00Z"}]},
            CollectionKind.COMMENTS,
        )


def test_decode_playlist_detail_keeps_full_track_list() -> None:
    payload = {
        "kind": "playlist",
        "id": 10,
        "created_at": "2024-01-01T00:00:00Z",
        "title": "Mix",
        "track_count": 2,
        "tracks": [{"id": 100, "title": "Full"}, {"id": 101}],
    }

    playlist = decode_playlist_detail(json.dumps(payload).encode("utf-8"))

    assert isinstance(playlist, Playlist)
    assert [track.id for track in playlist.tracks] == [100, 101]
    assert playlist.tracks[0].title == "Full"


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ([], "must be a JSON object"),
        ({"kind": "like", "id": 1}, "playlist detail has kind 'like'"),
        ({"kind": "playlist", "id": 10, "created_at": "2024-01-01T00:00:00Z"}, "playlist detail failed validation"),
    ],
)
def test_decode_playlist_detail_rejects_malformed_payloads(payload: object, message: str) -> None:
    with pytest.raises(DecodeError, match=message):
        decode_playlist_detail(payload)
