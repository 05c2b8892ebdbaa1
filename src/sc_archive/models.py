"""Data model contracts for cross-module use."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sc_archive.records import Comment, Like, Playlist

Record = Like | Playlist | Comment


class CollectionKind(str, Enum):
    LIKES = "likes"
    PLAYLISTS = "playlists"
    COMMENTS = "comments"

    @property
    def record_tag(self) -> str:
        """Value of the ``kind`` field carried by records of this collection."""
        return _RECORD_TAGS[self]


_RECORD_TAGS = {
    CollectionKind.LIKES: "like",
    CollectionKind.PLAYLISTS: "playlist",
    CollectionKind.COMMENTS: "comment",
}


@dataclass(frozen=True)
class PageRequest:
    endpoint: str
    cursor: str | None
    page_size: int


@dataclass(frozen=True)
class PageResponse:
    items: tuple[Record, ...]
    next_cursor: str | None = None

    @property
    def is_last(self) -> bool:
        return self.next_cursor is None


@dataclass(frozen=True)
class Snapshot:
    collection_kind: CollectionKind
    records: tuple[Record, ...]
    fetched_at: datetime

    @property
    def ids(self) -> tuple[int, ...]:
        return tuple(record.id for record in self.records)
