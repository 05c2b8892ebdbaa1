"""Typed record schemas for archived collection items.

Every record carries an integer ``id`` and a ``created_at`` timestamp plus the
fields specific to its kind. Records form a closed tagged union keyed on the
``kind`` field, which the remote API already includes in its payloads.

Unknown payload fields are kept on the model (``extra="allow"``) so that an
archived record holds everything the server returned, not only the fields
declared here.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

_LEGACY_TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S %z"


def parse_timestamp(value: Any) -> Any:
    """Accept the legacy ``YYYY/MM/DD HH:MM:SS +0000`` form next to ISO 8601."""
    if isinstance(value, str) and "/" in value[:10]:
        try:
            return datetime.strptime(value.strip(), _LEGACY_TIMESTAMP_FORMAT)
        except ValueError:
            return value
    return value


class User(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    id: int
    username: str | None = None
    permalink_url: str | None = None


class Track(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    id: int
    title: str | None = None
    permalink_url: str | None = None
    duration: int | None = None
    genre: str | None = None
    user: User | None = None


class _RecordBase(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    id: int
    created_at: datetime

    @field_validator("created_at", mode="before")
    @classmethod
    def _accept_legacy_timestamp(cls, value: Any) -> Any:
        return parse_timestamp(value)


class Like(_RecordBase):
    kind: Literal["like"] = "like"
    track: Track

    @model_validator(mode="before")
    @classmethod
    def _id_from_track(cls, data: Any) -> Any:
        # Like payloads have no id of their own; the liked track identifies them.
        if isinstance(data, Mapping) and "id" not in data:
            track = data.get("track")
            if isinstance(track, Mapping) and "id" in track:
                return {**data, "id": track["id"]}
        return data


class Playlist(_RecordBase):
    kind: Literal["playlist"] = "playlist"
    title: str
    track_count: int | None = None
    permalink_url: str | None = None
    duration: int | None = None
    user: User | None = None
    tracks: list[Track] | None = None


class Comment(_RecordBase):
    kind: Literal["comment"] = "comment"
    body: str
    track_id: int | None = None
    timestamp: int | None = None
    track: Track | None = None
    user: User | None = None


Record = Annotated[Union[Like, Playlist, Comment], Field(discriminator="kind")]

RECORD_ADAPTER: TypeAdapter[Like | Playlist | Comment] = TypeAdapter(Record)
