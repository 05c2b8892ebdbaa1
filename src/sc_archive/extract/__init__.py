"""Decoder contracts."""

from .base import PageDecoder
from .pages import (
    COLLECTION_FIELD,
    NEXT_CURSOR_FIELD,
    RECORD_MODELS,
    EntityDecoder,
    decode_playlist_detail,
)

__all__ = [
    "COLLECTION_FIELD",
    "EntityDecoder",
    "NEXT_CURSOR_FIELD",
    "PageDecoder",
    "RECORD_MODELS",
    "decode_playlist_detail",
]
