"""Decoder interfaces."""

from __future__ import annotations

from typing import Any, Protocol

from sc_archive.models import CollectionKind, PageResponse


class PageDecoder(Protocol):
    def decode(self, raw_page: Any, kind: CollectionKind) -> PageResponse:
        """Parse one raw page payload into typed records plus the next cursor."""
