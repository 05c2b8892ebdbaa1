"""Collection endpoint table and authenticated-user lookup."""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from .errors import CollectError, DecodeError
from .models import CollectionKind
from .retry import RetryPolicy

ENDPOINT_TEMPLATES: dict[CollectionKind, str] = {
    CollectionKind.LIKES: "users/{user_id}/track_likes",
    CollectionKind.PLAYLISTS: "users/{user_id}/playlists",
    CollectionKind.COMMENTS: "users/{user_id}/comments",
}

PLAYLIST_DETAIL_TEMPLATE = "playlists/{playlist_id}"


class ProfileFetcher(Protocol):
    def fetch_me(self) -> Any:
        """Return the authenticated user's profile response."""


def endpoint_for(kind: CollectionKind, user_id: int) -> str:
    if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id <= 0:
        raise CollectError(f"user_id must be a positive integer, got {user_id!r}.")
    return ENDPOINT_TEMPLATES[CollectionKind(kind)].format(user_id=user_id)


def playlist_detail_endpoint(playlist_id: int) -> str:
    return PLAYLIST_DETAIL_TEMPLATE.format(playlist_id=playlist_id)


def resolve_user_id(fetcher: ProfileFetcher, retry_policy: RetryPolicy | None = None) -> int:
    """Look up the id of the user the credentials belong to.

    One attempt only; any non-success outcome is raised as its classified error.
    """
    policy = retry_policy or RetryPolicy()
    try:
        outcome: Any = fetcher.fetch_me()
    except httpx.RequestError as exc:
        outcome = exc

    classification = policy.classify(outcome)
    if not classification.ok:
        raise classification.error from (outcome if isinstance(outcome, BaseException) else None)

    payload = _profile_payload(outcome)
    user_id = payload.get("id")
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise DecodeError(f"Profile payload has no integer 'id' (got {user_id!r}).")
    return user_id


def _profile_payload(outcome: Any) -> dict[str, Any]:
    if isinstance(outcome, httpx.Response):
        try:
            outcome = outcome.json()
        except ValueError as exc:
            raise DecodeError(f"Profile response is not valid JSON: {exc}") from exc
    if not isinstance(outcome, dict):
        raise DecodeError(f"Profile payload must be a JSON object, got {type(outcome).__name__}.")
    return outcome
