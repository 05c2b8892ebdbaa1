"""Immutable credential context attached to every outgoing request."""

from __future__ import annotations

from dataclasses import dataclass, field
import re

from .errors import AuthError

AUTHORIZATION_SCHEME = "OAuth"
CLIENT_ID_PARAM = "client_id"

_TOKEN_RE = re.compile(r"^[A-Za-z0-9._~+/=-]+$")


@dataclass(frozen=True)
class CredentialContext:
    """OAuth token and client id for one archive run.

    Construct once and share read-only between crawlers; the instance never
    changes after validation.
    """

    oauth_token: str = field(repr=False)
    client_id: str

    def __post_init__(self) -> None:
        _validate_part(self.oauth_token, "oauth_token")
        _validate_part(self.client_id, "client_id")

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"{AUTHORIZATION_SCHEME} {self.oauth_token}"}

    def query_params(self) -> dict[str, str]:
        return {CLIENT_ID_PARAM: self.client_id}

    def describe(self) -> dict[str, str]:
        """Loggable summary that never includes the token."""
        return {"client_id": self.client_id, "oauth_token": _mask(self.oauth_token)}


def _validate_part(value: object, name: str) -> None:
    if not isinstance(value, str) or not value:
        raise AuthError(f"Credential '{name}' must be a non-empty string.")
    if not _TOKEN_RE.fullmatch(value):
        raise AuthError(
            f"Credential '{name}' is malformed: expected a single token without whitespace."
        )


def _mask(token: str) -> str:
    if len(token) <= 4:
        return "****"
    return f"{token[:2]}...{token[-2:]}"
