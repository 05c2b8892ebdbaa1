"""Credential redaction for logs and crawl events."""

from __future__ import annotations

from collections.abc import Mapping
import re
from typing import Any

REDACTED = "<redacted>"

# Mapping keys whose values are dropped wholesale, matched case-insensitively.
SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "client_id",
        "client_secret",
        "oauth_token",
        "access_token",
        "refresh_token",
        "password",
    }
)

_HEADER_PATTERN = re.compile(r"(?i)(authorization\s*[:=]\s*)(?:(?:oauth|bearer)\s+)?[^\s,;\"']+")
_SCHEME_PATTERN = re.compile(r"(?i)\b(oauth|bearer)\s+[A-Za-z0-9._~+/=-]{6,}")
_QUERY_PATTERN = re.compile(
    r"(?i)\b(oauth_token|access_token|client_id|client_secret)=[^&\s\"'#]+"
)


def redact_text(value: str) -> str:
    """Mask tokens and client ids in free-form text such as cursor URLs or error messages."""
    value = _HEADER_PATTERN.sub(rf"\1{REDACTED}", value)
    value = _SCHEME_PATTERN.sub(rf"\1 {REDACTED}", value)
    return _QUERY_PATTERN.sub(rf"\1={REDACTED}", value)


def redact_value(value: Any) -> Any:
    """Return a copy of ``value`` safe to log: sensitive keys blanked, strings scrubbed."""
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED if _is_sensitive_key(str(key)) else redact_value(child)
            for key, child in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [redact_value(child) for child in value]
    return value


def _is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return lowered in SENSITIVE_KEYS or lowered.endswith("_token")
