"""Shared configuration contracts and validation helpers for sc-archive."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from pathlib import Path
import tomllib
from typing import Any

from platformdirs import user_config_dir

from .errors import ConfigError
from .transport.http import DEFAULT_BASE_URL

CONFIG_PATH_ENV = "SC_ARCHIVE_CONFIG"
DEFAULT_CONFIG_FILENAME = "config.toml"

DEFAULT_CONFIG_TEMPLATE = """[app]
debug = false
output_dir = "snapshots"

[api]
base_url = "https://api-v2.soundcloud.com/"
page_size = 200
request_timeout_seconds = 10.0
# Fetch playlists/{id} for each playlist to archive its full track list.
expand_playlists = true
# Leave unset to follow next_href URLs verbatim.
# cursor_param = "cursor"

[rate_limit]
max_requests = 1
window_seconds = 2.0
max_wait_seconds = 60.0

[retry]
max_attempts = 5
base_delay_seconds = 2.0
max_delay_seconds = 60.0
jitter_ratio = 0.1
"""


@dataclass(frozen=True)
class AppConfig:
    debug: bool = False
    output_dir: str = "snapshots"


@dataclass(frozen=True)
class ApiConfig:
    base_url: str = DEFAULT_BASE_URL
    page_size: int = 200
    request_timeout_seconds: float = 10.0
    cursor_param: str | None = None
    expand_playlists: bool = True


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int = 1
    window_seconds: float = 2.0
    max_wait_seconds: float = 60.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 5
    base_delay_seconds: float = 2.0
    max_delay_seconds: float = 60.0
    jitter_ratio: float = 0.1


@dataclass(frozen=True)
class RuntimeConfig:
    app: AppConfig = field(default_factory=AppConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)


def default_config() -> RuntimeConfig:
    return RuntimeConfig()


def default_config_toml() -> str:
    return DEFAULT_CONFIG_TEMPLATE


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    """Pick the config file: explicit path, then ``SC_ARCHIVE_CONFIG``, then the platform config dir."""
    candidate = config_path or os.getenv(CONFIG_PATH_ENV)
    if candidate:
        return Path(candidate).expanduser()
    return Path(user_config_dir("sc-archive", appauthor=False)) / DEFAULT_CONFIG_FILENAME


def init_default_config(config_path: str | Path | None = None, force: bool = False) -> Path:
    path = resolve_config_path(config_path)
    _reject_directory(path)
    if path.exists() and not force:
        raise ConfigError(f"Config file already exists at '{path}'. Re-run with --force to overwrite.")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(default_config_toml(), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not write config file at '{path}': {exc}.") from exc
    return path


def load_runtime_config(config_path: str | Path | None = None, *, missing_ok: bool = False) -> RuntimeConfig:
    """Load config from TOML; with ``missing_ok`` an absent file yields defaults."""
    path = resolve_config_path(config_path)
    _reject_directory(path)
    if not path.exists():
        if missing_ok:
            return default_config()
        raise ConfigError(
            f"Config file not found at '{path}'. Run `sc-archive config init --path \"{path}\"` to generate defaults."
        )

    try:
        with path.open("rb") as stream:
            raw = tomllib.load(stream)
    except OSError as exc:
        raise ConfigError(f"Could not read config file '{path}': {exc}.") from exc
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(
            f"Config file '{path}' contains invalid TOML: {exc}. "
            "Fix the syntax or regenerate defaults with `sc-archive config init --force`."
        ) from exc
    return _parse_runtime_config(raw)


def config_to_dict(config: RuntimeConfig) -> dict[str, Any]:
    return asdict(config)


def _reject_directory(path: Path) -> None:
    if path.is_dir():
        raise ConfigError(
            f"Config path '{path}' is a directory; pass a file path such as '{path / DEFAULT_CONFIG_FILENAME}'."
        )


def _parse_runtime_config(data: dict[str, Any]) -> RuntimeConfig:
    app = _Section.of(data, "app")
    api = _Section.of(data, "api")
    rate = _Section.of(data, "rate_limit")
    retry = _Section.of(data, "retry")

    base_url = api.string("base_url", DEFAULT_BASE_URL)
    if not base_url.startswith(("http://", "https://")):
        raise ConfigError("Invalid value for 'api.base_url': expected an http(s) URL.")

    jitter_ratio = retry.number("jitter_ratio", 0.1, allow_zero=True)
    if jitter_ratio > 1:
        raise ConfigError("Invalid value for 'retry.jitter_ratio': expected a number between 0 and 1.")

    return RuntimeConfig(
        app=AppConfig(
            debug=app.flag("debug", False),
            output_dir=app.string("output_dir", "snapshots"),
        ),
        api=ApiConfig(
            base_url=base_url if base_url.endswith("/") else f"{base_url}/",
            page_size=api.positive_int("page_size", 200),
            request_timeout_seconds=api.number("request_timeout_seconds", 10.0),
            cursor_param=api.optional_string("cursor_param"),
            expand_playlists=api.flag("expand_playlists", True),
        ),
        rate_limit=RateLimitConfig(
            max_requests=rate.positive_int("max_requests", 1),
            window_seconds=rate.number("window_seconds", 2.0),
            max_wait_seconds=rate.number("max_wait_seconds", 60.0),
        ),
        retry=RetryConfig(
            max_attempts=retry.positive_int("max_attempts", 5),
            base_delay_seconds=retry.number("base_delay_seconds", 2.0, allow_zero=True),
            max_delay_seconds=retry.number("max_delay_seconds", 60.0),
            jitter_ratio=jitter_ratio,
        ),
    )


@dataclass(frozen=True)
class _Section:
    """One TOML table plus its name, for readable validation errors."""

    name: str
    values: dict[str, Any]

    @classmethod
    def of(cls, data: dict[str, Any], name: str) -> "_Section":
        table = data.get(name, {})
        if not isinstance(table, dict):
            raise ConfigError(f"Invalid [{name}] table: expected table, got {type(table).__name__}.")
        return cls(name, table)

    def _invalid(self, key: str, expected: str) -> ConfigError:
        return ConfigError(f"Invalid value for '{self.name}.{key}': expected {expected}.")

    def string(self, key: str, default: str) -> str:
        value = self.values.get(key, default)
        if not isinstance(value, str) or not value.strip():
            raise self._invalid(key, "non-empty string")
        return value

    def optional_string(self, key: str) -> str | None:
        if key not in self.values:
            return None
        value = self.values[key]
        if not isinstance(value, str) or not value.strip():
            raise self._invalid(key, "non-empty string")
        return value

    def positive_int(self, key: str, default: int) -> int:
        value = self.values.get(key, default)
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise self._invalid(key, "positive integer")
        return value

    def number(self, key: str, default: float, *, allow_zero: bool = False) -> float:
        value = self.values.get(key, default)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise self._invalid(key, "a number")
        if value < 0 or (value == 0 and not allow_zero):
            raise self._invalid(key, "non-negative number" if allow_zero else "positive number")
        return float(value)

    def flag(self, key: str, default: bool) -> bool:
        value = self.values.get(key, default)
        if not isinstance(value, bool):
            raise self._invalid(key, "boolean true/false")
        return value
