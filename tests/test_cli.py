"""CLI behavior for crawl and config commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from sc_archive import __version__
from sc_archive.render.jsonout import load_snapshot

pytest.importorskip("typer")

from typer.testing import CliRunner

from sc_archive import cli
from sc_archive.cli import app

runner = CliRunner()

FAST_CONFIG = """[rate_limit]
max_requests = 100
window_seconds = 1.0

[retry]
max_attempts = 2
base_delay_seconds = 0
jitter_ratio = 0
"""

CREDENTIAL_ARGS = ["--oauth-token", "2-123456-token", "--client-id", "client123"]


def _page(collection: list[dict[str, Any]], next_href: str | None = None) -> dict[str, Any]:
    return {"collection": collection, "next_href": next_href}


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/me":
        return httpx.Response(200, json={"id": 7, "username": "someone"})
    if path == "/users/7/track_likes":
        if request.url.params.get("offset") == "2":
            return httpx.Response(200, json=_page([_like(3)]))
        return httpx.Response(
            200,
            json=_page([_like(1), _like(2)], "https://api.test/users/7/track_likes?offset=2"),
        )
    if path == "/users/7/playlists":
        return httpx.Response(
            200,
            json=_page([_playlist()]),
        )
    if path == "/playlists/10":
        return httpx.Response(200, json={**_playlist(), "tracks": [{"id": 100}, {"id": 101}]})
    if path == "/users/7/comments":
        return httpx.Response(403)
    return httpx.Response(404)


def _playlist() -> dict[str, Any]:
    return {"kind": "playlist", "id": 10, "created_at": "2024-01-01T00:00:00Z", "title": "Mix"}


def _like(track_id: int) -> dict[str, Any]:
    return {"kind": "like", "created_at": "2024-05-01T10:00:00Z", "track": {"id": track_id}}


@pytest.fixture
def mock_api(monkeypatch: pytest.MonkeyPatch) -> list[httpx.Request]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _handler(request)

    def build_fetcher(credential, config):
        return cli.HttpPageFetcher(
            credential,
            base_url="https://api.test/",
            transport=httpx.MockTransport(record),
        )

    monkeypatch.setattr(cli, "_build_fetcher", build_fetcher)
    monkeypatch.delenv("SC_OAUTH_TOKEN", raising=False)
    monkeypatch.delenv("SC_CLIENT_ID", raising=False)
    return seen


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(FAST_CONFIG, encoding="utf-8")
    return path


def test_cli_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "crawl" in result.output
    assert "config" in result.output
    assert "--debug" in result.output


def test_cli_version_flag_prints_package_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_config_init_and_show_json(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"

    init_result = runner.invoke(app, ["config", "init", "--path", str(path)])
    show_result = runner.invoke(app, ["config", "show", "--path", str(path), "--json"])

    assert init_result.exit_code == 0
    assert "Wrote default config" in init_result.output
    assert show_result.exit_code == 0
    payload = json.loads(show_result.output)
    assert payload["path"] == str(path)
    assert payload["config"]["api"]["page_size"] == 200


def test_config_show_reports_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "show", "--path", str(tmp_path / "missing.toml")])

    assert result.exit_code == 2
    assert "Config show failed" in result.output


def test_crawl_writes_snapshots_and_reports_partial_failure(
    mock_api: list[httpx.Request], config_path: Path, tmp_path: Path
) -> None:
    out_dir = tmp_path / "snapshots"

    result = runner.invoke(
        app,
        ["crawl", "all", "--path", str(config_path), "--output-dir", str(out_dir), *CREDENTIAL_ARGS],
    )

    assert result.exit_code == 1
    assert "likes: 3 record(s) over 2 page(s)" in result.output
    assert "playlists: 1 record(s)" in result.output
    assert "comments failed (AuthError)" in result.output
    assert load_snapshot(out_dir / "likes.json").ids == (1, 2, 3)
    playlists = load_snapshot(out_dir / "playlists.json")
    assert playlists.ids == (10,)
    assert [track.id for track in playlists.records[0].tracks] == [100, 101]
    assert not (out_dir / "comments.json").exists()

    assert mock_api[0].url.path == "/me"
    assert all(request.headers["Authorization"] == "OAuth 2-123456-token" for request in mock_api)
    assert all(request.url.params["client_id"] == "client123" for request in mock_api)


def test_crawl_exits_2_when_every_kind_fails(
    mock_api: list[httpx.Request], config_path: Path, tmp_path: Path
) -> None:
    result = runner.invoke(
        app,
        ["crawl", "comments", "--path", str(config_path), "--output-dir", str(tmp_path), *CREDENTIAL_ARGS],
    )

    assert result.exit_code == 2


def test_crawl_streams_records_as_jsonl(mock_api: list[httpx.Request], config_path: Path) -> None:
    result = runner.invoke(
        app,
        ["crawl", "likes", "--stream", "--user-id", "7", "--path", str(config_path), *CREDENTIAL_ARGS],
    )

    assert result.exit_code == 0
    records = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
    assert [record["id"] for record in records] == [1, 2, 3]
    assert [request.url.params.get("offset") for request in mock_api] == [None, "2"]
    assert all(request.url.path != "/me" for request in mock_api)


def test_crawl_reads_credentials_from_environment(
    mock_api: list[httpx.Request], config_path: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("SC_OAUTH_TOKEN", "env-token-value")
    monkeypatch.setenv("SC_CLIENT_ID", "env-client")

    result = runner.invoke(
        app,
        ["crawl", "playlists", "--path", str(config_path), "--output-dir", str(tmp_path)],
    )

    assert result.exit_code == 0
    assert mock_api[-1].headers["Authorization"] == "OAuth env-token-value"
    assert mock_api[-1].url.params["client_id"] == "env-client"


def test_crawl_appends_events_file(mock_api: list[httpx.Request], config_path: Path, tmp_path: Path) -> None:
    events_path = tmp_path / "events.jsonl"

    result = runner.invoke(
        app,
        [
            "crawl",
            "likes",
            "--path",
            str(config_path),
            "--output-dir",
            str(tmp_path / "out"),
            "--events",
            str(events_path),
            *CREDENTIAL_ARGS,
        ],
    )

    assert result.exit_code == 0
    events = [json.loads(line) for line in events_path.read_text(encoding="utf-8").splitlines()]
    assert events[-1]["event_type"] == "crawl_done"
    assert "client123" not in events_path.read_text(encoding="utf-8")


def test_crawl_requires_credentials(mock_api: list[httpx.Request], config_path: Path) -> None:
    result = runner.invoke(app, ["crawl", "likes", "--path", str(config_path)])

    assert result.exit_code == 2
    assert "Missing OAuth token" in result.output
    assert mock_api == []


def test_crawl_rejects_unknown_collection(mock_api: list[httpx.Request], config_path: Path) -> None:
    result = runner.invoke(app, ["crawl", "reposts", "--path", str(config_path), *CREDENTIAL_ARGS])

    assert result.exit_code == 2
    assert "Unknown collection 'reposts'" in result.output
