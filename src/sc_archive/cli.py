"""Typer CLI for sc-archive workflows."""

from __future__ import annotations

import json

import typer

from . import __version__
from .auth import CredentialContext
from .config import (
    RuntimeConfig,
    config_to_dict,
    init_default_config,
    load_runtime_config,
    resolve_config_path,
)
from .diagnostics.events import JsonlEventLogger
from .endpoints import resolve_user_id
from .errors import ArchiveError, AuthError, CollectError
from .logging import configure_logging, get_logger
from .models import CollectionKind
from .render.jsonout import render_record_jsonl
from .scheduler.archive import (
    ArchiveRunResult,
    build_crawler,
    build_limiter,
    build_retry_policy,
    new_run_id,
    run_archive,
)
from .transport.http import HttpPageFetcher

OAUTH_TOKEN_ENV = "SC_OAUTH_TOKEN"
CLIENT_ID_ENV = "SC_CLIENT_ID"
ALL_KINDS = "all"

app = typer.Typer(help="Read-only archiver for SoundCloud likes, playlists and comments.")
config_app = typer.Typer(help="Config commands.")

app.add_typer(config_app, name="config")

logger = get_logger(__name__)


@app.command("crawl")
def crawl(
    ctx: typer.Context,
    kinds: list[str] = typer.Argument(..., help="Collections to archive: likes|playlists|comments|all."),
    oauth_token: str | None = typer.Option(
        None, "--oauth-token", envvar=OAUTH_TOKEN_ENV, help="OAuth token sent as the Authorization header."
    ),
    client_id: str | None = typer.Option(
        None, "--client-id", envvar=CLIENT_ID_ENV, help="API client id sent with every request."
    ),
    path: str | None = typer.Option(
        None, "--path", help="Optional config TOML path (defaults to platform config dir)."
    ),
    output_dir: str | None = typer.Option(
        None, "--output-dir", help="Snapshot directory (defaults to configured app.output_dir)."
    ),
    user_id: int | None = typer.Option(
        None, "--user-id", min=1, help="Archive this user id instead of looking up the token's owner."
    ),
    stream: bool = typer.Option(
        False, "--stream", help="Print records as JSONL while crawling instead of writing snapshots."
    ),
    workers: int = typer.Option(1, "--workers", min=1, help="Collections crawled concurrently."),
    events: str | None = typer.Option(None, "--events", help="Append crawl events as JSONL to this file."),
) -> None:
    try:
        config = load_runtime_config(path, missing_ok=True)
        configure_logging(_resolve_debug(ctx) or config.app.debug)
        selected = _parse_kinds(kinds)
        credential = _build_credential(oauth_token, client_id)
        event_logger = JsonlEventLogger(events) if events else None

        with _build_fetcher(credential, config) as fetcher:
            resolved_user_id = user_id or resolve_user_id(fetcher, build_retry_policy(config.retry))
            logger.info(f"Archiving {', '.join(kind.value for kind in selected)} for user {resolved_user_id}")
            if stream:
                _stream_records(fetcher, selected, resolved_user_id, config=config, event_logger=event_logger)
                return
            result = run_archive(
                fetcher,
                selected,
                resolved_user_id,
                config=config,
                output_dir=output_dir or config.app.output_dir,
                max_workers=workers,
                event_logger=event_logger,
            )
    except ArchiveError as exc:
        typer.secho(f"Crawl failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    _report_run(result)
    if result.failed == len(result.outcomes):
        raise typer.Exit(2)
    if result.failed:
        raise typer.Exit(1)


@config_app.command("init")
def config_init(
    path: str | None = typer.Option(
        None, "--path", help="Optional config TOML path (defaults to platform config dir)."
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    try:
        written_path = init_default_config(path, force=force)
    except ArchiveError as exc:
        typer.secho(f"Config init failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    typer.echo(f"Wrote default config to {written_path}")


@config_app.command("show")
def config_show(
    path: str | None = typer.Option(
        None, "--path", help="Optional config TOML path (defaults to platform config dir)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Render resolved config as JSON."),
) -> None:
    resolved_path = resolve_config_path(path)
    try:
        config = load_runtime_config(path)
    except ArchiveError as exc:
        typer.secho(f"Config show failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    payload = {
        "path": str(resolved_path),
        "config": config_to_dict(config),
    }
    if as_json:
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    typer.echo(f"Resolved config path: {payload['path']}")
    typer.echo(f"API base URL: {config.api.base_url}")
    typer.echo(f"Page size: {config.api.page_size}")
    typer.echo(
        f"Rate limit: {config.rate_limit.max_requests} request(s) per {config.rate_limit.window_seconds:g}s"
    )
    typer.echo(f"Output dir: {config.app.output_dir}")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show sc-archive version and exit."),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
) -> None:
    ctx.obj = {"debug": debug}
    if version:
        typer.echo(__version__)
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _build_credential(oauth_token: str | None, client_id: str | None) -> CredentialContext:
    if not oauth_token:
        raise AuthError(f"Missing OAuth token. Pass --oauth-token or set {OAUTH_TOKEN_ENV}.")
    if not client_id:
        raise AuthError(f"Missing client id. Pass --client-id or set {CLIENT_ID_ENV}.")
    return CredentialContext(oauth_token=oauth_token, client_id=client_id)


def _build_fetcher(credential: CredentialContext, config: RuntimeConfig) -> HttpPageFetcher:
    return HttpPageFetcher(
        credential,
        base_url=config.api.base_url,
        timeout_seconds=config.api.request_timeout_seconds,
        cursor_param=config.api.cursor_param,
    )


def _parse_kinds(values: list[str]) -> tuple[CollectionKind, ...]:
    selected: list[CollectionKind] = []
    for raw in values:
        value = raw.strip().lower()
        if value == ALL_KINDS:
            candidates = list(CollectionKind)
        else:
            try:
                candidates = [CollectionKind(value)]
            except ValueError as exc:
                valid = "|".join([kind.value for kind in CollectionKind] + [ALL_KINDS])
                raise CollectError(f"Unknown collection '{raw}'. Expected one of {valid}.") from exc
        for kind in candidates:
            if kind not in selected:
                selected.append(kind)
    if not selected:
        raise CollectError("No collection kinds requested.")
    return tuple(selected)


def _stream_records(
    fetcher: HttpPageFetcher,
    kinds: tuple[CollectionKind, ...],
    user_id: int,
    *,
    config: RuntimeConfig,
    event_logger: JsonlEventLogger | None,
) -> None:
    limiter = build_limiter(config.rate_limit)
    run_id = new_run_id("stream")
    for kind in kinds:
        crawler = build_crawler(
            fetcher,
            kind,
            user_id,
            config=config,
            limiter=limiter,
            on_event=event_logger.sink(run_id=run_id, source_id=kind.value) if event_logger else None,
        )
        for record in crawler:
            typer.echo(render_record_jsonl(record))


def _report_run(result: ArchiveRunResult) -> None:
    for outcome in result.outcomes:
        if outcome.ok:
            typer.echo(
                f"{outcome.kind}: {outcome.record_count} record(s) over {outcome.pages} page(s)"
                + (f" -> {outcome.snapshot_path}" if outcome.snapshot_path else "")
            )
        else:
            typer.secho(
                f"{outcome.kind} failed ({outcome.error_type}): {outcome.error}",
                err=True,
                fg=typer.colors.RED,
            )


def _resolve_debug(ctx: typer.Context) -> bool:
    if isinstance(ctx.obj, dict):
        return bool(ctx.obj.get("debug"))
    return False
