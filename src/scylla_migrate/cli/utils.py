"""
CLI utility helpers: settings resolution, runner wiring and output.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from scylla_migrate.core.connection import open_store
from scylla_migrate.core.errors import InvalidConfigError, MigrateError
from scylla_migrate.core.migrations import DirectoryCatalog, MigrationRunner, MigrationState
from scylla_migrate.core.settings import MigrateSettings, get_settings

console = Console()
err_console = Console(stderr=True)


# ── Settings ─────────────────────────────────────────────────────────────


def resolve_settings(
    path: Path | None = None,
    url: str | None = None,
    stream: str | None = None,
) -> MigrateSettings:
    """Environment/.env settings with CLI options layered on top."""
    try:
        settings = get_settings()
    except ValidationError as e:
        fail(InvalidConfigError("environment", None, f"Invalid configuration: {e}"))

    overrides: dict[str, Any] = {}
    if path is not None:
        overrides["dir_path"] = path
    if url is not None:
        overrides["db_url"] = url
    if stream is not None:
        overrides["stream"] = stream
    if not overrides:
        return settings
    try:
        return MigrateSettings.model_validate({**settings.model_dump(), **overrides})
    except ValidationError as e:
        fail(InvalidConfigError("options", overrides, f"Invalid option: {e}"))


# ── Runner wiring ────────────────────────────────────────────────────────


@contextmanager
def open_runner(settings: MigrateSettings) -> Iterator[MigrationRunner]:
    """Open the store named in ``settings`` and yield a runner over the catalog."""
    with open_store(
        settings.db_url,
        stream=settings.stream,
        keyspace=settings.keyspace,
        table=settings.table,
        replication_factor=settings.replication_factor,
        connect_timeout=settings.connect_timeout,
    ) as store:
        yield MigrationRunner(DirectoryCatalog(settings.dir_path), store.ledger, store.runner)


# ── Output helpers ───────────────────────────────────────────────────────


def fail(error: MigrateError) -> NoReturn:
    """Print ``error`` to stderr and exit with status 1."""
    err_console.print(
        f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}",
        highlight=False,
    )
    context = error.context.to_dict()
    for key, value in context.items():
        err_console.print(f"  [cyan]{key}[/cyan]: {escape(str(value))}", highlight=False)
    raise typer.Exit(code=1)


def state_label(state: MigrationState) -> str:
    if state.applied:
        return "applied" if state.local else "applied (missing locally)"
    if state.status is not None:
        return "failed" if state.local else "failed (missing locally)"
    return "pending"


def output_states(states: list[MigrationState], *, as_json: bool = False) -> None:
    """Render ``status`` rows as a Rich table or JSON."""
    if as_json:
        payload = [
            {
                "id": s.id,
                "state": state_label(s),
                "applied": s.applied,
                "local": s.local,
                "status": s.status.value if s.status else None,
                "applied_at": s.applied_at.isoformat() if s.applied_at else None,
            }
            for s in states
        ]
        console.print_json(json.dumps(payload))
        return

    if not states:
        console.print("[dim]No migrations.[/dim]")
        return

    table = Table(title="Migrations", show_lines=False, pad_edge=False)
    table.add_column("id", overflow="fold")
    table.add_column("state")
    table.add_column("applied_at")
    for s in states:
        table.add_row(escape(s.id), state_label(s), s.applied_at.isoformat() if s.applied_at else "")
    console.print(table)
