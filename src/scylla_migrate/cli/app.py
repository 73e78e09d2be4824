"""
Root Typer application for the scylladb-migrate CLI.

    scylladb-migrate generate <name> [-p DIR]
    scylladb-migrate up              [-p DIR] [-u URL]
    scylladb-migrate down [--all]    [-p DIR] [-u URL]
    scylladb-migrate status [--json] [-p DIR] [-u URL]

``-p`` falls back to ``SCYLLADB_MIGRATE_DIR_PATH`` (then ``.``) and ``-u``
to ``SCYLLADB_MIGRATE_DB_URL``.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape
from typer import Typer

from scylla_migrate import __version__
from scylla_migrate.cli.utils import (
    console,
    fail,
    open_runner,
    output_states,
    resolve_settings,
)
from scylla_migrate.core.errors import MigrateError
from scylla_migrate.core.logging import configure_logging
from scylla_migrate.core.migrations import RevertMode, generate_migration

app = Typer(
    name="scylladb-migrate",
    help="Versioned CQL schema migrations for ScyllaDB and Cassandra.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

PATH_HELP = "Migrations directory. Can also be passed using SCYLLADB_MIGRATE_DIR_PATH."
URL_HELP = "Database URL (host[:port] or sqlite:///file). Can also be passed using SCYLLADB_MIGRATE_DB_URL."
STREAM_HELP = "Ledger stream; independent migration histories can share one table."


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("scylladb-migrate")
        except Exception:
            v = __version__
        typer.echo(f"scylladb-migrate {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
    json_logs: bool | None = typer.Option(None, "--json-logs/--console-logs", help="Log format."),
) -> None:
    """scylladb-migrate: apply and revert versioned CQL migrations."""
    settings = resolve_settings()
    try:
        configure_logging(
            level=log_level or settings.log_level,
            json_format=json_logs if json_logs is not None else settings.log_json,
        )
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from e


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def generate(
    name: str = typer.Argument(..., help="Human-readable migration name, e.g. create_users."),
    path: Path | None = typer.Option(None, "--path", "-p", help=PATH_HELP),
) -> None:
    """Create <timestamp>_<name>/ with empty up.cql and down.cql."""
    settings = resolve_settings(path=path)
    try:
        unit = generate_migration(settings.dir_path, name)
    except MigrateError as e:
        fail(e)
    console.print(f"Created migration [bold]{escape(unit.id)}[/bold]", highlight=False)
    console.print(f"  {escape(str(unit.up_script_path))}", highlight=False)
    console.print(f"  {escape(str(unit.down_script_path))}", highlight=False)


@app.command()
def up(
    path: Path | None = typer.Option(None, "--path", "-p", help=PATH_HELP),
    url: str | None = typer.Option(None, "--url", "-u", help=URL_HELP),
    stream: str | None = typer.Option(None, "--stream", help=STREAM_HELP),
) -> None:
    """Apply every pending migration, oldest first."""
    settings = resolve_settings(path=path, url=url, stream=stream)
    try:
        with open_runner(settings) as runner:
            report = runner.apply_pending()
    except MigrateError as e:
        fail(e)

    if report.noop:
        console.print("no migrations to apply")
        return
    for migration_id in report.applied:
        console.print(f"[green]applied[/green] {escape(migration_id)}", highlight=False)


@app.command()
def down(
    all_: bool = typer.Option(False, "--all", help="Revert every applied migration, newest first."),
    path: Path | None = typer.Option(None, "--path", "-p", help=PATH_HELP),
    url: str | None = typer.Option(None, "--url", "-u", help=URL_HELP),
    stream: str | None = typer.Option(None, "--stream", help=STREAM_HELP),
) -> None:
    """Revert the latest applied migration (or all with --all)."""
    settings = resolve_settings(path=path, url=url, stream=stream)
    mode = RevertMode.ALL if all_ else RevertMode.LATEST
    try:
        with open_runner(settings) as runner:
            report = runner.revert(mode)
    except MigrateError as e:
        fail(e)

    if report.noop:
        console.print("no migrations to revert")
        return
    for migration_id in report.reverted:
        console.print(f"[yellow]reverted[/yellow] {escape(migration_id)}", highlight=False)


@app.command()
def status(
    path: Path | None = typer.Option(None, "--path", "-p", help=PATH_HELP),
    url: str | None = typer.Option(None, "--url", "-u", help=URL_HELP),
    stream: str | None = typer.Option(None, "--stream", help=STREAM_HELP),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show which migrations are applied, pending or failed."""
    settings = resolve_settings(path=path, url=url, stream=stream)
    try:
        with open_runner(settings) as runner:
            states = runner.status()
    except MigrateError as e:
        fail(e)
    output_states(states, as_json=json_out)
