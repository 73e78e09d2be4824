"""
Shared pytest fixtures for scylladb-migrate tests.

This module provides:
- Settings and logging isolation between tests
- A migrations directory builder
- In-memory catalog/ledger/statement-runner doubles for the engine
"""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest

from scylla_migrate.core.logging import clear_context, configure_logging
from scylla_migrate.core.migrations import InMemoryCatalog, InMemoryLedger
from scylla_migrate.core.settings import reset_settings

# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Fresh settings, no SCYLLADB_MIGRATE_* leakage, no stray .env."""
    for key in ("DIR_PATH", "DB_URL", "STREAM", "KEYSPACE", "TABLE", "LOG_LEVEL", "LOG_JSON"):
        monkeypatch.delenv(f"SCYLLADB_MIGRATE_{key}", raising=False)
    monkeypatch.chdir(tmp_path)
    reset_settings()
    configure_logging(level="DEBUG", json_format=False)
    yield
    clear_context()
    reset_settings()


# =============================================================================
# Doubles
# =============================================================================


class RecordingRunner:
    """Statement runner that records statements and fails on demand."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.executed: list[str] = []
        self.fail_on = fail_on

    def run(self, statement: str) -> None:
        if self.fail_on is not None and self.fail_on in statement:
            raise RuntimeError(f"boom: {statement}")
        self.executed.append(statement)


@pytest.fixture
def statements() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def catalog() -> InMemoryCatalog:
    return InMemoryCatalog(
        {
            "2024-01-01-000000_a": ("CREATE TABLE ks.a (id int PRIMARY KEY);", "DROP TABLE ks.a;"),
            "2024-01-02-000000_b": ("CREATE TABLE ks.b (id int PRIMARY KEY);", "DROP TABLE ks.b;"),
            "2024-01-03-000000_c": ("CREATE TABLE ks.c (id int PRIMARY KEY);", "DROP TABLE ks.c;"),
        }
    )


@pytest.fixture
def fixed_time() -> datetime:
    return datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


# =============================================================================
# Filesystem
# =============================================================================


@pytest.fixture
def write_migration(tmp_path: Path) -> Callable[..., Path]:
    """Create ``<root>/<id>/{up,down}.cql``; pass ``None`` to skip a script."""

    def _write(
        migration_id: str,
        up: str | None = "",
        down: str | None = "",
        root: Path | None = None,
    ) -> Path:
        unit_dir = (root or tmp_path / "migrations") / migration_id
        unit_dir.mkdir(parents=True)
        if up is not None:
            (unit_dir / "up.cql").write_text(textwrap.dedent(up), encoding="utf-8")
        if down is not None:
            (unit_dir / "down.cql").write_text(textwrap.dedent(down), encoding="utf-8")
        return unit_dir

    return _write
