"""
Structural protocols for the reconciliation engine's collaborators.

The engine depends on shape, not implementation: anything with the right
methods can act as a catalog, a ledger or a statement runner. Tests plug in
the in-memory implementations; the CLI plugs in the directory catalog and a
CQL or SQLite store.

Architecture:
    ::

        protocols.py
        ├── StatementRunner   — run one raw statement against the target store
        ├── MigrationCatalog  — list/get/read local migration units
        └── MigrationLedger   — durable applied-migration bookkeeping

    Implementations:
        StatementRunner   → CqlStatementRunner, SqliteStatementRunner
        MigrationCatalog  → DirectoryCatalog, InMemoryCatalog
        MigrationLedger   → CqlLedger, SqliteLedger, InMemoryLedger
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from scylla_migrate.core.migrations.models import (
        Direction,
        LedgerRecord,
        LocalMigrationUnit,
        MigrationStatus,
    )


@runtime_checkable
class StatementRunner(Protocol):
    """Execute a single raw statement. Raises on failure. SYNC."""

    def run(self, statement: str) -> None:
        ...


@runtime_checkable
class MigrationCatalog(Protocol):
    """
    Source of local migration units.

    ``list()`` returns units in ascending id order. ``get()`` resolves a unit
    by id without checking that its scripts exist; ``read()`` loads one of
    its scripts and raises ``CatalogIOError`` when it cannot.
    """

    def list(self) -> list[LocalMigrationUnit]:
        ...

    def get(self, migration_id: str) -> LocalMigrationUnit:
        ...

    def read(self, unit: LocalMigrationUnit, direction: Direction) -> str:
        ...


@runtime_checkable
class MigrationLedger(Protocol):
    """
    Durable record of applied migrations for one stream.

    Each call is individually atomic at the storage layer; the engine never
    composes them into a transaction.
    """

    @property
    def stream(self) -> str:
        ...

    def ensure_schema(self) -> None:
        """Create the backing structure if absent. Idempotent."""
        ...

    def upsert(self, migration_id: str, status: MigrationStatus, at: datetime) -> None:
        ...

    def list_applied_ids(self) -> list[str]:
        """Ids whose record is ``success``, ascending."""
        ...

    def delete(self, migration_id: str) -> None:
        ...

    def records(self) -> list[LedgerRecord]:
        """Every record of the stream, including ``failed`` ones, ascending."""
        ...
