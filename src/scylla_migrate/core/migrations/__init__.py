"""Migration reconciliation engine.

Applies ``up.cql`` scripts from one directory per migration in id order,
recording each attempt in a ledger table, and reverts them newest-first
with ``down.cql``.

Modules
-------
models     LocalMigrationUnit, LedgerRecord, MigrationStatus, RevertMode, reports
catalog    DirectoryCatalog / InMemoryCatalog
executor   split_statements() / execute_script()
ledger     CqlLedger / SqliteLedger / InMemoryLedger
runner     MigrationRunner with apply_pending() / revert() / status()
scaffold   generate_migration()
"""

from scylla_migrate.core.migrations.catalog import DirectoryCatalog, InMemoryCatalog
from scylla_migrate.core.migrations.executor import execute_script, split_statements
from scylla_migrate.core.migrations.ledger import CqlLedger, InMemoryLedger, SqliteLedger
from scylla_migrate.core.migrations.models import (
    ApplyReport,
    Direction,
    LedgerRecord,
    LocalMigrationUnit,
    MigrationState,
    MigrationStatus,
    RevertMode,
    RevertReport,
)
from scylla_migrate.core.migrations.runner import MigrationRunner
from scylla_migrate.core.migrations.scaffold import generate_migration

__all__ = [
    "ApplyReport",
    "CqlLedger",
    "Direction",
    "DirectoryCatalog",
    "InMemoryCatalog",
    "InMemoryLedger",
    "LedgerRecord",
    "LocalMigrationUnit",
    "MigrationRunner",
    "MigrationState",
    "MigrationStatus",
    "RevertMode",
    "RevertReport",
    "SqliteLedger",
    "execute_script",
    "generate_migration",
    "split_statements",
]
