"""
scylladb-migrate - versioned CQL schema migrations for ScyllaDB and Cassandra.

Each migration is a directory named ``<timestamp>_<name>`` with an
``up.cql`` and a ``down.cql`` script. ``up`` applies the ones the ledger
does not list as applied, oldest first; ``down`` reverts the newest (or all).
"""

__version__ = "0.2.0"

from scylla_migrate.core.migrations import (  # noqa: E402
    DirectoryCatalog,
    MigrationRunner,
    RevertMode,
    generate_migration,
)

__all__ = [
    "DirectoryCatalog",
    "MigrationRunner",
    "RevertMode",
    "generate_migration",
    "__version__",
]
