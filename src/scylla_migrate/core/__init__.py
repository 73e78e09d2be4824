"""scylladb-migrate core: engine, store access and ambient primitives.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (MigrateError and kinds)
        protocols.py       StatementRunner, MigrationCatalog, MigrationLedger
        timestamps.py      UTC helpers, migration id timestamp format

    Layer 2 -- Configuration & Logging
        settings.py        MigrateSettings (pydantic-settings, SCYLLADB_MIGRATE_*)
        logging.py         structlog configuration + LogContext

    Layer 3 -- Store access
        connection.py      open_store(): CQL or SQLite runner + ledger from a URL

    Layer 4 -- Reconciliation
        migrations/        catalog, executor, ledger, runner, scaffold
"""
