"""Ledger clients: durable bookkeeping of applied migrations.

All backends store the same shape, keyed by ``(stream, id)``:

    type    TEXT       stream identifier (partition key)
    id      TEXT       migration id (clustering key, ascending)
    status  TEXT       "success" | "failed"
    run_at  TIMESTAMP  start of the pass that last attempted the migration

The column names match ledgers written by earlier releases of the tool, so
an existing ``scylladb_migrate_ks.migrations`` table is picked up as is.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any

from scylla_migrate.core.errors import LedgerWriteError, StoreConnectionError
from scylla_migrate.core.logging import get_logger
from scylla_migrate.core.migrations.models import LedgerRecord, MigrationStatus
from scylla_migrate.core.timestamps import as_utc, from_iso8601, to_iso8601

logger = get_logger(__name__)

DEFAULT_STREAM = "migrate"
DEFAULT_KEYSPACE = "scylladb_migrate_ks"
DEFAULT_TABLE = "migrations"


def _applied_ids(records: list[LedgerRecord]) -> list[str]:
    return [r.id for r in records if r.applied]


def _parse_status(value: str) -> MigrationStatus:
    # Anything other than "success" keeps the migration pending
    try:
        return MigrationStatus(value)
    except ValueError:
        logger.warning("ledger.unknown_status", status=value)
        return MigrationStatus.FAILED


# =============================================================================
# IN-MEMORY
# =============================================================================


class InMemoryLedger:
    """Ledger held in a dict. ``writes`` logs every upsert/delete in order."""

    def __init__(self, stream: str = DEFAULT_STREAM) -> None:
        self._stream = stream
        self._records: dict[str, LedgerRecord] = {}
        self.writes: list[tuple[str, str]] = []
        self.schema_ready = False

    @property
    def stream(self) -> str:
        return self._stream

    def ensure_schema(self) -> None:
        self.schema_ready = True

    def upsert(self, migration_id: str, status: MigrationStatus, at: datetime) -> None:
        self._records[migration_id] = LedgerRecord(
            stream=self._stream, id=migration_id, status=status, applied_at=at
        )
        self.writes.append(("upsert", migration_id))

    def list_applied_ids(self) -> list[str]:
        return _applied_ids(self.records())

    def delete(self, migration_id: str) -> None:
        self._records.pop(migration_id, None)
        self.writes.append(("delete", migration_id))

    def records(self) -> list[LedgerRecord]:
        return [self._records[key] for key in sorted(self._records)]

    def get(self, migration_id: str) -> LedgerRecord | None:
        return self._records.get(migration_id)


# =============================================================================
# SQLITE
# =============================================================================


class SqliteLedger:
    """Ledger in a SQLite table, for local development and tests.

    Parameters
    ----------
    conn
        An open ``sqlite3.Connection``. Every write is committed on its own.
    table
        Ledger table name.
    stream
        Stream identifier written to the ``type`` column.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        table: str = DEFAULT_TABLE,
        stream: str = DEFAULT_STREAM,
    ) -> None:
        self._conn = conn
        self._table = table
        self._stream = stream

    @property
    def stream(self) -> str:
        return self._stream

    def ensure_schema(self) -> None:
        try:
            self._conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    type TEXT NOT NULL,
                    id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    run_at TEXT NOT NULL,
                    PRIMARY KEY (type, id)
                )
                """
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreConnectionError(
                f"Cannot create ledger table {self._table}: {e}", cause=e
            ).with_context(stream=self._stream) from e

    def upsert(self, migration_id: str, status: MigrationStatus, at: datetime) -> None:
        try:
            self._conn.execute(
                f"INSERT OR REPLACE INTO {self._table} (type, id, status, run_at) "
                "VALUES (?, ?, ?, ?)",
                (self._stream, migration_id, status.value, to_iso8601(at)),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise LedgerWriteError(
                f"Cannot record {migration_id} as {status.value}: {e}", cause=e
            ).with_context(migration_id=migration_id, stream=self._stream) from e

    def list_applied_ids(self) -> list[str]:
        return _applied_ids(self.records())

    def delete(self, migration_id: str) -> None:
        try:
            self._conn.execute(
                f"DELETE FROM {self._table} WHERE type = ? AND id = ?",
                (self._stream, migration_id),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise LedgerWriteError(
                f"Cannot delete ledger record for {migration_id}: {e}", cause=e
            ).with_context(migration_id=migration_id, stream=self._stream) from e

    def records(self) -> list[LedgerRecord]:
        try:
            cursor = self._conn.execute(
                f"SELECT id, status, run_at FROM {self._table} WHERE type = ? ORDER BY id",
                (self._stream,),
            )
            rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise StoreConnectionError(
                f"Cannot read ledger table {self._table}: {e}", cause=e
            ).with_context(stream=self._stream) from e
        return [
            LedgerRecord(
                stream=self._stream,
                id=row[0],
                status=_parse_status(row[1]),
                applied_at=from_iso8601(row[2]),
            )
            for row in rows
        ]


# =============================================================================
# CQL (ScyllaDB / Cassandra)
# =============================================================================


class CqlLedger:
    """Ledger in a ScyllaDB/Cassandra table.

    ``ensure_schema()`` creates the keyspace with ``NetworkTopologyStrategy``
    and the given replication factor, then the ledger table. The stream is
    the partition key, so listing one stream is a single-partition read
    ordered by migration id.
    """

    def __init__(
        self,
        session: Any,
        *,
        keyspace: str = DEFAULT_KEYSPACE,
        table: str = DEFAULT_TABLE,
        stream: str = DEFAULT_STREAM,
        replication_factor: int = 1,
    ) -> None:
        self._session = session
        self._keyspace = keyspace
        self._table = table
        self._stream = stream
        self._replication_factor = replication_factor

    @property
    def stream(self) -> str:
        return self._stream

    @property
    def qualified_table(self) -> str:
        return f"{self._keyspace}.{self._table}"

    def ensure_schema(self) -> None:
        try:
            self._session.execute(
                f"""
                CREATE KEYSPACE IF NOT EXISTS {self._keyspace}
                WITH REPLICATION = {{'class' : 'NetworkTopologyStrategy', 'replication_factor' : {self._replication_factor}}}
                """
            )
            self._session.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.qualified_table}
                (
                    type TEXT,
                    id TEXT,
                    status TEXT,
                    run_at TIMESTAMP,

                    PRIMARY KEY (type, id)
                )
                """
            )
        except Exception as e:
            raise StoreConnectionError(
                f"Cannot provision ledger {self.qualified_table}: {e}", cause=e
            ).with_context(stream=self._stream) from e
        logger.debug("ledger.schema_ready", table=self.qualified_table)

    def upsert(self, migration_id: str, status: MigrationStatus, at: datetime) -> None:
        try:
            self._session.execute(
                f"""
                INSERT INTO {self.qualified_table} (type, id, status, run_at)
                VALUES (%s, %s, %s, %s)
                """,
                (self._stream, migration_id, status.value, at),
            )
        except Exception as e:
            raise LedgerWriteError(
                f"Cannot record {migration_id} as {status.value}: {e}", cause=e
            ).with_context(migration_id=migration_id, stream=self._stream) from e

    def list_applied_ids(self) -> list[str]:
        return _applied_ids(self.records())

    def delete(self, migration_id: str) -> None:
        try:
            self._session.execute(
                f"""
                DELETE FROM {self.qualified_table}
                WHERE type = %s
                AND id = %s
                """,
                (self._stream, migration_id),
            )
        except Exception as e:
            raise LedgerWriteError(
                f"Cannot delete ledger record for {migration_id}: {e}", cause=e
            ).with_context(migration_id=migration_id, stream=self._stream) from e

    def records(self) -> list[LedgerRecord]:
        try:
            rows = self._session.execute(
                f"""
                SELECT id, status, run_at
                FROM {self.qualified_table}
                WHERE type = %s
                ORDER BY id
                """,
                (self._stream,),
            )
        except Exception as e:
            raise StoreConnectionError(
                f"Cannot read ledger {self.qualified_table}: {e}", cause=e
            ).with_context(stream=self._stream) from e
        return [
            LedgerRecord(
                stream=self._stream,
                id=row.id,
                status=_parse_status(row.status),
                applied_at=as_utc(row.run_at),
            )
            for row in rows
        ]
