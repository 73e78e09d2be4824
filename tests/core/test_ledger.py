"""Tests for the ledger backends.

Covers:
- InMemoryLedger bookkeeping and write log
- SqliteLedger round trips, stream isolation and error mapping
- CqlLedger statements against a mocked driver session
"""

import sqlite3
from datetime import UTC, datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from scylla_migrate.core.errors import LedgerWriteError, StoreConnectionError
from scylla_migrate.core.migrations import (
    CqlLedger,
    InMemoryLedger,
    MigrationStatus,
    SqliteLedger,
)
from scylla_migrate.core.protocols import MigrationLedger

# =============================================================================
# In-memory
# =============================================================================


class TestInMemoryLedger:
    def test_applied_ids_exclude_failed(self, ledger, fixed_time):
        ledger.upsert("b", MigrationStatus.SUCCESS, fixed_time)
        ledger.upsert("a", MigrationStatus.SUCCESS, fixed_time)
        ledger.upsert("c", MigrationStatus.FAILED, fixed_time)
        assert ledger.list_applied_ids() == ["a", "b"]

    def test_upsert_replaces(self, ledger, fixed_time):
        ledger.upsert("a", MigrationStatus.FAILED, fixed_time)
        ledger.upsert("a", MigrationStatus.SUCCESS, fixed_time)
        assert ledger.get("a").status is MigrationStatus.SUCCESS
        assert len(ledger.records()) == 1

    def test_delete_absent_is_noop(self, ledger):
        ledger.delete("missing")
        assert ledger.records() == []

    def test_write_log(self, ledger, fixed_time):
        ledger.upsert("a", MigrationStatus.SUCCESS, fixed_time)
        ledger.delete("a")
        assert ledger.writes == [("upsert", "a"), ("delete", "a")]

    def test_ensure_schema(self, ledger):
        ledger.ensure_schema()
        assert ledger.schema_ready

    def test_satisfies_protocol(self, ledger):
        assert isinstance(ledger, MigrationLedger)


# =============================================================================
# SQLite
# =============================================================================


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    yield connection
    connection.close()


@pytest.fixture
def sqlite_ledger(conn):
    ledger = SqliteLedger(conn)
    ledger.ensure_schema()
    return ledger


class TestSqliteLedger:
    def test_ensure_schema_idempotent(self, sqlite_ledger):
        sqlite_ledger.ensure_schema()
        assert sqlite_ledger.records() == []

    def test_round_trip(self, sqlite_ledger, fixed_time):
        sqlite_ledger.upsert("2024-01-01-000000_a", MigrationStatus.SUCCESS, fixed_time)

        [record] = sqlite_ledger.records()
        assert record.id == "2024-01-01-000000_a"
        assert record.stream == "migrate"
        assert record.status is MigrationStatus.SUCCESS
        assert record.applied_at == fixed_time

    def test_applied_ids_sorted_and_success_only(self, sqlite_ledger, fixed_time):
        sqlite_ledger.upsert("c", MigrationStatus.SUCCESS, fixed_time)
        sqlite_ledger.upsert("a", MigrationStatus.SUCCESS, fixed_time)
        sqlite_ledger.upsert("b", MigrationStatus.FAILED, fixed_time)
        assert sqlite_ledger.list_applied_ids() == ["a", "c"]

    def test_failed_then_success_replaces(self, sqlite_ledger, fixed_time):
        sqlite_ledger.upsert("a", MigrationStatus.FAILED, fixed_time)
        later = fixed_time + timedelta(minutes=5)
        sqlite_ledger.upsert("a", MigrationStatus.SUCCESS, later)

        [record] = sqlite_ledger.records()
        assert record.applied
        assert record.applied_at == later

    def test_delete(self, sqlite_ledger, fixed_time):
        sqlite_ledger.upsert("a", MigrationStatus.SUCCESS, fixed_time)
        sqlite_ledger.delete("a")
        sqlite_ledger.delete("a")
        assert sqlite_ledger.list_applied_ids() == []

    def test_streams_are_isolated(self, conn, sqlite_ledger, fixed_time):
        other = SqliteLedger(conn, stream="analytics")
        sqlite_ledger.upsert("a", MigrationStatus.SUCCESS, fixed_time)
        other.upsert("z", MigrationStatus.SUCCESS, fixed_time)

        assert sqlite_ledger.list_applied_ids() == ["a"]
        assert other.list_applied_ids() == ["z"]

    def test_unknown_status_reads_as_failed(self, conn, sqlite_ledger, fixed_time):
        conn.execute(
            "INSERT INTO migrations (type, id, status, run_at) VALUES (?, ?, ?, ?)",
            ("migrate", "a", "partial", fixed_time.isoformat()),
        )
        [record] = sqlite_ledger.records()
        assert record.status is MigrationStatus.FAILED
        assert sqlite_ledger.list_applied_ids() == []

    def test_write_without_table_raises(self, conn, fixed_time):
        ledger = SqliteLedger(conn, table="not_created")
        with pytest.raises(LedgerWriteError) as exc_info:
            ledger.upsert("a", MigrationStatus.SUCCESS, fixed_time)
        assert exc_info.value.context.migration_id == "a"

    def test_delete_without_table_raises(self, conn):
        with pytest.raises(LedgerWriteError):
            SqliteLedger(conn, table="not_created").delete("a")

    def test_read_without_table_raises(self, conn):
        with pytest.raises(StoreConnectionError):
            SqliteLedger(conn, table="not_created").list_applied_ids()


# =============================================================================
# CQL
# =============================================================================


@pytest.fixture
def session():
    return MagicMock()


class TestCqlLedger:
    def test_ensure_schema_creates_keyspace_and_table(self, session):
        ledger = CqlLedger(session, replication_factor=3)
        ledger.ensure_schema()

        keyspace_cql = session.execute.call_args_list[0].args[0]
        table_cql = session.execute.call_args_list[1].args[0]
        assert "CREATE KEYSPACE IF NOT EXISTS scylladb_migrate_ks" in keyspace_cql
        assert "NetworkTopologyStrategy" in keyspace_cql
        assert "'replication_factor' : 3" in keyspace_cql
        assert "CREATE TABLE IF NOT EXISTS scylladb_migrate_ks.migrations" in table_cql
        assert "PRIMARY KEY (type, id)" in table_cql

    def test_ensure_schema_failure(self, session):
        session.execute.side_effect = RuntimeError("no host available")
        with pytest.raises(StoreConnectionError):
            CqlLedger(session).ensure_schema()

    def test_upsert_binds_stream_and_status(self, session, fixed_time):
        CqlLedger(session, stream="s1").upsert("a", MigrationStatus.FAILED, fixed_time)

        query, params = session.execute.call_args.args
        assert "INSERT INTO scylladb_migrate_ks.migrations" in query
        assert params == ("s1", "a", "failed", fixed_time)

    def test_upsert_failure(self, session, fixed_time):
        session.execute.side_effect = RuntimeError("timeout")
        with pytest.raises(LedgerWriteError):
            CqlLedger(session).upsert("a", MigrationStatus.SUCCESS, fixed_time)

    def test_delete(self, session):
        CqlLedger(session, keyspace="ks", table="history").delete("a")

        query, params = session.execute.call_args.args
        assert "DELETE FROM ks.history" in query
        assert params == ("migrate", "a")

    def test_delete_failure(self, session):
        session.execute.side_effect = RuntimeError("timeout")
        with pytest.raises(LedgerWriteError):
            CqlLedger(session).delete("a")

    def test_records_from_rows(self, session):
        naive = datetime(2024, 5, 1, 12, 0, 0)
        session.execute.return_value = [
            SimpleNamespace(id="a", status="success", run_at=naive),
            SimpleNamespace(id="b", status="failed", run_at=naive),
        ]
        ledger = CqlLedger(session)

        records = ledger.records()

        assert [r.id for r in records] == ["a", "b"]
        assert records[0].applied_at == naive.replace(tzinfo=UTC)
        assert ledger.list_applied_ids() == ["a"]
        query, params = session.execute.call_args.args
        assert "WHERE type = %s" in query
        assert params == ("migrate",)

    def test_records_normalize_aware_timestamps(self, session):
        aware = datetime(2024, 5, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        session.execute.return_value = [SimpleNamespace(id="a", status="success", run_at=aware)]
        [record] = CqlLedger(session).records()
        assert record.applied_at == datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)

    def test_read_failure(self, session):
        session.execute.side_effect = RuntimeError("unavailable")
        with pytest.raises(StoreConnectionError):
            CqlLedger(session).list_applied_ids()

    def test_qualified_table(self, session):
        assert CqlLedger(session, keyspace="k", table="t").qualified_table == "k.t"
