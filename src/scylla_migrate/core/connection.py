"""Store factory: open the target store and its ledger from a URL string.

This is the single entry point the CLI uses to reach a database. It returns
a ``Store`` bundling a statement runner and a ledger that share one
session, with the ledger schema already provisioned.

Supported URL forms
-------------------
======================================  ==========================  ==========
Form                                    Example                     Backend
======================================  ==========================  ==========
``host`` / ``host:port``                ``127.0.0.1:9042``          CQL
``scylla://`` / ``cassandra://``        ``scylla://db1,db2:9042``   CQL
``sqlite:///path``                      ``sqlite:///dev.db``        SQLite file
``memory`` / ``sqlite://:memory:``      ``memory``                  SQLite RAM
======================================  ==========================  ==========

Several CQL contact points may be given comma-separated; they share the
port. The default CQL port is 9042.

Usage
-----
::

    from scylla_migrate.core.connection import open_store

    with open_store("127.0.0.1:9042", stream="migrate") as store:
        print(store.info)
        store.runner.run("CREATE TABLE IF NOT EXISTS ks.t (id int PRIMARY KEY)")
        print(store.ledger.list_applied_ids())
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from scylla_migrate.core.errors import InvalidConfigError, MissingConfigError, StoreConnectionError
from scylla_migrate.core.logging import get_logger
from scylla_migrate.core.migrations.ledger import (
    DEFAULT_KEYSPACE,
    DEFAULT_STREAM,
    DEFAULT_TABLE,
    CqlLedger,
    SqliteLedger,
)
from scylla_migrate.core.protocols import MigrationLedger, StatementRunner

logger = get_logger(__name__)

DEFAULT_CQL_PORT = 9042


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about an opened store."""

    backend: str
    """Backend identifier: ``"cql"`` or ``"sqlite"``."""

    url: str
    """The original URL used to open the store."""

    hosts: tuple[str, ...] = ()
    port: int | None = None
    resolved_path: str | None = None

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}"]
        if self.hosts:
            parts.append(f"hosts={list(self.hosts)!r}")
            parts.append(f"port={self.port}")
        elif self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"

    @property
    def is_cql(self) -> bool:
        return self.backend == "cql"

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"


# ── Statement runners ────────────────────────────────────────────────────


class CqlStatementRunner:
    """Runs raw statements on a ``cassandra.cluster.Session``."""

    def __init__(self, session: Any) -> None:
        self._session = session

    def run(self, statement: str) -> None:
        self._session.execute(statement)


class SqliteStatementRunner:
    """Runs raw statements on a ``sqlite3.Connection``, committing each one."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def run(self, statement: str) -> None:
        self._conn.execute(statement)
        self._conn.commit()


# ── Store ────────────────────────────────────────────────────────────────


@dataclass
class Store:
    """An open target store: statement runner + ledger on one session."""

    info: ConnectionInfo
    runner: StatementRunner
    ledger: MigrationLedger
    _close: Callable[[], None] = field(repr=False, default=lambda: None)

    def close(self) -> None:
        self._close()

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *args) -> None:
        self.close()


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(url: str | None) -> tuple[str, str]:
    """Parse a store URL into (scheme, target).

    ``scheme`` is one of ``"memory"``, ``"sqlite"``, ``"cql"``.
    """
    if url is None or not url.strip():
        raise MissingConfigError(
            "db_url",
            "No database URL given: pass -u/--url or set SCYLLADB_MIGRATE_DB_URL",
        )
    url = url.strip()

    if url in ("memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if url.startswith(prefix):
            path = url[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    for prefix in ("scylla://", "cassandra://", "cql://"):
        if url.startswith(prefix):
            return "cql", url[len(prefix):].rstrip("/")

    if "://" in url:
        raise InvalidConfigError("db_url", url, f"Unsupported database URL scheme: {url!r}")

    return "cql", url


def parse_contact_points(target: str) -> tuple[list[str], int]:
    """Split ``host[,host...][:port]`` into contact points and a port.

    IPv6 literals must be bracketed when a port is given: ``[::1]:9042``.
    """
    port = DEFAULT_CQL_PORT
    hosts = []
    for raw in target.split(","):
        raw = raw.strip()
        if not raw:
            continue
        host = raw
        if raw.startswith("["):
            host, _, rest = raw[1:].partition("]")
            if rest.startswith(":"):
                port = _parse_port(target, rest[1:])
        elif raw.count(":") == 1:
            host, port_str = raw.split(":")
            port = _parse_port(target, port_str)
        hosts.append(host)

    if not hosts:
        raise InvalidConfigError("db_url", target, f"No host in database URL: {target!r}")
    return hosts, port


def _parse_port(target: str, value: str) -> int:
    if not value.isdigit() or not 0 < int(value) < 65536:
        raise InvalidConfigError("db_url", target, f"Invalid port in database URL: {target!r}")
    return int(value)


# ── Backend factories ────────────────────────────────────────────────────


def _open_sqlite(url: str, path: str, *, table: str, stream: str) -> Store:
    resolved = None
    if path != ":memory:":
        resolved = str(Path(path).resolve())
    try:
        if resolved:
            Path(resolved).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(resolved or ":memory:")
    except (OSError, sqlite3.Error) as e:
        raise StoreConnectionError(
            f"Failed to open SQLite database {path}: {e}", cause=e
        ).with_context(url=url) from e

    info = ConnectionInfo(backend="sqlite", url=url, resolved_path=resolved)
    return Store(
        info=info,
        runner=SqliteStatementRunner(conn),
        ledger=SqliteLedger(conn, table=table, stream=stream),
        _close=conn.close,
    )


def _open_cql(
    url: str,
    target: str,
    *,
    keyspace: str,
    table: str,
    stream: str,
    replication_factor: int,
    connect_timeout: float,
) -> Store:
    from cassandra.cluster import Cluster

    hosts, port = parse_contact_points(target)
    cluster = Cluster(contact_points=hosts, port=port, connect_timeout=connect_timeout)
    try:
        session = cluster.connect()
    except Exception as e:
        cluster.shutdown()
        raise StoreConnectionError(
            f"Cannot connect to {target}: {e}", cause=e
        ).with_context(url=url) from e

    info = ConnectionInfo(backend="cql", url=url, hosts=tuple(hosts), port=port)
    ledger = CqlLedger(
        session,
        keyspace=keyspace,
        table=table,
        stream=stream,
        replication_factor=replication_factor,
    )
    return Store(
        info=info,
        runner=CqlStatementRunner(session),
        ledger=ledger,
        _close=cluster.shutdown,
    )


# ── Main factory ─────────────────────────────────────────────────────────


def open_store(
    url: str | None,
    *,
    stream: str = DEFAULT_STREAM,
    keyspace: str = DEFAULT_KEYSPACE,
    table: str = DEFAULT_TABLE,
    replication_factor: int = 1,
    connect_timeout: float = 10.0,
    ensure_schema: bool = True,
) -> Store:
    """Open the store named by ``url`` and provision its ledger.

    Raises ``MissingConfigError`` / ``InvalidConfigError`` for unusable URLs
    and ``StoreConnectionError`` when the store cannot be reached or the
    ledger schema cannot be created. Nothing falls back to another backend.
    """
    scheme, target = _parse_url(url)

    if scheme in ("memory", "sqlite"):
        store = _open_sqlite(url, target, table=table, stream=stream)
    else:
        store = _open_cql(
            url,
            target,
            keyspace=keyspace,
            table=table,
            stream=stream,
            replication_factor=replication_factor,
            connect_timeout=connect_timeout,
        )

    if ensure_schema:
        try:
            store.ledger.ensure_schema()
        except StoreConnectionError:
            store.close()
            raise

    logger.debug("store.opened", info=repr(store.info), stream=stream)
    return store
