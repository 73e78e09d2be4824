"""Reconciliation engine: apply or revert outstanding migrations.

Compares the local catalog with the ledger's applied view and drives the
statement executor one migration at a time, recording each outcome in the
ledger before moving on.

Ordering:
    - apply  → ascending migration id
    - revert → descending migration id

Bookkeeping:
    - apply writes one ledger record per attempt, after execution, with the
      pass timestamp; a failed script is recorded ``failed`` and then raised
    - revert deletes a record only after its down script succeeded

A ``failed`` record is not part of the applied view, so the next ``up``
attempts that migration again.
"""

from __future__ import annotations

from datetime import datetime

from scylla_migrate.core.errors import StatementError
from scylla_migrate.core.logging import LogContext, get_logger
from scylla_migrate.core.migrations.executor import execute_script
from scylla_migrate.core.migrations.models import (
    ApplyReport,
    Direction,
    LocalMigrationUnit,
    MigrationState,
    MigrationStatus,
    RevertMode,
    RevertReport,
)
from scylla_migrate.core.protocols import MigrationCatalog, MigrationLedger, StatementRunner
from scylla_migrate.core.timestamps import utc_now

logger = get_logger(__name__)


def pending_units(
    local_units: list[LocalMigrationUnit], applied_ids: set[str] | list[str]
) -> list[LocalMigrationUnit]:
    """Units not yet applied, in ascending id order."""
    applied = set(applied_ids)
    return sorted(u for u in local_units if u.id not in applied)


def select_for_revert(applied_ids: list[str], mode: RevertMode) -> list[str]:
    """Ids a revert pass acts on, in descending (processing) order."""
    ordered = sorted(applied_ids, reverse=True)
    if mode is RevertMode.LATEST:
        return ordered[:1]
    return ordered


class MigrationRunner:
    """Applies and reverts migrations from a catalog against a store.

    Parameters
    ----------
    catalog
        Source of local migration units (``DirectoryCatalog`` for a
        directory on disk).
    ledger
        Durable record of applied migrations. The runner does not call
        ``ensure_schema()``; the store factory does that once per session.
    statements
        Runs one raw statement against the target store.

    Example::

        from scylla_migrate.core.connection import open_store
        from scylla_migrate.core.migrations import DirectoryCatalog, MigrationRunner

        with open_store("127.0.0.1:9042") as store:
            runner = MigrationRunner(DirectoryCatalog("migrations"), store.ledger, store.runner)
            report = runner.apply_pending()
            print(f"Applied {len(report.applied)} migrations")
    """

    def __init__(
        self,
        catalog: MigrationCatalog,
        ledger: MigrationLedger,
        statements: StatementRunner,
    ) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._statements = statements

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply_pending(self) -> ApplyReport:
        """Apply every pending migration in ascending id order.

        Raises ``StatementError`` (after recording the migration as
        ``failed``) when a script fails, ``CatalogIOError`` when a script
        cannot be read (nothing recorded), and ``LedgerWriteError`` when the
        outcome cannot be recorded.
        """
        local_units = self._catalog.list()
        applied_ids = self._ledger.list_applied_ids()
        pending = pending_units(local_units, applied_ids)
        applied_set = set(applied_ids)

        logger.info(
            "migrations.reconciled",
            local=[u.id for u in local_units],
            applied=applied_ids,
            pending=[u.id for u in pending],
        )

        # One timestamp for the whole pass
        now = utc_now()
        report = ApplyReport(
            skipped=[u.id for u in local_units if u.id in applied_set],
            applied_at=now,
        )

        with LogContext(stream=self._ledger.stream, direction=Direction.UP.value):
            for unit in pending:
                self._apply_one(unit, now)
                report.applied.append(unit.id)

        if report.noop:
            logger.info("migrations.up_to_date")
        return report

    def revert(self, mode: RevertMode = RevertMode.LATEST) -> RevertReport:
        """Revert the latest applied migration, or all of them, newest first.

        Stops at the first failing down script; its ledger record stays
        ``success`` and nothing older is attempted.
        """
        selected = select_for_revert(self._ledger.list_applied_ids(), mode)
        report = RevertReport(mode=mode)

        if not selected:
            logger.info("migrations.nothing_to_revert", mode=mode.value)
            return report

        logger.info("migrations.reverting", mode=mode.value, selected=selected)

        with LogContext(stream=self._ledger.stream, direction=Direction.DOWN.value):
            for migration_id in selected:
                self._revert_one(self._catalog.get(migration_id))
                report.reverted.append(migration_id)

        return report

    def status(self) -> list[MigrationState]:
        """Every migration known locally or in the ledger, ascending by id."""
        local_ids = {u.id for u in self._catalog.list()}
        records = {r.id: r for r in self._ledger.records()}

        states = []
        for migration_id in sorted(local_ids | records.keys()):
            record = records.get(migration_id)
            states.append(
                MigrationState(
                    id=migration_id,
                    applied=record is not None and record.applied,
                    local=migration_id in local_ids,
                    status=record.status if record else None,
                    applied_at=record.applied_at if record else None,
                )
            )
        return states

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _apply_one(self, unit: LocalMigrationUnit, now: datetime) -> None:
        script = self._catalog.read(unit, Direction.UP)
        logger.info("migration.applying", migration_id=unit.id, path=str(unit.up_script_path))

        try:
            count = execute_script(script, self._statements)
        except StatementError as exc:
            exc.with_context(
                migration_id=unit.id,
                stream=self._ledger.stream,
                direction=Direction.UP.value,
                script_path=str(unit.up_script_path),
            )
            self._ledger.upsert(unit.id, MigrationStatus.FAILED, now)
            logger.error("migration.failed", **exc.to_dict())
            raise

        self._ledger.upsert(unit.id, MigrationStatus.SUCCESS, now)
        logger.info("migration.applied", migration_id=unit.id, statements=count)

    def _revert_one(self, unit: LocalMigrationUnit) -> None:
        script = self._catalog.read(unit, Direction.DOWN)
        logger.info("migration.reverting", migration_id=unit.id, path=str(unit.down_script_path))

        try:
            count = execute_script(script, self._statements)
        except StatementError as exc:
            exc.with_context(
                migration_id=unit.id,
                stream=self._ledger.stream,
                direction=Direction.DOWN.value,
                script_path=str(unit.down_script_path),
            )
            logger.error("migration.revert_failed", **exc.to_dict())
            raise

        self._ledger.delete(unit.id)
        logger.info("migration.reverted", migration_id=unit.id, statements=count)
