"""Data model for migration units, ledger records and pass reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

UP_SCRIPT = "up.cql"
DOWN_SCRIPT = "down.cql"


class MigrationStatus(str, Enum):
    """Outcome of the most recent apply attempt, as stored in the ledger."""

    SUCCESS = "success"
    FAILED = "failed"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


class RevertMode(str, Enum):
    """Which applied migrations a revert pass selects."""

    LATEST = "latest"
    ALL = "all"


@dataclass(frozen=True, order=True)
class LocalMigrationUnit:
    """One migration directory: its id and the paths of its two scripts.

    Ordering compares ``id`` first, so ``sorted(units)`` is apply order.
    """

    id: str
    up_script_path: Path = field(compare=False)
    down_script_path: Path = field(compare=False)

    @classmethod
    def in_directory(cls, root: Path, migration_id: str) -> LocalMigrationUnit:
        unit_dir = root / migration_id
        return cls(
            id=migration_id,
            up_script_path=unit_dir / UP_SCRIPT,
            down_script_path=unit_dir / DOWN_SCRIPT,
        )

    def script_path(self, direction: Direction) -> Path:
        if direction is Direction.UP:
            return self.up_script_path
        return self.down_script_path


@dataclass(frozen=True)
class LedgerRecord:
    """Latest recorded outcome for one migration id within a stream."""

    stream: str
    id: str
    status: MigrationStatus
    applied_at: datetime

    @property
    def applied(self) -> bool:
        return self.status is MigrationStatus.SUCCESS


@dataclass
class ApplyReport:
    """Result of a successful apply pass."""

    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    applied_at: datetime | None = None

    @property
    def noop(self) -> bool:
        return not self.applied


@dataclass
class RevertReport:
    """Result of a successful revert pass.

    ``noop`` distinguishes "nothing was applied" from a pass that ran.
    """

    mode: RevertMode
    reverted: list[str] = field(default_factory=list)

    @property
    def noop(self) -> bool:
        return not self.reverted


@dataclass(frozen=True)
class MigrationState:
    """One row of ``status``: a migration id and where it is known from."""

    id: str
    applied: bool
    local: bool
    status: MigrationStatus | None = None
    applied_at: datetime | None = None

    @property
    def pending(self) -> bool:
        return self.local and not self.applied
