"""Scaffold new migration directories.

A new migration is a directory named ``<YYYY-MM-DD-HHMMSS>_<name>`` under
the catalog root holding empty ``up.cql`` and ``down.cql`` files. The
timestamp prefix makes lexicographic order match creation order.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from scylla_migrate.core.errors import ScaffoldError
from scylla_migrate.core.logging import get_logger
from scylla_migrate.core.migrations.models import LocalMigrationUnit
from scylla_migrate.core.timestamps import MIGRATION_ID_FORMAT, local_now

logger = get_logger(__name__)


def migration_id_for(name: str, at: datetime) -> str:
    """Build the directory name for a migration called ``name`` created at ``at``."""
    return f"{at.strftime(MIGRATION_ID_FORMAT)}_{name}"


def generate_migration(
    root: Path | str,
    name: str,
    *,
    at: datetime | None = None,
) -> LocalMigrationUnit:
    """Create the directory and empty scripts for a new migration.

    Raises ``ScaffoldError`` when ``root`` is not an existing directory, the
    name is unusable as a directory name, or the migration already exists.
    """
    root = Path(root)
    if not name or "/" in name or "\\" in name or name in (".", ".."):
        raise ScaffoldError(f"Invalid migration name: {name!r}")
    if not root.is_dir():
        raise ScaffoldError(
            f"Not a directory, or does not exist: [{root}]"
        ).with_context(script_path=str(root))

    unit = LocalMigrationUnit.in_directory(root, migration_id_for(name, at or local_now()))
    try:
        unit.up_script_path.parent.mkdir()
        unit.up_script_path.touch()
        unit.down_script_path.touch()
    except OSError as e:
        raise ScaffoldError(
            f"Cannot create migration {unit.id}: {e}", cause=e
        ).with_context(migration_id=unit.id, script_path=str(unit.up_script_path.parent)) from e

    logger.info("migration.generated", migration_id=unit.id, path=str(unit.up_script_path.parent))
    return unit
