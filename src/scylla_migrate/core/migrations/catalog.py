"""Local migration catalogs.

A migration unit exists when its directory exists; script content is only
looked at when the engine reads it. ``DirectoryCatalog`` is what the CLI
uses; ``InMemoryCatalog`` backs tests and embedding callers.
"""

from __future__ import annotations

from pathlib import Path

from scylla_migrate.core.errors import CatalogIOError
from scylla_migrate.core.logging import get_logger
from scylla_migrate.core.migrations.models import Direction, LocalMigrationUnit

logger = get_logger(__name__)


class DirectoryCatalog:
    """Catalog backed by the immediate subdirectories of ``root``.

    Parameters
    ----------
    root
        Directory whose subdirectory names are migration ids. Regular files
        and nested directories below the first level are ignored.

    Example::

        catalog = DirectoryCatalog("migrations")
        for unit in catalog.list():
            print(unit.id, unit.up_script_path)
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def list(self) -> list[LocalMigrationUnit]:
        """Return every unit under the root in ascending id order."""
        try:
            entries = [entry for entry in self._root.iterdir() if entry.is_dir()]
        except OSError as e:
            raise CatalogIOError(
                f"Cannot list migrations directory {self._root}: {e}", cause=e
            ).with_context(script_path=str(self._root)) from e

        units = sorted(
            LocalMigrationUnit.in_directory(self._root, entry.name) for entry in entries
        )
        logger.debug("catalog.listed", root=str(self._root), count=len(units))
        return units

    def get(self, migration_id: str) -> LocalMigrationUnit:
        return LocalMigrationUnit.in_directory(self._root, migration_id)

    def read(self, unit: LocalMigrationUnit, direction: Direction) -> str:
        path = unit.script_path(direction)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CatalogIOError(
                f"Cannot read {direction.value} script for {unit.id}: {e}", cause=e
            ).with_context(
                migration_id=unit.id,
                direction=direction.value,
                script_path=str(path),
            ) from e


class InMemoryCatalog:
    """Catalog held in a dict of ``id -> (up_script, down_script)``.

    A script given as ``None`` behaves like a missing file: reading it
    raises ``CatalogIOError``.
    """

    def __init__(
        self,
        scripts: dict[str, tuple[str | None, str | None]] | None = None,
        *,
        root: Path | str = "memory",
    ) -> None:
        self._root = Path(root)
        self._scripts: dict[str, tuple[str | None, str | None]] = dict(scripts or {})

    def add(self, migration_id: str, up: str | None = "", down: str | None = "") -> None:
        self._scripts[migration_id] = (up, down)

    def list(self) -> list[LocalMigrationUnit]:
        return sorted(self.get(migration_id) for migration_id in self._scripts)

    def get(self, migration_id: str) -> LocalMigrationUnit:
        return LocalMigrationUnit.in_directory(self._root, migration_id)

    def read(self, unit: LocalMigrationUnit, direction: Direction) -> str:
        up, down = self._scripts.get(unit.id, (None, None))
        text = up if direction is Direction.UP else down
        if text is None:
            raise CatalogIOError(
                f"No {direction.value} script for {unit.id}"
            ).with_context(
                migration_id=unit.id,
                direction=direction.value,
                script_path=str(unit.script_path(direction)),
            )
        return text
