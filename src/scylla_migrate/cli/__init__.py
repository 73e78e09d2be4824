"""
CLI layer for scylladb-migrate.

Terminal transport only: argument parsing, settings overrides and coloured
output. The reconciliation logic lives in ``scylla_migrate.core.migrations``.

Entry point::

    scylladb-migrate --help
"""

from scylla_migrate.cli.app import app

__all__ = ["app"]
