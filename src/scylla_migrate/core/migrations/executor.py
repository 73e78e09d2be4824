"""Statement executor: split a script on ``;`` and run it statement by statement.

Schema statements cannot be batched into one atomic request on the target
store, so a script runs as a sequence of independent statements. The first
failing statement stops the script; statements that already ran stay in
effect. Scripts that need safe retries must be written idempotently
(``IF NOT EXISTS`` / ``IF EXISTS``).

The splitter is purely textual: a ``;`` inside a string literal or a comment
is still a statement boundary.
"""

from __future__ import annotations

from collections.abc import Iterable

from scylla_migrate.core.errors import StatementError
from scylla_migrate.core.logging import get_logger
from scylla_migrate.core.protocols import StatementRunner

logger = get_logger(__name__)

STATEMENT_SEPARATOR = ";"


def split_statements(script: str) -> list[str]:
    """Split ``script`` into non-empty statements in textual order.

    >>> split_statements("CREATE TABLE t (x int);\\nINSERT INTO t VALUES (1);")
    ['CREATE TABLE t (x int)', 'INSERT INTO t VALUES (1)']
    >>> split_statements("  \\n ; ")
    []
    """
    return [
        fragment.strip()
        for fragment in script.split(STATEMENT_SEPARATOR)
        if fragment.strip()
    ]


def execute_statements(statements: Iterable[str], runner: StatementRunner) -> int:
    """Run ``statements`` in order, stopping at the first failure.

    Returns the number of statements executed. Any exception raised by the
    runner is re-raised as ``StatementError`` carrying the statement text and
    its index.
    """
    executed = 0
    for index, statement in enumerate(statements):
        logger.debug("statement.executing", index=index, statement=statement)
        try:
            runner.run(statement)
        except Exception as e:
            raise StatementError(
                f"Statement {index + 1} failed: {e}",
                statement=statement,
                index=index,
                cause=e,
            ) from e
        executed += 1
    return executed


def execute_script(script: str, runner: StatementRunner) -> int:
    """Split and execute a whole script. An empty script is a successful no-op."""
    return execute_statements(split_statements(script), runner)
