"""Tests for core.errors module.

Covers:
- Default categories per error kind
- with_context() routing named fields vs metadata
- to_dict() serialization, including StatementError's statement text
- Cause chaining
"""

import pytest

from scylla_migrate.core.errors import (
    CatalogIOError,
    ConfigError,
    ErrorCategory,
    InvalidConfigError,
    LedgerWriteError,
    MigrateError,
    MissingConfigError,
    ScaffoldError,
    StatementError,
    StoreConnectionError,
)


class TestCategories:
    @pytest.mark.parametrize(
        "cls,category",
        [
            (CatalogIOError, ErrorCategory.STORAGE),
            (ScaffoldError, ErrorCategory.STORAGE),
            (StoreConnectionError, ErrorCategory.DATABASE),
            (LedgerWriteError, ErrorCategory.DATABASE),
            (StatementError, ErrorCategory.EXECUTION),
            (ConfigError, ErrorCategory.CONFIG),
            (MigrateError, ErrorCategory.INTERNAL),
        ],
    )
    def test_default_category(self, cls, category):
        assert cls("x").category is category

    def test_category_override(self):
        err = CatalogIOError("x", category=ErrorCategory.UNKNOWN)
        assert err.category is ErrorCategory.UNKNOWN

    def test_config_subclasses(self):
        missing = MissingConfigError("db_url")
        invalid = InvalidConfigError("db_url", "ftp://x")
        assert isinstance(missing, ConfigError)
        assert "db_url" in missing.message
        assert invalid.value == "ftp://x"
        assert "'ftp://x'" in invalid.message


class TestContext:
    def test_with_context_sets_named_fields(self):
        err = CatalogIOError("x").with_context(migration_id="m1", script_path="/tmp/m1/up.cql")
        assert err.context.migration_id == "m1"
        assert err.context.script_path == "/tmp/m1/up.cql"

    def test_with_context_unknown_keys_go_to_metadata(self):
        err = MigrateError("x").with_context(attempt=2)
        assert err.context.metadata == {"attempt": 2}

    def test_with_context_returns_self(self):
        err = MigrateError("x")
        assert err.with_context(stream="s") is err

    def test_context_to_dict_skips_unset(self):
        err = MigrateError("x").with_context(stream="migrate")
        assert err.context.to_dict() == {"stream": "migrate"}


class TestSerialization:
    def test_to_dict(self):
        cause = OSError("denied")
        err = CatalogIOError("cannot read", cause=cause).with_context(migration_id="m1")
        d = err.to_dict()
        assert d["error_type"] == "CatalogIOError"
        assert d["category"] == "STORAGE"
        assert d["context"] == {"migration_id": "m1"}
        assert d["cause"] == "denied"

    def test_cause_is_chained(self):
        cause = ValueError("bad")
        err = StoreConnectionError("down", cause=cause)
        assert err.__cause__ is cause

    def test_statement_error_carries_statement_and_index(self):
        err = StatementError("Statement 2 failed: boom", statement="DROP TABLE t", index=1)
        assert err.context.statement_index == 1
        d = err.to_dict()
        assert d["statement"] == "DROP TABLE t"
        assert d["context"]["statement_index"] == 1

    def test_repr(self):
        assert repr(LedgerWriteError("nope")) == "LedgerWriteError('nope', category=DATABASE)"
