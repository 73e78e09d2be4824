"""
Structured error types for scylladb-migrate.

Every failure the reconciliation engine can surface is a ``MigrateError``
subclass carrying a category, structured context (migration id, stream,
script path, statement index) and the chained driver or OS exception.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                        MigrateError                          │
        │            (category, context, cause, to_dict)               │
        ├─────────────────────────────────────────────────────────────┤
        │  CatalogIOError      StoreConnectionError   StatementError  │
        │  (STORAGE)           (DATABASE)             (EXECUTION)     │
        │                                                              │
        │  LedgerWriteError    ConfigError            ScaffoldError   │
        │  (DATABASE)          (CONFIG)               (STORAGE)       │
        └─────────────────────────────────────────────────────────────┘

Propagation:
    - ``StatementError`` raised while applying is recorded in the ledger as
      ``failed`` before it reaches the caller.
    - Every other kind aborts the pass without a ledger write for the
      in-flight migration.
    - Nothing in the engine retries.

Usage:
    from scylla_migrate.core.errors import CatalogIOError

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogIOError(f"Cannot read {path}", cause=e).with_context(
            script_path=str(path),
        )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for log routing and CLI rendering."""

    STORAGE = "STORAGE"  # Catalog directory, script files
    DATABASE = "DATABASE"  # Session, ledger reads/writes
    EXECUTION = "EXECUTION"  # A migration statement failed
    CONFIG = "CONFIG"  # Missing or invalid settings
    INTERNAL = "INTERNAL"  # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a ``MigrateError``.

    Only fields that are set end up in ``to_dict()``; anything that is not a
    named field goes into ``metadata``.
    """

    migration_id: str | None = None
    stream: str | None = None
    direction: str | None = None
    script_path: str | None = None
    statement_index: int | None = None
    url: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["migration_id", "stream", "direction", "script_path",
                    "statement_index", "url"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class MigrateError(Exception):
    """
    Base exception for all scylladb-migrate errors.

    Subclasses set ``default_category``; callers may override it per
    instance. When ``cause`` is given it is also set as ``__cause__`` so
    tracebacks show the original driver/OS error.

    >>> error = MigrateError("Something went wrong")
    >>> error.category
    <ErrorCategory.INTERNAL: 'INTERNAL'>
    >>> error.with_context(migration_id="2024-01-01-000000_init").context.migration_id
    '2024-01-01-000000_init'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> MigrateError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StatementError("Statement failed").with_context(
                migration_id=unit.id,
                statement_index=3,
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CATALOG / FILESYSTEM ERRORS
# =============================================================================


class CatalogIOError(MigrateError):
    """Catalog root or a migration script could not be read."""

    default_category = ErrorCategory.STORAGE


class ScaffoldError(MigrateError):
    """A new migration directory could not be created."""

    default_category = ErrorCategory.STORAGE


# =============================================================================
# STORE ERRORS
# =============================================================================


class StoreConnectionError(MigrateError):
    """Target store unreachable, or ledger schema bootstrap failed."""

    default_category = ErrorCategory.DATABASE


class LedgerWriteError(MigrateError):
    """Ledger upsert or delete failed."""

    default_category = ErrorCategory.DATABASE


class StatementError(MigrateError):
    """
    A single statement of a migration script failed.

    ``statement`` holds the failing statement text and ``index`` its
    zero-based position among the non-empty statements of the script.
    """

    default_category = ErrorCategory.EXECUTION

    def __init__(
        self,
        message: str,
        *,
        statement: str | None = None,
        index: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.statement = statement
        self.index = index
        if index is not None:
            self.context.statement_index = index

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.statement is not None:
            result["statement"] = self.statement
        return result


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(MigrateError):
    """Configuration is missing or invalid."""

    default_category = ErrorCategory.CONFIG


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "MigrateError",
    "CatalogIOError",
    "ScaffoldError",
    "StoreConnectionError",
    "LedgerWriteError",
    "StatementError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
]
