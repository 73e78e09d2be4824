"""Settings for scylladb-migrate.

Every value can come from a ``SCYLLADB_MIGRATE_``-prefixed environment
variable or a ``.env`` file in the working directory. CLI options take
precedence over both; the CLI passes them in as overrides.

    SCYLLADB_MIGRATE_DIR_PATH   catalog root (default ".")
    SCYLLADB_MIGRATE_DB_URL     store URL (host[:port] or sqlite:///path)
    SCYLLADB_MIGRATE_STREAM     ledger stream identifier (default "migrate")
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MigrateSettings(BaseSettings):
    """Runtime configuration for the migration CLI and engine.

    Fields
    ──────
    dir_path            : Catalog root holding one directory per migration
    db_url              : Target store URL
    stream              : Ledger partition; independent histories share one table
    keyspace            : CQL keyspace holding the ledger table
    table               : Ledger table name
    replication_factor  : Replication factor used when creating the keyspace
    connect_timeout     : Seconds to wait for the store session
    log_level           : Structlog log level
    log_json            : Force JSON (True) or console (False) logs; None = auto
    """

    model_config = SettingsConfigDict(
        env_prefix="SCYLLADB_MIGRATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Catalog ──────────────────────────────────────────────────
    dir_path: Path = Field(default=Path("."))

    # ── Store ────────────────────────────────────────────────────
    db_url: str = ""
    stream: str = "migrate"
    keyspace: str = "scylladb_migrate_ks"
    table: str = "migrations"
    replication_factor: int = Field(default=1, ge=1)
    connect_timeout: float = Field(default=10.0, gt=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    @field_validator("dir_path", mode="before")
    @classmethod
    def _empty_path_is_cwd(cls, value: object) -> object:
        if value is None or value == "":
            return Path(".")
        return value

    @field_validator("keyspace", "table")
    @classmethod
    def _plain_identifier(cls, value: str) -> str:
        # Interpolated into DDL, so only plain CQL identifiers are accepted
        if not value or not value.replace("_", "").isalnum():
            raise ValueError(f"not a plain identifier: {value!r}")
        return value

    @field_validator("stream")
    @classmethod
    def _non_empty_stream(cls, value: str) -> str:
        # Partition key of the ledger table; CQL rejects an empty one
        value = value.strip()
        if not value:
            raise ValueError("stream must not be empty")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


_settings: MigrateSettings | None = None


def get_settings() -> MigrateSettings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = MigrateSettings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
