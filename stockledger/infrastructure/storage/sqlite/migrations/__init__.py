"""Database migrations module."""

from stockledger.infrastructure.storage.sqlite.migrations.migrator import (
    REQUIRED_COLUMNS,
    REQUIRED_TABLES,
    MigrationInfo,
    MigrationResult,
    discover_migrations,
    get_migration_status,
    initialize_database,
    run_migrations,
    schema_problems,
    verify_schema_integrity,
)

__all__ = [
    "REQUIRED_COLUMNS",
    "REQUIRED_TABLES",
    "MigrationInfo",
    "MigrationResult",
    "discover_migrations",
    "get_migration_status",
    "initialize_database",
    "run_migrations",
    "schema_problems",
    "verify_schema_integrity",
]
