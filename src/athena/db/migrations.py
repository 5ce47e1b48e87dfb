"""SQLite migrations for the project registry."""

from __future__ import annotations

import aiosqlite

SCHEMA_VERSION = 1


async def apply_migrations(conn: aiosqlite.Connection) -> None:
    """Create the key-value schema if missing and set schema version."""
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY
        )
        """
    )

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS projects (
            id TEXT PRIMARY KEY,
            record TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )

    await conn.execute("DELETE FROM schema_migrations")
    await conn.execute("INSERT INTO schema_migrations(version) VALUES (?)", (SCHEMA_VERSION,))
    await conn.commit()
