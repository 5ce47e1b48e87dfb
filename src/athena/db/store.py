"""Async SQLite key-value store backing the project registry."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

from athena.db.migrations import apply_migrations


class SQLiteStore:
    """Flat mapping from project id to a JSON document. No secondary indices."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(self._db_path)
        conn.row_factory = aiosqlite.Row
        try:
            await apply_migrations(conn)
            yield conn
        finally:
            await conn.close()

    async def put(self, key: str, value: str) -> None:
        async with self.connection() as conn:
            await conn.execute(
                """
                INSERT INTO projects(id, record, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    record=excluded.record,
                    updated_at=excluded.updated_at
                """,
                (key, value, datetime.now(UTC).isoformat()),
            )
            await conn.commit()

    async def get(self, key: str) -> str | None:
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT record FROM projects WHERE id = ?", (key,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return str(row["record"])

    async def delete(self, key: str) -> None:
        async with self.connection() as conn:
            await conn.execute("DELETE FROM projects WHERE id = ?", (key,))
            await conn.commit()

    async def values(self) -> list[str]:
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT record FROM projects ORDER BY rowid ASC")
            rows = await cursor.fetchall()
        return [str(row["record"]) for row in rows]
