"""
infrastructure.persistence.migrations - Memory database schema.

Run once before the first write; every statement is IF NOT EXISTS.
"""

from __future__ import annotations

import logging

from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)

_STATEMENTS = [
    """CREATE TABLE IF NOT EXISTS memory_batches (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        metadata TEXT,
        created_at TEXT
    )""",
    """CREATE TABLE IF NOT EXISTS memory_messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        batch_id INTEGER NOT NULL,
        position INTEGER NOT NULL,
        role TEXT,
        content TEXT,
        FOREIGN KEY (batch_id) REFERENCES memory_batches(id)
    )""",
    "CREATE INDEX IF NOT EXISTS idx_memory_batches_user ON memory_batches(user_id)",
]


async def run_migrations(connection: AsyncSQLiteConnection) -> None:
    """Create the memory tables if they don't exist."""
    async with connection.acquire() as conn:
        for ddl in _STATEMENTS:
            await conn.execute(ddl)
    logger.info("Memory tables ready at %s", connection.db_path)
