"""
infrastructure.persistence.memory_repo - Local SQLite memory store.

Implements MemoryStorePort for MEMORY_BACKEND=sqlite: each add() call is
one batch row plus its messages, written in a single transaction.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from domain.models import MemoryWriteResult
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.migrations import run_migrations

logger = logging.getLogger(__name__)


class SQLiteMemoryStore:
    """Async SQLite implementation of MemoryStorePort."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection
        self._migrated = False

    async def add(
        self,
        messages: list[dict[str, str]],
        user_id: str,
        metadata: dict[str, Any],
    ) -> MemoryWriteResult:
        try:
            if not self._migrated:
                await run_migrations(self._conn)
                self._migrated = True
            async with self._conn.acquire() as conn:
                cursor = await conn.execute(
                    "INSERT INTO memory_batches (user_id, metadata, created_at) VALUES (?, ?, ?)",
                    (user_id, json.dumps(metadata, default=str), datetime.now().isoformat()),
                )
                batch_id = cursor.lastrowid
                await conn.executemany(
                    """INSERT INTO memory_messages (batch_id, position, role, content)
                       VALUES (?, ?, ?, ?)""",
                    [
                        (batch_id, i, m.get("role", ""), m.get("content", ""))
                        for i, m in enumerate(messages)
                    ],
                )
        except Exception as e:
            logger.error("SQLite memory write failed for user %s: %s", user_id, e)
            return MemoryWriteResult(success=False, error=str(e))

        logger.info("Stored %d memory message(s) for user %s", len(messages), user_id)
        return MemoryWriteResult(success=True)

    async def get_by_user(self, user_id: str) -> list[dict[str, Any]]:
        """Return every stored batch for `user_id`, oldest first."""
        if not self._migrated:
            await run_migrations(self._conn)
            self._migrated = True
        async with self._conn.acquire() as conn:
            batches = await conn.execute_fetchall(
                """SELECT id, metadata, created_at FROM memory_batches
                   WHERE user_id = ? ORDER BY id ASC""",
                (user_id,),
            )
            result = []
            for batch in batches:
                rows = await conn.execute_fetchall(
                    """SELECT role, content FROM memory_messages
                       WHERE batch_id = ? ORDER BY position ASC""",
                    (batch["id"],),
                )
                result.append({
                    "metadata": json.loads(batch["metadata"] or "{}"),
                    "created_at": batch["created_at"],
                    "messages": [{"role": r["role"], "content": r["content"]} for r in rows],
                })
            return result
