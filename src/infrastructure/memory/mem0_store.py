"""
infrastructure.memory.mem0_store - Hosted long-term memory via mem0.

Implements MemoryStorePort for MEMORY_BACKEND=mem0. The mem0 client is
synchronous, so each write runs in the default executor.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any

from domain.models import MemoryWriteResult

logger = logging.getLogger(__name__)


class Mem0MemoryStore:
    """MemoryStorePort backed by mem0's MemoryClient."""

    def __init__(self, api_key: str, client=None):
        if client is None:
            from mem0 import MemoryClient

            client = MemoryClient(api_key=api_key)
        self._client = client

    async def add(
        self,
        messages: list[dict[str, str]],
        user_id: str,
        metadata: dict[str, Any],
    ) -> MemoryWriteResult:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                partial(self._client.add, messages, user_id=user_id, metadata=metadata),
            )
        except Exception as e:
            logger.error("Error storing chat history to memory: %s", e)
            return MemoryWriteResult(success=False, error=str(e) or type(e).__name__)

        logger.info("Stored %d message(s) in mem0 for user %s", len(messages), user_id)
        return MemoryWriteResult(success=True)
