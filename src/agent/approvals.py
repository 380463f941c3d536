"""
agent.approvals - Human approval for gated tool calls.

A gated call parks on an asyncio.Future until approve()/deny() resolves it.
With a timeout configured, an unanswered request resolves to denial so the
session's single dispatch loop can never stall indefinitely.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from domain.models import ApprovalRequest

logger = logging.getLogger(__name__)

ApprovalNotifier = Callable[[ApprovalRequest], Union[None, Awaitable[None]]]


class ApprovalGate:
    """Tracks pending approval requests for one session."""

    def __init__(self, timeout: Optional[float] = None):
        self._timeout = timeout
        self._pending: dict[str, asyncio.Future[bool]] = {}

    @property
    def pending(self) -> frozenset[str]:
        return frozenset(self._pending)

    async def request(
        self,
        request: ApprovalRequest,
        notify: Optional[ApprovalNotifier] = None,
    ) -> bool:
        """Wait for a decision on `request`. Returns True only if approved."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[bool] = loop.create_future()
        self._pending[request.call_id] = future
        notifier_task: Optional[asyncio.Task] = None
        logger.info(
            "Approval requested: %s.%s (call=%s)",
            request.agent_name, request.tool_name, request.call_id,
        )
        try:
            if notify is not None:
                result = notify(request)
                if inspect.isawaitable(result):
                    notifier_task = asyncio.ensure_future(result)

            if self._timeout is None:
                return await future
            return await asyncio.wait_for(future, self._timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Approval for call %s timed out after %.1fs; denying",
                request.call_id, self._timeout,
            )
            return False
        finally:
            self._pending.pop(request.call_id, None)
            if notifier_task is not None and not notifier_task.done():
                notifier_task.cancel()

    def resolve(self, call_id: str, approved: bool) -> bool:
        """Record a decision. Returns False if nothing is waiting on `call_id`."""
        future = self._pending.get(call_id)
        if future is None or future.done():
            logger.info("No pending approval for call %s", call_id)
            return False
        future.set_result(approved)
        logger.info("Approval for call %s: %s", call_id, "approved" if approved else "denied")
        return True

    def deny_all(self) -> int:
        """Deny every pending request (used when the session closes)."""
        count = 0
        for call_id in list(self._pending):
            if self.resolve(call_id, False):
                count += 1
        return count
