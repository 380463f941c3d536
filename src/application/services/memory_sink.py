"""
application.services.memory_sink - Post-session persistence to long-term memory.

Runs once, when a session closes. Two independent, best-effort branches:

  1. Conversation: user/assistant message items flattened to plain text,
     empties dropped, followed by one synthetic timestamp marker. Skipped
     entirely when no message survives the filter.
  2. Structured entries: records finalized during the session, JSON
     payloads embedded in assistant text, and interview answers that were
     never finalized, each written as its own labeled entry.

A failure in one branch is logged and reported; it never undoes or blocks
the other, and nothing here raises to the caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from application.context import SessionContext
from application.dto import MemoryEntryReport, MemorySinkReport
from domain.exceptions import MemorySinkError
from domain.models import ConversationItem, Role
from domain.ports import MemoryStorePort

logger = logging.getLogger(__name__)

_CONVERSATION_ROLES = (Role.USER, Role.ASSISTANT)


class MemorySinkService:
    """Extracts memory entries from a finished session and submits them."""

    def __init__(
        self,
        store: MemoryStorePort,
        session_type: str = "voice_agent",
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._store = store
        self._session_type = session_type
        self._clock = clock

    async def persist(
        self,
        ctx: SessionContext,
        history: Sequence[ConversationItem],
    ) -> MemorySinkReport:
        """Write the session to the memory store and report what happened."""
        timestamp = self._clock().isoformat()
        messages = extract_messages(history)

        conversation_task = self._submit_conversation(ctx, messages, timestamp)
        entries_task = self._submit_entries(ctx, history, timestamp)
        (msg_success, msg_error), entries = await asyncio.gather(
            conversation_task, entries_task,
        )

        report = MemorySinkReport(
            user_id=ctx.user_id,
            messages_submitted=len(messages) if msg_success is not None else 0,
            messages_success=msg_success,
            messages_error=msg_error,
            entries=tuple(entries),
        )
        logger.info(
            "Memory sink for session %s: %d message(s) ok=%s, %d entr(y/ies)",
            ctx.session_id, report.messages_submitted, msg_success, len(entries),
        )
        return report

    # ------------------------------------------------------------------
    # Branch 1: conversation
    # ------------------------------------------------------------------

    async def _submit_conversation(
        self,
        ctx: SessionContext,
        messages: list[dict[str, str]],
        timestamp: str,
    ) -> tuple[bool | None, str | None]:
        if not messages:
            logger.info("Session %s has no messages; skipping conversation write", ctx.session_id)
            return None, None

        batch = messages + [{
            "role": Role.SYSTEM.value,
            "content": f"[session {ctx.session_id} ended at {timestamp}]",
        }]
        metadata = {
            "session_type": self._session_type,
            "session_id": ctx.session_id,
            "timestamp": timestamp,
        }
        try:
            await self._write(batch, ctx.user_id, metadata)
        except Exception as e:
            logger.exception("Failed to store conversation for session %s", ctx.session_id)
            return False, str(e)
        return True, None

    # ------------------------------------------------------------------
    # Branch 2: structured entries
    # ------------------------------------------------------------------

    async def _submit_entries(
        self,
        ctx: SessionContext,
        history: Sequence[ConversationItem],
        timestamp: str,
    ) -> list[MemoryEntryReport]:
        reports = []
        for label, payload, extra in _collect_entries(ctx, history):
            metadata = {
                "session_type": self._session_type,
                "session_id": ctx.session_id,
                "timestamp": timestamp,
                "category": label,
                **extra,
            }
            content = f"{label}: {json.dumps(payload, ensure_ascii=False, sort_keys=True)}"
            try:
                await self._write(
                    [{"role": Role.ASSISTANT.value, "content": content}],
                    ctx.user_id,
                    metadata,
                )
            except Exception as e:
                logger.exception(
                    "Failed to store %s entry for session %s", label, ctx.session_id,
                )
                reports.append(MemoryEntryReport(label=label, success=False, error=str(e)))
            else:
                reports.append(MemoryEntryReport(label=label, success=True))
        return reports

    async def _write(
        self,
        messages: list[dict[str, str]],
        user_id: str,
        metadata: dict[str, Any],
    ) -> None:
        result = await self._store.add(messages, user_id, metadata)
        if not result.success:
            raise MemorySinkError(result.error or "memory store rejected the write")


# ---------------------------------------------------------------------------
# Extraction helpers
# ---------------------------------------------------------------------------

def extract_messages(history: Sequence[ConversationItem]) -> list[dict[str, str]]:
    """User/assistant message items as {role, content}, empties dropped."""
    messages = []
    for item in history:
        if not item.is_message or item.role not in _CONVERSATION_ROLES:
            continue
        text = item.text
        if text:
            messages.append({"role": item.role.value, "content": text})
    return messages


_DECODER = json.JSONDecoder()


def find_json_payloads(text: str) -> list[dict[str, Any]]:
    """Return every JSON object embedded in `text`, left to right.

    Each `{` is tried as the start of an object. A parsed object is returned
    whole (its nested objects are not reported again) and scanning resumes
    after it; a `{` that starts nothing parseable is skipped, so a stray
    brace or a non-JSON outer span never hides a later object. Empty
    objects are ignored.
    """
    payloads = []
    i = text.find("{")
    while i != -1:
        try:
            candidate, end = _DECODER.raw_decode(text, i)
        except json.JSONDecodeError:
            i = text.find("{", i + 1)
            continue
        if isinstance(candidate, dict) and candidate:
            payloads.append(candidate)
            i = text.find("{", end)
        else:
            i = text.find("{", i + 1)
    return payloads


def _collect_entries(
    ctx: SessionContext,
    history: Sequence[ConversationItem],
) -> list[tuple[str, dict[str, Any], dict[str, Any]]]:
    """(label, payload, extra metadata) for every structured entry."""
    entries: list[tuple[str, dict[str, Any], dict[str, Any]]] = []
    seen: list[dict[str, Any]] = []

    for finalized in ctx.records:
        payload = finalized.record.model_dump()
        seen.append(payload)
        entries.append(("structured_record", payload, {"interview": finalized.interview}))

    for item in history:
        if not item.is_message or item.role != Role.ASSISTANT:
            continue
        for payload in find_json_payloads(item.text):
            if payload in seen:
                continue
            seen.append(payload)
            entries.append(("assistant_payload", payload, {"item_id": item.item_id}))

    for name, state in ctx.resident_interviews().items():
        entries.append((
            "interview_state",
            {"fields": dict(state.fields_collected), "is_complete": state.is_complete},
            {"interview": name},
        ))

    return entries
