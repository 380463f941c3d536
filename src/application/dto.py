"""
application.dto - Data Transfer Objects for service input/output.

These are the structured results that the session and services return to
callers (CLI and REST adapters).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class MemoryEntryReport:
    """Outcome of one structured-entry write."""
    label: str
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class MemorySinkReport:
    """What the memory sink did at session close.

    `messages_submitted` is the number of conversation messages written
    (the synthetic timestamp marker is not counted). A zero-message batch is
    never submitted, in which case `messages_success` is None.
    """
    user_id: str
    messages_submitted: int = 0
    messages_success: Optional[bool] = None
    messages_error: Optional[str] = None
    entries: tuple[MemoryEntryReport, ...] = ()

    @property
    def ok(self) -> bool:
        if self.messages_success is False:
            return False
        return all(e.success for e in self.entries)


@dataclass(frozen=True)
class CloseReport:
    """Returned by AgentSession.close()."""
    session_id: str
    final_agent: str
    history_length: int
    memory: Optional[MemorySinkReport] = None
    cancelled_inflight: bool = False


@dataclass(frozen=True)
class AgentSummary:
    """Public view of an agent for adapters (no tool handlers)."""
    name: str
    handoff_description: str
    tools: tuple[str, ...] = ()
    handoff_targets: tuple[str, ...] = field(default_factory=tuple)
