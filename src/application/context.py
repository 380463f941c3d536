"""
application.context - Session-scoped context.

Every tool receives its context explicitly. Interview collection state
lives here, keyed by interview name, so two concurrent sessions get two
different SessionContext instances and never see each other's answers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel

from domain.models import InterviewState


@dataclass(frozen=True)
class FinalizedRecord:
    """A structured record produced by a successful interview finalize."""
    interview: str
    record: BaseModel


@dataclass
class SessionContext:
    """Per-session context passed through all layers.

    Attributes:
        user_id:     Memory-store user identifier.
        session_id:  Unique per session, for tracing/logging.
        user_data:   Free-form profile info supplied by the adapter.
        request_id:  Unique per inbound event, for log correlation.
        scratch:     Scratchpad for inter-tool data sharing
                     (ToolResult.store_as writes land here).
        interviews:  InterviewState per interview name.
        records:     Records finalized during this session, oldest first.
    """
    user_id: str
    session_id: str = field(default_factory=lambda: uuid4().hex)
    user_data: dict[str, Any] = field(default_factory=dict)
    request_id: str = field(default_factory=lambda: uuid4().hex)
    scratch: dict[str, Any] = field(default_factory=dict)
    interviews: dict[str, InterviewState] = field(default_factory=dict)
    records: list[FinalizedRecord] = field(default_factory=list)

    def new_request(self) -> None:
        """Start a new request id. Interview state and scratch carry over."""
        self.request_id = uuid4().hex

    def interview(self, name: str) -> InterviewState:
        """Return the InterviewState for `name`, creating it on first use."""
        state = self.interviews.get(name)
        if state is None:
            state = InterviewState()
            self.interviews[name] = state
        return state

    def resident_interviews(self) -> dict[str, InterviewState]:
        """Interviews that still hold un-finalized answers."""
        return {k: v for k, v in self.interviews.items() if not v.is_empty}

    @property
    def latest_record(self) -> Optional[FinalizedRecord]:
        return self.records[-1] if self.records else None
