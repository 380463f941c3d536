"""
domain.models - Value objects for the orchestration layer.

These are plain data containers with no dependencies on infrastructure
(no LangChain, no OpenAI SDK, no SQLite). The session, the tools and the
memory sink all exchange these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Conversation items
# ---------------------------------------------------------------------------

class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ItemType(str, Enum):
    MESSAGE = "message"
    FUNCTION_CALL = "function_call"


@dataclass(frozen=True)
class ContentPart:
    """One typed part of a multi-part message.

    kind="text"  uses `text`.
    kind="audio" uses `transcript` (the audio bytes never reach the core).
    """
    kind: str
    text: str = ""
    transcript: str = ""

    @classmethod
    def text_part(cls, text: str) -> ContentPart:
        return cls(kind="text", text=text)

    @classmethod
    def audio_part(cls, transcript: str) -> ContentPart:
        return cls(kind="audio", transcript=transcript)

    @property
    def plain_text(self) -> str:
        if self.kind == "audio":
            return self.transcript or ""
        return self.text or ""


Content = Union[str, tuple[ContentPart, ...]]


@dataclass(frozen=True)
class ConversationItem:
    """A single append-only history entry.

    `content` is either plain text or an ordered tuple of ContentParts.
    Function-call items record a tool invocation (name, arguments, output)
    and carry no user-visible content.
    """
    item_id: str
    role: Role
    content: Content = ""
    item_type: ItemType = ItemType.MESSAGE
    tool_name: str = ""
    arguments: dict[str, Any] = field(default_factory=dict)
    output: str = ""

    @property
    def text(self) -> str:
        """Flatten content to one string (parts joined by a single space)."""
        if isinstance(self.content, str):
            return self.content.strip()
        pieces = [p.plain_text.strip() for p in self.content]
        return " ".join(p for p in pieces if p)

    @property
    def is_message(self) -> bool:
        return self.item_type == ItemType.MESSAGE


# ---------------------------------------------------------------------------
# Model-collaborator requests
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolCallRequest:
    """The model asked the active agent to run a tool."""
    call_id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HandoffDirective:
    """The model asked to transfer the conversation to another agent."""
    target: str
    call_id: str = ""
    reason: str = ""


@dataclass(frozen=True)
class ApprovalRequest:
    """An approval-gated tool call waiting for a human decision."""
    call_id: str
    agent_name: str
    tool_name: str
    arguments: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Session events and lifecycle
# ---------------------------------------------------------------------------

class SessionEventType(str, Enum):
    CONVERSATION_ITEM = "conversation_item"
    TOOL_CALL = "tool_call"
    HANDOFF = "handoff"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class SessionEvent:
    """One inbound event from the model transport.

    Exactly one payload field is set, matching `type`.
    """
    type: SessionEventType
    item: Optional[ConversationItem] = None
    tool_call: Optional[ToolCallRequest] = None
    handoff: Optional[HandoffDirective] = None
    error: str = ""

    @classmethod
    def conversation_item(cls, item: ConversationItem) -> SessionEvent:
        return cls(type=SessionEventType.CONVERSATION_ITEM, item=item)

    @classmethod
    def tool_call_request(cls, call: ToolCallRequest) -> SessionEvent:
        return cls(type=SessionEventType.TOOL_CALL, tool_call=call)

    @classmethod
    def handoff_directive(cls, directive: HandoffDirective) -> SessionEvent:
        return cls(type=SessionEventType.HANDOFF, handoff=directive)

    @classmethod
    def transport_error(cls, message: str) -> SessionEvent:
        return cls(type=SessionEventType.TRANSPORT_ERROR, error=message)


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# Interview
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InterviewField:
    """One field an interview asks for, in the order it is asked."""
    key: str
    prompt: str
    description: str = ""


@dataclass
class InterviewState:
    """Mutable collection state for one data-collection episode.

    Owned by a single SessionContext. `fields_collected` keeps insertion
    order; re-recording a key overwrites the value in place.
    """
    fields_collected: dict[str, str] = field(default_factory=dict)
    is_complete: bool = False
    cursor: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.fields_collected

    def record(self, key: str, value: str) -> None:
        self.fields_collected[key] = value

    def clear(self) -> None:
        self.fields_collected.clear()
        self.is_complete = False
        self.cursor = 0

    def as_text(self) -> str:
        """Render collected fields as `key: value` lines for the parser."""
        return "\n".join(f"{k}: {v}" for k, v in self.fields_collected.items())


# ---------------------------------------------------------------------------
# Collaborator results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParseOutcome:
    """Result of a parsing-collaborator call: a record OR a failure reason."""
    record: Optional[BaseModel] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.record is not None

    @classmethod
    def failure(cls, error: str) -> ParseOutcome:
        return cls(record=None, error=error)


@dataclass(frozen=True)
class MemoryWriteResult:
    """Result returned by a memory store write."""
    success: bool
    error: Optional[str] = None
