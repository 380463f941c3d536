"""Pydantic models for REST/WebSocket request and response validation."""

from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from domain.models import ConversationItem


# --- Agents ---

class AgentOut(BaseModel):
    name: str
    handoff_description: str
    tools: list[str]
    handoff_targets: list[str]


class AgentGraphOut(BaseModel):
    initial_agent: str
    agents: list[AgentOut]


# --- Tokens ---

class TokenOut(BaseModel):
    client_secret: str
    model: str


# --- Session WebSocket frames (client -> server) ---

class UserTextFrame(BaseModel):
    type: Literal["user_text"]
    text: str = Field(..., min_length=1)


class ApprovalFrame(BaseModel):
    type: Literal["approval"]
    call_id: str
    approved: bool


class CloseFrame(BaseModel):
    type: Literal["close"]


class ClientFrame(BaseModel):
    frame: Union[UserTextFrame, ApprovalFrame, CloseFrame] = Field(discriminator="type")


# --- Session WebSocket frames (server -> client) ---

class ItemOut(BaseModel):
    item_id: str
    role: str
    type: str
    text: str = ""
    tool_name: str = ""
    arguments: dict[str, Any] = {}
    output: str = ""

    @classmethod
    def from_item(cls, item: ConversationItem) -> ItemOut:
        return cls(
            item_id=item.item_id,
            role=item.role.value,
            type=item.item_type.value,
            text=item.text,
            tool_name=item.tool_name,
            arguments=dict(item.arguments),
            output=item.output,
        )


class MemoryOut(BaseModel):
    messages_submitted: int
    messages_success: Optional[bool]
    messages_error: Optional[str] = None
    entries: list[dict[str, Any]] = []
