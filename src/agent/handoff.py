"""
agent.handoff - Handoffs exposed to the model as function tools.

Chat models only know how to call functions, so each permitted handoff
target becomes a `transfer_to_<agent>` tool. The transport maps such a call
back to a HandoffDirective; the session decides whether it is allowed.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from agent.agents import AgentRegistry, AgentSpec

HANDOFF_PREFIX = "transfer_to_"


class HandoffInput(BaseModel):
    """Arguments of a transfer_to_<agent> tool."""

    reason: str = Field(default="", description="Why the conversation is being transferred")


def handoff_tool_name(agent_name: str) -> str:
    """'Weather Agent' -> 'transfer_to_weather_agent'."""
    slug = re.sub(r"[^a-z0-9]+", "_", agent_name.lower()).strip("_")
    return f"{HANDOFF_PREFIX}{slug}"


def is_handoff_tool(tool_name: str) -> bool:
    return tool_name.startswith(HANDOFF_PREFIX)


def target_from_tool_name(tool_name: str, agent_names: Iterable[str]) -> Optional[str]:
    """Map a transfer tool name back to an agent name.

    Looks across ALL known agents, not just permitted targets, so a call to
    a non-permitted agent still surfaces as a directive the session can reject.
    Unknown slugs return the raw slug.
    """
    if not is_handoff_tool(tool_name):
        return None
    for name in agent_names:
        if handoff_tool_name(name) == tool_name:
            return name
    return tool_name[len(HANDOFF_PREFIX):]


def handoff_tool_specs(agent: AgentSpec, registry: AgentRegistry) -> list[dict[str, Any]]:
    """Function specs for every handoff target of `agent`."""
    parameters = HandoffInput.model_json_schema()
    parameters.pop("title", None)
    specs = []
    for target_name in sorted(agent.handoff_targets):
        target = registry.get(target_name)
        description = f"Hand the conversation off to {target.name}."
        if target.handoff_description:
            description += f" {target.handoff_description}"
        specs.append({
            "type": "function",
            "function": {
                "name": handoff_tool_name(target.name),
                "description": description,
                "parameters": parameters,
            },
        })
    return specs
