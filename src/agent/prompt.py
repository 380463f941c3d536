"""
agent.prompt - System prompt assembly for the active agent.

The persona text is taken verbatim from AgentSpec.instructions; this module
only appends the sections the orchestrator owns (available transfers and
the tool-result convention) so every agent sees them phrased the same way.
"""

from __future__ import annotations

from agent.agents import AgentRegistry, AgentSpec
from agent.handoff import handoff_tool_name

_TOOL_RESULT_NOTE = (
    "Tool results are for you, not the user. Relay them in your own words. "
    "If a tool result reports an error, ask the user a clarifying question "
    "instead of giving up."
)


def build_system_prompt(agent: AgentSpec, registry: AgentRegistry) -> str:
    """Build the system prompt for `agent`.

    Args:
        agent:    The currently active agent.
        registry: The deployment's agent registry (for target descriptions).

    Returns:
        Persona instructions followed by the transfer and tool sections.
    """
    sections = [agent.instructions.strip()]

    if agent.handoff_targets:
        lines = ["TRANSFERS:"]
        for name in sorted(agent.handoff_targets):
            target = registry.get(name)
            desc = f" - {target.handoff_description}" if target.handoff_description else ""
            lines.append(f"- {handoff_tool_name(name)}: {name}{desc}")
        lines.append(
            "Call a transfer tool only when the user needs that agent. "
            "The conversation history moves with the user."
        )
        sections.append("\n".join(lines))

    if len(agent.tools):
        sections.append(_TOOL_RESULT_NOTE)

    return "\n\n".join(sections)
