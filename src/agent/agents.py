"""
agent.agents - Agent specs and the name-keyed agent registry.

Handoff targets are stored as names, not object references, so agents can
point at each other in any order (including cycles back to a hub agent).
Names are resolved through the registry at dispatch time; validate() makes
sure every name resolves before a session is created.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from agent.tools.registry import ToolRegistry
from application.dto import AgentSummary
from domain.exceptions import ConfigurationError, HandoffNotPermittedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AgentSpec:
    """A named persona: instructions, tools, and permitted handoff targets.

    `instructions` is opaque to the orchestrator and only forwarded to the
    model. `handoff_description` is shown to agents that can transfer here.
    """
    name: str
    instructions: str
    tools: ToolRegistry = field(default_factory=ToolRegistry, compare=False)
    handoff_targets: frozenset[str] = frozenset()
    handoff_description: str = ""

    def can_hand_off_to(self, target: str) -> bool:
        return target in self.handoff_targets

    def summary(self) -> AgentSummary:
        return AgentSummary(
            name=self.name,
            handoff_description=self.handoff_description,
            tools=tuple(self.tools.names()),
            handoff_targets=tuple(sorted(self.handoff_targets)),
        )


class AgentRegistry:
    """All agents of one deployment, keyed by unique name."""

    def __init__(self, agents: Iterable[AgentSpec] = ()):
        self._agents: dict[str, AgentSpec] = {}
        for agent in agents:
            self.register(agent)

    def register(self, agent: AgentSpec) -> None:
        if agent.name in self._agents:
            raise ConfigurationError(f"Agent '{agent.name}' registered twice")
        self._agents[agent.name] = agent
        logger.debug("Registered agent: %s -> %s", agent.name, sorted(agent.handoff_targets))

    def get(self, name: str) -> AgentSpec:
        if name not in self._agents:
            raise KeyError(f"Agent '{name}' not registered")
        return self._agents[name]

    def names(self) -> list[str]:
        return list(self._agents.keys())

    def all(self) -> list[AgentSpec]:
        return list(self._agents.values())

    def __contains__(self, name: object) -> bool:
        return name in self._agents

    def __len__(self) -> int:
        return len(self._agents)

    def validate(self) -> None:
        """Fail fast if any handoff target does not name a registered agent."""
        problems = []
        for agent in self._agents.values():
            missing = sorted(t for t in agent.handoff_targets if t not in self._agents)
            if missing:
                problems.append(f"{agent.name} -> {', '.join(missing)}")
        if problems:
            raise ConfigurationError(
                "Unresolved handoff targets: " + "; ".join(problems)
            )

    def resolve_handoff(self, source: str, target: str) -> AgentSpec:
        """Return the target agent if `source` may hand off to it.

        Raises HandoffNotPermittedError otherwise.
        """
        source_agent = self.get(source)
        if not source_agent.can_hand_off_to(target) or target not in self._agents:
            raise HandoffNotPermittedError(source, target)
        return self._agents[target]

    def graph(self) -> dict[str, tuple[str, ...]]:
        """Adjacency list of the handoff graph."""
        return {a.name: tuple(sorted(a.handoff_targets)) for a in self._agents.values()}
