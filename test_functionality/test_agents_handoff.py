"""
Tests for the agent registry, handoff resolution and transfer tools
===================================================================
"""

from __future__ import annotations

import random

import pytest

from agent.agents import AgentRegistry, AgentSpec
from agent.catalog import (
    CHECKIN_AGENT,
    CONTACT_AGENT,
    STOCK_AGENT,
    VOICE_AGENT,
    WEATHER_AGENT,
    build_default_agents,
)
from agent.handoff import (
    handoff_tool_name,
    handoff_tool_specs,
    is_handoff_tool,
    target_from_tool_name,
)
from agent.prompt import build_system_prompt
from domain.exceptions import ConfigurationError, HandoffNotPermittedError

from conftest import FakeParser


def _random_registry(rng: random.Random, size: int) -> AgentRegistry:
    names = [f"agent_{i}" for i in range(size)]
    agents = []
    for name in names:
        others = [n for n in names if n != name]
        targets = frozenset(rng.sample(others, rng.randint(0, len(others))))
        agents.append(AgentSpec(name=name, instructions=f"I am {name}", handoff_targets=targets))
    return AgentRegistry(agents)


# ═══════════════════════════════════════════════════════════════════════════════
# REGISTRY
# ═══════════════════════════════════════════════════════════════════════════════


class TestAgentRegistry:
    """Name-keyed registry and graph validation."""

    def test_duplicate_name_rejected(self):
        registry = AgentRegistry([AgentSpec(name="a", instructions="")])
        with pytest.raises(ConfigurationError):
            registry.register(AgentSpec(name="a", instructions="again"))

    def test_unresolved_target_fails_validation(self):
        registry = AgentRegistry([
            AgentSpec(name="a", instructions="", handoff_targets=frozenset({"ghost"})),
        ])
        with pytest.raises(ConfigurationError) as exc_info:
            registry.validate()
        assert "ghost" in str(exc_info.value)

    def test_cycles_are_allowed(self, small_agents):
        small_agents.validate()
        assert small_agents.graph()["hub"] == ("stock_agent", "weather_agent")
        assert small_agents.graph()["weather_agent"] == ("hub",)

    def test_permitted_handoff_resolves(self, small_agents):
        target = small_agents.resolve_handoff("hub", "weather_agent")
        assert target.name == "weather_agent"

    def test_non_permitted_handoff_rejected(self, small_agents):
        with pytest.raises(HandoffNotPermittedError) as exc_info:
            small_agents.resolve_handoff("weather_agent", "stock_agent")
        assert exc_info.value.source == "weather_agent"
        assert exc_info.value.target == "stock_agent"

    @pytest.mark.parametrize("seed", range(20))
    def test_resolution_matches_declared_targets(self, seed):
        """Over random graphs, a handoff resolves iff the target is declared."""
        rng = random.Random(seed)
        registry = _random_registry(rng, rng.randint(2, 6))
        registry.validate()
        names = registry.names() + ["unknown_agent"]
        for source in registry.names():
            for target in names:
                declared = registry.get(source).can_hand_off_to(target)
                if declared:
                    assert registry.resolve_handoff(source, target).name == target
                else:
                    with pytest.raises(HandoffNotPermittedError):
                        registry.resolve_handoff(source, target)


# ═══════════════════════════════════════════════════════════════════════════════
# TRANSFER TOOLS
# ═══════════════════════════════════════════════════════════════════════════════


class TestTransferTools:
    """transfer_to_<agent> naming and specs."""

    def test_tool_name_slug(self):
        assert handoff_tool_name("Weather Agent") == "transfer_to_weather_agent"
        assert handoff_tool_name("stock_agent") == "transfer_to_stock_agent"
        assert is_handoff_tool("transfer_to_hub")
        assert not is_handoff_tool("get_weather")

    def test_target_lookup_covers_all_agents(self, small_agents):
        names = small_agents.names()
        assert target_from_tool_name("transfer_to_stock_agent", names) == "stock_agent"
        assert target_from_tool_name("transfer_to_nobody", names) == "nobody"
        assert target_from_tool_name("get_weather", names) is None

    def test_specs_only_for_permitted_targets(self, small_agents):
        specs = handoff_tool_specs(small_agents.get("weather_agent"), small_agents)
        assert [s["function"]["name"] for s in specs] == ["transfer_to_hub"]

    def test_spec_includes_target_description(self, small_agents):
        specs = handoff_tool_specs(small_agents.get("hub"), small_agents)
        by_name = {s["function"]["name"]: s["function"] for s in specs}
        assert "Weather expert" in by_name["transfer_to_weather_agent"]["description"]

    def test_system_prompt_lists_transfers(self, small_agents):
        prompt = build_system_prompt(small_agents.get("hub"), small_agents)
        assert prompt.startswith("You route users to specialists.")
        assert "transfer_to_weather_agent" in prompt
        assert "transfer_to_stock_agent" in prompt

    def test_system_prompt_tool_note_only_with_tools(self, small_agents):
        hub_prompt = build_system_prompt(small_agents.get("hub"), small_agents)
        weather_prompt = build_system_prompt(small_agents.get("weather_agent"), small_agents)
        assert "Tool results" not in hub_prompt
        assert "Tool results" in weather_prompt


# ═══════════════════════════════════════════════════════════════════════════════
# DEFAULT CATALOG
# ═══════════════════════════════════════════════════════════════════════════════


class TestDefaultCatalog:
    """The shipped deployment graph."""

    def test_graph_shape(self):
        registry = build_default_agents(FakeParser())
        graph = registry.graph()
        assert set(graph[VOICE_AGENT]) == {WEATHER_AGENT, STOCK_AGENT, CHECKIN_AGENT, CONTACT_AGENT}
        assert graph[WEATHER_AGENT] == (VOICE_AGENT,)
        assert set(graph[STOCK_AGENT]) == {VOICE_AGENT, WEATHER_AGENT}
        assert graph[CHECKIN_AGENT] == (VOICE_AGENT,)
        assert graph[CONTACT_AGENT] == (VOICE_AGENT,)

    def test_specialist_tools(self):
        registry = build_default_agents(FakeParser())
        assert registry.get(WEATHER_AGENT).tools.names() == ["get_weather"]
        assert registry.get(STOCK_AGENT).tools.names() == ["get_stock_price"]
        assert registry.get(CHECKIN_AGENT).tools.names() == [
            "record_field", "get_current_field", "finalize_interview",
        ]

    def test_approval_required_tools_applied(self):
        registry = build_default_agents(FakeParser(), approval_required_tools=["get_stock_price"])
        assert registry.get(STOCK_AGENT).tools.requires_approval("get_stock_price")
        assert not registry.get(WEATHER_AGENT).tools.requires_approval("get_weather")
