"""
Shared fixtures and fakes for the orchestrator tests.

Every port has an in-memory fake here; nothing in the suite talks to a
model provider, mem0 or the network.
"""

from __future__ import annotations

import asyncio
import os
import sys
from typing import Any, Callable, Optional

import pytest
from langchain_core.language_models.fake_chat_models import FakeMessagesListChatModel

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from agent.agents import AgentRegistry, AgentSpec
from agent.catalog import build_default_agents
from agent.session import AgentSession
from agent.tools.registry import ToolRegistry
from agent.tools.stock import GetStockPriceTool
from agent.tools.weather import GetWeatherTool
from application.context import SessionContext
from application.services.memory_sink import MemorySinkService
from domain.models import MemoryWriteResult, ParseOutcome


# ═══════════════════════════════════════════════════════════════════════════════
# FAKE PORTS
# ═══════════════════════════════════════════════════════════════════════════════


class FakeTransport:
    """ModelTransportPort that records outbound calls and replays pushed events."""

    def __init__(self, fail_connect: Optional[Exception] = None):
        self.fail_connect = fail_connect
        self.connected_with: Optional[tuple[str, str]] = None
        self.agent_updates: list[str] = []
        self.user_texts: list[str] = []
        self.tool_results: list[tuple[str, str]] = []
        self.closed = 0
        self._queue: asyncio.Queue = asyncio.Queue()

    async def connect(self, credential, agent):
        if self.fail_connect is not None:
            raise self.fail_connect
        self.connected_with = (credential, agent.name)

    async def update_agent(self, agent):
        self.agent_updates.append(agent.name)

    async def send_user_text(self, text):
        self.user_texts.append(text)

    async def send_tool_result(self, call_id, output):
        self.tool_results.append((call_id, output))

    def push(self, event) -> None:
        self._queue.put_nowait(event)

    async def events(self):
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    async def close(self):
        self.closed += 1
        self._queue.put_nowait(None)


class FakeIssuer:
    """CredentialIssuerPort returning a fixed key, or raising."""

    def __init__(self, credential: str = "test-key", error: Optional[Exception] = None):
        self.credential = credential
        self.error = error
        self.calls = 0

    async def issue(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.credential


class FakeParser:
    """RecordParserPort that validates the raw text with a caller-supplied function."""

    def __init__(self, handler: Optional[Callable[[str, Any], ParseOutcome]] = None):
        self.handler = handler
        self.calls: list[tuple[str, Any]] = []

    async def parse(self, raw_text, schema) -> ParseOutcome:
        self.calls.append((raw_text, schema))
        if self.handler is not None:
            return self.handler(raw_text, schema)
        return ParseOutcome.failure("no handler configured")


class FakeMemoryStore:
    """MemoryStorePort that records every add() call."""

    def __init__(self, fail_when: Optional[Callable[[list, dict], bool]] = None):
        self.fail_when = fail_when
        self.calls: list[dict[str, Any]] = []

    async def add(self, messages, user_id, metadata) -> MemoryWriteResult:
        self.calls.append({"messages": messages, "user_id": user_id, "metadata": metadata})
        if self.fail_when is not None and self.fail_when(messages, metadata):
            return MemoryWriteResult(success=False, error="store unavailable")
        return MemoryWriteResult(success=True)


class ToolCallingFakeChatModel(FakeMessagesListChatModel):
    """Scripted chat model that accepts bind_tools() and records each prompt."""

    seen: list = []

    def bind_tools(self, tools, **kwargs):
        return self

    def _generate(self, messages, stop=None, run_manager=None, **kwargs):
        self.seen.append(list(messages))
        return super()._generate(messages, stop=stop, run_manager=run_manager, **kwargs)


# ═══════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════


def build_small_agents(approval_required: tuple[str, ...] = ()) -> AgentRegistry:
    """hub -> weather_agent, stock_agent; weather_agent -> hub; stock_agent -> hub."""
    weather_tools = ToolRegistry([GetWeatherTool()])
    weather_tools.require_approval(approval_required)
    stock_tools = ToolRegistry([GetStockPriceTool()])
    stock_tools.require_approval(approval_required)
    return AgentRegistry([
        AgentSpec(
            name="hub",
            instructions="You route users to specialists.",
            handoff_targets=frozenset({"weather_agent", "stock_agent"}),
        ),
        AgentSpec(
            name="weather_agent",
            instructions="You know the weather.",
            tools=weather_tools,
            handoff_targets=frozenset({"hub"}),
            handoff_description="Weather expert",
        ),
        AgentSpec(
            name="stock_agent",
            instructions="You know stock prices.",
            tools=stock_tools,
            handoff_targets=frozenset({"hub"}),
            handoff_description="Stock expert",
        ),
    ])


@pytest.fixture
def ctx() -> SessionContext:
    return SessionContext(user_id="user-1")


@pytest.fixture
def small_agents() -> AgentRegistry:
    return build_small_agents()


@pytest.fixture
def parser() -> FakeParser:
    return FakeParser()


@pytest.fixture
def default_agents(parser) -> AgentRegistry:
    return build_default_agents(parser)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def memory_store() -> FakeMemoryStore:
    return FakeMemoryStore()


@pytest.fixture
def make_session(transport, memory_store):
    """Build sessions over the fake transport and the shared fake memory store."""

    def _make(
        agents: AgentRegistry,
        initial_agent: str,
        *,
        ctx: Optional[SessionContext] = None,
        transport_: Optional[FakeTransport] = None,
        issuer: Optional[FakeIssuer] = None,
        with_memory: bool = True,
        **kwargs,
    ) -> AgentSession:
        return AgentSession(
            ctx=ctx or SessionContext(user_id="user-1"),
            agents=agents,
            initial_agent=initial_agent,
            transport=transport_ or transport,
            credentials=issuer or FakeIssuer(),
            memory_sink=MemorySinkService(memory_store) if with_memory else None,
            **kwargs,
        )

    return _make
