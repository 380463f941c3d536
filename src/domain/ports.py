"""
domain.ports - Abstract interfaces (Protocols) for all system boundaries.

These define WHAT the orchestrator needs from its external collaborators
without specifying HOW. Infrastructure modules provide concrete
implementations; the session and services depend only on these protocols.

Using typing.Protocol (structural typing) instead of ABC. Any class that
implements the methods satisfies the port without explicit inheritance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, AsyncIterator, Protocol, runtime_checkable

from pydantic import BaseModel

from domain.models import MemoryWriteResult, ParseOutcome, SessionEvent

if TYPE_CHECKING:
    from agent.agents import AgentSpec


# ---------------------------------------------------------------------------
# Model collaborator
# ---------------------------------------------------------------------------

@runtime_checkable
class CredentialIssuerPort(Protocol):
    """Issue a short-lived credential for one session's model transport."""

    async def issue(self) -> str: ...


@runtime_checkable
class ModelTransportPort(Protocol):
    """Streaming channel to the model collaborator.

    The transport turns model output into SessionEvents. It never changes
    the active agent itself; the session calls update_agent() after a
    handoff has been accepted.
    """

    async def connect(self, credential: str, agent: AgentSpec) -> None: ...
    async def update_agent(self, agent: AgentSpec) -> None: ...
    async def send_user_text(self, text: str) -> None: ...
    async def send_tool_result(self, call_id: str, output: str) -> None: ...
    def events(self) -> AsyncIterator[SessionEvent]: ...
    async def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Parsing collaborator
# ---------------------------------------------------------------------------

@runtime_checkable
class RecordParserPort(Protocol):
    """Turn a raw text blob into a record conforming to `schema`.

    Returns ParseOutcome.failure(...) on refusal or invalid output; never
    a value that violates the schema.
    """

    async def parse(self, raw_text: str, schema: type[BaseModel]) -> ParseOutcome: ...


# ---------------------------------------------------------------------------
# Memory store
# ---------------------------------------------------------------------------

@runtime_checkable
class MemoryStorePort(Protocol):
    """Write-only long-term memory store."""

    async def add(
        self,
        messages: list[dict[str, str]],
        user_id: str,
        metadata: dict[str, Any],
    ) -> MemoryWriteResult: ...
