"""
infrastructure.llm.chat_transport - ModelTransportPort over a LangChain chat model.

Drives a text conversation with any tool-calling chat model:

    send_user_text / send_tool_result
        -> append to the transcript, schedule a model turn
    model turn
        -> system prompt of the ACTIVE agent + transcript, bound to that
           agent's tools and transfer_to_<target> tools
        -> at most one tool call per turn becomes a TOOL_CALL or HANDOFF
           event; plain content becomes an assistant CONVERSATION_ITEM

Turns run one at a time in background tasks so the session's dispatch
loop is never blocked waiting on the model.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import AsyncIterator, Callable, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from agent.agents import AgentRegistry, AgentSpec
from agent.handoff import handoff_tool_specs, is_handoff_tool, target_from_tool_name
from agent.prompt import build_system_prompt
from domain.exceptions import SessionConnectionError
from domain.models import (
    ConversationItem,
    HandoffDirective,
    Role,
    SessionEvent,
    ToolCallRequest,
)

logger = logging.getLogger(__name__)

ChatModelFactory = Callable[[str], BaseChatModel]

_CLOSED = object()


class ChatModelTransport:
    """Implements ModelTransportPort with a LangChain chat model.

    `llm_factory` receives the credential issued for the session and
    returns the chat model to use for it.
    """

    def __init__(self, llm_factory: ChatModelFactory, agents: AgentRegistry):
        self._llm_factory = llm_factory
        self._agents = agents
        self._llm: Optional[BaseChatModel] = None
        self._agent: Optional[AgentSpec] = None
        self._transcript: list[BaseMessage] = []
        self._queue: asyncio.Queue = asyncio.Queue()
        self._turn_lock = asyncio.Lock()
        self._turns: set[asyncio.Task] = set()
        self._connected = False

    @property
    def transcript(self) -> tuple[BaseMessage, ...]:
        return tuple(self._transcript)

    async def connect(self, credential: str, agent: AgentSpec) -> None:
        try:
            self._llm = self._llm_factory(credential)
        except Exception as e:
            raise SessionConnectionError(f"Could not build chat model: {e}") from e
        self._agent = agent
        self._connected = True
        logger.info("Chat transport connected (agent=%s)", agent.name)

    async def update_agent(self, agent: AgentSpec) -> None:
        self._require_connected()
        logger.info("Chat transport switching agent %s -> %s", self._agent.name, agent.name)
        self._agent = agent

    async def send_user_text(self, text: str) -> None:
        self._require_connected()
        self._transcript.append(HumanMessage(content=text))
        await self._queue.put(SessionEvent.conversation_item(
            ConversationItem(item_id=f"user_{uuid.uuid4().hex[:12]}", role=Role.USER, content=text)
        ))
        self._schedule_turn()

    async def send_tool_result(self, call_id: str, output: str) -> None:
        self._require_connected()
        self._transcript.append(ToolMessage(content=output, tool_call_id=call_id))
        self._schedule_turn()

    async def events(self) -> AsyncIterator[SessionEvent]:
        while True:
            event = await self._queue.get()
            if event is _CLOSED:
                return
            yield event

    async def close(self) -> None:
        if not self._connected and not self._turns:
            await self._queue.put(_CLOSED)
            return
        self._connected = False
        turns = list(self._turns)
        for task in turns:
            task.cancel()
        if turns:
            await asyncio.gather(*turns, return_exceptions=True)
        await self._queue.put(_CLOSED)
        logger.info("Chat transport closed")

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def _schedule_turn(self) -> None:
        task = asyncio.create_task(self._run_turn())
        self._turns.add(task)
        task.add_done_callback(self._turns.discard)

    async def _run_turn(self) -> None:
        async with self._turn_lock:
            if not self._connected:
                return
            agent = self._agent
            try:
                response = await self._invoke(agent)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Model turn failed for agent %s: %s", agent.name, e)
                await self._queue.put(SessionEvent.transport_error(f"model turn failed: {e}"))
                return
            await self._publish(response)

    async def _invoke(self, agent: AgentSpec) -> AIMessage:
        specs = agent.tools.to_tool_specs() + handoff_tool_specs(agent, self._agents)
        llm = self._llm.bind_tools(specs) if specs else self._llm
        messages = [SystemMessage(content=build_system_prompt(agent, self._agents))]
        messages.extend(self._transcript)
        logger.debug("Invoking model for %s with %d message(s)", agent.name, len(messages))
        return await llm.ainvoke(messages)

    async def _publish(self, response: AIMessage) -> None:
        text = _content_text(response.content)
        tool_calls = list(getattr(response, "tool_calls", None) or [])

        if not tool_calls:
            self._transcript.append(AIMessage(content=text))
            if text:
                await self._queue.put(SessionEvent.conversation_item(
                    ConversationItem(item_id="", role=Role.ASSISTANT, content=text)
                ))
            return

        if len(tool_calls) > 1:
            logger.info("Model requested %d tool calls, keeping the first", len(tool_calls))
        call = tool_calls[0]
        call_id = call.get("id") or f"call_{uuid.uuid4().hex[:12]}"
        name = call["name"]
        arguments = dict(call.get("args") or {})
        self._transcript.append(AIMessage(
            content=text,
            tool_calls=[{"id": call_id, "name": name, "args": arguments}],
        ))

        if text:
            await self._queue.put(SessionEvent.conversation_item(
                ConversationItem(item_id="", role=Role.ASSISTANT, content=text)
            ))

        if is_handoff_tool(name):
            target = target_from_tool_name(name, self._agents.names())
            await self._queue.put(SessionEvent.handoff_directive(
                HandoffDirective(target=target, call_id=call_id, reason=str(arguments.get("reason", "")))
            ))
        else:
            await self._queue.put(SessionEvent.tool_call_request(
                ToolCallRequest(call_id=call_id, name=name, arguments=arguments)
            ))

    def _require_connected(self) -> None:
        if not self._connected:
            raise SessionConnectionError("Chat transport is not connected")


def _content_text(content) -> str:
    if isinstance(content, str):
        return content.strip()
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return " ".join(p.strip() for p in parts if p and p.strip())
