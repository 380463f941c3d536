"""
agent.session - The live orchestration context for one conversation.

Lifecycle:  IDLE -> CONNECTING -> ACTIVE -> CLOSING -> CLOSED
            (a failed connect goes back to IDLE; close() during CONNECTING
            waits for connect() to release the transport)

While ACTIVE, every transport event goes through handle_event(), which
holds a per-session lock for the whole event: a tool call, its approval
wait and any resulting handoff finish before the next event is looked at.
Exactly one agent is active at all times; only an accepted handoff
directive changes it, and the swap touches nothing else (history is
shared, so the new agent sees everything said so far).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Sequence, Union

from agent.agents import AgentRegistry, AgentSpec
from agent.approvals import ApprovalGate, ApprovalNotifier
from application.context import SessionContext
from application.dto import CloseReport, MemorySinkReport
from application.services.memory_sink import MemorySinkService
from domain.exceptions import (
    ApprovalDeniedError,
    DomainError,
    HandoffNotPermittedError,
    SessionClosedError,
    SessionConnectionError,
    SessionStateError,
)
from domain.models import (
    ApprovalRequest,
    ConversationItem,
    HandoffDirective,
    ItemType,
    Role,
    SessionEvent,
    SessionEventType,
    SessionState,
    ToolCallRequest,
)
from domain.ports import CredentialIssuerPort, ModelTransportPort

logger = logging.getLogger(__name__)

HistoryListener = Callable[[Sequence[ConversationItem]], Union[None, Awaitable[None]]]
AgentListener = Callable[[AgentSpec], Union[None, Awaitable[None]]]


class AgentSession:
    """Owns the active agent, the history, and the dispatch loop.

    Constructed by ServiceFactory.create_session(); adapters only call
    connect(), send_user_text(), approve()/deny() and close().
    """

    def __init__(
        self,
        ctx: SessionContext,
        agents: AgentRegistry,
        initial_agent: str,
        transport: ModelTransportPort,
        credentials: CredentialIssuerPort,
        memory_sink: Optional[MemorySinkService] = None,
        approval_timeout: Optional[float] = 30.0,
        on_approval_requested: Optional[ApprovalNotifier] = None,
        on_history_updated: Optional[HistoryListener] = None,
        on_agent_changed: Optional[AgentListener] = None,
    ):
        agents.validate()
        self._ctx = ctx
        self._agents = agents
        self._active: AgentSpec = agents.get(initial_agent)
        self._transport = transport
        self._credentials = credentials
        self._memory_sink = memory_sink
        self._approvals = ApprovalGate(timeout=approval_timeout)
        self._on_approval_requested = on_approval_requested
        self._on_history_updated = on_history_updated
        self._on_agent_changed = on_agent_changed

        self._state = SessionState.IDLE
        self._history: list[ConversationItem] = []
        self._item_ids: set[str] = set()
        self._next_item = 0
        self._dispatch_lock = asyncio.Lock()
        self._pump_task: Optional[asyncio.Task] = None
        self._connect_settled = asyncio.Event()
        self._close_report: Optional[CloseReport] = None

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def ctx(self) -> SessionContext:
        return self._ctx

    @property
    def session_id(self) -> str:
        return self._ctx.session_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active_agent(self) -> AgentSpec:
        return self._active

    @property
    def history(self) -> tuple[ConversationItem, ...]:
        return tuple(self._history)

    @property
    def pending_approvals(self) -> frozenset[str]:
        return self._approvals.pending

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, *, start_pump: bool = True) -> None:
        """Acquire a credential, open the transport, and start dispatching.

        Raises SessionConnectionError (state returns to IDLE) on failure,
        and SessionClosedError when close() was called while connecting.
        """
        if self._state != SessionState.IDLE:
            raise SessionStateError(f"connect() requires IDLE, session is {self._state.value}")

        self._state = SessionState.CONNECTING
        self._connect_settled.clear()
        logger.info(
            "Session %s connecting (user=%s, agent=%s)",
            self.session_id, self._ctx.user_id, self._active.name,
        )
        try:
            try:
                credential = await self._credentials.issue()
                if self._state == SessionState.CONNECTING:
                    await self._transport.connect(credential, self._active)
            except Exception as e:
                if self._state == SessionState.CONNECTING:
                    self._state = SessionState.IDLE
                logger.error("Session %s failed to connect: %s", self.session_id, e)
                await self._release_transport()
                if isinstance(e, SessionConnectionError):
                    raise
                raise SessionConnectionError(f"Could not connect session: {e}") from e

            if self._state != SessionState.CONNECTING:
                logger.info("Session %s closed while connecting", self.session_id)
                await self._release_transport()
                raise SessionClosedError(f"Session {self.session_id} was closed while connecting")

            self._state = SessionState.ACTIVE
            if start_pump:
                self._pump_task = asyncio.create_task(
                    self._pump(), name=f"session-{self.session_id}-pump",
                )
        finally:
            self._connect_settled.set()
        logger.info("Session %s active", self.session_id)

    async def send_user_text(self, text: str) -> None:
        """Forward a typed user turn to the model transport."""
        self._require_active()
        self._ctx.new_request()
        await self._transport.send_user_text(text)

    def approve(self, call_id: str) -> bool:
        return self._approvals.resolve(call_id, True)

    def deny(self, call_id: str) -> bool:
        return self._approvals.resolve(call_id, False)

    async def close(self, *, cancel_inflight: bool = False) -> CloseReport:
        """Stop the session and hand the final history to the memory sink.

        Waits for the event being dispatched to finish (or cancels it with
        cancel_inflight=True) so the sink never reads half-applied state.
        Calling close() again returns the first report.
        """
        if self._close_report is not None:
            return self._close_report
        if self._state in (SessionState.CLOSING, SessionState.CLOSED):
            raise SessionStateError("close() already in progress")

        connecting = self._state == SessionState.CONNECTING
        was_connected = self._state == SessionState.ACTIVE
        self._state = SessionState.CLOSING
        logger.info("Session %s closing (cancel_inflight=%s)", self.session_id, cancel_inflight)
        if connecting:
            # connect() sees CLOSING and releases the transport itself
            await self._connect_settled.wait()

        cancelled = False
        if cancel_inflight:
            cancelled = self._dispatch_lock.locked()
            self._approvals.deny_all()
            await self._stop_pump()
        async with self._dispatch_lock:
            # Nothing is in flight past this point; the pump, if any, is
            # parked waiting for the next event.
            if not cancel_inflight:
                await self._stop_pump()

        if was_connected:
            await self._release_transport()

        memory: Optional[MemorySinkReport] = None
        if self._memory_sink is not None:
            memory = await self._memory_sink.persist(self._ctx, self.history)

        self._state = SessionState.CLOSED
        self._close_report = CloseReport(
            session_id=self.session_id,
            final_agent=self._active.name,
            history_length=len(self._history),
            memory=memory,
            cancelled_inflight=cancelled,
        )
        logger.info(
            "Session %s closed on agent %s with %d item(s)",
            self.session_id, self._active.name, len(self._history),
        )
        return self._close_report

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def handle_event(self, event: SessionEvent) -> None:
        """Process one transport event to completion.

        Raises SessionClosedError once closing has begun.
        """
        if self._state in (SessionState.CLOSING, SessionState.CLOSED):
            raise SessionClosedError(f"Session {self.session_id} is {self._state.value}")
        self._require_active()

        async with self._dispatch_lock:
            if self._state != SessionState.ACTIVE:
                raise SessionClosedError(f"Session {self.session_id} is {self._state.value}")

            if event.type == SessionEventType.CONVERSATION_ITEM:
                await self._append(event.item)
            elif event.type == SessionEventType.TOOL_CALL:
                await self._handle_tool_call(event.tool_call)
            elif event.type == SessionEventType.HANDOFF:
                await self._handle_handoff(event.handoff)
            elif event.type == SessionEventType.TRANSPORT_ERROR:
                logger.error("Transport error in session %s: %s", self.session_id, event.error)
            else:
                logger.warning("Unhandled event type %r in session %s", event.type, self.session_id)

    async def _pump(self) -> None:
        try:
            async for event in self._transport.events():
                if self._state != SessionState.ACTIVE:
                    break
                try:
                    await self.handle_event(event)
                except SessionClosedError:
                    break
                except Exception:
                    logger.exception(
                        "Event %s failed in session %s", event.type.value, self.session_id,
                    )
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Transport stream failed for session %s", self.session_id)

    async def _stop_pump(self) -> None:
        task, self._pump_task = self._pump_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _append(self, item: Optional[ConversationItem]) -> None:
        if item is None:
            return
        item_id = item.item_id
        if not item_id:
            item_id = self._new_item_id()
        elif item_id in self._item_ids:
            logger.debug("Dropping duplicate item %s in session %s", item_id, self.session_id)
            return
        if item_id != item.item_id:
            item = ConversationItem(
                item_id=item_id,
                role=item.role,
                content=item.content,
                item_type=item.item_type,
                tool_name=item.tool_name,
                arguments=item.arguments,
                output=item.output,
            )
        self._item_ids.add(item_id)
        self._history.append(item)
        await self._notify_history()

    def _new_item_id(self) -> str:
        while True:
            self._next_item += 1
            candidate = f"item_{self._next_item:05d}"
            if candidate not in self._item_ids:
                return candidate

    async def _release_transport(self) -> None:
        try:
            await self._transport.close()
        except Exception:
            logger.exception("Error releasing transport for session %s", self.session_id)

    async def _notify_history(self) -> None:
        if self._on_history_updated is None:
            return
        try:
            result = self._on_history_updated(self.history)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("History listener failed in session %s", self.session_id)

    # ------------------------------------------------------------------
    # Tool calls
    # ------------------------------------------------------------------

    async def _handle_tool_call(self, call: Optional[ToolCallRequest]) -> None:
        if call is None:
            return
        agent = self._active
        output = await self._run_tool(agent, call)
        await self._append(ConversationItem(
            item_id="",
            role=Role.ASSISTANT,
            item_type=ItemType.FUNCTION_CALL,
            tool_name=call.name,
            arguments=dict(call.arguments),
            output=output,
        ))
        await self._transport.send_tool_result(call.call_id, output)

    async def _run_tool(self, agent: AgentSpec, call: ToolCallRequest) -> str:
        """Invoke a tool for `agent`; every failure becomes result text."""
        tools = agent.tools
        if call.name not in tools:
            logger.warning(
                "Agent %s has no tool '%s' (session=%s)", agent.name, call.name, self.session_id,
            )
            return (
                f"UnknownToolError: '{call.name}' is not available to {agent.name}. "
                f"Available tools: {', '.join(tools.names()) or 'none'}."
            )

        try:
            if tools.requires_approval(call.name):
                tools.validate(call.name, call.arguments)
                approved = await self._approvals.request(
                    ApprovalRequest(
                        call_id=call.call_id,
                        agent_name=agent.name,
                        tool_name=call.name,
                        arguments=dict(call.arguments),
                    ),
                    notify=self._on_approval_requested,
                )
                if not approved:
                    raise ApprovalDeniedError(
                        f"the user did not approve '{call.name}'. "
                        "Tell the user the action was not performed."
                    )

            output = await tools.invoke(call.name, self._ctx, call.arguments)
            logger.info(
                "Tool %s.%s ok (session=%s, request=%s)",
                agent.name, call.name, self.session_id, self._ctx.request_id,
            )
            return output
        except DomainError as e:
            logger.info("Tool %s.%s reported %s: %s", agent.name, call.name, type(e).__name__, e)
            return f"{type(e).__name__}: {e}"
        except Exception as e:
            logger.exception("Tool %s.%s crashed (session=%s)", agent.name, call.name, self.session_id)
            return f"ToolError: {call.name} failed unexpectedly ({e}). Try again or continue without it."

    # ------------------------------------------------------------------
    # Handoffs
    # ------------------------------------------------------------------

    async def _handle_handoff(self, directive: Optional[HandoffDirective]) -> None:
        if directive is None:
            return
        source = self._active
        try:
            target = self._agents.resolve_handoff(source.name, directive.target)
        except HandoffNotPermittedError as e:
            logger.warning("%s (session=%s)", e, self.session_id)
            if directive.call_id:
                allowed = ", ".join(sorted(source.handoff_targets)) or "none"
                await self._transport.send_tool_result(
                    directive.call_id,
                    f"HandoffNotPermittedError: {e}. You can transfer to: {allowed}. "
                    "Keep helping the user yourself.",
                )
            return

        self._active = target
        logger.info(
            "Handoff %s -> %s (session=%s, reason=%s)",
            source.name, target.name, self.session_id, directive.reason or "-",
        )
        await self._transport.update_agent(target)
        if directive.call_id:
            await self._transport.send_tool_result(
                directive.call_id,
                f"Transferred to {target.name}. Continue the conversation as {target.name}.",
            )
        await self._notify_agent_changed(target)

    async def _notify_agent_changed(self, agent: AgentSpec) -> None:
        if self._on_agent_changed is None:
            return
        try:
            result = self._on_agent_changed(agent)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Agent listener failed in session %s", self.session_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_active(self) -> None:
        if self._state != SessionState.ACTIVE:
            raise SessionStateError(
                f"Session {self.session_id} is {self._state.value}, not active"
            )
