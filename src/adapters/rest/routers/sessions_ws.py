"""WebSocket endpoint for a live multi-agent session."""

import logging
from typing import Optional, Sequence

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from adapters.rest.dependencies import get_factory
from adapters.rest.schemas import (
    ApprovalFrame,
    ClientFrame,
    CloseFrame,
    ItemOut,
    MemoryOut,
    UserTextFrame,
)
from agent.agents import AgentSpec
from agent.session import AgentSession
from application.dto import CloseReport
from domain.exceptions import SessionConnectionError
from domain.models import ApprovalRequest, ConversationItem

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws/session")
async def websocket_session(
    ws: WebSocket,
    user_id: Optional[str] = Query(default=None),
):
    """
    One WebSocket = one AgentSession.

    Protocol (JSON frames):
      - Client sends: {"type": "user_text", "text": "..."}
                      {"type": "approval", "call_id": "...", "approved": true}
                      {"type": "close"}
      - Server sends: {"type": "state", "state": "...", "agent": "..."}
                      {"type": "history", "agent": "...", "items": [...]}
                      {"type": "approval_request", "call_id": ..., "tool_name": ..., ...}
                      {"type": "error", "detail": "..."}
                      {"type": "closed", "final_agent": "...", "memory": {...}}
      - A state frame is sent on connect and after each accepted handoff
      - On connect failure: error frame, then close 1011
      - A close frame denies any pending approval and stops the call in flight
    """
    factory = get_factory()
    await ws.accept()

    holder: dict = {}

    async def on_history(history: Sequence[ConversationItem]) -> None:
        session: AgentSession = holder["session"]
        await ws.send_json({
            "type": "history",
            "agent": session.active_agent.name,
            "items": [ItemOut.from_item(i).model_dump() for i in history],
        })

    async def on_agent_changed(agent: AgentSpec) -> None:
        await _send_state(ws, holder["session"])

    async def on_approval(request: ApprovalRequest) -> None:
        await ws.send_json({
            "type": "approval_request",
            "call_id": request.call_id,
            "agent": request.agent_name,
            "tool_name": request.tool_name,
            "arguments": request.arguments,
        })

    session = factory.create_session(
        user_id,
        on_approval_requested=on_approval,
        on_history_updated=on_history,
        on_agent_changed=on_agent_changed,
    )
    holder["session"] = session

    try:
        await session.connect()
    except SessionConnectionError as e:
        await ws.send_json({"type": "error", "detail": str(e)})
        await ws.close(code=1011)
        return

    await _send_state(ws, session)
    logger.info("WS session %s opened for user %s", session.session_id, session.ctx.user_id)

    try:
        while True:
            raw = await ws.receive_json()
            try:
                frame = ClientFrame.model_validate({"frame": raw}).frame
            except ValidationError as e:
                await ws.send_json({"type": "error", "detail": e.errors(include_url=False, include_context=False)})
                continue

            if isinstance(frame, UserTextFrame):
                await session.send_user_text(frame.text)
            elif isinstance(frame, ApprovalFrame):
                resolved = session.approve(frame.call_id) if frame.approved else session.deny(frame.call_id)
                if not resolved:
                    await ws.send_json({
                        "type": "error",
                        "detail": f"No pending approval with call_id '{frame.call_id}'",
                    })
            elif isinstance(frame, CloseFrame):
                report = await session.close(cancel_inflight=True)
                await ws.send_json(_closed_frame(report))
                await ws.close()
                return
    except WebSocketDisconnect:
        logger.info("WS session %s disconnected", session.session_id)
        await session.close(cancel_inflight=True)
    except Exception as exc:
        logger.exception("Unhandled error in WS session %s", session.session_id)
        await session.close(cancel_inflight=True)
        try:
            await ws.send_json({"type": "error", "detail": f"Unexpected error: {exc}"})
            await ws.close(code=1011)
        except RuntimeError:
            logger.debug("WebSocket already closed for session %s", session.session_id)


async def _send_state(ws: WebSocket, session: AgentSession) -> None:
    await ws.send_json({
        "type": "state",
        "state": session.state.value,
        "agent": session.active_agent.name,
        "session_id": session.session_id,
    })


def _closed_frame(report: CloseReport) -> dict:
    memory = None
    if report.memory is not None:
        memory = MemoryOut(
            messages_submitted=report.memory.messages_submitted,
            messages_success=report.memory.messages_success,
            messages_error=report.memory.messages_error,
            entries=[
                {"label": e.label, "success": e.success, "error": e.error}
                for e in report.memory.entries
            ],
        ).model_dump()
    return {
        "type": "closed",
        "session_id": report.session_id,
        "final_agent": report.final_agent,
        "history_length": report.history_length,
        "cancelled_inflight": report.cancelled_inflight,
        "memory": memory,
    }
