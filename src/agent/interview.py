"""
agent.interview - Multi-turn structured data collection.

An InterviewDefinition declares the fields to ask for and the record schema
to parse them into. InterviewMachine applies the transitions to the
InterviewState held in a SessionContext:

    INDEX            record_field writes one answer and moves the cursor to
                     the next unanswered field; get_current_field re-reads
                     the prompt at the cursor after an interruption.
    COMPLETION_FLAG  the model tracks what is missing and passes
                     is_complete=True with its last answer, which runs the
                     finalize step right away. Order does not matter.

finalize() is shared by both modes. State is cleared only after the
parser returns a valid record; an empty interview or a parse failure
leaves the collected answers in place.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from application.context import FinalizedRecord, SessionContext
from domain.exceptions import NoDataCollectedError, RecordParseError, UnknownFieldError
from domain.models import InterviewField, InterviewState
from domain.ports import RecordParserPort

logger = logging.getLogger(__name__)


class InterviewMode(str, Enum):
    INDEX = "index"
    COMPLETION_FLAG = "completion_flag"


@dataclass(frozen=True)
class InterviewDefinition:
    """Static description of one interview.

    finalize_handoff_target: agent the owning agent is expected to hand off
    to after a successful finalize. The machine only mentions it in the
    result text; switching is left to the agent.
    """
    name: str
    fields: tuple[InterviewField, ...]
    record_schema: type[BaseModel]
    mode: InterviewMode = InterviewMode.INDEX
    strict: bool = False
    finalize_handoff_target: Optional[str] = None

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(f.key for f in self.fields)


class InterviewMachine:
    """Applies interview transitions to a session's InterviewState."""

    def __init__(self, definition: InterviewDefinition, parser: RecordParserPort):
        self._definition = definition
        self._parser = parser

    @property
    def definition(self) -> InterviewDefinition:
        return self._definition

    def state(self, ctx: SessionContext) -> InterviewState:
        return ctx.interview(self._definition.name)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def record(
        self,
        ctx: SessionContext,
        key: str,
        value: str,
        is_complete: bool = False,
    ) -> str:
        """Store one answer and return guidance text for the model."""
        definition = self._definition
        key = key.strip()
        if definition.strict and key not in definition.keys:
            raise UnknownFieldError(
                f"'{key}' is not a field of interview '{definition.name}'. "
                f"Expected one of: {', '.join(definition.keys)}"
            )
        if key not in definition.keys:
            logger.info(
                "Interview %s: storing undeclared field '%s' (session=%s)",
                definition.name, key, ctx.session_id,
            )

        state = self.state(ctx)
        state.record(key, value)
        logger.debug(
            "Interview %s recorded %s (%d field(s), session=%s)",
            definition.name, key, len(state.fields_collected), ctx.session_id,
        )

        if definition.mode == InterviewMode.COMPLETION_FLAG:
            if is_complete:
                state.is_complete = True
                return await self.finalize(ctx)
            return f"Recorded {key}."

        self._advance(state)
        nxt = self.current_field(state)
        if nxt is None:
            return (
                f"Recorded {key}. All questions are answered. "
                "Call finalize_interview to save the answers."
            )
        return f"Recorded {key}. Next question: {nxt.prompt}"

    def current_prompt(self, ctx: SessionContext) -> str:
        """Describe where the interview stands without changing it."""
        state = self.state(ctx)
        fields = self._definition.fields

        if self._definition.mode == InterviewMode.COMPLETION_FLAG:
            missing = [f.key for f in fields if f.key not in state.fields_collected]
            collected = ", ".join(state.fields_collected) or "none"
            if not missing:
                return f"Collected: {collected}. Nothing missing; finalize when ready."
            return f"Collected: {collected}. Still missing: {', '.join(missing)}."

        current = self.current_field(state)
        if current is None:
            return "All questions are answered. Call finalize_interview to save the answers."
        return f"Current question ({state.cursor + 1}/{len(fields)}): {current.prompt}"

    async def finalize(self, ctx: SessionContext) -> str:
        """Parse collected answers into a record and reset the state.

        Raises NoDataCollectedError (parser not called) or RecordParseError
        (state kept so the model can correct a field and retry).
        """
        definition = self._definition
        state = self.state(ctx)
        if state.is_empty:
            raise NoDataCollectedError(
                f"Interview '{definition.name}' has no answers yet; ask the user first."
            )

        outcome = await self._parser.parse(state.as_text(), definition.record_schema)
        if not outcome.ok:
            logger.warning(
                "Interview %s finalize failed (session=%s): %s",
                definition.name, ctx.session_id, outcome.error,
            )
            raise RecordParseError(
                f"Could not parse the answers for '{definition.name}': {outcome.error}"
            )

        ctx.records.append(FinalizedRecord(interview=definition.name, record=outcome.record))
        state.clear()
        logger.info(
            "Interview %s finalized for session %s", definition.name, ctx.session_id,
        )

        text = (
            f"Saved {definition.name} record: "
            f"{json.dumps(outcome.record.model_dump(), ensure_ascii=False)}"
        )
        if definition.finalize_handoff_target:
            text += (
                f"\nNext step: hand the conversation off to "
                f"'{definition.finalize_handoff_target}' unless the user still has a question."
            )
        return text

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def current_field(self, state: InterviewState) -> Optional[InterviewField]:
        fields = self._definition.fields
        if state.cursor >= len(fields):
            return None
        return fields[state.cursor]

    def _advance(self, state: InterviewState) -> None:
        """Move the cursor to the first declared field without an answer."""
        for i, f in enumerate(self._definition.fields):
            if f.key not in state.fields_collected:
                state.cursor = i
                return
        state.cursor = len(self._definition.fields)
        state.is_complete = True
