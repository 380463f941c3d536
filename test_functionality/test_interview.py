"""
Tests for the interview state machine and its tools
===================================================

Covers both modes: index-driven (ordered questions with a cursor) and
completion-flag (any order, finalize on is_complete=True).
"""

from __future__ import annotations

import json

import pytest
from pydantic import BaseModel

from agent.interview import InterviewDefinition, InterviewMachine, InterviewMode
from agent.tools.interview import build_interview_tools
from agent.tools.registry import ToolRegistry
from application.context import SessionContext
from domain.exceptions import NoDataCollectedError, RecordParseError, UnknownFieldError
from domain.models import InterviewField, ParseOutcome

from conftest import FakeParser


class Intake(BaseModel):
    name: str
    age: int
    city: str


FIELDS = (
    InterviewField(key="name", prompt="What is your name?"),
    InterviewField(key="age", prompt="How old are you?"),
    InterviewField(key="city", prompt="Where do you live?"),
)


def _key_values(raw_text: str) -> dict[str, str]:
    return dict(line.split(": ", 1) for line in raw_text.splitlines())


def parse_intake(raw_text: str, schema) -> ParseOutcome:
    values = _key_values(raw_text)
    try:
        return ParseOutcome(record=schema.model_validate(values))
    except Exception as e:
        return ParseOutcome.failure(str(e))


def _machine(mode=InterviewMode.INDEX, *, strict=False, handler=parse_intake, target=None):
    parser = FakeParser(handler)
    definition = InterviewDefinition(
        name="intake",
        fields=FIELDS,
        record_schema=Intake,
        mode=mode,
        strict=strict,
        finalize_handoff_target=target,
    )
    return InterviewMachine(definition, parser), parser


# ═══════════════════════════════════════════════════════════════════════════════
# INDEX MODE
# ═══════════════════════════════════════════════════════════════════════════════


class TestIndexMode:
    """Ordered questions with a cursor."""

    @pytest.mark.asyncio
    async def test_current_field_after_two_answers_is_third_prompt(self, ctx):
        machine, _ = _machine()
        registry = ToolRegistry(build_interview_tools(machine))

        await registry.invoke("record_field", ctx, {"field_key": "name", "value": "Ada"})
        await registry.invoke("record_field", ctx, {"field_key": "age", "value": 36})
        output = await registry.invoke("get_current_field", ctx, {})

        assert "Where do you live?" in output
        assert "(3/3)" in output
        state = ctx.interview("intake")
        assert state.fields_collected == {"name": "Ada", "age": "36"}
        assert state.cursor == 2

    @pytest.mark.asyncio
    async def test_record_returns_next_question(self, ctx):
        machine, _ = _machine()
        output = await machine.record(ctx, "name", "Ada")
        assert output == "Recorded name. Next question: How old are you?"

    @pytest.mark.asyncio
    async def test_cursor_skips_already_answered_fields(self, ctx):
        machine, _ = _machine()
        await machine.record(ctx, "age", "36")
        assert machine.current_field(machine.state(ctx)).key == "name"
        await machine.record(ctx, "name", "Ada")
        assert machine.current_field(machine.state(ctx)).key == "city"

    @pytest.mark.asyncio
    async def test_all_answered_marks_complete(self, ctx):
        machine, _ = _machine()
        for key, value in (("name", "Ada"), ("age", "36"), ("city", "London")):
            output = await machine.record(ctx, key, value)
        assert "finalize_interview" in output
        assert machine.state(ctx).is_complete
        assert "All questions are answered" in machine.current_prompt(ctx)

    @pytest.mark.asyncio
    async def test_rerecording_overwrites_in_place(self, ctx):
        machine, _ = _machine()
        await machine.record(ctx, "name", "Ada")
        await machine.record(ctx, "age", "36")
        await machine.record(ctx, "name", "Grace")
        assert list(ctx.interview("intake").fields_collected.items()) == [
            ("name", "Grace"), ("age", "36"),
        ]


# ═══════════════════════════════════════════════════════════════════════════════
# FINALIZE
# ═══════════════════════════════════════════════════════════════════════════════


class TestFinalize:
    """Parsing collected answers into a record."""

    @pytest.mark.asyncio
    async def test_empty_interview_never_calls_parser(self, ctx):
        machine, parser = _machine()
        with pytest.raises(NoDataCollectedError):
            await machine.finalize(ctx)
        assert parser.calls == []

    @pytest.mark.asyncio
    async def test_empty_interview_via_tool(self, ctx):
        machine, parser = _machine()
        registry = ToolRegistry(build_interview_tools(machine))
        with pytest.raises(NoDataCollectedError):
            await registry.invoke("finalize_interview", ctx, {})
        assert len(parser.calls) == 0

    @pytest.mark.asyncio
    async def test_success_clears_state_and_keeps_record(self, ctx):
        machine, parser = _machine(target="voice_agent")
        registry = ToolRegistry(build_interview_tools(machine))
        for key, value in (("name", "Ada"), ("age", "36"), ("city", "London")):
            await machine.record(ctx, key, value)

        output = await registry.invoke("finalize_interview", ctx, {})

        assert parser.calls[0][0] == "name: Ada\nage: 36\ncity: London"
        assert parser.calls[0][1] is Intake
        saved = json.loads(output.splitlines()[0].split(": ", 1)[1])
        assert saved == {"name": "Ada", "age": 36, "city": "London"}
        assert "voice_agent" in output
        state = ctx.interview("intake")
        assert state.is_empty and state.cursor == 0 and not state.is_complete
        assert ctx.latest_record.interview == "intake"
        assert ctx.scratch["intake_record"] == {"name": "Ada", "age": 36, "city": "London"}

    @pytest.mark.asyncio
    async def test_parse_failure_keeps_answers(self, ctx):
        machine, parser = _machine()
        await machine.record(ctx, "name", "Ada")
        await machine.record(ctx, "age", "thirty-six")
        await machine.record(ctx, "city", "London")

        with pytest.raises(RecordParseError):
            await machine.finalize(ctx)

        assert len(parser.calls) == 1
        assert ctx.interview("intake").fields_collected["age"] == "thirty-six"
        assert ctx.records == []

    @pytest.mark.asyncio
    async def test_retry_after_correction_succeeds(self, ctx):
        machine, _ = _machine()
        await machine.record(ctx, "name", "Ada")
        await machine.record(ctx, "age", "thirty-six")
        await machine.record(ctx, "city", "London")
        with pytest.raises(RecordParseError):
            await machine.finalize(ctx)
        await machine.record(ctx, "age", "36")
        await machine.finalize(ctx)
        assert ctx.latest_record.record.age == 36


# ═══════════════════════════════════════════════════════════════════════════════
# COMPLETION-FLAG MODE AND STRICTNESS
# ═══════════════════════════════════════════════════════════════════════════════


class TestCompletionFlagMode:
    """Any-order answers, finalize on is_complete=True."""

    @pytest.mark.asyncio
    async def test_flag_finalizes_inline(self, ctx):
        machine, parser = _machine(InterviewMode.COMPLETION_FLAG)
        assert await machine.record(ctx, "city", "London") == "Recorded city."
        await machine.record(ctx, "name", "Ada")
        output = await machine.record(ctx, "age", "36", is_complete=True)
        assert output.startswith("Saved intake record:")
        assert len(parser.calls) == 1
        assert ctx.interview("intake").is_empty

    @pytest.mark.asyncio
    async def test_prompt_reports_missing_fields(self, ctx):
        machine, _ = _machine(InterviewMode.COMPLETION_FLAG)
        await machine.record(ctx, "city", "London")
        prompt = machine.current_prompt(ctx)
        assert "Collected: city" in prompt
        assert "Still missing: name, age" in prompt

    @pytest.mark.asyncio
    async def test_strict_rejects_unknown_key(self, ctx):
        machine, _ = _machine(strict=True)
        with pytest.raises(UnknownFieldError):
            await machine.record(ctx, "favourite_colour", "blue")
        assert ctx.interview("intake").is_empty

    @pytest.mark.asyncio
    async def test_lenient_stores_unknown_key(self, ctx):
        machine, _ = _machine()
        await machine.record(ctx, "favourite_colour", "blue")
        assert ctx.interview("intake").fields_collected == {"favourite_colour": "blue"}
        assert machine.current_field(machine.state(ctx)).key == "name"

    @pytest.mark.asyncio
    async def test_state_is_per_session(self):
        machine, _ = _machine()
        a, b = SessionContext(user_id="a"), SessionContext(user_id="b")
        await machine.record(a, "name", "Ada")
        assert b.interview("intake").is_empty
        assert a.interview("intake").fields_collected == {"name": "Ada"}

    @pytest.mark.parametrize("mode, expected", [
        (InterviewMode.INDEX, True),
        (InterviewMode.COMPLETION_FLAG, False),
    ])
    def test_record_field_retry_policy_follows_mode(self, mode, expected):
        machine, _ = _machine(mode)
        record, current, finalize = build_interview_tools(machine)
        assert record.name == "record_field"
        assert record.idempotent is expected
        assert current.idempotent is True
        assert finalize.idempotent is False
