"""
Tests for record schemas and the record parsers
===============================================
"""

from __future__ import annotations

import json

import pytest
from langchain_core.language_models.fake_chat_models import FakeMessagesListChatModel
from langchain_core.messages import AIMessage
from pydantic import ValidationError

from domain.records import ContactDetails, DailyCheckIn, describe_schema
from infrastructure.llm.record_parser import LLMRecordParser
from infrastructure.parsing.field_parser import FieldMappingParser


def _llm_returning(*payloads) -> FakeMessagesListChatModel:
    responses = [
        AIMessage(content=p if isinstance(p, str) else json.dumps(p)) for p in payloads
    ]
    return FakeMessagesListChatModel(responses=responses)


# ═══════════════════════════════════════════════════════════════════════════════
# SCHEMAS
# ═══════════════════════════════════════════════════════════════════════════════


class TestDailyCheckIn:
    """Numeric coercion never fails the record."""

    @pytest.mark.parametrize(
        "raw, expected",
        [(5, 5), ("5", 5), (" 7 ", 7), ("2.0", 2), ("ok", 0), ("", 0), (None, 0), (True, 0)],
    )
    def test_cigarettes_coercion(self, raw, expected):
        record = DailyCheckIn(daily_cigarettes=raw)
        assert record.daily_cigarettes == expected
        assert isinstance(record.daily_cigarettes, int)

    @pytest.mark.parametrize("raw, expected", [("7.5", 7.5), (8, 8.0), ("lots", 0.0), ("nan", 0.0)])
    def test_sleep_coercion(self, raw, expected):
        record = DailyCheckIn(daily_sleep=raw)
        assert record.daily_sleep == expected

    def test_text_fields_pass_through(self):
        record = DailyCheckIn(daily_feeling="ok", daily_reason=" stress ")
        assert record.daily_feeling == "ok"
        assert record.daily_reason == "stress"


class TestContactDetails:
    """Email and phone are hard constraints."""

    def _valid(self, **overrides):
        data = {
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "phone": "5551234567",
            "address": "12 St James's Square",
            "city": "London",
        }
        data.update(overrides)
        return data

    def test_valid_record_gets_todays_date(self):
        record = ContactDetails(**self._valid())
        assert len(record.date) == 10 and record.date[4] == "-"

    def test_phone_separators_are_stripped(self):
        record = ContactDetails(**self._valid(phone="(555) 123-4567"))
        assert record.phone == "5551234567"

    @pytest.mark.parametrize("phone", ["12345", "555123456789", "555-ABC-4567"])
    def test_bad_phone_fails(self, phone):
        with pytest.raises(ValidationError):
            ContactDetails(**self._valid(phone=phone))

    def test_bad_email_fails(self):
        with pytest.raises(ValidationError):
            ContactDetails(**self._valid(email="not-an-email"))

    def test_describe_schema_lists_fields(self):
        text = describe_schema(DailyCheckIn)
        assert "- daily_cigarettes (int): The number of cigarettes smoked today" in text
        assert text.count("\n") == 3


# ═══════════════════════════════════════════════════════════════════════════════
# PARSERS
# ═══════════════════════════════════════════════════════════════════════════════


class TestFieldMappingParser:
    """Direct key: value parsing."""

    @pytest.mark.asyncio
    async def test_parses_interview_text(self):
        text = "daily_cigarettes: 5\ndaily_sleep: 7.5\ndaily_feeling: ok\ndaily_reason: stress"
        outcome = await FieldMappingParser().parse(text, DailyCheckIn)
        assert outcome.ok
        assert outcome.record == DailyCheckIn(
            daily_cigarettes=5, daily_sleep=7.5, daily_feeling="ok", daily_reason="stress",
        )

    @pytest.mark.asyncio
    async def test_ignores_unknown_keys(self):
        outcome = await FieldMappingParser().parse("mood: fine\ndaily_cigarettes: 2", DailyCheckIn)
        assert outcome.record.daily_cigarettes == 2

    @pytest.mark.asyncio
    async def test_nothing_matching_is_failure(self):
        outcome = await FieldMappingParser().parse("hello there", DailyCheckIn)
        assert not outcome.ok
        assert "DailyCheckIn" in outcome.error

    @pytest.mark.asyncio
    async def test_validation_failure_names_field(self):
        text = "name: Ada\nemail: ada@example.com\nphone: 123\naddress: x\ncity: y"
        outcome = await FieldMappingParser().parse(text, ContactDetails)
        assert not outcome.ok
        assert "phone" in outcome.error


class TestLLMRecordParser:
    """LangChain prompt | model | JSON chain with schema validation."""

    @pytest.mark.asyncio
    async def test_valid_json_becomes_record(self):
        llm = _llm_returning({
            "daily_cigarettes": "5", "daily_sleep": 6, "daily_feeling": "ok", "daily_reason": "work",
        })
        outcome = await LLMRecordParser(llm).parse("daily_cigarettes: 5", DailyCheckIn)
        assert outcome.ok
        assert outcome.record.daily_cigarettes == 5
        assert outcome.record.daily_sleep == 6.0

    @pytest.mark.asyncio
    async def test_refusal_is_failure(self):
        llm = _llm_returning({"refusal": "no data in text"})
        outcome = await LLMRecordParser(llm).parse("hello", DailyCheckIn)
        assert not outcome.ok
        assert "no data in text" in outcome.error

    @pytest.mark.asyncio
    async def test_schema_violation_is_failure(self):
        llm = _llm_returning({
            "name": "Ada", "email": "ada@example.com", "phone": "12",
            "address": "x", "city": "y",
        })
        outcome = await LLMRecordParser(llm).parse("phone: 12", ContactDetails)
        assert outcome.record is None
        assert "phone" in outcome.error

    @pytest.mark.asyncio
    async def test_non_json_output_is_failure(self):
        llm = _llm_returning("I cannot help with that.")
        outcome = await LLMRecordParser(llm).parse("anything", DailyCheckIn)
        assert not outcome.ok
        assert outcome.error.startswith("parser error")

    @pytest.mark.asyncio
    async def test_json_array_is_failure(self):
        llm = _llm_returning("[1, 2, 3]")
        outcome = await LLMRecordParser(llm).parse("anything", DailyCheckIn)
        assert not outcome.ok
        assert "JSON object" in outcome.error
