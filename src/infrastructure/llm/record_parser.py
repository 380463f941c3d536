"""
infrastructure.llm.record_parser - LLM-backed structured record extraction.

Implements RecordParserPort using a LangChain prompt | chat model | JSON
chain at temperature 0. The model output is never trusted directly: it is
validated against the target pydantic schema, and anything that fails
validation (or an explicit refusal) comes back as a parse failure.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, ValidationError

from domain.models import ParseOutcome
from domain.records import describe_schema

logger = logging.getLogger(__name__)

_SYSTEM_INSTRUCTIONS = """You are a data extractor that turns collected answers into a JSON object.
Extract the information and format it according to the schema. Do not add, guess or reword values.

OUTPUT FORMAT: a JSON object with exactly these keys:
{schema}

RULES:
1. Use only what the text states. Copy values as written, converting numbers to plain numbers.
2. Use today's date ({today}) for any date field the text does not state.
3. If the text contains nothing that matches the schema, return {{"refusal": "<short reason>"}} instead."""

_USER_TEMPLATE = "Please extract and structure the following data:\n{text}"


class LLMRecordParser:
    """Implements RecordParserPort with any LangChain chat model."""

    def __init__(self, llm: BaseChatModel):
        self._llm = llm
        self._prompt = ChatPromptTemplate.from_messages([
            ("system", _SYSTEM_INSTRUCTIONS),
            ("user", _USER_TEMPLATE),
        ])
        self._chain = self._prompt | self._llm | JsonOutputParser()

    async def parse(self, raw_text: str, schema: type[BaseModel]) -> ParseOutcome:
        """Extract a `schema` record from `raw_text`."""
        logger.info("Running record parser (%s) on %d chars", schema.__name__, len(raw_text))
        try:
            result: Any = await self._chain.ainvoke({
                "schema": describe_schema(schema),
                "today": datetime.date.today().isoformat(),
                "text": raw_text,
            })
        except Exception as e:
            logger.error("Record parsing failed: %s", e)
            return ParseOutcome.failure(f"parser error: {e}")

        if not isinstance(result, dict):
            logger.error("Record parser returned %s, expected an object", type(result).__name__)
            return ParseOutcome.failure("parser did not return a JSON object")

        refusal = result.get("refusal")
        if refusal and not (set(result) - {"refusal"}):
            logger.error("Model refused to parse: %s", refusal)
            return ParseOutcome.failure(f"refused: {refusal}")

        try:
            record = schema.model_validate(result)
        except ValidationError as e:
            logger.error("Parsed data does not match %s: %s", schema.__name__, e)
            return ParseOutcome.failure(_summarize(e))

        logger.info("Successfully parsed %s", schema.__name__)
        return ParseOutcome(record=record)


def _summarize(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in error.errors()
    )
