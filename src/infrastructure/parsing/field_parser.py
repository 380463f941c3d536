"""
infrastructure.parsing.field_parser - Deterministic record parser.

Implements RecordParserPort without a model call: the interview text is
already `key: value` lines, so the keys are matched against the schema's
field names and the schema's own validators do the coercion. Used when
PARSER_MODE=direct (offline runs, tests).
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ValidationError

from domain.models import ParseOutcome

logger = logging.getLogger(__name__)


class FieldMappingParser:
    """Parse `key: value` lines straight into a pydantic schema."""

    async def parse(self, raw_text: str, schema: type[BaseModel]) -> ParseOutcome:
        known = set(schema.model_fields)
        values: dict[str, str] = {}
        for line in raw_text.splitlines():
            key, sep, value = line.partition(":")
            if not sep:
                continue
            key = key.strip().lower().replace(" ", "_")
            if key in known:
                values[key] = value.strip()

        if not values:
            return ParseOutcome.failure(
                f"no {schema.__name__} fields found in the collected answers"
            )

        try:
            record = schema.model_validate(values)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            logger.info("Direct parse into %s failed: %s", schema.__name__, problems)
            return ParseOutcome.failure(problems)
        return ParseOutcome(record=record)
