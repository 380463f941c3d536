"""
domain.records - Structured record schemas produced by the record parser.

Each schema is a pydantic model. Coercion rules live on the model so every
parser implementation (LLM-backed or direct) yields the same typed result:

    DailyCheckIn     numeric fields accept "5", 5, " 7.5 "; anything
                     unparseable becomes 0 instead of failing.
    ContactDetails   email and phone are hard constraints; a violating
                     value fails validation and the parser reports a
                     parse failure rather than returning it.
"""

from __future__ import annotations

import datetime
import math
from typing import Any

from pydantic import BaseModel, Field, field_validator


def _coerce_number(value: Any, cast: type) -> Any:
    if value is None or isinstance(value, bool):
        return cast(0)
    try:
        number = value if isinstance(value, (int, float)) else float(str(value).strip())
        if not math.isfinite(number):
            return cast(0)
        return cast(number)
    except (TypeError, ValueError, OverflowError):
        return cast(0)


class DailyCheckIn(BaseModel):
    """Daily smoking check-in."""

    daily_cigarettes: int = Field(
        default=0, description="The number of cigarettes smoked today",
    )
    daily_sleep: float = Field(
        default=0, description="The number of hours slept last night",
    )
    daily_feeling: str = Field(default="", description="How the user felt today")
    daily_reason: str = Field(default="", description="The reason for smoking today")

    @field_validator("daily_cigarettes", mode="before")
    @classmethod
    def coerce_cigarettes(cls, v: object) -> int:
        return _coerce_number(v, int)

    @field_validator("daily_sleep", mode="before")
    @classmethod
    def coerce_sleep(cls, v: object) -> float:
        return _coerce_number(v, float)

    @field_validator("daily_feeling", "daily_reason", mode="before")
    @classmethod
    def coerce_text(cls, v: object) -> str:
        return "" if v is None else str(v).strip()


class ContactDetails(BaseModel):
    """Contact details collected by the intake interview."""

    date: str = Field(
        default_factory=lambda: datetime.date.today().isoformat(),
        description="Today's date (YYYY-MM-DD)",
    )
    name: str = Field(description="Full name")
    email: str = Field(
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
        description="Email address",
    )
    phone: str = Field(pattern=r"^\d{10}$", description="10-digit phone number")
    address: str = Field(description="Street address")
    city: str = Field(description="City")

    @field_validator("phone", mode="before")
    @classmethod
    def strip_phone_separators(cls, v: object) -> object:
        """Drop spaces, dashes and parentheses so '555-123-4567' validates."""
        if isinstance(v, str):
            return "".join(ch for ch in v if ch not in " -().")
        return v


def describe_schema(schema: type[BaseModel]) -> str:
    """Render a schema as `name (type): description` lines for prompts."""
    lines = []
    for name, info in schema.model_fields.items():
        annotation = getattr(info.annotation, "__name__", str(info.annotation))
        desc = info.description or ""
        lines.append(f"- {name} ({annotation}): {desc}".rstrip(": "))
    return "\n".join(lines)
