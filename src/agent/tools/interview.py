"""
agent.tools.interview - Tools that drive an InterviewMachine.

Three tools per interview, all bound to the same machine:
    record_field        store one answer (and, in completion-flag mode,
                        finalize when is_complete=True)
    get_current_field   recover the current question after a detour
    finalize_interview  parse the answers into a structured record
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from application.context import SessionContext
from agent.interview import InterviewMachine, InterviewMode
from agent.tools.base import BaseTool, ToolResult


class RecordFieldInput(BaseModel):
    """Input schema for the record_field tool."""

    field_key: str = Field(min_length=1, description="Key of the field being answered")
    value: str = Field(description="The user's answer, as they said it")
    is_complete: bool = Field(
        default=False,
        description="True only when this is the last missing field",
    )

    @field_validator("value", mode="before")
    @classmethod
    def stringify(cls, v: object) -> object:
        """Models sometimes send numbers for numeric answers; keep them as text."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class EmptyInput(BaseModel):
    """No arguments."""


class RecordFieldTool(BaseTool):
    """Store one interview answer."""

    name = "record_field"

    def __init__(self, machine: InterviewMachine):
        self._machine = machine
        definition = machine.definition
        field_list = ", ".join(f"'{f.key}' ({f.description or f.prompt})" for f in definition.fields)
        if definition.mode == InterviewMode.COMPLETION_FLAG:
            # is_complete=True finalizes inline
            self.idempotent = False
            self.description = (
                f"Record one answer for the {definition.name} form. Fields: {field_list}. "
                "Answers may come in any order. Set is_complete=true on the call "
                "that records the last missing field."
            )
        else:
            self.description = (
                f"Record the user's answer to the current {definition.name} question. "
                f"Fields in order: {field_list}. The result contains the next question to ask."
            )

    def get_schema(self) -> type[BaseModel]:
        return RecordFieldInput

    async def execute(
        self,
        ctx: SessionContext,
        field_key: str = "",
        value: str = "",
        is_complete: bool = False,
        **kwargs,
    ) -> ToolResult:
        output = await self._machine.record(ctx, field_key, value, is_complete)
        return ToolResult(output=output)


class GetCurrentFieldTool(BaseTool):
    """Re-read the current interview question without changing state."""

    name = "get_current_field"

    def __init__(self, machine: InterviewMachine):
        self._machine = machine
        self.description = (
            f"Get the question the {machine.definition.name} form is waiting on. "
            "Use after answering an unrelated question to resume where you left off."
        )

    def get_schema(self) -> type[BaseModel]:
        return EmptyInput

    async def execute(self, ctx: SessionContext, **kwargs) -> ToolResult:
        return ToolResult(output=self._machine.current_prompt(ctx))


class FinalizeInterviewTool(BaseTool):
    """Parse collected answers into a structured record."""

    name = "finalize_interview"
    idempotent = False

    def __init__(self, machine: InterviewMachine):
        self._machine = machine
        self.description = (
            f"Save the collected {machine.definition.name} answers as a structured record. "
            "Call once every question has been answered."
        )

    def get_schema(self) -> type[BaseModel]:
        return EmptyInput

    async def execute(self, ctx: SessionContext, **kwargs) -> ToolResult:
        output = await self._machine.finalize(ctx)
        latest = ctx.latest_record
        return ToolResult(
            output=output,
            data=latest.record.model_dump() if latest else None,
            store_as=f"{self._machine.definition.name}_record",
        )


def build_interview_tools(machine: InterviewMachine) -> list[BaseTool]:
    """Return the tool set for one interview machine."""
    return [
        RecordFieldTool(machine),
        GetCurrentFieldTool(machine),
        FinalizeInterviewTool(machine),
    ]
