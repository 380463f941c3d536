"""
agent.tools.base - The tool contract every agent capability implements.

A tool declares a pydantic input schema and an async handler. Handlers
receive already-validated keyword arguments plus the session's context and
answer with a ToolResult; only `output` ever reaches the model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel

from application.context import SessionContext


@dataclass
class ToolResult:
    """What a handler hands back to the registry.

    output:    Result text for the model.
    data:      Structured payload kept on the server side.
    store_as:  When set, `data` is copied into ctx.scratch under this key.
    """
    output: str
    data: Any = None
    store_as: Optional[str] = None


class BaseTool(ABC):
    """One named, schema-validated operation an agent may call.

    idempotent:         False when a retry after a transient failure could
                        repeat a side effect (e.g. finalizing an interview).
    requires_approval:  Default approval policy; the registry may override it.
    """

    name: str
    description: str
    idempotent: bool = True
    requires_approval: bool = False

    @abstractmethod
    def get_schema(self) -> type[BaseModel]:
        """Input model the registry validates model arguments against."""

    @abstractmethod
    async def execute(self, ctx: SessionContext, **kwargs) -> ToolResult:
        """Run with validated arguments against this session's context."""

    def function_spec(self) -> dict[str, Any]:
        """OpenAI-style function definition for bind_tools()."""
        parameters = self.get_schema().model_json_schema()
        parameters.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }
