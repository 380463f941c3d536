"""
agent.tools.registry - Tool registration, validation, and invocation.

Each agent owns one ToolRegistry. The registry validates arguments against
the tool's pydantic schema BEFORE the handler runs, and exposes the
function-calling specs the model transport binds to the chat model.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from application.context import SessionContext
from agent.tools.base import BaseTool, ToolResult
from domain.exceptions import DomainError, ToolInputError, UnknownToolError

logger = logging.getLogger(__name__)

# Extra attempts for an idempotent tool whose handler fails unexpectedly
_IDEMPOTENT_RETRIES = 1


class ToolRegistry:
    """Manages tool registration and invocation for a single agent."""

    def __init__(self, tools: Iterable[BaseTool] = ()):
        self._tools: dict[str, BaseTool] = {}
        self._approval_overrides: dict[str, bool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: BaseTool, *, requires_approval: Optional[bool] = None) -> None:
        """Register a tool by its name. Names must be unique per agent."""
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")
        self._tools[tool.name] = tool
        if requires_approval is not None:
            self._approval_overrides[tool.name] = requires_approval
        logger.debug("Registered tool: %s", tool.name)

    def require_approval(self, names: Iterable[str]) -> None:
        """Mark registered tools as approval-gated (unknown names are ignored)."""
        for name in names:
            if name in self._tools:
                self._approval_overrides[name] = True

    def get(self, name: str) -> BaseTool:
        """Get a tool by name."""
        if name not in self._tools:
            raise UnknownToolError(f"Tool '{name}' not registered")
        return self._tools[name]

    def all(self) -> list[BaseTool]:
        """Return all registered tools."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        """Return all registered tool names."""
        return list(self._tools.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def requires_approval(self, name: str) -> bool:
        tool = self.get(name)
        return self._approval_overrides.get(name, tool.requires_approval)

    def validate(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Validate raw model arguments and return handler kwargs.

        Raises ToolInputError without touching the handler.
        """
        tool = self.get(name)
        schema = tool.get_schema()
        try:
            parsed = schema.model_validate(arguments or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
                for err in e.errors()
            )
            raise ToolInputError(name, problems) from e
        return parsed.model_dump()

    async def invoke(self, name: str, ctx: SessionContext, arguments: dict[str, Any]) -> str:
        """Validate, execute, and auto-store results in ctx.scratch.

        Returns the string output (what the model sees). An idempotent tool
        that fails with anything other than a DomainError is run once more;
        a non-idempotent tool is never repeated.
        """
        kwargs = self.validate(name, arguments)
        tool = self.get(name)
        retries = _IDEMPOTENT_RETRIES if tool.idempotent else 0
        attempt = 0
        while True:
            try:
                result: ToolResult = await tool.execute(ctx, **kwargs)
                break
            except DomainError:
                raise
            except Exception as e:
                if attempt >= retries:
                    raise
                attempt += 1
                logger.warning("Tool %s failed (%s); retrying (attempt %d)", name, e, attempt + 1)

        if result.store_as and result.data is not None:
            ctx.scratch[result.store_as] = result.data
            logger.debug("Stored result in ctx.scratch['%s']", result.store_as)

        return result.output

    def to_tool_specs(self) -> list[dict[str, Any]]:
        """Return OpenAI-style function specs for every registered tool."""
        return [tool.function_spec() for tool in self._tools.values()]
