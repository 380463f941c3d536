"""
agent.tools.weather - Weather lookup tool for the weather specialist.

Returns a canned forecast; a real forecast provider can replace the
handler body without changing the schema.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from application.context import SessionContext
from agent.tools.base import BaseTool, ToolResult


class GetWeatherInput(BaseModel):
    """Input schema for the get_weather tool."""

    location: str = Field(
        min_length=1,
        max_length=100,
        description="City or place name, e.g. 'Tokyo' or 'New York'",
    )


class GetWeatherTool(BaseTool):
    """Get the weather in a given location."""

    name = "get_weather"
    description = "Get the weather in a given location."

    def get_schema(self) -> type[BaseModel]:
        return GetWeatherInput

    async def execute(self, ctx: SessionContext, location: str = "", **kwargs) -> ToolResult:
        location = location.strip()
        return ToolResult(
            output=f"The weather in {location} is sunny",
            data={"location": location, "conditions": "sunny"},
            store_as="last_weather",
        )
