"""agent.tools.stock - Stock price lookup tool for the stock specialist."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from application.context import SessionContext
from agent.tools.base import BaseTool, ToolResult


class GetStockPriceInput(BaseModel):
    """Input schema for the get_stock_price tool."""

    stock: str = Field(
        pattern=r"^[A-Z][A-Z.]{0,9}$",
        description="Ticker symbol, e.g. 'AAPL' or 'BRK.B'",
    )

    @field_validator("stock", mode="before")
    @classmethod
    def upper_ticker(cls, v: object) -> object:
        """Models often send 'aapl' or ' AAPL '; normalise before the pattern check."""
        if isinstance(v, str):
            return v.strip().upper()
        return v


class GetStockPriceTool(BaseTool):
    """Get the price of a given stock."""

    name = "get_stock_price"
    description = "Get the current price of a given stock by ticker symbol."

    def get_schema(self) -> type[BaseModel]:
        return GetStockPriceInput

    async def execute(self, ctx: SessionContext, stock: str = "", **kwargs) -> ToolResult:
        return ToolResult(
            output=f"The price of {stock} is $100",
            data={"stock": stock, "price": 100.0},
            store_as="last_quote",
        )
