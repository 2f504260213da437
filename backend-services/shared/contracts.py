# backend-services/shared/contracts.py
"""
This module defines the Pydantic models that serve as the formal data contracts
for the Stock Price Checker backend.

These models ensure data consistency, provide automatic validation, and act as
living documentation for the data structures exchanged with the upstream quote
service, stored in MongoDB and returned to API clients.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

MAX_TICKER_LEN = 10
"""Maximum accepted length of a ticker symbol in the query string."""

# --- Contract 1: QuoteResponse ---
class QuoteResponse(BaseModel):
    """The subset of the upstream quote payload this service relies on."""
    model_config = ConfigDict(extra='ignore')

    symbol: Optional[str] = None
    latestPrice: float = Field(..., allow_inf_nan=False, description="Latest traded price reported by the quote service.")


# --- Contract 2: StockRecord ---
class StockRecord(BaseModel):
    """A persisted stock document (collection `stocks`)."""
    model_config = ConfigDict(extra='ignore')

    stock: str
    price: Optional[float] = Field(None, allow_inf_nan=False)
    likes: int = Field(0, ge=0)
    liker_hashes: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# --- Contract 3: StockPrice responses ---
class StockData(BaseModel):
    """Price and like count for a single looked-up stock."""
    stock: str
    price: Optional[float] = Field(None, allow_inf_nan=False)
    likes: int = Field(..., ge=0)


class RelativeStockData(BaseModel):
    """Price and relative likes for one side of a two-stock comparison."""
    stock: str
    price: Optional[float] = Field(None, allow_inf_nan=False)
    rel_likes: int


class StockPriceSingleResponse(BaseModel):
    """Payload of GET /api/stock-prices with a single `stock` parameter."""
    stockData: StockData


class StockPriceCompareResponse(BaseModel):
    """Payload of GET /api/stock-prices with two `stock` parameters."""
    stockData: List[RelativeStockData] = Field(..., min_length=2, max_length=2)
