"""Database models: Pydantic models for ledger records."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field


def _utcnow() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


class TradeRecord(BaseModel):
    """One executed trade.  Append-only: never updated or deleted."""
    trade_id: str
    token: str
    symbol: str = "UNKNOWN"
    type: str = "BUY"      # BUY | SELL
    amount: float = 0.0
    price: float = 0.0
    tx: str = ""
    created_at: str = Field(default_factory=_utcnow)
    seq: int | None = None  # assigned by the store; defines audit order


class PositionRecord(BaseModel):
    """Current holding in one token (token address is unique)."""
    token: str
    symbol: str = "UNKNOWN"
    entry_price: float = 0.0
    amount: float = 0.0
    created_at: str = Field(default_factory=_utcnow)
