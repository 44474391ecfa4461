"""Request/response models for the pipeline's public operations.

Inputs are validated here, at the boundary, before any core logic runs.
Field aliases accept the camelCase keys used by external callers
(``targetAddress``) alongside snake_case.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AnalyzeRequest(BaseModel):
    token: str = Field(min_length=1)

    @field_validator("token")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("token must not be blank")
        return v


class ScanRequest(BaseModel):
    limit: int = Field(default=5, ge=1, le=50)

    @field_validator("limit", mode="before")
    @classmethod
    def _default_limit(cls, v: Any) -> Any:
        return 5 if v is None or v == "" else v


class TradeRequest(BaseModel):
    token: str = "0x0"
    symbol: str = "UNKNOWN"
    amount: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    type: Literal["BUY", "SELL"] = "BUY"

    @field_validator("type", mode="before")
    @classmethod
    def _upper(cls, v: Any) -> Any:
        if v is None:
            return "BUY"
        return v.upper() if isinstance(v, str) else v

    @field_validator("amount", mode="before")
    @classmethod
    def _default_amount(cls, v: Any) -> Any:
        return 0.0 if v is None or v == "" else v

    @field_validator("token", "symbol", mode="before")
    @classmethod
    def _blank_to_default(cls, v: Any, info: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "0x0" if info.field_name == "token" else "UNKNOWN"
        return v


class CopyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_address: str = Field(alias="targetAddress", min_length=1)
    # None means the configured copy_trade.default_percentage
    percentage: float | None = Field(default=None, gt=0, le=100, allow_inf_nan=False)

    @field_validator("percentage", mode="before")
    @classmethod
    def _blank_percentage(cls, v: Any) -> Any:
        return None if v == "" else v


class ScanResponse(BaseModel):
    count: int
    results: list[dict[str, Any]]


class WhaleScanResponse(BaseModel):
    count: int
    signals: list[dict[str, Any]]
