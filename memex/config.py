"""Shared configuration loader and Pydantic settings.

Supports:
  - YAML file loading with env var overrides
  - All subsystem configs: agent card, scanning, whale tracking,
    copy-trading, execution, storage, scheduler, api, observability
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


_PROJECT_ROOT = Path(__file__).resolve().parent.parent


class AgentConfig(BaseModel):
    """Public identity of the agent (health endpoint, task help reply)."""
    name: str = "MEMEX1000"
    description: str = (
        "AI Agent for smart meme coin trading, smart money tracking, "
        "and copy-trading on Base blockchain"
    )
    wallet: str = "0x9C67140AdE64577ef6B40BeA6a801aDf1555a5E8"
    price_amount: str = "2.0"
    price_currency: str = "USDC"
    chain: str = "base"


class ScanningConfig(BaseModel):
    dexscreener_url: str = "https://api.dexscreener.com/latest/dex"
    chain: str = "base"
    min_liquidity_usd: float = 10_000
    keywords: list[str] = Field(default_factory=lambda: [
        "meme", "pepe", "doge", "shib", "moon",
        "rocket", "elon", "wojak", "chad", "based",
    ])
    analyze_pool_size: int = 50
    requests_per_second: float = 4.0
    burst: int = 10
    # Rule thresholds and weights
    high_volume_usd: float = 100_000
    high_volume_weight: int = 25
    strong_pump_pct: float = 50
    strong_pump_weight: int = 30
    uptrend_pct: float = 20
    uptrend_weight: int = 20
    buy_pressure_ratio: float = 1.5
    buy_pressure_weight: int = 25
    good_liquidity_usd: float = 50_000
    good_liquidity_weight: int = 20


class WhaleConfig(BaseModel):
    """Watchlist / whale accumulation tracking."""
    basescan_url: str = "https://api.basescan.org/api"
    basescan_api_key: str = "YourApiKeyToken"
    watchlist: list[str] = Field(default_factory=lambda: [
        "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb",
        "0x8ba1f109551bD432803012645Hac136c82C3e8C9",
    ])
    window_size: int = 20
    accumulation_ratio: float = 1.5
    accumulation_confidence: int = 40
    inbound_value_threshold: float = 1000
    inbound_value_confidence: int = 30
    sell_dominance_ratio: float = 2.0
    min_watchlist_confidence: int = 50
    requests_per_second: float = 4.0
    burst: int = 5


class CopyTradeConfig(BaseModel):
    base_notional: float = 0.1
    default_percentage: float = 10
    symbol_prefix: str = "COPY_"


class ExecutionConfig(BaseModel):
    paper_max_price: float = 0.001
    portfolio_trade_limit: int = 10


class StorageConfig(BaseModel):
    sqlite_path: str = "data/memex.db"


class SchedulerConfig(BaseModel):
    """Periodic jobs driven by the engine loop."""
    enabled: bool = True
    whale_interval_secs: int = 120
    momentum_interval_secs: int = 300
    heartbeat_secs: int = 60
    copy_min_confidence: int = 60
    copy_percentage: float = 5
    momentum_limit: int = 10


class ApiConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: str = ""
    event_buffer_size: int = 100


class BotConfig(BaseModel):
    agent: AgentConfig = Field(default_factory=AgentConfig)
    scanning: ScanningConfig = Field(default_factory=ScanningConfig)
    whales: WhaleConfig = Field(default_factory=WhaleConfig)
    copy_trade: CopyTradeConfig = Field(default_factory=CopyTradeConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


def load_config(path: str | Path | None = None) -> BotConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        path = _PROJECT_ROOT / "config.yaml"
    path = Path(path)
    raw: dict[str, Any] = {}
    if path.exists():
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    return apply_env_overrides(BotConfig(**raw))


def apply_env_overrides(cfg: BotConfig) -> BotConfig:
    """Overlay the deployment environment onto a loaded config."""
    env = os.environ
    if env.get("BASESCAN_API_KEY"):
        cfg.whales.basescan_api_key = env["BASESCAN_API_KEY"]
    if env.get("MEMEX_DB_PATH"):
        cfg.storage.sqlite_path = env["MEMEX_DB_PATH"]
    if env.get("PORT"):
        cfg.api.port = int(env["PORT"])
    if env.get("LOG_LEVEL"):
        cfg.observability.log_level = env["LOG_LEVEL"]
    if env.get("LOG_FORMAT"):
        cfg.observability.log_format = env["LOG_FORMAT"]
    return cfg
