"""Shared test fixtures."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure the memex package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

WHALE_A = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb"
WHALE_B = "0x8ba1f109551bD432803012645Hac136c82C3e8C9"
OTHER = "0x1111111111111111111111111111111111111111"
MEME_TOKEN = "0xfeedfacefeedfacefeedfacefeedfacefeedface"


# ── Fakes ────────────────────────────────────────────────────────────

class FakeMarketClient:
    """Stands in for DexScreenerClient."""

    def __init__(self, pairs: list | None = None, error: Exception | None = None):
        self.pairs = pairs or []
        self.error = error
        self.queries: list[str] = []
        self.closed = False

    async def search_pairs(self, query: str) -> list:
        self.queries.append(query)
        if self.error:
            raise self.error
        return list(self.pairs)

    async def close(self) -> None:
        self.closed = True


class FakeChainClient:
    """Stands in for BasescanClient.  Maps address -> transfers or exception."""

    def __init__(self, by_address: dict[str, Any] | None = None):
        self.by_address = by_address or {}
        self.closed = False

    async def get_token_transfers(self, address: str) -> list:
        result = self.by_address.get(address, [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def close(self) -> None:
        self.closed = True


# ── Builders ─────────────────────────────────────────────────────────

def make_pair(**kwargs):
    from memex.connectors.dexscreener import PairSnapshot

    defaults = dict(
        address="0xpepe", symbol="PEPE", name="Pepe on Base", chain_id="base",
        price_usd="0.0000012", liquidity_usd=20_000.0, volume_24h=10_000.0,
        price_change_24h=5.0, buys_24h=10, sells_24h=10,
    )
    defaults.update(kwargs)
    return PairSnapshot(**defaults)


def inbound(address: str, value: float = 300.0, token: str = MEME_TOKEN, symbol: str = "MEME"):
    from memex.connectors.basescan import TokenTransfer

    return TokenTransfer(
        from_address=OTHER, to_address=address, value=value,
        contract_address=token, token_symbol=symbol,
    )


def outbound(address: str, value: float = 100.0, token: str = MEME_TOKEN, symbol: str = "MEME"):
    from memex.connectors.basescan import TokenTransfer

    return TokenTransfer(
        from_address=address, to_address=OTHER, value=value,
        contract_address=token, token_symbol=symbol,
    )


def accumulating_history(address: str) -> list:
    """5 in (1500 total) / 1 out -> BUY at confidence 70."""
    return [inbound(address) for _ in range(5)] + [outbound(address)]


# ── Fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def config():
    from memex.config import BotConfig

    cfg = BotConfig()
    cfg.whales.watchlist = [WHALE_A, WHALE_B]
    return cfg


@pytest.fixture
def events():
    from memex.observability.event_log import EventLog

    return EventLog(max_events=100)


@pytest.fixture
def db(tmp_path):
    from memex.config import StorageConfig
    from memex.storage.database import Database

    database = Database(StorageConfig(sqlite_path=str(tmp_path / "test.db")))
    database.connect()
    yield database
    database.close()


@pytest.fixture
def market_client():
    return FakeMarketClient(pairs=[
        make_pair(address="0xrocket", symbol="ROCKET", name="Rocket Meme",
                  volume_24h=250_000, price_change_24h=75, buys_24h=300,
                  sells_24h=100, liquidity_usd=80_000),
        make_pair(),
        make_pair(address="0xdoge", symbol="BDOGE", name="Base Doge",
                  volume_24h=150_000, price_change_24h=30, liquidity_usd=15_000),
    ])


@pytest.fixture
def chain_client():
    return FakeChainClient({
        WHALE_A: accumulating_history(WHALE_A),
        WHALE_B: [inbound(WHALE_B), outbound(WHALE_B), outbound(WHALE_B)],
    })


@pytest.fixture
def pipeline(config, db, events, market_client, chain_client):
    import random

    from memex.engine.pipeline import AgentPipeline
    from memex.execution.paper_fill import PaperFillSimulator

    return AgentPipeline(
        config,
        db,
        events,
        market_client=market_client,
        chain_client=chain_client,
        fills=PaperFillSimulator(rng=random.Random(7)),
    )
