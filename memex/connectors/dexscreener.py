"""DexScreener API connector.

DexScreener indexes DEX trading pairs across chains.  We only need the
free-text pair search to discover meme-token candidates.

Base URL: https://api.dexscreener.com/latest/dex
Endpoints:
  - GET /search?q={query}
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential

from memex.connectors.rate_limiter import rate_limiter
from memex.observability.logger import get_logger
from memex.observability.metrics import metrics

log = get_logger(__name__)

DEXSCREENER_BASE = "https://api.dexscreener.com/latest/dex"

_TIMEOUT = httpx.Timeout(15.0, connect=10.0)
_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "memex-agent/1.0",
}


# ── Data Models ──────────────────────────────────────────────────────

@dataclass
class PairSnapshot:
    """A single DEX trading pair as returned by the search endpoint."""
    address: str = ""         # base token address
    symbol: str = ""
    name: str = ""
    chain_id: str = ""
    price_usd: str = "0"      # kept as the provider's decimal string
    liquidity_usd: float = 0.0
    volume_24h: float = 0.0
    price_change_24h: float = 0.0
    buys_24h: int = 0
    sells_24h: int = 0

    @property
    def search_text(self) -> str:
        return f"{self.symbol} {self.name}".lower()


# ── Client ───────────────────────────────────────────────────────────

class DexScreenerClient:
    """Async client for the DexScreener pair search."""

    def __init__(self, base_url: str = DEXSCREENER_BASE):
        self._base = base_url.rstrip("/")
        self._client: httpx.AsyncClient | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base,
                timeout=_TIMEOUT,
                headers=_HEADERS,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(min=1, max=8))
    async def search_pairs(self, query: str) -> list[PairSnapshot]:
        """Search trading pairs matching a free-text query (e.g. a chain id)."""
        await rate_limiter.get("dexscreener").acquire()
        client = await self._ensure_client()
        started = time.monotonic()
        resp = await client.get("/search", params={"q": query})
        resp.raise_for_status()
        metrics.histogram("dexscreener.latency_secs", time.monotonic() - started)
        data = resp.json()

        if not isinstance(data, dict):
            raise ValueError(f"unexpected search payload: {type(data).__name__}")
        items = data.get("pairs") or []
        if not isinstance(items, list):
            raise ValueError("search payload 'pairs' is not a list")

        pairs = [parse_pair(item) for item in items if isinstance(item, dict)]
        log.debug("dexscreener.pairs_fetched", query=query, count=len(pairs))
        return pairs


# ── Parsers ──────────────────────────────────────────────────────────

def _num(val: Any) -> float:
    """Parse a numeric field; absent or unparseable values count as 0."""
    if val is None or val == "":
        return 0.0
    try:
        return float(val)
    except (TypeError, ValueError):
        return 0.0


def parse_pair(raw: dict[str, Any]) -> PairSnapshot:
    """Convert a raw DexScreener pair object into a PairSnapshot."""
    base = raw.get("baseToken") or {}
    liquidity = raw.get("liquidity") or {}
    volume = raw.get("volume") or {}
    change = raw.get("priceChange") or {}
    txns = (raw.get("txns") or {}).get("h24") or {}

    return PairSnapshot(
        address=str(base.get("address", "")),
        symbol=str(base.get("symbol", "")),
        name=str(base.get("name", "")),
        chain_id=str(raw.get("chainId", "")),
        price_usd=str(raw.get("priceUsd") or "0"),
        liquidity_usd=_num(liquidity.get("usd")),
        volume_24h=_num(volume.get("h24")),
        price_change_24h=_num(change.get("h24")),
        buys_24h=int(_num(txns.get("buys"))),
        sells_24h=int(_num(txns.get("sells"))),
    )
