"""Basescan (Etherscan-family) API connector.

Used to pull ERC-20 transfer history for watched wallets on Base.

Base URL: https://api.basescan.org/api
Endpoints:
  - GET ?module=account&action=tokentx&address={address}&sort=desc
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

BASESCAN_BASE = "https://api.basescan.org/api"

_TIMEOUT = httpx.Timeout(15.0, connect=10.0)
_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "memex-agent/1.0",
}


# ── Data Models ──────────────────────────────────────────────────────

@dataclass
class TokenTransfer:
    """A single ERC-20 transfer touching a watched wallet."""
    from_address: str = ""
    to_address: str = ""
    value: float = 0.0
    contract_address: str = ""
    token_symbol: str = ""
    tx_hash: str = ""
    timestamp: str = ""

    def is_inbound(self, address: str) -> bool:
        return self.to_address.lower() == address.lower()

    def is_outbound(self, address: str) -> bool:
        return self.from_address.lower() == address.lower()


# ── Client ───────────────────────────────────────────────────────────

class BasescanClient:
    """Async client for Basescan account endpoints."""

    def __init__(self, api_key: str = "YourApiKeyToken", base_url: str = BASESCAN_BASE):
        self._base = base_url
        self._api_key = api_key
        self._client: httpx.AsyncClient | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=_TIMEOUT, headers=_HEADERS)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(min=1, max=8))
    async def get_token_transfers(self, address: str) -> list[TokenTransfer]:
        """Fetch token transfers for an address, newest first.

        Basescan answers "no transactions" with status 0 and an empty
        list, and errors (rate limit, bad key) with status 0 and a string
        ``result`` -- the latter is treated as malformed.
        """
        await rate_limiter.get("basescan").acquire()
        client = await self._ensure_client()
        params: dict[str, Any] = {
            "module": "account",
            "action": "tokentx",
            "address": address,
            "sort": "desc",
            "apikey": self._api_key,
        }
        started = time.monotonic()
        resp = await client.get(self._base, params=params)
        resp.raise_for_status()
        metrics.histogram("basescan.latency_secs", time.monotonic() - started)
        data = resp.json()

        result = data.get("result") if isinstance(data, dict) else None
        if result is None:
            return []
        if not isinstance(result, list):
            raise ValueError(f"basescan error: {str(result)[:120]}")

        transfers = [parse_transfer(item) for item in result if isinstance(item, dict)]
        log.debug(
            "basescan.transfers_fetched",
            address=address[:10],
            count=len(transfers),
        )
        return transfers


# ── Parsers ──────────────────────────────────────────────────────────

def parse_transfer(raw: dict[str, Any]) -> TokenTransfer:
    """Parse a raw tokentx row."""
    try:
        value = float(raw.get("value") or 0)
    except (TypeError, ValueError):
        value = 0.0
    return TokenTransfer(
        from_address=str(raw.get("from", "")),
        to_address=str(raw.get("to", "")),
        value=value,
        contract_address=str(raw.get("contractAddress", "")),
        token_symbol=str(raw.get("tokenSymbol", "")),
        tx_hash=str(raw.get("hash", "")),
        timestamp=str(raw.get("timeStamp", "")),
    )
