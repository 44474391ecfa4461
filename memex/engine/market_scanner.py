"""Momentum scanner: finds and scores meme-token candidates.

Pulls trading pairs for the target chain from DexScreener and keeps the
ones that look like meme tokens with real liquidity.  Each survivor is
scored 0-100 by summing independent rule weights:

  - High volume   24h volume above the floor
  - Strong pump   24h change above the strong threshold, otherwise
    Uptrend       24h change above the uptrend threshold
  - Buy pressure  24h buys exceed sells by the configured ratio
  - Good liq      liquidity above the comfort level

The score maps onto a recommendation: >80 STRONG_BUY, >60 BUY, >40 WATCH,
else PASS.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from memex.config import ScanningConfig
from memex.connectors.dexscreener import DexScreenerClient, PairSnapshot
from memex.observability.event_log import EventLog
from memex.observability.logger import get_logger
from memex.observability.metrics import metrics

log = get_logger(__name__)

STRONG_BUY = "STRONG_BUY"
BUY = "BUY"
WATCH = "WATCH"
PASS = "PASS"


@dataclass
class TokenCandidate:
    """A scored meme-token candidate.  Built once per scan, never mutated."""
    address: str
    symbol: str
    price: str = "0"
    change_24h: float = 0.0
    volume_24h: float = 0.0
    liquidity: float = 0.0
    score: int = 0
    factors: list[str] = field(default_factory=list)
    recommendation: str = PASS

    def matches(self, query: str) -> bool:
        q = query.lower()
        return self.symbol.lower() == q or self.address.lower() == q

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "symbol": self.symbol,
            "price": self.price,
            "change_24h": self.change_24h,
            "volume_24h": self.volume_24h,
            "liquidity": self.liquidity,
            "score": self.score,
            "factors": list(self.factors),
            "recommendation": self.recommendation,
        }


def recommendation_for(score: int) -> str:
    if score > 80:
        return STRONG_BUY
    if score > 60:
        return BUY
    if score > 40:
        return WATCH
    return PASS


def passes_filters(pair: PairSnapshot, config: ScanningConfig) -> bool:
    """Chain, liquidity floor and keyword match."""
    if pair.chain_id != config.chain:
        return False
    if pair.liquidity_usd <= config.min_liquidity_usd:
        return False
    text = pair.search_text
    return any(kw.lower() in text for kw in config.keywords)


def score_pair(pair: PairSnapshot, config: ScanningConfig) -> tuple[int, list[str]]:
    """Score a pair 0-100.  Returns (score, matched factor labels)."""
    score = 0
    factors: list[str] = []

    if pair.volume_24h > config.high_volume_usd:
        score += config.high_volume_weight
        factors.append("High volume")

    if pair.price_change_24h > config.strong_pump_pct:
        score += config.strong_pump_weight
        factors.append("Strong pump")
    elif pair.price_change_24h > config.uptrend_pct:
        score += config.uptrend_weight
        factors.append("Uptrend")

    if pair.buys_24h > pair.sells_24h * config.buy_pressure_ratio:
        score += config.buy_pressure_weight
        factors.append("Buy pressure")

    if pair.liquidity_usd > config.good_liquidity_usd:
        score += config.good_liquidity_weight
        factors.append("Good liq")

    return max(0, min(score, 100)), factors


def build_candidate(pair: PairSnapshot, config: ScanningConfig) -> TokenCandidate:
    score, factors = score_pair(pair, config)
    return TokenCandidate(
        address=pair.address,
        symbol=pair.symbol,
        price=pair.price_usd,
        change_24h=pair.price_change_24h,
        volume_24h=pair.volume_24h,
        liquidity=pair.liquidity_usd,
        score=score,
        factors=factors,
        recommendation=recommendation_for(score),
    )


class MarketScanner:
    """Scans DexScreener for meme-token candidates on one chain."""

    def __init__(
        self,
        config: ScanningConfig,
        events: EventLog,
        client: DexScreenerClient | None = None,
    ):
        self._config = config
        self._events = events
        self._client = client or DexScreenerClient(config.dexscreener_url)

    async def scan(self, limit: int) -> list[TokenCandidate]:
        """Return up to ``limit`` candidates, highest score first.

        Never raises: source failures are logged and yield an empty list.
        """
        try:
            pairs = await self._client.search_pairs(self._config.chain)
            candidates = [
                build_candidate(p, self._config)
                for p in pairs
                if passes_filters(p, self._config)
            ]
        except Exception as e:
            metrics.incr("scanner.errors")
            self._events.error("scanner.scan_error", error=str(e))
            return []

        candidates.sort(key=lambda c: c.score, reverse=True)
        metrics.incr("scanner.scans")
        log.info(
            "scanner.scan_complete",
            pairs=len(pairs),
            candidates=len(candidates),
            limit=limit,
        )
        return candidates[: max(limit, 0)]

    async def analyze(self, query: str) -> TokenCandidate | None:
        """Look up one token by symbol or address within the wider pool."""
        pool = await self.scan(self._config.analyze_pool_size)
        for candidate in pool:
            if candidate.matches(query):
                return candidate
        log.info("scanner.analyze_not_found", query=query, pool=len(pool))
        return None

    async def close(self) -> None:
        await self._client.close()
