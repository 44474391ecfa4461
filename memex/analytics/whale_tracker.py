"""Whale / Smart-Money Accumulation Tracker.

Watches a fixed list of wallets on Base and turns their recent ERC-20
transfer history into a BUY / SELL / HOLD signal:

  1. Take the most recent N transfers (newest first)
  2. Split into inbound (wallet is the receiver) and outbound (sender)
  3. Accumulating when inbound count > ratio x outbound count
  4. Confidence: base points when accumulating, bonus points when the
     summed inbound value clears the threshold, clamped to 100
  5. BUY when accumulating; SELL when outbound dominates inbound by the
     sell ratio; otherwise HOLD

A watchlist scan keeps only signals above the confidence floor, sorted
strongest first.
"""

from __future__ import annotations

import datetime as dt
from collections import Counter
from dataclasses import dataclass
from typing import Any

from memex.config import WhaleConfig
from memex.connectors.basescan import BasescanClient, TokenTransfer
from memex.observability.event_log import EventLog
from memex.observability.logger import get_logger
from memex.observability.metrics import metrics

log = get_logger(__name__)

SIGNAL_BUY = "BUY"
SIGNAL_SELL = "SELL"
SIGNAL_HOLD = "HOLD"


# ── Data Models ──────────────────────────────────────────────────────

@dataclass
class WhaleSignal:
    """Accumulation signal for a single watched wallet."""
    address: str
    signal: str = SIGNAL_HOLD
    confidence: int = 0
    is_accumulating: bool = False
    buy_count: int = 0
    sell_count: int = 0
    inbound_value: float = 0.0
    top_token: str = ""          # contract most often received in the window
    top_token_symbol: str = ""
    detected_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "signal": self.signal,
            "confidence": self.confidence,
            "is_accumulating": self.is_accumulating,
            "buy_count": self.buy_count,
            "sell_count": self.sell_count,
            "inbound_value": round(self.inbound_value, 6),
            "top_token": self.top_token,
            "top_token_symbol": self.top_token_symbol,
            "detected_at": self.detected_at,
        }


def compute_signal(
    address: str,
    transfers: list[TokenTransfer],
    config: WhaleConfig,
) -> WhaleSignal:
    """Score a wallet's most recent transfers.  ``transfers`` is newest first."""
    recent = transfers[: config.window_size]
    inbound = [t for t in recent if t.is_inbound(address)]
    outbound = [t for t in recent if t.is_outbound(address)]
    buys, sells = len(inbound), len(outbound)

    accumulating = buys > sells * config.accumulation_ratio
    inbound_value = sum(t.value for t in inbound)

    confidence = config.accumulation_confidence if accumulating else 0
    if inbound_value > config.inbound_value_threshold:
        confidence += config.inbound_value_confidence
    confidence = max(0, min(confidence, 100))

    if accumulating:
        signal = SIGNAL_BUY
    elif sells > buys * config.sell_dominance_ratio:
        signal = SIGNAL_SELL
    else:
        signal = SIGNAL_HOLD

    top_token, top_symbol = "", ""
    received = Counter(t.contract_address for t in inbound if t.contract_address)
    if received:
        top_token = received.most_common(1)[0][0]
        top_symbol = next(
            (t.token_symbol for t in inbound if t.contract_address == top_token), ""
        )

    return WhaleSignal(
        address=address,
        signal=signal,
        confidence=confidence,
        is_accumulating=accumulating,
        buy_count=buys,
        sell_count=sells,
        inbound_value=inbound_value,
        top_token=top_token,
        top_token_symbol=top_symbol,
        detected_at=dt.datetime.now(dt.timezone.utc).isoformat(),
    )


# ── Tracker ──────────────────────────────────────────────────────────

class WhaleTracker:
    """Tracks accumulation behaviour of watched wallets.

    Usage:
        tracker = WhaleTracker(config.whales, events)
        signal = await tracker.track("0xabc...")   # WhaleSignal | None
        strongest = await tracker.scan_watchlist()
    """

    def __init__(
        self,
        config: WhaleConfig,
        events: EventLog,
        client: BasescanClient | None = None,
    ):
        self._config = config
        self._events = events
        self._client = client or BasescanClient(
            api_key=config.basescan_api_key,
            base_url=config.basescan_url,
        )

    @property
    def watchlist(self) -> list[str]:
        return list(self._config.watchlist)

    async def track(self, address: str) -> WhaleSignal | None:
        """Signal for one wallet, or None when there is no transfer data.

        Fetch failures are swallowed and reported as no data.
        """
        try:
            transfers = await self._client.get_token_transfers(address)
        except Exception as e:
            metrics.incr("whales.errors")
            self._events.warning("whales.fetch_error", address=address[:10], error=str(e))
            return None

        if not transfers:
            log.info("whales.no_data", address=address[:10])
            return None

        signal = compute_signal(address, transfers, self._config)
        metrics.incr("whales.tracked")
        log.debug(
            "whales.tracked",
            address=address[:10],
            signal=signal.signal,
            confidence=signal.confidence,
        )
        return signal

    async def scan_watchlist(self) -> list[WhaleSignal]:
        """Track every watched wallet; keep confident signals, strongest first."""
        results: list[WhaleSignal] = []
        for address in self._config.watchlist:
            signal = await self.track(address)
            if signal and signal.confidence > self._config.min_watchlist_confidence:
                results.append(signal)

        results.sort(key=lambda s: s.confidence, reverse=True)
        metrics.gauge("whales.confident_signals", len(results))
        self._events.info(
            "whales.scan_complete",
            watched=len(self._config.watchlist),
            signals=len(results),
        )
        return results

    async def close(self) -> None:
        await self._client.close()
