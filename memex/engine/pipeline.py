"""Pipeline facade: the agent's public operations.

One entry point per operation, shared by the scheduler, the HTTP API,
the agent-task registry and the CLI:

  analyze        - look up one token among scored candidates
  momentum_scan  - top-N meme candidates
  whale_scan     - confident signals across the watchlist
  track          - signal for a single address
  execute_trade  - record a BUY/SELL in the ledger
  copy_trade     - mirror a watched wallet's BUY
  portfolio      - positions and latest trades

The facade owns the ledger handle and the event sink and injects them
into each component.  It does no business logic beyond request
defaulting (see schemas.py).
"""

from __future__ import annotations

from typing import Any

from memex.analytics.whale_tracker import WhaleSignal, WhaleTracker
from memex.config import BotConfig
from memex.connectors.basescan import BasescanClient
from memex.connectors.dexscreener import DexScreenerClient
from memex.connectors.rate_limiter import rate_limiter
from memex.engine.market_scanner import MarketScanner, TokenCandidate
from memex.engine.schemas import (
    AnalyzeRequest,
    CopyRequest,
    ScanRequest,
    ScanResponse,
    TradeRequest,
    WhaleScanResponse,
)
from memex.execution.paper_fill import PaperFillSimulator
from memex.execution.trade_executor import ExecutionResult, Portfolio, TradeExecutor
from memex.observability.event_log import EventLog
from memex.storage.database import Database


class AgentPipeline:
    """Scan -> score -> decide -> record, behind one facade."""

    def __init__(
        self,
        config: BotConfig,
        db: Database,
        events: EventLog,
        market_client: DexScreenerClient | None = None,
        chain_client: BasescanClient | None = None,
        fills: PaperFillSimulator | None = None,
    ):
        self.config = config
        self.db = db
        self.events = events
        self.scanner = MarketScanner(config.scanning, events, client=market_client)
        self.tracker = WhaleTracker(config.whales, events, client=chain_client)
        self.executor = TradeExecutor(
            db,
            self.tracker,
            events,
            wallet=config.agent.wallet,
            copy_config=config.copy_trade,
            exec_config=config.execution,
            fills=fills,
        )

    @classmethod
    def from_config(cls, config: BotConfig) -> "AgentPipeline":
        """Build the pipeline with a connected SQLite ledger and tuned rate limits."""
        rate_limiter.configure(
            "dexscreener", config.scanning.requests_per_second, config.scanning.burst
        )
        rate_limiter.configure(
            "basescan", config.whales.requests_per_second, config.whales.burst
        )
        events = EventLog(max_events=config.observability.event_buffer_size)
        db = Database(config.storage)
        db.connect()
        return cls(config, db, events)

    # ── Reads ────────────────────────────────────────────────────────

    async def analyze(self, req: AnalyzeRequest) -> TokenCandidate | None:
        return await self.scanner.analyze(req.token)

    async def momentum_scan(self, req: ScanRequest | None = None) -> ScanResponse:
        req = req or ScanRequest()
        results = await self.scanner.scan(req.limit)
        return ScanResponse(count=len(results), results=[c.to_dict() for c in results])

    async def whale_scan(self) -> WhaleScanResponse:
        signals = await self.tracker.scan_watchlist()
        return WhaleScanResponse(count=len(signals), signals=[s.to_dict() for s in signals])

    async def track(self, address: str) -> WhaleSignal | None:
        return await self.tracker.track(address)

    async def portfolio(self) -> Portfolio:
        return self.executor.get_portfolio()

    def recent_events(self, limit: int | None = None) -> list[dict[str, Any]]:
        return self.events.recent(limit)

    # ── Writes ───────────────────────────────────────────────────────

    async def execute_trade(self, req: TradeRequest) -> ExecutionResult:
        trade = self.executor.execute(req.token, req.symbol, req.amount, req.type)
        return ExecutionResult(success=True, trade=trade)

    async def copy_trade(self, req: CopyRequest) -> ExecutionResult:
        pct = req.percentage
        if pct is None:
            pct = self.config.copy_trade.default_percentage
        return await self.executor.copy_trade(req.target_address, pct)

    async def close(self) -> None:
        await self.scanner.close()
        await self.tracker.close()
        self.db.close()
