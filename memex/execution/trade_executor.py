"""Trade executor: turns decisions into ledger entries.

Every call to ``execute`` produces exactly one TradeRecord and applies
its position transition in the same store transaction.  Fills are paper
fills (see paper_fill.py).

Store write failures propagate as StoreUnavailableError so a caller is
never told a trade happened when it was not recorded.  Portfolio reads
degrade to an empty view instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from memex.analytics.whale_tracker import WhaleTracker
from memex.config import CopyTradeConfig, ExecutionConfig
from memex.execution.paper_fill import (
    PaperFillSimulator,
    new_trade_id,
    random_hex_address,
)
from memex.observability.event_log import EventLog
from memex.observability.metrics import metrics
from memex.policy.copy_policy import CopyDecision, decide_copy
from memex.storage.database import Database, StoreUnavailableError
from memex.storage.models import PositionRecord, TradeRecord


@dataclass
class ExecutionResult:
    """Outcome of an execute or copy-trade call."""
    success: bool
    trade: TradeRecord | None = None
    error: str = ""
    decision: CopyDecision | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.success}
        if self.trade is not None:
            out["trade"] = self.trade.model_dump(exclude={"seq"})
        if self.error:
            out["error"] = self.error
        if self.decision is not None:
            out["decision"] = self.decision.to_dict()
        return out


@dataclass
class Portfolio:
    wallet: str
    positions: list[PositionRecord] = field(default_factory=list)
    trades: list[TradeRecord] = field(default_factory=list)
    degraded: bool = False

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "wallet": self.wallet,
            "positions": [p.model_dump() for p in self.positions],
            "trades": [t.model_dump(exclude={"seq"}) for t in self.trades],
        }
        if self.degraded:
            out["degraded"] = True
        return out


class TradeExecutor:
    """Applies trades to the ledger and composes copy-trades."""

    def __init__(
        self,
        db: Database,
        tracker: WhaleTracker,
        events: EventLog,
        wallet: str,
        copy_config: CopyTradeConfig | None = None,
        exec_config: ExecutionConfig | None = None,
        fills: PaperFillSimulator | None = None,
    ):
        self._db = db
        self._tracker = tracker
        self._events = events
        self._wallet = wallet
        self._copy = copy_config or CopyTradeConfig()
        self._exec = exec_config or ExecutionConfig()
        self._fills = fills or PaperFillSimulator(max_price=self._exec.paper_max_price)

    def execute(self, token: str, symbol: str, amount: float, side: str) -> TradeRecord:
        """Record one trade.  Raises StoreUnavailableError if it cannot be persisted."""
        side = side.upper()
        fill = self._fills.fill(token, amount, side)
        trade = TradeRecord(
            trade_id=new_trade_id(),
            token=token,
            symbol=symbol,
            type=side,
            amount=amount,
            price=fill.price,
            tx=fill.tx,
        )
        try:
            stored = self._db.record_trade(trade)
        except StoreUnavailableError as e:
            metrics.incr("trades.failed")
            self._events.error("trade.not_recorded", side=side, symbol=symbol, error=str(e))
            raise

        metrics.incr("trades.executed")
        self._events.info(
            "trade.executed",
            side=side,
            amount=amount,
            symbol=symbol,
            token=token,
            trade_id=stored.trade_id,
        )
        return stored

    async def copy_trade(self, target: str, percentage: float) -> ExecutionResult:
        """Mirror a watched wallet's BUY signal at ``percentage`` of the base notional."""
        signal = await self._tracker.track(target)
        decision = decide_copy(signal, percentage, self._copy.base_notional)
        if not decision.eligible:
            self._events.info("copy.skipped", target=target[:10], reason=decision.reason)
            return ExecutionResult(success=False, error=decision.reason, decision=decision)

        token = signal.top_token if signal and signal.top_token else random_hex_address(40)
        symbol = f"{self._copy.symbol_prefix}{target[:6]}"
        trade = self.execute(token, symbol, decision.amount, "BUY")
        metrics.incr("trades.copied")
        return ExecutionResult(success=True, trade=trade, decision=decision)

    def get_portfolio(self) -> Portfolio:
        """All open positions plus the latest trades, newest first."""
        try:
            positions = self._db.get_positions()
            trades = self._db.get_recent_trades(self._exec.portfolio_trade_limit)
        except StoreUnavailableError as e:
            self._events.warning("portfolio.store_unavailable", error=str(e))
            return Portfolio(wallet=self._wallet, degraded=True)
        return Portfolio(wallet=self._wallet, positions=positions, trades=trades)
