"""Agent-task surface.

Maps the named tasks an agent-marketplace integration can invoke onto
the pipeline facade.  Each task takes a JSON-like dict and returns one;
inputs are validated with the same request models as the HTTP API.

Tasks:
  analyze_meme_coin   {token}                  -> candidate | {error}
  smart_money_track   {}                       -> {signals}
  execute_trade       {token, symbol, amount, type} -> {success, trade}
  copy_trade          {targetAddress, percentage}   -> {success, ...}
  momentum_scan       {limit}                  -> {results}
  monitor_wallet      {}                       -> portfolio
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from memex.config import AgentConfig
from memex.engine.pipeline import AgentPipeline
from memex.engine.schemas import AnalyzeRequest, CopyRequest, ScanRequest, TradeRequest
from memex.storage.database import StoreUnavailableError

TaskHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


def validation_message(exc: ValidationError) -> str:
    """Flatten a pydantic error into one human-readable line."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


class TaskRegistry:
    """Named-task dispatcher in front of an AgentPipeline."""

    def __init__(self, pipeline: AgentPipeline, agent: AgentConfig | None = None):
        self._pipeline = pipeline
        self._agent = agent or pipeline.config.agent
        self._handlers: dict[str, TaskHandler] = {
            "analyze_meme_coin": self._analyze,
            "smart_money_track": self._smart_money,
            "execute_trade": self._execute,
            "copy_trade": self._copy,
            "momentum_scan": self._momentum,
            "monitor_wallet": self._monitor,
        }

    @property
    def names(self) -> list[str]:
        return list(self._handlers)

    async def dispatch(self, name: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a task.  Invalid input, unknown tasks and store outages come back as {error}."""
        handler = self._handlers.get(name)
        if handler is None:
            return {"error": f"Unknown task: {name}"}
        try:
            return await handler(payload or {})
        except ValidationError as e:
            return {"error": validation_message(e)}
        except StoreUnavailableError as e:
            return {"error": f"Ledger unavailable: {e}"}

    def help_reply(self) -> str:
        lines = [f"🤖 {self._agent.name}", "", "Tasks:"]
        lines += [f"• {name}" for name in self._handlers]
        lines += ["", f"💰 {self._agent.price_amount} {self._agent.price_currency}/task"]
        return "\n".join(lines)

    def card(self) -> dict[str, Any]:
        """Agent card advertised to the marketplace."""
        return {
            "name": self._agent.name,
            "description": self._agent.description,
            "skills": self.names,
            "pricing": {
                "amount": self._agent.price_amount,
                "currency": self._agent.price_currency,
                "chain": self._agent.chain,
            },
            "wallet": self._agent.wallet,
        }

    # ── Handlers ─────────────────────────────────────────────────────

    async def _analyze(self, payload: dict[str, Any]) -> dict[str, Any]:
        candidate = await self._pipeline.analyze(AnalyzeRequest.model_validate(payload))
        return candidate.to_dict() if candidate else {"error": "Not found"}

    async def _smart_money(self, payload: dict[str, Any]) -> dict[str, Any]:
        scan = await self._pipeline.whale_scan()
        return {"signals": scan.signals}

    async def _execute(self, payload: dict[str, Any]) -> dict[str, Any]:
        result = await self._pipeline.execute_trade(TradeRequest.model_validate(payload))
        return result.to_dict()

    async def _copy(self, payload: dict[str, Any]) -> dict[str, Any]:
        result = await self._pipeline.copy_trade(CopyRequest.model_validate(payload))
        return result.to_dict()

    async def _momentum(self, payload: dict[str, Any]) -> dict[str, Any]:
        scan = await self._pipeline.momentum_scan(ScanRequest.model_validate(payload))
        return {"results": scan.results}

    async def _monitor(self, payload: dict[str, Any]) -> dict[str, Any]:
        portfolio = await self._pipeline.portfolio()
        return portfolio.to_dict()
