"""Scheduled jobs: the agent's heartbeat.

Three independent loops share one asyncio event loop:
  1. Whale job     - scan the watchlist, copy-trade the strongest BUY
  2. Momentum job  - scan meme candidates, log the STRONG_BUYs
  3. Heartbeat     - uptime log line

Jobs call the same pipeline operations as external callers, so
timer-triggered and request-triggered writes go through one store path.
A failing job is logged and retried on its next tick; nothing here stops
the process.

BackgroundLoop hosts the event loop in a daemon thread so a synchronous
web server can submit pipeline coroutines onto it.
"""

from __future__ import annotations

import asyncio
import signal
import threading
import time
from concurrent.futures import Future
from typing import Any, Awaitable, Callable, Coroutine

from memex.config import SchedulerConfig
from memex.engine.market_scanner import STRONG_BUY
from memex.engine.pipeline import AgentPipeline
from memex.engine.schemas import CopyRequest, ScanRequest
from memex.execution.trade_executor import ExecutionResult
from memex.observability.logger import get_logger
from memex.observability.metrics import metrics

log = get_logger(__name__)


class AgentEngine:
    """Runs the periodic whale / momentum / heartbeat jobs."""

    def __init__(self, pipeline: AgentPipeline, config: SchedulerConfig | None = None):
        self._pipeline = pipeline
        self._config = config or pipeline.config.scheduler
        self._running = False
        self._started_at = 0.0
        self._tasks: list[asyncio.Task] = []
        self._wake = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def uptime_secs(self) -> float:
        return time.time() - self._started_at if self._started_at else 0.0

    # ── Jobs ─────────────────────────────────────────────────────────

    async def run_whale_job(self) -> ExecutionResult | None:
        """Scan the watchlist; copy-trade the strongest qualifying BUY."""
        self._pipeline.events.info("engine.whale_job")
        scan = await self._pipeline.whale_scan()
        strong = [
            s for s in scan.signals
            if s["signal"] == "BUY" and s["confidence"] > self._config.copy_min_confidence
        ]
        if not strong:
            return None

        self._pipeline.events.info("engine.strong_signals", count=len(strong))
        req = CopyRequest(
            target_address=strong[0]["address"],
            percentage=self._config.copy_percentage,
        )
        return await self._pipeline.copy_trade(req)

    async def run_momentum_job(self) -> list[str]:
        """Scan candidates and report STRONG_BUY symbols."""
        self._pipeline.events.info("engine.momentum_job")
        scan = await self._pipeline.momentum_scan(
            ScanRequest(limit=self._config.momentum_limit)
        )
        gems = [c["symbol"] for c in scan.results if c["recommendation"] == STRONG_BUY]
        if gems:
            self._pipeline.events.info("engine.gems", symbols=", ".join(gems))
        return gems

    async def _heartbeat(self) -> None:
        log.info("engine.heartbeat", uptime_secs=int(self.uptime_secs))

    # ── Lifecycle ────────────────────────────────────────────────────

    async def _every(
        self,
        name: str,
        interval: float,
        job: Callable[[], Awaitable[Any]],
    ) -> None:
        while self._running:
            try:
                await job()
                metrics.incr(f"engine.{name}.runs")
            except Exception as e:
                metrics.incr(f"engine.{name}.errors")
                self._pipeline.events.error(f"engine.{name}_error", error=str(e))
            await self._pause(interval)

    async def _pause(self, secs: float) -> None:
        """Sleep between runs; returns early once stop() is called."""
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=secs)
        except asyncio.TimeoutError:
            pass

    async def start(self) -> None:
        """Start the job loops and wait until stopped."""
        self._running = True
        self._wake = asyncio.Event()
        self._started_at = time.time()
        cfg = self._config
        self._tasks = [
            asyncio.create_task(self._every("whale_job", cfg.whale_interval_secs, self.run_whale_job)),
            asyncio.create_task(self._every("momentum_job", cfg.momentum_interval_secs, self.run_momentum_job)),
            asyncio.create_task(self._every("heartbeat", cfg.heartbeat_secs, self._heartbeat)),
        ]
        self._pipeline.events.info(
            "engine.started",
            whale_interval_secs=cfg.whale_interval_secs,
            momentum_interval_secs=cfg.momentum_interval_secs,
        )

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError, ValueError):
                pass  # Windows or non-main thread

        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._pipeline.events.info("engine.stopped")

    def stop(self) -> None:
        """Stop scheduling new runs.  A job already in flight runs to completion."""
        log.info("engine.stop_requested")
        self._running = False
        self._wake.set()


class BackgroundLoop:
    """An asyncio event loop running in a daemon thread."""

    def __init__(self, name: str = "memex-loop"):
        self._name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._ready = threading.Event()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._worker, daemon=True, name=self._name)
        self._thread.start()
        self._ready.wait()

    def _worker(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._ready.set()
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    def submit(self, coro: Coroutine[Any, Any, Any]) -> Future:
        if self._loop is None:
            raise RuntimeError("BackgroundLoop not started. Call start() first.")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def call(self, coro: Coroutine[Any, Any, Any], timeout: float | None = None) -> Any:
        """Run ``coro`` on the background loop and wait for its result."""
        return self.submit(coro).result(timeout)

    def call_soon(self, fn: Callable[[], Any]) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(fn)

    def stop(self) -> None:
        if self._loop and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread:
            self._thread.join(timeout=5)
