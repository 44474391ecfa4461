"""HTTP API: Flask application in front of the pipeline facade.

Read operations are GET routes, writes (trade, copy, analyze) take a
JSON body via POST.  Every response is JSON; errors carry an ``error``
field with a non-2xx status:

  400  malformed body / invalid parameters
  404  unknown route, token or address not found
  503  ledger unavailable for a write
  500  anything else

Flask views are synchronous; pipeline coroutines are handed to a runner
(the engine's BackgroundLoop in production) so every operation runs on
the same event loop as the scheduled jobs.
"""

from __future__ import annotations

import asyncio
import os
import time
from typing import Any, Coroutine, Protocol

from flask import Flask, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from memex.agent.tasks import TaskRegistry, validation_message
from memex.connectors.rate_limiter import rate_limiter
from memex.engine.pipeline import AgentPipeline
from memex.engine.schemas import AnalyzeRequest, CopyRequest, ScanRequest, TradeRequest
from memex.observability.logger import get_logger
from memex.observability.metrics import metrics
from memex.storage.database import StoreUnavailableError

log = get_logger(__name__)

ENDPOINTS = [
    "/api/analyze", "/api/scan", "/api/whales", "/api/track/<address>",
    "/api/portfolio", "/api/trade", "/api/copy", "/api/logs", "/api/card",
]


class CoroutineRunner(Protocol):
    def call(self, coro: Coroutine[Any, Any, Any], timeout: float | None = None) -> Any: ...


class _InlineRunner:
    """Runs each coroutine on a fresh event loop (tests, one-off use)."""

    def call(self, coro: Coroutine[Any, Any, Any], timeout: float | None = None) -> Any:
        return asyncio.run(coro)


class InvalidBody(ValueError):
    pass


def create_app(
    pipeline: AgentPipeline,
    runner: CoroutineRunner | None = None,
    engine: Any | None = None,
    api_key: str | None = None,
) -> Flask:
    """Build the Flask app bound to one pipeline instance."""
    app = Flask(__name__)
    run = (runner or _InlineRunner()).call
    started_at = time.time()
    key = api_key if api_key is not None else os.environ.get("MEMEX_API_KEY", "")
    agent = pipeline.config.agent

    def _json_body() -> dict[str, Any]:
        raw = request.get_data(cache=True)
        if not raw.strip():
            return {}
        body = request.get_json(force=True, silent=True)
        if not isinstance(body, dict):
            raise InvalidBody("Request body must be a JSON object")
        return body

    # ── Cross-cutting ────────────────────────────────────────────────

    @app.before_request
    def _require_auth() -> Any:
        if not key or not request.path.startswith("/api/"):
            return None
        token = request.headers.get("X-API-Key") or request.args.get("api_key", "")
        if token != key:
            return jsonify({"error": "unauthorized"}), 401
        return None

    @app.after_request
    def _cors(resp: Any) -> Any:
        resp.headers["Access-Control-Allow-Origin"] = "*"
        return resp

    @app.errorhandler(ValidationError)
    def _invalid(exc: ValidationError) -> Any:
        return jsonify({"error": validation_message(exc)}), 400

    @app.errorhandler(InvalidBody)
    def _bad_request(exc: InvalidBody) -> Any:
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(StoreUnavailableError)
    def _store_down(exc: StoreUnavailableError) -> Any:
        return jsonify({"error": f"Ledger unavailable: {exc}"}), 503

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException) -> Any:
        msg = "Not found" if exc.code == 404 else exc.name
        return jsonify({"error": msg}), exc.code

    @app.errorhandler(Exception)
    def _unhandled(exc: Exception) -> Any:
        metrics.incr("api.errors")
        log.error("api.unhandled_error", path=request.path, error=str(exc))
        return jsonify({"error": str(exc)}), 500

    # ── Health & metrics ─────────────────────────────────────────────

    @app.route("/")
    @app.route("/health")
    def health() -> Any:
        return jsonify({
            "agent": agent.name,
            "wallet": agent.wallet,
            "status": "online",
            "engine": bool(engine and engine.is_running),
            "ledger": pipeline.db.ping(),
            "uptime": round(time.time() - started_at, 1),
            "endpoints": ENDPOINTS,
        })

    @app.route("/metrics")
    def prometheus_metrics() -> Any:
        body = metrics.render_prometheus()
        for endpoint, stats in rate_limiter.stats().items():
            body += f'memex_rate_limiter_requests_total{{endpoint="{endpoint}"}} {stats["total_requests"]}\n'
        if engine is not None:
            body += f"memex_engine_running {1 if engine.is_running else 0}\n"
        return body, 200, {"Content-Type": "text/plain; charset=utf-8"}

    # ── Reads ────────────────────────────────────────────────────────

    @app.route("/api/scan")
    def api_scan() -> Any:
        req = ScanRequest(limit=request.args.get("limit"))
        return jsonify(run(pipeline.momentum_scan(req)).model_dump())

    @app.route("/api/whales")
    def api_whales() -> Any:
        return jsonify(run(pipeline.whale_scan()).model_dump())

    @app.route("/api/track/<address>")
    def api_track(address: str) -> Any:
        signal = run(pipeline.track(address))
        if signal is None:
            return jsonify({"error": "Not found", "address": address}), 404
        return jsonify(signal.to_dict())

    @app.route("/api/portfolio")
    def api_portfolio() -> Any:
        return jsonify(run(pipeline.portfolio()).to_dict())

    @app.route("/api/logs")
    def api_logs() -> Any:
        return jsonify({"logs": pipeline.recent_events()})

    @app.route("/api/card")
    def api_card() -> Any:
        return jsonify(TaskRegistry(pipeline).card())

    # ── Writes ───────────────────────────────────────────────────────

    @app.route("/api/analyze", methods=["POST"])
    def api_analyze() -> Any:
        req = AnalyzeRequest.model_validate(_json_body())
        candidate = run(pipeline.analyze(req))
        if candidate is None:
            return jsonify({"error": "Not found", "token": req.token}), 404
        return jsonify(candidate.to_dict())

    @app.route("/api/trade", methods=["POST"])
    def api_trade() -> Any:
        req = TradeRequest.model_validate(_json_body())
        return jsonify(run(pipeline.execute_trade(req)).to_dict())

    @app.route("/api/copy", methods=["POST"])
    def api_copy() -> Any:
        req = CopyRequest.model_validate(_json_body())
        return jsonify(run(pipeline.copy_trade(req)).to_dict())

    return app


def run_server(
    pipeline: AgentPipeline,
    host: str = "0.0.0.0",
    port: int = 3000,
    start_engine: bool = True,
) -> None:
    """Serve the API with the scheduler running on a background loop."""
    from memex.engine.loop import AgentEngine, BackgroundLoop

    loop = BackgroundLoop()
    loop.start()
    engine = AgentEngine(pipeline)
    running = None
    if start_engine and pipeline.config.scheduler.enabled:
        running = loop.submit(engine.start())

    app = create_app(pipeline, runner=loop, engine=engine)
    log.info("api.starting", host=host, port=port, engine=start_engine)
    try:
        app.run(host=host, port=port)
    finally:
        loop.call_soon(engine.stop)
        if running is not None:
            # in-flight jobs finish before the ledger closes
            running.result(timeout=60)
        loop.call(pipeline.close())
        loop.stop()
