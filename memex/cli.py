"""CLI entry point for the MEMEX meme-coin agent.

Commands:
  memex scan --limit        - Top meme-coin candidates on Base
  memex analyze TOKEN       - Score one token by symbol or address
  memex whales              - Confident signals across the watchlist
  memex track ADDRESS       - Signal for a single wallet
  memex trade               - Record a paper BUY/SELL in the ledger
  memex copy TARGET         - Mirror a watched wallet's BUY
  memex portfolio           - Positions and latest trades
  memex task NAME --input   - Invoke a named agent task with a JSON payload
  memex card [--json]       - Task menu and pricing (agent card)
  memex serve               - HTTP API with the scheduler in the background
  memex engine start        - Run the scheduled jobs in the foreground
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable

import click
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from memex.agent.tasks import validation_message
from memex.config import BotConfig, load_config
from memex.engine.pipeline import AgentPipeline
from memex.observability.logger import bind_agent, configure_logging, get_logger
from memex.storage.database import StoreUnavailableError

load_dotenv()

console = Console()
log = get_logger(__name__)


def _run(coro: Any) -> Any:
    """Run an async coroutine from sync CLI."""
    return asyncio.run(coro)


def _with_pipeline(cfg: BotConfig, op: Callable[[AgentPipeline], Awaitable[Any]]) -> Any:
    """Open a pipeline, run one operation on it and close it again."""

    async def _go() -> Any:
        pipeline = AgentPipeline.from_config(cfg)
        try:
            return await op(pipeline)
        finally:
            await pipeline.close()

    try:
        return _run(_go())
    except ValidationError as e:
        raise click.BadParameter(validation_message(e))
    except StoreUnavailableError as e:
        raise click.ClickException(f"Ledger unavailable: {e}")


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config.yaml")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """MEMEX meme-coin trading agent."""
    ctx.ensure_object(dict)
    cfg = load_config(config_path)
    ctx.obj["config"] = cfg
    configure_logging(
        level=cfg.observability.log_level,
        fmt="console",  # CLI always uses console format
        log_file=cfg.observability.log_file,
    )
    bind_agent(cfg.agent.name, cfg.agent.wallet)


# ─── SCAN ────────────────────────────────────────────────────────────

@cli.command()
@click.option("--limit", default=5, help="Number of candidates to list (1-50)")
@click.pass_context
def scan(ctx: click.Context, limit: int) -> None:
    """Scan DexScreener for meme-coin candidates."""
    from memex.engine.schemas import ScanRequest

    cfg: BotConfig = ctx.obj["config"]
    resp = _with_pipeline(cfg, lambda p: p.momentum_scan(ScanRequest(limit=limit)))

    table = Table(title=f"🚀 Meme Candidates ({resp.count} found)")
    table.add_column("Symbol", style="cyan")
    table.add_column("Price", justify="right")
    table.add_column("24h", justify="right")
    table.add_column("Volume", justify="right", style="green")
    table.add_column("Liquidity", justify="right")
    table.add_column("Score", justify="right", style="yellow")
    table.add_column("Call")
    table.add_column("Factors", max_width=40)

    for c in resp.results:
        table.add_row(
            c["symbol"],
            str(c["price"]),
            f"{c['change_24h']:+.1f}%",
            f"${c['volume_24h']:,.0f}",
            f"${c['liquidity']:,.0f}",
            str(c["score"]),
            c["recommendation"],
            ", ".join(c["factors"]),
        )

    console.print(table)


@cli.command()
@click.argument("token")
@click.pass_context
def analyze(ctx: click.Context, token: str) -> None:
    """Score a single token by symbol or address."""
    from memex.engine.schemas import AnalyzeRequest

    cfg: BotConfig = ctx.obj["config"]
    candidate = _with_pipeline(cfg, lambda p: p.analyze(AnalyzeRequest(token=token)))
    if candidate is None:
        console.print(f"[red]Not found:[/red] {token}")
        raise SystemExit(1)
    _print_json(candidate.to_dict())


# ─── WHALES ──────────────────────────────────────────────────────────

@cli.command()
@click.pass_context
def whales(ctx: click.Context) -> None:
    """Show confident signals across the whale watchlist."""
    cfg: BotConfig = ctx.obj["config"]
    resp = _with_pipeline(cfg, lambda p: p.whale_scan())

    table = Table(title=f"🐋 Whale Signals ({resp.count})")
    table.add_column("Address", style="dim")
    table.add_column("Signal", style="bold")
    table.add_column("Confidence", justify="right", style="yellow")
    table.add_column("Buys", justify="right")
    table.add_column("Sells", justify="right")
    table.add_column("Inbound", justify="right", style="green")
    for s in resp.signals:
        table.add_row(
            s["address"],
            s["signal"],
            str(s["confidence"]),
            str(s["buy_count"]),
            str(s["sell_count"]),
            f"{s['inbound_value']:,.2f}",
        )
    console.print(table)


@cli.command()
@click.argument("address")
@click.pass_context
def track(ctx: click.Context, address: str) -> None:
    """Compute the signal for one wallet address."""
    cfg: BotConfig = ctx.obj["config"]
    signal = _with_pipeline(cfg, lambda p: p.track(address))
    if signal is None:
        console.print(f"[yellow]No transfer data for {address}[/yellow]")
        raise SystemExit(1)
    _print_json(signal.to_dict())


# ─── TRADES ──────────────────────────────────────────────────────────

@cli.command()
@click.option("--token", default="0x0", help="Token contract address")
@click.option("--symbol", default="UNKNOWN", help="Token symbol")
@click.option("--amount", default=0.0, type=float, help="Quantity to trade")
@click.option("--type", "side", default="BUY", help="BUY or SELL")
@click.pass_context
def trade(ctx: click.Context, token: str, symbol: str, amount: float, side: str) -> None:
    """Record a paper trade in the ledger."""
    from memex.engine.schemas import TradeRequest

    cfg: BotConfig = ctx.obj["config"]
    result = _with_pipeline(
        cfg,
        lambda p: p.execute_trade(
            TradeRequest(token=token, symbol=symbol, amount=amount, type=side)
        ),
    )
    _print_json(result.to_dict())


@cli.command()
@click.argument("target")
@click.option("--percentage", default=None, type=float,
              help="Percent of base notional (default from copy_trade config)")
@click.pass_context
def copy(ctx: click.Context, target: str, percentage: float | None) -> None:
    """Copy-trade a wallet if it shows a BUY signal."""
    from memex.engine.schemas import CopyRequest

    cfg: BotConfig = ctx.obj["config"]
    result = _with_pipeline(
        cfg,
        lambda p: p.copy_trade(CopyRequest(target_address=target, percentage=percentage)),
    )
    if not result.success:
        console.print(f"[yellow]Skipped: {result.error}[/yellow]")
        return
    _print_json(result.to_dict())


@cli.command()
@click.pass_context
def portfolio(ctx: click.Context) -> None:
    """Show open positions and recent trades."""
    cfg: BotConfig = ctx.obj["config"]
    pf = _with_pipeline(cfg, lambda p: p.portfolio())

    console.print(f"[bold]💼 Wallet[/bold] {pf.wallet}")
    if pf.degraded:
        console.print("[red]Ledger unavailable, showing empty portfolio[/red]")

    pos_table = Table(title=f"Positions ({len(pf.positions)})")
    pos_table.add_column("Symbol", style="cyan")
    pos_table.add_column("Token", style="dim")
    pos_table.add_column("Amount", justify="right")
    pos_table.add_column("Entry", justify="right")
    for pos in pf.positions:
        pos_table.add_row(pos.symbol, pos.token, f"{pos.amount:g}", f"{pos.entry_price:.10f}")
    console.print(pos_table)

    trade_table = Table(title="Recent Trades")
    trade_table.add_column("Time", style="dim")
    trade_table.add_column("Side")
    trade_table.add_column("Symbol", style="cyan")
    trade_table.add_column("Amount", justify="right")
    trade_table.add_column("Price", justify="right")
    for t in pf.trades:
        style = "green" if t.type == "BUY" else "red"
        trade_table.add_row(
            t.created_at, f"[{style}]{t.type}[/{style}]", t.symbol,
            f"{t.amount:g}", f"{t.price:.10f}",
        )
    console.print(trade_table)


# ─── AGENT TASKS ─────────────────────────────────────────────────────

@cli.command()
@click.argument("name")
@click.option("--input", "payload", default="{}", help="JSON task input")
@click.pass_context
def task(ctx: click.Context, name: str, payload: str) -> None:
    """Invoke a named agent task (analyze_meme_coin, copy_trade, ...)."""
    from memex.agent.tasks import TaskRegistry

    cfg: BotConfig = ctx.obj["config"]
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"--input is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise click.BadParameter("--input must be a JSON object")

    result = _with_pipeline(cfg, lambda p: TaskRegistry(p).dispatch(name, data))
    _print_json(result)


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print the agent card as JSON")
@click.pass_context
def card(ctx: click.Context, as_json: bool) -> None:
    """Show the agent's task menu and pricing."""
    from memex.agent.tasks import TaskRegistry

    async def _registry(p: AgentPipeline) -> TaskRegistry:
        return TaskRegistry(p)

    cfg: BotConfig = ctx.obj["config"]
    registry = _with_pipeline(cfg, _registry)
    if as_json:
        _print_json(registry.card())
    else:
        console.print(registry.help_reply())


# ─── SERVE ───────────────────────────────────────────────────────────

@cli.command()
@click.option("--host", default=None, help="Bind address (default from config)")
@click.option("--port", default=None, type=int, help="Port (default from config)")
@click.option("--no-engine", is_flag=True, help="Don't start the scheduled jobs")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, no_engine: bool) -> None:
    """Serve the HTTP API (with the scheduler on a background loop)."""
    from memex.api.app import run_server

    cfg: BotConfig = ctx.obj["config"]
    host = host or cfg.api.host
    port = port or cfg.api.port
    console.print(f"[bold cyan]🌐 {cfg.agent.name} API on http://{host}:{port}[/bold cyan]")
    try:
        pipeline = AgentPipeline.from_config(cfg)
    except StoreUnavailableError as e:
        raise click.ClickException(f"Ledger unavailable: {e}")
    run_server(pipeline, host=host, port=port, start_engine=not no_engine)


# ─── ENGINE ──────────────────────────────────────────────────────────

@cli.group()
def engine() -> None:
    """Scheduled job commands."""
    pass


@engine.command()
@click.pass_context
def start(ctx: click.Context) -> None:
    """Run the whale, momentum and heartbeat jobs until interrupted."""
    cfg: BotConfig = ctx.obj["config"]
    sched = cfg.scheduler

    console.print(f"[bold cyan]🤖 Starting {cfg.agent.name} engine[/bold cyan]")
    console.print(f"  Whale job every {sched.whale_interval_secs}s")
    console.print(f"  Momentum job every {sched.momentum_interval_secs}s")
    console.print(f"  Copy threshold: confidence > {sched.copy_min_confidence}")
    console.print(f"  Watchlist: {len(cfg.whales.watchlist)} wallets")
    console.print()

    async def _run_engine() -> None:
        from memex.engine.loop import AgentEngine

        pipeline = AgentPipeline.from_config(cfg)
        eng = AgentEngine(pipeline)
        try:
            await eng.start()
        except KeyboardInterrupt:
            eng.stop()
            console.print("\n[yellow]Engine stopped by user.[/yellow]")
        finally:
            await pipeline.close()

    _run(_run_engine())


if __name__ == "__main__":
    cli()
