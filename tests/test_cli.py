"""Tests for memex.cli: commands run against a temp ledger with fake upstreams."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from conftest import WHALE_A


@pytest.fixture
def cli_env(tmp_path, monkeypatch, market_client, chain_client):
    """Point the CLI at a temp ledger and swap in the fake upstream clients."""
    from memex.analytics import whale_tracker
    from memex.engine import market_scanner

    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        f"storage:\n  sqlite_path: {tmp_path / 'cli.db'}\n"
        f"whales:\n  watchlist: ['{WHALE_A}']\n"
    )
    monkeypatch.setattr(market_scanner, "DexScreenerClient", lambda *a, **k: market_client)
    monkeypatch.setattr(whale_tracker, "BasescanClient", lambda *a, **k: chain_client)
    return ["--config", str(cfg_path)]


def _invoke(args):
    from memex.cli import cli

    return CliRunner().invoke(cli, args, catch_exceptions=False)


class TestCli:
    def test_scan(self, cli_env):
        result = _invoke(cli_env + ["scan", "--limit", "2"])
        assert result.exit_code == 0
        assert "ROCKET" in result.output

    def test_scan_bad_limit(self, cli_env):
        from memex.cli import cli

        result = CliRunner().invoke(cli, cli_env + ["scan", "--limit", "0"])
        assert result.exit_code != 0

    def test_trade_then_portfolio(self, cli_env):
        result = _invoke(cli_env + ["trade", "--token", "0xabc", "--symbol", "PEPE", "--amount", "5"])
        assert result.exit_code == 0
        assert "PEPE" in result.output

        result = _invoke(cli_env + ["portfolio"])
        assert result.exit_code == 0
        assert "PEPE" in result.output

    def test_copy(self, cli_env):
        result = _invoke(cli_env + ["copy", WHALE_A, "--percentage", "10"])
        assert result.exit_code == 0
        assert "COPY_" in result.output

    def test_task(self, cli_env):
        payload = json.dumps({"token": "rocket"})
        result = _invoke(cli_env + ["task", "analyze_meme_coin", "--input", payload])
        assert result.exit_code == 0
        assert "ROCKET" in result.output

    def test_task_bad_json(self, cli_env):
        from memex.cli import cli

        result = CliRunner().invoke(cli, cli_env + ["task", "momentum_scan", "--input", "{oops"])
        assert result.exit_code != 0

    def test_card_lists_tasks(self, cli_env):
        result = _invoke(cli_env + ["card"])
        assert result.exit_code == 0
        assert "MEMEX1000" in result.output
        assert "copy_trade" in result.output

    def test_card_json(self, cli_env):
        result = _invoke(cli_env + ["card", "--json"])
        assert result.exit_code == 0
        assert '"currency": "USDC"' in result.output

    def test_copy_uses_configured_default_percentage(self, cli_env):
        result = _invoke(cli_env + ["copy", WHALE_A])
        assert result.exit_code == 0
        assert '"amount": 0.01' in result.output  # 10% of 0.1
