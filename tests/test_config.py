"""Tests for memex.config: defaults, YAML loading and env overrides."""

from __future__ import annotations

import pytest

from memex.config import BotConfig, load_config

ENV_KEYS = ["BASESCAN_API_KEY", "MEMEX_DB_PATH", "PORT", "LOG_LEVEL", "LOG_FORMAT"]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestDefaults:
    def test_agent_identity(self):
        cfg = BotConfig()
        assert cfg.agent.name == "MEMEX1000"
        assert cfg.agent.wallet == "0x9C67140AdE64577ef6B40BeA6a801aDf1555a5E8"

    def test_scanning_rules(self):
        s = BotConfig().scanning
        assert s.chain == "base"
        assert s.min_liquidity_usd == 10_000
        assert "pepe" in s.keywords and "based" in s.keywords
        assert len(s.keywords) == 10

    def test_whale_defaults(self):
        w = BotConfig().whales
        assert len(w.watchlist) == 2
        assert w.window_size == 20
        assert w.min_watchlist_confidence == 50

    def test_scheduler_defaults(self):
        s = BotConfig().scheduler
        assert (s.whale_interval_secs, s.momentum_interval_secs) == (120, 300)
        assert s.copy_percentage == 5


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "absent.yaml")
        assert cfg.api.port == 3000

    def test_yaml_overrides(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "scanning:\n  min_liquidity_usd: 25000\n"
            "whales:\n  watchlist: ['0x1']\n"
            "api:\n  port: 8080\n"
        )
        cfg = load_config(path)
        assert cfg.scanning.min_liquidity_usd == 25_000
        assert cfg.whales.watchlist == ["0x1"]
        assert cfg.api.port == 8080
        assert cfg.scanning.chain == "base"

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path).agent.name == "MEMEX1000"

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BASESCAN_API_KEY", "abc123")
        monkeypatch.setenv("MEMEX_DB_PATH", str(tmp_path / "x.db"))
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        cfg = load_config(tmp_path / "absent.yaml")
        assert cfg.whales.basescan_api_key == "abc123"
        assert cfg.storage.sqlite_path.endswith("x.db")
        assert cfg.api.port == 9000
        assert cfg.observability.log_level == "DEBUG"

    def test_repo_config_file_loads(self):
        cfg = load_config()
        assert cfg.scheduler.copy_min_confidence == 60
