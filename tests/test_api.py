"""Tests for memex.api.app: HTTP routes, status codes and auth."""

from __future__ import annotations

import pytest

from conftest import WHALE_A
from memex.api.app import create_app


@pytest.fixture
def client(pipeline):
    app = create_app(pipeline, api_key="")
    app.config["TESTING"] = True
    return app.test_client()


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["agent"] == "MEMEX1000"
        assert body["status"] == "online"
        assert body["ledger"] is True
        assert "/api/scan" in body["endpoints"]

    def test_root_is_health(self, client):
        assert client.get("/").get_json()["status"] == "online"

    def test_cors_header(self, client):
        assert client.get("/health").headers["Access-Control-Allow-Origin"] == "*"

    def test_metrics_text(self, client):
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert resp.content_type.startswith("text/plain")

    def test_unknown_route_404(self, client):
        resp = client.get("/api/nothing-here")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Not found"}


class TestReads:
    def test_scan(self, client):
        body = client.get("/api/scan?limit=2").get_json()
        assert body["count"] == 2
        assert body["results"][0]["symbol"] == "ROCKET"

    def test_scan_default_limit(self, client):
        assert client.get("/api/scan").get_json()["count"] == 3

    @pytest.mark.parametrize("limit", ["0", "99", "abc"])
    def test_scan_bad_limit(self, client, limit):
        resp = client.get(f"/api/scan?limit={limit}")
        assert resp.status_code == 400
        assert "limit" in resp.get_json()["error"]

    def test_whales(self, client):
        body = client.get("/api/whales").get_json()
        assert body["count"] == 1
        assert body["signals"][0]["address"] == WHALE_A

    def test_track(self, client):
        body = client.get(f"/api/track/{WHALE_A}").get_json()
        assert body["signal"] == "BUY"
        assert body["confidence"] == 70

    def test_track_unknown_404(self, client):
        resp = client.get("/api/track/0xdead")
        assert resp.status_code == 404

    def test_portfolio_empty(self, client, pipeline):
        body = client.get("/api/portfolio").get_json()
        assert body == {"wallet": pipeline.config.agent.wallet, "positions": [], "trades": []}

    def test_card(self, client):
        body = client.get("/api/card").get_json()
        assert body["name"] == "MEMEX1000"
        assert "copy_trade" in body["skills"]

    def test_logs(self, client):
        client.post("/api/trade", json={"symbol": "PEPE", "amount": 1})
        logs = client.get("/api/logs").get_json()["logs"]
        assert logs[0]["event"] == "trade.executed"


class TestWrites:
    def test_analyze(self, client):
        resp = client.post("/api/analyze", json={"token": "pepe"})
        assert resp.status_code == 200
        assert resp.get_json()["symbol"] == "PEPE"

    def test_analyze_not_found(self, client):
        resp = client.post("/api/analyze", json={"token": "nothing"})
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Not found"

    def test_analyze_missing_token(self, client):
        assert client.post("/api/analyze", json={}).status_code == 400

    def test_malformed_body(self, client):
        resp = client.post("/api/trade", data="{not json", content_type="application/json")
        assert resp.status_code == 400

    def test_non_object_body(self, client):
        assert client.post("/api/trade", json=[1, 2]).status_code == 400

    def test_trade_then_portfolio(self, client):
        resp = client.post("/api/trade", json={
            "token": "0xabc", "symbol": "PEPE", "amount": 100, "type": "buy",
        })
        assert resp.status_code == 200
        trade = resp.get_json()["trade"]
        assert trade["type"] == "BUY"
        assert "seq" not in trade

        pf = client.get("/api/portfolio").get_json()
        assert pf["positions"][0]["amount"] == 100
        assert pf["trades"][0]["trade_id"] == trade["trade_id"]

    @pytest.mark.parametrize("raw", [
        '{"token": "0xT", "amount": 1e999, "type": "BUY"}',
        '{"token": "0xT", "amount": Infinity}',
        '{"token": "0xT", "amount": NaN}',
    ])
    def test_trade_non_finite_amount_rejected(self, client, pipeline, raw):
        resp = client.post("/api/trade", data=raw, content_type="application/json")
        assert resp.status_code == 400
        assert "amount" in resp.get_json()["error"]
        assert pipeline.db.count_trades() == 0
        assert pipeline.db.get_position("0xT") is None

    def test_trade_empty_body_uses_defaults(self, client):
        body = client.post("/api/trade").get_json()
        assert body["trade"]["symbol"] == "UNKNOWN"

    def test_trade_invalid_side(self, client):
        assert client.post("/api/trade", json={"type": "HOLD"}).status_code == 400

    def test_trade_store_down_503(self, client, pipeline):
        pipeline.db.close()
        resp = client.post("/api/trade", json={"symbol": "PEPE", "amount": 1})
        assert resp.status_code == 503
        assert "Ledger unavailable" in resp.get_json()["error"]

    def test_portfolio_store_down_degrades(self, client, pipeline):
        pipeline.db.close()
        body = client.get("/api/portfolio").get_json()
        assert body["degraded"] is True

    def test_copy(self, client):
        body = client.post("/api/copy", json={"targetAddress": WHALE_A}).get_json()
        assert body["success"] is True
        assert body["trade"]["amount"] == pytest.approx(0.01)

    def test_copy_hold_not_copied(self, client, pipeline):
        from conftest import WHALE_B

        body = client.post("/api/copy", json={"targetAddress": WHALE_B}).get_json()
        assert body["success"] is False
        assert body["error"] == "No buy signal"
        assert pipeline.db.count_trades() == 0

    def test_copy_bad_percentage(self, client):
        resp = client.post("/api/copy", json={"targetAddress": WHALE_A, "percentage": 500})
        assert resp.status_code == 400

    def test_copy_non_finite_percentage(self, client, pipeline):
        raw = '{"targetAddress": "' + WHALE_A + '", "percentage": 1e999}'
        resp = client.post("/api/copy", data=raw, content_type="application/json")
        assert resp.status_code == 400
        assert pipeline.db.count_trades() == 0


class TestAuth:
    def test_key_required_on_api_routes(self, pipeline):
        client = create_app(pipeline, api_key="s3cret").test_client()
        assert client.get("/api/portfolio").status_code == 401
        assert client.get("/api/portfolio", headers={"X-API-Key": "s3cret"}).status_code == 200
        assert client.get("/api/portfolio?api_key=s3cret").status_code == 200

    def test_health_open_without_key(self, pipeline):
        client = create_app(pipeline, api_key="s3cret").test_client()
        assert client.get("/health").status_code == 200
