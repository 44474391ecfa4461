"""Tests for memex.storage: ledger schema, trade recording, position transitions."""

from __future__ import annotations

import sqlite3
import threading

import pytest

from memex.config import StorageConfig
from memex.storage.database import Database, StoreUnavailableError
from memex.storage.migrations import SCHEMA_VERSION, _get_current_version, run_migrations
from memex.storage.models import TradeRecord

TOKEN = "0xabc0000000000000000000000000000000000001"


def _trade(trade_id: str, side: str = "BUY", amount: float = 100.0,
           price: float = 0.0005, token: str = TOKEN) -> TradeRecord:
    return TradeRecord(
        trade_id=trade_id, token=token, symbol="PEPE", type=side,
        amount=amount, price=price, tx="0x" + "ab" * 32,
    )


class TestMigrations:
    def test_fresh_database_reaches_latest_version(self):
        conn = sqlite3.connect(":memory:")
        run_migrations(conn)
        assert _get_current_version(conn) == SCHEMA_VERSION

    def test_migrations_are_idempotent(self):
        conn = sqlite3.connect(":memory:")
        run_migrations(conn)
        run_migrations(conn)
        assert _get_current_version(conn) == SCHEMA_VERSION

    def test_in_memory_database(self):
        db = Database(StorageConfig(sqlite_path=":memory:"))
        db.connect()
        assert db.ping()
        db.close()


class TestRecordTrade:
    def test_buy_opens_position(self, db):
        stored = db.record_trade(_trade("t1", amount=100, price=0.0004))
        assert stored.seq is not None

        pos = db.get_position(TOKEN)
        assert pos is not None
        assert pos.amount == pytest.approx(100)
        assert pos.entry_price == pytest.approx(0.0004)
        assert pos.symbol == "PEPE"

    def test_second_buy_increments_amount_keeps_entry(self, db):
        db.record_trade(_trade("t1", amount=100, price=0.0004))
        db.record_trade(_trade("t2", amount=50, price=0.0009))

        pos = db.get_position(TOKEN)
        assert pos.amount == pytest.approx(150)
        assert pos.entry_price == pytest.approx(0.0004)
        assert len(db.get_positions()) == 1

    def test_concurrent_buys_all_counted(self, db):
        def writer(n: int) -> None:
            for i in range(50):
                db.record_trade(_trade(f"w{n}-{i}", amount=1.0, price=0.0001 * (n + 1)))

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        pos = db.get_position(TOKEN)
        assert pos.amount == pytest.approx(200)
        assert db.count_trades() == 200
        assert len(db.get_positions()) == 1

    def test_sell_removes_position(self, db):
        db.record_trade(_trade("t1"))
        db.record_trade(_trade("t2", side="SELL", amount=10))
        assert db.get_position(TOKEN) is None
        assert db.count_trades() == 2

    def test_sell_without_position_is_recorded(self, db):
        db.record_trade(_trade("t1", side="SELL"))
        assert db.get_positions() == []
        assert db.count_trades() == 1

    def test_positions_per_token(self, db):
        db.record_trade(_trade("t1", token="0x1"))
        db.record_trade(_trade("t2", token="0x2"))
        assert {p.token for p in db.get_positions()} == {"0x1", "0x2"}

    def test_recent_trades_newest_first(self, db):
        for i in range(12):
            db.record_trade(_trade(f"t{i}"))
        recent = db.get_recent_trades(10)
        assert len(recent) == 10
        assert recent[0].trade_id == "t11"
        assert [t.seq for t in recent] == sorted((t.seq for t in recent), reverse=True)

    def test_duplicate_trade_id_rejected_atomically(self, db):
        db.record_trade(_trade("dup", amount=100))
        with pytest.raises(StoreUnavailableError):
            db.record_trade(_trade("dup", amount=50))
        # Position change rolled back with the failed insert
        assert db.get_position(TOKEN).amount == pytest.approx(100)
        assert db.count_trades() == 1

    def test_invalid_side_rejected(self, db):
        with pytest.raises(StoreUnavailableError):
            db.record_trade(_trade("t1", side="HOLD"))
        assert db.count_trades() == 0


class TestAppendOnly:
    def test_update_blocked(self, db):
        db.record_trade(_trade("t1"))
        with pytest.raises(sqlite3.IntegrityError):
            db.conn.execute("UPDATE trades SET amount = 0 WHERE trade_id = 't1'")

    def test_delete_blocked(self, db):
        db.record_trade(_trade("t1"))
        with pytest.raises(sqlite3.IntegrityError):
            db.conn.execute("DELETE FROM trades")
        assert db.count_trades() == 1


class TestUnavailable:
    def test_not_connected_raises(self):
        db = Database(StorageConfig(sqlite_path=":memory:"))
        with pytest.raises(StoreUnavailableError):
            db.record_trade(_trade("t1"))
        with pytest.raises(StoreUnavailableError):
            db.get_positions()

    def test_ping_false_when_closed(self, db):
        db.close()
        assert db.ping() is False
