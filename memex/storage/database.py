"""Database: SQLite ledger.

Holds the two ledger relations: ``positions`` (one row per token) and
``trades`` (append-only history).  A trade and its position change are
written in a single transaction; the BUY upsert is one atomic
insert-or-increment statement so interleaved callers cannot lose an
increment.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock

from memex.config import StorageConfig
from memex.observability.logger import get_logger
from memex.storage.migrations import run_migrations
from memex.storage.models import PositionRecord, TradeRecord

log = get_logger(__name__)


class StoreUnavailableError(RuntimeError):
    """The ledger store could not be reached or rejected the operation."""


class Database:
    """SQLite ledger for the agent."""

    def __init__(self, config: StorageConfig):
        self._config = config
        self._conn: sqlite3.Connection | None = None
        # One connection is shared by the engine loop thread and the API thread
        self._lock = Lock()

    def connect(self) -> None:
        """Open database connection and run migrations."""
        path = self._config.sqlite_path
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            run_migrations(self._conn)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"cannot open ledger at {path}: {e}") from e
        log.info("database.connected", path=path)

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreUnavailableError("Database not connected. Call connect() first.")
        return self._conn

    # ── Trades ───────────────────────────────────────────────────────

    def record_trade(self, trade: TradeRecord) -> TradeRecord:
        """Append a trade and apply its position transition atomically.

        BUY  -> insert the position, or increment its amount (entry kept)
        SELL -> delete the position row (no-op when absent)
        """
        with self._lock:
            try:
                with self.conn:
                    cur = self.conn.execute(
                        """
                        INSERT INTO trades
                            (trade_id, token, symbol, type, amount, price, tx, created_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            trade.trade_id, trade.token, trade.symbol, trade.type,
                            trade.amount, trade.price, trade.tx, trade.created_at,
                        ),
                    )
                    seq = cur.lastrowid
                    if trade.type == "BUY":
                        self.conn.execute(
                            """
                            INSERT INTO positions
                                (token, symbol, entry_price, amount, created_at)
                            VALUES (?, ?, ?, ?, ?)
                            ON CONFLICT(token) DO UPDATE
                                SET amount = positions.amount + excluded.amount
                            """,
                            (
                                trade.token, trade.symbol, trade.price,
                                trade.amount, trade.created_at,
                            ),
                        )
                    else:
                        self.conn.execute(
                            "DELETE FROM positions WHERE token = ?", (trade.token,)
                        )
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"trade not recorded: {e}") from e

        return trade.model_copy(update={"seq": seq})

    def get_recent_trades(self, limit: int = 10) -> list[TradeRecord]:
        """Latest trades, newest first."""
        with self._lock:
            try:
                rows = self.conn.execute(
                    "SELECT * FROM trades ORDER BY seq DESC LIMIT ?", (limit,)
                ).fetchall()
            except sqlite3.Error as e:
                raise StoreUnavailableError(str(e)) from e
        return [TradeRecord(**dict(r)) for r in rows]

    def count_trades(self) -> int:
        with self._lock:
            try:
                row = self.conn.execute("SELECT COUNT(*) FROM trades").fetchone()
            except sqlite3.Error as e:
                raise StoreUnavailableError(str(e)) from e
        return int(row[0]) if row else 0

    # ── Positions ────────────────────────────────────────────────────

    def get_positions(self) -> list[PositionRecord]:
        with self._lock:
            try:
                rows = self.conn.execute(
                    "SELECT * FROM positions ORDER BY created_at"
                ).fetchall()
            except sqlite3.Error as e:
                raise StoreUnavailableError(str(e)) from e
        return [PositionRecord(**dict(r)) for r in rows]

    def get_position(self, token: str) -> PositionRecord | None:
        with self._lock:
            try:
                row = self.conn.execute(
                    "SELECT * FROM positions WHERE token = ?", (token,)
                ).fetchone()
            except sqlite3.Error as e:
                raise StoreUnavailableError(str(e)) from e
        if row:
            return PositionRecord(**dict(row))
        return None

    def ping(self) -> bool:
        """Readiness probe."""
        try:
            with self._lock:
                self.conn.execute("SELECT 1").fetchone()
            return True
        except (sqlite3.Error, StoreUnavailableError):
            return False
