"""Database migrations: create and upgrade the ledger schema."""

from __future__ import annotations

import sqlite3

from memex.observability.logger import get_logger

log = get_logger(__name__)

SCHEMA_VERSION = 2

_MIGRATIONS: dict[int, list[str]] = {
    1: [
        """
        CREATE TABLE IF NOT EXISTS positions (
            token TEXT PRIMARY KEY,
            symbol TEXT,
            entry_price REAL DEFAULT 0,
            amount REAL NOT NULL DEFAULT 0 CHECK (amount >= 0),
            created_at TEXT
        );
        """,
        """
        CREATE TABLE IF NOT EXISTS trades (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            trade_id TEXT NOT NULL UNIQUE,
            token TEXT NOT NULL,
            symbol TEXT,
            type TEXT NOT NULL CHECK (type IN ('BUY', 'SELL')),
            amount REAL DEFAULT 0,
            price REAL DEFAULT 0,
            tx TEXT,
            created_at TEXT
        );
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_trades_token ON trades(token);
        """,
    ],
    2: [
        # Trades are an audit trail: refuse in-place edits and deletes
        """
        CREATE TRIGGER IF NOT EXISTS trades_no_update
        BEFORE UPDATE ON trades
        BEGIN
            SELECT RAISE(ABORT, 'trades are append-only');
        END;
        """,
        """
        CREATE TRIGGER IF NOT EXISTS trades_no_delete
        BEFORE DELETE ON trades
        BEGIN
            SELECT RAISE(ABORT, 'trades are append-only');
        END;
        """,
    ],
}


def run_migrations(conn: sqlite3.Connection) -> None:
    """Run all pending migrations."""
    conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)")
    conn.commit()

    current = _get_current_version(conn)

    for version in sorted(_MIGRATIONS.keys()):
        if version <= current:
            continue
        log.info("migrations.running", version=version)
        for sql in _MIGRATIONS[version]:
            conn.execute(sql)
        conn.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (version,),
        )
        conn.commit()
        log.info("migrations.applied", version=version)

    log.info("migrations.complete", version=_get_current_version(conn))


def _get_current_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] if row and row[0] else 0
