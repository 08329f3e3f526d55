"""DuckDB connection, schema init and transactions."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import duckdb
import structlog

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

SCHEMA_SQL = """
-- Sequences for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS pick_seq START 1;
CREATE SEQUENCE IF NOT EXISTS leg_seq START 1;
CREATE SEQUENCE IF NOT EXISTS news_seq START 1;
CREATE SEQUENCE IF NOT EXISTS ledger_event_seq START 1;

-- Predictions. profit/settled_at are NULL exactly while status = 'pending'
CREATE TABLE IF NOT EXISTS picks (
    pick_id         BIGINT PRIMARY KEY DEFAULT nextval('pick_seq'),
    kind            VARCHAR NOT NULL,
    stake           DECIMAL(18, 2) NOT NULL,
    total_odds      DECIMAL(18, 2) NOT NULL,
    visibility      VARCHAR NOT NULL,
    status          VARCHAR NOT NULL DEFAULT 'pending',
    profit          DECIMAL(18, 2),
    archived        BOOLEAN NOT NULL DEFAULT FALSE,
    settled_at      BIGINT,
    created_at      BIGINT NOT NULL
);

-- Match legs, owned by one pick (deleted with it by the pick service)
CREATE TABLE IF NOT EXISTS pick_legs (
    leg_id          BIGINT PRIMARY KEY DEFAULT nextval('leg_seq'),
    pick_id         BIGINT NOT NULL,
    sport           VARCHAR NOT NULL,
    home            VARCHAR NOT NULL,
    away            VARCHAR NOT NULL,
    bet_type        VARCHAR NOT NULL,
    odds            DECIMAL(18, 2) NOT NULL,
    match_date      VARCHAR NOT NULL,
    created_at      BIGINT NOT NULL
);

-- Bankroll singleton (bankroll_id is always 1). version is bumped on every write
CREATE TABLE IF NOT EXISTS bankroll (
    bankroll_id     INTEGER PRIMARY KEY,
    initial_balance DECIMAL(18, 2) NOT NULL,
    balance         DECIMAL(18, 2) NOT NULL,
    total_profit    DECIMAL(18, 2) NOT NULL,
    total_loss      DECIMAL(18, 2) NOT NULL,
    won_count       INTEGER NOT NULL,
    lost_count      INTEGER NOT NULL,
    version         BIGINT NOT NULL,
    created_at      BIGINT NOT NULL,
    updated_at      BIGINT NOT NULL
);

-- News articles
CREATE TABLE IF NOT EXISTS news (
    article_id      BIGINT PRIMARY KEY DEFAULT nextval('news_seq'),
    title           VARCHAR NOT NULL,
    content         VARCHAR NOT NULL,
    image_url       VARCHAR,
    visibility      VARCHAR NOT NULL,
    status          VARCHAR NOT NULL DEFAULT 'pending',
    category        VARCHAR NOT NULL DEFAULT 'article',
    created_by      VARCHAR,
    created_at      BIGINT NOT NULL
);

-- Ledger audit trail (append-only)
CREATE TABLE IF NOT EXISTS ledger_events (
    event_id        BIGINT PRIMARY KEY DEFAULT nextval('ledger_event_seq'),
    event_type      VARCHAR NOT NULL,
    pick_id         BIGINT,
    amount          DECIMAL(18, 2) NOT NULL,
    balance_after   DECIMAL(18, 2) NOT NULL,
    created_at      BIGINT NOT NULL,
    detail          JSON
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    Use read_only=True for processes that only serve reads while another one writes."""
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise


@contextmanager
def transaction(conn: DuckDBPyConnection) -> Iterator[DuckDBPyConnection]:
    """Run the block in one transaction: commit on success, roll back on any exception."""
    conn.begin()
    try:
        yield conn
    except BaseException:
        conn.rollback()
        log.debug("transaction_rolled_back")
        raise
    else:
        conn.commit()
