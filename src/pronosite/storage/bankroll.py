"""Bankroll singleton persistence with versioned (compare-and-swap) writes."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from pronosite.errors import ConsistencyError, NotFoundError
from pronosite.ledger.bankroll import BankrollState

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

BANKROLL_ID = 1

BANKROLL_COLUMNS = [
    "initial_balance", "balance", "total_profit", "total_loss",
    "won_count", "lost_count", "version", "updated_at",
]


def fetch_bankroll(conn: DuckDBPyConnection) -> BankrollState:
    """Return the singleton. A missing row is a setup bug, never a zero balance."""
    row = conn.execute(
        f"SELECT {', '.join(BANKROLL_COLUMNS)} FROM bankroll WHERE bankroll_id = ?",
        [BANKROLL_ID],
    ).fetchone()
    if not row:
        raise NotFoundError("bankroll row is missing, run 'prono bankroll init'")
    return BankrollState(**dict(zip(BANKROLL_COLUMNS, row)))


def create_bankroll(conn: DuckDBPyConnection, initial_balance: Decimal, now_ms: int) -> bool:
    """Insert the singleton if absent. Returns True when it was created."""
    exists = conn.execute("SELECT COUNT(*) FROM bankroll WHERE bankroll_id = ?", [BANKROLL_ID]).fetchone()[0]
    if exists:
        return False
    state = BankrollState(initial_balance=initial_balance)
    conn.execute(
        """
        INSERT INTO bankroll (bankroll_id, initial_balance, balance, total_profit, total_loss,
                              won_count, lost_count, version, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
        """,
        [
            BANKROLL_ID,
            state.initial_balance,
            state.balance,
            state.total_profit,
            state.total_loss,
            state.won_count,
            state.lost_count,
            now_ms,
            now_ms,
        ],
    )
    return True


def write_bankroll(conn: DuckDBPyConnection, state: BankrollState, now_ms: int) -> None:
    """Persist state if the row still has state.version, then bump state.version.

    Raises ConsistencyError when another writer got there first.
    """
    rows = conn.execute(
        """
        UPDATE bankroll
        SET balance = ?, total_profit = ?, total_loss = ?, won_count = ?, lost_count = ?,
            version = version + 1, updated_at = ?
        WHERE bankroll_id = ? AND version = ?
        RETURNING version
        """,
        [
            state.balance,
            state.total_profit,
            state.total_loss,
            state.won_count,
            state.lost_count,
            now_ms,
            BANKROLL_ID,
            state.version,
        ],
    ).fetchall()
    if not rows:
        raise ConsistencyError(f"bankroll version {state.version} is stale, concurrent write detected")
    state.version = int(rows[0][0])
    state.updated_at = now_ms
