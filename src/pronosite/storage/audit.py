"""Ledger event log - append-only audit trail of bankroll-affecting actions."""

from __future__ import annotations

import json
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from pronosite.models.ledger import LedgerEvent, LedgerEventType

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

EVENT_COLUMNS = ["event_id", "event_type", "pick_id", "amount", "balance_after", "created_at", "detail"]


def append_ledger_event(
    conn: DuckDBPyConnection,
    event_type: LedgerEventType,
    pick_id: int | None,
    amount: Decimal,
    balance_after: Decimal,
    created_at: int,
    detail: dict[str, Any] | None = None,
) -> int:
    """Append one event. Call inside the transaction of the action it records."""
    row = conn.execute(
        """
        INSERT INTO ledger_events (event_type, pick_id, amount, balance_after, created_at, detail)
        VALUES (?, ?, ?, ?, ?, ?)
        RETURNING event_id
        """,
        [event_type.value, pick_id, amount, balance_after, created_at, json.dumps(detail or {}, default=str)],
    ).fetchone()
    return int(row[0])


def list_ledger_events(
    conn: DuckDBPyConnection,
    pick_id: int | None = None,
    limit: int = 100,
) -> list[LedgerEvent]:
    """Newest first, optionally for one pick."""
    params: list[Any] = []
    where = ""
    if pick_id is not None:
        where = "WHERE pick_id = ?"
        params.append(pick_id)
    params.append(limit)
    rows = conn.execute(
        f"""
        SELECT {", ".join(EVENT_COLUMNS)} FROM ledger_events
        {where}
        ORDER BY event_id DESC
        LIMIT ?
        """,
        params,
    ).fetchall()
    out = []
    for r in rows:
        d = dict(zip(EVENT_COLUMNS, r))
        d["detail"] = json.loads(d["detail"]) if isinstance(d["detail"], str) else (d["detail"] or {})
        out.append(LedgerEvent(**d))
    return out
