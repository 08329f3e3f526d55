"""Picks and pick_legs persistence."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any

from pronosite.models.pick import MatchLeg, Pick, PickStatus, Visibility

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

    from pronosite.models.pick import PickKind
    from pronosite.settlement.engine import Settlement

PICK_COLUMNS = [
    "pick_id", "kind", "stake", "total_odds", "visibility", "status",
    "profit", "archived", "settled_at", "created_at",
]
LEG_COLUMNS = ["leg_id", "pick_id", "sport", "home", "away", "bet_type", "odds", "match_date"]

_ORDERS = {
    "created": "created_at DESC, pick_id DESC",
    "settled": "settled_at DESC, pick_id DESC",
}


def _pick_from_row(row: tuple[Any, ...], legs: list[MatchLeg] | None = None) -> Pick:
    d = dict(zip(PICK_COLUMNS, row))
    return Pick(**d, legs=legs or [])


def _leg_from_row(row: tuple[Any, ...]) -> MatchLeg:
    d = dict(zip(LEG_COLUMNS, row))
    d["match_date"] = date.fromisoformat(d["match_date"])
    return MatchLeg(**d)


def insert_pick(
    conn: DuckDBPyConnection,
    *,
    kind: PickKind,
    stake: Any,
    total_odds: Any,
    visibility: Visibility,
    legs: list[MatchLeg],
    created_at: int,
) -> int:
    """Insert a pending pick and its legs. Returns the new pick_id."""
    pick_id = conn.execute(
        """
        INSERT INTO picks (kind, stake, total_odds, visibility, status, archived, created_at)
        VALUES (?, ?, ?, ?, 'pending', FALSE, ?)
        RETURNING pick_id
        """,
        [kind.value, stake, total_odds, visibility.value, created_at],
    ).fetchone()[0]
    if legs:
        conn.executemany(
            """
            INSERT INTO pick_legs (pick_id, sport, home, away, bet_type, odds, match_date, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                [pick_id, leg.sport.value, leg.home, leg.away, leg.bet_type, leg.odds,
                 leg.match_date.isoformat(), created_at]
                for leg in legs
            ],
        )
    return int(pick_id)


def _legs_by_pick(conn: DuckDBPyConnection, pick_ids: list[int]) -> dict[int, list[MatchLeg]]:
    if not pick_ids:
        return {}
    placeholders = ",".join("?" for _ in pick_ids)
    rows = conn.execute(
        f"""
        SELECT {", ".join(LEG_COLUMNS)} FROM pick_legs
        WHERE pick_id IN ({placeholders})
        ORDER BY match_date, leg_id
        """,
        pick_ids,
    ).fetchall()
    out: dict[int, list[MatchLeg]] = {pid: [] for pid in pick_ids}
    for r in rows:
        leg = _leg_from_row(r)
        out[leg.pick_id].append(leg)
    return out


def get_pick(conn: DuckDBPyConnection, pick_id: int) -> Pick | None:
    """Load one pick with its legs, or None."""
    row = conn.execute(
        f"SELECT {', '.join(PICK_COLUMNS)} FROM picks WHERE pick_id = ?",
        [pick_id],
    ).fetchone()
    if not row:
        return None
    legs = _legs_by_pick(conn, [pick_id])
    return _pick_from_row(row, legs.get(pick_id))


def list_picks(
    conn: DuckDBPyConnection,
    *,
    statuses: list[PickStatus] | None = None,
    visibility: Visibility | None = None,
    order: str = "created",
    limit: int | None = None,
    with_legs: bool = True,
) -> list[Pick]:
    """Select picks filtered by status set and visibility, ordered for display."""
    conditions = ["1=1"]
    params: list[Any] = []
    if statuses:
        conditions.append(f"status IN ({','.join('?' for _ in statuses)})")
        params.extend(s.value for s in statuses)
    if visibility is not None:
        conditions.append("visibility = ?")
        params.append(visibility.value)
    where = " AND ".join(conditions)
    sql = f"SELECT {', '.join(PICK_COLUMNS)} FROM picks WHERE {where} ORDER BY {_ORDERS[order]}"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    rows = conn.execute(sql, params).fetchall()
    if not with_legs:
        return [_pick_from_row(r) for r in rows]
    legs = _legs_by_pick(conn, [r[0] for r in rows])
    return [_pick_from_row(r, legs.get(r[0])) for r in rows]


def list_settled_picks(conn: DuckDBPyConnection) -> list[Pick]:
    """Every won/lost pick (archived included), legs not loaded. Input of ledger recomputation."""
    return list_picks(conn, statuses=[PickStatus.WON, PickStatus.LOST], with_legs=False)


def write_settlement(conn: DuckDBPyConnection, settlement: Settlement) -> bool:
    """Close a pending pick. Returns False if the pick was no longer pending."""
    rows = conn.execute(
        """
        UPDATE picks
        SET status = ?, profit = ?, settled_at = ?, archived = ?
        WHERE pick_id = ? AND status = 'pending'
        RETURNING pick_id
        """,
        [
            settlement.status.value,
            settlement.profit,
            settlement.settled_at,
            settlement.archived,
            settlement.pick_id,
        ],
    ).fetchall()
    return bool(rows)


def set_pick_visibility(conn: DuckDBPyConnection, pick_id: int, visibility: Visibility) -> bool:
    rows = conn.execute(
        "UPDATE picks SET visibility = ? WHERE pick_id = ? RETURNING pick_id",
        [visibility.value, pick_id],
    ).fetchall()
    return bool(rows)


def delete_pick(conn: DuckDBPyConnection, pick_id: int) -> bool:
    """Delete a pick and its legs. Returns False if it did not exist."""
    conn.execute("DELETE FROM pick_legs WHERE pick_id = ?", [pick_id])
    rows = conn.execute("DELETE FROM picks WHERE pick_id = ? RETURNING pick_id", [pick_id]).fetchall()
    return bool(rows)
