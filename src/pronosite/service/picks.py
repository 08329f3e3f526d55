"""Pick service - operator actions and viewer listings over storage + ledger.

Every mutating call checks the admin tier first, then runs as one unit of work
on the BankrollLedger handle: a rejected or failed call leaves no partial write.
"""

from __future__ import annotations

import time
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from pronosite.access.visibility import (
    ViewerTier,
    can_view,
    require_admin,
    require_restricted_access,
    visible,
)
from pronosite.errors import InvalidStateError, NotFoundError, ValidationError
from pronosite.models.ledger import LedgerEventType
from pronosite.models.pick import MatchLeg, Outcome, Pick, PickDraft, PickKind, PickStatus, Visibility
from pronosite.service.common import rejections_logged
from pronosite.settlement import engine
from pronosite.settlement.odds import MAX_MONEY, MIN_ODDS, to_money, total_odds
from pronosite.storage import picks as store
from pronosite.storage.audit import append_ledger_event, list_ledger_events
from pronosite.storage.db import transaction

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

    from pronosite.ledger.bankroll import BankrollState
    from pronosite.ledger.handle import BankrollLedger
    from pronosite.models.ledger import LedgerEvent

log = structlog.get_logger(__name__)

SETTLED = [PickStatus.WON, PickStatus.LOST]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _load(conn: DuckDBPyConnection, pick_id: int) -> Pick:
    pick = store.get_pick(conn, pick_id)
    if pick is None:
        raise NotFoundError(f"pick {pick_id} not found")
    return pick


def prepare_draft(draft: PickDraft) -> tuple[PickKind, Decimal, list[MatchLeg], Decimal]:
    """Validate a draft. Returns (kind, stake, legs with money-precision odds, total odds)."""
    if not draft.stake.is_finite() or draft.stake <= 0:
        raise ValidationError(f"stake must be positive, got {draft.stake}")
    if draft.stake > MAX_MONEY:
        raise ValidationError(f"stake {draft.stake} exceeds the storable amount {MAX_MONEY}")
    stake = to_money(draft.stake)
    if stake <= 0:
        raise ValidationError(f"stake rounds to {stake}")
    if not draft.legs:
        raise ValidationError("a pick needs at least one leg")
    legs = []
    for i, leg in enumerate(draft.legs):
        if not leg.home.strip() or not leg.away.strip():
            raise ValidationError(f"leg {i}: both participants are required")
        if not leg.odds.is_finite() or leg.odds < MIN_ODDS:
            raise ValidationError(f"leg {i}: decimal odds must be at least {MIN_ODDS}, got {leg.odds}")
        if leg.odds > MAX_MONEY:
            raise ValidationError(f"leg {i}: odds {leg.odds} out of range")
        legs.append(leg.model_copy(update={"odds": to_money(leg.odds), "leg_id": None, "pick_id": None}))
    total = total_odds(leg.odds for leg in legs)
    # Raw product: quantizing an out-of-range payout would overflow the decimal context
    if stake * total > MAX_MONEY:
        raise ValidationError(f"payout of stake {stake} at odds {total} exceeds the storable amount {MAX_MONEY}")
    kind = draft.kind or (PickKind.SINGLE if len(legs) == 1 else PickKind.COMBINED)
    if kind == PickKind.SINGLE and len(legs) != 1:
        raise ValidationError(f"a single pick has exactly one leg, got {len(legs)}")
    return kind, stake, legs, total


def create_pick(conn: DuckDBPyConnection, tier: ViewerTier, draft: PickDraft) -> Pick:
    """Create a pending pick with its legs."""
    with rejections_logged("pick_create", legs=len(draft.legs)):
        require_admin(tier, "create pick")
        kind, stake, legs, total = prepare_draft(draft)
        with transaction(conn):
            pick_id = store.insert_pick(
                conn,
                kind=kind,
                stake=stake,
                total_odds=total,
                visibility=draft.visibility,
                legs=legs,
                created_at=_now_ms(),
            )
    log.info("pick_created", pick_id=pick_id, kind=kind.value, stake=str(stake), total_odds=str(total))
    return _load(conn, pick_id)


def settle_pick(
    conn: DuckDBPyConnection,
    ledger: BankrollLedger,
    tier: ViewerTier,
    pick_id: int,
    outcome: Outcome | str,
) -> Pick:
    """Grade a pending pick and apply its profit to the bankroll, atomically."""
    with rejections_logged("pick_settle", pick_id=pick_id, outcome=str(outcome)):
        require_admin(tier, "settle pick")
        with ledger.unit_of_work(conn):
            result = engine.settle(_load(conn, pick_id), outcome)
            if not store.write_settlement(conn, result):
                raise InvalidStateError(f"pick {pick_id} is no longer pending")
            state = ledger.apply(conn, result.profit, won=result.won)
            append_ledger_event(
                conn,
                LedgerEventType.SETTLE_WON if result.won else LedgerEventType.SETTLE_LOST,
                pick_id,
                result.profit,
                state.balance,
                result.settled_at,
            )
    log.info("pick_settled", pick_id=pick_id, status=result.status.value, profit=str(result.profit))
    return _load(conn, pick_id)


def archive_pick(conn: DuckDBPyConnection, ledger: BankrollLedger, tier: ViewerTier, pick_id: int) -> Pick:
    """Close a pending pick as lost with profit 0. The bankroll is not touched."""
    with rejections_logged("pick_archive", pick_id=pick_id):
        require_admin(tier, "archive pick")
        with ledger.unit_of_work(conn):
            result = engine.archive(_load(conn, pick_id))
            if not store.write_settlement(conn, result):
                raise InvalidStateError(f"pick {pick_id} is no longer pending")
            state = ledger.snapshot(conn)
            append_ledger_event(
                conn,
                LedgerEventType.ARCHIVE,
                pick_id,
                result.profit,
                state.balance,
                result.settled_at,
                {"reason": "closed without grading"},
            )
    log.info("pick_archived", pick_id=pick_id)
    return _load(conn, pick_id)


def delete_pick(
    conn: DuckDBPyConnection,
    ledger: BankrollLedger,
    tier: ViewerTier,
    pick_id: int,
) -> BankrollState:
    """Delete a pick and its legs. A settled pick triggers a full ledger recompute."""
    with rejections_logged("pick_delete", pick_id=pick_id):
        require_admin(tier, "delete pick")
        with ledger.unit_of_work(conn):
            pick = _load(conn, pick_id)
            store.delete_pick(conn, pick_id)
            if pick.is_pending:
                state = ledger.snapshot(conn)
            else:
                before = ledger.snapshot(conn).balance
                state = ledger.recompute(conn, store.list_settled_picks(conn))
                append_ledger_event(
                    conn,
                    LedgerEventType.DELETE,
                    pick_id,
                    state.balance - before,
                    state.balance,
                    _now_ms(),
                    {"status": pick.status.value, "profit": pick.profit, "archived": pick.archived},
                )
    log.info("pick_deleted", pick_id=pick_id, was=pick.status.value, balance=str(state.balance))
    return state


def recompute_bankroll(conn: DuckDBPyConnection, ledger: BankrollLedger, tier: ViewerTier) -> BankrollState:
    """Rebuild the bankroll from every settled pick (bulk correction)."""
    with rejections_logged("bankroll_recompute"):
        require_admin(tier, "recompute bankroll")
        with ledger.unit_of_work(conn):
            before = ledger.snapshot(conn).balance
            state = ledger.recompute(conn, store.list_settled_picks(conn))
            append_ledger_event(
                conn,
                LedgerEventType.RECOMPUTE,
                None,
                state.balance - before,
                state.balance,
                _now_ms(),
                {"won_count": state.won_count, "lost_count": state.lost_count},
            )
    return state


def set_pick_visibility(
    conn: DuckDBPyConnection,
    tier: ViewerTier,
    pick_id: int,
    visibility: Visibility | str,
) -> Pick:
    """Move a pick between public and VIP. No ledger effect."""
    with rejections_logged("pick_visibility", pick_id=pick_id):
        require_admin(tier, "change pick visibility")
        try:
            visibility = Visibility(visibility)
        except ValueError:
            raise ValidationError(f"unknown visibility: {visibility!r}") from None
        if not store.set_pick_visibility(conn, pick_id, visibility):
            raise NotFoundError(f"pick {pick_id} not found")
    log.info("pick_visibility_changed", pick_id=pick_id, visibility=visibility.value)
    return _load(conn, pick_id)


def get_pick(conn: DuckDBPyConnection, tier: ViewerTier, pick_id: int) -> Pick:
    """A pick the viewer may see. Hidden picks look missing."""
    pick = store.get_pick(conn, pick_id)
    if pick is None or not can_view(pick, tier):
        raise NotFoundError(f"pick {pick_id} not found")
    return pick


def list_picks(
    conn: DuckDBPyConnection,
    tier: ViewerTier,
    status: PickStatus | None = None,
    visibility: Visibility | None = None,
) -> list[Pick]:
    """Picks this viewer may see, filtered and ordered for display."""
    order = "settled" if status in SETTLED else "created"
    picks = store.list_picks(
        conn,
        statuses=[status] if status is not None else None,
        visibility=visibility,
        order=order,
    )
    return visible(picks, tier)


def home_feed(conn: DuckDBPyConnection, settled_limit: int = 10) -> dict[str, list[Pick]]:
    """Public pending picks plus the most recent public settled ones. Same for every tier."""
    pending = store.list_picks(conn, statuses=[PickStatus.PENDING], visibility=Visibility.PUBLIC)
    settled = store.list_picks(
        conn,
        statuses=SETTLED,
        visibility=Visibility.PUBLIC,
        order="settled",
        limit=settled_limit,
    )
    return {"pending": pending, "settled": settled}


def vip_feed(conn: DuckDBPyConnection, tier: ViewerTier) -> list[Pick]:
    """Restricted pending picks, for VIP and admin viewers only."""
    require_restricted_access(tier, "VIP feed")
    return store.list_picks(conn, statuses=[PickStatus.PENDING], visibility=Visibility.RESTRICTED)


def history(conn: DuckDBPyConnection, tier: ViewerTier) -> list[Pick]:
    """Settled picks visible to the viewer, newest settlement first."""
    return visible(store.list_picks(conn, statuses=SETTLED, order="settled"), tier)


def bankroll_snapshot(conn: DuckDBPyConnection, ledger: BankrollLedger) -> BankrollState:
    return ledger.snapshot(conn)


def ledger_events(
    conn: DuckDBPyConnection,
    tier: ViewerTier,
    pick_id: int | None = None,
    limit: int = 100,
) -> list[LedgerEvent]:
    """Audit trail, admin only."""
    require_admin(tier, "read ledger events")
    return list_ledger_events(conn, pick_id=pick_id, limit=limit)
