"""Pick service against a real DuckDB store: lifecycle, ledger effects, atomicity, gating."""

import random
import threading
from decimal import Decimal

import pytest

from pronosite.access.visibility import ViewerTier
from pronosite.errors import (
    AuthorizationError,
    ConsistencyError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from pronosite.ledger.handle import BankrollLedger
from pronosite.models import LedgerEventType, Outcome, PickKind, PickStatus, Visibility
from pronosite.service import picks as service
from pronosite.storage import picks as store
from pronosite.storage.bankroll import fetch_bankroll, write_bankroll

ADMIN = ViewerTier.ADMIN


def _assert_consistent(conn):
    state = fetch_bankroll(conn)
    state.check()
    graded = [p for p in store.list_settled_picks(conn) if not p.archived]
    assert state.won_count == sum(1 for p in graded if p.status == PickStatus.WON)
    assert state.lost_count == sum(1 for p in graded if p.status == PickStatus.LOST)
    for p in store.list_picks(conn, with_legs=False):
        assert p.is_pending == (p.profit is None) == (p.settled_at is None)
    return state


def test_create_single_and_combined(temp_db, draft):
    single = service.create_pick(temp_db, ADMIN, draft("10", "1.85"))
    assert single.kind == PickKind.SINGLE
    assert single.status == PickStatus.PENDING
    assert single.total_odds == Decimal("1.85")
    assert single.profit is None and single.settled_at is None

    combo = service.create_pick(temp_db, ADMIN, draft("20", "1.50", "2.00", "1.80"))
    assert combo.kind == PickKind.COMBINED
    assert combo.total_odds == Decimal("5.40")
    assert len(combo.legs) == 3
    # Legs come back ordered by match date
    assert [leg.match_date for leg in combo.legs] == sorted(leg.match_date for leg in combo.legs)
    assert combo.potential_payout == Decimal("108.00")


@pytest.mark.parametrize(
    "stake,odds",
    [
        ("0", ("2.00",)),
        ("-5", ("2.00",)),
        ("10", ("0",)),
        ("10", ("1.5", "-1")),
        ("10", ("0.50",)),
        ("10", ("1.80", "0.99")),
        ("1000000", ("1000",) * 6),
        ("1e17", ("1.50",)),
        ("5000000000000000", ("2.50",)),
    ],
)
def test_create_rejects_bad_input(temp_db, draft, stake, odds):
    with pytest.raises(ValidationError):
        service.create_pick(temp_db, ADMIN, draft(stake, *odds))
    assert store.list_picks(temp_db) == []


def test_create_rejects_no_legs_and_single_with_many_legs(temp_db, draft):
    empty = draft("10").model_copy(update={"legs": []})
    with pytest.raises(ValidationError):
        service.create_pick(temp_db, ADMIN, empty)
    with pytest.raises(ValidationError):
        service.create_pick(temp_db, ADMIN, draft("10", "1.5", "2.0", kind=PickKind.SINGLE))


def test_settle_won_updates_bankroll(temp_db, ledger, draft):
    pick = service.create_pick(temp_db, ADMIN, draft("10", "3.00"))
    settled = service.settle_pick(temp_db, ledger, ADMIN, pick.pick_id, Outcome.WON)
    assert settled.status == PickStatus.WON
    assert settled.profit == Decimal("20.00")
    assert settled.settled_at is not None
    state = _assert_consistent(temp_db)
    assert state.balance == Decimal("5020.00")
    assert state.total_profit == Decimal("20.00")
    assert state.won_count == 1
    assert state.version == 1


def test_settle_lost_updates_bankroll(temp_db, ledger, draft):
    pick = service.create_pick(temp_db, ADMIN, draft("10", "3.00"))
    service.settle_pick(temp_db, ledger, ADMIN, pick.pick_id, "lost")
    state = _assert_consistent(temp_db)
    assert state.balance == Decimal("4990.00")
    assert state.total_loss == Decimal("10.00")
    assert state.lost_count == 1


def test_settling_twice_is_rejected_and_changes_nothing(temp_db, ledger, draft):
    pick = service.create_pick(temp_db, ADMIN, draft("10", "3.00"))
    service.settle_pick(temp_db, ledger, ADMIN, pick.pick_id, Outcome.WON)
    before = fetch_bankroll(temp_db)
    with pytest.raises(InvalidStateError):
        service.settle_pick(temp_db, ledger, ADMIN, pick.pick_id, Outcome.LOST)
    after = fetch_bankroll(temp_db)
    assert after.totals() == before.totals()
    assert after.version == before.version
    assert store.get_pick(temp_db, pick.pick_id).status == PickStatus.WON


def test_settle_unknown_pick(temp_db, ledger):
    with pytest.raises(NotFoundError):
        service.settle_pick(temp_db, ledger, ADMIN, 999, Outcome.WON)


def test_failed_ledger_write_rolls_back_pick(temp_db, draft):
    """No bankroll row: the settlement must not stick on the pick."""
    pick = service.create_pick(temp_db, ADMIN, draft("10", "3.00"))
    with pytest.raises(NotFoundError):
        service.settle_pick(temp_db, BankrollLedger(), ADMIN, pick.pick_id, Outcome.WON)
    reloaded = store.get_pick(temp_db, pick.pick_id)
    assert reloaded.status == PickStatus.PENDING
    assert reloaded.profit is None
    assert temp_db.execute("SELECT COUNT(*) FROM ledger_events").fetchone()[0] == 0


def test_stale_version_is_detected(temp_db, ledger, draft):
    pick = service.create_pick(temp_db, ADMIN, draft("10", "3.00"))
    # Another writer bumps the row behind the handle's back
    temp_db.execute("UPDATE bankroll SET version = version + 5")
    state = fetch_bankroll(temp_db)
    state.version -= 1
    with pytest.raises(ConsistencyError):
        write_bankroll(temp_db, state, 0)
    # The service path reads the current version and succeeds
    service.settle_pick(temp_db, ledger, ADMIN, pick.pick_id, Outcome.WON)
    _assert_consistent(temp_db)


def test_ledger_mutation_outside_unit_of_work(temp_db, ledger):
    with pytest.raises(ConsistencyError):
        ledger.apply(temp_db, Decimal("5"), won=True)


def test_archive_leaves_bankroll_untouched(temp_db, ledger, draft):
    pick = service.create_pick(temp_db, ADMIN, draft("50", "2.00"))
    before = fetch_bankroll(temp_db)
    archived = service.archive_pick(temp_db, ledger, ADMIN, pick.pick_id)
    assert archived.status == PickStatus.LOST
    assert archived.profit == Decimal("0")
    assert archived.archived
    assert not archived.is_graded
    state = _assert_consistent(temp_db)
    assert state.totals() == before.totals()
    with pytest.raises(InvalidStateError):
        service.archive_pick(temp_db, ledger, ADMIN, pick.pick_id)


def test_delete_pending_keeps_bankroll(temp_db, ledger, draft):
    pick = service.create_pick(temp_db, ADMIN, draft("10", "2.00"))
    state = service.delete_pick(temp_db, ledger, ADMIN, pick.pick_id)
    assert state.balance == Decimal("5000.00")
    assert store.get_pick(temp_db, pick.pick_id) is None
    assert temp_db.execute("SELECT COUNT(*) FROM pick_legs").fetchone()[0] == 0


def test_delete_settled_recomputes(temp_db, ledger, draft):
    won = service.create_pick(temp_db, ADMIN, draft("10", "3.00"))
    lost = service.create_pick(temp_db, ADMIN, draft("10", "2.00"))
    service.settle_pick(temp_db, ledger, ADMIN, won.pick_id, Outcome.WON)
    service.settle_pick(temp_db, ledger, ADMIN, lost.pick_id, Outcome.LOST)
    before = _assert_consistent(temp_db)

    state = service.delete_pick(temp_db, ledger, ADMIN, won.pick_id)
    assert state.won_count == before.won_count - 1
    assert state.total_profit == before.total_profit - Decimal("20.00")
    assert state.balance == Decimal("4990.00")
    _assert_consistent(temp_db)

    with pytest.raises(NotFoundError):
        service.delete_pick(temp_db, ledger, ADMIN, won.pick_id)


def test_delete_archived_does_not_count_as_loss(temp_db, ledger, draft):
    pick = service.create_pick(temp_db, ADMIN, draft("10", "2.00"))
    service.archive_pick(temp_db, ledger, ADMIN, pick.pick_id)
    state = service.delete_pick(temp_db, ledger, ADMIN, pick.pick_id)
    assert state.lost_count == 0
    assert state.balance == Decimal("5000.00")


def test_recompute_repairs_drift(temp_db, ledger, draft):
    pick = service.create_pick(temp_db, ADMIN, draft("10", "3.00"))
    service.settle_pick(temp_db, ledger, ADMIN, pick.pick_id, Outcome.WON)
    # Corrupt the stored aggregate consistently (balance and profit both off)
    temp_db.execute("UPDATE bankroll SET balance = 5100, total_profit = 100")
    state = service.recompute_bankroll(temp_db, ledger, ADMIN)
    assert state.balance == Decimal("5020.00")
    assert state.total_profit == Decimal("20.00")
    again = service.recompute_bankroll(temp_db, ledger, ADMIN)
    assert again.totals() == state.totals()


def test_every_operation_keeps_invariant(temp_db, ledger, draft):
    ids = [service.create_pick(temp_db, ADMIN, draft(str(5 + i), "1.90", "1.40")).pick_id for i in range(6)]
    service.settle_pick(temp_db, ledger, ADMIN, ids[0], Outcome.WON)
    _assert_consistent(temp_db)
    service.settle_pick(temp_db, ledger, ADMIN, ids[1], Outcome.LOST)
    _assert_consistent(temp_db)
    service.archive_pick(temp_db, ledger, ADMIN, ids[2])
    _assert_consistent(temp_db)
    service.delete_pick(temp_db, ledger, ADMIN, ids[0])
    _assert_consistent(temp_db)
    service.delete_pick(temp_db, ledger, ADMIN, ids[3])
    _assert_consistent(temp_db)
    service.recompute_bankroll(temp_db, ledger, ADMIN)
    _assert_consistent(temp_db)


def test_audit_events_recorded(temp_db, ledger, draft):
    a = service.create_pick(temp_db, ADMIN, draft("10", "3.00"))
    b = service.create_pick(temp_db, ADMIN, draft("10", "3.00"))
    service.settle_pick(temp_db, ledger, ADMIN, a.pick_id, Outcome.WON)
    service.archive_pick(temp_db, ledger, ADMIN, b.pick_id)
    service.delete_pick(temp_db, ledger, ADMIN, a.pick_id)
    service.recompute_bankroll(temp_db, ledger, ADMIN)

    events = service.ledger_events(temp_db, ADMIN)
    assert [e.event_type for e in events] == [
        LedgerEventType.RECOMPUTE,
        LedgerEventType.DELETE,
        LedgerEventType.ARCHIVE,
        LedgerEventType.SETTLE_WON,
    ]
    settle_event = events[-1]
    assert settle_event.amount == Decimal("20.00")
    assert settle_event.balance_after == Decimal("5020.00")
    assert events[1].amount == Decimal("-20.00")
    assert events[2].detail["reason"]
    assert [e.pick_id for e in service.ledger_events(temp_db, ADMIN, pick_id=b.pick_id)] == [b.pick_id]
    with pytest.raises(AuthorizationError):
        service.ledger_events(temp_db, ViewerTier.VIP)


@pytest.mark.parametrize("tier", [ViewerTier.ANONYMOUS, ViewerTier.AUTHENTICATED, ViewerTier.VIP])
def test_non_admin_cannot_mutate(temp_db, ledger, draft, tier):
    pick = service.create_pick(temp_db, ADMIN, draft("10", "2.00"))
    with pytest.raises(AuthorizationError):
        service.create_pick(temp_db, tier, draft("10", "2.00"))
    with pytest.raises(AuthorizationError):
        service.settle_pick(temp_db, ledger, tier, pick.pick_id, Outcome.WON)
    with pytest.raises(AuthorizationError):
        service.archive_pick(temp_db, ledger, tier, pick.pick_id)
    with pytest.raises(AuthorizationError):
        service.delete_pick(temp_db, ledger, tier, pick.pick_id)
    with pytest.raises(AuthorizationError):
        service.recompute_bankroll(temp_db, ledger, tier)
    with pytest.raises(AuthorizationError):
        service.set_pick_visibility(temp_db, tier, pick.pick_id, Visibility.RESTRICTED)
    assert store.get_pick(temp_db, pick.pick_id).is_pending
    assert fetch_bankroll(temp_db).version == 0


def test_listings_respect_visibility(temp_db, ledger, draft):
    public = service.create_pick(temp_db, ADMIN, draft("10", "2.00", visibility=Visibility.PUBLIC))
    vip = service.create_pick(temp_db, ADMIN, draft("10", "2.00", visibility=Visibility.RESTRICTED))
    old = service.create_pick(temp_db, ADMIN, draft("10", "2.00", visibility=Visibility.PUBLIC))
    service.settle_pick(temp_db, ledger, ADMIN, old.pick_id, Outcome.LOST)

    anon = ViewerTier.ANONYMOUS
    assert {p.pick_id for p in service.list_picks(temp_db, anon)} == {public.pick_id, old.pick_id}
    assert {p.pick_id for p in service.list_picks(temp_db, ViewerTier.VIP)} == {
        public.pick_id,
        vip.pick_id,
        old.pick_id,
    }
    assert [p.pick_id for p in service.list_picks(temp_db, anon, status=PickStatus.LOST)] == [old.pick_id]

    feed = service.home_feed(temp_db)
    assert [p.pick_id for p in feed["pending"]] == [public.pick_id]
    assert [p.pick_id for p in feed["settled"]] == [old.pick_id]

    assert [p.pick_id for p in service.vip_feed(temp_db, ViewerTier.VIP)] == [vip.pick_id]
    with pytest.raises(AuthorizationError):
        service.vip_feed(temp_db, ViewerTier.AUTHENTICATED)

    with pytest.raises(NotFoundError):
        service.get_pick(temp_db, anon, vip.pick_id)
    assert service.get_pick(temp_db, ViewerTier.VIP, vip.pick_id).pick_id == vip.pick_id


def test_history_newest_settlement_first(temp_db, ledger, draft):
    ids = [service.create_pick(temp_db, ADMIN, draft("10", "2.00")).pick_id for _ in range(3)]
    for settled_at, pick_id in enumerate((ids[2], ids[0], ids[1]), start=1):
        service.settle_pick(temp_db, ledger, ADMIN, pick_id, Outcome.WON)
        temp_db.execute("UPDATE picks SET settled_at = ? WHERE pick_id = ?", [settled_at, pick_id])
    assert [p.pick_id for p in service.history(temp_db, ViewerTier.ANONYMOUS)] == [ids[1], ids[0], ids[2]]


def test_visibility_change(temp_db, draft):
    pick = service.create_pick(temp_db, ADMIN, draft("10", "2.00", visibility=Visibility.PUBLIC))
    moved = service.set_pick_visibility(temp_db, ADMIN, pick.pick_id, "restricted")
    assert moved.visibility == Visibility.RESTRICTED
    with pytest.raises(ValidationError):
        service.set_pick_visibility(temp_db, ADMIN, pick.pick_id, "secret")
    with pytest.raises(NotFoundError):
        service.set_pick_visibility(temp_db, ADMIN, 999, Visibility.PUBLIC)


def test_concurrent_settlements_share_one_ledger(temp_db, ledger, draft):
    ids = [service.create_pick(temp_db, ADMIN, draft("10", "2.50")).pick_id for _ in range(12)]
    errors = []

    def worker(chunk):
        cur = temp_db.cursor()
        try:
            for i, pick_id in chunk:
                outcome = Outcome.WON if i % 3 else Outcome.LOST
                service.settle_pick(cur, ledger, ADMIN, pick_id, outcome)
        except Exception as e:  # surfaced by the assertion below
            errors.append(e)
        finally:
            cur.close()

    pairs = list(enumerate(ids))
    threads = [threading.Thread(target=worker, args=(pairs[k::4],)) for k in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    state = _assert_consistent(temp_db)
    assert state.won_count == 8 and state.lost_count == 4
    # 8 * 15.00 - 4 * 10.00
    assert state.balance == Decimal("5080.00")
    assert state.version == 12


def test_created_pick_can_always_be_graded(temp_db, ledger, draft):
    # Decimal odds of exactly 1.00 give a zero profit, still a valid win
    pick = service.create_pick(temp_db, ADMIN, draft("10", "1.00"))
    settled = service.settle_pick(temp_db, ledger, ADMIN, pick.pick_id, Outcome.WON)
    assert settled.profit == Decimal("0.00")
    _assert_consistent(temp_db)


def test_random_operation_sequence_keeps_invariant(temp_db, ledger, draft):
    rng = random.Random(20261019)
    pending: list[int] = []
    closed: list[int] = []
    for _ in range(60):
        action = rng.choice(["create", "create", "settle", "archive", "delete", "recompute"])
        if action == "create" or not (pending or closed):
            odds = [f"{rng.randint(100, 500) / 100:.2f}" for _ in range(rng.randint(1, 3))]
            pick = service.create_pick(temp_db, ADMIN, draft(str(rng.randint(1, 200)), *odds))
            pending.append(pick.pick_id)
        elif action == "settle" and pending:
            pick_id = pending.pop(rng.randrange(len(pending)))
            service.settle_pick(temp_db, ledger, ADMIN, pick_id, rng.choice([Outcome.WON, Outcome.LOST]))
            closed.append(pick_id)
        elif action == "archive" and pending:
            pick_id = pending.pop(rng.randrange(len(pending)))
            service.archive_pick(temp_db, ledger, ADMIN, pick_id)
            closed.append(pick_id)
        elif action == "delete":
            pool = rng.choice([p for p in (pending, closed) if p])
            service.delete_pick(temp_db, ledger, ADMIN, pool.pop(rng.randrange(len(pool))))
        else:
            service.recompute_bankroll(temp_db, ledger, ADMIN)
        state = _assert_consistent(temp_db)

    rebuilt = service.recompute_bankroll(temp_db, ledger, ADMIN)
    assert rebuilt.totals() == state.totals()
