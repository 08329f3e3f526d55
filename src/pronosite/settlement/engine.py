"""Settlement engine - grade a pending pick, compute profit, close it without grading.

Pure: nothing here touches storage. The pick service persists the returned
Settlement and feeds its delta to the bankroll ledger in the same transaction.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal

from pronosite.errors import InvalidStateError, ValidationError
from pronosite.models.pick import Outcome, Pick, PickStatus
from pronosite.settlement.odds import to_money

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class Settlement:
    """Terminal state to write on a pick, plus the delta for the ledger."""

    pick_id: int
    status: PickStatus
    profit: Decimal
    settled_at: int  # ms epoch
    archived: bool = False

    @property
    def won(self) -> bool:
        return self.status == PickStatus.WON

    @property
    def affects_ledger(self) -> bool:
        return not self.archived


def settlement_profit(stake: Decimal, total_odds: Decimal, outcome: Outcome) -> Decimal:
    """Net profit: stake * odds - stake when won, -stake when lost."""
    if outcome == Outcome.WON:
        return to_money(stake * total_odds - stake)
    return to_money(-stake)


def ensure_pending(pick: Pick) -> None:
    if not pick.is_pending:
        raise InvalidStateError(f"pick {pick.pick_id} is already {pick.status.value}")


def settle(pick: Pick, outcome: Outcome | str, now_ms: int | None = None) -> Settlement:
    """Grade a pending pick. Raises InvalidStateError if it is already settled."""
    try:
        outcome = Outcome(outcome)
    except ValueError:
        raise ValidationError(f"unknown outcome: {outcome!r}") from None
    ensure_pending(pick)
    return Settlement(
        pick_id=pick.pick_id,
        status=PickStatus.WON if outcome == Outcome.WON else PickStatus.LOST,
        profit=settlement_profit(pick.stake, pick.total_odds, outcome),
        settled_at=now_ms if now_ms is not None else int(time.time() * 1000),
    )


def archive(pick: Pick, now_ms: int | None = None) -> Settlement:
    """Force-close a pending pick as lost with profit exactly 0 (no ledger effect)."""
    ensure_pending(pick)
    return Settlement(
        pick_id=pick.pick_id,
        status=PickStatus.LOST,
        profit=ZERO,
        settled_at=now_ms if now_ms is not None else int(time.time() * 1000),
        archived=True,
    )
