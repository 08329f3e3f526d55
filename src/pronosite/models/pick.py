"""Pick, MatchLeg - canonical prediction entities."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from pronosite.settlement.odds import potential_payout as _payout


class Sport(str, Enum):
    FOOTBALL = "football"
    TENNIS = "tennis"
    BASKETBALL = "basketball"
    HOCKEY = "hockey"
    RUGBY = "rugby"
    SPORTS_US = "sports_us"


class PickKind(str, Enum):
    SINGLE = "single"
    COMBINED = "combined"


class PickStatus(str, Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"


class Outcome(str, Enum):
    """Grading result passed to settlement."""

    WON = "won"
    LOST = "lost"


class Visibility(str, Enum):
    PUBLIC = "public"
    RESTRICTED = "restricted"  # VIP only


class MatchLeg(BaseModel):
    """One match of a pick. Immutable once stored."""

    leg_id: int | None = None
    pick_id: int | None = None
    sport: Sport = Sport.FOOTBALL
    home: str
    away: str
    bet_type: str = ""
    odds: Decimal
    match_date: date


class PickDraft(BaseModel):
    """Operator input for a new pick. Validated by the pick service, not here."""

    stake: Decimal
    legs: list[MatchLeg] = Field(default_factory=list)
    visibility: Visibility = Visibility.RESTRICTED
    kind: PickKind | None = None  # derived from leg count when omitted


class Pick(BaseModel):
    """Stored prediction with its legs (ordered by match date)."""

    pick_id: int
    kind: PickKind
    stake: Decimal
    total_odds: Decimal
    visibility: Visibility = Visibility.RESTRICTED
    status: PickStatus = PickStatus.PENDING
    profit: Decimal | None = None
    archived: bool = False  # closed without grading, profit fixed at 0
    settled_at: int | None = None  # ms epoch
    created_at: int  # ms epoch
    legs: list[MatchLeg] = Field(default_factory=list)

    @property
    def is_pending(self) -> bool:
        return self.status == PickStatus.PENDING

    @property
    def is_graded(self) -> bool:
        """Settled by a real won/lost grading (archived picks are not graded)."""
        return not self.is_pending and not self.archived

    @property
    def potential_payout(self) -> Decimal:
        return _payout(self.stake, self.total_odds)
