"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from pronosite.ledger.bankroll import BankrollState
from pronosite.models import (
    LedgerEvent,
    MatchLeg,
    NewsArticle,
    NewsCategory,
    Outcome,
    Pick,
    PickKind,
    PickStatus,
    Sport,
    Visibility,
)


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. invalid, not_found, forbidden")


# --- Picks ---
class LegIn(BaseModel):
    sport: Sport = Sport.FOOTBALL
    home: str = Field(..., min_length=1)
    away: str = Field(..., min_length=1)
    bet_type: str = ""
    odds: Decimal = Field(..., ge=1)
    match_date: date

    def to_leg(self) -> MatchLeg:
        return MatchLeg(**self.model_dump())


class PickCreateRequest(BaseModel):
    stake: Decimal = Field(..., gt=0)
    legs: list[LegIn] = Field(..., min_length=1)
    visibility: Visibility = Visibility.RESTRICTED
    kind: PickKind | None = None


class SettleRequest(BaseModel):
    outcome: Outcome


class VisibilityRequest(BaseModel):
    visibility: Visibility


class LegOut(BaseModel):
    leg_id: int | None
    sport: Sport
    home: str
    away: str
    bet_type: str
    odds: Decimal
    match_date: date


class PickOut(BaseModel):
    pick_id: int
    kind: PickKind
    stake: Decimal
    total_odds: Decimal
    potential_payout: Decimal
    visibility: Visibility
    status: PickStatus
    profit: Decimal | None
    archived: bool
    settled_at: int | None
    created_at: int
    legs: list[LegOut]

    @classmethod
    def from_pick(cls, pick: Pick) -> PickOut:
        return cls(
            **pick.model_dump(exclude={"legs"}),
            potential_payout=pick.potential_payout,
            legs=[LegOut(**leg.model_dump()) for leg in pick.legs],
        )


class PicksListResponse(BaseModel):
    picks: list[PickOut]
    total: int


class HomeFeedResponse(BaseModel):
    pending: list[PickOut]
    settled: list[PickOut]


# --- Bankroll ---
class BankrollResponse(BaseModel):
    initial_balance: Decimal
    balance: Decimal
    total_profit: Decimal
    total_loss: Decimal
    net_profit: Decimal
    won_count: int
    lost_count: int
    total_bets: int
    win_rate: float = Field(..., description="Percentage of graded picks won")
    version: int
    updated_at: int | None = None

    @classmethod
    def from_state(cls, state: BankrollState) -> BankrollResponse:
        return cls(
            initial_balance=state.initial_balance,
            balance=state.balance,
            total_profit=state.total_profit,
            total_loss=state.total_loss,
            net_profit=state.net_profit,
            won_count=state.won_count,
            lost_count=state.lost_count,
            total_bets=state.total_bets,
            win_rate=state.win_rate,
            version=state.version,
            updated_at=state.updated_at,
        )


# --- News ---
class NewsCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    image_url: str | None = None
    visibility: Visibility = Visibility.PUBLIC
    category: NewsCategory = NewsCategory.ARTICLE
    created_by: str | None = None


class NewsUpdateRequest(BaseModel):
    title: str | None = None
    content: str | None = None
    image_url: str | None = None
    visibility: Visibility | None = None
    category: NewsCategory | None = None


class NewsStatusRequest(BaseModel):
    status: PickStatus


class NewsListResponse(BaseModel):
    articles: list[NewsArticle]
    total: int


# --- Ledger audit trail ---
class LedgerEventsResponse(BaseModel):
    events: list[LedgerEvent]
    total: int
