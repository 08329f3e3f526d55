"""LedgerEvent - audit trail entry for every bankroll-affecting action."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    SETTLE_WON = "settle_won"
    SETTLE_LOST = "settle_lost"
    ARCHIVE = "archive"
    DELETE = "delete"
    RECOMPUTE = "recompute"


class LedgerEvent(BaseModel):
    event_id: int
    event_type: LedgerEventType
    pick_id: int | None = None
    amount: Decimal = Decimal("0")  # signed delta applied to the balance
    balance_after: Decimal
    created_at: int  # ms epoch
    detail: dict[str, Any] = Field(default_factory=dict)
