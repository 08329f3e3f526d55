"""Canonical schema (Pydantic) - Pick, MatchLeg, NewsArticle, LedgerEvent."""

from pronosite.models.ledger import LedgerEvent, LedgerEventType
from pronosite.models.news import NewsArticle, NewsCategory
from pronosite.models.pick import (
    MatchLeg,
    Outcome,
    Pick,
    PickDraft,
    PickKind,
    PickStatus,
    Sport,
    Visibility,
)

__all__ = [
    "Pick",
    "PickDraft",
    "PickKind",
    "PickStatus",
    "MatchLeg",
    "Outcome",
    "Sport",
    "Visibility",
    "NewsArticle",
    "NewsCategory",
    "LedgerEvent",
    "LedgerEventType",
]
