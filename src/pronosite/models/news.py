"""NewsArticle - editorial content gated like picks."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from pronosite.models.pick import PickStatus, Visibility


class NewsCategory(str, Enum):
    ARTICLE = "article"
    ANALYSIS = "analysis"
    PREDICTION = "prediction"


class NewsArticle(BaseModel):
    """News article. status reuses the pick statuses as an editorial "it panned out" marker."""

    article_id: int
    title: str
    content: str
    image_url: str | None = None
    visibility: Visibility = Visibility.PUBLIC
    status: PickStatus = PickStatus.PENDING
    category: NewsCategory = NewsCategory.ARTICLE
    created_by: str | None = None
    created_at: int  # ms epoch
