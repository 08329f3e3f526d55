"""News service - admin editing, gated reading."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import structlog

from pronosite.access.visibility import ViewerTier, can_view, require_admin, visible
from pronosite.errors import NotFoundError, ValidationError
from pronosite.models.news import NewsArticle, NewsCategory
from pronosite.models.pick import PickStatus, Visibility
from pronosite.service.common import rejections_logged
from pronosite.storage import news as store

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)


def _coerce(enum_cls: type, value: Any, what: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"unknown {what}: {value!r}") from None


def _check_text(title: str | None, content: str | None) -> None:
    if title is not None and not title.strip():
        raise ValidationError("title is required")
    if content is not None and not content.strip():
        raise ValidationError("content is required")


def create_article(
    conn: DuckDBPyConnection,
    tier: ViewerTier,
    *,
    title: str,
    content: str,
    image_url: str | None = None,
    visibility: Visibility | str = Visibility.PUBLIC,
    category: NewsCategory | str = NewsCategory.ARTICLE,
    created_by: str | None = None,
) -> NewsArticle:
    with rejections_logged("article_create"):
        require_admin(tier, "create article")
        _check_text(title, content)
        article_id = store.insert_article(
            conn,
            title=title.strip(),
            content=content,
            image_url=image_url or None,
            visibility=_coerce(Visibility, visibility, "visibility"),
            category=_coerce(NewsCategory, category, "category"),
            created_by=created_by,
            created_at=int(time.time() * 1000),
        )
    log.info("article_created", article_id=article_id)
    return _load(conn, article_id)


def _load(conn: DuckDBPyConnection, article_id: int) -> NewsArticle:
    article = store.get_article(conn, article_id)
    if article is None:
        raise NotFoundError(f"article {article_id} not found")
    return article


def update_article(
    conn: DuckDBPyConnection,
    tier: ViewerTier,
    article_id: int,
    *,
    title: str | None = None,
    content: str | None = None,
    image_url: str | None = None,
    visibility: Visibility | str | None = None,
    category: NewsCategory | str | None = None,
) -> NewsArticle:
    """Edit the given fields; None leaves a field unchanged."""
    with rejections_logged("article_update", article_id=article_id):
        require_admin(tier, "edit article")
        _check_text(title, content)
        fields: dict[str, Any] = {}
        if title is not None:
            fields["title"] = title.strip()
        if content is not None:
            fields["content"] = content
        if image_url is not None:
            fields["image_url"] = image_url or None
        if visibility is not None:
            fields["visibility"] = _coerce(Visibility, visibility, "visibility")
        if category is not None:
            fields["category"] = _coerce(NewsCategory, category, "category")
        if not store.update_article(conn, article_id, fields):
            raise NotFoundError(f"article {article_id} not found")
    log.info("article_updated", article_id=article_id, fields=sorted(fields))
    return _load(conn, article_id)


def set_article_visibility(
    conn: DuckDBPyConnection, tier: ViewerTier, article_id: int, visibility: Visibility | str
) -> NewsArticle:
    return update_article(conn, tier, article_id, visibility=visibility)


def set_article_status(
    conn: DuckDBPyConnection, tier: ViewerTier, article_id: int, status: PickStatus | str
) -> NewsArticle:
    """Editorial marker only; never touches the bankroll."""
    with rejections_logged("article_status", article_id=article_id):
        require_admin(tier, "mark article")
        status = _coerce(PickStatus, status, "status")
        if not store.update_article(conn, article_id, {"status": status}):
            raise NotFoundError(f"article {article_id} not found")
    log.info("article_marked", article_id=article_id, status=status.value)
    return _load(conn, article_id)


def delete_article(conn: DuckDBPyConnection, tier: ViewerTier, article_id: int) -> None:
    with rejections_logged("article_delete", article_id=article_id):
        require_admin(tier, "delete article")
        if not store.delete_article(conn, article_id):
            raise NotFoundError(f"article {article_id} not found")
    log.info("article_deleted", article_id=article_id)


def list_articles(conn: DuckDBPyConnection, tier: ViewerTier) -> list[NewsArticle]:
    """Articles this viewer may read, newest first."""
    return visible(store.list_articles(conn), tier)


def get_article(conn: DuckDBPyConnection, tier: ViewerTier, article_id: int) -> NewsArticle:
    article = store.get_article(conn, article_id)
    if article is None or not can_view(article, tier):
        raise NotFoundError(f"article {article_id} not found")
    return article
