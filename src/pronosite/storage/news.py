"""News article persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pronosite.models.news import NewsArticle, NewsCategory
from pronosite.models.pick import PickStatus, Visibility

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

NEWS_COLUMNS = [
    "article_id", "title", "content", "image_url", "visibility",
    "status", "category", "created_by", "created_at",
]


def _article_from_row(row: tuple[Any, ...]) -> NewsArticle:
    return NewsArticle(**dict(zip(NEWS_COLUMNS, row)))


def insert_article(
    conn: DuckDBPyConnection,
    *,
    title: str,
    content: str,
    image_url: str | None,
    visibility: Visibility,
    category: NewsCategory,
    created_by: str | None,
    created_at: int,
) -> int:
    row = conn.execute(
        """
        INSERT INTO news (title, content, image_url, visibility, status, category, created_by, created_at)
        VALUES (?, ?, ?, ?, 'pending', ?, ?, ?)
        RETURNING article_id
        """,
        [title, content, image_url, visibility.value, category.value, created_by, created_at],
    ).fetchone()
    return int(row[0])


def get_article(conn: DuckDBPyConnection, article_id: int) -> NewsArticle | None:
    row = conn.execute(
        f"SELECT {', '.join(NEWS_COLUMNS)} FROM news WHERE article_id = ?",
        [article_id],
    ).fetchone()
    return _article_from_row(row) if row else None


def list_articles(conn: DuckDBPyConnection, limit: int = 200) -> list[NewsArticle]:
    """All articles, newest first."""
    rows = conn.execute(
        f"SELECT {', '.join(NEWS_COLUMNS)} FROM news ORDER BY created_at DESC, article_id DESC LIMIT ?",
        [limit],
    ).fetchall()
    return [_article_from_row(r) for r in rows]


def update_article(conn: DuckDBPyConnection, article_id: int, fields: dict[str, Any]) -> bool:
    """Update the given columns. Enum values are stored by value."""
    if not fields:
        return get_article(conn, article_id) is not None
    unknown = set(fields) - set(NEWS_COLUMNS[1:-2])
    if unknown:
        raise KeyError(f"not updatable: {sorted(unknown)}")
    assignments = ", ".join(f"{col} = ?" for col in fields)
    params = [v.value if isinstance(v, (Visibility, PickStatus, NewsCategory)) else v for v in fields.values()]
    rows = conn.execute(
        f"UPDATE news SET {assignments} WHERE article_id = ? RETURNING article_id",
        params + [article_id],
    ).fetchall()
    return bool(rows)


def delete_article(conn: DuckDBPyConnection, article_id: int) -> bool:
    rows = conn.execute("DELETE FROM news WHERE article_id = ? RETURNING article_id", [article_id]).fetchall()
    return bool(rows)
