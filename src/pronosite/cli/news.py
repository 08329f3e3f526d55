"""News subcommand: add, list, status, visibility, delete."""

from __future__ import annotations

import typer

from pronosite.access.visibility import ViewerTier, parse_tier
from pronosite.cli.common import open_store
from pronosite.models import NewsCategory, PickStatus, Visibility
from pronosite.service import news as service

app = typer.Typer(help="News articles")


@app.command("add")
def add(
    ctx: typer.Context,
    title: str = typer.Option(..., "--title", "-t"),
    content: str = typer.Option(..., "--content", "-c"),
    image_url: str | None = typer.Option(None, "--image-url"),
    public: bool = typer.Option(True, "--public/--vip", help="Public article or VIP only"),
    category: NewsCategory = typer.Option(NewsCategory.ARTICLE, "--category"),
) -> None:
    """Publish an article."""
    with open_store(ctx) as (conn, _ledger):
        article = service.create_article(
            conn,
            ViewerTier.ADMIN,
            title=title,
            content=content,
            image_url=image_url,
            visibility=Visibility.PUBLIC if public else Visibility.RESTRICTED,
            category=category,
        )
        typer.echo(f"Created article #{article.article_id}: {article.title}")


@app.command("list")
def list_news(
    ctx: typer.Context,
    as_tier: str = typer.Option("admin", "--as", help="View as tier: anonymous, authenticated, vip, admin"),
) -> None:
    """List articles as a given viewer would see them."""
    with open_store(ctx) as (conn, _ledger):
        articles = service.list_articles(conn, parse_tier(as_tier))
        for a in articles:
            typer.echo(
                f"#{a.article_id:<5} {a.visibility.value:<10} {a.status.value:<7} {a.category.value:<10} {a.title[:60]}"
            )
        typer.echo(f"Total: {len(articles)} articles")


@app.command("status")
def status(
    ctx: typer.Context,
    article_id: int = typer.Argument(...),
    value: PickStatus = typer.Argument(..., help="pending, won or lost"),
) -> None:
    """Mark how an article's prediction turned out."""
    with open_store(ctx) as (conn, _ledger):
        article = service.set_article_status(conn, ViewerTier.ADMIN, article_id, value)
        typer.echo(f"Article #{article.article_id} marked {article.status.value}")


@app.command("visibility")
def visibility(
    ctx: typer.Context,
    article_id: int = typer.Argument(...),
    value: Visibility = typer.Argument(..., help="public or restricted"),
) -> None:
    with open_store(ctx) as (conn, _ledger):
        article = service.set_article_visibility(conn, ViewerTier.ADMIN, article_id, value)
        typer.echo(f"Article #{article.article_id} is now {article.visibility.value}")


@app.command("delete")
def delete(ctx: typer.Context, article_id: int = typer.Argument(...)) -> None:
    with open_store(ctx) as (conn, _ledger):
        service.delete_article(conn, ViewerTier.ADMIN, article_id)
        typer.echo(f"Deleted article #{article_id}")
