"""Shared CLI helpers: open the store, build the ledger handle, report domain errors."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import typer

from pronosite.errors import PronoError
from pronosite.ledger.handle import BankrollLedger
from pronosite.storage.db import get_connection, init_schema

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

    from pronosite.config import Settings
    from pronosite.models import Pick


@contextmanager
def open_store(ctx: typer.Context) -> Iterator[tuple[DuckDBPyConnection, BankrollLedger]]:
    """Connection with schema ensured, plus the ledger handle. Domain errors exit with code 1."""
    settings: Settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        yield conn, BankrollLedger(initial_balance=settings.initial_balance)
    except PronoError as e:
        typer.echo(f"Error ({e.code}): {e}", err=True)
        raise typer.Exit(1) from None
    finally:
        conn.close()


def format_pick(p: Pick) -> str:
    profit = "" if p.profit is None else f"  profit {p.profit:+.2f}"
    tag = " [archived]" if p.archived else ""
    return (
        f"#{p.pick_id:<5} {p.kind.value:<8} {p.visibility.value:<10} {p.status.value:<7}"
        f" stake {p.stake:.2f} @ {p.total_odds:.2f}{profit}{tag}"
    )


def format_legs(p: Pick) -> list[str]:
    return [
        f"    {leg.match_date}  {leg.sport.value:<10} {leg.home} - {leg.away}  {leg.bet_type}  @ {leg.odds:.2f}"
        for leg in p.legs
    ]
