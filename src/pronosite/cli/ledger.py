"""Ledger subcommand: audit events and Parquet export."""

from __future__ import annotations

import typer

from pronosite.access.visibility import ViewerTier
from pronosite.cli.common import open_store
from pronosite.service import picks as service
from pronosite.storage.export import export_table_to_parquet

app = typer.Typer(help="Ledger audit trail and export")


@app.command("events")
def events(
    ctx: typer.Context,
    pick_id: int | None = typer.Option(None, "--pick", help="Only events for this pick"),
    limit: int = typer.Option(50, "--limit", "-n"),
) -> None:
    """Show recent settle/archive/delete/recompute events, newest first."""
    with open_store(ctx) as (conn, _ledger):
        rows = service.ledger_events(conn, ViewerTier.ADMIN, pick_id=pick_id, limit=limit)
        for e in rows:
            pick = f"pick #{e.pick_id}" if e.pick_id is not None else "-"
            typer.echo(
                f"{e.event_id:<6} {e.created_at}  {e.event_type.value:<12} {pick:<12}"
                f" {e.amount:+.2f}  -> {e.balance_after:.2f}"
            )
        typer.echo(f"Total: {len(rows)} events")


@app.command("export")
def export(
    ctx: typer.Context,
    table: str = typer.Option("ledger_events", "--table", help="picks, pick_legs or ledger_events"),
    output: str = typer.Option("ledger_events.parquet", "--output", "-o", help="Output path"),
) -> None:
    """Export a table to Parquet."""
    with open_store(ctx) as (conn, _ledger):
        count = export_table_to_parquet(conn, table, output)
        typer.echo(f"Exported {count} rows from {table} to {output}")
