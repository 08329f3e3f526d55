"""Picks subcommand: create, list, show, settle, archive, delete, visibility."""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation

import typer

from pronosite.access.visibility import ViewerTier, parse_tier
from pronosite.cli.common import format_legs, format_pick, open_store
from pronosite.models import MatchLeg, Outcome, PickDraft, PickKind, PickStatus, Sport, Visibility
from pronosite.service import picks as service

app = typer.Typer(help="Create, grade and manage picks")

LEG_HELP = "Leg as 'sport|home|away|bet type|odds|YYYY-MM-DD' (repeat for combined picks)"


def parse_leg(spec: str) -> MatchLeg:
    """Parse 'football|PSG|OM|PSG wins|1.85|2026-10-20'."""
    parts = [p.strip() for p in spec.split("|")]
    if len(parts) != 6:
        raise typer.BadParameter(f"expected 6 '|'-separated fields, got {len(parts)}: {spec!r}")
    sport, home, away, bet_type, odds, match_date = parts
    try:
        return MatchLeg(
            sport=Sport(sport.lower()),
            home=home,
            away=away,
            bet_type=bet_type,
            odds=Decimal(odds),
            match_date=date.fromisoformat(match_date),
        )
    except (ValueError, InvalidOperation) as e:
        raise typer.BadParameter(f"bad leg {spec!r}: {e}") from None


@app.command("create")
def create(
    ctx: typer.Context,
    stake: str = typer.Option(..., "--stake", "-s", help="Stake amount"),
    legs: list[str] = typer.Option(..., "--leg", "-l", help=LEG_HELP),
    public: bool = typer.Option(False, "--public/--vip", help="Public pick or VIP only (default VIP)"),
    kind: PickKind | None = typer.Option(None, "--kind", help="single or combined (default from leg count)"),
) -> None:
    """Create a pending pick."""
    try:
        stake_value = Decimal(stake)
    except InvalidOperation:
        raise typer.BadParameter(f"bad stake {stake!r}") from None
    draft = PickDraft(
        stake=stake_value,
        legs=[parse_leg(s) for s in legs],
        visibility=Visibility.PUBLIC if public else Visibility.RESTRICTED,
        kind=kind,
    )
    with open_store(ctx) as (conn, _ledger):
        pick = service.create_pick(conn, ViewerTier.ADMIN, draft)
        typer.echo(f"Created {format_pick(pick)}")
        typer.echo(f"  potential payout {pick.potential_payout:.2f}")


@app.command("list")
def list_picks(
    ctx: typer.Context,
    status: PickStatus | None = typer.Option(None, "--status", help="pending, won or lost"),
    visibility: Visibility | None = typer.Option(None, "--visibility", help="public or restricted"),
    as_tier: str = typer.Option("admin", "--as", help="View as tier: anonymous, authenticated, vip, admin"),
    show_legs: bool = typer.Option(False, "--legs", help="Show match legs"),
) -> None:
    """List picks as a given viewer would see them."""
    with open_store(ctx) as (conn, _ledger):
        picks = service.list_picks(conn, parse_tier(as_tier), status=status, visibility=visibility)
        for p in picks:
            typer.echo(format_pick(p))
            if show_legs:
                for line in format_legs(p):
                    typer.echo(line)
        typer.echo(f"Total: {len(picks)} picks")


@app.command("show")
def show(ctx: typer.Context, pick_id: int = typer.Argument(..., help="Pick ID")) -> None:
    """Show one pick with its legs."""
    with open_store(ctx) as (conn, _ledger):
        pick = service.get_pick(conn, ViewerTier.ADMIN, pick_id)
        typer.echo(format_pick(pick))
        for line in format_legs(pick):
            typer.echo(line)
        if pick.is_pending:
            typer.echo(f"  potential payout {pick.potential_payout:.2f}")


@app.command("settle")
def settle(
    ctx: typer.Context,
    pick_id: int = typer.Argument(..., help="Pick ID"),
    outcome: Outcome = typer.Argument(..., help="won or lost"),
) -> None:
    """Grade a pending pick and update the bankroll."""
    with open_store(ctx) as (conn, ledger):
        pick = service.settle_pick(conn, ledger, ViewerTier.ADMIN, pick_id, outcome)
        state = ledger.snapshot(conn)
        typer.echo(f"Settled {format_pick(pick)}")
        typer.echo(f"Balance: {state.balance:.2f}")


@app.command("archive")
def archive(ctx: typer.Context, pick_id: int = typer.Argument(..., help="Pick ID")) -> None:
    """Close a pending pick without grading (lost, profit 0, bankroll unchanged)."""
    with open_store(ctx) as (conn, ledger):
        pick = service.archive_pick(conn, ledger, ViewerTier.ADMIN, pick_id)
        typer.echo(f"Archived {format_pick(pick)}")


@app.command("delete")
def delete(
    ctx: typer.Context,
    pick_id: int = typer.Argument(..., help="Pick ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a pick. Settled picks trigger a bankroll recompute."""
    if not yes:
        typer.confirm(f"Delete pick {pick_id}?", abort=True)
    with open_store(ctx) as (conn, ledger):
        state = service.delete_pick(conn, ledger, ViewerTier.ADMIN, pick_id)
        typer.echo(f"Deleted pick {pick_id}. Balance: {state.balance:.2f}")


@app.command("visibility")
def visibility(
    ctx: typer.Context,
    pick_id: int = typer.Argument(..., help="Pick ID"),
    value: Visibility = typer.Argument(..., help="public or restricted"),
) -> None:
    """Move a pick between public and VIP."""
    with open_store(ctx) as (conn, _ledger):
        pick = service.set_pick_visibility(conn, ViewerTier.ADMIN, pick_id, value)
        typer.echo(format_pick(pick))
