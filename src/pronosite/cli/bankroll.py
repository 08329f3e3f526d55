"""Bankroll subcommand: init, show, recompute."""

from __future__ import annotations

import typer

from pronosite.access.visibility import ViewerTier
from pronosite.cli.common import open_store
from pronosite.service import picks as service

app = typer.Typer(help="Shared bankroll ledger")


def _echo_state(state) -> None:
    typer.echo(f"Balance:       {state.balance:.2f}  (initial {state.initial_balance:.2f})")
    typer.echo(f"Total profit: +{state.total_profit:.2f}")
    typer.echo(f"Total loss:   -{state.total_loss:.2f}")
    typer.echo(f"Net:          {state.net_profit:+.2f}")
    typer.echo(f"Won / lost:    {state.won_count} / {state.lost_count}  (win rate {state.win_rate:.1f}%)")


@app.command("init")
def init(ctx: typer.Context) -> None:
    """Create the bankroll row if missing (safe to re-run)."""
    with open_store(ctx) as (conn, ledger):
        _echo_state(ledger.bootstrap(conn))


@app.command("show")
def show(ctx: typer.Context) -> None:
    """Show the current bankroll."""
    with open_store(ctx) as (conn, ledger):
        _echo_state(service.bankroll_snapshot(conn, ledger))


@app.command("recompute")
def recompute(ctx: typer.Context) -> None:
    """Rebuild the bankroll from every settled pick."""
    with open_store(ctx) as (conn, ledger):
        _echo_state(service.recompute_bankroll(conn, ledger, ViewerTier.ADMIN))
