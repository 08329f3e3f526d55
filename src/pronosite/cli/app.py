"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from pronosite.config import get_settings
from pronosite.config.settings import configure_logging

app = typer.Typer(
    name="prono",
    help="Pronosite - betting picks, settlement and the shared bankroll ledger.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile}


# Subcommands registered from other modules
from pronosite.cli import api_cmd, bankroll, ledger, news, picks  # noqa: E402

app.add_typer(picks.app, name="picks")
app.add_typer(bankroll.app, name="bankroll")
app.add_typer(news.app, name="news")
app.add_typer(ledger.app, name="ledger")
app.add_typer(api_cmd.app, name="api")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
