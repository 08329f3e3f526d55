"""CLI smoke test: operator workflow against a config dir pointing at a temp database."""

import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pronosite.cli.app import app

runner = CliRunner()


@pytest.fixture
def config_dir(monkeypatch):
    # Keep structlog unconfigured: cached loggers would bind to the runner's stdout
    monkeypatch.setattr("pronosite.cli.app.configure_logging", lambda settings: None)
    tmp = Path(tempfile.mkdtemp())
    (tmp / "default.toml").write_text(
        f'[storage]\ndb_path = "{(tmp / "cli.duckdb").as_posix()}"\n\n'
        '[ledger]\ninitial_balance = "1000"\n\n'
        '[logging]\nlevel = "WARNING"\n'
    )
    yield tmp
    for p in tmp.iterdir():
        p.unlink()
    tmp.rmdir()


def _run(config_dir, *args):
    return runner.invoke(app, ["--config-dir", str(config_dir), *args])


def test_pick_lifecycle(config_dir):
    assert _run(config_dir, "bankroll", "init").exit_code == 0

    r = _run(
        config_dir, "picks", "create", "--stake", "10", "--public",
        "--leg", "football|PSG|OM|PSG wins|1.50|2026-10-20",
        "--leg", "tennis|Sinner|Alcaraz|Sinner wins|2.00|2026-10-21",
    )
    assert r.exit_code == 0, r.output
    assert "combined" in r.output
    assert "potential payout 30.00" in r.output

    r = _run(config_dir, "picks", "settle", "1", "won")
    assert r.exit_code == 0, r.output
    assert "Balance: 1020.00" in r.output

    r = _run(config_dir, "picks", "settle", "1", "lost")
    assert r.exit_code == 1
    assert "invalid_state" in r.output

    r = _run(config_dir, "bankroll", "show")
    assert "Won / lost:    1 / 0" in r.output

    r = _run(config_dir, "ledger", "events")
    assert "settle_won" in r.output

    r = _run(config_dir, "picks", "delete", "1", "--yes")
    assert r.exit_code == 0
    assert "Balance: 1000.00" in r.output


def test_bad_leg_is_rejected(config_dir):
    r = _run(config_dir, "picks", "create", "--stake", "10", "--leg", "football|PSG|OM")
    assert r.exit_code != 0


def test_list_as_anonymous_hides_vip(config_dir):
    _run(config_dir, "picks", "create", "--stake", "5", "--vip", "--leg", "rugby|A|B|A wins|1.80|2026-11-01")
    r = _run(config_dir, "picks", "list", "--as", "anonymous")
    assert "Total: 0 picks" in r.output
    r = _run(config_dir, "picks", "list", "--as", "vip")
    assert "Total: 1 picks" in r.output


def test_out_of_range_stake_is_a_clean_error(config_dir):
    r = _run(config_dir, "picks", "create", "--stake", "1e17", "--leg", "hockey|A|B|A wins|1.50|2026-11-01")
    assert r.exit_code == 1
    assert "Error (invalid)" in r.output
