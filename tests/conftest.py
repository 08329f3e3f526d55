"""Shared fixtures: a throwaway DuckDB store, a bootstrapped ledger and pick drafts."""

import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from pronosite.ledger.handle import BankrollLedger
from pronosite.models import MatchLeg, PickDraft, Sport, Visibility
from pronosite.storage.db import get_connection, init_schema


@pytest.fixture
def temp_db():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    conn = get_connection(path)
    init_schema(conn)
    yield conn
    conn.close()
    path.unlink(missing_ok=True)
    Path(tmp).rmdir()


@pytest.fixture
def ledger(temp_db):
    handle = BankrollLedger(initial_balance=Decimal("5000"))
    handle.bootstrap(temp_db)
    return handle


@pytest.fixture
def draft():
    """Factory: draft(stake, odds, odds, ..., visibility=...) with one leg per odds value."""

    def _make(stake="10", *odds, visibility=Visibility.PUBLIC, kind=None):
        odds = odds or ("2.00",)
        legs = [
            MatchLeg(
                sport=Sport.FOOTBALL,
                home=f"Home {i}",
                away=f"Away {i}",
                bet_type="home win",
                odds=Decimal(o),
                match_date=date(2026, 10, 20 + i),
            )
            for i, o in enumerate(odds)
        ]
        return PickDraft(stake=Decimal(stake), legs=legs, visibility=visibility, kind=kind)

    return _make
