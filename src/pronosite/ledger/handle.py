"""BankrollLedger - the explicit handle every bankroll mutation goes through.

Locking discipline: a mutation runs inside ``unit_of_work(conn)``, which holds
the handle's lock and one DuckDB transaction for the whole block. The pick write
and the bankroll write therefore commit together or not at all, and two
settlements in this process never interleave. Writes across processes are
caught by the version compare-and-swap in ``write_bankroll``. Reads do not lock.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from pronosite.errors import ConsistencyError
from pronosite.ledger.bankroll import DEFAULT_INITIAL_BALANCE, BankrollState
from pronosite.storage.bankroll import create_bankroll, fetch_bankroll, write_bankroll
from pronosite.storage.db import transaction

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

    from pronosite.models.pick import Pick

log = structlog.get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class BankrollLedger:
    """Handle on the bankroll singleton row."""

    def __init__(self, initial_balance: Decimal = DEFAULT_INITIAL_BALANCE) -> None:
        self.initial_balance = initial_balance
        self._lock = threading.RLock()
        self._owner: int | None = None

    @contextmanager
    def unit_of_work(self, conn: DuckDBPyConnection) -> Iterator[DuckDBPyConnection]:
        """Hold the ledger lock and one transaction for the duration of the block."""
        with self._lock:
            outer = self._owner
            self._owner = threading.get_ident()
            try:
                if outer is not None:
                    # Nested call from the same thread: already inside the transaction
                    yield conn
                else:
                    with transaction(conn):
                        yield conn
            finally:
                self._owner = outer

    def _require_unit_of_work(self) -> None:
        if self._owner != threading.get_ident():
            raise ConsistencyError("bankroll mutation outside a unit of work")

    def snapshot(self, conn: DuckDBPyConnection) -> BankrollState:
        """Current committed bankroll. Raises NotFoundError if not bootstrapped."""
        return fetch_bankroll(conn)

    def bootstrap(self, conn: DuckDBPyConnection) -> BankrollState:
        """Create the singleton if missing (idempotent) and return it."""
        with self.unit_of_work(conn):
            if create_bankroll(conn, self.initial_balance, _now_ms()):
                log.info("bankroll_created", initial_balance=str(self.initial_balance))
            return fetch_bankroll(conn)

    def apply(self, conn: DuckDBPyConnection, delta_profit: Decimal, won: bool) -> BankrollState:
        """Incremental mode: fold one settlement delta into the stored row."""
        self._require_unit_of_work()
        state = fetch_bankroll(conn)
        state.apply(delta_profit, won)
        write_bankroll(conn, state, _now_ms())
        log.debug("bankroll_applied", delta=str(delta_profit), won=won, balance=str(state.balance))
        return state

    def recompute(self, conn: DuckDBPyConnection, settled_picks: Iterable[Pick]) -> BankrollState:
        """Full mode: rebuild the row from the stored profit of every settled pick."""
        self._require_unit_of_work()
        state = fetch_bankroll(conn)
        before = state.totals()
        state.recompute(settled_picks)
        write_bankroll(conn, state, _now_ms())
        if state.totals() != before:
            log.info(
                "bankroll_recomputed",
                balance=str(state.balance),
                won_count=state.won_count,
                lost_count=state.lost_count,
            )
        return state
