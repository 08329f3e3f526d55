"""Bankroll aggregate - balance, cumulative profit/loss and win/loss counts."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from pronosite.errors import ConsistencyError
from pronosite.models.pick import Pick, PickStatus
from pronosite.settlement.odds import to_money

DEFAULT_INITIAL_BALANCE = Decimal("5000.00")
ZERO = Decimal("0.00")


@dataclass
class BankrollState:
    """In-memory bankroll. Storage round-trips it; the ledger handle mutates it."""

    initial_balance: Decimal = DEFAULT_INITIAL_BALANCE
    balance: Decimal | None = None  # defaults to initial_balance
    total_profit: Decimal = ZERO
    total_loss: Decimal = ZERO
    won_count: int = 0
    lost_count: int = 0
    version: int = 0
    updated_at: int | None = None  # ms epoch

    def __post_init__(self) -> None:
        self.initial_balance = to_money(self.initial_balance)
        if self.balance is None:
            self.balance = self.initial_balance
        self.balance = to_money(self.balance)
        self.total_profit = to_money(self.total_profit)
        self.total_loss = to_money(self.total_loss)

    def apply(self, delta_profit: Decimal, won: bool) -> None:
        """Fold one settlement into the totals."""
        delta = to_money(delta_profit)
        if won and delta < 0:
            raise ConsistencyError(f"won settlement with negative profit {delta}")
        if not won and delta > 0:
            raise ConsistencyError(f"lost settlement with positive profit {delta}")
        self.balance += delta
        if won:
            self.total_profit += delta
            self.won_count += 1
        else:
            self.total_loss += abs(delta)
            self.lost_count += 1
        self.check()

    def reset(self) -> None:
        self.balance = self.initial_balance
        self.total_profit = ZERO
        self.total_loss = ZERO
        self.won_count = 0
        self.lost_count = 0

    def recompute(self, settled_picks: Iterable[Pick]) -> None:
        """Rebuild from scratch out of the stored profit of every graded pick.

        Order does not matter. Archived picks (closed with profit 0) are skipped
        so they never count as losses.
        """
        self.reset()
        for pick in settled_picks:
            if pick.status == PickStatus.PENDING:
                raise ConsistencyError(f"pick {pick.pick_id} is pending, cannot fold into the ledger")
            if pick.archived:
                continue
            if pick.profit is None:
                raise ConsistencyError(f"settled pick {pick.pick_id} has no profit")
            self.apply(pick.profit, won=pick.status == PickStatus.WON)
        self.check()

    def check(self) -> None:
        """Raise ConsistencyError unless balance == initial + profit - loss and nothing is negative."""
        if self.won_count < 0 or self.lost_count < 0:
            raise ConsistencyError(f"negative counts won={self.won_count} lost={self.lost_count}")
        if self.total_profit < 0 or self.total_loss < 0:
            raise ConsistencyError(f"negative totals profit={self.total_profit} loss={self.total_loss}")
        expected = self.initial_balance + self.total_profit - self.total_loss
        if self.balance != expected:
            raise ConsistencyError(f"balance {self.balance} != expected {expected}")

    @property
    def total_bets(self) -> int:
        return self.won_count + self.lost_count

    @property
    def win_rate(self) -> float:
        """Percentage of graded picks won, 0.0 when none."""
        if self.total_bets == 0:
            return 0.0
        return round(self.won_count / self.total_bets * 100, 1)

    @property
    def net_profit(self) -> Decimal:
        return self.total_profit - self.total_loss

    def totals(self) -> tuple[Decimal, Decimal, Decimal, int, int]:
        """Comparable tuple of the ledger fields (version and timestamps excluded)."""
        return (self.balance, self.total_profit, self.total_loss, self.won_count, self.lost_count)
