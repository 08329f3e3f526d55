"""pronosite - prediction publishing, settlement and bankroll ledger."""

__version__ = "0.1.0"
