"""DuckDB persistence for picks, bankroll, news and the ledger event log."""
