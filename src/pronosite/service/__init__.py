"""Operator actions and viewer listings: picks, bankroll, news."""
