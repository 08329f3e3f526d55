"""Bankroll aggregate and its locked handle."""
