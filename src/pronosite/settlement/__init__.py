"""Odds calculation and the pick settlement state machine."""
