"""Operator CLI (Typer)."""
