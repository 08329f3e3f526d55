"""Export picks or the ledger event log to Parquet."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pronosite.errors import ValidationError

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

EXPORTABLE_TABLES = ("picks", "pick_legs", "ledger_events")


def export_table_to_parquet(
    conn: DuckDBPyConnection,
    table: str,
    output_path: str | Path,
) -> int:
    """Export one table to a Parquet file. Returns row count."""
    if table not in EXPORTABLE_TABLES:
        raise ValidationError(f"cannot export {table!r}, choose from {', '.join(EXPORTABLE_TABLES)}")
    path = Path(output_path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    path_str = str(path).replace("'", "''")
    conn.execute(f"COPY (SELECT * FROM {table}) TO '{path_str}' (FORMAT PARQUET)")
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
