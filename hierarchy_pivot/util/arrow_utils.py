"""
Utilities for Arrow table handling: fact data in, pivot results out.
"""
from typing import Any, Dict, List, Mapping

import pyarrow as pa

from ..types.pivot_result import PivotResult
from .formatting import format_value

LABEL_PATH_SEPARATOR = "/"


def records_from_arrow(table: pa.Table) -> List[Dict[str, Any]]:
    """Convert an Arrow table into a list of fact records (one dict per row)."""
    return table.to_pylist()


def ensure_records(data: Any) -> List[Mapping[str, Any]]:
    """
    Ensure the input data is a list of fact records.

    Args:
        data: pa.Table, pandas.DataFrame, list of dicts, or dict of columns

    Returns:
        list of dict-like records
    """
    if data is None:
        return []

    if isinstance(data, pa.Table):
        return records_from_arrow(data)

    if isinstance(data, pa.RecordBatch):
        return records_from_arrow(pa.Table.from_batches([data]))

    if isinstance(data, dict):
        return records_from_arrow(pa.Table.from_pydict(data))

    # Check for pandas DataFrame without importing pandas
    if hasattr(data, "to_dict") and hasattr(data, "columns"):
        return records_from_arrow(pa.Table.from_pandas(data, preserve_index=False))

    if isinstance(data, (list, tuple)):
        return list(data)

    raise ValueError(f"Could not convert {type(data)} to fact records")


def result_to_pylist(result: PivotResult) -> List[Dict[str, Any]]:
    """
    Long-format rows: one entry per (row, column, measure) cell.
    Grand totals come out with column "Total".
    """
    out = []
    for row in result.rows:
        row_path = LABEL_PATH_SEPARATOR.join(row.label_path) or row.label
        for measure in result.measures:
            out.append({
                "row_id": row.id,
                "row_path": row_path,
                "column_id": None,
                "column_path": "Total",
                "measure": measure,
                "value": result.grand_total(row.id, measure),
                "display": format_value(result.grand_total(row.id, measure)),
            })
            for col in result.columns:
                out.append({
                    "row_id": row.id,
                    "row_path": row_path,
                    "column_id": col.id,
                    "column_path": LABEL_PATH_SEPARATOR.join(col.label_path) or col.label,
                    "measure": measure,
                    "value": result.value(row.id, col.id, measure),
                    "display": format_value(result.value(row.id, col.id, measure)),
                })
    return out


RESULT_SCHEMA = pa.schema([
    ("row_id", pa.string()),
    ("row_path", pa.string()),
    ("column_id", pa.string()),
    ("column_path", pa.string()),
    ("measure", pa.string()),
    ("value", pa.float64()),
    ("display", pa.string()),
])


def result_to_arrow(result: PivotResult) -> pa.Table:
    """Export a pivot result as a long-format Arrow table."""
    return pa.Table.from_pylist(result_to_pylist(result), schema=RESULT_SCHEMA)
