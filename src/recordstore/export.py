"""Tabular export of stored records."""

from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from .query import Query
from .schema import Schema
from .sqlite import SqliteAdapter
from .values import Kind

_DTYPES = {
    Kind.STRING: object,
    Kind.BYTES: object,
    Kind.INTEGER: np.int64,
    Kind.UNSIGNED_INTEGER: np.uint64,
    Kind.FLOAT: np.float32,
    Kind.DOUBLE: np.float64,
}


def to_dataframe(rows: list[tuple[Any, Any]], schema: Schema) -> pd.DataFrame:
    """
    Convert (key, record) pairs to a DataFrame with one column per field.

    Columns follow the schema's field order and numeric columns take the
    dtype of their kind. Records the schema cannot serialize are left out.

    Args:
        rows: Pairs as returned by scan() or query()
        schema: The schema of the records

    Returns:
        pd.DataFrame with one row per record
    """
    key_field = schema.key_field()
    records = []
    for key, record in rows:
        serialized = schema.serialize_data(record)
        if serialized is None:
            continue
        serialized = {key_field: schema.serialize_key(key), **serialized}
        records.append({
            f.name: f.kind.unwrap(serialized[f.name]) if f.name in serialized else None
            for f in schema.fields()
        })

    df = pd.DataFrame.from_records(records, columns=schema.field_names())
    dtypes = {
        f.name: _DTYPES[f.kind]
        for f in schema.fields()
        if not df[f.name].isna().any()
    }
    return df.astype(dtypes)


def export_to_csv(
    adapter: SqliteAdapter,
    path: str | Path,
    query: Query | None = None,
) -> int:
    """
    Write an adapter's records (all, or those matching query) to a CSV file.

    Bytes columns are written as Python bytes literals.

    Args:
        adapter: Adapter to read from
        path: Output CSV path
        query: Optional predicate restricting the exported records

    Returns:
        Number of records written
    """
    rows = adapter.scan() if query is None else adapter.query(query)
    df = to_dataframe(rows, adapter.schema)
    df.to_csv(path, index=False)
    return len(df)
