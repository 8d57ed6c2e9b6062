"""
recordstore: typed records in SQLite

A small persistence layer that provides:
- Schemas describing a record type as a table (key, fields, six value kinds)
- Key/value storage of records: load, contains, store, upsert, update,
  delete, clear, ordered scans
- Composable predicates compiled to parameterized SQL
- One shared, thread-safe connection for any number of tables

Example:
    from dataclasses import dataclass
    from recordstore import (
        Column, DataclassSchema, FieldSpec, Float, Kind, SqliteAdapter, connect,
    )

    @dataclass
    class Reading:
        sensor: str
        celsius: float

    schema = DataclassSchema(
        Reading,
        fields=[
            FieldSpec("id", Kind.INTEGER),
            FieldSpec("sensor", Kind.STRING),
            FieldSpec("celsius", Kind.FLOAT),
        ],
        key_field="id",
    )

    # Setup
    conn = connect("readings.db")
    readings = SqliteAdapter(conn, "readings", schema)
    readings.initialize()

    # Store and load
    readings.store(1, Reading("porch", 21.5))
    readings.load(1)

    # Filter
    warm = readings.query(Column("celsius") > Float(20.0))
"""

from .adapter import PersistenceAdapter, QueryableAdapter
from .connection import SharedConnection, connect
from .exceptions import RecordStoreError, SchemaError, StoreError
from .query import And, Column, Eq, Gt, Lt, Not, Or, Query, and_, compile_query, not_, or_
from .schema import DataclassSchema, FieldSpec, Schema
from .sqlite import SqliteAdapter
from .values import Bytes, Double, Float, Int, Kind, Str, UInt, Value

__version__ = "0.1.0"

__all__ = [
    # Core classes
    "SqliteAdapter",
    "SharedConnection",
    "Schema",
    "DataclassSchema",
    "FieldSpec",
    # Interfaces
    "PersistenceAdapter",
    "QueryableAdapter",
    # Values
    "Kind",
    "Value",
    "Str",
    "Bytes",
    "Int",
    "UInt",
    "Float",
    "Double",
    # Predicates
    "Query",
    "Or",
    "And",
    "Not",
    "Eq",
    "Gt",
    "Lt",
    "or_",
    "and_",
    "not_",
    "Column",
    "compile_query",
    # Configuration
    "connect",
    # Exceptions
    "RecordStoreError",
    "StoreError",
    "SchemaError",
]
