"""SQLite implementation of the adapter interface.

One adapter stores one collection in one table. The table layout, every
statement and every bound parameter are derived from the adapter's Schema:

    CREATE TABLE IF NOT EXISTS "users" (id INTEGER, name TEXT, PRIMARY KEY(id));
    INSERT INTO users (id, name) VALUES (?, ?);
    SELECT * FROM "users" WHERE "id" = :primary_key;

Table and field names are interpolated into SQL as given; they are trusted
configuration, not user input.

Example:
    from recordstore import SqliteAdapter, connect

    conn = connect("app.db")
    users = SqliteAdapter(conn, "users", UserSchema())
    users.initialize()

    users.store(1, User(name="ada"))
    users.load(1)                                   # User(name='ada')
    users.query(Column("name") == Str("ada"))       # [(1, User(name='ada'))]
"""

import logging
import math
import sqlite3
from typing import Any, Sequence

from .adapter import QueryableAdapter
from .connection import SharedConnection, StatementResult
from .exceptions import SchemaError, StoreError
from .query import Query, compile_query
from .schema import FieldSpec, Schema
from .values import Value, from_sql, to_sql


# ---------------------------------------------------------------------------
# SQL builders
# ---------------------------------------------------------------------------

def create_table_sql(table_name: str, schema: Schema) -> str:
    columns = ", ".join(f"{f.name} {f.kind.sql_type}" for f in schema.fields())
    return (
        f'CREATE TABLE IF NOT EXISTS "{table_name}" '
        f"({columns}, PRIMARY KEY({schema.key_field()}));"
    )


def insert_sql(table_name: str, schema: Schema) -> str:
    names = schema.field_names()
    placeholders = ", ".join("?" for _ in names)
    return f"INSERT INTO {table_name} ({', '.join(names)}) VALUES ({placeholders});"


def upsert_sql(table_name: str, schema: Schema) -> str:
    insert = insert_sql(table_name, schema).rstrip(";")
    assignments = ", ".join(f"{f.name} = excluded.{f.name}" for f in schema.value_fields())
    if not assignments:
        return f"{insert} ON CONFLICT({schema.key_field()}) DO NOTHING;"
    return f"{insert} ON CONFLICT({schema.key_field()}) DO UPDATE SET {assignments};"


def update_sql(table_name: str, schema: Schema, columns: Sequence[FieldSpec]) -> str:
    assignments = ", ".join(f"{f.name} = ?" for f in columns)
    key = schema.key_field()
    return f"UPDATE {table_name} SET {assignments} WHERE {key} = ?;"


def delete_sql(table_name: str, schema: Schema) -> str:
    return f'DELETE FROM {table_name} WHERE "{schema.key_field()}" = ?;'


def load_sql(table_name: str, schema: Schema) -> str:
    return f'SELECT * FROM "{table_name}" WHERE "{schema.key_field()}" = :primary_key;'


def contains_sql(table_name: str, schema: Schema) -> str:
    key = schema.key_field()
    return f"SELECT {key} FROM {table_name} WHERE {key} = ?;"


def clear_sql(table_name: str) -> str:
    return f"DELETE FROM {table_name};"


def _window(start: int, limit: int | None) -> str:
    if not isinstance(start, int) or start < 0:
        raise ValueError(f"start must be a non-negative integer, got {start!r}")
    if limit is not None and (not isinstance(limit, int) or limit < 0):
        raise ValueError(f"limit must be a non-negative integer or None, got {limit!r}")
    # -1 is SQLite's "no limit"
    lim = -1 if limit is None else limit
    return f"LIMIT {lim} OFFSET {start}"


def scan_sql(table_name: str, schema: Schema, start: int = 0, limit: int | None = None) -> str:
    return (
        f'SELECT * FROM "{table_name}" ORDER BY "{schema.key_field()}" '
        f"{_window(start, limit)};"
    )


def query_sql(
    table_name: str,
    schema: Schema,
    query: Query,
    start: int = 0,
    limit: int | None = None,
) -> tuple[str, list]:
    """Build the SELECT for query() and return it with its parameters."""
    where, _, params = compile_query(query)
    sql = (
        f'SELECT * FROM "{table_name}" WHERE {where} '
        f"ORDER BY {schema.key_field()} {_window(start, limit)};"
    )
    return sql, params


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------

class SqliteAdapter(QueryableAdapter):
    """
    Stores the records of one schema in one SQLite table.

    Adapters are cheap to copy and may share a SharedConnection; all SQL on
    that connection is serialised.

    Args:
        connection: SharedConnection (or a plain sqlite3.Connection, which
            is wrapped; share the wrapper to share its lock)
        table_name: Name of the backing table
        schema: Schema describing keys, fields and record conversion
        logger: Logger for progress and driver failures; defaults to this
            module's logger
    """

    def __init__(
        self,
        connection: SharedConnection | sqlite3.Connection,
        table_name: str,
        schema: Schema,
        logger: logging.Logger | None = None,
    ):
        if isinstance(connection, sqlite3.Connection):
            connection = SharedConnection(connection)
        schema.validate()
        self.connection = connection
        self.table_name = table_name
        self.schema = schema
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def __repr__(self) -> str:
        return f"SqliteAdapter(table_name={self.table_name!r}, schema={self.schema!r})"

    # -- binding and decoding ------------------------------------------------

    def _key_param(self, key: Any) -> Any:
        return to_sql(self.schema.serialize_key(key))

    def _row_params(self, key: Any, record: Any, columns: Sequence[FieldSpec]) -> list:
        """Serialize record and bind the given columns in order."""
        serialized = self.schema.serialize_data(record)
        if serialized is None:
            raise StoreError(f"Failed to serialize record for key {key!r}")

        key_field = self.schema.key_field()
        params = []
        for spec in columns:
            value = serialized.get(spec.name)
            if value is None and spec.name == key_field:
                value = self.schema.serialize_key(key)
            if value is None:
                raise StoreError(
                    f"Serialized record for key {key!r} is missing field '{spec.name}'"
                )
            param = to_sql(value)
            if isinstance(param, float) and math.isnan(param):
                # SQLite stores a NaN bind as NULL
                raise StoreError(
                    f"Serialized record for key {key!r} has NaN in field '{spec.name}'"
                )
            params.append(param)
        return params

    def _decode_row(self, columns: list[str], raw_row: tuple) -> dict[str, Value]:
        """Read every column of a row according to its declared kind.

        Raises:
            SchemaError: If the row has a column the schema does not declare
        """
        row = {}
        for name, raw in zip(columns, raw_row):
            spec = self.schema.field(name)
            if spec is None:
                raise SchemaError(
                    f"Table '{self.table_name}' has column '{name}' which is not "
                    f"a field of {type(self.schema).__name__}"
                )
            value = from_sql(spec.kind, raw)
            if value is not None:
                row[name] = value
        return row

    def _decode_pairs(self, result: StatementResult) -> list[tuple[Any, Any]]:
        key_field = self.schema.key_field()
        pairs = []
        for raw_row in result.rows:
            row = self._decode_row(result.columns, raw_row)
            key_value = row.get(key_field)
            key = self.schema.deserialize_key(key_value) if key_value is not None else None
            record = self.schema.deserialize_data(row)
            if key is None or record is None:
                self.logger.debug("Skipping undecodable row in %s: %r", self.table_name, raw_row)
                continue
            pairs.append((key, record))
        return pairs

    def _write(self, sql: str, params: list, action: str, key: Any) -> StatementResult:
        try:
            return self.connection.execute(sql, params, commit=True)
        except sqlite3.OperationalError:
            raise
        except sqlite3.DatabaseError as e:
            raise StoreError(f"Failed to {action} key {key!r} in {self.table_name}: {e}") from e

    # -- operations ----------------------------------------------------------

    def initialize(self) -> bool:
        sql = create_table_sql(self.table_name, self.schema)
        try:
            self.connection.execute(sql, commit=True)
        except sqlite3.Error as e:
            self.logger.warning("Failed to create table %s: %s", self.table_name, e)
            return False
        return True

    def load(self, key: Any) -> Any | None:
        result = self.connection.execute(
            load_sql(self.table_name, self.schema),
            {"primary_key": self._key_param(key)},
        )
        if not result.rows:
            return None
        row = self._decode_row(result.columns, result.rows[0])
        return self.schema.deserialize_data(row)

    def contains(self, key: Any) -> bool:
        sql = contains_sql(self.table_name, self.schema)
        self.logger.debug("contains: %s", sql)
        result = self.connection.execute(sql, [self._key_param(key)])
        return bool(result.rows)

    def store(self, key: Any, record: Any) -> None:
        params = self._row_params(key, record, self.schema.fields())
        self._write(insert_sql(self.table_name, self.schema), params, "store", key)
        self.logger.debug("Stored %r in %s", key, self.table_name)

    def upsert(self, key: Any, record: Any) -> None:
        params = self._row_params(key, record, self.schema.fields())
        self._write(upsert_sql(self.table_name, self.schema), params, "upsert", key)
        self.logger.debug("Upserted %r in %s", key, self.table_name)

    def update(self, key: Any, record: Any, only: Sequence[str] | None = None) -> None:
        columns = self.schema.value_fields()
        if only is not None:
            wanted = set(only)
            columns = [f for f in columns if f.name in wanted]
        if not columns:
            self.logger.debug("Nothing to update for %r in %s", key, self.table_name)
            return

        params = self._row_params(key, record, columns)
        params.append(self._key_param(key))
        result = self._write(
            update_sql(self.table_name, self.schema, columns), params, "update", key
        )
        self.logger.debug(
            "Updated %r in %s (%d row(s))", key, self.table_name, max(result.rowcount, 0)
        )

    def delete(self, key: Any) -> bool:
        try:
            self.connection.execute(
                delete_sql(self.table_name, self.schema),
                [self._key_param(key)],
                commit=True,
            )
        except sqlite3.OperationalError:
            raise
        except sqlite3.DatabaseError as e:
            self.logger.warning("Failed to delete %r from %s: %s", key, self.table_name, e)
            return False
        self.logger.debug("Deleted %r from %s", key, self.table_name)
        return True

    def clear(self) -> None:
        try:
            self.connection.execute(clear_sql(self.table_name), commit=True)
        except sqlite3.Error as e:
            self.logger.warning("Failed to clear %s: %s", self.table_name, e)
            return
        self.logger.debug("All rows deleted from %s", self.table_name)

    def scan(self, start: int = 0, limit: int | None = None) -> list[tuple[Any, Any]]:
        result = self.connection.execute(scan_sql(self.table_name, self.schema, start, limit))
        return self._decode_pairs(result)

    def query(self, query: Query, start: int = 0, limit: int | None = None) -> list[tuple[Any, Any]]:
        unknown = query.field_names() - set(self.schema.field_names())
        if unknown:
            # a double-quoted unknown name would silently compare as a string literal
            raise SchemaError(
                f"Query on '{self.table_name}' uses undeclared fields: {sorted(unknown)}"
            )
        sql, params = query_sql(self.table_name, self.schema, query, start, limit)
        result = self.connection.execute(sql, params)
        return self._decode_pairs(result)
