"""Pytest configuration and shared fixtures for recordstore tests."""

import sys
from dataclasses import dataclass, field
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from recordstore import (
    Bytes,
    Double,
    FieldSpec,
    Float,
    Int,
    Kind,
    Schema,
    SqliteAdapter,
    Str,
    UInt,
    connect,
)

INT64_MAX = 2**63 - 1
UINT32_MAX = 2**32 - 1


def _read(row, name, accessor):
    value = row.get(name)
    return None if value is None else getattr(value, accessor)()


# --- Sample record and schema covering all six kinds ---

@dataclass
class AllSupportedTypes:
    string: str
    bytes: bytes
    integer: int
    unsigned_integer: int
    float: float
    double: float


class AllSupportedTypesSchema(Schema):
    """Hand-written schema: key "key" (string) plus one field per kind."""

    FIELDS = (
        FieldSpec("key", Kind.STRING),
        FieldSpec("string", Kind.STRING),
        FieldSpec("bytes", Kind.BYTES),
        FieldSpec("integer", Kind.INTEGER),
        FieldSpec("unsigned_integer", Kind.UNSIGNED_INTEGER),
        FieldSpec("float", Kind.FLOAT),
        FieldSpec("double", Kind.DOUBLE),
    )

    def fields(self):
        return self.FIELDS

    def key_field(self):
        return "key"

    def serialize_key(self, key):
        return Str(key)

    def deserialize_key(self, value):
        return value.as_str()

    def serialize_data(self, record):
        return {
            "string": Str(record.string),
            "bytes": Bytes(record.bytes),
            "integer": Int(record.integer),
            "unsigned_integer": UInt(record.unsigned_integer),
            "float": Float(record.float),
            "double": Double(record.double),
        }

    def deserialize_data(self, row):
        values = {
            "string": _read(row, "string", "as_str"),
            "bytes": _read(row, "bytes", "as_bytes"),
            "integer": _read(row, "integer", "as_i"),
            "unsigned_integer": _read(row, "unsigned_integer", "as_u"),
            "float": _read(row, "float", "as_f32"),
            "double": _read(row, "double", "as_f64"),
        }
        if any(v is None for v in values.values()):
            return None
        return AllSupportedTypes(**values)


def make_record(**overrides) -> AllSupportedTypes:
    """The record used by the end-to-end scenarios, with optional overrides."""
    values = dict(
        string="abc",
        bytes=bytes([0, 1, 255]),
        integer=INT64_MAX,
        unsigned_integer=UINT32_MAX,
        float=0.0,
        double=1.5,
    )
    values.update(overrides)
    return AllSupportedTypes(**values)


@pytest.fixture
def schema():
    return AllSupportedTypesSchema()


@pytest.fixture
def conn():
    """Provide a fresh in-memory shared connection."""
    conn = connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def file_conn(tmp_path):
    """Provide a shared connection on a temporary database file."""
    conn = connect(tmp_path / "test_db.sqlite")
    yield conn
    conn.close()


@pytest.fixture
def adapter(conn, schema):
    """Provide an initialized, empty adapter for AllSupportedTypes."""
    adapter = SqliteAdapter(conn, "all_types", schema)
    assert adapter.initialize()
    return adapter
