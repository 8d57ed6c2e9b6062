"""The six primitive values exchanged at every storage boundary.

Every record crosses into SQLite as a map of field name to one of these
values, and comes back the same way. The kind of a value decides its column
type, how it is bound as a parameter and how a column is read back:

    Kind.STRING            Str      TEXT
    Kind.BYTES             Bytes    BLOB
    Kind.INTEGER           Int      INTEGER
    Kind.UNSIGNED_INTEGER  UInt     INTEGER  (int64 two's complement)
    Kind.FLOAT             Float    REAL     (float32 precision)
    Kind.DOUBLE            Double   REAL

Example:
    from recordstore.values import Int, Kind, Str

    Str("abc").as_str()       # 'abc'
    Str("abc").as_i()         # None
    Kind.INTEGER.wrap(10)     # Int(payload=10)
"""

import operator
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

import numpy as np

INT64_MIN = int(np.iinfo(np.int64).min)
INT64_MAX = int(np.iinfo(np.int64).max)
UINT64_MAX = int(np.iinfo(np.uint64).max)


class Kind(Enum):
    """The kind of a field: one of the six value cases without its payload."""
    STRING = "string"
    BYTES = "bytes"
    INTEGER = "integer"
    UNSIGNED_INTEGER = "unsigned_integer"
    FLOAT = "float"
    DOUBLE = "double"

    @property
    def sql_type(self) -> str:
        """Column type used in CREATE TABLE for this kind."""
        if self is Kind.STRING:
            return "TEXT"
        elif self is Kind.BYTES:
            return "BLOB"
        elif self in (Kind.INTEGER, Kind.UNSIGNED_INTEGER):
            return "INTEGER"
        else:  # FLOAT, DOUBLE
            return "REAL"

    @property
    def value_type(self) -> type["Value"]:
        return _VALUE_TYPES[self]

    def wrap(self, scalar: Any) -> "Value":
        """Build a value of this kind from a plain Python scalar.

        Raises:
            TypeError: If the scalar has the wrong type for this kind
            ValueError: If the scalar is out of range for this kind
        """
        return self.value_type(scalar)

    def unwrap(self, value: "Value") -> Any:
        """Return the payload of value if it is of this kind, else None."""
        if self is Kind.STRING:
            return value.as_str()
        elif self is Kind.BYTES:
            return value.as_bytes()
        elif self is Kind.INTEGER:
            return value.as_i()
        elif self is Kind.UNSIGNED_INTEGER:
            return value.as_u()
        elif self is Kind.FLOAT:
            return value.as_f32()
        else:  # DOUBLE
            return value.as_f64()


@dataclass(frozen=True)
class Value:
    """Base class of the six value cases.

    Equality compares the case and the payload, so Int(1) != UInt(1).
    """

    payload: Any
    kind: ClassVar[Kind]

    def as_str(self) -> str | None:
        return None

    def as_bytes(self) -> bytes | None:
        return None

    def as_i(self) -> int | None:
        return None

    def as_u(self) -> int | None:
        return None

    def as_f32(self) -> float | None:
        return None

    def as_f64(self) -> float | None:
        return None


def _check_not_text(payload: Any, case: str) -> None:
    if isinstance(payload, (str, bytes, bytearray)):
        raise TypeError(f"{case} payload must be numeric, got {type(payload).__name__}")


@dataclass(frozen=True)
class Str(Value):
    payload: str
    kind: ClassVar[Kind] = Kind.STRING

    def __post_init__(self):
        if not isinstance(self.payload, str):
            raise TypeError(f"Str payload must be str, got {type(self.payload).__name__}")

    def as_str(self) -> str:
        return self.payload


@dataclass(frozen=True)
class Bytes(Value):
    payload: bytes
    kind: ClassVar[Kind] = Kind.BYTES

    def __post_init__(self):
        if not isinstance(self.payload, (bytes, bytearray, memoryview)):
            raise TypeError(f"Bytes payload must be bytes, got {type(self.payload).__name__}")
        object.__setattr__(self, "payload", bytes(self.payload))

    def as_bytes(self) -> bytes:
        return self.payload


@dataclass(frozen=True)
class Int(Value):
    """Signed 64-bit integer."""

    payload: int
    kind: ClassVar[Kind] = Kind.INTEGER

    def __post_init__(self):
        payload = int(operator.index(self.payload))
        if not INT64_MIN <= payload <= INT64_MAX:
            raise ValueError(f"Int payload out of int64 range: {payload}")
        object.__setattr__(self, "payload", payload)

    def as_i(self) -> int:
        return self.payload


@dataclass(frozen=True)
class UInt(Value):
    """Unsigned 64-bit integer."""

    payload: int
    kind: ClassVar[Kind] = Kind.UNSIGNED_INTEGER

    def __post_init__(self):
        payload = int(operator.index(self.payload))
        if not 0 <= payload <= UINT64_MAX:
            raise ValueError(f"UInt payload out of uint64 range: {payload}")
        object.__setattr__(self, "payload", payload)

    def as_u(self) -> int:
        return self.payload


@dataclass(frozen=True)
class Float(Value):
    """32-bit float. The payload is narrowed to float32 precision."""

    payload: float
    kind: ClassVar[Kind] = Kind.FLOAT

    def __post_init__(self):
        _check_not_text(self.payload, "Float")
        object.__setattr__(self, "payload", float(np.float32(self.payload)))

    def as_f32(self) -> float:
        return self.payload


@dataclass(frozen=True)
class Double(Value):
    """64-bit float."""

    payload: float
    kind: ClassVar[Kind] = Kind.DOUBLE

    def __post_init__(self):
        _check_not_text(self.payload, "Double")
        object.__setattr__(self, "payload", float(self.payload))

    def as_f64(self) -> float:
        return self.payload


_VALUE_TYPES: dict[Kind, type[Value]] = {
    Kind.STRING: Str,
    Kind.BYTES: Bytes,
    Kind.INTEGER: Int,
    Kind.UNSIGNED_INTEGER: UInt,
    Kind.FLOAT: Float,
    Kind.DOUBLE: Double,
}


def _u64_to_i64(u: int) -> int:
    return int(np.array(u, dtype=np.uint64).view(np.int64))


def _i64_to_u64(i: int) -> int:
    return int(np.array(i, dtype=np.int64).view(np.uint64))


def _read_int(raw: Any) -> int:
    if isinstance(raw, float) and not raw.is_integer():
        raise ValueError(f"{raw!r} is not integral")
    return int(raw)


def to_sql(value: Value) -> str | bytes | int | float:
    """Convert a value to the scalar bound as a SQL parameter.

    UInt is reinterpreted as int64 and Float is widened to a double.
    """
    if isinstance(value, Str):
        return value.payload
    elif isinstance(value, Bytes):
        return value.payload
    elif isinstance(value, Int):
        return value.payload
    elif isinstance(value, UInt):
        return _u64_to_i64(value.payload)
    elif isinstance(value, Float):
        return value.payload
    elif isinstance(value, Double):
        return value.payload
    raise TypeError(f"Cannot bind {value!r}: not a recordstore Value")


def from_sql(kind: Kind, raw: Any) -> Value | None:
    """Read a column value according to the field's declared kind.

    Returns None for NULL and for column values that cannot be read as the
    declared kind.
    """
    if raw is None:
        return None
    try:
        if kind is Kind.STRING:
            if isinstance(raw, bytes):
                return Str(raw.decode("utf-8"))
            return Str(str(raw))
        elif kind is Kind.BYTES:
            if isinstance(raw, str):
                return Bytes(raw.encode("utf-8"))
            return Bytes(raw)
        elif kind is Kind.INTEGER:
            return Int(_read_int(raw))
        elif kind is Kind.UNSIGNED_INTEGER:
            return UInt(_i64_to_u64(_read_int(raw)))
        elif kind is Kind.FLOAT:
            return Float(float(raw))
        else:  # DOUBLE
            return Double(float(raw))
    except (TypeError, ValueError, OverflowError, UnicodeDecodeError):
        return None
