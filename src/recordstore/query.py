"""Predicate trees for SqliteAdapter.query().

A predicate is an immutable tree of boolean nodes (Or, And, Not) over
comparisons of a field with a constant value (Eq, Gt, Lt). Trees are built
with the node classes, the or_/and_/not_ helpers, the &, |, ~ operators, or
by comparing a Column:

    from recordstore.query import Column, Eq, Gt
    from recordstore.values import Float, Int, Str

    q = (Column("float") > Float(0.0)) & ~Eq("string", Str("skip"))
    q = Gt("integer", Int(10)) | Eq("string", Str("hello!"))

Predicates are compiled to a parameterized WHERE fragment with one
positional placeholder per comparison, numbered left to right:

    compile_query(Eq("a", Int(1)) & Gt("b", Int(2)))
    # ('( "a"=? AND "b">? )', 3, [1, 2])

Field names are not checked when a predicate is built; SqliteAdapter.query()
rejects fields its schema does not declare.
"""

import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Mapping

from .values import INT64_MAX, INT64_MIN, Kind, Value, to_sql


class Query(ABC):
    """Base class for predicate nodes."""

    def __and__(self, other: "Query") -> "And":
        return And(self, other)

    def __or__(self, other: "Query") -> "Or":
        return Or(self, other)

    def __invert__(self) -> "Not":
        return Not(self)

    @abstractmethod
    def compile(self, next_index: int, params: list) -> tuple[str, int, list]:
        """Append this node's SQL to a WHERE clause under construction.

        Args:
            next_index: 1-based index of the next placeholder
            params: Parameters bound so far, extended in place

        Returns:
            (fragment, next placeholder index, params)
        """
        ...

    @abstractmethod
    def evaluate(self, row: Mapping[str, Value]) -> bool | None:
        """Evaluate against a decoded row using SQL three-valued logic.

        None stands for SQL NULL, which a comparison against a missing
        column produces. Each stored value's kind stands for its column's
        affinity, which is applied to the constant as SQLite does.
        """
        ...

    def matches(self, row: Mapping[str, Value]) -> bool:
        """True if a WHERE clause with this predicate would keep the row."""
        return self.evaluate(row) is True

    @abstractmethod
    def field_names(self) -> set[str]:
        """Names of all fields the predicate compares."""
        ...


@dataclass(frozen=True)
class Or(Query):
    left: Query
    right: Query

    def compile(self, next_index: int, params: list) -> tuple[str, int, list]:
        a, next_index, params = self.left.compile(next_index, params)
        b, next_index, params = self.right.compile(next_index, params)
        return f"( {a} OR {b} )", next_index, params

    def field_names(self) -> set[str]:
        return self.left.field_names() | self.right.field_names()

    def evaluate(self, row: Mapping[str, Value]) -> bool | None:
        a = self.left.evaluate(row)
        b = self.right.evaluate(row)
        if a is True or b is True:
            return True
        if a is None or b is None:
            return None
        return False


@dataclass(frozen=True)
class And(Query):
    left: Query
    right: Query

    def compile(self, next_index: int, params: list) -> tuple[str, int, list]:
        a, next_index, params = self.left.compile(next_index, params)
        b, next_index, params = self.right.compile(next_index, params)
        return f"( {a} AND {b} )", next_index, params

    def field_names(self) -> set[str]:
        return self.left.field_names() | self.right.field_names()

    def evaluate(self, row: Mapping[str, Value]) -> bool | None:
        a = self.left.evaluate(row)
        b = self.right.evaluate(row)
        if a is False or b is False:
            return False
        if a is None or b is None:
            return None
        return True


@dataclass(frozen=True)
class Not(Query):
    inner: Query

    def compile(self, next_index: int, params: list) -> tuple[str, int, list]:
        a, next_index, params = self.inner.compile(next_index, params)
        return f"( NOT {a} )", next_index, params

    def field_names(self) -> set[str]:
        return self.inner.field_names()

    def evaluate(self, row: Mapping[str, Value]) -> bool | None:
        a = self.inner.evaluate(row)
        return None if a is None else not a


def _storage_class(scalar) -> int:
    # SQLite orders NULL < numbers < TEXT < BLOB
    if isinstance(scalar, str):
        return 2
    if isinstance(scalar, bytes):
        return 3
    return 1


# SQLite's numeric literal, as accepted when text gets numeric affinity
_NUMERIC_TEXT = re.compile(r"\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*")


def _real_to_text(number: float) -> str:
    # SQLite renders REAL as "%!.15g"
    if math.isinf(number):
        return "Inf" if number > 0 else "-Inf"
    mantissa, sep, exponent = f"{number:.15g}".partition("e")
    if "." not in mantissa:
        mantissa += ".0"
    return mantissa + sep + exponent


def _apply_affinity(kind: Kind, scalar):
    """Convert a bound constant as SQLite does before comparing it with a column of kind."""
    if kind is Kind.STRING:
        if isinstance(scalar, int):
            return str(scalar)
        if isinstance(scalar, float):
            return _real_to_text(scalar)
    elif kind is not Kind.BYTES and isinstance(scalar, str):
        if _NUMERIC_TEXT.fullmatch(scalar):
            try:
                number = int(scalar)
            except ValueError:
                return float(scalar)
            return number if INT64_MIN <= number <= INT64_MAX else float(number)
    return scalar


@dataclass(frozen=True)
class _Comparison(Query):
    field: str
    value: Value
    operator: ClassVar[str]

    def __post_init__(self):
        if not isinstance(self.value, Value):
            raise TypeError(
                f"{type(self).__name__} needs a recordstore Value, got {self.value!r}"
            )

    def compile(self, next_index: int, params: list) -> tuple[str, int, list]:
        params.append(to_sql(self.value))
        return f'"{self.field}"{self.operator}?', next_index + 1, params

    def field_names(self) -> set[str]:
        return {self.field}

    def evaluate(self, row: Mapping[str, Value]) -> bool | None:
        stored = row.get(self.field)
        if stored is None:
            return None
        # compare the bound scalars, so UInt wraps exactly as it does in SQL
        left = to_sql(stored)
        right = to_sql(self.value)
        if isinstance(right, float) and math.isnan(right):
            # bound as NULL
            return None
        right = _apply_affinity(stored.kind, right)
        left_class, right_class = _storage_class(left), _storage_class(right)
        if left_class != right_class:
            return self._compare(left_class, right_class)
        return self._compare(left, right)

    @abstractmethod
    def _compare(self, left, right) -> bool:
        ...


@dataclass(frozen=True)
class Eq(_Comparison):
    operator: ClassVar[str] = "="

    def _compare(self, left, right) -> bool:
        return left == right


@dataclass(frozen=True)
class Gt(_Comparison):
    operator: ClassVar[str] = ">"

    def _compare(self, left, right) -> bool:
        return left > right


@dataclass(frozen=True)
class Lt(_Comparison):
    operator: ClassVar[str] = "<"

    def _compare(self, left, right) -> bool:
        return left < right


def or_(a: Query, b: Query) -> Or:
    return Or(a, b)


def and_(a: Query, b: Query) -> And:
    return And(a, b)


def not_(a: Query) -> Not:
    return Not(a)


class Column:
    """
    Builds comparison leaves from Python comparison operators.

    Example:
        Column("integer") == Int(10)     # Eq("integer", Int(10))
        Column("float") > Float(0.0)     # Gt("float", Float(0.0))
        Column("float") >= Float(0.0)    # Not(Lt("float", Float(0.0)))
    """

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"Column({self.name!r})"

    def __eq__(self, value: Value) -> Eq:  # type: ignore[override]
        return Eq(self.name, value)

    def __ne__(self, value: Value) -> Not:  # type: ignore[override]
        return Not(Eq(self.name, value))

    def __gt__(self, value: Value) -> Gt:
        return Gt(self.name, value)

    def __lt__(self, value: Value) -> Lt:
        return Lt(self.name, value)

    def __ge__(self, value: Value) -> Not:
        return Not(Lt(self.name, value))

    def __le__(self, value: Value) -> Not:
        return Not(Gt(self.name, value))

    __hash__ = None  # type: ignore[assignment]


def compile_query(
    query: Query,
    next_index: int = 1,
    params: list | None = None,
) -> tuple[str, int, list]:
    """Compile a predicate to (WHERE fragment, next placeholder index, params)."""
    return query.compile(next_index, [] if params is None else params)


__all__ = [
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
]
