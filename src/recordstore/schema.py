"""Schema descriptions: how a record type maps onto one table.

A schema lists the table's fields, names the key field and converts between
the application's (key, record) pair and the field-name -> Value map that the
adapter reads and writes.

Example:
    from dataclasses import dataclass
    from recordstore.schema import DataclassSchema, FieldSpec
    from recordstore.values import Kind

    @dataclass
    class Reading:
        sensor: str
        celsius: float

    schema = DataclassSchema(
        Reading,
        fields=[
            FieldSpec("id", Kind.INTEGER),
            FieldSpec("sensor", Kind.STRING),
            FieldSpec("celsius", Kind.DOUBLE),
        ],
        key_field="id",
    )
"""

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence

from .exceptions import SchemaError
from .values import Kind, Value


@dataclass(frozen=True)
class FieldSpec:
    """A (field name, kind) pair. The name becomes a column name verbatim."""

    name: str
    kind: Kind

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.isidentifier():
            raise SchemaError(f"Field name must be a non-empty identifier, got {self.name!r}")
        if not isinstance(self.kind, Kind):
            raise SchemaError(f"Field '{self.name}' has invalid kind {self.kind!r}")


class Schema(ABC):
    """
    Abstract description of one collection.

    Subclasses must implement:
    - fields(): all table fields in column order, including the key
    - key_field(): name of the primary key field
    - serialize_key() / deserialize_key(): key <-> Value
    - serialize_data() / deserialize_data(): record <-> {field name: Value}

    serialize_data() may leave the key field out; the adapter fills it from
    serialize_key(). deserialize_data() receives every column of the row,
    including the key. Both conversion directions return None when the input
    cannot be converted.
    """

    @abstractmethod
    def fields(self) -> Sequence[FieldSpec]:
        pass

    @abstractmethod
    def key_field(self) -> str:
        pass

    @abstractmethod
    def serialize_key(self, key: Any) -> Value:
        pass

    @abstractmethod
    def deserialize_key(self, value: Value) -> Any | None:
        pass

    @abstractmethod
    def serialize_data(self, record: Any) -> dict[str, Value] | None:
        pass

    @abstractmethod
    def deserialize_data(self, row: dict[str, Value]) -> Any | None:
        pass

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields()]

    def field(self, name: str) -> FieldSpec | None:
        """Look up a field by name."""
        for f in self.fields():
            if f.name == name:
                return f
        return None

    def key_spec(self) -> FieldSpec:
        spec = self.field(self.key_field())
        if spec is None:
            raise SchemaError(f"Key field '{self.key_field()}' is not one of the schema fields")
        return spec

    def value_fields(self) -> list[FieldSpec]:
        """All fields except the key, in declaration order."""
        key = self.key_field()
        return [f for f in self.fields() if f.name != key]

    def validate(self) -> None:
        """
        Check the field list against the key designation.

        Raises:
            SchemaError: If there are no fields, a name is repeated, or the
                key field does not appear exactly once
        """
        names = self.field_names()
        if not names:
            raise SchemaError(f"{type(self).__name__} declares no fields")

        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise SchemaError(f"{type(self).__name__} repeats fields: {duplicates}")

        if self.key_field() not in names:
            raise SchemaError(
                f"Key field '{self.key_field()}' is not one of the fields of "
                f"{type(self).__name__}: {names}"
            )


class DataclassSchema(Schema):
    """
    Schema for dataclass records, built from a field list.

    Non-key fields are read from the record attribute of the same name.
    When the dataclass also declares the key field, it is filled from the
    key column on the way back.

    Args:
        record_type: The dataclass type stored in the table
        fields: Table fields in column order, including the key
        key_field: Name of the primary key field
    """

    def __init__(self, record_type: type, fields: Sequence[FieldSpec], key_field: str):
        if not dataclasses.is_dataclass(record_type):
            raise SchemaError(f"{record_type!r} is not a dataclass")
        self.record_type = record_type
        self._fields = tuple(fields)
        self._key_field = key_field
        self.validate()

    def __repr__(self) -> str:
        return f"DataclassSchema({self.record_type.__name__}, key={self._key_field!r})"

    def fields(self) -> Sequence[FieldSpec]:
        return self._fields

    def key_field(self) -> str:
        return self._key_field

    def serialize_key(self, key: Any) -> Value:
        return self.key_spec().kind.wrap(key)

    def deserialize_key(self, value: Value) -> Any | None:
        return self.key_spec().kind.unwrap(value)

    def serialize_data(self, record: Any) -> dict[str, Value] | None:
        if not isinstance(record, self.record_type):
            return None
        out = {}
        for spec in self.value_fields():
            if not hasattr(record, spec.name):
                return None
            try:
                out[spec.name] = spec.kind.wrap(getattr(record, spec.name))
            except (TypeError, ValueError):
                return None
        return out

    def deserialize_data(self, row: dict[str, Value]) -> Any | None:
        kwargs = {}
        for f in dataclasses.fields(self.record_type):
            if not f.init:
                continue
            spec = self.field(f.name)
            if spec is None:
                continue  # not stored; the dataclass default applies
            value = row.get(f.name)
            scalar = spec.kind.unwrap(value) if value is not None else None
            if scalar is None:
                return None
            kwargs[f.name] = scalar
        try:
            return self.record_type(**kwargs)
        except TypeError:
            return None
