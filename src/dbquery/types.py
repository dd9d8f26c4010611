"""
Result value types shared by the fetcher and the row decoder.

This module provides:
- Field: column metadata of one executed query
- FieldValue (Null / Raw / Temporal): one fetched cell
- RowResult: fields paired with one row's values
- QueryStatus: side effects reported after execution
"""
import datetime
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Self

from dbquery.exceptions import ResultParseError

logger = logging.getLogger(__name__)

# mysql_affected_rows() and friends report (my_ulonglong)-1 when the count
# does not apply
UNKNOWN_AFFECTED_ROWS = 2**64 - 1


@dataclass(frozen=True, slots=True)
class Field:
    """Result column metadata."""
    name: str
    type_code: Any
    is_temporal: bool = False


# Field values - a closed variant over Null, Raw and Temporal

class FieldValue(ABC):
    """Base of the fetched cell variants.
    """
    __slots__ = ()

    is_null = False

    @abstractmethod
    def text(self) -> str:
        """Return the cell as text."""


@dataclass(frozen=True, slots=True)
class Null(FieldValue):
    """SQL NULL."""

    is_null = True

    def text(self) -> str:
        raise ResultParseError('the field is not string.', result='null')

    def __repr__(self) -> str:
        return 'NULL'


@dataclass(frozen=True, slots=True)
class Raw(FieldValue):
    """Bytes of a non-temporal cell, copied out of the transport buffer."""
    data: bytes

    def text(self) -> str:
        try:
            return self.data.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise ResultParseError('invalid utf8 string bytes.') from exc

    @classmethod
    def copy_from(cls, buffer: Any, length: int | None = None) -> Self:
        """Copy `length` bytes (all when None) out of a transport buffer."""
        data = bytes(buffer) if length is None else bytes(memoryview(buffer)[:length])
        return cls(data)


@dataclass(frozen=True, slots=True)
class Temporal(FieldValue):
    """Text of a date/time cell together with the session time zone."""
    value: str
    tzinfo: datetime.tzinfo | None = None

    def text(self) -> str:
        return self.value


NULL = Null()


class RowResult:
    """Fields of a query paired with one row's values.

    Lookup by name returns the first column carrying that name.
    """

    __slots__ = ('fields', 'field_values', '_index')

    def __init__(self, fields: Sequence[Field], field_values: Sequence[FieldValue]) -> None:
        if len(fields) != len(field_values):
            raise ResultParseError(
                'invalid fetched column count',
                result=f'{len(field_values)} values for {len(fields)} fields')
        self.fields = tuple(fields)
        self.field_values = tuple(field_values)
        self._index: dict[str, int] = {}
        for i, field in enumerate(self.fields):
            self._index.setdefault(field.name, i)

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[tuple[Field, FieldValue]]:
        return iter(zip(self.fields, self.field_values))

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __getitem__(self, name: str) -> FieldValue:
        return self.field_values[self._index[name]]

    def __repr__(self) -> str:
        cells = ', '.join(f'{f.name}={v!r}' for f, v in self)
        return f'RowResult({cells})'

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def field(self, name: str) -> Field:
        """Return the descriptor of the named column."""
        return self.fields[self._index[name]]

    def as_dict(self) -> dict[str, FieldValue]:
        """Map column names to raw field values (first column wins)."""
        return {name: self.field_values[i] for name, i in self._index.items()}


@dataclass(frozen=True, slots=True)
class QueryStatus:
    """Side effects reported by the server after a command.

    `affected_rows` is None when the count does not apply (SELECT, some
    error states); it must not be read as zero.
    """
    affected_rows: int | None
    inserted_id: int

    @classmethod
    def from_counters(cls, affected_rows: int, inserted_id: int) -> Self:
        """Build from the raw wire counters, mapping the sentinel to None."""
        if affected_rows is None or affected_rows == UNKNOWN_AFFECTED_ROWS or affected_rows < 0:
            return cls(affected_rows=None, inserted_id=inserted_id or 0)
        return cls(affected_rows=affected_rows, inserted_id=inserted_id or 0)

    def __str__(self) -> str:
        affected = 'nil' if self.affected_rows is None else str(self.affected_rows)
        return f'insertedID:{self.inserted_id}, affectedRows:{affected}'
