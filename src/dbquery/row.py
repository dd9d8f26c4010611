"""Row decoding into caller-defined records.

A record type is decodable when it offers a `from_row(cls, row)` classmethod
receiving a RowDecoder (the Decodable protocol). Dataclasses and NamedTuple
classes are decoded member by member from their annotations without writing
`from_row`; `column()` maps a member onto a differently named column.
"""
import dataclasses
import datetime
import decimal
import logging
import re
import types
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Protocol, Self, TypeVar, Union, get_args, get_origin
from typing import get_type_hints, runtime_checkable

import dateutil.parser
from dbquery.exceptions import DecodeError, ResultParseError
from dbquery.strategy import DialectStrategy, get_strategy
from dbquery.types import FieldValue, Raw, RowResult, Temporal

logger = logging.getLogger(__name__)

T = TypeVar('T')

COLUMN_KEY = 'column'

TRUE_STRINGS = frozenset({'1', 'true', 't', 'yes', 'y', 'on'})
FALSE_STRINGS = frozenset({'0', 'false', 'f', 'no', 'n', 'off'})

_DURATION = re.compile(r'^(?P<sign>-)?(?P<hours>\d+):(?P<minutes>\d{2}):(?P<seconds>\d{2}(?:\.\d+)?)$')

_isoparser = dateutil.parser.isoparser()


def column(name: str, **kwargs: Any) -> Any:
    """Declare the column a dataclass member is read from and written to.

    >>> @dataclass
    ... class Item:
    ...     value: int = column('item_value')
    >>> record_items(Item(3))
    [('item_value', 3)]
    """
    metadata = {**kwargs.pop('metadata', {}), COLUMN_KEY: name}
    return dataclasses.field(metadata=metadata, **kwargs)


def column_name(field: dataclasses.Field) -> str:
    """Column a dataclass field maps onto."""
    return field.metadata.get(COLUMN_KEY, field.name)


def record_items(record: Any) -> list[tuple[str, Any]]:
    """Column/value pairs of a dataclass instance."""
    return [(column_name(f), getattr(record, f.name)) for f in dataclasses.fields(record)]


@runtime_checkable
class Decodable(Protocol):
    """Record type constructible from named field lookup."""

    @classmethod
    def from_row(cls, row: 'RowDecoder') -> Self:
        ...


@dataclass(frozen=True)
class EmptyRow:
    """Record with no members; decodes from any row.
    """


# Value coercion - FieldValue -> Python types

def _optional_inner(type_: Any) -> tuple[bool, Any]:
    """Split `X | None` / `Optional[X]` into (True, X)."""
    origin = get_origin(type_)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(type_) if a is not type(None)]
        if len(args) < len(get_args(type_)):
            inner = args[0] if len(args) == 1 else Union[tuple(args)]
            return True, inner
    return False, type_


def _text(value: FieldValue, column: str) -> str:
    try:
        return value.text()
    except ResultParseError as exc:
        raise DecodeError('value is not valid text', column, _raw_repr(value)) from exc


def _raw_repr(value: FieldValue) -> Any:
    if isinstance(value, Raw):
        return value.data
    if isinstance(value, Temporal):
        return value.value
    return None


def _session_tz(value: FieldValue) -> datetime.tzinfo | None:
    return value.tzinfo if isinstance(value, Temporal) else None


def _to_str(value: FieldValue, column: str) -> str:
    return _text(value, column)


def _to_bytes(value: FieldValue, column: str) -> bytes:
    if isinstance(value, Raw):
        return value.data
    return _text(value, column).encode('utf-8')


def _to_int(value: FieldValue, column: str) -> int:
    return int(_text(value, column).strip())


def _to_float(value: FieldValue, column: str) -> float:
    return float(_text(value, column).strip())


def _to_decimal(value: FieldValue, column: str) -> decimal.Decimal:
    return decimal.Decimal(_text(value, column).strip())


def _to_bool(value: FieldValue, column: str) -> bool:
    # BIT(1) arrives as a single raw byte
    if isinstance(value, Raw) and len(value.data) == 1 and not value.data.isalnum():
        return value.data != b'\x00'
    text = _text(value, column).strip().lower()
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS:
        return False
    raise ValueError(f'not a boolean: {text!r}')


def _to_datetime(value: FieldValue, column: str) -> datetime.datetime:
    parsed = _isoparser.isoparse(_text(value, column).strip())
    tz = _session_tz(value)
    if tz is None:
        return parsed
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def _to_date(value: FieldValue, column: str) -> datetime.date:
    return _isoparser.isoparse(_text(value, column).strip()).date()


def _to_time(value: FieldValue, column: str) -> datetime.time:
    return _isoparser.parse_isotime(_text(value, column).strip())


def _to_timedelta(value: FieldValue, column: str) -> datetime.timedelta:
    """Parse `[-]HHH:MM:SS[.ffffff]`, the text form of MySQL TIME."""
    match = _DURATION.match(_text(value, column).strip())
    if match is None:
        raise ValueError('not a duration')
    delta = datetime.timedelta(hours=int(match['hours']), minutes=int(match['minutes']),
                               seconds=float(match['seconds']))
    return -delta if match['sign'] else delta


_DECODERS = {
    str: _to_str,
    bytes: _to_bytes,
    int: _to_int,
    float: _to_float,
    decimal.Decimal: _to_decimal,
    bool: _to_bool,
    datetime.datetime: _to_datetime,
    datetime.date: _to_date,
    datetime.time: _to_time,
    datetime.timedelta: _to_timedelta,
    }


def convert_value(value: FieldValue, type_: Any, column: str = '?',
                  natural_type: type | None = None) -> Any:
    """Coerce one field value into `type_`.

    Args:
        value: Fetched value
        type_: Target annotation; `Optional[...]` accepts NULL
        column: Column name used in error messages
        natural_type: Type used when `type_` is Any

    Raises
        DecodeError: NULL into a non-optional member, unsupported target
            type, or unparsable text
    """
    optional, type_ = _optional_inner(type_)
    if value.is_null:
        if optional or type_ is Any:
            return None
        raise DecodeError('NULL value for non-optional member', column)

    if type_ is Any or type_ is object:
        return natural_value(value, natural_type or str, column)

    if isinstance(type_, type) and issubclass(type_, Enum):
        base = int if issubclass(type_, int) else str
        try:
            return type_(convert_value(value, base, column))
        except ValueError as exc:
            raise DecodeError(f'invalid {type_.__name__} value', column, _raw_repr(value)) from exc

    decoder = _DECODERS.get(type_)
    if decoder is None:
        raise DecodeError(f'unsupported member type {type_!r}', column)
    try:
        return decoder(value, column)
    except DecodeError:
        raise
    except (ValueError, ArithmeticError, OverflowError) as exc:
        raise DecodeError(f'cannot decode {getattr(type_, "__name__", type_)}',
                          column, _raw_repr(value)) from exc


def natural_value(value: FieldValue, natural_type: type, column: str = '?') -> Any:
    """Decode into the column's own Python type, falling back to text."""
    if value.is_null:
        return None
    try:
        return convert_value(value, natural_type, column)
    except DecodeError:
        logger.debug(f'Column {column} is not a valid {natural_type.__name__}, keeping raw value')
    if isinstance(value, Raw) and not _is_text(value):
        return value.data
    return value.text()


def _is_text(value: Raw) -> bool:
    try:
        value.data.decode('utf-8')
    except UnicodeDecodeError:
        return False
    return True


class RowDecoder:
    """Named, typed access to one fetched row.
    """

    def __init__(self, row: RowResult, strategy: DialectStrategy | None = None) -> None:
        self.row = row
        self.strategy = strategy or get_strategy('mysql')

    def __contains__(self, name: str) -> bool:
        return name in self.row

    def value(self, name: str) -> FieldValue:
        """Raw field value of a column."""
        if name not in self.row:
            raise DecodeError('no such column in result', name)
        return self.row[name]

    def decode(self, name: str, type_: Any = Any) -> Any:
        """Decode a column into `type_`."""
        value = self.value(name)
        return convert_value(value, type_, name, self.natural_type(name))

    def natural_type(self, name: str) -> type:
        """Python type of a column according to its wire type code."""
        return self.strategy.python_type(self.row.field(name).type_code)

    def to_dict(self) -> dict[str, Any]:
        """All columns decoded into their natural Python types."""
        return {name: self.decode(name) for name in self.row.as_dict()}


# Record decoding

@lru_cache(maxsize=256)
def _record_plan(target: type) -> tuple[tuple[str, str, Any], ...]:
    """(attribute, column, annotation) triples of a record type."""
    hints = get_type_hints(target)
    if dataclasses.is_dataclass(target):
        return tuple((f.name, column_name(f), hints.get(f.name, Any))
                     for f in dataclasses.fields(target) if f.init)
    if issubclass(target, tuple) and hasattr(target, '_fields'):
        return tuple((name, name, hints.get(name, Any)) for name in target._fields)
    raise DecodeError(f'{target.__name__} is not a decodable record type')


def decode_row(target: type[T], row: RowResult,
               strategy: DialectStrategy | None = None) -> T:
    """Decode one row into a record of type `target`.

    `dict` targets yield `{column: value}` in natural Python types; classes
    implementing `from_row` decode themselves; dataclasses and NamedTuples
    decode member by member.
    """
    decoder = RowDecoder(row, strategy)
    if target is dict:
        return decoder.to_dict()
    if isinstance(target, type) and hasattr(target, 'from_row'):
        return target.from_row(decoder)
    if not isinstance(target, type):
        raise DecodeError(f'{target!r} is not a decodable record type')

    values = {attr: decoder.decode(col, type_) for attr, col, type_ in _record_plan(target)}
    return target(**values)


def decode_rows(target: type[T], rows: list[RowResult],
                strategy: DialectStrategy | None = None) -> list[T]:
    """Decode every row; the first failure aborts the whole batch."""
    return [decode_row(target, row, strategy) for row in rows]
