"""
MySQL-specific strategy implementation.

MySQL reports column types with the numeric `enum_field_types` codes of its
client protocol, quotes identifiers with backticks and escapes string
literals with backslashes.
"""
import datetime
import decimal
from enum import IntEnum
from typing import Any

from dbquery.strategy.base import DialectStrategy, register_strategy


class FieldType(IntEnum):
    """Column type codes of the MySQL client/server protocol."""
    DECIMAL = 0
    TINY = 1
    SHORT = 2
    LONG = 3
    FLOAT = 4
    DOUBLE = 5
    NULL = 6
    TIMESTAMP = 7
    LONGLONG = 8
    INT24 = 9
    DATE = 10
    TIME = 11
    DATETIME = 12
    YEAR = 13
    NEWDATE = 14
    VARCHAR = 15
    BIT = 16
    TIMESTAMP2 = 17
    DATETIME2 = 18
    TIME2 = 19
    JSON = 245
    NEWDECIMAL = 246
    ENUM = 247
    SET = 248
    TINY_BLOB = 249
    MEDIUM_BLOB = 250
    LONG_BLOB = 251
    BLOB = 252
    VAR_STRING = 253
    STRING = 254
    GEOMETRY = 255


TEMPORAL_TYPES = frozenset({
    FieldType.DATE, FieldType.NEWDATE, FieldType.TIME, FieldType.TIME2,
    FieldType.DATETIME, FieldType.DATETIME2,
    FieldType.TIMESTAMP, FieldType.TIMESTAMP2,
    })

# Characters escaped the way mysql_real_escape_string escapes them
_ESCAPES = {
    '\x00': '\\0',
    '\b': '\\b',
    '\t': '\\t',
    '\n': '\\n',
    '\r': '\\r',
    '\x1a': '\\Z',
    '"': '\\"',
    "'": "\\'",
    '\\': '\\\\',
    }
_ESCAPE_TABLE = str.maketrans(_ESCAPES)

mysql_types: dict[int, type] = {}

for v in [FieldType.TINY, FieldType.SHORT, FieldType.LONG, FieldType.LONGLONG,
          FieldType.INT24, FieldType.YEAR]:
    mysql_types[v] = int

for v in [FieldType.FLOAT, FieldType.DOUBLE]:
    mysql_types[v] = float

for v in [FieldType.DECIMAL, FieldType.NEWDECIMAL]:
    mysql_types[v] = decimal.Decimal

for v in [FieldType.DATE, FieldType.NEWDATE]:
    mysql_types[v] = datetime.date

for v in [FieldType.DATETIME, FieldType.DATETIME2, FieldType.TIMESTAMP, FieldType.TIMESTAMP2]:
    mysql_types[v] = datetime.datetime

for v in [FieldType.TIME, FieldType.TIME2]:
    mysql_types[v] = datetime.time

for v in [FieldType.BIT, FieldType.GEOMETRY]:
    mysql_types[v] = bytes


@register_strategy('mysql')
class MySQLStrategy(DialectStrategy):
    """MySQL literal rendering.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for MySQL."""
        return 'mysql'

    def quote_identifier(self, identifier: str) -> str:
        """Quote an identifier with backticks, doubling embedded backticks."""
        return '`' + identifier.replace('`', '``') + '`'

    def escape_string(self, value: str) -> str:
        return "'" + value.translate(_ESCAPE_TABLE) + "'"

    def render_bytes(self, value: bytes) -> str:
        return f"X'{bytes(value).hex()}'"

    def get_type_map(self) -> dict[int, type]:
        return mysql_types

    def is_temporal(self, type_code: Any) -> bool:
        return type_code in TEMPORAL_TYPES
