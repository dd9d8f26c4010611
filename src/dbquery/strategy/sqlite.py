"""
SQLite-specific strategy implementation.

SQLite has no wire type codes; the handle reports the type named in a
`name [type]` column label (e.g. `DATETIME`, `VARCHAR(20)`), otherwise the
storage class of the column's first non-NULL value (`INTEGER`, `REAL`,
`TEXT`, `BLOB`, or `NULL` when every value is NULL), or None for an empty
result.
"""
import datetime
import decimal
from typing import Any

from dbquery.strategy.base import DialectStrategy, register_strategy

sqlite_types: dict[str, type] = {
    'INTEGER': int,
    'INT': int,
    'BIGINT': int,
    'REAL': float,
    'DOUBLE': float,
    'FLOAT': float,
    'TEXT': str,
    'BLOB': bytes,
    'NUMERIC': decimal.Decimal,
    'DECIMAL': decimal.Decimal,
    'BOOLEAN': bool,
    'DATE': datetime.date,
    'DATETIME': datetime.datetime,
    'TIMESTAMP': datetime.datetime,
    'TIME': datetime.time,
}

TEMPORAL_DECLTYPES = frozenset({'DATE', 'DATETIME', 'TIMESTAMP', 'TIME'})


def base_type(type_code: Any) -> str | None:
    """Strip length arguments from a declared type.

    >>> base_type('varchar(20)')
    'VARCHAR'
    >>> base_type(None) is None
    True
    """
    if not isinstance(type_code, str):
        return None
    return type_code.split('(')[0].strip().upper()


@register_strategy('sqlite')
class SQLiteStrategy(DialectStrategy):
    """SQLite literal rendering.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def escape_string(self, value: str) -> str:
        self._reject_nul(value)
        return "'" + value.replace("'", "''") + "'"

    def render_bytes(self, value: bytes) -> str:
        return f"X'{bytes(value).hex()}'"

    def get_type_map(self) -> dict[str, type]:
        return sqlite_types

    def python_type(self, type_code: Any) -> type:
        return sqlite_types.get(base_type(type_code), str)

    def is_temporal(self, type_code: Any) -> bool:
        return base_type(type_code) in TEMPORAL_DECLTYPES
