"""
PostgreSQL-specific strategy implementation.

Type codes are PostgreSQL type OIDs, resolved through psycopg's builtin type
registry. String literals follow standard_conforming_strings (quotes doubled,
backslashes literal).
"""
import datetime
import decimal
from typing import Any

from dbquery.exceptions import FormatError
from dbquery.strategy.base import DialectStrategy, _timespec, register_strategy
from psycopg.postgres import types as pg_types

_oid = lambda x: pg_types.get(x).oid

postgres_types: dict[int, type] = {}

for v in [_oid('"char"'), _oid('bpchar'), _oid('character varying'), _oid('character'),
          _oid('json'), _oid('name'), _oid('text'), _oid('uuid'), _oid('varchar')]:
    postgres_types[v] = str

for v in [_oid('int2'), _oid('int4'), _oid('int8'), _oid('oid')]:
    postgres_types[v] = int

for v in [_oid('float4'), _oid('float8')]:
    postgres_types[v] = float

postgres_types[_oid('numeric')] = decimal.Decimal

postgres_types[_oid('date')] = datetime.date

for v in [_oid('timestamp'), _oid('timestamptz')]:
    postgres_types[v] = datetime.datetime

for v in [_oid('time'), _oid('timetz')]:
    postgres_types[v] = datetime.time

postgres_types[_oid('bool')] = bool

postgres_types[_oid('bytea')] = bytes

TEMPORAL_OIDS = frozenset({
    _oid('date'), _oid('time'), _oid('timetz'), _oid('timestamp'), _oid('timestamptz'),
    })


@register_strategy('postgresql')
class PostgresStrategy(DialectStrategy):
    """PostgreSQL literal rendering.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def escape_string(self, value: str) -> str:
        self._reject_nul(value)
        return "'" + value.replace("'", "''") + "'"

    def render_bool(self, value: bool) -> str:
        return 'TRUE' if value else 'FALSE'

    def render_bytes(self, value: bytes) -> str:
        return f"'\\x{bytes(value).hex()}'::bytea"

    def render_time(self, value: datetime.time) -> str:
        """Render a time literal, keeping the UTC offset of a timetz value.

        Zones whose offset depends on the date (e.g. `America/New_York`) give
        a time no fixed offset and are rejected.
        """
        if value.tzinfo is None:
            return super().render_time(value)
        if value.utcoffset() is None:
            raise FormatError(f'Time zone of {value!r} has no fixed UTC offset')
        return self.escape_string(value.isoformat(timespec=_timespec(value)))

    def get_type_map(self) -> dict[int, type]:
        return postgres_types

    def is_temporal(self, type_code: Any) -> bool:
        return type_code in TEMPORAL_OIDS
