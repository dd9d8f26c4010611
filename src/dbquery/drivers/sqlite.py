"""
Connection handle over an open `sqlite3.Connection`.

SQLite reports no wire type codes, so each column's type code is taken from a
`name [type]` suffix on its label when present (the PARSE_COLNAMES convention,
e.g. `SELECT created AS "created [timestamp]"`), otherwise from the storage
class of the column's first non-NULL value.
"""
import collections
import logging
import re
import sqlite3
from typing import Any

from dbquery.handle import NULL_CELL, FieldMetadata, RawCell
from dbquery.types import UNKNOWN_AFFECTED_ROWS

logger = logging.getLogger(__name__)

_TYPED_LABEL = re.compile(r'^(?P<name>.*?)\s*\[(?P<type>[^\]]+)\]\s*$')


def split_label(label: str) -> tuple[str, str | None]:
    """Split a `name [type]` column label.

    >>> split_label('created [timestamp]')
    ('created', 'TIMESTAMP')
    >>> split_label('id')
    ('id', None)
    """
    match = _TYPED_LABEL.match(label)
    if match is None:
        return label, None
    return match['name'], match['type'].strip().upper()


def storage_class(value: Any) -> str:
    """SQLite storage class of a fetched Python value."""
    if value is None:
        return 'NULL'
    if isinstance(value, int):
        return 'INTEGER'
    if isinstance(value, float):
        return 'REAL'
    if isinstance(value, bytes):
        return 'BLOB'
    return 'TEXT'


def to_cell(value: Any) -> RawCell:
    """Render a fetched Python value as the bytes of its text form."""
    if value is None:
        return NULL_CELL
    if isinstance(value, bytes):
        data = value
    elif isinstance(value, float):
        data = repr(value).encode('ascii')
    else:
        data = str(value).encode('utf-8')
    return RawCell(data, len(data), False)


class SQLiteResult:
    """Streaming result over an executed cursor."""

    def __init__(self, cursor: sqlite3.Cursor) -> None:
        self.cursor = cursor
        self._pending: collections.deque[tuple] = collections.deque()

    def field_count(self) -> int:
        return len(self.cursor.description or ())

    def _sample_types(self, labels: list[tuple[str, str | None]]) -> list[str | None]:
        """Storage class of the first non-NULL value of each unlabelled column.

        Rows are read ahead until every column has a sample or the result
        ends; the rows read are replayed by `fetch_next_row`. A column that
        is NULL throughout is typed `'NULL'`.
        """
        types = [declared for _, declared in labels]
        missing = {i for i, t in enumerate(types) if t is None}
        seen_row = False
        while missing:
            row = self.cursor.fetchone()
            if row is None:
                break
            seen_row = True
            self._pending.append(row)
            for i in list(missing):
                if row[i] is not None:
                    types[i] = storage_class(row[i])
                    missing.discard(i)
        if seen_row:
            for i in missing:
                types[i] = 'NULL'
        return types

    def fetch_fields(self) -> list[FieldMetadata]:
        labels = [split_label(desc[0]) for desc in self.cursor.description or ()]
        types = self._sample_types(labels)
        return [FieldMetadata(name.encode('utf-8'), type_code)
                for (name, _), type_code in zip(labels, types)]

    def fetch_next_row(self) -> list[RawCell] | None:
        row = self._pending.popleft() if self._pending else self.cursor.fetchone()
        if row is None:
            return None
        return [to_cell(v) for v in row]

    def release(self) -> None:
        self._pending.clear()
        self.cursor.close()


class SQLiteHandle:
    """ConnectionHandle over an open sqlite3 connection.

    One command runs per `send_command`; multiple statements in one command
    are rejected by sqlite3 itself.
    """

    dialect = 'sqlite'

    def __init__(self, connection: sqlite3.Connection) -> None:
        self.connection = connection
        self._cursor: sqlite3.Cursor | None = None
        self._error = ''

    def _discard(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None

    def send_command(self, command: str) -> int:
        self._discard()
        cursor = self.connection.cursor()
        try:
            cursor.execute(command)
        except sqlite3.Error as exc:
            cursor.close()
            self._error = str(exc)
            logger.debug(f'SQLite rejected command: {exc}')
            return 1
        self._cursor = cursor
        self._error = ''
        return 0

    def last_error_message(self) -> str:
        return self._error

    def affected_rows(self) -> int:
        if self._cursor is None or self._cursor.rowcount < 0:
            return UNKNOWN_AFFECTED_ROWS
        return self._cursor.rowcount

    def last_insert_id(self) -> int:
        if self._cursor is None:
            return 0
        return self._cursor.lastrowid or 0

    def field_count(self) -> int:
        if self._cursor is None or self._cursor.description is None:
            return 0
        return len(self._cursor.description)

    def begin_streaming_result(self) -> SQLiteResult | None:
        if self._cursor is None or self._cursor.description is None:
            return None
        cursor, self._cursor = self._cursor, None
        return SQLiteResult(cursor)
