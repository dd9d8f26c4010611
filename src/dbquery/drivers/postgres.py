"""
Connection handle over an open `psycopg.Connection`.

Commands go straight through libpq (`psycopg.pq`) in single-row mode, so rows
are streamed one at a time and type codes are the server's type OIDs. The
handle bypasses psycopg's own transaction management: open the connection
with `autocommit=True` or manage transactions with explicit commands.
"""
import logging

import psycopg
from dbquery.handle import NULL_CELL, FieldMetadata, RawCell
from dbquery.types import UNKNOWN_AFFECTED_ROWS
from psycopg import pq
from psycopg.postgres import types as pg_types
from psycopg.pq.abc import PGconn, PGresult

logger = logging.getLogger(__name__)

ExecStatus = pq.ExecStatus

_ROW_STATUSES = {ExecStatus.SINGLE_TUPLE, ExecStatus.TUPLES_OK}
_ERROR_STATUSES = {ExecStatus.FATAL_ERROR, ExecStatus.BAD_RESPONSE}

BYTEA_OID = pg_types.get('bytea').oid


def _decode(message: bytes | None, encoding: str) -> str:
    return (message or b'').decode(encoding, 'replace').strip()


class PostgresResult:
    """Streaming result read one PGresult at a time."""

    def __init__(self, pgconn: PGconn, first: PGresult, encoding: str) -> None:
        self.pgconn = pgconn
        self.encoding = encoding
        self._current: PGresult | None = first
        self._row = 0
        self._nfields = first.nfields
        self._bytea = frozenset(i for i in range(first.nfields) if first.ftype(i) == BYTEA_OID)

    def field_count(self) -> int:
        return self._nfields

    def fetch_fields(self) -> list[FieldMetadata]:
        res = self._current
        if res is None:
            return []
        return [FieldMetadata(res.fname(i), res.ftype(i)) for i in range(res.nfields)]

    def fetch_next_row(self) -> list[RawCell] | None:
        while self._current is not None:
            res = self._current
            if res.status in _ERROR_STATUSES:
                message = _decode(res.error_message, self.encoding)
                self.release()
                raise psycopg.OperationalError(message)
            if self._row < res.ntuples:
                row = self._row
                self._row += 1
                return [self._cell(res, row, col) for col in range(res.nfields)]
            self._current = self.pgconn.get_result()
            self._row = 0
        return None

    def _cell(self, res: PGresult, row: int, col: int) -> RawCell:
        data = res.get_value(row, col)
        if data is None:
            return NULL_CELL
        if col in self._bytea and data.startswith(b'\\x'):
            # text-format bytea arrives hex escaped
            data = bytes.fromhex(data[2:].decode('ascii'))
        return RawCell(data, len(data), False)

    def release(self) -> None:
        """Drain pending results so the connection accepts the next command."""
        self._current = None
        while self.pgconn.get_result() is not None:
            pass


class PostgresHandle:
    """ConnectionHandle over an open psycopg connection."""

    dialect = 'postgresql'

    def __init__(self, connection: psycopg.Connection) -> None:
        self.connection = connection
        self.pgconn = connection.pgconn
        self.encoding = connection.info.encoding
        self._result: PGresult | None = None
        self._error = ''

    def send_command(self, command: str) -> int:
        self._result = None
        try:
            self.pgconn.send_query(command.encode(self.encoding))
            self.pgconn.set_single_row_mode()
        except psycopg.Error as exc:
            self._error = str(exc)
            logger.debug(f'PostgreSQL rejected command: {exc}')
            return 1

        res = self.pgconn.get_result()
        if res is None:
            self._error = _decode(self.pgconn.error_message, self.encoding)
            return 1
        if res.status in _ERROR_STATUSES:
            self._error = _decode(res.error_message, self.encoding)
            self._drain()
            return 1

        self._result = res
        self._error = ''
        if res.status not in _ROW_STATUSES:
            self._drain()
        return 0

    def _drain(self) -> None:
        while self.pgconn.get_result() is not None:
            pass

    def last_error_message(self) -> str:
        return self._error

    def _returns_rows(self) -> bool:
        return self._result is not None and self._result.status in _ROW_STATUSES

    def affected_rows(self) -> int:
        if self._result is None or self._returns_rows():
            return UNKNOWN_AFFECTED_ROWS
        count = self._result.command_tuples
        return UNKNOWN_AFFECTED_ROWS if count is None else count

    def last_insert_id(self) -> int:
        if self._result is None:
            return 0
        return self._result.oid_value or 0

    def field_count(self) -> int:
        if not self._returns_rows():
            return 0
        return self._result.nfields

    def begin_streaming_result(self) -> PostgresResult | None:
        if not self._returns_rows():
            return None
        res, self._result = self._result, None
        return PostgresResult(self.pgconn, res, self.encoding)
