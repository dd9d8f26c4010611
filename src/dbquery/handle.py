"""
Connection handle protocol consumed by the result fetcher.

A handle wraps an already-open driver connection. The fetcher never opens,
closes, commits or retries connections; it only sends one command and reads
its result through the methods below.
"""
from collections.abc import Sequence
from typing import Any, NamedTuple, Protocol, runtime_checkable

from dbquery.types import UNKNOWN_AFFECTED_ROWS

__all__ = [
    'ConnectionHandle',
    'FieldMetadata',
    'RawCell',
    'ResultHandle',
    'UNKNOWN_AFFECTED_ROWS',
]


class FieldMetadata(NamedTuple):
    """Name and wire type code of one result column.

    `name` is whatever the transport reports, usually bytes; it may be None
    when the transport lost it.
    """
    name: bytes | str | None
    type_code: Any


class RawCell(NamedTuple):
    """One cell of a fetched row.

    `data` is a buffer valid only until the next fetch; `length` is its
    byte length.
    """
    data: Any
    length: int
    is_null: bool = False


NULL_CELL = RawCell(None, 0, True)


@runtime_checkable
class ResultHandle(Protocol):
    """Streaming result of one executed command."""

    def field_count(self) -> int:
        ...

    def fetch_fields(self) -> Sequence[FieldMetadata] | None:
        ...

    def fetch_next_row(self) -> Sequence[RawCell] | None:
        """Return the next row, or None at end of rows."""

    def release(self) -> None:
        ...


@runtime_checkable
class ConnectionHandle(Protocol):
    """Connection capable of executing one raw command at a time."""

    dialect: str

    def send_command(self, command: str) -> int:
        """Send a command; 0 means success."""

    def last_error_message(self) -> str:
        ...

    def affected_rows(self) -> int:
        """Rows affected by the last command, or UNKNOWN_AFFECTED_ROWS."""

    def last_insert_id(self) -> int:
        ...

    def field_count(self) -> int:
        """Columns produced by the last command."""

    def begin_streaming_result(self) -> ResultHandle | None:
        """Start reading the result set, or None when there is none."""
