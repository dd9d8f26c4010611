"""
Query pipeline exception classes.
"""
import sqlite3

import psycopg

MAX_QUERY_SNIPPET = 1000
MAX_VALUE_SNIPPET = 200


def truncate(text: str | None, limit: int = MAX_QUERY_SNIPPET) -> str:
    """Return at most `limit` characters of `text`.

    >>> truncate('abcdef', 3)
    'abc'
    >>> truncate(None)
    ''
    """
    if not text:
        return ''
    return text[:limit]


class DatabaseError(Exception):
    """Base class for all dbquery errors.
    """


class FormatError(DatabaseError):
    """Template placeholders and parameters do not fit together.
    """


class QueryError(DatabaseError):
    """Error executing a command or fetching its result.

    `query` holds a bounded prefix of the command text, or an empty string
    when error details are suppressed.
    """

    def __init__(self, message: str = '', query: str = '') -> None:
        self.message = message
        self.query = truncate(query)
        super().__init__(self._render())

    def _render(self) -> str:
        if self.query:
            return f'{self.message} (query: {self.query})'
        return self.message


class QueryExecutionError(QueryError):
    """The server or driver rejected the command.
    """


class ResultFetchError(QueryError):
    """A result set was expected but could not be acquired.
    """


class ResultNoFieldError(QueryError):
    """A result set reported zero fields.
    """


class ResultFieldFetchError(QueryError):
    """Field metadata could not be read or decoded.
    """


class ResultRowFetchError(QueryError):
    """The transport failed while streaming rows.
    """


class ResultParseError(QueryError):
    """A fetched value is internally inconsistent.
    """

    def __init__(self, message: str = '', result: str = '', query: str = '') -> None:
        self.result = truncate(result, MAX_VALUE_SNIPPET)
        super().__init__(message, query)

    def _render(self) -> str:
        text = super()._render()
        if self.result:
            return f'{text} (result: {self.result!r})'
        return text


class DecodeError(DatabaseError):
    """A row value could not be coerced into a record member.
    """

    def __init__(self, message: str, column: str | None = None, value: object = None) -> None:
        self.column = column
        self.value = value
        text = message
        if column is not None:
            text = f'{text} (column: {column!r}'
            if value is not None:
                text = f'{text}, value: {truncate(str(value), MAX_VALUE_SNIPPET)!r}'
            text = f'{text})'
        super().__init__(text)


DriverError = (
    psycopg.Error,
    sqlite3.Error,
    )
