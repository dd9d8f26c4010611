"""
Query operations over a connection handle.

Every operation runs the same pipeline:

    Template + Params -> format_query -> fetch_result -> decode_rows
                          (dbquery.sql)   (dbquery.cursor) (dbquery.row)

Errors from any stage propagate unchanged; there is no partial-success
return.
"""
import logging
from typing import Any, TypeVar

import pandas as pd
from dbquery.cursor import FetchResult, fetch_result
from dbquery.handle import ConnectionHandle
from dbquery.options import QueryOptions
from dbquery.row import EmptyRow, RowDecoder, decode_rows
from dbquery.sql import format_query
from dbquery.strategy import get_strategy
from dbquery.types import QueryStatus

T = TypeVar('T')

logger = logging.getLogger(__name__)

__all__ = [
    'execute',
    'options_for',
    'query',
    'select',
    'select_frame',
]


def options_for(handle: ConnectionHandle, options: QueryOptions | None = None,
                **overrides: Any) -> QueryOptions:
    """Resolve the options of one call against its handle.

    Args:
        handle: Connection handle the call runs on
        options: Base options (default: defaults for the handle's dialect)
        overrides: Per-call overrides such as `time_zone=`

    Raises
        ValueError: The options target another dialect than the handle
    """
    if options is None:
        options = QueryOptions(dialect=handle.dialect)
    options = options.replace(**overrides)
    if options.dialect != handle.dialect:
        raise ValueError(f'Options dialect {options.dialect} does not match '
                         f'connection dialect {handle.dialect}')
    return options


def _run(handle: ConnectionHandle, template: str, params: Any,
         options: QueryOptions) -> FetchResult:
    command = format_query(template, params, options)
    return fetch_result(handle, command, options)


def query(handle: ConnectionHandle, template: str, params: Any = (),
          target: type[T] = dict, options: QueryOptions | None = None,
          **overrides: Any) -> tuple[list[T], QueryStatus]:
    """Format, execute and decode a command.

    >>> import sqlite3
    >>> from dbquery.drivers import SQLiteHandle
    >>> handle = SQLiteHandle(sqlite3.connect(':memory:'))
    >>> query(handle, 'SELECT ? AS a', [1])
    ([{'a': 1}], QueryStatus(affected_rows=None, inserted_id=0))
    """
    options = options_for(handle, options, **overrides)
    result = _run(handle, template, params, options)
    rows = decode_rows(target, result.rows, get_strategy(handle.dialect))
    return rows, result.status


def select(handle: ConnectionHandle, template: str, params: Any = (),
           target: type[T] = dict, options: QueryOptions | None = None,
           **overrides: Any) -> list[T]:
    """Like `query`, discarding the status."""
    rows, _ = query(handle, template, params, target, options, **overrides)
    return rows


def execute(handle: ConnectionHandle, template: str, params: Any = (),
            options: QueryOptions | None = None, **overrides: Any) -> QueryStatus:
    """Run a command whose rows, if any, are not wanted."""
    _, status = query(handle, template, params, EmptyRow, options, **overrides)
    return status


def select_frame(handle: ConnectionHandle, template: str, params: Any = (),
                 options: QueryOptions | None = None, data_loader=None,
                 **overrides: Any) -> pd.DataFrame | Any:
    """Run a query and hand its rows to a data loader.

    Args:
        data_loader: Loader called as `data_loader(rows, fields)`
            (default: `options.data_loader`)

    Returns
        Whatever the loader builds, a DataFrame for the pandas loaders
    """
    options = options_for(handle, options, **overrides)
    result = _run(handle, template, params, options)
    strategy = get_strategy(handle.dialect)
    data = [RowDecoder(row, strategy).to_dict() for row in result.rows]
    loader = data_loader or options.data_loader
    logger.debug(f'Loading {len(data)} rows with {getattr(loader, "__name__", loader)}')
    return loader(data, result.fields)
