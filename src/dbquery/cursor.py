"""
Raw result fetching over a connection handle.

Sends one formatted command, reads the status counters, and streams the
result set into RowResult objects. Result-set resources are released on
every exit path.
"""
import logging
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import tzinfo
from functools import wraps
from typing import NamedTuple

from dbquery.exceptions import DriverError, QueryExecutionError, ResultFetchError
from dbquery.exceptions import ResultFieldFetchError, ResultNoFieldError
from dbquery.exceptions import ResultParseError, ResultRowFetchError, truncate
from dbquery.handle import ConnectionHandle, FieldMetadata, RawCell, ResultHandle
from dbquery.options import QueryOptions
from dbquery.strategy import DialectStrategy, get_strategy
from dbquery.types import NULL, Field, FieldValue, QueryStatus, Raw, RowResult
from dbquery.types import Temporal

logger = logging.getLogger(__name__)

# Transport failures a handle may raise instead of reporting a status
TransportError = (*DriverError, OSError)


def query_prefix(command: str, options: QueryOptions) -> str:
    """Command text allowed into error messages and logs."""
    if options.omit_details_on_error:
        return ''
    return truncate(command)


def dumpsql(func):
    """Decorator for logging commands, row counts and timings."""
    @wraps(func)
    def wrapper(handle: ConnectionHandle, command: str, options: QueryOptions | None = None):
        options = options or QueryOptions(dialect=handle.dialect)
        start = time.time()
        logger.debug(f'SQL:\n{query_prefix(command, options)}')
        try:
            result = func(handle, command, options)
            logger.debug(f'Query result: {len(result.rows)} rows, {result.status}')
            return result
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{query_prefix(command, options)}')
            raise
        finally:
            elapsed = time.time() - start
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class FetchResult(NamedTuple):
    """Fields, rows and status of one executed command."""
    fields: list[Field]
    rows: list[RowResult]
    status: QueryStatus


@contextmanager
def streaming_result(result: ResultHandle) -> Iterator[ResultHandle]:
    """Release a streaming result however the block exits."""
    try:
        yield result
    finally:
        result.release()


@dumpsql
def fetch_result(handle: ConnectionHandle, command: str,
                 options: QueryOptions | None = None) -> FetchResult:
    """Execute a formatted command and fetch its complete result.

    Args:
        handle: Connection handle owned by the caller for this call
        command: Final command text
        options: Time zone attached to temporal values and error detail
            suppression

    Returns
        Field descriptors and rows (both empty for statements without a
        result set) and the status

    Raises
        QueryExecutionError: The command was rejected
        ResultFetchError: A result set exists but could not be acquired
        ResultNoFieldError: The result set has no fields
        ResultFieldFetchError: Field metadata is missing or not valid text
        ResultRowFetchError: The transport failed while streaming rows
        ResultParseError: A row does not match the field list
    """
    prefix = query_prefix(command, options)
    strategy = get_strategy(handle.dialect)

    try:
        rc = handle.send_command(command)
    except TransportError as exc:
        raise QueryExecutionError(str(exc), prefix) from exc
    if rc != 0:
        raise QueryExecutionError(handle.last_error_message(), prefix)

    status = QueryStatus.from_counters(handle.affected_rows(), handle.last_insert_id())

    try:
        result = handle.begin_streaming_result()
    except TransportError as exc:
        raise ResultFetchError(str(exc), prefix) from exc

    if result is None:
        if handle.field_count() == 0:
            # statement without a result set
            return FetchResult([], [], status)
        raise ResultFetchError(handle.last_error_message(), prefix)

    with streaming_result(result):
        field_count = result.field_count()
        if field_count <= 0:
            raise ResultNoFieldError('result set has no fields', prefix)

        fields = fetch_fields(result, field_count, strategy, prefix)
        rows = list(iter_rows(result, fields, options.time_zone, prefix))

    return FetchResult(fields, rows, status)


def execute(handle: ConnectionHandle, command: str,
            options: QueryOptions | None = None) -> tuple[list[RowResult], QueryStatus]:
    """Execute a formatted command; return its rows and status."""
    result = fetch_result(handle, command, options)
    return result.rows, result.status


def _field_name(meta: FieldMetadata) -> str | None:
    name = meta.name
    if isinstance(name, str):
        return name
    if name is None:
        return None
    try:
        return bytes(name).decode('utf-8')
    except UnicodeDecodeError:
        return None


def fetch_fields(result: ResultHandle, field_count: int,
                 strategy: DialectStrategy, prefix: str = '') -> list[Field]:
    """Read all field descriptors, or fail without returning a partial list."""
    try:
        metadata = result.fetch_fields()
    except TransportError as exc:
        raise ResultFieldFetchError(str(exc), prefix) from exc

    if metadata is None or len(metadata) < field_count:
        raise ResultFieldFetchError('field metadata unavailable', prefix)

    fields = []
    for i in range(field_count):
        meta = metadata[i]
        name = _field_name(meta)
        if name is None:
            raise ResultFieldFetchError(f'field {i} has no valid name', prefix)
        fields.append(Field(name=name, type_code=meta.type_code,
                            is_temporal=strategy.is_temporal(meta.type_code)))
    return fields


def field_value(field: Field, cell: RawCell, tz: tzinfo | None) -> FieldValue:
    """Convert one raw cell, copying its bytes out of the transport buffer."""
    if cell.is_null or cell.data is None:
        return NULL
    raw = Raw.copy_from(cell.data, cell.length)
    if field.is_temporal:
        return Temporal(raw.text(), tz)
    return raw


def iter_rows(result: ResultHandle, fields: Sequence[Field], tz: tzinfo | None,
              prefix: str = '') -> Iterator[RowResult]:
    """Stream rows until the handle reports the end of the result."""
    while True:
        try:
            row = result.fetch_next_row()
        except TransportError as exc:
            raise ResultRowFetchError(str(exc), prefix) from exc
        if row is None:
            break

        if len(row) != len(fields):
            raise ResultParseError('invalid fetched column count',
                                   result=f'{len(row)} values for {len(fields)} fields',
                                   query=prefix)
        values = [field_value(field, cell, tz) for field, cell in zip(fields, row)]
        yield RowResult(fields, values)
