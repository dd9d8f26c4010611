"""
Query formatting, execution and row decoding over open database connections.

All query operations can be called either as:
- Module functions: dbquery.select(handle, template, params)
- Connection methods: Connection(handle).select(template, params)
"""
__version__ = '0.1.0'

from dbquery.connection import Connection
from dbquery.drivers import PostgresHandle, SQLiteHandle
from dbquery.exceptions import DatabaseError, DecodeError, FormatError
from dbquery.exceptions import QueryError, QueryExecutionError
from dbquery.exceptions import ResultFetchError, ResultFieldFetchError
from dbquery.exceptions import ResultNoFieldError, ResultParseError
from dbquery.exceptions import ResultRowFetchError
from dbquery.handle import ConnectionHandle, FieldMetadata, RawCell, ResultHandle
from dbquery.loaders import iterdict_data_loader, pandas_numpy_data_loader
from dbquery.loaders import pandas_pyarrow_data_loader
from dbquery.options import QueryOptions
from dbquery.query import execute, query, select, select_frame
from dbquery.row import Decodable, EmptyRow, RowDecoder, column, decode_row
from dbquery.sql import QueryParameter, format_query, identifier, literal
from dbquery.sql import quote_identifier
from dbquery.types import NULL, UNKNOWN_AFFECTED_ROWS, Field, FieldValue, Null
from dbquery.types import QueryStatus, Raw, RowResult, Temporal

__all__ = [
    'Connection',
    'ConnectionHandle',
    'DatabaseError',
    'Decodable',
    'DecodeError',
    'EmptyRow',
    'Field',
    'FieldMetadata',
    'FieldValue',
    'FormatError',
    'NULL',
    'Null',
    'PostgresHandle',
    'QueryError',
    'QueryExecutionError',
    'QueryOptions',
    'QueryParameter',
    'QueryStatus',
    'Raw',
    'RawCell',
    'ResultFetchError',
    'ResultFieldFetchError',
    'ResultHandle',
    'ResultNoFieldError',
    'ResultParseError',
    'ResultRowFetchError',
    'RowDecoder',
    'RowResult',
    'SQLiteHandle',
    'Temporal',
    'UNKNOWN_AFFECTED_ROWS',
    'column',
    'decode_row',
    'execute',
    'format_query',
    'identifier',
    'iterdict_data_loader',
    'literal',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    'query',
    'quote_identifier',
    'select',
    'select_frame',
]
