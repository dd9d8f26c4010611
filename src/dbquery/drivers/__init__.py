"""
Connection handles over already-open driver connections.
"""
from dbquery.drivers.postgres import PostgresHandle
from dbquery.drivers.sqlite import SQLiteHandle

__all__ = [
    'PostgresHandle',
    'SQLiteHandle',
]
