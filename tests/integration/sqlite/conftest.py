"""
Fixtures for SQLite-specific integration tests.
"""
import pathlib
import sqlite3

import dbquery as db
import pytest


@pytest.fixture
def sqlite_file_conn(tmp_path: pathlib.Path):
    """File-based SQLite handle for testing persistence across connections."""
    db_file = tmp_path / 'test_sqlite.db'
    conn = sqlite3.connect(db_file, isolation_level=None)
    handle = db.SQLiteHandle(conn)

    db.execute(handle, 'CREATE TABLE test_table (id INTEGER PRIMARY KEY, name TEXT NOT NULL)')
    db.execute(handle, 'INSERT INTO test_table (name) VALUES ?', [[['Alice'], ['Bob']]])

    yield db_file, handle

    conn.close()
