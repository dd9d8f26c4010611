"""
Connection wrapper carrying default query options.

`Connection` pairs a connection handle with the options its queries run
with, and exposes the query operations as methods:

- query(template, params, target) - Rows decoded into `target` plus status
- select(template, params, target) - Decoded rows only
- execute(template, params) - Status of a command
- select_frame(template, params) - Rows loaded into a DataFrame

Per-call options (a `QueryOptions`, or keyword overrides such as
`time_zone=`) replace the connection defaults for that call only. The wrapper
never opens, closes or commits the underlying connection.
"""
import logging
import time
from typing import Any, TypeVar

import pandas as pd
from dbquery.query import execute, options_for, query, select, select_frame
from dbquery.handle import ConnectionHandle
from dbquery.options import QueryOptions
from dbquery.types import QueryStatus

T = TypeVar('T')

__all__ = ['Connection']

logger = logging.getLogger(__name__)


class Connection:
    """Wraps a connection handle to track calls and execution time
    """

    def __init__(self, handle: ConnectionHandle, options: QueryOptions | dict[str, Any] | None = None,
                 **kw: Any) -> None:
        if isinstance(options, QueryOptions):
            options = options.replace(**kw)
        else:
            options = QueryOptions.from_mapping({'dialect': handle.dialect, **(options or {})}, **kw)
        self.handle = handle
        self.options = options_for(handle, options)
        self.calls = 0
        self.time = 0.0

    def __repr__(self) -> str:
        return f'Connection(dialect={self.dialect!r}, calls={self.calls})'

    @property
    def dialect(self) -> str:
        return self.handle.dialect

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def _options(self, options: QueryOptions | None, overrides: dict[str, Any]) -> QueryOptions:
        return (options or self.options).replace(**overrides)

    def _timed(self, func, *args: Any) -> Any:
        start = time.time()
        try:
            return func(self.handle, *args)
        finally:
            self.addcall(time.time() - start)

    def query(self, template: str, params: Any = (), target: type[T] = dict,
              options: QueryOptions | None = None, **overrides: Any) -> tuple[list[T], QueryStatus]:
        """Format, execute and decode a command.
        """
        return self._timed(query, template, params, target,
                           self._options(options, overrides))

    def select(self, template: str, params: Any = (), target: type[T] = dict,
               options: QueryOptions | None = None, **overrides: Any) -> list[T]:
        """Execute a query and return its decoded rows.
        """
        return self._timed(select, template, params, target,
                           self._options(options, overrides))

    def execute(self, template: str, params: Any = (), options: QueryOptions | None = None,
                **overrides: Any) -> QueryStatus:
        """Execute a command and return its status.
        """
        return self._timed(execute, template, params, self._options(options, overrides))

    def select_frame(self, template: str, params: Any = (), options: QueryOptions | None = None,
                     data_loader=None, **overrides: Any) -> pd.DataFrame | Any:
        """Execute a query and load its rows with a data loader.
        """
        return self._timed(select_frame, template, params,
                           self._options(options, overrides), data_loader)
