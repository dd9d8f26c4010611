import dataclasses
import datetime
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Self

from dateutil import tz
from dbquery.loaders import pandas_numpy_data_loader
from dbquery.strategy import get_available_dialects, is_supported_dialect

__all__ = [
    'QueryOptions',
    'resolve_time_zone',
]


def resolve_time_zone(value: datetime.tzinfo | str | None) -> datetime.tzinfo:
    """Resolve a time zone name or object.

    >>> resolve_time_zone('UTC') is tz.UTC
    True
    """
    if value is None:
        return tz.UTC
    if isinstance(value, datetime.tzinfo):
        return value
    if value.upper() in {'UTC', 'Z'}:
        return tz.UTC
    zone = tz.gettz(value)
    if zone is None:
        raise ValueError(f'Unknown time zone: {value}')
    return zone


@dataclass
class QueryOptions:
    """Options

    supported dialects: `mysql`, `postgresql`, `sqlite`

    - time_zone: Zone used to render date/time literals and to attach to
      temporal values read back (default: UTC)
    - omit_details_on_error: Leave the command text out of error messages
      (default: False)
    - data_loader: Callable turning decoded rows into a frame
      (default: pandas_numpy_data_loader)
    """
    dialect: str = 'mysql'
    time_zone: datetime.tzinfo | str | None = 'UTC'
    omit_details_on_error: bool = False
    data_loader: Callable[..., Any] | None = None

    def __post_init__(self):
        if not is_supported_dialect(self.dialect):
            available = get_available_dialects()
            raise ValueError(f'dialect must be one of: {available}')
        self.time_zone = resolve_time_zone(self.time_zone)
        if self.data_loader is None:
            self.data_loader = pandas_numpy_data_loader

    @classmethod
    def from_mapping(cls, options: dict[str, Any] | None = None, **kw: Any) -> Self:
        """Build options from a dict, ignoring unknown keys."""
        names = {f.name for f in dataclasses.fields(cls)}
        merged = {**(options or {}), **kw}
        return cls(**{k: v for k, v in merged.items() if k in names})

    def replace(self, **overrides: Any) -> Self:
        """Return a copy with some options overridden."""
        if not overrides:
            return self
        return dataclasses.replace(self, **overrides)
