"""
Base strategy interface for dialect-specific formatting and type mapping.

Each concrete strategy supplies the escaping grammar of one wire dialect
(string, identifier, boolean and binary literals) and describes which wire
type codes carry temporal values. Clients work with any dialect through this
consistent interface.
"""
import datetime
from abc import ABC, abstractmethod
from typing import Any

from dbquery.exceptions import FormatError

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DialectStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('mysql')
        class MySQLStrategy(DialectStrategy):
            ...
    """
    def decorator(cls: type['DialectStrategy']) -> type['DialectStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DialectStrategy(ABC):
    """Base class for dialect-specific literal rendering.
    """

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'mysql', 'sqlite')."""

    @abstractmethod
    def escape_string(self, value: str) -> str:
        """Render a quoted, escaped string literal.

        Args:
            value: Text to embed in a command

        Returns
            str: Literal safe to splice into the command text

        Raises
            FormatError: If the dialect cannot represent the text
        """

    @abstractmethod
    def render_bytes(self, value: bytes) -> str:
        """Render a binary literal."""

    @abstractmethod
    def get_type_map(self) -> dict:
        """Return mapping of wire type codes to Python types.

        Returns
            Dictionary mapping type codes to Python types. Codes missing from
            the map are treated as text.
        """

    @abstractmethod
    def is_temporal(self, type_code: Any) -> bool:
        """Whether a wire type code carries a date or time value."""

    def quote_identifier(self, identifier: str) -> str:
        """Quote a database identifier.

        Default implementation uses standard SQL double-quote escaping.
        Override in subclasses if the dialect requires different quoting.

        Args:
            identifier: Table or column name

        Returns
            str: Quoted identifier according to dialect-specific rules
        """
        return '"' + identifier.replace('"', '""') + '"'

    def render_bool(self, value: bool) -> str:
        """Render a boolean literal."""
        return '1' if value else '0'

    def render_datetime(self, value: datetime.datetime,
                        tzinfo: datetime.tzinfo | None) -> str:
        """Render a timestamp literal in the session time zone.

        Aware values are converted into `tzinfo` first, naive values are
        assumed to already be expressed in it.
        """
        if value.tzinfo is not None and tzinfo is not None:
            value = value.astimezone(tzinfo)
        value = value.replace(tzinfo=None)
        return self.escape_string(value.isoformat(sep=' ', timespec=_timespec(value)))

    def render_date(self, value: datetime.date) -> str:
        """Render a date literal."""
        return self.escape_string(value.isoformat())

    def render_time(self, value: datetime.time) -> str:
        """Render a time-of-day literal.

        Raises
            FormatError: If the value is aware, the dialect has no time
                with zone literal
        """
        if value.tzinfo is not None:
            raise FormatError(f'{self.dialect_name} cannot render a time with zone: {value!r}')
        return self.escape_string(value.isoformat(timespec=_timespec(value)))

    def render_timedelta(self, value: datetime.timedelta) -> str:
        """Render a duration as `'[-]HHH:MM:SS[.ffffff]'`.

        >>> from dbquery.strategy import get_strategy
        >>> get_strategy('mysql').render_timedelta(datetime.timedelta(hours=-1, seconds=-1.5))
        "'-01:00:01.500000'"
        >>> get_strategy('mysql').render_timedelta(datetime.timedelta(days=35))
        "'840:00:00'"
        """
        sign = '-' if value < datetime.timedelta(0) else ''
        value = abs(value)
        minutes, seconds = divmod(value.days * 86400 + value.seconds, 60)
        hours, minutes = divmod(minutes, 60)
        text = f'{sign}{hours:02d}:{minutes:02d}:{seconds:02d}'
        if value.microseconds:
            text += f'.{value.microseconds:06d}'
        return self.escape_string(text)

    def python_type(self, type_code: Any) -> type:
        """Resolve a wire type code to a Python type, defaulting to str."""
        return self.get_type_map().get(type_code, str)

    def _reject_nul(self, value: str) -> None:
        if '\x00' in value:
            raise FormatError(f'{self.dialect_name} string literals cannot contain NUL characters')


def _timespec(value: datetime.datetime | datetime.time) -> str:
    return 'microseconds' if value.microsecond else 'seconds'
