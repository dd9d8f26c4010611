"""
Query template formatting with single-pass architecture.

Templates carry two kinds of positional placeholder:

- `?`  value placeholder, replaced with an escaped literal
- `??` identifier placeholder, replaced with a quoted identifier

Formatting runs through a single-pass pipeline:

    Template + Params -> Tokenize -> Check Count -> Render Literals -> Join
                          (once)                    (per placeholder)

Placeholders inside quoted string literals and quoted identifiers are left
untouched; which backslashes escape a quote depends on the dialect. Literal
rendering is delegated to the dialect strategy.

Main entry points:
- `format_query(template, params, options)` - Produce the final command
- `literal(value, options)` - Render one value literal
- `quote_identifier(name, dialect)` - Quote table/column names
- `has_placeholders(template)` / `count_placeholders(template, dialect)`
"""
import datetime
import decimal
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, is_dataclass
from enum import Enum, auto
from typing import Any, Protocol, runtime_checkable

from dbquery.adapters import TypeConverter
from dbquery.exceptions import FormatError
from dbquery.options import QueryOptions
from dbquery.row import record_items
from dbquery.strategy import DialectStrategy, get_strategy

# =============================================================================
# Data Structures
# =============================================================================


class TokenType(Enum):
    """Token types identified during template parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENTIFIER = auto()
    VALUE_PH = auto()           # ?
    IDENTIFIER_PH = auto()      # ??


@dataclass(slots=True)
class Token:
    """Token from template parsing."""
    type: TokenType
    text: str
    start: int
    end: int


@runtime_checkable
class QueryParameter(Protocol):
    """A value that knows how to present itself as a query parameter.

    `query_parameter` returns a value the formatter can render (a scalar,
    a date/time, a sequence or a set record).
    """

    def query_parameter(self, options: QueryOptions) -> Any:
        ...


# =============================================================================
# Regex Patterns
# =============================================================================

# Master tokenization patterns - capture all token types in one scan.
# MySQL string literals accept backslash escapes and doubled quotes;
# standard SQL literals only doubled quotes (PostgreSQL E'..' strings aside).
_MYSQL_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^'\\]|\\.|'')*'|"(?:[^"\\]|\\.|"")*")
    |(?P<backtick>`(?:[^`]|``)*`)
    |(?P<ident_ph>\?\?)
    |(?P<value_ph>\?)
""", re.VERBOSE | re.DOTALL)

_STANDARD_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*')
    |(?P<backtick>"(?:[^"]|"")*"|`(?:[^`]|``)*`)
    |(?P<ident_ph>\?\?)
    |(?P<value_ph>\?)
""", re.VERBOSE | re.DOTALL)

_POSTGRES_TOKENIZE = re.compile(r"""
    (?P<string>(?<!\w)[Ee]'(?:[^'\\]|\\.|'')*'|'(?:[^']|'')*')
    |(?P<backtick>"(?:[^"]|"")*")
    |(?P<ident_ph>\?\?)
    |(?P<value_ph>\?)
""", re.VERBOSE | re.DOTALL)

_TOKENIZERS = {
    'mysql': _MYSQL_TOKENIZE,
    'postgresql': _POSTGRES_TOKENIZE,
    'sqlite': _STANDARD_TOKENIZE,
}

# Quick placeholder check
_HAS_PLACEHOLDER = re.compile(r'\?')

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


# =============================================================================
# Core Functions
# =============================================================================

def tokenize_template(template: str, dialect: str = 'mysql') -> list[Token]:
    """Parse a template into tokens in a single pass.

    Quoting follows the dialect: only MySQL (and PostgreSQL E'..' strings)
    treat a backslash inside a string literal as an escape.

    Parameters
        template: Query template string
        dialect: Dialect whose quoting rules apply

    Returns
        List of tokens preserving all template text
    """
    tokens = []
    last_end = 0

    try:
        pattern = _TOKENIZERS[dialect]
    except KeyError:
        raise ValueError(f'Unsupported dialect: {dialect}') from None

    for match in pattern.finditer(template):
        start, end = match.span()

        # Capture SQL text between tokens
        if start > last_end:
            tokens.append(Token(
                type=TokenType.SQL_TEXT,
                text=template[last_end:start],
                start=last_end,
                end=start
            ))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        elif match.group('backtick'):
            ttype = TokenType.QUOTED_IDENTIFIER
        elif match.group('ident_ph'):
            ttype = TokenType.IDENTIFIER_PH
        else:
            ttype = TokenType.VALUE_PH

        tokens.append(Token(type=ttype, text=match.group(0), start=start, end=end))
        last_end = end

    # Capture trailing SQL text
    if last_end < len(template):
        tokens.append(Token(
            type=TokenType.SQL_TEXT,
            text=template[last_end:],
            start=last_end,
            end=len(template)
        ))

    return tokens


def _is_placeholder(token: Token) -> bool:
    return token.type in {TokenType.VALUE_PH, TokenType.IDENTIFIER_PH}


def count_placeholders(template: str, dialect: str = 'mysql') -> int:
    """Count value and identifier placeholders outside quoted text.

    >>> count_placeholders("SELECT * FROM ?? WHERE a = ? AND b = '?'")
    2
    """
    if not has_placeholders(template):
        return 0
    return sum(1 for t in tokenize_template(template, dialect) if _is_placeholder(t))


def has_placeholders(template: str | None) -> bool:
    """Check if a template may contain placeholders.

    Parameters
        template: Query template string

    Returns
        True if the template contains a `?`
    """
    if not template:
        return False
    return bool(_HAS_PLACEHOLDER.search(template))


def _normalize_params(params: Any) -> tuple:
    """Turn the caller's parameters into a positional tuple.

    A lone value that is not a list or tuple counts as one parameter.
    """
    if params is None:
        return ()
    if isinstance(params, list | tuple):
        return tuple(params)
    return (params,)


# =============================================================================
# Literal Rendering
# =============================================================================

def quote_identifier(identifier: str, dialect: str = 'mysql') -> str:
    """Safely quote database identifiers.

    Dotted names are quoted per part.

    >>> quote_identifier('my_table')
    '`my_table`'
    >>> quote_identifier('db.my_table', 'postgresql')
    '"db"."my_table"'

    Raises
        ValueError: If dialect is unsupported
    """
    strategy = get_strategy(dialect)
    return '.'.join(strategy.quote_identifier(part) for part in identifier.split('.'))


def escape_string(value: str, dialect: str = 'mysql') -> str:
    """Render a quoted string literal for a dialect.

    >>> escape_string("it's")
    "'it\\\\'s'"
    >>> escape_string("it's", 'sqlite')
    "'it''s'"
    """
    return get_strategy(dialect).escape_string(value)


def _resolve_parameter(value: Any, options: QueryOptions) -> Any:
    while isinstance(value, QueryParameter) and not isinstance(value, type):
        value = value.query_parameter(options)
    return TypeConverter.convert_value(value)


def _render_number(value: int | float | decimal.Decimal) -> str:
    if isinstance(value, float):
        if not math.isfinite(value):
            raise FormatError(f'Cannot render non-finite float: {value!r}')
        return repr(value)
    if isinstance(value, decimal.Decimal):
        if not value.is_finite():
            raise FormatError(f'Cannot render non-finite decimal: {value!r}')
        return str(value)
    return str(int(value))


def _render_set(value: Any, strategy: DialectStrategy, options: QueryOptions) -> str:
    """Render a set record as `column = literal, ...`."""
    if isinstance(value, Mapping):
        items = list(value.items())
    else:
        items = record_items(value)
    if not items:
        raise FormatError('Set parameter has no columns')
    parts = []
    for name, item in items:
        if not isinstance(name, str):
            raise FormatError(f'Set parameter column names must be strings, got {name!r}')
        column = quote_identifier(name, strategy.dialect_name)
        parts.append(f'{column} = {_render_value(item, strategy, options, nested=True)}')
    return ', '.join(parts)


def _render_sequence(values: Any, strategy: DialectStrategy, options: QueryOptions,
                     nested: bool) -> str:
    """Render a flat list as `a, b` and nested lists as `(a, b), (c, d)`."""
    values = list(values)
    if not values:
        return 'NULL'
    rendered = ', '.join(_render_value(v, strategy, options, nested=True) for v in values)
    return f'({rendered})' if nested else rendered


def _render_value(value: Any, strategy: DialectStrategy, options: QueryOptions,
                  nested: bool = False) -> str:
    value = _resolve_parameter(value, options)

    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return strategy.render_bool(value)
    if isinstance(value, Enum):
        return _render_value(value.value, strategy, options, nested)
    if isinstance(value, int | float | decimal.Decimal):
        return _render_number(value)
    if isinstance(value, str):
        return strategy.escape_string(value)
    if isinstance(value, bytes | bytearray | memoryview):
        return strategy.render_bytes(bytes(value))
    if isinstance(value, datetime.datetime):
        return strategy.render_datetime(value, options.time_zone)
    if isinstance(value, datetime.date):
        return strategy.render_date(value)
    if isinstance(value, datetime.time):
        return strategy.render_time(value)
    if isinstance(value, datetime.timedelta):
        return strategy.render_timedelta(value)
    if isinstance(value, Mapping) or (is_dataclass(value) and not isinstance(value, type)):
        if nested:
            raise FormatError(f'Set parameter cannot be nested: {value!r}')
        return _render_set(value, strategy, options)
    if isinstance(value, _SEQUENCE_TYPES):
        return _render_sequence(value, strategy, options, nested)

    raise FormatError(f'Unsupported parameter type: {type(value).__name__}')


def literal(value: Any, options: QueryOptions | None = None) -> str:
    """Render the literal a value placeholder is replaced with.

    >>> literal(None)
    'NULL'
    >>> literal([1, 2, 3])
    '1, 2, 3'
    >>> literal({'a': 1, 'b': 'x'})
    "`a` = 1, `b` = 'x'"
    """
    options = options or QueryOptions()
    return _render_value(value, get_strategy(options.dialect), options)


def identifier(value: Any, options: QueryOptions | None = None) -> str:
    """Render the text an identifier placeholder is replaced with.

    >>> identifier(['a', 't.b'])
    '`a`, `t`.`b`'
    """
    options = options or QueryOptions()
    value = _resolve_parameter(value, options)
    if isinstance(value, str):
        return quote_identifier(value, options.dialect)
    if isinstance(value, _SEQUENCE_TYPES) and value and all(isinstance(v, str) for v in value):
        return ', '.join(quote_identifier(v, options.dialect) for v in value)
    raise FormatError(f'Identifier parameter must be a string or list of strings, got {value!r}')


# =============================================================================
# Main Entry Point
# =============================================================================

def format_query(template: str, params: Any = (), options: QueryOptions | None = None) -> str:
    """Substitute parameters into a template.

    Parameters
        template: Query template with `?` and `??` placeholders
        params: Ordered parameters, one per placeholder
        options: Dialect and time zone used for rendering

    Returns
        Final command text

    Raises
        FormatError: On placeholder/parameter count mismatch or when a
            parameter cannot be rendered at its position

    >>> format_query('SELECT * FROM ?? WHERE id = ?', ['users', 42])
    'SELECT * FROM `users` WHERE id = 42'
    """
    options = options or QueryOptions()
    params = _normalize_params(params)

    if not has_placeholders(template):
        if params:
            raise FormatError(
                f'Parameter count mismatch: template needs 0 but {len(params)} were provided')
        return template

    tokens = tokenize_template(template, options.dialect)
    placeholder_count = sum(1 for t in tokens if _is_placeholder(t))
    if placeholder_count != len(params):
        raise FormatError(
            f'Parameter count mismatch: template needs {placeholder_count} '
            f'but {len(params)} were provided')

    strategy = get_strategy(options.dialect)
    result_parts = []
    param_iter = iter(params)
    for token in tokens:
        if token.type == TokenType.VALUE_PH:
            result_parts.append(_render_value(next(param_iter), strategy, options))
        elif token.type == TokenType.IDENTIFIER_PH:
            result_parts.append(identifier(next(param_iter), options))
        else:
            result_parts.append(token.text)

    return ''.join(result_parts)
