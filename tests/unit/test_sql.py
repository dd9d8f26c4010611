"""Tests for query template formatting.

These tests verify placeholder substitution, literal rendering per dialect
and the parameter count check of format_query.
"""
import datetime
import decimal
import enum
from dataclasses import dataclass

import numpy as np
import pandas as pd
import pytest
from dbquery.exceptions import FormatError
from dbquery.options import QueryOptions
from dbquery.row import column, convert_value
from dbquery.sql import TokenType, count_placeholders, escape_string
from dbquery.sql import format_query, has_placeholders, identifier, literal
from dbquery.sql import quote_identifier, tokenize_template
from dbquery.types import Raw
from dateutil import tz

MYSQL = QueryOptions(dialect='mysql')
POSTGRES = QueryOptions(dialect='postgresql')
SQLITE = QueryOptions(dialect='sqlite')


# =============================================================================
# Tokenizer
# =============================================================================

class TestTokenizer:
    """Tests for the single-pass template tokenizer."""

    def test_placeholder_tokens(self):
        tokens = tokenize_template('SELECT * FROM ?? WHERE id = ?')
        types = [t.type for t in tokens]
        assert types == [TokenType.SQL_TEXT, TokenType.IDENTIFIER_PH,
                         TokenType.SQL_TEXT, TokenType.VALUE_PH]

    def test_text_is_preserved(self):
        template = "SELECT 'a?b', `c?` FROM t WHERE x = ?"
        assert ''.join(t.text for t in tokenize_template(template)) == template

    @pytest.mark.parametrize(('template', 'expected'), [
        ('SELECT 1', 0),
        ('SELECT ?', 1),
        ('SELECT ?? FROM ??', 2),
        ("SELECT '?' FROM t WHERE a = ?", 1),
        ("SELECT 'it''s ?' WHERE a = ?", 1),
        ("SELECT 'it\\'s ?' WHERE a = ?", 1),
        ('SELECT "?" FROM `?`', 0),
    ], ids=['none', 'value', 'identifiers', 'single_quoted', 'doubled_quote',
            'backslash_quote', 'double_quoted_and_backtick'])
    def test_count_placeholders(self, template, expected):
        assert count_placeholders(template) == expected

    @pytest.mark.parametrize(('template', 'dialect', 'expected'), [
        (r"SELECT * FROM t WHERE p = 'C:\' OR a = ? OR b = 'x'", 'sqlite', 1),
        (r"SELECT * FROM t WHERE p = 'C:\' OR a = ? OR b = 'x'", 'postgresql', 1),
        (r"SELECT * FROM t WHERE p = 'C:\' OR a = ? OR b = 'x'", 'mysql', 0),
        (r"SELECT 'a\' || '?'", 'sqlite', 0),
        (r"SELECT E'it\'s ?' WHERE a = ?", 'postgresql', 1),
        ('SELECT "?" FROM t WHERE a = ?', 'postgresql', 1),
    ], ids=['sqlite_backslash', 'postgres_backslash', 'mysql_backslash',
            'sqlite_quoted_placeholder', 'postgres_escape_string', 'postgres_identifier'])
    def test_backslash_rules_follow_dialect(self, template, dialect, expected):
        assert count_placeholders(template, dialect) == expected
        tokens = tokenize_template(template, dialect)
        assert ''.join(t.text for t in tokens) == template

    def test_unknown_dialect_tokenizer(self):
        with pytest.raises(ValueError):
            tokenize_template('SELECT ?', 'oracle')

    def test_has_placeholders(self):
        assert has_placeholders('SELECT ?')
        assert not has_placeholders('SELECT 1')
        assert not has_placeholders('')
        assert not has_placeholders(None)


# =============================================================================
# Scalar literals
# =============================================================================

class TestScalarLiterals:
    """Tests for rendering single values."""

    def test_null(self):
        assert literal(None) == 'NULL'

    @pytest.mark.parametrize(('options', 'true', 'false'), [
        (MYSQL, '1', '0'),
        (SQLITE, '1', '0'),
        (POSTGRES, 'TRUE', 'FALSE'),
    ], ids=['mysql', 'sqlite', 'postgresql'])
    def test_bool(self, options, true, false):
        assert literal(True, options) == true
        assert literal(False, options) == false

    @pytest.mark.parametrize(('value', 'expected'), [
        (42, '42'),
        (-7, '-7'),
        (1.5, '1.5'),
        (1.549, '1.549'),
        (decimal.Decimal('1.549'), '1.549'),
        (decimal.Decimal('1.23E+100'), '1.23E+100'),
    ])
    def test_numbers(self, value, expected):
        assert literal(value) == expected

    @pytest.mark.parametrize('value', [
        float('nan'), float('inf'), decimal.Decimal('NaN'), decimal.Decimal('-Infinity'),
    ])
    def test_non_finite_numbers_rejected(self, value):
        with pytest.raises(FormatError):
            literal(value)

    def test_mysql_string_escaping(self):
        assert literal("it's") == "'it\\'s'"
        assert literal('a\nb\\c"d') == "'a\\nb\\\\c\\\"d'"
        assert literal('nul\x00here') == "'nul\\0here'"

    @pytest.mark.parametrize('options', [POSTGRES, SQLITE], ids=['postgresql', 'sqlite'])
    def test_standard_string_escaping(self, options):
        assert literal("it's", options) == "'it''s'"
        assert literal('back\\slash', options) == "'back\\slash'"

    @pytest.mark.parametrize('options', [POSTGRES, SQLITE], ids=['postgresql', 'sqlite'])
    def test_nul_rejected_without_backslash_escapes(self, options):
        with pytest.raises(FormatError):
            literal('nul\x00here', options)

    def test_bytes(self):
        assert literal(b'\x01\xff') == "X'01ff'"
        assert literal(bytearray(b'\x00'), SQLITE) == "X'00'"
        assert literal(b'\x01\xff', POSTGRES) == "'\\x01ff'::bytea"

    def test_date_and_time(self, value_dict):
        assert literal(value_dict['date_value']) == "'2023-05-15'"
        assert literal(value_dict['time_value']) == "'14:30:45'"
        assert literal(datetime.time(1, 2, 3, 4)) == "'01:02:03.000004'"

    def test_naive_datetime_kept(self, value_dict):
        assert literal(value_dict['datetime_value']) == "'2023-05-15 14:30:45'"

    def test_datetime_microseconds(self):
        value = datetime.datetime(2023, 1, 1, 0, 0, 0, 5)
        assert literal(value) == "'2023-01-01 00:00:00.000005'"

    def test_aware_datetime_converted_to_session_zone(self):
        value = datetime.datetime(2023, 5, 15, 14, 30, 45, tzinfo=datetime.timezone.utc)
        options = QueryOptions(time_zone='America/New_York')
        assert literal(value, options) == "'2023-05-15 10:30:45'"
        assert literal(value) == "'2023-05-15 14:30:45'"

    @pytest.mark.parametrize(('value', 'expected'), [
        (datetime.timedelta(hours=1), "'01:00:00'"),
        (datetime.timedelta(hours=838, minutes=59, seconds=59), "'838:59:59'"),
        (datetime.timedelta(hours=-1), "'-01:00:00'"),
        (datetime.timedelta(seconds=1, microseconds=5), "'00:00:01.000005'"),
        (pd.Timedelta(minutes=90), "'01:30:00'"),
    ])
    def test_timedelta(self, value, expected):
        assert literal(value) == expected

    @pytest.mark.parametrize('value', [
        datetime.timedelta(hours=838, minutes=59, seconds=59),
        datetime.timedelta(hours=-1, seconds=-30),
        datetime.timedelta(minutes=2, microseconds=250000),
    ])
    def test_timedelta_reads_back(self, value):
        text = literal(value).strip("'").encode('ascii')
        assert convert_value(Raw(text), datetime.timedelta) == value

    def test_aware_time_keeps_offset_for_postgres(self):
        value = datetime.time(14, 30, 45, tzinfo=datetime.timezone(datetime.timedelta(hours=2)))
        assert literal(value, POSTGRES) == "'14:30:45+02:00'"

    @pytest.mark.parametrize('options', [MYSQL, SQLITE], ids=['mysql', 'sqlite'])
    def test_aware_time_rejected_without_zone_literal(self, options):
        value = datetime.time(14, 30, tzinfo=datetime.timezone.utc)
        with pytest.raises(FormatError):
            literal(value, options)

    def test_aware_time_without_fixed_offset(self):
        value = datetime.time(14, 30, tzinfo=tz.gettz('America/New_York'))
        with pytest.raises(FormatError):
            literal(value, POSTGRES)

    def test_enum_renders_value(self):
        class Color(enum.Enum):
            RED = 'red'

        assert literal(Color.RED) == "'red'"

    def test_unsupported_type(self):
        with pytest.raises(FormatError, match='Unsupported parameter type'):
            literal(object())


# =============================================================================
# Collections, sets and custom parameters
# =============================================================================

class TestCompositeLiterals:
    """Tests for sequences, set records and QueryParameter values."""

    def test_flat_sequence(self):
        assert literal([1, 2, 3]) == '1, 2, 3'
        assert literal(('a', None)) == "'a', NULL"

    def test_nested_sequence(self):
        assert literal([[1, 'a'], [2, 'b']]) == "(1, 'a'), (2, 'b')"

    def test_empty_sequence(self):
        assert literal([]) == 'NULL'

    def test_mapping_set(self):
        assert literal({'a': 1, 'b': 'x'}) == "`a` = 1, `b` = 'x'"
        assert literal({'a': None}, POSTGRES) == '"a" = NULL'

    def test_dataclass_set_uses_column_names(self):
        @dataclass
        class Item:
            item_id: int = column('id')
            name: str = 'widget'

        assert literal(Item(7)) == "`id` = 7, `name` = 'widget'"

    def test_nested_set_rejected(self):
        with pytest.raises(FormatError, match='cannot be nested'):
            literal([{'a': 1}])

    def test_empty_set_rejected(self):
        with pytest.raises(FormatError):
            literal({})

    def test_query_parameter(self):
        class Money:
            def __init__(self, cents):
                self.cents = cents

            def query_parameter(self, options):
                return decimal.Decimal(self.cents) / 100

        assert literal(Money(1234)) == '12.34'
        assert literal([Money(1), Money(2)]) == '0.01, 0.02'

    def test_query_parameter_receives_options(self):
        seen = []

        class DialectSpy:
            def query_parameter(self, options):
                seen.append(options.dialect)
                return 1

        literal(DialectSpy(), POSTGRES)
        assert seen == ['postgresql']

    def test_numpy_and_pandas_values(self):
        assert literal(np.int64(5)) == '5'
        assert literal(np.float64('nan')) == 'NULL'
        assert literal(pd.NaT) == 'NULL'
        assert literal(pd.Timestamp('2023-05-15 14:30:45')) == "'2023-05-15 14:30:45'"
        assert literal(np.array([1, 2])) == '1, 2'


# =============================================================================
# Identifiers
# =============================================================================

class TestIdentifiers:
    """Tests for identifier quoting."""

    @pytest.mark.parametrize(('name', 'dialect', 'expected'), [
        ('my_table', 'mysql', '`my_table`'),
        ('db.my_table', 'mysql', '`db`.`my_table`'),
        ('we`ird', 'mysql', '`we``ird`'),
        ('my_table', 'postgresql', '"my_table"'),
        ('s.t', 'sqlite', '"s"."t"'),
        ('we"ird', 'postgresql', '"we""ird"'),
    ])
    def test_quote_identifier(self, name, dialect, expected):
        assert quote_identifier(name, dialect) == expected

    def test_identifier_list(self):
        assert identifier(['a', 't.b']) == '`a`, `t`.`b`'

    @pytest.mark.parametrize('value', [1, None, [], ['a', 2]])
    def test_invalid_identifier(self, value):
        with pytest.raises(FormatError):
            identifier(value)

    def test_unknown_dialect(self):
        with pytest.raises(ValueError):
            quote_identifier('t', 'oracle')

    def test_escape_string_helper(self):
        assert escape_string("it's", 'sqlite') == "'it''s'"


# =============================================================================
# format_query
# =============================================================================

class TestFormatQuery:
    """Tests for the format_query entry point."""

    def test_select_by_id(self):
        result = format_query('SELECT * FROM ?? WHERE id = ?', ['my_table', 42])
        assert result == 'SELECT * FROM `my_table` WHERE id = 42'

    def test_postgres_dialect(self):
        result = format_query('SELECT * FROM ?? WHERE name = ?', ['t', "O'Brien"], POSTGRES)
        assert result == 'SELECT * FROM "t" WHERE name = \'O\'\'Brien\''

    def test_no_placeholders(self):
        assert format_query('SELECT 1') == 'SELECT 1'

    def test_quoted_placeholders_untouched(self):
        assert format_query("SELECT '?', ? FROM `a?`", [1]) == "SELECT '?', 1 FROM `a?`"

    def test_single_value_param(self):
        assert format_query('SELECT ?', 5) == 'SELECT 5'

    def test_list_param_expands_in_clause(self):
        result = format_query('SELECT * FROM t WHERE id IN (?)', [[1, 2, 3]])
        assert result == 'SELECT * FROM t WHERE id IN (1, 2, 3)'

    def test_set_param(self):
        result = format_query('UPDATE ?? SET ? WHERE id = ?', ['t', {'name': 'x', 'value': 2}, 1])
        assert result == "UPDATE `t` SET `name` = 'x', `value` = 2 WHERE id = 1"

    def test_bulk_insert(self):
        result = format_query('INSERT INTO t (a, b) VALUES ?', [[[1, 'x'], [2, 'y']]])
        assert result == "INSERT INTO t (a, b) VALUES (1, 'x'), (2, 'y')"

    @pytest.mark.parametrize(('template', 'params'), [
        ('SELECT ?', []),
        ('SELECT ?', [1, 2]),
        ('SELECT 1', [1]),
        ('SELECT ?? FROM t', ()),
    ])
    def test_count_mismatch(self, template, params):
        with pytest.raises(FormatError, match='Parameter count mismatch'):
            format_query(template, params)

    def test_render_failure_is_format_error(self):
        with pytest.raises(FormatError):
            format_query('SELECT ?', [float('inf')])

    def test_backslash_is_literal_for_sqlite(self):
        template = r"SELECT * FROM t WHERE p = 'C:\' OR a = ? OR b = 'x'"
        result = format_query(template, [1], SQLITE)
        assert result == r"SELECT * FROM t WHERE p = 'C:\' OR a = 1 OR b = 'x'"

    def test_quoted_placeholder_after_backslash_for_postgres(self):
        template = r"SELECT 'a\', '?', ?"
        assert format_query(template, [5], POSTGRES) == r"SELECT 'a\', '?', 5"

    def test_time_zone_option_applies(self):
        value = datetime.datetime(2024, 1, 1, 12, tzinfo=datetime.timezone.utc)
        options = QueryOptions(time_zone='Asia/Tokyo')
        assert format_query('SELECT ?', [value], options) == "SELECT '2024-01-01 21:00:00'"


if __name__ == '__main__':
    __import__('pytest').main([__file__])
