# SPDX-License-Identifier: MIT
"""Tests for the filter expression compiler."""

import pytest

from icepeek.errors import ParseError
from icepeek.filter import (
    And,
    Compare,
    CompareOp,
    Datum,
    DatumKind,
    In,
    IsNotNull,
    IsNull,
    Or,
    TokenKind,
    parse_filter,
    parse_literal,
    tokenize,
)


class TestParseLiteral:
    """Literal typing order: quoted, int64, float64, bool, string."""

    def test_quoted_is_always_string(self):
        assert parse_literal("42", quoted=True) == Datum.string("42")

    def test_integer(self):
        assert parse_literal("42") == Datum.long(42)
        assert parse_literal("-7") == Datum.long(-7)

    def test_integer_out_of_int64_range_becomes_double(self):
        datum = parse_literal("9223372036854775808")
        assert datum.kind == DatumKind.DOUBLE

    def test_float(self):
        assert parse_literal("3.5") == Datum.double(3.5)
        assert parse_literal("1e3") == Datum.double(1000.0)

    def test_underscore_number_stays_string(self):
        assert parse_literal("1_000") == Datum.string("1_000")

    def test_bool_case_insensitive(self):
        assert parse_literal("TRUE") == Datum.boolean(True)
        assert parse_literal("false") == Datum.boolean(False)

    def test_bare_word_is_string(self):
        assert parse_literal("active") == Datum.string("active")

    def test_huge_digit_run_becomes_double(self):
        # Far past int() string-conversion limits on current interpreters
        datum = parse_literal("1" * 5000)
        assert datum.kind == DatumKind.DOUBLE

    def test_twenty_digits_becomes_double(self):
        assert parse_literal("1" * 20).kind == DatumKind.DOUBLE


class TestTokenize:
    def test_two_char_operators_win(self):
        kinds = [(t.kind, t.text) for t in tokenize("a>=1")]
        assert kinds[:3] == [
            (TokenKind.WORD, "a"),
            (TokenKind.OPERATOR, ">="),
            (TokenKind.WORD, "1"),
        ]

    def test_operator_inside_quotes_is_text(self):
        tokens = tokenize("name = 'a>=b'")
        assert [t.kind for t in tokens] == [
            TokenKind.WORD, TokenKind.OPERATOR, TokenKind.STRING, TokenKind.END,
        ]
        assert tokens[2].text == "a>=b"

    def test_keywords_uppercased(self):
        tokens = tokenize("x is not null")
        assert [t.text for t in tokens if t.kind == TokenKind.KEYWORD] == ["IS", "NOT", "NULL"]

    def test_unterminated_string(self):
        with pytest.raises(ParseError, match="unterminated"):
            tokenize("name = 'abc")

    def test_stray_bang(self):
        with pytest.raises(ParseError):
            tokenize("a ! 1")


class TestParseFilter:
    def test_simple_comparison(self):
        assert parse_filter("age >= 21") == Compare("age", CompareOp.GE, Datum.long(21))

    @pytest.mark.parametrize("text,op", [
        ("a = 1", CompareOp.EQ),
        ("a != 1", CompareOp.NE),
        ("a > 1", CompareOp.GT),
        ("a < 1", CompareOp.LT),
        ("a >= 1", CompareOp.GE),
        ("a <= 1", CompareOp.LE),
    ])
    def test_each_operator(self, text, op):
        assert parse_filter(text).op == op

    def test_no_spaces_around_operator(self):
        assert parse_filter("a<=5") == Compare("a", CompareOp.LE, Datum.long(5))

    def test_quoted_value_with_operator_text(self):
        assert parse_filter("name = 'a>=b'") == Compare("name", CompareOp.EQ, Datum.string("a>=b"))

    def test_quoted_keyword_is_plain_text(self):
        pred = parse_filter("note = 'x AND y'")
        assert pred == Compare("note", CompareOp.EQ, Datum.string("x AND y"))

    def test_and_binds_tighter_than_or(self):
        pred = parse_filter("a = 1 OR b = 2 AND c = 3")
        assert isinstance(pred, Or)
        assert pred.left == Compare("a", CompareOp.EQ, Datum.long(1))
        assert isinstance(pred.right, And)

    def test_combinators_nest_right(self):
        pred = parse_filter("a = 1 AND b = 2 AND c = 3")
        assert isinstance(pred, And)
        assert isinstance(pred.right, And)
        assert pred.right.right == Compare("c", CompareOp.EQ, Datum.long(3))

    def test_parentheses_override_precedence(self):
        pred = parse_filter("(a = 1 OR b = 2) AND c = 3")
        assert isinstance(pred, And)
        assert isinstance(pred.left, Or)

    def test_keywords_case_insensitive(self):
        assert parse_filter("a = 1 and b = 2") == parse_filter("a = 1 AND b = 2")

    def test_is_null(self):
        assert parse_filter("email IS NULL") == IsNull("email")

    def test_is_not_null(self):
        assert parse_filter("email is not null") == IsNotNull("email")

    def test_in_list(self):
        pred = parse_filter("region IN ('eu', 'us', 3)")
        assert pred == In("region", (Datum.string("eu"), Datum.string("us"), Datum.long(3)))

    def test_in_list_skips_empty_entries(self):
        pred = parse_filter("id IN (1, , 2)")
        assert pred == In("id", (Datum.long(1), Datum.long(2)))

    def test_empty_in_list(self):
        assert parse_filter("id IN ()") == In("id", ())

    def test_bool_value(self):
        assert parse_filter("vip = true") == Compare("vip", CompareOp.EQ, Datum.boolean(True))

    def test_huge_number_compiles(self):
        pred = parse_filter("x = " + "1" * 5000)
        assert pred.value.kind == DatumKind.DOUBLE

    def test_unquoted_value_with_spaces(self):
        pred = parse_filter("ts = 2024-01-01 10:00:00")
        assert pred == Compare("ts", CompareOp.EQ, Datum.string("2024-01-01 10:00:00"))

    def test_unquoted_value_keeps_inner_spacing(self):
        pred = parse_filter("name = John  Smith AND age > 3")
        assert isinstance(pred, And)
        assert pred.left == Compare("name", CompareOp.EQ, Datum.string("John  Smith"))
        assert pred.right == Compare("age", CompareOp.GT, Datum.long(3))

    def test_column_name_with_spaces(self):
        assert parse_filter("first name = 'Ann'") == Compare("first name", CompareOp.EQ, Datum.string("Ann"))
        assert parse_filter("first name IS NULL") == IsNull("first name")

    def test_in_list_value_with_spaces(self):
        pred = parse_filter("city IN (New York, Paris)")
        assert pred == In("city", (Datum.string("New York"), Datum.string("Paris")))

    def test_str_roundtrip_display(self):
        assert str(parse_filter("a = 'x' OR b IS NULL")) == "(a = 'x' OR b IS NULL)"


class TestParseErrors:
    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty(self, text):
        with pytest.raises(ParseError, match="filter is empty"):
            parse_filter(text)

    def test_missing_operator(self):
        with pytest.raises(ParseError, match="no operator found after 'age 21'"):
            parse_filter("age 21")

    def test_missing_value(self):
        with pytest.raises(ParseError, match="missing value"):
            parse_filter("age >=")

    def test_unbalanced_close(self):
        with pytest.raises(ParseError, match="unbalanced"):
            parse_filter("a = 1)")

    def test_missing_close(self):
        with pytest.raises(ParseError, match="missing '\\)'"):
            parse_filter("(a = 1")

    def test_malformed_in_list(self):
        with pytest.raises(ParseError, match="malformed IN list"):
            parse_filter("id IN 1, 2")

    def test_unclosed_in_list(self):
        with pytest.raises(ParseError, match="malformed IN list"):
            parse_filter("id IN (1, 2")

    def test_dangling_and(self):
        with pytest.raises(ParseError):
            parse_filter("a = 1 AND")

    def test_is_without_null(self):
        with pytest.raises(ParseError, match="IS NULL"):
            parse_filter("a IS 3")

    def test_trailing_garbage(self):
        with pytest.raises(ParseError, match="expected AND, OR"):
            parse_filter("a = 1 b = 2")

    def test_only_parse_error_escapes(self):
        for text in ["(", ")", "=", "'", "a IN", "a IN (", "!", "AND", "a = 1 OR OR b = 2"]:
            with pytest.raises(ParseError):
                parse_filter(text)
