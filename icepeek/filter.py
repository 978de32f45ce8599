# SPDX-License-Identifier: MIT
"""
Filter expression compiler.

Turns text typed into the filter bar into a Predicate tree:

    status = 'active' AND (age >= 21 OR vip = true)
    name IS NOT NULL
    region IN ('eu', 'us')

Grammar, lowest to highest precedence:

    or_expr  := and_expr (OR or_expr)?
    and_expr := clause (AND and_expr)?
    clause   := '(' or_expr ')'
              | column IS [NOT] NULL
              | column IN '(' [value (',' value)*] ')'
              | column op value

Combinators nest to the right, so "a OR b OR c" is Or(a, Or(b, c)).
Keywords are case-insensitive. String literals use single quotes and are
opaque: keywords and operator characters inside them are plain text.
Unquoted values and column names may contain spaces; they run until the
next operator, AND, OR, comma or parenthesis:

    ts = 2024-01-01 10:00:00

parse_filter() raises ParseError and nothing else.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from .errors import ParseError


# =============================================================================
# Predicate model
# =============================================================================


class CompareOp(str, Enum):
    """Binary comparison operators."""

    EQ = "="
    NE = "!="
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="


# Tried in this order at each token position, so two-character operators
# always win over their one-character prefixes.
OPERATOR_PRIORITY = (">=", "<=", "!=", ">", "<", "=")

KEYWORDS = frozenset({"AND", "OR", "IS", "NOT", "NULL", "IN"})

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
# int64 has at most 19 digits; longer digit runs go straight to float parsing
_INT_PATTERN = re.compile(r"^[+-]?\d{1,19}$")


class DatumKind(str, Enum):
    LONG = "long"
    DOUBLE = "double"
    STRING = "string"
    BOOL = "bool"


@dataclass(frozen=True)
class Datum:
    """A typed literal used inside predicates."""

    kind: DatumKind
    value: Union[int, float, str, bool]

    @classmethod
    def long(cls, value: int) -> "Datum":
        return cls(DatumKind.LONG, value)

    @classmethod
    def double(cls, value: float) -> "Datum":
        return cls(DatumKind.DOUBLE, value)

    @classmethod
    def string(cls, value: str) -> "Datum":
        return cls(DatumKind.STRING, value)

    @classmethod
    def boolean(cls, value: bool) -> "Datum":
        return cls(DatumKind.BOOL, value)

    def __str__(self) -> str:
        if self.kind == DatumKind.STRING:
            return f"'{self.value}'"
        if self.kind == DatumKind.BOOL:
            return "true" if self.value else "false"
        return str(self.value)


@dataclass(frozen=True)
class And:
    left: "Predicate"
    right: "Predicate"

    def __str__(self) -> str:
        return f"({self.left} AND {self.right})"


@dataclass(frozen=True)
class Or:
    left: "Predicate"
    right: "Predicate"

    def __str__(self) -> str:
        return f"({self.left} OR {self.right})"


@dataclass(frozen=True)
class Compare:
    column: str
    op: CompareOp
    value: Datum

    def __str__(self) -> str:
        return f"{self.column} {self.op.value} {self.value}"


@dataclass(frozen=True)
class IsNull:
    column: str

    def __str__(self) -> str:
        return f"{self.column} IS NULL"


@dataclass(frozen=True)
class IsNotNull:
    column: str

    def __str__(self) -> str:
        return f"{self.column} IS NOT NULL"


@dataclass(frozen=True)
class In:
    column: str
    values: Tuple[Datum, ...]

    def __str__(self) -> str:
        return f"{self.column} IN ({', '.join(str(v) for v in self.values)})"


Predicate = Union[And, Or, Compare, IsNull, IsNotNull, In]


def parse_literal(text: str, quoted: bool = False) -> Datum:
    """Type a literal: quoted is a string, else int64, float64, bool, string."""
    if quoted:
        return Datum.string(text)
    if _INT_PATTERN.match(text):
        number = int(text)
        if INT64_MIN <= number <= INT64_MAX:
            return Datum.long(number)
    if "_" not in text:
        try:
            return Datum.double(float(text))
        except ValueError:
            pass
    lowered = text.lower()
    if lowered == "true":
        return Datum.boolean(True)
    if lowered == "false":
        return Datum.boolean(False)
    return Datum.string(text)


# =============================================================================
# Tokenizer
# =============================================================================


class TokenKind(str, Enum):
    WORD = "word"
    STRING = "string"
    OPERATOR = "operator"
    KEYWORD = "keyword"
    LPAREN = "("
    RPAREN = ")"
    COMMA = ","
    END = "end"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    pos: int

    def is_keyword(self, *names: str) -> bool:
        return self.kind == TokenKind.KEYWORD and self.text in names

    def describe(self) -> str:
        if self.kind == TokenKind.END:
            return "end of input"
        if self.kind == TokenKind.STRING:
            return f"string '{self.text}'"
        return f"'{self.text}'"


_WORD_BREAK = set(" \t\r\n()',<>=!")


def tokenize(text: str) -> List[Token]:
    """Split filter text into tokens.

    Raises:
        ParseError: on an unterminated string or a stray '!'
    """
    tokens: List[Token] = []
    i = 0
    length = len(text)
    while i < length:
        ch = text[i]
        if ch.isspace():
            i += 1
            continue
        if ch == "'":
            end = text.find("'", i + 1)
            if end == -1:
                raise ParseError(f"unterminated string literal starting at position {i}")
            tokens.append(Token(TokenKind.STRING, text[i + 1:end], i))
            i = end + 1
            continue
        if ch == "(":
            tokens.append(Token(TokenKind.LPAREN, ch, i))
            i += 1
            continue
        if ch == ")":
            tokens.append(Token(TokenKind.RPAREN, ch, i))
            i += 1
            continue
        if ch == ",":
            tokens.append(Token(TokenKind.COMMA, ch, i))
            i += 1
            continue
        op = next((o for o in OPERATOR_PRIORITY if text.startswith(o, i)), None)
        if op is not None:
            tokens.append(Token(TokenKind.OPERATOR, op, i))
            i += len(op)
            continue
        if ch == "!":
            raise ParseError(f"unexpected '!' at position {i} (did you mean '!='?)")
        start = i
        while i < length and text[i] not in _WORD_BREAK and not text[i].isspace():
            i += 1
        word = text[start:i]
        if word.upper() in KEYWORDS:
            tokens.append(Token(TokenKind.KEYWORD, word.upper(), start))
        else:
            tokens.append(Token(TokenKind.WORD, word, start))
    tokens.append(Token(TokenKind.END, "", length))
    return tokens


# =============================================================================
# Parser
# =============================================================================


class _Parser:
    def __init__(self, tokens: List[Token], source: str) -> None:
        self.tokens = tokens
        self.source = source
        self.index = 0

    def peek(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind != TokenKind.END:
            self.index += 1
        return token

    def parse(self) -> Predicate:
        predicate = self.or_expr()
        trailing = self.peek()
        if trailing.kind == TokenKind.RPAREN:
            raise ParseError(f"unbalanced ')' at position {trailing.pos}")
        if trailing.kind != TokenKind.END:
            raise ParseError(
                f"unexpected {trailing.describe()} at position {trailing.pos}; "
                "expected AND, OR or end of filter"
            )
        return predicate

    def or_expr(self) -> Predicate:
        left = self.and_expr()
        if self.peek().is_keyword("OR"):
            self.advance()
            return Or(left, self.or_expr())
        return left

    def and_expr(self) -> Predicate:
        left = self.clause()
        if self.peek().is_keyword("AND"):
            self.advance()
            return And(left, self.and_expr())
        return left

    def clause(self) -> Predicate:
        token = self.peek()
        if token.kind == TokenKind.LPAREN:
            self.advance()
            inner = self.or_expr()
            closing = self.advance()
            if closing.kind != TokenKind.RPAREN:
                raise ParseError(f"missing ')' for '(' at position {token.pos}")
            return inner
        if token.kind == TokenKind.END:
            raise ParseError("expected a condition but the filter ended")
        if token.kind != TokenKind.WORD:
            raise ParseError(f"expected a column name at position {token.pos}, found {token.describe()}")

        column = self.bare_text(allow_keywords=False)
        following = self.peek()

        if following.is_keyword("IS"):
            return self.null_check(column)
        if following.is_keyword("IN"):
            return self.in_list(column)
        if following.kind == TokenKind.OPERATOR:
            op = CompareOp(self.advance().text)
            return Compare(column, op, self.value(f"after '{op.value}'"))

        raise ParseError(
            f"no operator found after '{column}'; "
            "expected one of >=, <=, !=, >, <, =, IS [NOT] NULL or IN (...)"
        )

    def null_check(self, column: str) -> Predicate:
        self.advance()  # IS
        negated = False
        if self.peek().is_keyword("NOT"):
            self.advance()
            negated = True
        token = self.advance()
        if not token.is_keyword("NULL"):
            expected = "IS NOT NULL" if negated else "IS NULL or IS NOT NULL"
            raise ParseError(f"expected {expected} after '{column}', found {token.describe()}")
        return IsNotNull(column) if negated else IsNull(column)

    def in_list(self, column: str) -> Predicate:
        self.advance()  # IN
        opening = self.advance()
        if opening.kind != TokenKind.LPAREN:
            raise ParseError(f"malformed IN list for '{column}': expected '(' after IN")
        values: List[Datum] = []
        while True:
            token = self.peek()
            if token.kind == TokenKind.RPAREN:
                self.advance()
                return In(column, tuple(values))
            if token.kind == TokenKind.COMMA:
                # empty entry, e.g. (1, , 2)
                self.advance()
                continue
            if token.kind == TokenKind.END:
                raise ParseError(f"malformed IN list for '{column}': missing ')'")
            values.append(self.value("in IN list"))
            separator = self.peek()
            if separator.kind not in (TokenKind.COMMA, TokenKind.RPAREN):
                raise ParseError(
                    f"malformed IN list for '{column}': expected ',' or ')' "
                    f"at position {separator.pos}, found {separator.describe()}"
                )

    def value(self, where: str) -> Datum:
        token = self.peek()
        if token.kind == TokenKind.STRING:
            self.advance()
            return parse_literal(token.text, quoted=True)
        if token.kind == TokenKind.WORD or (
            token.kind == TokenKind.KEYWORD and not token.is_keyword("AND", "OR")
        ):
            return parse_literal(self.bare_text(allow_keywords=True))
        raise ParseError(f"missing value {where} at position {token.pos}")

    def bare_text(self, allow_keywords: bool) -> str:
        """Consume a run of unquoted words and return their source text.

        The run keeps its inner spacing, so "2024-01-01 10:00:00" or
        "first name" come back whole. AND/OR always end the run.
        """
        first = self.peek()
        last = first
        while True:
            token = self.peek()
            bare = token.kind == TokenKind.WORD or (
                allow_keywords and token.kind == TokenKind.KEYWORD and not token.is_keyword("AND", "OR")
            )
            if not bare:
                break
            last = self.advance()
        return self.source[first.pos:last.pos + len(last.text)]


def parse_filter(text: Optional[str]) -> Predicate:
    """Compile filter text into a Predicate.

    Args:
        text: Filter expression as typed by the user

    Returns:
        The root of the predicate tree.

    Raises:
        ParseError: with a human-readable reason when text is empty or malformed.
    """
    if text is None or not text.strip():
        raise ParseError("filter is empty")
    return _Parser(tokenize(text), text).parse()

