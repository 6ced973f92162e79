"""SQL tokenizer built on sqlparse.

sqlparse's lexer already knows T-SQL's lexical rules: ``--`` and
``/* */`` comments, ``'...'`` strings with doubled-quote escapes,
``[bracketed]`` and ``"quoted"`` identifiers, numbers and operators. This
module normalizes its ``(tokentype, value)`` stream into the small token
vocabulary the recursive descent parser consumes, and attaches a line
and column to every token for error reporting.

Normalization rules:
    - Whitespace and comments are dropped.
    - Multi-word keywords (``LEFT OUTER JOIN``, ``ORDER BY``, ``NOT NULL``)
      are split back into single words.
    - A sign glued to a number (``-1``) becomes a separate ``-`` operator;
      the parser folds unary minus over literals.
    - Operator runs such as ``+-`` are split into single characters.
    - ``N'text'`` becomes a plain string token.

References:
    - sqlparse documentation: https://sqlparse.readthedocs.io/
"""

from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from sqlparse import tokens as T
from sqlparse.lexer import tokenize as sqlparse_tokenize

from mock_sql.domain.errors import SQLSyntaxError


class TokenKind(Enum):
    """Token categories seen by the parser."""

    WORD = "word"  # keyword or bare identifier
    QUOTED_IDENT = "quoted_ident"  # [name] or "name"
    STRING = "string"
    NUMBER = "number"
    OP = "op"  # + - / % = <> != < <= > >=
    PUNCT = "punct"  # ( ) , . ;
    STAR = "star"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    """A lexical token.

    Attributes:
        kind: Token category.
        value: Normalized value (quotes removed, escapes resolved).
        text: The token exactly as written.
        position: 0-based character offset into the batch text.
        line: 1-based line number.
        column: 1-based column number.
    """

    kind: TokenKind
    value: str
    text: str
    position: int
    line: int
    column: int

    @property
    def upper(self) -> str:
        return self.value.upper()

    def is_word(self, *words: str) -> bool:
        """Check whether this is a bare word matching one of ``words``."""
        return self.kind is TokenKind.WORD and self.value.upper() in words

    def is_punct(self, *chars: str) -> bool:
        return self.kind is TokenKind.PUNCT and self.value in chars

    def is_op(self, *ops: str) -> bool:
        return self.kind is TokenKind.OP and self.value in ops

    def __str__(self) -> str:
        return self.text


_WORD = re.compile(r"^[^\W\d][\w$#@]*$")
_PUNCTUATION = frozenset("(),.;")
_COMPARISON_OPS = frozenset({"=", "<>", "!=", "<", "<=", ">", ">=", "!<", "!>"})
_ARITHMETIC_OPS = frozenset("+-/%")


class _Locator:
    """Maps character offsets to 1-based line/column pairs."""

    def __init__(self, text: str) -> None:
        self._line_starts = [0]
        for match in re.finditer(r"\r\n|\r|\n", text):
            self._line_starts.append(match.end())

    def locate(self, offset: int) -> tuple[int, int]:
        line = bisect_right(self._line_starts, offset) - 1
        return line + 1, offset - self._line_starts[line] + 1


def _unquote(value: str, quote: str) -> str:
    return value[1:-1].replace(quote * 2, quote)


def _raw_tokens(sql: str) -> Iterator[tuple[object, str, int]]:
    """Yield sqlparse tokens with their starting offsets."""
    offset = 0
    for ttype, value in sqlparse_tokenize(sql):
        yield ttype, value, offset
        offset += len(value)


def tokenize(sql: str) -> list[Token]:
    """Split SQL text into parser tokens.

    Args:
        sql: Batch text.

    Returns:
        Tokens in source order, terminated by a single EOF token.

    Raises:
        SQLSyntaxError: On characters or constructs outside the supported
            lexical vocabulary (unclosed quotes, variables, placeholders).
    """
    locator = _Locator(sql)
    tokens: list[Token] = []

    def emit(kind: TokenKind, value: str, text: str, position: int) -> None:
        line, column = locator.locate(position)
        tokens.append(Token(kind, value, text, position, line, column))

    def fail(detail: str, text: str, position: int) -> SQLSyntaxError:
        line, column = locator.locate(position)
        return SQLSyntaxError(detail, text, line, column)

    raw = list(_raw_tokens(sql))
    i = 0
    while i < len(raw):
        ttype, value, position = raw[i]
        i += 1

        if ttype in T.Comment or ttype in T.Whitespace or ttype in T.Newline:
            continue

        if ttype in T.Error:
            if value in ("'", '"'):
                raise fail("Unclosed quotation mark in character string.", value, position)
            raise fail("Unexpected character.", value, position)

        if ttype in T.String.Single:
            emit(TokenKind.STRING, _unquote(value, "'"), value, position)
            continue

        if ttype in T.String.Symbol:
            emit(TokenKind.QUOTED_IDENT, _unquote(value, '"'), value, position)
            continue

        if ttype in T.Number:
            if ttype in T.Number.Hexadecimal:
                raise fail("Binary literals are not supported.", value, position)
            if value.startswith("-"):
                emit(TokenKind.OP, "-", "-", position)
                value, position = value[1:], position + 1
            emit(TokenKind.NUMBER, value, value, position)
            continue

        if ttype in T.Wildcard:
            emit(TokenKind.STAR, value, value, position)
            continue

        if ttype in T.Punctuation:
            if value not in _PUNCTUATION:
                raise fail("Unexpected punctuation.", value, position)
            emit(TokenKind.PUNCT, value, value, position)
            continue

        if ttype in T.Operator.Comparison and not value[:1].isalpha():
            if value not in _COMPARISON_OPS:
                raise fail("Unknown comparison operator.", value, position)
            emit(TokenKind.OP, value, value, position)
            continue

        if ttype in T.Operator and not value[:1].isalpha():
            for offset, char in enumerate(value):
                if char not in _ARITHMETIC_OPS:
                    raise fail("Unknown operator.", value, position)
                emit(TokenKind.OP, char, char, position + offset)
            continue

        if value.startswith("[") and value.endswith("]") and len(value) > 2:
            emit(TokenKind.QUOTED_IDENT, value[1:-1], value, position)
            continue

        if value[:1] in ("@", "#"):
            raise fail("Variables and temporary tables are not supported.", value, position)

        # Keywords, names and builtins; multi-word keywords are split.
        for match in re.finditer(r"\S+", value):
            word = match.group()
            start = position + match.start()
            if not _WORD.match(word):
                raise fail("Unexpected token.", word, start)
            if (
                word.upper() == "N"
                and i < len(raw)
                and raw[i][0] in T.String.Single
                and raw[i][2] == start + 1
            ):
                # N'text' is a Unicode string literal.
                string_value = raw[i][1]
                emit(TokenKind.STRING, _unquote(string_value, "'"), word + string_value, start)
                i += 1
                continue
            emit(TokenKind.WORD, word, word, start)

    end_line, end_column = locator.locate(len(sql))
    tokens.append(Token(TokenKind.EOF, "", "", len(sql), end_line, end_column))
    return tokens
