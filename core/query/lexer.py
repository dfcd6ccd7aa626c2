"""Tokenizer for tag expressions.

Tokens are:
    (  )          grouping
    +             union
    -             difference; `-tag` is the difference operator followed by tag
    =date         taken time starts with date
    <date         taken before date
    >date         taken on or after date
    r:[12345]*    rating is one of the digits, or unrated when there are none
    "some tag"    tag text taken verbatim between the quotes
    tag           any other run of non-blank characters except parentheses

where date is a run of digits and dashes, any prefix of
`yyyy-mm-dd hh:mm:ss`. An intersection token is inserted between two operands
that have no explicit operator between them, so `max boots` means "tagged
both max and boots" while `max + boots` means either and `max -boots` means
max but not boots.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
import re

from core.query.errors import LexError


class TokenKind(Enum):
    LPAREN = auto()
    RPAREN = auto()
    UNION = auto()
    INTERSECT = auto()
    DIFFERENCE = auto()
    TAG = auto()
    DATE_PREFIX = auto()
    BEFORE = auto()
    AFTER = auto()
    RATING = auto()
    END = auto()


OPERATORS = frozenset({TokenKind.UNION, TokenKind.INTERSECT, TokenKind.DIFFERENCE})
OPERANDS = frozenset(
    {
        TokenKind.TAG,
        TokenKind.DATE_PREFIX,
        TokenKind.BEFORE,
        TokenKind.AFTER,
        TokenKind.RATING,
    }
)


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    position: int
    text: str

    def __str__(self) -> str:
        return self.text or self.kind.name.lower()


_BOUNDARY = r"(?=[\s()]|$)"
_SPACE_RE = re.compile(r"\s+")
_COMPARISON_RE = re.compile(r"([=<>])([0-9\-]+)" + _BOUNDARY)
_RATING_RE = re.compile(r"r:([0-9]*)" + _BOUNDARY)
_QUOTED_RE = re.compile(r'"([^"]*)"')
_BARE_RE = re.compile(r'[^\s()"][^\s()]*')

_COMPARISON_KINDS = {
    "=": TokenKind.DATE_PREFIX,
    "<": TokenKind.BEFORE,
    ">": TokenKind.AFTER,
}


class Lexer:
    """Iterator producing the tokens of one expression.

    Tokens are produced on demand and the lexer cannot be restarted; lex the
    expression again with a new instance. `expect_operator` is true after an
    operand or `)` and false after an operator or `(`; an operand or `(` seen
    while it is true gets an implicit intersection token in front of it.
    """

    def __init__(self, expression: str) -> None:
        self._text = expression
        self._pos = 0
        self._pending: deque[Token] = deque()
        self.expect_operator = False

    def __iter__(self) -> Lexer:
        return self

    def __next__(self) -> Token:
        if not self._pending:
            self._scan()
        if not self._pending:
            raise StopIteration
        return self._pending.popleft()

    def _scan(self) -> None:
        """Queue the token(s) for the next shape in the input, if any."""
        text = self._text
        space = _SPACE_RE.match(text, self._pos)
        if space:
            self._pos = space.end()
        pos = self._pos
        if pos >= len(text):
            return

        ch = text[pos]
        if ch == "(":
            self._operand_start(pos)
            self._push(TokenKind.LPAREN, ch, pos, ch, expect_operator=False)
            return
        if ch == ")":
            self._push(TokenKind.RPAREN, ch, pos, ch, expect_operator=True)
            return
        if ch == "+":
            self._push(TokenKind.UNION, ch, pos, ch, expect_operator=False)
            return
        if ch == "-":
            # Either standalone or fused with the operand that follows; both
            # leave the lexer expecting an operand so no AND is inserted.
            self._push(TokenKind.DIFFERENCE, ch, pos, ch, expect_operator=False)
            return

        m = _COMPARISON_RE.match(text, pos)
        if m:
            self._operand(_COMPARISON_KINDS[m.group(1)], m.group(2), pos, m.group(0))
            return
        m = _RATING_RE.match(text, pos)
        if m:
            self._operand(TokenKind.RATING, m.group(1), pos, m.group(0))
            return
        if ch == '"':
            m = _QUOTED_RE.match(text, pos)
            if not m:
                raise LexError("unterminated quote", pos, text[pos:])
            self._operand(TokenKind.TAG, m.group(1), pos, m.group(0))
            return
        m = _BARE_RE.match(text, pos)
        if not m:
            raise LexError("scan error", pos, text[pos:])
        self._operand(TokenKind.TAG, m.group(0), pos, m.group(0))

    def _operand_start(self, pos: int) -> None:
        if self.expect_operator:
            self._pending.append(Token(TokenKind.INTERSECT, "", pos, ""))

    def _operand(self, kind: TokenKind, value: str, pos: int, lexeme: str) -> None:
        self._operand_start(pos)
        self._push(kind, value, pos, lexeme, expect_operator=True)

    def _push(
        self, kind: TokenKind, value: str, pos: int, lexeme: str, *, expect_operator: bool
    ) -> None:
        self._pending.append(Token(kind, value, pos, lexeme))
        self._pos = pos + len(lexeme)
        self.expect_operator = expect_operator


def tokenize(expression: str) -> list[Token]:
    """Return all tokens of `expression`."""
    return list(Lexer(expression))
