"""Pratt parser evaluating tag expressions against a photo store.

Every token has a left binding power. Operands evaluate themselves against
the store as soon as they are parsed; the three set operators share one
binding power and are left-associative, so `a - b + c` is `(a - b) + c`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator

from loguru import logger

from core.query.errors import ParseError
from core.query.lexer import OPERANDS, OPERATORS, Lexer, Token, TokenKind
from core.services.interfaces import PhotoStore

BINDING_POWER: dict[TokenKind, int] = {
    TokenKind.END: 0,
    TokenKind.LPAREN: 1,
    TokenKind.RPAREN: 1,
    TokenKind.UNION: 10,
    TokenKind.INTERSECT: 10,
    TokenKind.DIFFERENCE: 10,
    TokenKind.TAG: 100,
    TokenKind.DATE_PREFIX: 100,
    TokenKind.BEFORE: 100,
    TokenKind.AFTER: 100,
    TokenKind.RATING: 100,
}

SET_OPERATIONS: dict[TokenKind, Callable[[set, set], set]] = {
    TokenKind.INTERSECT: lambda left, right: left & right,
    TokenKind.UNION: lambda left, right: left | right,
    TokenKind.DIFFERENCE: lambda left, right: left - right,
}


def _photos_with_tag(store: PhotoStore, text: str) -> set:
    if "%" in text:
        return store.photos_with_tag_pattern(text)
    return store.photos_with_tag_exact(text)


def _photos_with_rating(store: PhotoStore, digits: str) -> set:
    if not digits:
        return store.photos_with_no_rating()
    ratings = {int(d) for d in digits}
    valid = {r for r in ratings if 1 <= r <= 5}
    if valid != ratings:
        logger.warning("Ignoring out of range ratings {} in r:{}", sorted(ratings - valid), digits)
    if not valid:
        return set()
    return store.photos_with_rating_in(valid)


EVALUATORS: dict[TokenKind, Callable[[PhotoStore, str], set]] = {
    TokenKind.TAG: _photos_with_tag,
    TokenKind.DATE_PREFIX: lambda store, date: store.photos_taken_on_prefix(date),
    TokenKind.BEFORE: lambda store, date: store.photos_taken_before(date),
    TokenKind.AFTER: lambda store, date: store.photos_taken_on_or_after(date),
    TokenKind.RATING: _photos_with_rating,
}


class Parser:
    """Precedence-climbing parser over a token stream."""

    def __init__(self, tokens: Iterable[Token], store: PhotoStore) -> None:
        self._tokens: Iterator[Token] = iter(tokens)
        self._store = store
        self._end_position = 0
        self._token = self._next_token()

    def parse(self) -> set:
        """Evaluate the whole token stream to one set of photos."""
        if self._token.kind is TokenKind.END:
            raise ParseError("empty expression", self._token.position)
        # END is the only token binding at 0, so this consumes everything.
        return self.expression(0)

    def expression(self, rbp: int) -> set:
        token = self._advance()
        left = self._nud(token)
        while rbp < BINDING_POWER[self._token.kind]:
            token = self._advance()
            left = self._led(token, left)
        return left

    def expect(self, kind: TokenKind) -> Token:
        if self._token.kind is not kind:
            found = None if self._token.kind is TokenKind.END else str(self._token)
            raise ParseError(f"expected {kind.name.lower()}", self._token.position, found)
        return self._advance()

    def _nud(self, token: Token) -> set:
        if token.kind in OPERANDS:
            photos = EVALUATORS[token.kind](self._store, token.value)
            logger.debug("{} matched {} photos", token, len(photos))
            return photos
        if token.kind is TokenKind.LPAREN:
            photos = self.expression(BINDING_POWER[TokenKind.LPAREN])
            self.expect(TokenKind.RPAREN)
            return photos
        if token.kind is TokenKind.END:
            raise ParseError("missing operand", token.position)
        raise ParseError("expected an operand", token.position, str(token))

    def _led(self, token: Token, left: set) -> set:
        if token.kind in OPERATORS:
            right = self.expression(BINDING_POWER[token.kind])
            return SET_OPERATIONS[token.kind](left, right)
        raise ParseError("unmatched ')'", token.position, str(token))

    def _advance(self) -> Token:
        token = self._token
        self._token = self._next_token()
        return token

    def _next_token(self) -> Token:
        try:
            token = next(self._tokens)
        except StopIteration:
            return Token(TokenKind.END, "", self._end_position, "")
        self._end_position = token.position + len(token.text)
        return token


def evaluate(expression: str, store: PhotoStore) -> set:
    """Return the set of photos in `store` matching `expression`.

    Raises:
        LexError: when the expression cannot be tokenized.
        ParseError: when the tokens do not form an expression.
    """
    logger.debug("Evaluating expression: {}", expression)
    return Parser(Lexer(expression), store).parse()
