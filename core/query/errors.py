"""Errors raised while lexing, parsing and evaluating tag expressions."""

from __future__ import annotations


class QueryError(Exception):
    """Base class for tag expression failures."""


class LexError(QueryError):
    """No token shape matches at `position`."""

    def __init__(self, message: str, position: int, remainder: str) -> None:
        super().__init__(f"{message} at {position}: {remainder!r}")
        self.position = position
        self.remainder = remainder


class ParseError(QueryError):
    """The token stream does not form a valid expression."""

    def __init__(self, message: str, position: int, token: str | None = None) -> None:
        where = "end of expression" if token is None else f"{token!r} at {position}"
        super().__init__(f"{message} ({where})")
        self.position = position
        self.token = token
