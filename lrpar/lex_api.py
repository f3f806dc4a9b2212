"""Lexing interfaces used by the parser: spans, lexemes, lexers and lexing errors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass

__all__ = ["Span", "LexError", "Lexeme", "Lexer", "NonStreamingLexer"]


@dataclass(frozen=True)
class Span:
    """A half-open region ``[start, end)`` of the user's input."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(
                f"span end ({self.end}) must not be less than its start ({self.start})"
            )

    def __len__(self) -> int:
        return self.end - self.start


class LexError(Exception):
    """The lexer could not lex the input starting at ``span``."""

    def __init__(self, span: Span) -> None:
        super().__init__(span)
        self.span = span

    def __str__(self) -> str:
        return f"Couldn't lex input starting at byte {self.span.start}"

    def __repr__(self) -> str:
        return f"LexError({self.span!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LexError):
            return NotImplemented
        return self.span == other.span

    def __hash__(self) -> int:
        return hash(self.span)


@dataclass(frozen=True)
class Lexeme:
    """A segment of input of a known token type.

    A faulty lexeme is the product of error recovery and may violate the token's
    definition (for example, by having zero length).
    """

    tok_id: int
    start: int
    length: int
    faulty: bool = False

    @classmethod
    def new_faulty(cls, tok_id: int, start: int, length: int) -> Lexeme:
        """Create a lexeme that resulted from error recovery."""
        return cls(tok_id, start, length, faulty=True)

    def span(self) -> Span:
        return Span(self.start, self.start + self.length)

    def __str__(self) -> str:
        span = self.span()
        return f"{type(self).__name__}[{span.start}..{span.end}]"


class Lexer(ABC):
    """Base class for everything that produces lexemes for the parser."""

    @abstractmethod
    def iter(self) -> Iterable[Lexeme | LexError]:
        """Yield each lexeme, or a ``LexError`` where lexing failed.

        The lexer may or may not stop after the first error, and calling this more
        than once is not guaranteed to produce the same lexemes again.
        """


class NonStreamingLexer(Lexer):
    """A lexer that holds its whole input and can map spans back onto it."""

    @abstractmethod
    def span_str(self, span: Span) -> str:
        """Return the input text covered by ``span``."""

    @abstractmethod
    def span_lines_str(self, span: Span) -> str:
        """Return all the lines on which ``span`` starts and ends, in full."""

    @abstractmethod
    def line_col(self, span: Span) -> tuple[tuple[int, int], tuple[int, int]]:
        """Return ``((start line, start column), (end line, end column))``.

        Columns count characters, not bytes.
        """