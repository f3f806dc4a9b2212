"""The LR parsing engine, with hooks for error recovery."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Any, Generic, Optional, TypeVar

from .errors import Node, Nonterm, ParseError, Term
from .lex_api import Lexeme, NonStreamingLexer, Span
from .tables import Accept, ErrorAction, Grammar, Reduce, Shift, StateTable

__all__ = ["RECOVERY_TIME_BUDGET", "Cactus", "Parser"]

RECOVERY_TIME_BUDGET = 0.5  # seconds

T = TypeVar("T")


class Cactus(Generic[T]):
    """An immutable stack whose tails are shared between all the stacks grown from them."""

    __slots__ = ("_val", "_parent", "_len", "_hash")

    def __init__(self) -> None:
        self._val: Optional[T] = None
        self._parent: Optional[Cactus[T]] = None
        self._len = 0
        self._hash: Optional[int] = None

    def child(self, val: T) -> Cactus[T]:
        """Return a new stack with ``val`` pushed on top of this one."""
        node: Cactus[T] = Cactus()
        node._val = val
        node._parent = self
        node._len = self._len + 1
        return node

    def parent(self) -> Optional[Cactus[T]]:
        """Return this stack without its top element, or ``None`` if it is empty."""
        return self._parent

    def val(self) -> Optional[T]:
        """Return the top element, or ``None`` if the stack is empty."""
        return self._val if self._len else None

    def vals(self) -> Iterator[T]:
        """Yield the elements from the top of the stack downwards."""
        node = self
        while node._len:
            yield node._val  # type: ignore[misc]
            node = node._parent  # type: ignore[assignment]

    def __len__(self) -> int:
        return self._len

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cactus):
            return NotImplemented
        if self._len != other._len:
            return False
        a: Optional[Cactus] = self
        b: Optional[Cactus] = other
        while a is not b:
            assert a is not None and b is not None
            if a._val != b._val:
                return False
            a, b = a._parent, b._parent
        return True

    def __hash__(self) -> int:
        if self._hash is None:
            pending = []
            node: Optional[Cactus] = self
            while node is not None and node._hash is None:
                pending.append(node)
                node = node._parent
            h = node._hash if node is not None else hash(())
            for n in reversed(pending):
                h = hash(()) if n._len == 0 else hash((h, n._val))
                n._hash = h
        return self._hash  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"Cactus({list(self.vals())!r})"


ActionFn = Callable[[int, NonStreamingLexer, Span, list, Any], Any]
RecovererFactory = Callable[["Parser"], Any]


def _reduce_span(spans: list[Span], pop_idx: int) -> Span:
    if not spans:
        return Span(0, 0)
    if pop_idx - 1 < len(spans):
        return Span(spans[pop_idx - 1].start, spans[-1].end)
    return Span(spans[-1].start, spans[-1].end)


class Parser:
    """An LR parser over a fixed list of lexemes.

    ``actions[pidx]`` is called on each reduction by production ``pidx`` with the
    rule index, the lexer, the span reduced, the list of popped values (lexemes for
    tokens, action results for rules) and ``param``. ``recoverer_factory`` is called
    with the parser on the first syntax error and must return an object with a
    ``recover`` method; if it is ``None`` parsing stops at the first error.
    """

    recovery_budget: float = RECOVERY_TIME_BUDGET

    def __init__(
        self,
        recoverer_factory: Optional[RecovererFactory],
        grm: Grammar,
        token_cost: Callable[[int], int],
        stable: StateTable,
        lexer: NonStreamingLexer,
        lexemes: Iterable[Lexeme],
        actions: Sequence[ActionFn],
        param: Any,
    ) -> None:
        for tidx in grm.iter_tidxs():
            if token_cost(tidx) <= 0:
                raise ValueError(f"token {tidx} must have a cost greater than zero")
        self.recoverer_factory = recoverer_factory
        self.grm = grm
        self.token_cost = token_cost
        self.stable = stable
        self.lexer = lexer
        self.lexemes: list[Lexeme] = list(lexemes)
        self.actions = actions
        self.param = param

    def _goto(self, stidx: int, ridx: int) -> int:
        state = self.stable.goto(stidx, ridx)
        if state is None:
            raise ValueError(f"no goto from state {stidx} on rule {ridx}")
        return state

    def lr(
        self,
        laidx: int,
        pstack: list[int],
        astack: list,
        errors: list,
        spans: list[Span],
    ) -> Any:
        """Parse from ``laidx``, recovering from errors where possible.

        Return the value of the accepted parse, or ``None`` if the input could not
        be parsed. Errors found are appended to ``errors``.
        """
        recoverer = None
        budget = self.recovery_budget
        while True:
            stidx = pstack[-1]
            la_tidx = self.next_tidx(laidx)
            match self.stable.action(stidx, la_tidx):
                case Reduce(pidx):
                    ridx = self.grm.prod_to_rule(pidx)
                    pop_idx = len(pstack) - len(self.grm.prod(pidx))
                    del pstack[pop_idx:]
                    pstack.append(self._goto(pstack[-1], ridx))

                    span = _reduce_span(spans, pop_idx)
                    del spans[pop_idx - 1 :]
                    spans.append(span)

                    args = astack[pop_idx - 1 :]
                    del astack[pop_idx - 1 :]
                    astack.append(
                        self.actions[pidx](ridx, self.lexer, span, args, self.param)
                    )
                case Shift(state):
                    la_lexeme = self.next_lexeme(laidx)
                    pstack.append(state)
                    astack.append(la_lexeme)
                    spans.append(la_lexeme.span())
                    laidx += 1
                case Accept():
                    value = astack[0]
                    astack.clear()
                    return value
                case ErrorAction():
                    if recoverer is None:
                        if self.recoverer_factory is None:
                            errors.append(
                                ParseError(stidx, self.next_lexeme(laidx), [])
                            )
                            return None
                        recoverer = self.recoverer_factory(self)
                    before = time.monotonic()
                    new_laidx, repairs = recoverer.recover(
                        before + budget, self, laidx, pstack, astack, spans
                    )
                    budget = max(0.0, budget - (time.monotonic() - before))
                    errors.append(ParseError(stidx, self.next_lexeme(laidx), repairs))
                    if not repairs:
                        return None
                    laidx = new_laidx

    def lr_upto(
        self,
        lexeme_prefix: Optional[Lexeme],
        laidx: int,
        end_laidx: int,
        pstack: list[int],
        astack: Optional[list],
        spans: Optional[list[Span]],
    ) -> int:
        """Parse from ``laidx`` up to, but excluding, ``end_laidx`` without recovery.

        If ``lexeme_prefix`` is given it is used as the lexeme at ``laidx``, and
        ``end_laidx`` must be ``laidx + 1``. Values and spans are built only if
        ``astack`` and ``spans`` are given. Return the index parsed up to.
        """
        if lexeme_prefix is not None and end_laidx != laidx + 1:
            raise ValueError("a lexeme prefix requires end_laidx == laidx + 1")
        if (astack is None) != (spans is None):
            raise ValueError("astack and spans must be given together")
        while laidx != end_laidx and laidx <= len(self.lexemes):
            stidx = pstack[-1]
            if lexeme_prefix is not None:
                la_tidx = lexeme_prefix.tok_id
            else:
                la_tidx = self.next_tidx(laidx)
            match self.stable.action(stidx, la_tidx):
                case Reduce(pidx):
                    ridx = self.grm.prod_to_rule(pidx)
                    pop_idx = len(pstack) - len(self.grm.prod(pidx))
                    if astack is not None and spans is not None:
                        span = _reduce_span(spans, pop_idx)
                        del spans[pop_idx - 1 :]
                        spans.append(span)
                        args = astack[pop_idx - 1 :]
                        del astack[pop_idx - 1 :]
                        astack.append(
                            self.actions[pidx](ridx, self.lexer, span, args, self.param)
                        )
                    del pstack[pop_idx:]
                    pstack.append(self._goto(pstack[-1], ridx))
                case Shift(state):
                    if astack is not None and spans is not None:
                        la_lexeme = (
                            lexeme_prefix
                            if lexeme_prefix is not None
                            else self.next_lexeme(laidx)
                        )
                        astack.append(la_lexeme)
                        spans.append(la_lexeme.span())
                    pstack.append(state)
                    laidx += 1
                case _:
                    break
        return laidx

    def lr_cactus(
        self,
        lexeme_prefix: Optional[Lexeme],
        laidx: int,
        end_laidx: int,
        pstack: Cactus[int],
        tstack: Optional[list[Node]],
    ) -> tuple[int, Cactus[int]]:
        """Like ``lr_upto`` but over a cactus stack, optionally building a parse tree.

        Return the index parsed up to and the resulting stack.
        """
        if lexeme_prefix is not None and end_laidx != laidx + 1:
            raise ValueError("a lexeme prefix requires end_laidx == laidx + 1")
        while laidx != end_laidx:
            stidx = pstack.val()
            if lexeme_prefix is not None:
                la_tidx = lexeme_prefix.tok_id
            else:
                la_tidx = self.next_tidx(laidx)
            match self.stable.action(stidx, la_tidx):
                case Reduce(pidx):
                    ridx = self.grm.prod_to_rule(pidx)
                    pop_num = len(self.grm.prod(pidx))
                    if tstack is not None:
                        cut = len(pstack) - pop_num - 1
                        nodes = tstack[cut:]
                        del tstack[cut:]
                        tstack.append(Nonterm(ridx, nodes))
                    for _ in range(pop_num):
                        pstack = pstack.parent()
                    pstack = pstack.child(self._goto(pstack.val(), ridx))
                case Shift(state):
                    if tstack is not None:
                        la_lexeme = (
                            lexeme_prefix
                            if lexeme_prefix is not None
                            else self.next_lexeme(laidx)
                        )
                        tstack.append(Term(la_lexeme))
                    pstack = pstack.child(state)
                    laidx += 1
                case _:
                    break
        return laidx, pstack

    def next_lexeme(self, laidx: int) -> Lexeme:
        """Return the lexeme at ``laidx``; at the end of input, a faulty EOF lexeme."""
        llen = len(self.lexemes)
        if laidx > llen or laidx < 0:
            raise IndexError(f"lexeme index {laidx} out of range")
        if laidx < llen:
            return self.lexemes[laidx]
        last_end = self.lexemes[laidx - 1].span().end if llen else 0
        return Lexeme.new_faulty(self.grm.eof_token_idx, last_end, 0)

    def next_tidx(self, laidx: int) -> int:
        """Return the token index at ``laidx``; at the end of input, the EOF token."""
        llen = len(self.lexemes)
        if laidx > llen or laidx < 0:
            raise IndexError(f"lexeme index {laidx} out of range")
        if laidx < llen:
            return self.lexemes[laidx].tok_id
        return self.grm.eof_token_idx