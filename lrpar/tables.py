"""Grammar and LR state-table data that drives the parser."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence, Set
from dataclasses import dataclass, field
from typing import Optional, Union

__all__ = [
    "Shift",
    "Reduce",
    "Accept",
    "ErrorAction",
    "Action",
    "Grammar",
    "StateTable",
]


@dataclass(frozen=True)
class Shift:
    """Shift the lookahead and move to state ``stidx``."""

    stidx: int


@dataclass(frozen=True)
class Reduce:
    """Reduce by production ``pidx``."""

    pidx: int


@dataclass(frozen=True)
class Accept:
    """The input has been parsed successfully."""


@dataclass(frozen=True)
class ErrorAction:
    """No valid action exists: a syntax error."""


Action = Union[Shift, Reduce, Accept, ErrorAction]

_ACTION_TYPES = (Shift, Reduce, Accept, ErrorAction)
_ERROR = ErrorAction()


@dataclass
class Grammar:
    """A context-free grammar in indexed form.

    Tokens, rules and productions are referred to by their integer indices.
    ``prods[pidx]`` is the sequence of symbols of production ``pidx`` and
    ``prod_rules[pidx]`` the rule it belongs to. The end-of-file token defaults to
    the last token. ``token_epps`` overrides the pretty-printed name of tokens.
    """

    token_names: Sequence[Optional[str]]
    rule_names: Sequence[str]
    prods: Sequence[Sequence[object]]
    prod_rules: Sequence[int]
    eof_token_idx: Optional[int] = None
    token_epps: Mapping[int, Optional[str]] = field(default_factory=dict)
    avoid_insert_tokens: Set[int] = frozenset()
    start_prod: int = 0

    def __post_init__(self) -> None:
        self.token_names = tuple(self.token_names)
        self.rule_names = tuple(self.rule_names)
        self.prods = tuple(tuple(p) for p in self.prods)
        self.prod_rules = tuple(self.prod_rules)
        self.token_epps = dict(self.token_epps)
        self.avoid_insert_tokens = frozenset(self.avoid_insert_tokens)
        if not self.token_names:
            raise ValueError("a grammar needs at least the end-of-file token")
        if self.eof_token_idx is None:
            self.eof_token_idx = len(self.token_names) - 1
        self._check_tidx(self.eof_token_idx)
        if len(self.prods) != len(self.prod_rules):
            raise ValueError(
                f"{len(self.prods)} productions but {len(self.prod_rules)} production rules"
            )
        for ridx in self.prod_rules:
            if not 0 <= ridx < len(self.rule_names):
                raise ValueError(f"production refers to unknown rule {ridx}")
        if self.prods and not 0 <= self.start_prod < len(self.prods):
            raise ValueError(f"start production {self.start_prod} does not exist")
        for tidx in self.token_epps:
            self._check_tidx(tidx)
        for tidx in self.avoid_insert_tokens:
            self._check_tidx(tidx)
        self._token_idxs: dict[str, int] = {}
        for tidx, name in enumerate(self.token_names):
            if name is not None:
                self._token_idxs.setdefault(name, tidx)

    def _check_tidx(self, tidx: int) -> None:
        if not 0 <= tidx < len(self.token_names):
            raise IndexError(f"token index {tidx} out of range")

    @property
    def tokens_len(self) -> int:
        return len(self.token_names)

    @property
    def rules_len(self) -> int:
        return len(self.rule_names)

    @property
    def prods_len(self) -> int:
        return len(self.prods)

    @property
    def start_rule_idx(self) -> int:
        return self.prod_rules[self.start_prod]

    def token_name(self, tidx: int) -> Optional[str]:
        """Return the name of token ``tidx`` (``None`` for unnamed tokens such as EOF)."""
        self._check_tidx(tidx)
        return self.token_names[tidx]

    def token_epp(self, tidx: int) -> Optional[str]:
        """Return the pretty-printed name of token ``tidx``."""
        self._check_tidx(tidx)
        if tidx in self.token_epps:
            return self.token_epps[tidx]
        return self.token_names[tidx]

    def token_idx(self, name: str) -> Optional[int]:
        """Return the index of the token called ``name``, or ``None``."""
        return self._token_idxs.get(name)

    def rule_name(self, ridx: int) -> str:
        if not 0 <= ridx < len(self.rule_names):
            raise IndexError(f"rule index {ridx} out of range")
        return self.rule_names[ridx]

    def prod(self, pidx: int) -> tuple:
        if not 0 <= pidx < len(self.prods):
            raise IndexError(f"production index {pidx} out of range")
        return self.prods[pidx]

    def prod_to_rule(self, pidx: int) -> int:
        if not 0 <= pidx < len(self.prod_rules):
            raise IndexError(f"production index {pidx} out of range")
        return self.prod_rules[pidx]

    def avoid_insert(self, tidx: int) -> bool:
        """Should error recovery avoid inserting token ``tidx``?"""
        self._check_tidx(tidx)
        return tidx in self.avoid_insert_tokens

    def iter_tidxs(self) -> Iterator[int]:
        return iter(range(len(self.token_names)))


class StateTable:
    """LR action and goto tables.

    ``actions`` maps ``(state, token)`` to an action; missing entries are errors.
    ``gotos`` maps ``(state, rule)`` to the state entered after a reduction.
    """

    def __init__(
        self,
        actions: Mapping[tuple[int, int], Action],
        gotos: Optional[Mapping[tuple[int, int], int]] = None,
        start_state: int = 0,
    ) -> None:
        self._actions: dict[int, dict[int, Action]] = {}
        for (stidx, tidx), action in actions.items():
            if not isinstance(action, _ACTION_TYPES):
                raise TypeError(f"not a parser action: {action!r}")
            if isinstance(action, ErrorAction):
                continue
            self._actions.setdefault(stidx, {})[tidx] = action
        self._gotos: dict[tuple[int, int], int] = dict(gotos or {})
        self.start_state = start_state

    def action(self, stidx: int, tidx: int) -> Action:
        """Return the action for token ``tidx`` in state ``stidx``."""
        return self._actions.get(stidx, {}).get(tidx, _ERROR)

    def goto(self, stidx: int, ridx: int) -> Optional[int]:
        """Return the state entered from ``stidx`` after reducing to rule ``ridx``."""
        return self._gotos.get((stidx, ridx))

    def state_actions(self, stidx: int) -> Iterator[int]:
        """Yield, in ascending order, the tokens with a non-error action in ``stidx``."""
        return iter(sorted(self._actions.get(stidx, {})))