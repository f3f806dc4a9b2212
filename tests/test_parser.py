import time

import pytest

from lrpar.errors import DeleteRepair, Nonterm, ParseError, Term
from lrpar.lex_api import Lexeme, NonStreamingLexer, Span
from lrpar.parser import Cactus, Parser
from lrpar.tables import Accept, Grammar, Reduce, Shift, StateTable

# Call: 'ID' '(' ')';
CALL_GRM = Grammar(
    token_names=["(", ")", "ID", None],
    rule_names=["^", "Call"],
    prods=[("Call",), ("ID", "(", ")")],
    prod_rules=[0, 1],
)
CALL_TABLE = StateTable(
    actions={
        (0, 2): Shift(2),
        (1, 3): Accept(),
        (2, 0): Shift(3),
        (3, 1): Shift(4),
        (4, 3): Reduce(1),
    },
    gotos={(0, 1): 1},
)

# S: L; L: 'ID' | ;
EMPTY_GRM = Grammar(
    token_names=["ID", None],
    rule_names=["^", "S", "L"],
    prods=[("S",), ("L",), ("ID",), ()],
    prod_rules=[0, 1, 2, 2],
)
EMPTY_TABLE = StateTable(
    actions={
        (0, 0): Shift(3),
        (0, 1): Reduce(3),
        (1, 1): Accept(),
        (2, 1): Reduce(1),
        (3, 1): Reduce(2),
    },
    gotos={(0, 1): 1, (0, 2): 2},
)


class TextLexer(NonStreamingLexer):
    def __init__(self, grm, text):
        self.text = text
        self.lexemes = []
        for i, ch in enumerate(text):
            name = "ID" if ch.isalpha() else ch
            self.lexemes.append(Lexeme(grm.token_idx(name), i, 1))

    def iter(self):
        return iter(self.lexemes)

    def span_str(self, span):
        return self.text[span.start:span.end]

    def span_lines_str(self, span):
        return self.text

    def line_col(self, span):
        return (1, span.start + 1), (1, span.end + 1)


def tree_action(ridx, lexer, span, args, param):
    return Nonterm(ridx, [Term(a) if isinstance(a, Lexeme) else a for a in args])


def make_parser(grm, table, text, factory=None, actions=None, param=None):
    lexer = TextLexer(grm, text)
    if actions is None:
        actions = [tree_action] * grm.prods_len
    return Parser(factory, grm, lambda _: 1, table, lexer, lexer.lexemes, actions, param)


def run(parser):
    errors = []
    result = parser.lr(0, [parser.stable.start_state], [], errors, [])
    return result, errors


class DeletingRecoverer:
    def __init__(self, parser):
        self.calls = []

    def recover(self, finish_by, parser, laidx, pstack, astack, spans):
        self.calls.append((finish_by, time.monotonic()))
        return laidx + 1, [[DeleteRepair(parser.next_lexeme(laidx))]]


class GiveUpRecoverer:
    def __init__(self, parser):
        pass

    def recover(self, finish_by, parser, laidx, pstack, astack, spans):
        return laidx, []


def test_parse_call_tree():
    parser = make_parser(CALL_GRM, CALL_TABLE, "f()")
    tree, errors = run(parser)
    assert errors == []
    assert tree.pp(CALL_GRM, "f()") == "Call\n ID f\n ( (\n ) )\n"


@pytest.mark.parametrize(
    "text, expected", [("", "S\n L\n"), ("x", "S\n L\n  ID x\n")]
)
def test_parse_empty_rules(text, expected):
    tree, errors = run(make_parser(EMPTY_GRM, EMPTY_TABLE, text))
    assert errors == []
    assert tree.pp(EMPTY_GRM, text) == expected


def test_error_at_eof_without_recovery():
    tree, errors = run(make_parser(CALL_GRM, CALL_TABLE, "f("))
    assert tree is None
    assert len(errors) == 1
    err = errors[0]
    assert isinstance(err, ParseError)
    assert err.lexeme == Lexeme.new_faulty(CALL_GRM.eof_token_idx, 2, 0)
    assert err.lexeme.faulty
    assert err.repairs == []


def test_error_at_token_without_recovery():
    tree, errors = run(make_parser(CALL_GRM, CALL_TABLE, "f(f("))
    assert tree is None
    assert len(errors) == 1
    assert errors[0].lexeme == Lexeme(CALL_GRM.token_idx("ID"), 2, 1)
    assert not errors[0].lexeme.faulty


def test_recovery_continues_parsing():
    parser = make_parser(CALL_GRM, CALL_TABLE, "f(f)", factory=DeletingRecoverer)
    tree, errors = run(parser)
    assert tree.pp(CALL_GRM, "f(f)") == "Call\n ID f\n ( (\n ) )\n"
    assert len(errors) == 1
    assert errors[0].stidx == 3
    assert errors[0].repairs == [[DeleteRepair(Lexeme(CALL_GRM.token_idx("ID"), 2, 1))]]


def test_recoverer_created_once():
    made = []

    def factory(parser):
        rec = DeletingRecoverer(parser)
        made.append(rec)
        return rec

    tree, errors = run(make_parser(CALL_GRM, CALL_TABLE, "f(ff)", factory=factory))
    assert isinstance(tree, Nonterm)
    assert len(errors) == 2
    assert len(made) == 1
    assert len(made[0].calls) == 2


def test_recovery_deadline_within_budget():
    made = []

    def factory(parser):
        made.append(DeletingRecoverer(parser))
        return made[-1]

    tree, errors = run(make_parser(CALL_GRM, CALL_TABLE, "f(f)", factory=factory))
    assert tree.pp(CALL_GRM, "f(f)") == "Call\n ID f\n ( (\n ) )\n"
    assert len(errors) == 1
    assert len(made[0].calls) == 1
    finish_by, now = made[0].calls[0]
    assert 0 < finish_by - now <= Parser.recovery_budget


def test_recovery_giving_up_stops_parse():
    tree, errors = run(make_parser(CALL_GRM, CALL_TABLE, "f(f)", factory=GiveUpRecoverer))
    assert tree is None
    assert len(errors) == 1
    assert errors[0].repairs == []


def test_reduce_span_and_param():
    seen = []

    def record(ridx, lexer, span, args, param):
        seen.append((ridx, span, len(args), param))
        return "done"

    parser = make_parser(CALL_GRM, CALL_TABLE, "f()", actions=[record, record], param="p")
    result, errors = run(parser)
    assert result == "done"
    lexemes = parser.lexemes
    assert seen == [(1, Span(lexemes[0].start, lexemes[-1].span().end), 3, "p")]


def test_empty_production_span_on_empty_input():
    spans = []

    def record(ridx, lexer, span, args, param):
        spans.append(span)
        return ridx

    run(make_parser(EMPTY_GRM, EMPTY_TABLE, "", actions=[record] * 4))
    assert spans == [Span(0, 0), Span(0, 0)]


def test_zero_token_cost_rejected():
    lexer = TextLexer(CALL_GRM, "f()")
    with pytest.raises(ValueError):
        Parser(None, CALL_GRM, lambda _: 0, CALL_TABLE, lexer, lexer.lexemes, [], None)


def test_lr_upto_builds_values():
    parser = make_parser(CALL_GRM, CALL_TABLE, "f()")
    pstack, astack, spans = [0], [], []
    laidx = parser.lr_upto(None, 0, len(parser.lexemes) + 1, pstack, astack, spans)
    assert laidx == len(parser.lexemes)
    assert pstack == [0, 1]
    assert len(astack) == 1 and len(spans) == 1
    assert astack[0].pp(CALL_GRM, "f()") == "Call\n ID f\n ( (\n ) )\n"


def test_lr_upto_stops_at_error():
    parser = make_parser(CALL_GRM, CALL_TABLE, "f(f(")
    pstack = [0]
    laidx = parser.lr_upto(None, 0, 4, pstack, None, None)
    assert laidx == 2
    assert pstack == [0, 2, 3]


def test_lr_upto_with_prefix():
    parser = make_parser(CALL_GRM, CALL_TABLE, "()")
    pstack = [0]
    prefix = Lexeme.new_faulty(CALL_GRM.token_idx("ID"), 0, 0)
    assert parser.lr_upto(prefix, 0, 1, pstack, None, None) == 1
    assert pstack == [0, 2]


def test_lr_upto_argument_checks():
    parser = make_parser(CALL_GRM, CALL_TABLE, "f()")
    prefix = Lexeme.new_faulty(2, 0, 0)
    with pytest.raises(ValueError):
        parser.lr_upto(prefix, 0, 3, [0], None, None)
    with pytest.raises(ValueError):
        parser.lr_upto(None, 0, 3, [0], [], None)


def test_lr_cactus_builds_tree():
    parser = make_parser(CALL_GRM, CALL_TABLE, "f()")
    tstack = []
    laidx, pstack = parser.lr_cactus(None, 0, 4, Cactus().child(0), tstack)
    assert laidx == 3
    assert list(pstack.vals()) == [1, 0]
    assert len(tstack) == 1
    assert tstack[0].pp(CALL_GRM, "f()") == "Call\n ID f\n ( (\n ) )\n"


def test_lr_cactus_with_prefix_leaves_original_untouched():
    parser = make_parser(CALL_GRM, CALL_TABLE, "()")
    start = Cactus().child(0)
    prefix = Lexeme.new_faulty(CALL_GRM.token_idx("ID"), 0, 0)
    tstack = []
    laidx, pstack = parser.lr_cactus(prefix, 0, 1, start, tstack)
    assert laidx == 1
    assert list(pstack.vals()) == [2, 0]
    assert list(start.vals()) == [0]
    assert tstack == [Term(prefix)]


def test_lr_cactus_matches_lr_upto():
    parser = make_parser(CALL_GRM, CALL_TABLE, "f(f(")
    pstack = [0]
    upto = parser.lr_upto(None, 0, 4, pstack, None, None)
    laidx, cactus = parser.lr_cactus(None, 0, 4, Cactus().child(0), None)
    assert laidx == upto
    assert list(reversed(list(cactus.vals()))) == pstack


def test_next_lexeme_and_tidx():
    parser = make_parser(CALL_GRM, CALL_TABLE, "f()")
    eof = CALL_GRM.eof_token_idx
    assert parser.next_lexeme(0) == parser.lexemes[0]
    assert parser.next_lexeme(3) == Lexeme.new_faulty(eof, 3, 0)
    assert parser.next_tidx(0) == CALL_GRM.token_idx("ID")
    assert parser.next_tidx(3) == eof
    with pytest.raises(IndexError):
        parser.next_tidx(4)


def test_next_lexeme_empty_input():
    parser = make_parser(EMPTY_GRM, EMPTY_TABLE, "")
    assert parser.next_lexeme(0) == Lexeme.new_faulty(EMPTY_GRM.eof_token_idx, 0, 0)


def test_cactus_basics():
    empty = Cactus()
    assert len(empty) == 0
    assert empty.val() is None
    assert empty.parent() is None
    c = empty.child(1).child(2)
    assert len(c) == 2
    assert c.val() == 2
    assert list(c.vals()) == [2, 1]
    assert c.parent().val() == 1
    assert c.parent().parent() == empty


def test_cactus_sharing_and_equality():
    base = Cactus().child("a")
    left = base.child("b")
    right = base.child("c")
    assert list(left.vals()) == ["b", "a"]
    assert list(right.vals()) == ["c", "a"]
    assert left != right
    other = Cactus().child("a").child("b")
    assert left == other
    assert hash(left) == hash(other)
    assert len({left, other, right}) == 2


def test_cactus_unequal_lengths():
    assert Cactus().child(1) != Cactus().child(1).child(1)