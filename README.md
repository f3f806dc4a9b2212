# lrpar

A table-driven LR parser with built-in syntax error recovery based on the
CPCT+ algorithm. When the parser meets a syntax error, it searches for
minimal-cost repair sequences that insert, delete or shift tokens. It reports
every repair sequence it finds, applies the best one and keeps parsing.

## Installing

```
pip install .
```

Install with `pip install .[test]` to get the test dependencies.

## Overview

- `lrpar.lex_api` holds the lexing interface.
  - `Span(start, end)` is a half-open range of the input.
  - `Lexeme(tok_id, start, length)` is a token with an id and a position.
    `Lexeme.new_faulty` makes the zero-length lexemes that error recovery
    inserts, and `lexeme.span()` returns its `Span`.
  - `LexError(span)` marks input that cannot be lexed. A lexer yields it from
    `iter()` in place of a lexeme.
  - `Lexer` and `NonStreamingLexer` are abstract base classes for your lexers.
    A lexer yields lexemes (or a `LexError`) from `iter()`. A non-streaming
    lexer also implements `span_str`, `span_lines_str` and `line_col`.
- `lrpar.tables` describes a grammar (`Grammar`) and its LR state table
  (`StateTable`). The table's actions are `Shift`, `Reduce`, `Accept` and
  `ErrorAction`. Tokens, rules and productions are integer indices. The
  end-of-file token is the last token unless `eof_token_idx` is given.
- `lrpar.builder.RTParserBuilder(grammar, state_table)` parses a lexer's
  output. `recoverer(kind)` chooses the recovery algorithm, and
  `term_costs(f)` sets each token's repair cost, which defaults to 1. You
  can parse in three ways:
  - `parse_generictree(lexer)` returns `(node, errors)`. `node` is a
    `Term`/`Nonterm` parse tree, or `None`.
  - `parse_noaction(lexer)` returns only the errors.
  - `parse_actions(lexer, actions, param)` calls `actions[pidx](ridx, lexer,
    span, args, param)` on every reduction. It returns `(value, errors)`.
- `lrpar.errors` has the result types. These are `ParseError`, the repairs
  (`InsertRepair`, `DeleteRepair`, `ShiftRepair`) and `RecoveryKind`
  (`CPCTPLUS` or `NONE`). `Node.pp(grammar, text)` renders a parse tree.
  `pp_error(error, lexer, epp)` formats a lexing or parsing error for people
  to read.
- `lrpar.parser`, `lrpar.cpctplus`, `lrpar.repairs` and `lrpar.dijkstra`
  hold the parsing engine and the recovery search that the builder uses.

## Example

The grammar below is `S: 'a';`. Production 0 is the start production. The
state table is written out by hand.

```python
from lrpar.builder import RTParserBuilder
from lrpar.errors import pp_error
from lrpar.lex_api import Lexeme, NonStreamingLexer
from lrpar.tables import Accept, Grammar, Reduce, Shift, StateTable


class CharLexer(NonStreamingLexer):
    def __init__(self, text):
        self.text = text

    def iter(self):
        return [Lexeme(0, i, 1) for i, _ in enumerate(self.text)]

    def span_str(self, span):
        return self.text[span.start:span.end]

    def span_lines_str(self, span):
        return self.text

    def line_col(self, span):
        return (1, span.start + 1), (1, span.end + 1)


grammar = Grammar(
    token_names=["a", None],      # token 1 is end-of-file
    rule_names=["^", "S"],
    prods=[["S"], ["a"]],
    prod_rules=[0, 1],
)
table = StateTable(
    actions={(0, 0): Shift(2), (1, 1): Accept(), (2, 1): Reduce(1)},
    gotos={(0, 1): 1},
)

lexer = CharLexer("a")
tree, errors = RTParserBuilder(grammar, table).parse_generictree(lexer)
for err in errors:
    print(pp_error(err, lexer, grammar.token_epp))
print(tree.pp(grammar, "a"), end="")
# S
#  a a
```

A parse error with repairs prints like this:

```
Parsing error at line 1 column 5. Repair sequences found:
   1: Delete +
   2: Insert INT
```

To stop at the first syntax error, pass `RecoveryKind.NONE` to
`recoverer`. The parser then reports one error with no repair sequences.
Error recovery has a time budget of half a second per parse. Once the budget
is used up, the parser gives up and returns no value.

## What this package does not do

It has no reader for grammar files and no lexer generator. It does not build
LR state tables, so it does not detect conflicts. You supply the `Grammar`
and `StateTable`, already computed, together with a lexer of your own. It
also provides no command-line program.