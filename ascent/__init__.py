"""A small SLR(1) parser generator that runs its parsers by recursive ascent.

Write a grammar (see `ascent.grammar`), build it, and parse:

    NUMBER = Terminal("NUMBER")
    PLUS = Terminal("+")

    @rule
    def expr():
        return (seq(expr, PLUS, NUMBER) >> (lambda l, _, r: l + r)) | (NUMBER >> (lambda n: n))

    parser = Grammar.from_rules(expr).build_parser()
    parser.parse([(NUMBER, 1), (PLUS, "+"), (NUMBER, 2)])  # == 3

Building the parser computes the LR(0) automaton (`ascent.automaton`), the
FOLLOW sets (`ascent.follow`) and the action table (`ascent.table`), and
fails with a ConflictError if the grammar isn't SLR(1). The parser itself is
in `ascent.executor`.
"""

from .automaton import Automaton, Item, build
from .errors import (
    ActionError,
    Conflict,
    ConflictError,
    GrammarError,
    NestingTooDeepError,
    ParseError,
    UndefinedNonterminalError,
    UnexpectedTokenError,
)
from .executor import Accepted, RecursiveAscentParser, Reduction
from .follow import FirstInfo, FollowInfo, compute_follow
from .grammar import (
    EOF,
    Grammar,
    Nonterminal,
    NonterminalRule,
    Nothing,
    Production,
    Rule,
    Symbol,
    Terminal,
    alt,
    one_or_more,
    opt,
    rule,
    seq,
    zero_or_more,
)
from .runtime import Parser, Step, Token, TokenStream, Tree
from .table import Accept, ParseTable, Reduce, Shift, build_table

__all__ = [
    "Accept",
    "Accepted",
    "ActionError",
    "Automaton",
    "Conflict",
    "ConflictError",
    "EOF",
    "FirstInfo",
    "FollowInfo",
    "Grammar",
    "GrammarError",
    "Item",
    "NestingTooDeepError",
    "Nonterminal",
    "NonterminalRule",
    "Nothing",
    "ParseError",
    "ParseTable",
    "Parser",
    "Production",
    "RecursiveAscentParser",
    "Reduce",
    "Reduction",
    "Rule",
    "Shift",
    "Step",
    "Symbol",
    "Terminal",
    "Token",
    "TokenStream",
    "Tree",
    "UndefinedNonterminalError",
    "UnexpectedTokenError",
    "alt",
    "build",
    "build_table",
    "compute_follow",
    "one_or_more",
    "opt",
    "rule",
    "seq",
    "zero_or_more",
]
