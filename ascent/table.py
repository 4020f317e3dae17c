"""The SLR(1) action table.

Every state gets a row. For each terminal the row says what to do when that
terminal is next in the input:

- `Shift`: consume the token and go to the given state.

- `Reduce`: the right hand side of the given production is on top of the
  stack; replace it with the production's left hand side. (Then do whatever
  the goto entry of the uncovered state says for that nonterminal.)

- `Accept`: we have seen the start symbol and the end of the input, so we are
  done.

Anything missing from the row is a syntax error. Gotos live in their own
rows, since they are keyed by nonterminals and never overlap the actions.

A complete item votes to reduce on every terminal in FOLLOW of its left hand
side, and an item with a terminal after the dot votes to shift it. A terminal
with more than one distinct vote is a conflict, which means the grammar isn't
SLR(1). Conflicts are never resolved by picking one; they are collected and
reported together in a ConflictError.
"""

import dataclasses
import logging
import types
import typing

from . import automaton as lr0
from .errors import Conflict, ConflictError, PossibleAction
from .follow import compute_follow
from .grammar import EOF, Grammar, Nonterminal, Production, Terminal

build_log = logging.getLogger("ascent.build")


@dataclasses.dataclass(frozen=True)
class Shift:
    state: int

    def __str__(self) -> str:
        return f"Shift({self.state})"


@dataclasses.dataclass(frozen=True)
class Reduce:
    production: Production

    def __str__(self) -> str:
        return f"Reduce({self.production})"


@dataclasses.dataclass(frozen=True)
class Accept:
    def __str__(self) -> str:
        return "Accept"


ParseAction = Shift | Reduce | Accept


@dataclasses.dataclass(frozen=True)
class ParseTable:
    """The finished table. This is all a parser needs at runtime, and nothing
    in here changes once it is built: the rows are read-only mappings.

    Tables compare equal when their contents are equal, but they are not
    hashable.
    """

    # actions[state][terminal name]
    actions: tuple[typing.Mapping[str, ParseAction], ...]
    # gotos[state][nonterminal name]
    gotos: tuple[typing.Mapping[str, int], ...]
    # How many values the procedure for each state holds. See
    # Automaton.depth.
    depths: tuple[int, ...]
    productions: tuple[Production, ...]
    # The formatted items of every state, for diagnostics.
    states: tuple[tuple[str, ...], ...]

    __hash__ = None  # type: ignore[assignment]

    def __len__(self) -> int:
        return len(self.actions)

    def resolve(self, state: int) -> dict[str, ParseAction]:
        """What to do for each terminal in the given state. Terminals that
        aren't in the result are errors.
        """
        return dict(self.actions[state])

    def expected(self, state: int) -> list[str]:
        """The terminals that would have been acceptable in the given state."""
        return sorted(self.actions[state].keys())

    def format(self) -> str:
        """Format a parser table so pretty."""

        def format_action(actions: typing.Mapping[str, ParseAction], terminal: str):
            action = actions.get(terminal)
            match action:
                case Accept():
                    return "accept"
                case Shift(state=state):
                    return f"s{state}"
                case Reduce(production=production):
                    return f"r{production.index}"
                case _:
                    return ""

        def format_goto(gotos: typing.Mapping[str, int], nt: str):
            index = gotos.get(nt)
            if index is None:
                return ""
            else:
                return str(index)

        terminals = list(sorted({k for row in self.actions for k in row.keys()}))
        nonterminals = list(sorted({k for row in self.gotos for k in row.keys()}))

        header = "     | {terms} | {nts}".format(
            terms=" ".join(f"{terminal: <6}" for terminal in terminals),
            nts=" ".join(f"{nt: <5}" for nt in nonterminals),
        )

        lines = [
            header,
            "-" * len(header),
        ] + [
            "{index: <4} | {actions} | {gotos}".format(
                index=i,
                actions=" ".join(
                    "{0: <6}".format(format_action(actions, terminal)) for terminal in terminals
                ),
                gotos=" ".join("{0: <5}".format(format_goto(gotos, nt)) for nt in nonterminals),
            )
            for i, (actions, gotos) in enumerate(zip(self.actions, self.gotos))
        ]
        lines.append("")
        lines.extend(f"r{p.index}: {p}" for p in self.productions if p.index > 0)
        return "\n".join(lines)


class TableBuilder(object):
    """A helper object to assemble actions into a parse table.

    This is a builder type thing: call `new_row` at the start of each row, then
    `flush` when you're done with the last row.
    """

    automaton: lr0.Automaton
    actions: list[dict[str, ParseAction]]
    gotos: list[dict[str, int]]
    conflicts: list[Conflict]

    current_state: int | None
    votes: dict[Terminal, list[tuple[ParseAction, lr0.Item]]]
    goto_row: dict[str, int]

    def __init__(self, automaton: lr0.Automaton):
        self.automaton = automaton
        self.actions = []
        self.gotos = []
        self.conflicts = []
        self.current_state = None
        self.votes = {}
        self.goto_row = {}

    def flush(self) -> ParseTable:
        """Finish building the table and return it.

        Raises ConflictError if there were any conflicts during construction.
        """
        self._flush_row()
        if len(self.conflicts) > 0:
            raise ConflictError(self.conflicts)

        automaton = self.automaton
        return ParseTable(
            actions=tuple(types.MappingProxyType(row) for row in self.actions),
            gotos=tuple(types.MappingProxyType(row) for row in self.gotos),
            depths=tuple(automaton.depth(i) for i in range(len(automaton.states))),
            productions=automaton.grammar.productions,
            states=tuple(
                tuple(item.format() for item in items) for items in automaton.states
            ),
        )

    def new_row(self, state: int):
        """Start a new row, processing the given state. Call this before doing
        anything else.
        """
        self._flush_row()
        assert state == len(self.actions)
        self.current_state = state
        self.votes = {}
        self.goto_row = {}

    def _flush_row(self):
        if self.current_state is None:
            return

        order = self.automaton.grammar.symbol_key
        row: dict[str, ParseAction] = {}
        for terminal in sorted(self.votes, key=lambda t: order[t.name]):
            votes = self.votes[terminal]
            distinct = list(dict.fromkeys(action for action, _ in votes))
            if len(distinct) == 1:
                row[terminal.name] = distinct[0]
            else:
                self._record_conflict(terminal, votes)

        self.actions.append(row)
        self.gotos.append(self.goto_row)
        self.current_state = None

    def _record_conflict(self, terminal: Terminal, votes: list[tuple[ParseAction, lr0.Item]]):
        assert self.current_state is not None
        path = self.automaton.find_path_to_state(self.current_state)

        if any(isinstance(action, (Shift, Accept)) for action, _ in votes):
            kind = "shift/reduce"
        else:
            kind = "reduce/reduce"

        actions = []
        for action, item in votes:
            match action:
                case Reduce(production=production):
                    count = len(production.rhs)
                    action_str = f"use the {count} values to make a {production.lhs.name}"
                case Shift():
                    action_str = "consume the token and keep going"
                case Accept():
                    action_str = "accept the parse"
                case _:
                    typing.assert_never(action)

            actions.append(PossibleAction(item.format(), action_str))

        self.conflicts.append(
            Conflict(
                state=self.current_state,
                terminal=terminal.name,
                path=tuple(s.name for s in path),
                kind=kind,
                actions=tuple(actions),
            )
        )

    def set_table_reduce(self, terminal: Terminal, item: lr0.Item):
        """Vote to reduce the given complete item on the given terminal."""
        self._set_table_action(terminal, Reduce(item.production), item)

    def set_table_accept(self, terminal: Terminal, item: lr0.Item):
        """Vote to accept on the given terminal."""
        self._set_table_action(terminal, Accept(), item)

    def set_table_shift(self, terminal: Terminal, index: int, item: lr0.Item):
        """Vote to shift the given terminal, moving to the given state. The
        item provides debugging information for conflicts.
        """
        self._set_table_action(terminal, Shift(index), item)

    def set_table_goto(self, symbol: Nonterminal, index: int):
        """Set the goto for the given nonterminal symbol in the current row."""
        assert symbol.name not in self.goto_row
        self.goto_row[symbol.name] = index

    def _set_table_action(self, terminal: Terminal, action: ParseAction, item: lr0.Item):
        assert self.current_state is not None
        self.votes.setdefault(terminal, []).append((action, item))


def build_table(
    grammar: Grammar,
    automaton: lr0.Automaton | None = None,
    follow: typing.Mapping[Nonterminal, frozenset[Terminal]] | None = None,
) -> ParseTable:
    """Generate the SLR(1) parse table for the grammar.

    Raises ConflictError if the grammar is not SLR(1).
    """
    if automaton is None:
        automaton = lr0.build(grammar)
    if follow is None:
        follow = compute_follow(grammar)

    order = grammar.symbol_key
    builder = TableBuilder(automaton)
    for state, items in enumerate(automaton.states):
        builder.new_row(state)
        shifts = automaton.shifts(state)

        for item in items:
            if item.at_end:
                lookahead = sorted(follow[item.production.lhs], key=lambda t: order[t.name])
                for terminal in lookahead:
                    builder.set_table_reduce(terminal, item)

            elif item.next == EOF:
                assert item.production is grammar.goal
                builder.set_table_accept(EOF, item)

            elif isinstance(item.next, Terminal):
                builder.set_table_shift(item.next, shifts[item.next], item)

        for symbol, index in automaton.gotos(state).items():
            builder.set_table_goto(symbol, index)

    table = builder.flush()
    build_log.info(f"Built a table with {len(table)} states")
    return table
