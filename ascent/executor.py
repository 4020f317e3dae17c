"""Recursive ascent: running an LR automaton as a set of mutually recursive
procedures instead of a loop over an explicit stack.

Every state gets a procedure. A procedure is entered right after its state's
accessing symbol was shifted (or reduced and then "goto"-ed), and it is given
the values it needs as a tuple: the values of the last `depth` symbols on the
conceptual stack, which is exactly enough to reduce any complete item in the
state. From there:

- A shift is a call. The procedure consumes the token and calls the procedure
  of the next state, passing along its held values plus the token's value.

- A reduction is a return. The procedure runs the semantic action over its
  last `len(rhs)` held values and returns a `Reduction` that says which
  nonterminal was made and how many procedures (itself included) have to
  return before somebody can do a goto on it.

- The procedure that gets a Reduction with no pops left is the one the
  production started in. It does the goto, which is just another call, and
  then looks at what *that* returns. This is a loop, not a recursion: a
  left-recursive rule like `elements -> elements "," value` comes back to the
  same procedure over and over, replacing its accumulated value each time,
  without the Python stack growing.

A procedure can be handed back more than one kind of result (a state that
completes `array` and one that completes `elements`, say). The Reduction's
symbol is the tag that tells the receiver which goto to take; the set of
possible tags for each state is closed and known when the parser is built
(see `RecursiveAscentParser.returns`).

The procedures are closures over the immutable table, dispatched through a
list indexed by state, so the grammar can be data rather than code. All the
per-parse state is on the Python call stack, so one parser can be used by many
threads at once as long as each has its own token stream.
"""

import dataclasses
import logging
import typing

from .errors import NestingTooDeepError, UnexpectedTokenError
from .grammar import Nonterminal
from .runtime import Lexer, Step, TokenStream, action_log, apply_action
from .table import Accept, ParseTable, Reduce, Shift


@dataclasses.dataclass(frozen=True, slots=True)
class Reduction:
    """A nonterminal on its way back to the procedure that will do a goto on
    it. `pops` is the number of procedures, counting the one holding it, that
    still have to return first.
    """

    symbol: Nonterminal
    value: typing.Any
    pops: int


@dataclasses.dataclass(frozen=True, slots=True)
class Accepted:
    """The parse is done and this is the value of the start symbol."""

    value: typing.Any


Outcome = Reduction | Accepted

Trace = list[Step] | None
Procedure = typing.Callable[[tuple, TokenStream, Trace], Outcome]


def _hold(held: tuple, value: typing.Any, depth: int) -> tuple:
    """The values a procedure of the given depth needs, after pushing value."""
    if depth == 0:
        return ()
    return (held + (value,))[-depth:]


class RecursiveAscentParser:
    """Parse tokens by recursive ascent over an SLR(1) table.

    Build one with `Grammar.build_parser()`, or from a table you already
    have. The parser can be used any number of times; it keeps nothing from
    one parse to the next.
    """

    table: ParseTable
    procedures: list[Procedure]

    _returns: list[frozenset[tuple[str, int]]] | None

    def __init__(self, table: ParseTable):
        self.table = table
        self.procedures = []
        for state in range(len(table)):
            self.procedures.append(self._make_procedure(state))
        self._returns = None

    def _make_procedure(self, state: int) -> Procedure:
        """Compile the procedure for a single state."""
        actions = self.table.actions[state]
        gotos = self.table.gotos[state]
        depths = self.table.depths
        expected = self.table.expected(state)
        procedures = self.procedures

        def procedure(held: tuple, stream: TokenStream, trace: Trace) -> Outcome:
            token = stream.peek()
            action = actions.get(token.kind)
            if trace is not None and action is not None:
                trace.append(Step(state, token.kind, action))
            if action_log.isEnabledFor(logging.INFO):
                action_log.info(f"{state: <5} {token.kind: <15} {action}")

            outcome: Outcome
            match action:
                case Shift(state=target):
                    stream.advance()
                    outcome = procedures[target](
                        _hold(held, token.value, depths[target]), stream, trace
                    )

                case Reduce(production=production):
                    size = len(production.rhs)
                    value = apply_action(production, held[len(held) - size :])
                    outcome = Reduction(production.lhs, value, size)

                case Accept():
                    stream.advance()
                    return Accepted(held[-1])

                case None:
                    raise UnexpectedTokenError(token, state, expected)

                case _:
                    typing.assert_never(action)

            # Everything that comes back to us with no pops left was started
            # here, so we do the goto. Left recursion spins in this loop.
            while isinstance(outcome, Reduction) and outcome.pops == 0:
                target = gotos.get(outcome.symbol.name)
                assert target is not None, f"state {state} has no goto on {outcome.symbol}"
                outcome = procedures[target](
                    _hold(held, outcome.value, depths[target]), stream, trace
                )

            if isinstance(outcome, Reduction):
                return Reduction(outcome.symbol, outcome.value, outcome.pops - 1)
            return outcome

        procedure.__name__ = f"state_{state}"
        procedure.__qualname__ = f"RecursiveAscentParser.state_{state}"
        return procedure

    def parse(self, tokens: "Lexer | TokenStream", *, trace: list[Step] | None = None):
        """Parse the tokens and return the value of the start symbol.

        If `trace` is provided, every action taken is appended to it. Raises
        UnexpectedTokenError on a syntax error, ActionError if a semantic
        action fails, and NestingTooDeepError if the input nests deeper than
        the Python stack can go.
        """
        stream = TokenStream.of(tokens)
        try:
            outcome = self.procedures[0]((), stream, trace)
        except RecursionError as e:
            raise NestingTooDeepError(stream.position) from e

        # Nothing can reduce past the start state: every production starts in
        # some state at or above it.
        assert isinstance(outcome, Accepted), f"reduction escaped the start state: {outcome}"
        return outcome.value

    def returns(self, state: int) -> frozenset[tuple[str, int]]:
        """Every (nonterminal, pops) that the procedure for `state` can hand
        back to its caller.

        These are the reductions of the state itself with their sizes, plus
        whatever its callees hand back that still has pops left, one pop
        less. For the caller, the nonterminals with zero pops are the ones it
        has to branch on.
        """
        if self._returns is None:
            self._returns = self._compute_returns()
        return self._returns[state]

    def _compute_returns(self) -> list[frozenset[tuple[str, int]]]:
        table = self.table
        returns: list[set[tuple[str, int]]] = [set() for _ in range(len(table))]
        callees: list[list[int]] = [[] for _ in range(len(table))]

        for state, actions in enumerate(table.actions):
            for action in actions.values():
                match action:
                    case Shift(state=target):
                        callees[state].append(target)
                    case Reduce(production=production):
                        # A reduction of size zero is done in place.
                        if len(production.rhs) > 0:
                            returns[state].add((production.lhs.name, len(production.rhs) - 1))
            callees[state].extend(table.gotos[state].values())

        changed = True
        while changed:
            changed = False
            for state in range(len(table)):
                before = len(returns[state])
                for callee in callees[state]:
                    returns[state].update(
                        (name, pops - 1) for name, pops in returns[callee] if pops > 0
                    )
                changed = changed or len(returns[state]) != before

        return [frozenset(r) for r in returns]
