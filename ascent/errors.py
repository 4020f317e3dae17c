"""The two families of errors: grammar errors, which happen while building a
parser and mean the grammar needs fixing, and parse errors, which happen while
parsing a particular input.
"""

import dataclasses
import typing

if typing.TYPE_CHECKING:
    from .grammar import Nonterminal, Production
    from .runtime import Token


###############################################################################
# Grammar errors
###############################################################################
class GrammarError(ValueError):
    """The grammar cannot be turned into a parser."""


class UndefinedNonterminalError(GrammarError):
    """A production refers to a nonterminal that has no productions."""

    symbol: "Nonterminal"
    production: "Production"

    def __init__(self, symbol: "Nonterminal", production: "Production"):
        self.symbol = symbol
        self.production = production
        super().__init__(
            f"While processing `{production}`: cannot find any production for {symbol.name}"
        )


@dataclasses.dataclass(frozen=True)
class PossibleAction:
    """One of the things we could do in a conflicting state."""

    item: str
    action: str

    def __str__(self):
        return f"We are in the rule `{self.item}` and we should {self.action}"


@dataclasses.dataclass(frozen=True)
class Conflict:
    """More than one action wants the same terminal in the same state."""

    state: int
    terminal: str
    path: tuple[str, ...]
    kind: str
    actions: tuple[PossibleAction, ...]

    def __str__(self):
        lines = []
        lines.append(
            f"State {self.state} ({self.kind}): when we have parsed '{' '.join(self.path)}' "
            f"and see '{self.terminal}' we don't know whether:"
        )
        lines.extend(f"- {action}" for action in self.actions)
        return "\n".join(lines)


class ConflictError(GrammarError):
    """The grammar is not SLR(1). Every conflict found is in `conflicts`."""

    conflicts: list[Conflict]

    def __init__(self, conflicts: list[Conflict]):
        self.conflicts = conflicts
        super().__init__(str(self))

    def __str__(self):
        return f"{len(self.conflicts)} conflicts:\n\n" + "\n\n".join(
            str(conflict) for conflict in self.conflicts
        )


###############################################################################
# Parse errors
###############################################################################
class ParseError(Exception):
    """The input could not be parsed."""


class UnexpectedTokenError(ParseError):
    """We saw a token that has no action in the current state."""

    token: "Token"
    state: int
    expected: tuple[str, ...]

    def __init__(self, token: "Token", state: int, expected: typing.Iterable[str]):
        self.token = token
        self.state = state
        self.expected = tuple(expected)

        if token.kind == "$":
            what = "end of input"
        else:
            what = token.kind
        message = f"Syntax error at {token.start}: unexpected {what}"
        if self.expected:
            message += f" (expected one of: {', '.join(self.expected)})"
        super().__init__(message)


class ActionError(ParseError):
    """A semantic action raised. The original exception is the __cause__."""

    production: "Production"

    def __init__(self, production: "Production", error: Exception):
        self.production = production
        super().__init__(f"The action for `{production}` failed: {error!r}")


class NestingTooDeepError(ParseError):
    """The input nests deeper than the Python stack allows. Each open nesting
    level is a procedure call, so this is bounded by the recursion limit.
    """

    position: int

    def __init__(self, position: int):
        self.position = position
        super().__init__(f"Input is nested too deeply to parse, at token {position}")
