"""Things both parsers need at runtime: tokens and token streams, trace
records, the default tree values, and the table-driven reference parser.
"""

import logging
import typing
from dataclasses import dataclass

from .errors import ActionError, ParseError, UnexpectedTokenError
from .grammar import EOF, Production, Terminal
from .table import Accept, ParseAction, ParseTable, Reduce, Shift

action_log = logging.getLogger("ascent.action")


###############################################################################
# Tokens
###############################################################################
@dataclass(frozen=True)
class Token:
    """A token from the lexer. `kind` is the name of a terminal; `value` is
    what the parser hands to semantic actions for it.
    """

    kind: str
    value: typing.Any = None
    start: int = 0
    end: int = 0


RawToken = Token | tuple[Terminal | str, typing.Any]


class Lexer(typing.Protocol):
    """Anything that produces tokens: an iterable of `Token`, or of
    `(terminal, value)` pairs where the terminal is a `Terminal` or its name.
    The end of the input is the end of the iteration, or a `$` token.
    """

    def __iter__(self) -> typing.Iterator[RawToken]: ...


def _as_token(raw: RawToken, index: int) -> Token:
    if isinstance(raw, Token):
        kind = raw.kind
        if isinstance(kind, Terminal):
            return Token(kind.name, raw.value, raw.start, raw.end)
        return raw

    kind, value = raw
    if isinstance(kind, Terminal):
        kind = kind.name
    return Token(kind, value, index, index + 1)


class TokenStream:
    """A stream of tokens with one token of lookahead.

    Tokens are pulled from the lexer only when they are needed, so a parse
    that fails never reads past the token it failed on. Once the lexer runs
    out the stream returns `$` tokens forever.
    """

    _source: typing.Iterator[RawToken] | None
    _next: Token | None
    _pulled: int
    _last_end: int

    position: int

    def __init__(self, tokens: Lexer):
        self._source = iter(tokens)
        self._next = None
        self._pulled = 0
        self._last_end = 0
        self.position = 0

    @classmethod
    def of(cls, tokens: "Lexer | TokenStream") -> "TokenStream":
        if isinstance(tokens, TokenStream):
            return tokens
        return cls(tokens)

    def peek(self) -> Token:
        """The next token, without consuming it."""
        if self._next is None:
            self._next = self._pull()
        return self._next

    def advance(self) -> Token:
        """Consume the next token and return it."""
        token = self.peek()
        if token.kind != EOF.name:
            self._next = None
        self.position += 1
        return token

    def _pull(self) -> Token:
        if self._source is not None:
            raw = next(self._source, None)
            if raw is not None:
                token = _as_token(raw, self._pulled)
                self._pulled += 1
                self._last_end = token.end
                if token.kind == EOF.name:
                    self._source = None
                return token

            self._source = None

        return Token(EOF.name, None, self._last_end, self._last_end)


###############################################################################
# Values and traces
###############################################################################
@dataclass(frozen=True)
class Tree:
    """The value the default action makes: the name of the nonterminal and the
    values of the right hand side.
    """

    name: str
    children: tuple[typing.Any, ...]

    def format_lines(self) -> list[str]:
        lines = []

        def format_node(node, indent: int):
            match node:
                case Tree(name=name, children=children):
                    lines.append((" " * indent) + name)
                    for child in children:
                        format_node(child, indent + 2)

                case _:
                    lines.append((" " * indent) + repr(node))

        format_node(self, 0)
        return lines

    def format(self) -> str:
        return "\n".join(self.format_lines())


class Step(typing.NamedTuple):
    """One action taken by a parser: in `state`, seeing `terminal`, it did
    `action`.
    """

    state: int
    terminal: str
    action: ParseAction

    def __str__(self) -> str:
        return f"{self.state}: {self.terminal} -> {self.action}"


def apply_action(production: Production, values: typing.Sequence[typing.Any]) -> typing.Any:
    """Run the semantic action of a production over the values of its right
    hand side. Failures come out as ActionError.
    """
    action = production.action
    try:
        if action is None:
            return Tree(production.lhs.name, tuple(values))
        return action(*values)
    except (ParseError, RecursionError):
        raise
    except Exception as e:
        raise ActionError(production, e) from e


###############################################################################
# The table-driven parser
###############################################################################
ParseStack = list[typing.Tuple[int, typing.Any]]


class Parser:
    """A classic shift-reduce parser, with an explicit stack of states and
    values, that interprets a ParseTable.

    This is the reference the recursive-ascent parser is checked against: given
    the same table and input, both take exactly the same steps.
    """

    table: ParseTable

    def __init__(self, table: ParseTable):
        self.table = table

    def parse(self, tokens: "Lexer | TokenStream", *, trace: list[Step] | None = None):
        """Parse the tokens and return the value of the start symbol.

        If `trace` is provided, every action taken is appended to it. Raises
        UnexpectedTokenError on a syntax error and ActionError if a semantic
        action fails.
        """
        stream = TokenStream.of(tokens)

        # Our stack is a stack of tuples, where the first entry is the state
        # number and the second entry is the 'value' that was generated when
        # the state was pushed.
        stack: ParseStack = [(0, None)]

        al = action_log
        while True:
            token = stream.peek()
            state = stack[-1][0]

            action = self.table.actions[state].get(token.kind)
            if al.isEnabledFor(logging.INFO):
                al.info(
                    "{stack: <30} {input: <15} {action: <5}".format(
                        stack=repr([s[0] for s in stack[-5:]]),
                        input=token.kind,
                        action=str(action),
                    )
                )
            if trace is not None and action is not None:
                trace.append(Step(state, token.kind, action))

            match action:
                case Accept():
                    stream.advance()
                    return stack[-1][1]

                case Reduce(production=production):
                    size = len(production.rhs)
                    values = [value for _, value in stack[len(stack) - size :]]
                    value = apply_action(production, values)
                    if size > 0:
                        del stack[-size:]

                    goto = self.table.gotos[stack[-1][0]].get(production.lhs.name)
                    assert goto is not None  # Corrupt table?
                    stack.append((goto, value))

                case Shift(state=next_state):
                    stream.advance()
                    stack.append((next_state, token.value))

                case None:
                    raise UnexpectedTokenError(token, state, self.table.expected(state))

                case _:
                    typing.assert_never(action)
