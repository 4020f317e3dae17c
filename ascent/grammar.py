"""Grammars: the symbols, the productions, and a little sugar for writing them.

There are two ways to write a grammar. The low-level way is to build a list of
`Production` objects by hand and hand them to a `Grammar`:

    NUMBER = Terminal("NUMBER")
    PLUS = Terminal("+")
    expr = Nonterminal("expr")

    grammar = Grammar(
        [
            Production(expr, (expr, PLUS, NUMBER), lambda l, _, r: l + r),
            Production(expr, (NUMBER,), lambda n: n),
        ],
        start=expr,
    )

The high-level way is to write functions decorated with `@rule` that return
combinations of rules, and then gather the grammar from the start rule:

    @rule
    def expr():
        return (seq(expr, PLUS, NUMBER) >> (lambda l, _, r: l + r)) | (NUMBER >> (lambda n: n))

    grammar = Grammar.from_rules(expr)

`|` separates alternatives, `+` (or `seq`) makes sequences, and `>>` attaches a
semantic action to a whole alternative. An alternative without an action gets
the default action, which builds a `runtime.Tree`.

Either way, the resulting Grammar is immutable, and it is all the table
builder and the parsers ever look at.
"""

import abc
import dataclasses
import sys
import typing

from .errors import GrammarError, UndefinedNonterminalError

if typing.TYPE_CHECKING:
    from .executor import RecursiveAscentParser
    from .table import ParseTable


###############################################################################
# Symbols and productions
###############################################################################
class Rule:
    """A terminal, a nonterminal rule, or some other combination thereof.
    Rules are composed and then flattened into productions.
    """

    def __or__(self, other: "Rule") -> "Rule":
        return AlternativeRule(self, other)

    def __add__(self, other: "Rule") -> "Rule":
        return SequenceRule(self, other)

    def __rshift__(self, action: "Action") -> "Rule":
        return ActionRule(self, action)

    @abc.abstractmethod
    def flatten(self) -> typing.Generator["Alternative", None, None]:
        """Convert this potentially nested and branching set of rules into a
        series of nice, flat symbol lists, each with the semantic action that
        goes with it (or None for the default).

        e.g., if this rule is (X + (A | (B + C | D))) then flattening will
        yield something like:

            (X, A), None
            (X, B, C), None
            (X, D), None

        Nonterminal rules remain unchanged in the result; they are expanded
        when the grammar is gathered.
        """
        raise NotImplementedError()


@dataclasses.dataclass(frozen=True)
class Symbol:
    """A grammar symbol. Names are interned, so comparisons are cheap."""

    name: str

    def __post_init__(self):
        object.__setattr__(self, "name", sys.intern(self.name))

    def __str__(self) -> str:
        return self.name


@dataclasses.dataclass(frozen=True)
class Terminal(Symbol, Rule):
    """A token, or terminal symbol in the grammar."""

    def flatten(self) -> typing.Generator["Alternative", None, None]:
        # We are just ourselves when flattened.
        yield (self,), None

    def __repr__(self) -> str:
        return f"Terminal({self.name!r})"


@dataclasses.dataclass(frozen=True)
class Nonterminal(Symbol):
    """A symbol that is the left hand side of one or more productions."""

    def __repr__(self) -> str:
        return f"Nonterminal({self.name!r})"


EOF = Terminal("$")
GOAL = Nonterminal("__goal")

Action = typing.Callable[..., typing.Any]


@dataclasses.dataclass(frozen=True)
class Production:
    """A single production, `lhs -> rhs`.

    `action` is called with one value per symbol of `rhs` when the production
    is reduced, and returns the value of `lhs`. If it is None the parser uses
    the default action. Two productions are equal if their lhs and rhs are
    equal; the action and index don't count.
    """

    lhs: Nonterminal
    rhs: tuple[Symbol, ...]
    action: Action | None = dataclasses.field(default=None, compare=False, repr=False)
    index: int = dataclasses.field(default=-1, compare=False)

    def __post_init__(self):
        if not isinstance(self.rhs, tuple):
            object.__setattr__(self, "rhs", tuple(self.rhs))

    def __len__(self) -> int:
        return len(self.rhs)

    def __str__(self) -> str:
        if len(self.rhs) == 0:
            return f"{self.lhs} -> <empty>"
        return f"{self.lhs} -> {' '.join(s.name for s in self.rhs)}"


###############################################################################
# The grammar
###############################################################################
class Grammar:
    """An immutable context-free grammar.

    The grammar is augmented with a goal production, `__goal -> start $`,
    which is always production 0. Accepting the input means seeing the end of
    the input right after recognizing the start symbol in the goal production.
    """

    start: Nonterminal
    goal: Production
    productions: tuple[Production, ...]
    terminals: tuple[Terminal, ...]
    nonterminals: tuple[Nonterminal, ...]

    # Every symbol, terminal and nonterminal, sorted by name. Everything that
    # wants a repeatable order (state numbering, tables) iterates this.
    alphabet: tuple[Symbol, ...]
    symbol_key: dict[str, int]

    _by_lhs: dict[Nonterminal, tuple[Production, ...]]

    def __init__(self, productions: typing.Iterable[Production], start: Nonterminal | str):
        """Build a grammar from a list of productions.

        The productions keep their order, which is the order reductions are
        reported in conflict messages. Raises GrammarError (or its subclass
        UndefinedNonterminalError) if the grammar is malformed.
        """
        if isinstance(start, str):
            start = Nonterminal(start)

        goal = Production(GOAL, (start, EOF), index=0)
        numbered = [goal]
        seen = set()
        for production in productions:
            if not isinstance(production.lhs, Nonterminal):
                raise GrammarError(
                    f"The left hand side {production.lhs!r} of a production is not a Nonterminal"
                )
            for symbol in (production.lhs,) + production.rhs:
                if not isinstance(symbol, Symbol):
                    raise GrammarError(
                        f"{symbol!r} in a production for {production.lhs.name} is not a grammar symbol"
                    )
                if symbol.name in (EOF.name, GOAL.name):
                    raise GrammarError(
                        f"Can't use {symbol.name} in `{production}`, it's reserved."
                    )

            if production in seen:
                raise GrammarError(f"The production `{production}` appears more than once")
            seen.add(production)

            numbered.append(dataclasses.replace(production, index=len(numbered)))

        by_lhs: dict[Nonterminal, list[Production]] = {}
        for production in numbered:
            by_lhs.setdefault(production.lhs, []).append(production)

        if start not in by_lhs:
            raise UndefinedNonterminalError(start, goal)

        terminals: set[Terminal] = {EOF}
        nonterminals: set[Nonterminal] = set(by_lhs.keys())
        for production in numbered:
            for symbol in production.rhs:
                if isinstance(symbol, Terminal):
                    terminals.add(symbol)
                elif isinstance(symbol, Nonterminal):
                    if symbol not in by_lhs:
                        raise UndefinedNonterminalError(symbol, production)
                else:
                    raise GrammarError(f"{symbol!r} in `{production}` is not a grammar symbol")

        clashes = {t.name for t in terminals} & {nt.name for nt in nonterminals}
        if clashes:
            raise GrammarError(
                "These names are used for both terminals and nonterminals: "
                + ", ".join(sorted(clashes))
            )

        self.start = start
        self.goal = goal
        self.productions = tuple(numbered)
        self.terminals = tuple(sorted(terminals, key=lambda s: s.name))
        self.nonterminals = tuple(sorted(nonterminals, key=lambda s: s.name))
        self.alphabet = tuple(sorted(terminals | nonterminals, key=lambda s: s.name))
        self.symbol_key = {symbol.name: index for index, symbol in enumerate(self.alphabet)}
        self._by_lhs = {lhs: tuple(rules) for lhs, rules in by_lhs.items()}

    @classmethod
    def from_rules(cls, start: "NonterminalRule") -> "Grammar":
        """Gather a grammar from everything reachable from the `start` rule."""
        return cls(gather_productions(start), start=Nonterminal(start.name))

    def productions_for(self, symbol: Nonterminal) -> tuple[Production, ...]:
        """All the productions with `symbol` on the left hand side."""
        return self._by_lhs.get(symbol, ())

    def format(self) -> str:
        return "\n".join(f"{p.index: >3}: {p}" for p in self.productions)

    def build_table(self) -> "ParseTable":
        """Construct an SLR(1) parse table for this grammar."""
        from .table import build_table

        return build_table(self)

    def build_parser(self) -> "RecursiveAscentParser":
        """Construct a recursive-ascent parser for this grammar."""
        from .executor import RecursiveAscentParser

        return RecursiveAscentParser(self.build_table())


###############################################################################
# Sugar for constructing grammars
###############################################################################
# This is the "high level" API for constructing grammars.
RuleSymbol = typing.Union[Terminal, "NonterminalRule"]
Alternative = tuple[tuple[RuleSymbol, ...], Action | None]

_CURRENT_DEFINITION: str = "__global"
_CURRENT_GEN_INDEX: int = 0


class NonterminalRule(Rule):
    """A nonterminal defined by a function that returns its right hand sides.

    You probably don't want to create this directly; instead you probably want
    to use the `@rule` decorator.
    """

    fn: typing.Callable[[], Rule]
    name: str
    definition_location: str
    _body: list[Alternative] | None

    def __init__(self, fn: typing.Callable[[], Rule], name: str | None = None):
        self.fn = fn
        self.name = name or fn.__name__
        self.definition_location = f"{fn.__code__.co_filename}:{fn.__code__.co_firstlineno}"
        self._body = None

    @property
    def body(self) -> list[Alternative]:
        """The flattened body of the nonterminal: one entry per production."""
        global _CURRENT_DEFINITION
        global _CURRENT_GEN_INDEX

        if self._body is None:
            prev_defn = _CURRENT_DEFINITION
            prev_idx = _CURRENT_GEN_INDEX
            try:
                _CURRENT_DEFINITION = self.name
                _CURRENT_GEN_INDEX = 0
                self._body = list(self.fn().flatten())
            finally:
                _CURRENT_DEFINITION = prev_defn
                _CURRENT_GEN_INDEX = prev_idx

        return self._body

    def flatten(self) -> typing.Generator[Alternative, None, None]:
        # Yield ourselves, and trust that in time we will be asked to
        # generate our body.
        yield (self,), None

    def __repr__(self) -> str:
        return f"<rule {self.name}>"


class AlternativeRule(Rule):
    """A rule that matches if one or another rule matches."""

    def __init__(self, left: Rule, right: Rule):
        self.left = left
        self.right = right

    def flatten(self) -> typing.Generator[Alternative, None, None]:
        yield from self.left.flatten()
        yield from self.right.flatten()


class SequenceRule(Rule):
    """A rule that matches if a first part matches, followed by a second part."""

    def __init__(self, first: Rule, second: Rule):
        self.first = first
        self.second = second

    def flatten(self) -> typing.Generator[Alternative, None, None]:
        for first, first_action in self.first.flatten():
            for second, second_action in self.second.flatten():
                if first_action is not None or second_action is not None:
                    raise GrammarError(
                        "An action must apply to a whole alternative, not to part of a sequence"
                    )
                yield first + second, None


class ActionRule(Rule):
    """Attach a semantic action to every alternative of a rule."""

    def __init__(self, rule: Rule, action: Action):
        if not callable(action):
            raise GrammarError(f"{action!r} is not callable")
        self.rule = rule
        self.action = action

    def flatten(self) -> typing.Generator[Alternative, None, None]:
        for symbols, action in self.rule.flatten():
            if action is not None:
                raise GrammarError(f"The alternative {symbols} already has an action")
            yield symbols, self.action


class NothingRule(Rule):
    """A rule that matches no input. Use the singleton `Nothing`."""

    def flatten(self) -> typing.Generator[Alternative, None, None]:
        # It's quiet in here.
        yield (), None


Nothing = NothingRule()


def alt(*args: Rule) -> Rule:
    """A rule that matches one of a series of alternatives."""
    result = args[0]
    for rule in args[1:]:
        result = AlternativeRule(result, rule)
    return result


def seq(*args: Rule) -> Rule:
    """A rule that matches a sequence of rules."""
    result = args[0]
    for rule in args[1:]:
        result = SequenceRule(result, rule)
    return result


def _generated(fn: typing.Callable[[], Rule]) -> NonterminalRule:
    global _CURRENT_GEN_INDEX

    result = NonterminalRule(fn, name=f"__gen_{_CURRENT_DEFINITION}_{_CURRENT_GEN_INDEX}")
    _CURRENT_GEN_INDEX = _CURRENT_GEN_INDEX + 1
    return result


def _item(values: tuple) -> typing.Any:
    return values[0] if len(values) == 1 else values


def _start_list(*values):
    return [_item(values)]


def _append_list(accumulator, *values):
    accumulator.append(_item(values))
    return accumulator


def opt(*args: Rule) -> Rule:
    """A sequence that may be missing.

    This makes a new nonterminal whose value is the value of the sequence (a
    tuple if it has more than one symbol) or None if it is missing, so the
    alternative containing it always has the same number of values.
    """
    return _generated(lambda: (seq(*args) >> (lambda *values: _item(values))) | (Nothing >> (lambda: None)))


def one_or_more(*args: Rule) -> Rule:
    """A repetition of one or more of the sequence, as a Python list.

    The list is built left-recursively, appending to the same list after each
    repetition.
    """
    tail: NonterminalRule | None = None

    def impl() -> Rule:
        assert tail is not None
        return (seq(*args) >> _start_list) | (seq(tail, *args) >> _append_list)

    tail = _generated(impl)
    return tail


def zero_or_more(*args: Rule) -> Rule:
    """A repetition of zero or more of the sequence, as a Python list."""
    tail: NonterminalRule | None = None

    def impl() -> Rule:
        assert tail is not None
        return (Nothing >> list) | (seq(tail, *args) >> _append_list)

    tail = _generated(impl)
    return tail


@typing.overload
def rule(f: typing.Callable[[], Rule], /) -> NonterminalRule: ...


@typing.overload
def rule(
    name: str | None = None,
) -> typing.Callable[[typing.Callable[[], Rule]], NonterminalRule]: ...


def rule(
    name: str | None | typing.Callable = None,
) -> NonterminalRule | typing.Callable[[typing.Callable[[], Rule]], NonterminalRule]:
    """The decorator that marks a function as a nonterminal rule.

    As with all the best decorators, it can be called with or without arguments.
    If called with one argument, that argument is a name that overrides the name
    of the nonterminal, which defaults to the name of the function.
    """
    if callable(name):
        return rule()(name)

    def wrapper(f: typing.Callable[[], Rule]) -> NonterminalRule:
        return NonterminalRule(f, typing.cast(str | None, name))

    return wrapper


def gather_productions(start: NonterminalRule) -> list[Production]:
    """Starting from the given rule, gather all of the productions that make
    up the grammar, start rule first.
    """
    # NOTE: We use a dictionary here to preserve insertion order.
    rules: dict[NonterminalRule, None] = {}
    named: dict[str, NonterminalRule] = {}
    productions: list[Production] = []

    queue: list[NonterminalRule] = [start]
    while len(queue) > 0:
        nt = queue.pop(0)
        if nt in rules:
            continue
        rules[nt] = None

        existing = named.get(nt.name)
        if existing is not None:
            raise GrammarError(
                f"""Found more than one rule named {nt.name}:
- {existing.definition_location}
- {nt.definition_location}"""
            )
        named[nt.name] = nt

        lhs = Nonterminal(nt.name)
        for symbols, action in nt.body:
            rhs: list[Symbol] = []
            for symbol in symbols:
                if isinstance(symbol, NonterminalRule):
                    rhs.append(Nonterminal(symbol.name))
                    if symbol not in rules:
                        queue.append(symbol)

                elif isinstance(symbol, Terminal):
                    rhs.append(symbol)

                else:
                    typing.assert_never(symbol)

            productions.append(Production(lhs, tuple(rhs), action))

    return productions
