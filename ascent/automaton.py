"""The LR(0) automaton: item sets and the transitions between them.

(BTW, the notes I read to learn how all this works are at
http://dragonbook.stanford.edu/lecture-notes/Stanford-CS143/. Specifically,
handout 8, 'Bottom-up-parsing'.)
"""

import collections
import json
import logging
import typing

from .grammar import EOF, Grammar, Nonterminal, Production, Symbol, Terminal

build_log = logging.getLogger("ascent.build")


class Item:
    """A production with a position in it: `A -> x * y` means we have seen
    `x` and expect `y` next.

    We make a *lot* of these, so they cache the things we keep asking about
    and have no dict. They support hashing, equality and ordering, so item
    sets can be sorted into a canonical order.
    """

    __slots__ = ("production", "position", "next", "at_end", "_key", "_hash")

    production: Production
    position: int
    next: Symbol | None
    at_end: bool

    _key: tuple[int, int]
    _hash: int

    def __init__(self, production: Production, position: int = 0):
        assert 0 <= position <= len(production.rhs)
        self.production = production
        self.position = position

        at_end = position == len(production.rhs)
        self.at_end = at_end
        self.next = production.rhs[position] if not at_end else None

        self._key = (production.index, position)
        self._hash = hash(self._key)

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, value: object, /) -> bool:
        if value is self:
            return True
        if not isinstance(value, Item):
            return NotImplemented
        return self._key == value._key

    def __lt__(self, value) -> bool:
        if not isinstance(value, Item):
            return NotImplemented
        return self._key < value._key

    def advance(self) -> "Item":
        return Item(self.production, self.position + 1)

    @property
    def rest(self) -> tuple[Symbol, ...]:
        return self.production.rhs[(self.position + 1) :]

    def format(self) -> str:
        return "{name} -> {bits}".format(
            name=self.production.lhs.name,
            bits=" ".join(
                [
                    "* " + sym.name if i == self.position else sym.name
                    for i, sym in enumerate(self.production.rhs)
                ]
            )
            + (" *" if self.at_end else ""),
        ).replace("->  *", "-> *")

    def __repr__(self) -> str:
        return f"<Item {self.format()}>"


ItemSet = tuple[Item, ...]


def closure(grammar: Grammar, seeds: typing.Iterable[Item]) -> ItemSet:
    """Compute the closure of the seed items: whenever an item has its
    position just before a nonterminal, we must also be at the start of every
    production of that nonterminal.

    The result is sorted, so equal sets are equal tuples.
    """
    result: set[Item] = set()
    pending = list(seeds)
    while len(pending) > 0:
        item = pending.pop()
        if item in result:
            continue

        result.add(item)
        next = item.next
        if isinstance(next, Nonterminal):
            for production in grammar.productions_for(next):
                pending.append(Item(production))

    return tuple(sorted(result))


def goto(grammar: Grammar, items: typing.Iterable[Item], symbol: Symbol) -> ItemSet:
    """The item set we get to from `items` after seeing `symbol`. Empty if
    there is no such transition.
    """
    seeds = [item.advance() for item in items if item.next == symbol]
    return closure(grammar, seeds)


class Automaton:
    """All the item sets (states) of the grammar and their successors.

    State 0 is always the start state, the closure of `__goal -> * start $`.
    `successors[i]` maps a grammar symbol to the state you get to by seeing
    that symbol in state i. Terminal successors are shifts, nonterminal
    successors are gotos. There are never successors on `$`; seeing `$` after
    the start symbol is acceptance.
    """

    grammar: Grammar
    states: list[ItemSet]
    state_key: dict[ItemSet, int]
    successors: list[dict[Symbol, int]]

    def __init__(self, grammar: Grammar):
        self.grammar = grammar
        self.states = []
        self.state_key = {}
        self.successors = []

    def __len__(self) -> int:
        return len(self.states)

    def register_state(self, items: ItemSet) -> tuple[int, bool]:
        """Potentially add a new state. Returns the canonical ID of the state,
        along with a boolean indicating whether the state was just added.
        """
        existing = self.state_key.get(items)
        if existing is not None:
            return existing, False

        index = len(self.states)
        self.states.append(items)
        self.successors.append({})
        self.state_key[items] = index
        return index, True

    def add_successor(self, state: int, symbol: Symbol, successor: int):
        self.successors[state][symbol] = successor

    def shifts(self, state: int) -> dict[Terminal, int]:
        return {s: i for s, i in self.successors[state].items() if isinstance(s, Terminal)}

    def gotos(self, state: int) -> dict[Nonterminal, int]:
        return {s: i for s, i in self.successors[state].items() if isinstance(s, Nonterminal)}

    def kernel(self, state: int) -> ItemSet:
        """The items that are not there just because of the closure."""
        return tuple(
            item
            for item in self.states[state]
            if item.position > 0 or item.production is self.grammar.goal
        )

    def depth(self, state: int) -> int:
        """How many symbols of the stack the items of this state can see.

        This is the number of values the procedure for the state needs to
        hold: enough to reduce any complete item in it.
        """
        return max((item.position for item in self.states[state]), default=0)

    def find_path_to_state(self, target: int) -> list[Symbol]:
        """Trace the path of grammar symbols from the start state to the
        target state. This is useful in conflict reporting, because we'll be
        *at* a state and want to show the grammar symbols that got us there.

        This function raises KeyError if no path is found.
        """
        visited = set()

        queue: collections.deque = collections.deque()
        queue.appendleft((0, []))
        while len(queue) > 0:
            state, path = queue.pop()
            if state == target:
                return path

            if state in visited:
                continue
            visited.add(state)

            for symbol, successor in self.successors[state].items():
                queue.appendleft((successor, path + [symbol]))

        raise KeyError(f"Unable to find a path to state {target}!")

    def format_state(self, state: int) -> str:
        lines = [f"State {state}:"]
        lines.extend(f"  {item.format()}" for item in self.states[state])
        for symbol, successor in self.successors[state].items():
            lines.append(f"  on {symbol.name} -> {successor}")
        return "\n".join(lines)

    def dump_state(self) -> str:
        return json.dumps(
            {
                str(index): {
                    "items": [item.format() for item in items],
                    "successors": {k.name: str(v) for k, v in successors.items()},
                }
                for index, (items, successors) in enumerate(zip(self.states, self.successors))
            },
            indent=4,
        )


def build(grammar: Grammar) -> Automaton:
    """Generate all the states of the grammar, and their successors.

    States are interned by their item sets, so two ways of reaching the same
    set of items lead to the same state.
    """
    result = Automaton(grammar)

    initial = closure(grammar, [Item(grammar.goal)])
    result.register_state(initial)

    order = grammar.symbol_key
    pending = [initial]
    while len(pending) > 0:
        items = pending.pop(0)
        index = result.state_key[items]

        possible = sorted(
            {item.next for item in items if item.next is not None and item.next != EOF},
            key=lambda s: order[s.name],
        )
        for symbol in possible:
            successor = goto(grammar, items, symbol)
            assert len(successor) > 0
            successor_index, is_new = result.register_state(successor)
            if is_new:
                pending.append(successor)
            result.add_successor(index, symbol, successor_index)

    if build_log.isEnabledFor(logging.WARNING):
        reached = {item.production.lhs for items in result.states for item in items}
        unreachable = [nt.name for nt in grammar.nonterminals if nt not in reached]
        if unreachable:
            build_log.warning(f"Unreachable nonterminals: {', '.join(unreachable)}")

    build_log.info(f"Built {len(result.states)} states for {len(grammar.productions)} productions")
    return result
