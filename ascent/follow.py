"""FIRST and FOLLOW, the lookahead information SLR(1) uses to decide when to
reduce.

(These are covered in handout 7 of the Stanford CS143 notes, if you want to
backtrack a little.)
"""

import dataclasses
import types
import typing

from .grammar import EOF, Grammar, Nonterminal, Symbol, Terminal


def update_changed(items: set, other: typing.Iterable) -> bool:
    """Merge the `other` set into the `items` set, and return True if this
    changed the items set.
    """
    old_len = len(items)
    items.update(other)
    return old_len != len(items)


@dataclasses.dataclass(frozen=True)
class FirstInfo:
    """The first set of every symbol in a grammar. (Or, as it is commonly
    styled in textbooks, FIRST.)

    firsts[s] is the set of terminals that can begin anything derived from s.
    (For a terminal t, firsts[t] == {t}.)

    is_epsilon[s] is True if the nonterminal s can be empty, that is, if it can
    match zero symbols. A production with an empty right hand side makes its
    nonterminal empty, and so does a production made entirely of symbols that
    can be empty.
    """

    firsts: dict[Symbol, set[Terminal]]
    is_epsilon: dict[Symbol, bool]

    @classmethod
    def from_grammar(cls, grammar: Grammar) -> "FirstInfo":
        firsts: dict[Symbol, set[Terminal]] = {}
        epsilons: dict[Symbol, bool] = {}
        for symbol in grammar.alphabet:
            epsilons[symbol] = False
            if isinstance(symbol, Terminal):
                firsts[symbol] = {symbol}
            else:
                firsts[symbol] = set()

        # Iteration to fixed-point. Naive recursion goes forever on recursive
        # rules, and it turns out to be reasonably quick in practice.
        changed = True
        while changed:
            changed = False
            for production in grammar.productions:
                name = production.lhs
                f = firsts[name]
                if len(production.rhs) == 0:
                    changed = changed or not epsilons[name]
                    epsilons[name] = True
                    continue

                for index, symbol in enumerate(production.rhs):
                    changed = update_changed(f, firsts[symbol]) or changed

                    is_last = index == len(production.rhs) - 1
                    if is_last and epsilons[symbol]:
                        # The whole production can be empty, so I can be
                        # empty too.
                        changed = changed or not epsilons[name]
                        epsilons[name] = True

                    if not epsilons[symbol]:
                        break

        return FirstInfo(firsts=firsts, is_epsilon=epsilons)

    def first_of(self, symbols: typing.Iterable[Symbol]) -> tuple[set[Terminal], bool]:
        """The FIRST of a sequence of symbols, and whether the whole sequence
        can be empty.
        """
        result: set[Terminal] = set()
        for symbol in symbols:
            result.update(self.firsts[symbol])
            if not self.is_epsilon[symbol]:
                return result, False
        return result, True


@dataclasses.dataclass(frozen=True)
class FollowInfo:
    """The follow set of every nonterminal in a grammar. (Or, again, as the
    textbooks would have it, FOLLOW.)

    The follow set for a nonterminal is the set of terminals that can follow the
    nonterminal in a valid sentence. For every production `A -> x B y`, FIRST(y)
    goes into FOLLOW(B), and if y can be empty then FOLLOW(A) does too.

    The follow set of any reachable nonterminal is never empty: everything
    grounds out at '$' eventually, because the goal production is
    `__goal -> start $`.
    """

    follows: dict[Nonterminal, set[Terminal]]

    @classmethod
    def from_grammar(cls, grammar: Grammar, firsts: FirstInfo) -> "FollowInfo":
        follows: dict[Nonterminal, set[Terminal]] = {nt: set() for nt in grammar.nonterminals}
        follows[grammar.start].add(EOF)

        changed = True
        while changed:
            changed = False
            for production in grammar.productions:
                # Walk backwards through the rule. As long as everything we've
                # seen can be empty, FOLLOW[lhs] goes into FOLLOW[symbol]; the
                # first symbol that can't be empty stops that.
                epsilon = True
                rest: set[Terminal] = set()
                for symbol in reversed(production.rhs):
                    if isinstance(symbol, Nonterminal):
                        f = follows[symbol]
                        if epsilon:
                            changed = update_changed(f, follows[production.lhs]) or changed
                        changed = update_changed(f, rest) or changed

                    if firsts.is_epsilon[symbol]:
                        rest = rest | firsts.firsts[symbol]
                    else:
                        epsilon = False
                        rest = set(firsts.firsts[symbol])

        return FollowInfo(follows=follows)


def compute_follow(grammar: Grammar) -> typing.Mapping[Nonterminal, frozenset[Terminal]]:
    """Compute FOLLOW for every nonterminal of the grammar except the goal, as
    a read-only mapping."""
    firsts = FirstInfo.from_grammar(grammar)
    follows = FollowInfo.from_grammar(grammar, firsts)
    return types.MappingProxyType(
        {
            nt: frozenset(follow)
            for nt, follow in follows.follows.items()
            if nt != grammar.goal.lhs
        }
    )
