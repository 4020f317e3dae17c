"""Inspect a grammar from the command line: its states, its FOLLOW sets, its
table, and what it does with a piece of input.

    python -m ascent examples.json_subset:GRAMMAR --table --parse '[1, [], 3]'
"""

import argparse
import importlib
import logging
import sys
import typing

from . import automaton, errors, executor, follow, runtime, table
from .grammar import Grammar, NonterminalRule


def load_member(target: str, predicate: typing.Callable[[typing.Any], bool], what: str):
    """Load `module:member`. Without a member, search the module for the one
    thing that satisfies the predicate.
    """
    module_name, _, member_name = target.partition(":")
    module = importlib.import_module(module_name)
    if member_name:
        return getattr(module, member_name)

    candidates = [value for value in vars(module).values() if predicate(value)]
    if len(candidates) != 1:
        raise ValueError(
            f"Found {len(candidates)} {what}s in {module_name}; say which one with {module_name}:NAME"
        )
    return candidates[0]


def load_grammar(target: str) -> Grammar:
    value = load_member(target, lambda v: isinstance(v, Grammar), "grammar")
    if isinstance(value, NonterminalRule):
        value = Grammar.from_rules(value)
    if not isinstance(value, Grammar):
        raise ValueError(f"{target} is not a Grammar or a rule")
    return value


def main(args: list[str]) -> int:
    parser = argparse.ArgumentParser(
        prog="ascent", description="Build an SLR(1) recursive-ascent parser and show its workings"
    )
    parser.add_argument(
        "grammar",
        help="The grammar to load, as module:member. The member may be a Grammar or the start "
        "rule. Without a member, the module is searched for a Grammar.",
    )
    parser.add_argument("--states", action="store_true", help="Print the LR(0) states")
    parser.add_argument("--follow", action="store_true", help="Print the FOLLOW sets")
    parser.add_argument("--table", action="store_true", help="Print the action table")
    parser.add_argument(
        "--parse",
        metavar="TEXT",
        default=None,
        help="Parse TEXT, printing every step and the result",
    )
    parser.add_argument(
        "--lexer",
        type=str,
        default=None,
        help="The lexer for --parse, as module:function; the function takes the text and returns "
        "tokens. The default is the `tokenize` function in the grammar's module.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Log more")

    parsed = parser.parse_args(args[1:])

    level = logging.WARNING
    if parsed.verbose == 1:
        level = logging.INFO
    elif parsed.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(name)s: %(message)s")

    grammar = load_grammar(parsed.grammar)

    if parsed.states:
        states = automaton.build(grammar)
        for state in range(len(states)):
            print(states.format_state(state))
        print()

    if parsed.follow:
        for nt, terminals in sorted(follow.compute_follow(grammar).items(), key=lambda x: x[0].name):
            print(f"FOLLOW({nt.name}) = {{{', '.join(sorted(t.name for t in terminals))}}}")
        print()

    try:
        parse_table = table.build_table(grammar)
    except errors.ConflictError as e:
        print(e, file=sys.stderr)
        return 1

    if parsed.table:
        print(parse_table.format())
        print()

    if parsed.parse is not None:
        lexer_target = parsed.lexer or f"{parsed.grammar.partition(':')[0]}:tokenize"
        tokenize = load_member(lexer_target, callable, "lexer")

        trace: list[runtime.Step] = []
        try:
            result = executor.RecursiveAscentParser(parse_table).parse(
                tokenize(parsed.parse), trace=trace
            )
        except errors.ParseError as e:
            for step in trace:
                print(step)
            print(e, file=sys.stderr)
            return 1

        for step in trace:
            print(step)
        if isinstance(result, runtime.Tree):
            print(result.format())
        else:
            print(repr(result))

    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
