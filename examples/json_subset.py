# A subset of JSON: numbers and arrays.
#
#   value    = NUMBER | array
#   array    = "[" "]" | "[" elements "]"
#   elements = value | elements "," value
#
# `elements` is left recursive, so the parser folds the list up one element
# at a time, appending to the same Python list.
import dataclasses
import re
import typing

from ascent import EOF, Grammar, Nonterminal, Production, Terminal, Token, rule, seq

NUMBER = Terminal("NUMBER")
LBRACKET = Terminal("[")
RBRACKET = Terminal("]")
COMMA = Terminal(",")


@dataclasses.dataclass
class Number:
    value: int


@dataclasses.dataclass
class Array:
    items: list


def _append(elements: list, _comma, value) -> list:
    elements.append(value)
    return elements


@rule
def value():
    return (NUMBER >> Number) | (array >> (lambda a: a))


@rule
def array():
    return (seq(LBRACKET, RBRACKET) >> (lambda _l, _r: Array([]))) | (
        seq(LBRACKET, elements, RBRACKET) >> (lambda _l, items, _r: Array(items))
    )


@rule
def elements():
    return (value >> (lambda v: [v])) | (seq(elements, COMMA, value) >> _append)


GRAMMAR = Grammar.from_rules(value)


# The same language with the empty list spelled as an empty production:
#
#   array         = "[" elements_opt "]"
#   elements_opt  = <empty> | elements
_value = Nonterminal("value")
_array = Nonterminal("array")
_elements = Nonterminal("elements")
_elements_opt = Nonterminal("elements_opt")

EMPTY_PRODUCTION_GRAMMAR = Grammar(
    [
        Production(_value, (NUMBER,), Number),
        Production(_value, (_array,), lambda a: a),
        Production(_array, (LBRACKET, _elements_opt, RBRACKET), lambda _l, items, _r: Array(items)),
        Production(_elements_opt, (), list),
        Production(_elements_opt, (_elements,), lambda items: items),
        Production(_elements, (_value,), lambda v: [v]),
        Production(_elements, (_elements, COMMA, _value), _append),
    ],
    start=_value,
)


_TOKEN_PATTERN = re.compile(r"\s*(?:(?P<NUMBER>-?[0-9]+)|(?P<punct>[\[\],]))")


def tokenize(text: str) -> typing.Iterator[Token]:
    """Turn text into tokens for either grammar in this module."""
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN_PATTERN.match(text, pos)
        if match is None:
            raise ValueError(f"Token error at {pos}: {text[pos:pos + 10]!r}")

        if match.group("NUMBER") is not None:
            yield Token(NUMBER.name, int(match.group("NUMBER")), match.start("NUMBER"), match.end())
        else:
            punct = match.group("punct")
            yield Token(punct, punct, match.start("punct"), match.end())
        pos = match.end()

    yield Token(EOF.name, None, pos, pos)
