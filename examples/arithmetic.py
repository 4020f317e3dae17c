# Arithmetic expressions, evaluated as they are parsed.
#
# The usual precedence is spelled out in the grammar with one nonterminal per
# level, and the operators are left associative because the rules are left
# recursive.
import operator
import re
import typing

from ascent import EOF, Grammar, Terminal, Token, rule, seq

NUMBER = Terminal("NUMBER")
PLUS = Terminal("+")
MINUS = Terminal("-")
STAR = Terminal("*")
SLASH = Terminal("/")
LPAREN = Terminal("(")
RPAREN = Terminal(")")


def _same(value):
    return value


def _binary(op: typing.Callable[[typing.Any, typing.Any], typing.Any]):
    return lambda left, _op, right: op(left, right)


@rule
def expression():
    return (
        (seq(expression, PLUS, term) >> _binary(operator.add))
        | (seq(expression, MINUS, term) >> _binary(operator.sub))
        | (term >> _same)
    )


@rule
def term():
    return (
        (seq(term, STAR, factor) >> _binary(operator.mul))
        | (seq(term, SLASH, factor) >> _binary(operator.truediv))
        | (factor >> _same)
    )


@rule
def factor():
    return (
        (NUMBER >> _same)
        | (seq(LPAREN, expression, RPAREN) >> (lambda _l, e, _r: e))
        | (seq(MINUS, factor) >> (lambda _m, f: -f))
    )


GRAMMAR = Grammar.from_rules(expression)

_TOKEN_PATTERN = re.compile(r"\s*(?:(?P<NUMBER>[0-9]+(?:\.[0-9]+)?)|(?P<op>[-+*/()]))")


def tokenize(text: str) -> typing.Iterator[Token]:
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN_PATTERN.match(text, pos)
        if match is None:
            raise ValueError(f"Token error at {pos}: {text[pos:pos + 10]!r}")

        number = match.group("NUMBER")
        if number is not None:
            value = float(number) if "." in number else int(number)
            yield Token(NUMBER.name, value, match.start("NUMBER"), match.end())
        else:
            op = match.group("op")
            yield Token(op, op, match.start("op"), match.end())
        pos = match.end()

    yield Token(EOF.name, None, pos, pos)


def evaluate(text: str):
    """Evaluate an arithmetic expression."""
    return _PARSER.parse(tokenize(text))


_PARSER = GRAMMAR.build_parser()
