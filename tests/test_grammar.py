import pytest

from ascent import (
    EOF,
    Grammar,
    GrammarError,
    Nonterminal,
    Production,
    Terminal,
    Tree,
    UndefinedNonterminalError,
    one_or_more,
    opt,
    rule,
    seq,
    zero_or_more,
)


def _tokens(*toks: Terminal):
    # The value of each token is just its name.
    return [(t, t.name) for t in toks]


def _tree(treeform):
    if isinstance(treeform, str):
        return treeform
    else:
        assert isinstance(treeform, tuple)
        name = treeform[0]
        assert isinstance(name, str)
        return Tree(name=name, children=tuple(_tree(x) for x in treeform[1:]))


def test_default_actions_make_trees():
    PLUS = Terminal("+")
    LPAREN = Terminal("(")
    RPAREN = Terminal(")")
    IDENTIFIER = Terminal("id")

    @rule
    def E():
        return seq(E, PLUS, T) | T

    @rule
    def T():
        return seq(LPAREN, E, RPAREN) | IDENTIFIER

    parser = Grammar.from_rules(E).build_parser()
    tree = parser.parse(_tokens(IDENTIFIER, PLUS, LPAREN, IDENTIFIER, RPAREN))

    assert tree == _tree(("E", ("E", ("T", "id")), "+", ("T", "(", ("E", ("T", "id")), ")")))


def test_from_rules_gathers_start_first():
    A = Terminal("A")
    B = Terminal("B")

    @rule
    def S():
        return seq(X, X)

    @rule
    def X():
        return seq(A, X) | B

    grammar = Grammar.from_rules(S)
    assert grammar.start == Nonterminal("S")
    assert [str(p) for p in grammar.productions] == [
        "__goal -> S $",
        "S -> X X",
        "X -> A X",
        "X -> B",
    ]
    assert [p.index for p in grammar.productions] == [0, 1, 2, 3]
    assert grammar.goal is grammar.productions[0]

    # Aho & Ullman's example is fine for SLR(1).
    grammar.build_table()


def test_symbols_are_interned_and_tagged():
    a = Terminal("thing")
    b = Terminal("".join(["th", "ing"]))
    assert a == b
    assert a.name is b.name
    assert hash(a) == hash(b)
    assert Terminal("thing") != Nonterminal("thing")


def test_productions_compare_without_actions():
    lhs = Nonterminal("x")
    first = Production(lhs, [Terminal("A")], lambda a: 1)
    second = Production(lhs, (Terminal("A"),), lambda a: 2)
    assert first == second
    assert first.rhs == (Terminal("A"),)
    assert str(Production(lhs, ())) == "x -> <empty>"


def test_grammar_symbols():
    x = Nonterminal("x")
    y = Nonterminal("y")
    A = Terminal("A")
    grammar = Grammar([Production(x, (y, A)), Production(y, ())], start=x)

    assert grammar.terminals == (EOF, A)
    assert grammar.nonterminals == (Nonterminal("__goal"), x, y)
    assert [s.name for s in grammar.alphabet] == ["$", "A", "__goal", "x", "y"]
    assert grammar.productions_for(y) == (Production(y, ()),)
    assert grammar.productions_for(Nonterminal("nope")) == ()


def test_undefined_nonterminal():
    x = Nonterminal("x")
    missing = Nonterminal("missing")

    with pytest.raises(UndefinedNonterminalError) as excinfo:
        Grammar([Production(x, (Terminal("A"), missing))], start=x)

    assert excinfo.value.symbol == missing
    assert excinfo.value.production == Production(x, (Terminal("A"), missing))
    assert "missing" in str(excinfo.value)


def test_undefined_start():
    with pytest.raises(UndefinedNonterminalError) as excinfo:
        Grammar([Production(Nonterminal("x"), (Terminal("A"),))], start="y")

    assert excinfo.value.symbol == Nonterminal("y")


def test_conflicting_names():
    """Terminals and nonterminals cannot have the same name.

    The grammar could tell them apart, but error messages and formatted
    tables couldn't.
    """

    @rule("IDENTIFIER")
    def identifier():
        return IDENTIFIER

    IDENTIFIER = Terminal("IDENTIFIER")

    with pytest.raises(ValueError):
        Grammar.from_rules(identifier)


def test_reserved_names():
    x = Nonterminal("x")
    with pytest.raises(GrammarError):
        Grammar([Production(x, (Terminal("A"), EOF))], start=x)

    with pytest.raises(GrammarError):
        Grammar([Production(Nonterminal("__goal"), (Terminal("A"),))], start="__goal")


def test_duplicate_productions():
    x = Nonterminal("x")
    with pytest.raises(GrammarError):
        Grammar(
            [
                Production(x, (Terminal("A"),), lambda a: 1),
                Production(x, (Terminal("A"),), lambda a: 2),
            ],
            start=x,
        )


def test_duplicate_rule_names():
    X = Terminal("X")
    Y = Terminal("Y")

    @rule("thing")
    def first():
        return X

    @rule("thing")
    def second():
        return Y

    @rule
    def start():
        return first | second

    with pytest.raises(GrammarError) as excinfo:
        Grammar.from_rules(start)

    assert "more than one rule named thing" in str(excinfo.value)


def test_actions_apply_to_whole_alternatives():
    X = Terminal("X")
    Y = Terminal("Y")

    @rule
    def partial():
        return seq(X >> (lambda x: x), Y)

    with pytest.raises(GrammarError):
        Grammar.from_rules(partial)

    @rule
    def twice():
        return (X >> (lambda x: x)) >> (lambda x: x)

    with pytest.raises(GrammarError):
        Grammar.from_rules(twice)


def test_actions():
    NUMBER = Terminal("NUMBER")
    PLUS = Terminal("+")

    @rule
    def expr():
        return (seq(expr, PLUS, NUMBER) >> (lambda l, _, r: l + int(r))) | (NUMBER >> int)

    parser = Grammar.from_rules(expr).build_parser()
    assert parser.parse([(NUMBER, "1"), (PLUS, "+"), (NUMBER, "2"), (PLUS, "+"), (NUMBER, "3")]) == 6


def test_opt():
    NAME = Terminal("NAME")
    LPAREN = Terminal("(")
    RPAREN = Terminal(")")
    COMMA = Terminal(",")

    @rule
    def call():
        return seq(NAME, LPAREN, opt(args), RPAREN) >> (lambda n, _l, a, _r: (n, a or []))

    @rule
    def args():
        return (NAME >> (lambda n: [n])) | (seq(args, COMMA, NAME) >> (lambda a, _, n: a + [n]))

    grammar = Grammar.from_rules(call)
    assert Nonterminal("__gen_call_0") in grammar.nonterminals

    parser = grammar.build_parser()
    assert parser.parse(_tokens(NAME, LPAREN, RPAREN)) == ("NAME", [])
    assert parser.parse(_tokens(NAME, LPAREN, NAME, COMMA, NAME, RPAREN)) == (
        "NAME",
        ["NAME", "NAME"],
    )


def test_one_or_more():
    WORD = Terminal("WORD")

    @rule
    def sentence():
        return one_or_more(WORD) >> (lambda words: words)

    parser = Grammar.from_rules(sentence).build_parser()
    assert parser.parse([(WORD, "a"), (WORD, "b"), (WORD, "c")]) == ["a", "b", "c"]
    assert parser.parse([(WORD, "a")]) == ["a"]


def test_one_or_more_sequences():
    WORD = Terminal("WORD")
    SEMI = Terminal(";")

    @rule
    def sentences():
        return one_or_more(WORD, SEMI) >> (lambda words: words)

    parser = Grammar.from_rules(sentences).build_parser()
    assert parser.parse([(WORD, "a"), (SEMI, ";"), (WORD, "b"), (SEMI, ";")]) == [
        ("a", ";"),
        ("b", ";"),
    ]


def test_zero_or_more():
    WORD = Terminal("WORD")
    LBRACE = Terminal("{")
    RBRACE = Terminal("}")

    @rule
    def block():
        return seq(LBRACE, zero_or_more(WORD), RBRACE) >> (lambda _l, words, _r: words)

    parser = Grammar.from_rules(block).build_parser()
    assert parser.parse(_tokens(LBRACE, RBRACE)) == []
    assert parser.parse([(LBRACE, "{"), (WORD, "a"), (WORD, "b"), (RBRACE, "}")]) == ["a", "b"]

    # Every parse gets its own list.
    first = parser.parse(_tokens(LBRACE, RBRACE))
    second = parser.parse(_tokens(LBRACE, RBRACE))
    assert first is not second


def test_format():
    x = Nonterminal("x")
    grammar = Grammar([Production(x, (Terminal("A"),)), Production(x, ())], start=x)
    assert grammar.format().splitlines() == [
        "  0: __goal -> x $",
        "  1: x -> A",
        "  2: x -> <empty>",
    ]


def test_productions_must_use_symbols():
    x = Nonterminal("x")
    with pytest.raises(GrammarError):
        Grammar([Production(x, ("NUMBER",))], start=x)  # type: ignore

    with pytest.raises(GrammarError):
        Grammar([Production("x", (Terminal("A"),))], start=x)  # type: ignore


def test_actions_for_every_alternative():
    NUMBER = Terminal("NUMBER")
    PLUS = Terminal("+")

    @rule
    def expr():
        return (seq(expr, PLUS, NUMBER) >> (lambda l, _, r: l + r)) | (NUMBER >> (lambda n: n))

    parser = Grammar.from_rules(expr).build_parser()
    assert parser.parse([(NUMBER, 1), (PLUS, "+"), (NUMBER, 2)]) == 3
