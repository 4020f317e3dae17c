import pytest

from ascent import (
    Accept,
    ConflictError,
    Grammar,
    GrammarError,
    Nonterminal,
    Production,
    Reduce,
    Shift,
    Terminal,
    build_table,
    rule,
    seq,
)

from examples import json_subset


def _state_with(table, formatted: str) -> int:
    for index, items in enumerate(table.states):
        if formatted in items:
            return index
    raise AssertionError(f"No state has {formatted}")


def test_json_table():
    table = build_table(json_subset.GRAMMAR)
    assert len(table) == 11

    # The start state shifts the things a value can start with.
    row = table.resolve(0)
    assert set(row.keys()) == {"NUMBER", "["}
    assert all(isinstance(action, Shift) for action in row.values())
    assert set(table.gotos[0].keys()) == {"value", "array"}

    # value -> NUMBER * reduces on FOLLOW(value) and nothing else.
    number = _state_with(table, "value -> NUMBER *")
    assert table.expected(number) == ["$", ",", "]"]
    assert {str(action) for action in table.resolve(number).values()} == {
        "Reduce(value -> NUMBER)"
    }

    # Seeing $ after a value is acceptance.
    accept = _state_with(table, "__goal -> value * $")
    assert table.resolve(accept) == {"$": Accept()}


def test_resolve_returns_a_copy():
    table = build_table(json_subset.GRAMMAR)
    row = table.resolve(0)
    row.clear()
    assert len(table.resolve(0)) == 2


def test_depths():
    table = build_table(json_subset.GRAMMAR)
    assert table.depths[0] == 0
    assert table.depths[_state_with(table, "array -> [ elements ] *")] == 3


def test_build_is_deterministic():
    first = build_table(json_subset.GRAMMAR)
    second = build_table(json_subset.GRAMMAR)
    assert first == second
    assert first.format() == second.format()


def test_empty_production_reduces_on_follow():
    table = build_table(json_subset.EMPTY_PRODUCTION_GRAMMAR)
    state = _state_with(table, "elements_opt -> *")
    row = table.resolve(state)
    assert str(row["]"]) == "Reduce(elements_opt -> <empty>)"
    assert isinstance(row["NUMBER"], Shift)
    assert isinstance(row["["], Shift)
    assert "," not in row


def test_format():
    table = build_table(json_subset.GRAMMAR)
    lines = table.format().splitlines()
    assert lines[0].startswith("     | $      ,      NUMBER [      ]      |")
    assert "accept" in table.format()
    assert "r1: value -> NUMBER" in lines
    assert "r6: elements -> elements , value" in lines


def test_dangling_else():
    IF = Terminal("IF")
    THEN = Terminal("THEN")
    ELSE = Terminal("ELSE")
    OTHER = Terminal("OTHER")
    COND = Terminal("COND")

    @rule
    def stmt():
        return seq(IF, expr, THEN, stmt) | seq(IF, expr, THEN, stmt, ELSE, stmt) | OTHER

    @rule
    def expr():
        return COND

    with pytest.raises(ConflictError) as excinfo:
        build_table(Grammar.from_rules(stmt))

    (conflict,) = excinfo.value.conflicts
    assert conflict.terminal == "ELSE"
    assert conflict.kind == "shift/reduce"
    assert conflict.path == ("IF", "expr", "THEN", "stmt")
    assert [action.item for action in conflict.actions] == [
        "stmt -> IF expr THEN stmt *",
        "stmt -> IF expr THEN stmt * ELSE stmt",
    ]

    message = str(excinfo.value)
    assert "ELSE" in message
    assert "shift/reduce" in message
    assert "consume the token and keep going" in message
    assert "use the 4 values to make a stmt" in message


def test_reduce_reduce():
    ID = Terminal("id")
    S = Nonterminal("S")
    A = Nonterminal("A")
    B = Nonterminal("B")

    grammar = Grammar(
        [
            Production(S, (A,)),
            Production(S, (B,)),
            Production(A, (ID,)),
            Production(B, (ID,)),
        ],
        start=S,
    )
    with pytest.raises(ConflictError) as excinfo:
        grammar.build_table()

    (conflict,) = excinfo.value.conflicts
    assert conflict.terminal == "$"
    assert conflict.kind == "reduce/reduce"
    assert conflict.path == ("id",)


def test_not_slr():
    """The classic grammar that is LALR(1) but not SLR(1): FOLLOW(R) has '='
    in it, so after an L we can't tell whether to reduce.
    """
    EQUAL = Terminal("=")
    STAR = Terminal("*")
    ID = Terminal("id")

    @rule
    def S():
        return seq(L, EQUAL, R) | R

    @rule
    def L():
        return seq(STAR, R) | ID

    @rule
    def R():
        return L

    with pytest.raises(ConflictError) as excinfo:
        Grammar.from_rules(S).build_parser()

    # It's still a GrammarError, and a ValueError.
    assert isinstance(excinfo.value, GrammarError)
    assert isinstance(excinfo.value, ValueError)

    (conflict,) = excinfo.value.conflicts
    assert conflict.terminal == "="
    assert conflict.kind == "shift/reduce"


def test_all_conflicts_are_reported():
    X = Terminal("X")
    Y = Terminal("Y")
    S = Nonterminal("S")
    A = Nonterminal("A")
    B = Nonterminal("B")
    C = Nonterminal("C")
    D = Nonterminal("D")

    grammar = Grammar(
        [
            Production(S, (A,)),
            Production(S, (B,)),
            Production(S, (C, Y)),
            Production(S, (D, Y)),
            Production(A, (X,)),
            Production(B, (X,)),
            Production(C, (Y,)),
            Production(D, (Y,)),
        ],
        start=S,
    )
    with pytest.raises(ConflictError) as excinfo:
        build_table(grammar)

    assert sorted(c.terminal for c in excinfo.value.conflicts) == ["$", "Y"]
    assert str(excinfo.value).startswith("2 conflicts:")


def test_reductions_use_the_grammar_productions():
    table = build_table(json_subset.GRAMMAR)
    reductions = {
        action.production.index
        for row in table.actions
        for action in row.values()
        if isinstance(action, Reduce)
    }
    assert reductions == {1, 2, 3, 4, 5, 6}
    assert table.productions == json_subset.GRAMMAR.productions


def test_table_is_read_only():
    table = build_table(json_subset.GRAMMAR)
    with pytest.raises(TypeError):
        table.actions[0]["]"] = Accept()  # type: ignore
    with pytest.raises(TypeError):
        table.gotos[0]["elements"] = 1  # type: ignore

    # Equal by contents, but not usable as a key.
    assert table == build_table(json_subset.GRAMMAR)
    with pytest.raises(TypeError):
        hash(table)
