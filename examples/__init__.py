"""Example grammars, each with a lexer."""
