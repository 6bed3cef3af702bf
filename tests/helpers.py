"""Shared test helpers for the Z++ front-end test suite."""

from __future__ import annotations

import pytest

from zxx.ast_nodes import Document
from zxx.errors import CompileError, Diagnostic
from zxx.lexer import Lexer
from zxx.parser import Parser


def parse(source: str) -> Document:
    """Lex and parse source, returning the Document."""
    tokens = Lexer(source, "test.zpp").lex()
    return Parser(tokens, "test.zpp").parse()


def parse_body(source: str) -> list:
    """Wrap statements in a function, parse, and return the body statements."""
    doc = parse(f"func main() {{ {source} }}")
    return doc.body.body[0].body.body


def parse_fails(source: str, code: str) -> Diagnostic:
    """Lex and parse source, asserting it aborts with the given error code."""
    with pytest.raises(CompileError) as excinfo:
        parse(source)
    errors = excinfo.value.errors
    assert errors, "CompileError raised without an error diagnostic"
    assert errors[-1].code == code, (
        f"Expected {code} but got: {[f'{d.code}: {d.message}' for d in errors]}"
    )
    return errors[-1]
