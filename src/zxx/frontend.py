"""Front-end pipeline: source text -> tokens -> Document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TextIO

from zxx.ast_nodes import Document
from zxx.errors import CompileError, Diagnostic, DiagnosticRenderer, Reporter, Severity
from zxx.lexer import Lexer
from zxx.parser import Parser
from zxx.source import SourceFile, Span
from zxx.tokens import Token


@dataclass
class FrontendResult:
    """Outcome of compiling one source unit.

    Exactly one of two things holds: ``document`` is set (warnings may
    still be present), or ``document`` is None and ``diagnostics``
    contains at least one error.
    """

    source: SourceFile
    document: Document | None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    tokens: list[Token] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.document is not None

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]


def decode_source(
    name: str,
    data: bytes,
    *,
    stream: TextIO | None = None,
    color: bool = False,
) -> tuple[SourceFile, Reporter]:
    """Decode raw file bytes into a SourceFile and a Reporter bound to it.

    Bytes that are not valid UTF-8 are reported as E001 against a lossy
    decoding of the file; check ``reporter.has_errors()`` before lexing.
    """
    renderer = DiagnosticRenderer(color=color)
    try:
        source = SourceFile(name, data.decode("utf-8"))
    except UnicodeDecodeError as e:
        source = SourceFile(name, data.decode("utf-8", errors="replace"))
        reporter = Reporter(source, stream, renderer)
        reporter.error(
            f"invalid UTF-8 byte sequence {data[e.start:e.end]!r}",
            Span(e.start, e.end),
            ["source files must be encoded as UTF-8"],
            code="E001",
            label="not UTF-8",
        )
        return source, reporter
    return source, Reporter(source, stream, renderer)


def compile_source(
    name: str,
    text: str,
    *,
    stream: TextIO | None = None,
    color: bool = False,
) -> FrontendResult:
    """Lex and parse one source unit without raising on bad input.

    Diagnostics are rendered to *stream* as they are emitted when a stream
    is given.
    """
    source = SourceFile(name, text)
    return _run(source, Reporter(source, stream, DiagnosticRenderer(color=color)))


def compile_bytes(
    name: str,
    data: bytes,
    *,
    stream: TextIO | None = None,
    color: bool = False,
) -> FrontendResult:
    """Like compile_source, for file contents that may not be valid UTF-8."""
    source, reporter = decode_source(name, data, stream=stream, color=color)
    if reporter.has_errors():
        return FrontendResult(source, None, list(reporter.diagnostics))
    return _run(source, reporter)


def _run(source: SourceFile, reporter: Reporter) -> FrontendResult:
    try:
        tokens = Lexer(source.content, source.name, reporter).lex()
        document = Parser(tokens, source.name, reporter).parse()
    except CompileError as e:
        return FrontendResult(source, None, e.diagnostics)
    return FrontendResult(source, document, list(reporter.diagnostics), tokens)
