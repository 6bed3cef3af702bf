"""Language server for .zpp files, served over stdio with pygls.

Every open document is re-run through the front end on each change; the
resulting diagnostics are published and the parsed functions back hover,
completion and the symbol outline.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from zxx import __version__
from zxx.ast_nodes import Document, FuncDeclaration
from zxx.errors import Diagnostic, Severity
from zxx.frontend import compile_source
from zxx.parser import TYPE_NAMES
from zxx.source import SourceFile, Span
from zxx.tokens import KEYWORDS, LITERAL_WORDS

_SEVERITY_MAP = {
    Severity.ERROR: lsp.DiagnosticSeverity.Error,
    Severity.WARNING: lsp.DiagnosticSeverity.Warning,
    Severity.INFO: lsp.DiagnosticSeverity.Information,
    Severity.NOTE: lsp.DiagnosticSeverity.Hint,
}

# Keywords, literal words, and the contextual declaration words
_KEYWORD_COMPLETIONS = sorted({*KEYWORDS, *LITERAL_WORDS, "var", "mutable", "static"})

_WORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _position(offset: int, source: SourceFile) -> lsp.Position:
    # LSP characters are UTF-16 code units unless another encoding is negotiated
    line, prefix = source.line_prefix(offset)
    units = len(prefix.encode("utf-16-le", errors="surrogatepass")) // 2
    return lsp.Position(line=line - 1, character=units)


def span_to_range(span: Span, source: SourceFile) -> lsp.Range:
    """Convert a byte Span to a 0-indexed LSP Range."""
    return lsp.Range(
        start=_position(span.start, source),
        end=_position(span.end, source),
    )


def _signature_display(decl: FuncDeclaration) -> str:
    params = ", ".join(f"{name}: {ty.value}" for name, ty in decl.params.items())
    return f"func {decl.name}({params}) -> {decl.returns.value}"


@dataclass
class DocumentState:
    """Front-end output for one open document."""

    source: SourceFile
    document: Document | None = None
    diagnostics: list[lsp.Diagnostic] = field(default_factory=list)

    def functions(self) -> list[FuncDeclaration]:
        if self.document is None:
            return []
        return [n for n in self.document.body.body if isinstance(n, FuncDeclaration)]

    def function_named(self, name: str) -> FuncDeclaration | None:
        for decl in self.functions():
            if decl.name == name:
                return decl
        return None


server = LanguageServer(
    "zxx-lsp", __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)
_state: dict[str, DocumentState] = {}


def _compile_diag(d: Diagnostic, source: SourceFile) -> lsp.Diagnostic:
    """Convert a zxx Diagnostic to an LSP Diagnostic."""
    if d.span is not None:
        span_range = span_to_range(d.span, source)
    else:
        origin = lsp.Position(line=0, character=0)
        span_range = lsp.Range(start=origin, end=origin)
    message = "\n".join([d.message, *(f"note: {n}" for n in d.notes)])
    return lsp.Diagnostic(
        range=span_range,
        severity=_SEVERITY_MAP.get(d.severity, lsp.DiagnosticSeverity.Error),
        source="zxx",
        code=d.code,
        message=message,
    )


def _analyze(uri: str, text: str) -> DocumentState:
    """Run the front end over *text* and cache the result under *uri*."""
    result = compile_source(uri, text)
    ds = DocumentState(
        source=result.source,
        document=result.document,
        diagnostics=[_compile_diag(d, result.source) for d in result.diagnostics],
    )
    _state[uri] = ds
    return ds


def _get_word_at(text: str, line: int, character: int) -> str:
    """Identifier touching a 0-indexed cursor position, or ''."""
    lines = text.split("\n")
    if not 0 <= line < len(lines):
        return ""
    for match in _WORD.finditer(lines[line]):
        # A cursor just past the last character still counts
        if match.start() <= character <= match.end():
            return match.group()
    return ""


def _publish(uri: str, ds: DocumentState) -> None:
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    doc = params.text_document
    _publish(doc.uri, _analyze(doc.uri, doc.text))


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    # Full sync: the last change holds the whole text
    text = params.content_changes[-1].text if params.content_changes else ""
    _publish(uri, _analyze(uri, text))


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    _state.pop(params.text_document.uri, None)


@server.feature(lsp.TEXT_DOCUMENT_HOVER)
def hover(params: lsp.HoverParams) -> lsp.Hover | None:
    ds = _state.get(params.text_document.uri)
    if ds is None:
        return None
    word = _get_word_at(ds.source.content, params.position.line, params.position.character)
    decl = ds.function_named(word)
    if decl is None:
        return None
    return lsp.Hover(contents=lsp.MarkupContent(
        kind=lsp.MarkupKind.Markdown,
        value=f"```zxx\n{_signature_display(decl)}\n```",
    ))


@server.feature(lsp.TEXT_DOCUMENT_COMPLETION)
def completion(params: lsp.CompletionParams) -> lsp.CompletionList:
    items = [
        lsp.CompletionItem(label=kw, kind=lsp.CompletionItemKind.Keyword)
        for kw in _KEYWORD_COMPLETIONS
    ]
    items += [
        lsp.CompletionItem(label=name, kind=lsp.CompletionItemKind.TypeParameter)
        for name in TYPE_NAMES
        if name not in LITERAL_WORDS
    ]
    ds = _state.get(params.text_document.uri)
    if ds is not None:
        items += [
            lsp.CompletionItem(
                label=decl.name,
                kind=lsp.CompletionItemKind.Function,
                detail=_signature_display(decl),
            )
            for decl in ds.functions()
        ]
    return lsp.CompletionList(is_incomplete=False, items=items)


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol]:
    ds = _state.get(params.text_document.uri)
    if ds is None:
        return []
    symbols = []
    for decl in ds.functions():
        name_end = decl.span.start + len(decl.name.encode("utf-8"))
        symbols.append(lsp.DocumentSymbol(
            name=decl.name,
            kind=lsp.SymbolKind.Function,
            range=span_to_range(decl.span, ds.source),
            selection_range=span_to_range(Span(decl.span.start, name_end), ds.source),
            detail=_signature_display(decl),
        ))
    return symbols


def main() -> None:
    """Start the Z++ language server on stdio."""
    server.start_io()
