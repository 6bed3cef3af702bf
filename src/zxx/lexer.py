"""Lexer for the Z++ programming language.

Scans source text left to right and produces a flat token list. At each
position the longest lexeme wins; exact keyword and literal words shadow
the identifier rule. Characters that start no token are collected into
E001 diagnostics for the whole input before the lexer gives up.
"""

from __future__ import annotations

from zxx.errors import CompileError, Diagnostic, Reporter
from zxx.source import SourceFile, Span
from zxx.tokens import (
    KEYWORDS,
    LITERAL_WORDS,
    ONE_CHAR_OPERATORS,
    TWO_CHAR_OPERATORS,
    Token,
    TokenKind,
)

_WHITESPACE = frozenset(" \t\n\r")
_DIGITS = frozenset("0123456789")
_IDENT_START = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
_IDENT_CHARS = _IDENT_START | _DIGITS
# Characters that end a string literal run without closing it.
_STRING_STOPPERS = frozenset('"\\\r\n')
# Lone UTF-16 surrogates are not text; no rule accepts them.
_SURROGATES = range(0xD800, 0xE000)

_OUTDATED_HINT = "you might be running an outdated version of the compiler"
_STRING_HINT = (
    "string literals must close on the same line and cannot contain "
    "backslash escapes"
)


class Lexer:
    """Tokenizes Z++ source code."""

    def __init__(
        self,
        source: str,
        filename: str = "<stdin>",
        reporter: Reporter | None = None,
    ) -> None:
        self.source = source
        self.filename = filename
        self.reporter = reporter or Reporter(SourceFile(filename, source))
        self.pos = 0
        self.tokens: list[Token] = []
        self._error_start: int | None = None
        self._had_error = False
        # Byte offset of every character index, plus one past the end.
        self._offsets = [0]
        for ch in source:
            self._offsets.append(
                self._offsets[-1] + len(ch.encode("utf-8", errors="surrogatepass"))
            )

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return self.reporter.diagnostics

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list.

        Raises CompileError carrying every E001 diagnostic if any part of
        the input could not be tokenized.
        """
        while self.pos < len(self.source):
            if self.source[self.pos] in _WHITESPACE:
                self._flush_error()
                self.pos += 1
                continue

            match = self._match(self.pos)
            if match is None:
                if self._error_start is None:
                    self._error_start = self.pos
                self.pos += 1
                continue

            self._flush_error()
            kind, length = match
            self._emit(kind, self.pos, self.pos + length)
            self.pos += length

        self._flush_error()

        if self._had_error:
            raise CompileError(list(self.diagnostics))
        return self.tokens

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, index: int) -> str:
        if index < len(self.source):
            return self.source[index]
        return '\0'

    def _span(self, start: int, end: int) -> Span:
        return Span(self._offsets[start], self._offsets[end])

    def _emit(self, kind: TokenKind, start: int, end: int) -> Token:
        tok = Token(kind, self.source[start:end], self._span(start, end))
        self.tokens.append(tok)
        return tok

    def _flush_error(self) -> None:
        """Report the pending run of unrecognized characters, if any."""
        if self._error_start is None:
            return
        start, end = self._error_start, self.pos
        self._error_start = None
        self._had_error = True
        text = self.source[start:end]
        notes = [_OUTDATED_HINT]
        if '"' in text:
            notes.insert(0, _STRING_HINT)
        self.reporter.error(
            f"unrecognized token `{text}`",
            self._span(start, end),
            notes,
            code="E001",
            label="invalid token",
        )

    # ── Matching ─────────────────────────────────────────────────

    def _match(self, start: int) -> tuple[TokenKind, int] | None:
        """Longest token starting at *start*, as (kind, length)."""
        ch = self.source[start]
        if ch in _DIGITS:
            return TokenKind.NUMBER_LIT, self._match_number(start) - start
        if ch in _IDENT_START:
            return self._match_word(start)
        if ch == '"':
            end = self._match_string(start)
            if end is None:
                return None
            return TokenKind.STRING_LIT, end - start
        two = self.source[start:start + 2]
        if two in TWO_CHAR_OPERATORS:
            return TWO_CHAR_OPERATORS[two], 2
        if ch in ONE_CHAR_OPERATORS:
            return ONE_CHAR_OPERATORS[ch], 1
        return None

    def _match_number(self, start: int) -> int:
        end = start
        while self._peek(end) in _DIGITS:
            end += 1
        # A fraction needs at least one digit after the dot
        if self._peek(end) == '.' and self._peek(end + 1) in _DIGITS:
            end += 1
            while self._peek(end) in _DIGITS:
                end += 1
        return end

    def _match_word(self, start: int) -> tuple[TokenKind, int]:
        end = start
        while self._peek(end) in _IDENT_CHARS:
            end += 1
        word = self.source[start:end]
        if word in KEYWORDS:
            return KEYWORDS[word], end - start
        if word in LITERAL_WORDS:
            return LITERAL_WORDS[word], end - start
        return TokenKind.IDENTIFIER, end - start

    def _match_string(self, start: int) -> int | None:
        end = start + 1
        while end < len(self.source):
            ch = self.source[end]
            if ch in _STRING_STOPPERS or ord(ch) in _SURROGATES:
                break
            end += 1
        if end < len(self.source) and self.source[end] == '"':
            return end + 1
        return None


def tokenize(source: str, filename: str = "<stdin>") -> list[Token]:
    """Convenience wrapper: lex *source* with a fresh Lexer."""
    return Lexer(source, filename).lex()
