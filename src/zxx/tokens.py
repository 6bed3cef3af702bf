"""Token kinds and token representation for the Z++ lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zxx.source import Span


class TokenKind(Enum):
    # Keywords
    FUNC = auto()
    RETURN = auto()
    IF = auto()
    ELSE = auto()
    FOR = auto()
    WHILE = auto()

    # Literals
    NUMBER_LIT = auto()
    BOOLEAN_LIT = auto()
    STRING_LIT = auto()
    NULL_LIT = auto()

    # Identifiers
    IDENTIFIER = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    ASSIGN = auto()
    EQUAL = auto()
    BANG = auto()
    NOT_EQUAL = auto()
    GREATER = auto()
    LESS = auto()
    GREATER_EQUAL = auto()
    LESS_EQUAL = auto()
    AND = auto()
    OR = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    LBRACE = auto()
    RBRACE = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    SEMICOLON = auto()
    COLON = auto()
    COMMA = auto()
    DOT = auto()
    AT = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    span: Span

    @property
    def payload(self) -> float | bool | str | None:
        """The literal value carried by the token, if any."""
        match self.kind:
            case TokenKind.NUMBER_LIT:
                return float(self.text)
            case TokenKind.BOOLEAN_LIT:
                return self.text == "true"
            case TokenKind.STRING_LIT:
                return self.text[1:-1]
            case TokenKind.IDENTIFIER:
                return self.text
        return None

    def describe(self) -> str:
        """Human-readable form used in diagnostics."""
        if self.kind == TokenKind.IDENTIFIER:
            return f"identifier `{self.text}`"
        if self.kind in LITERALS:
            return f"literal `{self.text}`"
        if self.kind in KEYWORDS.values():
            return f"keyword `{self.text}`"
        return f"`{self.text}`"


KEYWORDS: dict[str, TokenKind] = {
    "func": TokenKind.FUNC,
    "return": TokenKind.RETURN,
    "if": TokenKind.IF,
    "else": TokenKind.ELSE,
    "for": TokenKind.FOR,
    "while": TokenKind.WHILE,
}

# Exact words that lex to literals rather than identifiers.
LITERAL_WORDS: dict[str, TokenKind] = {
    "true": TokenKind.BOOLEAN_LIT,
    "false": TokenKind.BOOLEAN_LIT,
    "null": TokenKind.NULL_LIT,
}

LITERALS: frozenset[TokenKind] = frozenset({
    TokenKind.NUMBER_LIT,
    TokenKind.BOOLEAN_LIT,
    TokenKind.STRING_LIT,
    TokenKind.NULL_LIT,
})

TWO_CHAR_OPERATORS: dict[str, TokenKind] = {
    "==": TokenKind.EQUAL,
    "!=": TokenKind.NOT_EQUAL,
    ">=": TokenKind.GREATER_EQUAL,
    "<=": TokenKind.LESS_EQUAL,
    "&&": TokenKind.AND,
    "||": TokenKind.OR,
}

ONE_CHAR_OPERATORS: dict[str, TokenKind] = {
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    "*": TokenKind.STAR,
    "/": TokenKind.SLASH,
    "=": TokenKind.ASSIGN,
    "!": TokenKind.BANG,
    ">": TokenKind.GREATER,
    "<": TokenKind.LESS,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    ";": TokenKind.SEMICOLON,
    ":": TokenKind.COLON,
    ",": TokenKind.COMMA,
    ".": TokenKind.DOT,
    "@": TokenKind.AT,
}

# Spelling of each fixed-text kind, for "expected X" messages.
KIND_TEXT: dict[TokenKind, str] = {
    **{kind: word for word, kind in KEYWORDS.items()},
    **{kind: op for op, kind in TWO_CHAR_OPERATORS.items()},
    **{kind: op for op, kind in ONE_CHAR_OPERATORS.items()},
    TokenKind.IDENTIFIER: "identifier",
    TokenKind.NUMBER_LIT: "number",
    TokenKind.BOOLEAN_LIT: "boolean",
    TokenKind.STRING_LIT: "string",
    TokenKind.NULL_LIT: "null",
}
