"""Parser for the Z++ programming language.

Recursive descent over the token list with one token of lookahead. Only
function declarations are accepted at the top level; anything else is
reported with a warning and skipped. The first error aborts the whole
parse by raising CompileError.
"""

from __future__ import annotations

from typing import NoReturn

from zxx.ast_nodes import (
    Block,
    BoolVal,
    Comparison,
    Condition,
    Document,
    FloatVal,
    For,
    FuncDeclaration,
    FunctionCall,
    Identifier,
    IdentVal,
    If,
    IntVal,
    Logical,
    Negation,
    NullVal,
    Return,
    Statement,
    StringVal,
    Type,
    TypedValue,
    VarAssignment,
    VarDeclaration,
    While,
    type_of,
)
from zxx.errors import CompileError, Diagnostic, Reporter
from zxx.source import SourceFile, Span, merge_span
from zxx.tokens import KIND_TEXT, LITERALS, Token, TokenKind

TYPE_NAMES: dict[str, Type] = {
    "string": Type.STRING,
    "int": Type.INT,
    "float": Type.FLOAT,
    "bool": Type.BOOLEAN,
    "boolean": Type.BOOLEAN,
    "void": Type.VOID,
    "null": Type.NULL,
    "ref": Type.REFERENCE,
}

_COMPARISON_OPS = frozenset({
    TokenKind.EQUAL, TokenKind.NOT_EQUAL,
    TokenKind.GREATER, TokenKind.LESS,
    TokenKind.GREATER_EQUAL, TokenKind.LESS_EQUAL,
})

_MODIFIERS = ("mutable", "static")

# Limit on open blocks plus else-if links (the function body counts), and
# separately on a run of `!` prefixes.
MAX_NESTING = 128


class TokenCursor:
    """Forward-only position over a token list."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.index = 0

    @property
    def at_end(self) -> bool:
        return self.index >= len(self.tokens)

    @property
    def previous(self) -> Token | None:
        if self.index > 0:
            return self.tokens[self.index - 1]
        return None

    def peek(self, offset: int = 0) -> Token | None:
        idx = self.index + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return None

    def at(self, kind: TokenKind) -> bool:
        tok = self.peek()
        return tok is not None and tok.kind == kind

    def advance(self) -> Token:
        tok = self.peek()
        if tok is None:
            raise IndexError("advance past end of token list")
        self.index += 1
        return tok

    def expect(self, kind: TokenKind) -> Token | None:
        """Consume and return the current token if it has *kind*."""
        if self.at(kind):
            return self.advance()
        return None


def allows_reassignment(declaration: VarDeclaration, assignment: VarAssignment) -> bool:
    """Whether *assignment* may legally overwrite *declaration*."""
    if not declaration.is_mutable:
        return False
    return type_of(declaration.value) == type_of(assignment.new_value)


def _expected_name(kind: TokenKind) -> str:
    if kind == TokenKind.IDENTIFIER or kind in LITERALS:
        return KIND_TEXT[kind]
    return f"`{KIND_TEXT[kind]}`"


class Parser:
    """Parses a list of tokens into a Z++ Document."""

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<stdin>",
        reporter: Reporter | None = None,
    ) -> None:
        self.cursor = TokenCursor(tokens)
        self.filename = filename
        self.reporter = reporter or Reporter(SourceFile(filename, ""))
        self._scopes: list[dict[str, VarDeclaration]] = []
        self._depth = 0

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return self.reporter.diagnostics

    # ── Diagnostics ──────────────────────────────────────────────

    def _fail(
        self, message: str, span: Span, notes: list[str], code: str, label: str = "",
    ) -> NoReturn:
        self.reporter.error(message, span, notes, code=code, label=label)
        raise CompileError(list(self.reporter.diagnostics))

    def _end_span(self) -> Span:
        last = self.cursor.tokens[-1] if self.cursor.tokens else None
        end = last.span.end if last is not None else 0
        return Span(end, end)

    def _unexpected(self, expected: str, context: str) -> NoReturn:
        tok = self.cursor.peek()
        notes = [f"while parsing {context}"]
        if tok is None:
            self._fail(
                f"expected {expected}, found end of input",
                self._end_span(), notes, code="E002",
                label=f"expected {expected} here",
            )
        self._fail(
            f"expected {expected}, found {tok.describe()}",
            tok.span, notes, code="E003",
            label="unexpected token",
        )

    def _expect(self, kind: TokenKind, context: str) -> Token:
        tok = self.cursor.expect(kind)
        if tok is None:
            self._unexpected(_expected_name(kind), context)
        return tok

    # ── Top-level parsing ────────────────────────────────────────

    def parse(self) -> Document:
        """Parse the entire token stream into a Document."""
        declarations: list[FuncDeclaration] = []

        while not self.cursor.at_end:
            tok = self.cursor.peek()
            if tok.kind == TokenKind.FUNC:
                declarations.append(self._parse_func_declaration())
                continue
            self.cursor.advance()
            self.reporter.warning(
                f"unrecognized top-level construct {tok.describe()}",
                tok.span,
                ["only function declarations are allowed at the top level"],
                code="PAR1",
            )

        if declarations:
            span = merge_span(declarations[0].span, declarations[-1].span)
        else:
            whole = self.reporter.source.full_span()
            span = Span(0, max(whole.end, self._end_span().end))
        return Document(file_name=self.filename, body=Block(declarations, span))

    # ── Function declarations ────────────────────────────────────

    def _parse_func_declaration(self) -> FuncDeclaration:
        context = "a function declaration"
        self.cursor.advance()  # 'func'
        name_tok = self._expect(TokenKind.IDENTIFIER, context)
        self._expect(TokenKind.LPAREN, context)
        params = self._parse_param_list()
        open_brace = self._expect(TokenKind.LBRACE, context)
        body, close_brace = self._parse_body(open_brace)
        return FuncDeclaration(
            name=name_tok.text,
            params=params,
            returns=Type.VOID,
            body=body,
            span=merge_span(name_tok.span, close_brace.span),
        )

    def _parse_param_list(self) -> dict[str, Type]:
        """Parse ``name: type`` pairs up to and including the closing paren."""
        context = "a parameter list"
        params: dict[str, Type] = {}
        if self.cursor.expect(TokenKind.RPAREN) is not None:
            return params

        while True:
            name_tok = self._expect(TokenKind.IDENTIFIER, context)
            self._expect(TokenKind.COLON, context)
            param_type = self._parse_type()
            if name_tok.text in params:
                self._fail(
                    f"duplicate parameter `{name_tok.text}`",
                    name_tok.span,
                    ["parameter names must be unique within a function"],
                    code="E004",
                    label="already declared",
                )
            params[name_tok.text] = param_type
            if self.cursor.expect(TokenKind.COMMA) is not None:
                continue
            self._expect(TokenKind.RPAREN, context)
            return params

    def _parse_type(self) -> Type:
        tok = self.cursor.peek()
        if tok is None or tok.kind not in (TokenKind.IDENTIFIER, TokenKind.NULL_LIT):
            self._unexpected("a type name", "a parameter list")
        self.cursor.advance()
        if tok.text not in TYPE_NAMES:
            self._fail(
                f"unknown type `{tok.text}`",
                tok.span,
                [f"known types are: {', '.join(TYPE_NAMES)}"],
                code="E005",
            )
        return TYPE_NAMES[tok.text]

    # ── Blocks and scopes ────────────────────────────────────────

    def _parse_block(self, context: str) -> Block:
        open_brace = self._expect(TokenKind.LBRACE, context)
        block, _ = self._parse_body(open_brace)
        return block

    def _parse_body(self, open_brace: Token) -> tuple[Block, Token]:
        """Parse statements up to and including the closing brace."""
        self._enter(open_brace)
        self._scopes.append({})
        statements: list[Statement] = []
        while not self.cursor.at(TokenKind.RBRACE):
            if self.cursor.at_end:
                self._unexpected("`}`", "a block")
            statements.append(self._parse_statement())
        close_brace = self.cursor.advance()
        self._scopes.pop()
        self._depth -= 1

        if statements:
            span = merge_span(statements[0].span, statements[-1].span)
        else:
            span = merge_span(open_brace.span, close_brace.span)
        return Block(statements, span), close_brace

    def _enter(self, opener: Token) -> None:
        self._depth += 1
        if self._depth > MAX_NESTING:
            self._too_deep(opener)

    def _too_deep(self, tok: Token) -> NoReturn:
        self._fail(
            f"nesting deeper than {MAX_NESTING} levels",
            tok.span,
            ["move the inner code into a separate function"],
            code="E008",
        )

    def _declare(self, decl: VarDeclaration) -> None:
        self._scopes[-1][decl.name] = decl

    def _lookup(self, name: str) -> VarDeclaration | None:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        return None

    # ── Statements ───────────────────────────────────────────────

    def _parse_statement(self) -> Statement:
        tok = self.cursor.peek()
        nxt = self.cursor.peek(1)
        match tok.kind:
            case TokenKind.RETURN:
                return self._parse_return()
            case TokenKind.IF:
                return self._parse_if()
            case TokenKind.WHILE:
                return self._parse_while()
            case TokenKind.FOR:
                return self._parse_for()
            case TokenKind.IDENTIFIER:
                if tok.text == "var" and nxt is not None and nxt.kind == TokenKind.IDENTIFIER:
                    return self._parse_var_declaration()
                if nxt is not None and nxt.kind == TokenKind.ASSIGN:
                    return self._parse_assignment()
                if nxt is not None and nxt.kind == TokenKind.LPAREN:
                    return self._parse_call()
                self.cursor.advance()
                self._unexpected("`=` or `(`", f"a statement starting with `{tok.text}`")
        self._unexpected("a statement", "a block")

    def _parse_var_declaration(self) -> VarDeclaration:
        context = "a variable declaration"
        start = self.cursor.advance()  # 'var'
        modifiers: set[str] = set()
        while True:
            tok = self.cursor.peek()
            nxt = self.cursor.peek(1)
            if (tok is None or tok.text not in _MODIFIERS
                    or nxt is None or nxt.kind != TokenKind.IDENTIFIER):
                break
            if tok.text in modifiers:
                self._fail(
                    f"duplicate modifier `{tok.text}`",
                    tok.span, [f"while parsing {context}"], code="E003",
                )
            modifiers.add(self.cursor.advance().text)

        name_tok = self._expect(TokenKind.IDENTIFIER, context)
        self._expect(TokenKind.ASSIGN, context)
        value, _ = self._parse_value(context)
        semi = self._expect(TokenKind.SEMICOLON, context)
        decl = VarDeclaration(
            name=name_tok.text,
            is_mutable="mutable" in modifiers,
            is_static="static" in modifiers,
            value=value,
            span=merge_span(start.span, semi.span),
        )
        self._declare(decl)
        return decl

    def _parse_assignment(self) -> VarAssignment:
        context = "an assignment"
        name_tok = self.cursor.advance()
        self.cursor.advance()  # '='
        value, _ = self._parse_value(context)
        semi = self._expect(TokenKind.SEMICOLON, context)
        node = VarAssignment(
            name=name_tok.text,
            new_value=value,
            span=merge_span(name_tok.span, semi.span),
        )
        self._check_reassignment(node)
        return node

    def _check_reassignment(self, node: VarAssignment) -> None:
        decl = self._lookup(node.name)
        if decl is None or allows_reassignment(decl, node):
            return
        if not decl.is_mutable:
            self._fail(
                f"cannot reassign immutable variable `{node.name}`",
                node.span,
                [
                    f"`{node.name}` is declared without `mutable`",
                    f"declare it as `var mutable {node.name}` to allow reassignment",
                ],
                code="E006",
            )
        old, new = type_of(decl.value), type_of(node.new_value)
        self._fail(
            f"mismatched types: cannot assign {new.value} to `{node.name}`",
            node.span,
            [f"`{node.name}` was declared as {old.value}"],
            code="E007",
            label=f"expected {old.value}, found {new.value}",
        )

    def _parse_call(self) -> FunctionCall:
        context = "a function call"
        name_tok = self.cursor.advance()
        self.cursor.advance()  # '('
        args: list[TypedValue] = []
        if self.cursor.expect(TokenKind.RPAREN) is None:
            while True:
                value, _ = self._parse_value(context)
                args.append(value)
                if self.cursor.expect(TokenKind.COMMA) is None:
                    break
            self._expect(TokenKind.RPAREN, context)
        semi = self._expect(TokenKind.SEMICOLON, context)
        return FunctionCall(
            name=name_tok.text, args=args, span=merge_span(name_tok.span, semi.span),
        )

    def _parse_return(self) -> Return:
        context = "a return statement"
        start = self.cursor.advance()  # 'return'
        value = None
        if not self.cursor.at(TokenKind.SEMICOLON):
            value, _ = self._parse_value(context)
        semi = self._expect(TokenKind.SEMICOLON, context)
        return Return(value=value, span=merge_span(start.span, semi.span))

    def _parse_if(self) -> If:
        context = "an if statement"
        start = self.cursor.advance()  # 'if'
        self._expect(TokenKind.LPAREN, context)
        condition = self._parse_condition()
        self._expect(TokenKind.RPAREN, context)
        then_body = self._parse_block(context)

        else_tok = self.cursor.expect(TokenKind.ELSE)
        if else_tok is None:
            return If(condition, then_body, merge_span(start.span, self.cursor.previous.span))

        if self.cursor.at(TokenKind.IF):
            self._enter(else_tok)
            else_body: Block | If = self._parse_if()
            self._depth -= 1
        else:
            else_body = self._parse_block(context)
        return If(
            condition, then_body,
            merge_span(start.span, self.cursor.previous.span),
            else_body,
        )

    def _parse_while(self) -> While:
        context = "a while loop"
        start = self.cursor.advance()  # 'while'
        self._expect(TokenKind.LPAREN, context)
        condition = self._parse_condition()
        self._expect(TokenKind.RPAREN, context)
        body = self._parse_block(context)
        return While(condition, body, merge_span(start.span, self.cursor.previous.span))

    def _parse_for(self) -> For:
        context = "a for loop"
        start = self.cursor.advance()  # 'for'
        self._expect(TokenKind.LPAREN, context)
        var_tok = self._expect(TokenKind.IDENTIFIER, context)
        self._expect(TokenKind.COLON, context)
        iterable, _ = self._parse_value(context)
        self._expect(TokenKind.RPAREN, context)
        body = self._parse_block(context)
        return For(
            variable=Identifier(var_tok.text, var_tok.span),
            iterable=iterable,
            body=body,
            span=merge_span(start.span, self.cursor.previous.span),
        )

    # ── Conditions ───────────────────────────────────────────────

    def _parse_condition(self) -> Condition:
        left = self._parse_and_condition()
        while self.cursor.expect(TokenKind.OR) is not None:
            right = self._parse_and_condition()
            left = Logical("||", left, right, merge_span(left.span, right.span))
        return left

    def _parse_and_condition(self) -> Condition:
        left = self._parse_unary_condition()
        while self.cursor.expect(TokenKind.AND) is not None:
            right = self._parse_unary_condition()
            left = Logical("&&", left, right, merge_span(left.span, right.span))
        return left

    def _parse_unary_condition(self) -> Condition:
        bangs: list[Token] = []
        while self.cursor.at(TokenKind.BANG):
            bangs.append(self.cursor.advance())
            if len(bangs) > MAX_NESTING:
                self._too_deep(bangs[-1])
        condition: Condition = self._parse_comparison()
        for bang in reversed(bangs):
            condition = Negation(condition, merge_span(bang.span, condition.span))
        return condition

    def _parse_comparison(self) -> Comparison:
        context = "a condition"
        left, left_span = self._parse_value(context)
        tok = self.cursor.peek()
        if tok is None or tok.kind not in _COMPARISON_OPS:
            return Comparison(left, None, None, left_span)
        self.cursor.advance()
        right, right_span = self._parse_value(context)
        return Comparison(left, tok.text, right, merge_span(left_span, right_span))

    # ── Values ───────────────────────────────────────────────────

    def _parse_value(self, context: str) -> tuple[TypedValue, Span]:
        tok = self.cursor.peek()
        if tok is None:
            self._unexpected("a value", context)
        match tok.kind:
            case TokenKind.IDENTIFIER:
                value: TypedValue = IdentVal(tok.text)
            case TokenKind.STRING_LIT:
                value = StringVal(tok.payload)
            case TokenKind.NUMBER_LIT:
                value = _number(tok.text)
            case TokenKind.BOOLEAN_LIT:
                value = BoolVal(tok.payload)
            case TokenKind.NULL_LIT:
                value = NullVal()
            case TokenKind.MINUS:
                self.cursor.advance()
                num_tok = self._expect(TokenKind.NUMBER_LIT, context)
                return _number("-" + num_tok.text), merge_span(tok.span, num_tok.span)
            case _:
                self._unexpected("a value", context)
        self.cursor.advance()
        return value, tok.span


def _number(text: str) -> IntVal | FloatVal:
    if "." in text:
        return FloatVal(float(text))
    return IntVal(int(text))


def parse(
    tokens: list[Token], filename: str = "<stdin>", reporter: Reporter | None = None,
) -> Document:
    """Convenience wrapper: parse *tokens* with a fresh Parser."""
    return Parser(tokens, filename, reporter).parse()
