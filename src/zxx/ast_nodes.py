"""AST node definitions for the Z++ language."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from zxx.source import Span

# ── Values and types ─────────────────────────────────────────────


class Type(Enum):
    REFERENCE = "reference"
    VOID = "void"
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOLEAN = "boolean"
    NULL = "null"


@dataclass(frozen=True)
class IdentVal:
    name: str


@dataclass(frozen=True)
class StringVal:
    value: str


@dataclass(frozen=True)
class IntVal:
    value: int


@dataclass(frozen=True)
class FloatVal:
    value: float


@dataclass(frozen=True)
class BoolVal:
    value: bool


@dataclass(frozen=True)
class NullVal:
    pass


TypedValue = Union[IdentVal, StringVal, IntVal, FloatVal, BoolVal, NullVal]

_VALUE_TYPES: dict[type, Type] = {
    IdentVal: Type.REFERENCE,
    StringVal: Type.STRING,
    IntVal: Type.INT,
    FloatVal: Type.FLOAT,
    BoolVal: Type.BOOLEAN,
    NullVal: Type.NULL,
}


def type_of(value: TypedValue) -> Type:
    """The nominal type of a value, taken from its tag alone."""
    return _VALUE_TYPES[type(value)]


def value_text(value: TypedValue) -> str:
    """Source-like spelling of a value, for dumps and messages."""
    match value:
        case IdentVal(name=name):
            return name
        case StringVal(value=text):
            return f'"{text}"'
        case BoolVal(value=flag):
            return "true" if flag else "false"
        case NullVal():
            return "null"
        case IntVal(value=number) | FloatVal(value=number):
            return repr(number)
    raise TypeError(f"not a value: {value!r}")


# ── Conditions ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Comparison:
    left: TypedValue
    op: str | None  # None for a bare value used as a condition
    right: TypedValue | None
    span: Span


@dataclass(frozen=True)
class Negation:
    operand: Condition
    span: Span


@dataclass(frozen=True)
class Logical:
    op: str  # "&&" or "||"
    left: Condition
    right: Condition
    span: Span


Condition = Union[Comparison, Negation, Logical]


# ── Nodes ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Empty:
    """An absent node, such as a missing else branch."""


@dataclass(frozen=True)
class Block:
    body: list[AstNode]
    span: Span


@dataclass(frozen=True)
class Document:
    file_name: str
    body: Block

    @property
    def span(self) -> Span:
        return self.body.span


@dataclass(frozen=True)
class Identifier:
    name: str
    span: Span


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: list[TypedValue]
    span: Span


@dataclass(frozen=True)
class FuncDeclaration:
    name: str
    params: dict[str, Type]
    returns: Type
    body: Block
    span: Span


@dataclass(frozen=True)
class VarDeclaration:
    name: str
    is_mutable: bool
    is_static: bool
    value: TypedValue
    span: Span


@dataclass(frozen=True)
class VarAssignment:
    name: str
    new_value: TypedValue
    span: Span


@dataclass(frozen=True)
class Return:
    value: TypedValue | None
    span: Span


@dataclass(frozen=True)
class If:
    condition: Condition
    then_body: Block
    span: Span
    else_body: Block | If | Empty = field(default_factory=Empty)


@dataclass(frozen=True)
class While:
    condition: Condition
    body: Block
    span: Span


@dataclass(frozen=True)
class For:
    variable: Identifier
    iterable: TypedValue
    body: Block
    span: Span


Statement = Union[
    VarDeclaration, VarAssignment, FunctionCall, Return, If, While, For,
]

AstNode = Union[
    Empty, Document, Block, Identifier, FunctionCall, FuncDeclaration,
    VarDeclaration, VarAssignment, Return, If, While, For,
]
