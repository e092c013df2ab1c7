"""AST nodes for the fixed-arity array language."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class String:
    value: str


@dataclass(frozen=True)
class Char:
    value: str


@dataclass(frozen=True)
class Reference:
    name: str


@dataclass(frozen=True)
class GlyphRef:
    symbol: str
    arity: int


@dataclass(frozen=True)
class Mod1:
    symbol: str
    operand: "Expr"


@dataclass(frozen=True)
class Mod2:
    symbol: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Binding:
    name: str
    arity: int | None
    value: "Expr"


@dataclass(frozen=True)
class Expression:
    """Unresolved train; composition is decided at evaluation time."""

    tines: tuple["Expr", ...]


@dataclass(frozen=True)
class Strand:
    items: tuple["Expr", ...]


@dataclass(frozen=True)
class ArrayLiteral:
    items: tuple["Expr", ...]


@dataclass(frozen=True)
class ListLiteral:
    items: tuple["Expr", ...]


@dataclass(frozen=True)
class Program:
    statements: tuple["Expr", ...]


Expr = Union[Number, String, Char, Reference, GlyphRef, Mod1, Mod2, Binding, Expression, Strand, ArrayLiteral, ListLiteral]
Node = Union[Expr, Program]
