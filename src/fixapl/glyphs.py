"""Glyph table: the single registry of primitive and syntax glyphs.

Each entry records the canonical symbol, a display name, the lowercase ASCII
alias accepted by the lexer, and the syntactic category. The lexer resolves
aliases through this table, the parser reads arities from it, the evaluator
dispatches on its symbols, and hosts use it to colour tokens.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Final, Mapping

from .tokens import Token, TokenKind


class GlyphCategory(str, Enum):
    MONADIC_FUNCTION = "monadic function"
    DYADIC_FUNCTION = "dyadic function"
    MONADIC_MODIFIER = "monadic modifier"
    DYADIC_MODIFIER = "dyadic modifier"
    SYNTAX = "syntax"

    @property
    def arity(self) -> int | None:
        if self in (GlyphCategory.MONADIC_FUNCTION, GlyphCategory.MONADIC_MODIFIER):
            return 1
        if self in (GlyphCategory.DYADIC_FUNCTION, GlyphCategory.DYADIC_MODIFIER):
            return 2
        return None

    @property
    def token_kind(self) -> TokenKind | None:
        if self is GlyphCategory.SYNTAX:
            return None
        return TokenKind(self.value)


@dataclass(frozen=True)
class Glyph:
    symbol: str
    name: str
    alias: str | None
    category: GlyphCategory

    @property
    def arity(self) -> int | None:
        return self.category.arity


_MF = GlyphCategory.MONADIC_FUNCTION
_DF = GlyphCategory.DYADIC_FUNCTION
_MM = GlyphCategory.MONADIC_MODIFIER
_DM = GlyphCategory.DYADIC_MODIFIER
_SY = GlyphCategory.SYNTAX

_TABLE: Final[tuple[Glyph, ...]] = (
    Glyph("=", "equal", "eq", _DF),
    Glyph("≠", "not equal", "ne", _DF),
    Glyph(">", "greater than", "grt", _DF),
    Glyph("≥", "greater or equal", "gte", _DF),
    Glyph("<", "less than", "les", _DF),
    Glyph("≤", "less or equal", "lte", _DF),
    Glyph("⊣", "left argument", "lft", _DF),
    Glyph("⊢", "right argument", "rgt", _DF),
    Glyph("⋅", "identity", "id", _MF),
    Glyph("+", "add", "add", _DF),
    Glyph("-", "subtract", "sub", _DF),
    Glyph("×", "multiply", "mul", _DF),
    Glyph("÷", "divide", "div", _DF),
    Glyph("%", "modulo", "mod", _DF),
    Glyph("↧", "minimum", "min", _DF),
    Glyph("↥", "maximum", "max", _DF),
    Glyph("⌊", "floor", "flo", _MF),
    Glyph("⁅", "round", "rou", _MF),
    Glyph("⌈", "ceiling", "cei", _MF),
    Glyph("¬", "not", "not", _MF),
    Glyph("¯", "negate", "ng", _MF),
    Glyph("≡", "match", "mat", _DF),
    Glyph("≢", "nomatch", "nmt", _DF),
    Glyph("⍳", "iota", "iot", _MF),
    Glyph("⧻", "length", "len", _MF),
    Glyph("△", "shape", "sha", _MF),
    Glyph(",", "flat", "fla", _MF),
    Glyph("⍮", "pair", "par", _DF),
    Glyph("⍪", "catenate", "cat", _DF),
    Glyph("⍴", "reshape", "res", _DF),
    Glyph("⊏", "select", "sel", _DF),
    Glyph("⊑", "pick", "pck", _DF),
    Glyph("¨", "each", "eac", _MM),
    Glyph("˜", "backwards", "bac", _MM),
    Glyph("˙", "self", "slf", _MM),
    Glyph("/", "reduce", "red", _MM),
    Glyph("\\", "scan", "sca", _MM),
    Glyph("∘", "atop", "jot", _DM),
    Glyph("○", "over", "ov", _DM),
    Glyph("(", "open parenthesis", None, _SY),
    Glyph(")", "close parenthesis", None, _SY),
    Glyph("[", "open array", None, _SY),
    Glyph("]", "close array", None, _SY),
    Glyph("⟨", "open list", None, _SY),
    Glyph("⟩", "close list", None, _SY),
    Glyph("⋄", "separator", None, _SY),
    Glyph("←", "binding", None, _SY),
    Glyph("‿", "ligature", None, _SY),
)

GLYPHS: Final[Mapping[str, Glyph]] = MappingProxyType({glyph.symbol: glyph for glyph in _TABLE})
_BY_ALIAS: Final[Mapping[str, Glyph]] = MappingProxyType(
    {glyph.alias: glyph for glyph in _TABLE if glyph.alias is not None}
)

# ASCII spellings of syntax glyphs.
SYNTAX_ALIASES: Final[Mapping[str, str]] = MappingProxyType(
    {"{": "⟨", "}": "⟩", ";": "⋄", ":": "←", "_": "‿"}
)

ALIAS_LENGTHS: Final[tuple[int, ...]] = (2, 3)


def by_symbol(symbol: str) -> Glyph | None:
    return GLYPHS.get(symbol)


def by_alias(alias: str) -> Glyph | None:
    return _BY_ALIAS.get(alias)


def arity_of(symbol: str) -> int | None:
    glyph = GLYPHS.get(symbol)
    return None if glyph is None else glyph.arity


def primitive_symbols(category: GlyphCategory | None = None) -> frozenset[str]:
    """Symbols of every executable glyph, optionally restricted to one category."""
    return frozenset(
        glyph.symbol
        for glyph in _TABLE
        if glyph.category is not GlyphCategory.SYNTAX and (category is None or glyph.category is category)
    )


def palette() -> tuple[Glyph, ...]:
    """All glyphs in table order, for building an on-screen palette."""
    return _TABLE


def glyph_for_token(token: Token) -> Glyph | None:
    """Glyph metadata for a token, used to highlight a token's category and name."""
    if token.kind in (
        TokenKind.MONADIC_FUNCTION,
        TokenKind.DYADIC_FUNCTION,
        TokenKind.MONADIC_MODIFIER,
        TokenKind.DYADIC_MODIFIER,
    ):
        return GLYPHS.get(token.image)
    if token.kind is TokenKind.BINDING:
        return GLYPHS["←"]
    if token.kind in _SYNTAX_TOKEN_KINDS:
        return GLYPHS.get(token.image)
    return None


_SYNTAX_TOKEN_KINDS: Final[frozenset[TokenKind]] = frozenset(
    {
        TokenKind.OPEN_PAREN,
        TokenKind.CLOSE_PAREN,
        TokenKind.OPEN_ARRAY,
        TokenKind.CLOSE_ARRAY,
        TokenKind.OPEN_LIST,
        TokenKind.CLOSE_LIST,
        TokenKind.SEPARATOR,
        TokenKind.LIGATURE,
    }
)
