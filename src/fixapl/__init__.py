"""fixapl public API."""

from .display import display
from .errors import (
    FixAPLError,
    FixAPLIndexError,
    FixAPLRuntimeError,
    FixAPLShapeError,
    FixAPLTrainError,
    FixAPLTypeError,
    LexError,
    ParseError,
)
from .evaluator import Environment, Session, evaluate, interpret, plan_train, resolve_train, run
from .glyphs import GLYPHS, Glyph, GlyphCategory, arity_of, by_alias, by_symbol, glyph_for_token, palette, primitive_symbols
from .lexer import lex, strip_trivia
from .parser import parse, parse_source
from .tokens import Token, TokenKind
from .values import Array, Character, Function, Num, Val, from_python, to_python, value_info

__all__ = [
    "lex",
    "strip_trivia",
    "parse",
    "parse_source",
    "evaluate",
    "interpret",
    "run",
    "display",
    "plan_train",
    "resolve_train",
    "Session",
    "Environment",
    "Token",
    "TokenKind",
    "GLYPHS",
    "Glyph",
    "GlyphCategory",
    "arity_of",
    "by_alias",
    "by_symbol",
    "glyph_for_token",
    "palette",
    "primitive_symbols",
    "Num",
    "Character",
    "Array",
    "Function",
    "Val",
    "from_python",
    "to_python",
    "value_info",
    "FixAPLError",
    "LexError",
    "ParseError",
    "FixAPLRuntimeError",
    "FixAPLTypeError",
    "FixAPLShapeError",
    "FixAPLIndexError",
    "FixAPLTrainError",
]
