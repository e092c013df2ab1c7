"""Token record shared by the lexer, parser and glyph table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TokenKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    CHARACTER = "character"
    IDENTIFIER = "identifier"
    COMMENT = "comment"
    WHITESPACE = "whitespace"
    NEWLINE = "newline"
    OPEN_PAREN = "open paren"
    CLOSE_PAREN = "close paren"
    OPEN_ARRAY = "open array"
    CLOSE_ARRAY = "close array"
    OPEN_LIST = "open list"
    CLOSE_LIST = "close list"
    SEPARATOR = "separator"
    BINDING = "binding"
    LIGATURE = "ligature"
    MONADIC_FUNCTION = "monadic function"
    DYADIC_FUNCTION = "dyadic function"
    MONADIC_MODIFIER = "monadic modifier"
    DYADIC_MODIFIER = "dyadic modifier"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    image: str
    line: int

    @property
    def declared_arity(self) -> int | None:
        """Arity digit carried by a binding marker such as ``←²``."""
        if self.kind is not TokenKind.BINDING or len(self.image) < 2:
            return None
        return "⁰¹²".index(self.image[1])
