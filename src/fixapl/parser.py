"""Recursive-descent parser for the fixed-arity array language."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Final, Iterable, Iterator

from .ast import ArrayLiteral, Binding, Char, Expr, Expression, GlyphRef, ListLiteral, Mod1, Mod2, Number, Program, Reference, Strand, String
from .errors import ParseError
from .lexer import TRIVIA, decode_literal, lex
from .tokens import Token, TokenKind

logger = logging.getLogger(__name__)

_MAX_NESTING_DEPTH: Final[int] = max(1, int(os.environ.get("FIXAPL_MAX_NESTING_DEPTH", "64")))

_PRIMARY_START: Final[frozenset[TokenKind]] = frozenset(
    {
        TokenKind.NUMBER,
        TokenKind.STRING,
        TokenKind.CHARACTER,
        TokenKind.IDENTIFIER,
        TokenKind.MONADIC_FUNCTION,
        TokenKind.DYADIC_FUNCTION,
        TokenKind.OPEN_PAREN,
        TokenKind.OPEN_ARRAY,
        TokenKind.OPEN_LIST,
    }
)
_FUNCTION_ARITY: Final[dict[TokenKind, int]] = {
    TokenKind.MONADIC_FUNCTION: 1,
    TokenKind.DYADIC_FUNCTION: 2,
}


@dataclass
class _Parser:
    tokens: list[Token]
    index: int = 0
    depth: int = 0

    def parse_program(self) -> Program:
        statements: list[Expr] = []
        while True:
            self._skip_separators()
            if not self._starts_primary():
                break
            statements.append(self._parse_statement())

        tok = self._peek()
        if tok is not None:
            logger.warning("Parsing stopped on line %d at %s %r", tok.line, tok.kind.value, tok.image)
        logger.debug("Parsed %d statement(s)", len(statements))
        return Program(statements=tuple(statements))

    def _peek(self, offset: int = 0) -> Token | None:
        i = self.index + offset
        return self.tokens[i] if i < len(self.tokens) else None

    def _peek_kind(self) -> TokenKind | None:
        tok = self._peek()
        return None if tok is None else tok.kind

    def _advance(self) -> Token:
        tok = self.tokens[self.index]
        self.index += 1
        return tok

    def _match(self, kind: TokenKind) -> bool:
        if self._peek_kind() is kind:
            self._advance()
            return True
        return False

    def _expect(self, kind: TokenKind, expected: str) -> Token:
        if self._peek_kind() is not kind:
            self._error("Unexpected token", expected=expected)
        return self._advance()

    def _error(self, message: str, *, expected: str = "") -> None:
        tok = self._peek()
        if tok is None:
            line = self.tokens[-1].line if self.tokens else 1
            got = "end of input"
        else:
            line = tok.line
            got = f"{tok.kind.value} {tok.image!r}"
        raise ParseError(message, line, expected=expected, got=got)

    @contextmanager
    def _nested(self, opener: Token) -> Iterator[None]:
        self.depth += 1
        if self.depth > _MAX_NESTING_DEPTH:
            raise ParseError(
                f"Nesting exceeds the maximum depth of {_MAX_NESTING_DEPTH}",
                opener.line,
                got=repr(opener.image),
            )
        try:
            yield
        finally:
            self.depth -= 1

    def _skip_separators(self) -> None:
        while self._peek_kind() in (TokenKind.SEPARATOR, TokenKind.NEWLINE):
            self._advance()

    def _skip_newlines(self) -> bool:
        skipped = False
        while self._peek_kind() is TokenKind.NEWLINE:
            self._advance()
            skipped = True
        return skipped

    def _starts_primary(self) -> bool:
        return self._peek_kind() in _PRIMARY_START

    def _starts_binding(self) -> bool:
        nxt = self._peek(1)
        return self._peek_kind() is TokenKind.IDENTIFIER and nxt is not None and nxt.kind is TokenKind.BINDING

    def _parse_statement(self) -> Expr:
        if self._starts_binding():
            name = self._advance().image
            marker = self._advance()
            if not self._starts_primary():
                self._error("Binding has no value", expected="an expression after the binding marker")
            # The value may itself be a binding, so chains count toward the nesting depth.
            with self._nested(marker):
                value = self._parse_statement()
            return Binding(name=name, arity=marker.declared_arity, value=value)
        return self._parse_expression()

    def _parse_expression(self) -> Expr:
        tines = [self._parse_strand()]
        while self._starts_primary():
            if self._starts_binding():
                # A binding swallows the rest of the expression as its value.
                tines.append(self._parse_statement())
                break
            tines.append(self._parse_strand())
        if len(tines) == 1:
            return tines[0]
        return Expression(tines=tuple(tines))

    def _parse_strand(self) -> Expr:
        items = [self._parse_modifier_expression()]
        while self._match(TokenKind.LIGATURE):
            if not self._starts_primary():
                self._error("Ligature must join two values", expected="a value after '‿'")
            items.append(self._parse_modifier_expression())
        if len(items) == 1:
            return items[0]
        return Strand(items=tuple(items))

    def _parse_modifier_expression(self) -> Expr:
        expr = self._parse_primary()
        while self._peek_kind() is TokenKind.MONADIC_MODIFIER:
            expr = Mod1(symbol=self._advance().image, operand=expr)

        if self._peek_kind() is TokenKind.DYADIC_MODIFIER:
            symbol = self._advance().image
            if not self._starts_primary():
                self._error(f"Dyadic modifier {symbol!r} is missing its right operand", expected="a right operand")
            # A dyadic modifier ends the modifier-expression; it does not stack.
            expr = Mod2(symbol=symbol, left=expr, right=self._parse_primary())
        return expr

    def _parse_primary(self) -> Expr:
        tok = self._peek()
        if tok is None or tok.kind not in _PRIMARY_START:
            self._error("Unexpected token", expected="a value, function, or opening bracket")
            raise AssertionError("unreachable")

        if tok.kind is TokenKind.NUMBER:
            self._advance()
            return Number(value=float(tok.image.replace("¯", "-")))

        if tok.kind is TokenKind.STRING:
            self._advance()
            return String(value=decode_literal(tok.image, tok.line))

        if tok.kind is TokenKind.CHARACTER:
            self._advance()
            return Char(value=decode_literal(tok.image, tok.line))

        if tok.kind is TokenKind.IDENTIFIER:
            self._advance()
            return Reference(name=tok.image)

        if tok.kind in _FUNCTION_ARITY:
            self._advance()
            return GlyphRef(symbol=tok.image, arity=_FUNCTION_ARITY[tok.kind])

        if tok.kind is TokenKind.OPEN_PAREN:
            opener = self._advance()
            with self._nested(opener):
                if self._peek_kind() is TokenKind.CLOSE_PAREN:
                    self._error("Empty parentheses", expected="an expression")
                if not self._starts_primary():
                    self._error("Unexpected token", expected="an expression")
                expr = self._parse_statement()
                self._expect(TokenKind.CLOSE_PAREN, f"')' to close the parenthesis opened on line {opener.line}")
            return expr

        if tok.kind is TokenKind.OPEN_ARRAY:
            return ArrayLiteral(items=self._parse_bracketed(TokenKind.CLOSE_ARRAY, "]", "array"))

        return ListLiteral(items=self._parse_bracketed(TokenKind.CLOSE_LIST, "⟩", "list"))

    def _parse_bracketed(self, closing: TokenKind, closing_image: str, what: str) -> tuple[Expr, ...]:
        opener = self._advance()
        with self._nested(opener):
            self._skip_newlines()
            if self._peek_kind() is closing:
                self._error(f"Empty {what} literal", expected=f"at least one {what} element")

            items: list[Expr] = []
            while True:
                if not self._starts_primary():
                    if self._peek() is None:
                        self._error(f"Unclosed {what} bracket opened on line {opener.line}", expected=repr(closing_image))
                    self._error("Unexpected token", expected=f"{what} element")
                items.append(self._parse_statement())

                saw_newline = self._skip_newlines()
                if self._match(closing):
                    return tuple(items)
                if self._match(TokenKind.SEPARATOR):
                    self._skip_newlines()
                    if self._peek_kind() is closing:
                        self._error(f"Trailing separator in {what} literal", expected=f"{what} element")
                    continue
                if saw_newline:
                    continue
                if self._peek() is None:
                    self._error(f"Unclosed {what} bracket opened on line {opener.line}", expected=repr(closing_image))
                self._error("Unexpected token", expected=f"'⋄' or {closing_image!r}")


def parse(tokens: Iterable[Token]) -> Program:
    parser = _Parser(tokens=[tok for tok in tokens if tok.kind not in TRIVIA])
    try:
        return parser.parse_program()
    except RecursionError:
        tok = parser._peek()
        line = tok.line if tok is not None else (parser.tokens[-1].line if parser.tokens else 1)
        raise ParseError("Program nesting is too deep to parse", line) from None


def parse_source(source: str) -> Program:
    return parse(lex(source))
