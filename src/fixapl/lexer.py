"""Tokenization for the fixed-arity array language."""

from __future__ import annotations

import logging
import re
from typing import Final, Iterable

from .errors import LexError
from .glyphs import ALIAS_LENGTHS, GlyphCategory, SYNTAX_ALIASES, by_alias, by_symbol
from .tokens import Token, TokenKind

logger = logging.getLogger(__name__)

_STRING_RE: Final = re.compile(r'"(?:\\.|[^"\\])*"', re.DOTALL)
_CHAR_RE: Final = re.compile(r"'(?:\\.|[^'\\])*'", re.DOTALL)
_IDENT_RE: Final = re.compile(r"[A-Z][A-Za-z]*")
_NUMBER_RE: Final = re.compile(r"[`¯]?[0-9]+(?:\.[0-9]+)?")
_COMMENT_RE: Final = re.compile(r"#[^\n]*")
_SPACE_RE: Final = re.compile(r"[ \t\f\v]+")
_NEWLINE_RE: Final = re.compile(r"\r?\n")
_PUNCT_RE: Final = re.compile(r"[()\[\]⟨⟩{}⋄;‿_]")
_BINDING_RE: Final = re.compile(r"[←:][0-2⁰¹²]?")
_OTHER_RE: Final = re.compile(r"[^\s\"'#A-Z0-9()\[\]⟨⟩{}⋄;‿_←:]+")
_ALIAS_RUN_RE: Final = re.compile(r"[a-z]+")

_PUNCT_KINDS: Final[dict[str, TokenKind]] = {
    "(": TokenKind.OPEN_PAREN,
    ")": TokenKind.CLOSE_PAREN,
    "[": TokenKind.OPEN_ARRAY,
    "]": TokenKind.CLOSE_ARRAY,
    "⟨": TokenKind.OPEN_LIST,
    "⟩": TokenKind.CLOSE_LIST,
    "⋄": TokenKind.SEPARATOR,
    "‿": TokenKind.LIGATURE,
}

_ARITY_DIGITS: Final[dict[str, str]] = {"0": "⁰", "1": "¹", "2": "²", "⁰": "⁰", "¹": "¹", "²": "²"}

_SIMPLE_ESCAPES: Final[dict[str, str]] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "'": "'",
}

TRIVIA: Final[frozenset[TokenKind]] = frozenset({TokenKind.WHITESPACE, TokenKind.COMMENT})


def _parse_escaped_codepoint(body: str, start: int, line: int) -> tuple[str, int]:
    if start >= len(body):
        raise LexError("Escape sequence is incomplete", line, body)

    esc = body[start]
    if esc in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[esc], start + 1

    if esc == "u":
        hex_end = start + 5
        digits = body[start + 1 : hex_end]
        if len(digits) != 4 or not all(ch in "0123456789abcdefABCDEF" for ch in digits):
            raise LexError("Invalid \\u escape", line, body)
        return chr(int(digits, 16)), hex_end

    raise LexError(f"Unknown escape sequence \\{esc}", line, body)


def decode_literal(image: str, line: int = 1) -> str:
    """Decode the body of a quoted string or character literal image."""
    body = image[1:-1]
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\":
            decoded, i = _parse_escaped_codepoint(body, i + 1, line)
            out.append(decoded)
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _scan_other(span: str, line: int) -> list[Token]:
    """Re-scan a run of glyph characters and lowercase glyph aliases."""
    tokens: list[Token] = []
    i = 0
    while i < len(span):
        ch = span[i]
        if ch == "`":
            ch = "¯"

        run = _ALIAS_RUN_RE.match(span, i)
        if run is not None:
            tokens.extend(_resolve_aliases(run.group(), line))
            i = run.end()
            continue

        glyph = by_symbol(ch)
        if glyph is None or glyph.category is GlyphCategory.SYNTAX:
            raise LexError(f"Unrecognized glyph {ch!r}", line, span[i : i + 10])
        kind = glyph.category.token_kind
        assert kind is not None
        tokens.append(Token(kind, glyph.symbol, line))
        i += 1
    return tokens


def _resolve_aliases(run: str, line: int) -> list[Token]:
    tokens: list[Token] = []
    i = 0
    while i < len(run):
        for size in ALIAS_LENGTHS:
            glyph = by_alias(run[i : i + size])
            if glyph is not None:
                break
        else:
            raise LexError(f"Unrecognized glyph name {run[i:]!r}", line, run[i : i + 10])
        kind = glyph.category.token_kind
        assert kind is not None
        tokens.append(Token(kind, glyph.symbol, line))
        i += len(glyph.alias or "")
    return tokens


def _merge_negative_numbers(tokens: list[Token]) -> list[Token]:
    merged: list[Token] = []
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        if (
            tok.kind is TokenKind.MONADIC_FUNCTION
            and tok.image == "¯"
            and nxt is not None
            and nxt.kind is TokenKind.NUMBER
            and not nxt.image.startswith("¯")
        ):
            merged.append(Token(TokenKind.NUMBER, "¯" + nxt.image, tok.line))
            i += 2
            continue
        merged.append(tok)
        i += 1
    return merged


def lex(source: str) -> list[Token]:
    tokens: list[Token] = []
    line = 1
    pos = 0

    while pos < len(source):
        if m := _STRING_RE.match(source, pos):
            decode_literal(m.group(), line)
            tokens.append(Token(TokenKind.STRING, m.group(), line))
        elif m := _CHAR_RE.match(source, pos):
            if len(decode_literal(m.group(), line)) != 1:
                raise LexError("Character literal must contain exactly one code point", line, source[pos : pos + 10])
            tokens.append(Token(TokenKind.CHARACTER, m.group(), line))
        elif m := _IDENT_RE.match(source, pos):
            tokens.append(Token(TokenKind.IDENTIFIER, m.group(), line))
        elif m := _NUMBER_RE.match(source, pos):
            tokens.append(Token(TokenKind.NUMBER, m.group().replace("`", "¯"), line))
        elif m := _COMMENT_RE.match(source, pos):
            tokens.append(Token(TokenKind.COMMENT, m.group(), line))
        elif m := _SPACE_RE.match(source, pos):
            tokens.append(Token(TokenKind.WHITESPACE, m.group(), line))
        elif m := _NEWLINE_RE.match(source, pos):
            tokens.append(Token(TokenKind.NEWLINE, m.group(), line))
        elif m := _PUNCT_RE.match(source, pos):
            symbol = SYNTAX_ALIASES.get(m.group(), m.group())
            tokens.append(Token(_PUNCT_KINDS[symbol], symbol, line))
        elif m := _BINDING_RE.match(source, pos):
            digit = m.group()[1:]
            tokens.append(Token(TokenKind.BINDING, "←" + _ARITY_DIGITS.get(digit, ""), line))
        elif m := _OTHER_RE.match(source, pos):
            tokens.extend(_scan_other(m.group(), line))
        elif source[pos] in "\"'":
            raise LexError("Unterminated literal", line, source[pos : pos + 10])
        else:
            raise LexError(f"Unexpected character {source[pos]!r}", line, source[pos : pos + 10])

        line += m.group().count("\n")
        pos = m.end()

    tokens = _merge_negative_numbers(tokens)
    logger.debug("Lexed %d tokens over %d line(s)", len(tokens), line)
    return tokens


def strip_trivia(tokens: Iterable[Token]) -> list[Token]:
    """Drop whitespace and comment tokens, as a host does before parsing."""
    return [tok for tok in tokens if tok.kind not in TRIVIA]
