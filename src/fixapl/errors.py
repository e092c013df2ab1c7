"""Structured error types for lexer/parser/runtime separation."""

from __future__ import annotations


class FixAPLError(Exception):
    """Base class for structured fixapl errors."""


class LexError(FixAPLError):
    """No lexical pattern matched at the current position."""

    def __init__(self, message: str, line: int, snippet: str) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.snippet = snippet

    def __str__(self) -> str:
        return f"Lexing error at line {self.line}: {self.message} -- code: {self.snippet}"


class ParseError(FixAPLError):
    """Token stream does not match the grammar."""

    def __init__(self, message: str, line: int, expected: str = "", got: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.expected = expected
        self.got = got

    def __str__(self) -> str:
        expected = f"; expected {self.expected}" if self.expected else ""
        got = f"; got {self.got}" if self.got is not None else ""
        return f"Parsing error on line {self.line}: {self.message}{expected}{got}"


class FixAPLRuntimeError(FixAPLError):
    """Generic evaluation failure after a successful parse."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class FixAPLTypeError(FixAPLRuntimeError):
    """Value-kind incompatibility (e.g. adding a function)."""


class FixAPLShapeError(FixAPLRuntimeError):
    """Shape/rank incompatibility between arrays."""


class FixAPLIndexError(FixAPLShapeError):
    """Index outside the bounds of an axis."""


class FixAPLTrainError(FixAPLRuntimeError):
    """A train or modifier operand could not be composed."""
