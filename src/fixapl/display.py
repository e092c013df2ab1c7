"""Canonical text rendering of runtime values."""

from __future__ import annotations

import json
import math
from decimal import Decimal

from .values import Array, Character, Function, Num, Val, is_string, major_cells

_ARITY_TAGS = {0: "niladic function", 1: "monadic function", 2: "dyadic function"}


def format_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "∞" if value > 0 else "¯∞"
    # Shortest round-trip digits, always written positionally.
    text = str(int(value)) if value.is_integer() else format(Decimal(repr(value)), "f")
    return "¯" + text[1:] if text.startswith("-") else text


def _quote(text: str, mark: str) -> str:
    body = json.dumps(text, ensure_ascii=False)[1:-1]
    if mark == "'":
        body = body.replace('\\"', '"').replace("'", "\\'")
    return f"{mark}{body}{mark}"


def display(value: Val) -> str:
    """Render ``value``; never raises for a well-formed value."""
    if isinstance(value, Num):
        return format_number(value.value)
    if isinstance(value, Character):
        return _quote(value.text, "'")
    if isinstance(value, Function):
        return _ARITY_TAGS.get(value.arity, f"{value.arity}-argument function")
    if isinstance(value, Array):
        if not value.data:
            return "[]"
        if is_string(value):
            return _quote("".join(item.text for item in value.data), '"')  # type: ignore[union-attr]
        if value.rank == 0:
            return "⊂" + display(value.data[0])
        return "[" + " ⋄ ".join(display(cell) for cell in major_cells(value)) + "]"
    return repr(value)
