"""Runtime value model and validators for the evaluator."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Sequence, Union

import jax
import jax.numpy as jnp

from .errors import FixAPLShapeError, FixAPLTypeError

# Numbers are doubles; dense kernels must agree with scalar literals.
jax.config.update("jax_enable_x64", True)


@dataclass(frozen=True)
class Num:
    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True)
class Character:
    """First-class character value."""

    codepoint: int

    def __post_init__(self) -> None:
        if not 0 <= self.codepoint <= 0x10FFFF:
            raise FixAPLTypeError(f"Code point {self.codepoint} is outside the unicode range")

    @property
    def text(self) -> str:
        return chr(self.codepoint)

    @classmethod
    def of(cls, text: str) -> "Character":
        if len(text) != 1:
            raise ValueError("Character must contain exactly one codepoint")
        return cls(ord(text))


@dataclass(frozen=True)
class Array:
    shape: tuple[int, ...]
    data: tuple["Val", ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", tuple(int(d) for d in self.shape))
        object.__setattr__(self, "data", tuple(self.data))
        if len(self.data) != math.prod(self.shape):
            raise FixAPLShapeError(
                f"Array data length {len(self.data)} does not match shape {list(self.shape)}"
            )

    @property
    def rank(self) -> int:
        return len(self.shape)


@dataclass(frozen=True, eq=False)
class Function:
    arity: int
    body: Callable[..., "Val"]
    name: str | None = None

    def __call__(self, *args: "Val") -> "Val":
        if len(args) != self.arity:
            label = self.name or "function"
            raise FixAPLTypeError(f"{label} takes {self.arity} argument(s) but was given {len(args)}")
        return self.body(*args)


Val = Union[Num, Character, Array, Function]


class ValueKind(str, Enum):
    NUMBER = "number"
    CHARACTER = "character"
    ARRAY = "array"
    FUNCTION = "function"


@dataclass(frozen=True)
class ValueInfo:
    kind: ValueKind
    shape: tuple[int, ...]
    rank: int
    depth: int


def kind_of(value: Val) -> ValueKind:
    if isinstance(value, Num):
        return ValueKind.NUMBER
    if isinstance(value, Character):
        return ValueKind.CHARACTER
    if isinstance(value, Array):
        return ValueKind.ARRAY
    if isinstance(value, Function):
        return ValueKind.FUNCTION
    raise TypeError(f"Unsupported runtime type {type(value).__name__}")


def shape_of(value: Val) -> tuple[int, ...]:
    if isinstance(value, Array):
        return value.shape
    return ()


def rank_of(value: Val) -> int:
    return len(shape_of(value))


def depth_of(value: Val) -> int:
    if not isinstance(value, Array):
        return 0
    if not value.data:
        return 1
    return 1 + max(depth_of(item) for item in value.data)


def value_info(value: Val) -> ValueInfo:
    shape = shape_of(value)
    return ValueInfo(kind=kind_of(value), shape=shape, rank=len(shape), depth=depth_of(value))


def validate_value(value: object, *, where: str = "value") -> None:
    if isinstance(value, (Num, Character, Function)):
        return
    if isinstance(value, Array):
        for idx, item in enumerate(value.data):
            validate_value(item, where=f"{where}[{idx}]")
        return
    raise TypeError(f"{where} has unsupported runtime type {type(value).__name__}")


def vector(items: Iterable[Val]) -> Array:
    data = tuple(items)
    return Array((len(data),), data)


def string(text: str) -> Array:
    return vector(Character(ord(ch)) for ch in text)


def is_string(value: Val) -> bool:
    return (
        isinstance(value, Array)
        and value.rank == 1
        and bool(value.data)
        and all(isinstance(item, Character) for item in value.data)
    )


def cells(value: Array, rank: int) -> tuple[tuple[int, ...], list[Val]]:
    """Split an array into a frame of cells holding the trailing ``rank`` axes.

    A negative rank counts from the array's own rank, so ``-1`` yields the
    major cells. Rank-0 cells are the elements themselves rather than boxes.
    """
    cell_rank = rank if rank >= 0 else value.rank + rank
    cell_rank = max(0, min(cell_rank, value.rank))
    frame = value.shape[: value.rank - cell_rank]
    if cell_rank == 0:
        return frame, list(value.data)

    cell_shape = value.shape[value.rank - cell_rank :]
    size = math.prod(cell_shape)
    count = math.prod(frame)
    return frame, [Array(cell_shape, value.data[i * size : (i + 1) * size]) for i in range(count)]


def major_cells(value: Array) -> list[Val]:
    return cells(value, -1)[1]


def pack(values: Sequence[Val]) -> Array:
    """Assemble results into one array.

    Arrays of one common shape stack along a new leading axis; anything else
    becomes a vector of (possibly nested) elements.
    """
    if values and all(isinstance(item, Array) for item in values):
        first = values[0].shape  # type: ignore[union-attr]
        if all(item.shape == first for item in values):  # type: ignore[union-attr]
            data: list[Val] = []
            for item in values:
                data.extend(item.data)  # type: ignore[union-attr]
            return Array((len(values), *first), tuple(data))
    return vector(values)


def dense_of(value: Val) -> jnp.ndarray | None:
    """Flat numeric view of a number or an array of plain numbers, else ``None``."""
    if isinstance(value, Num):
        return jnp.asarray(value.value, dtype=jnp.float64)
    if isinstance(value, Array) and all(isinstance(item, Num) for item in value.data):
        flat = jnp.asarray([item.value for item in value.data], dtype=jnp.float64)  # type: ignore[union-attr]
        return jnp.reshape(flat, value.shape)
    return None


def from_dense(arr: jnp.ndarray, *, scalar: bool = False) -> Val:
    if scalar and arr.ndim == 0:
        return Num(float(arr))
    flat = jnp.reshape(arr, (-1,)).tolist()
    return Array(tuple(int(d) for d in arr.shape), tuple(Num(x) for x in flat))


def from_python(obj: object) -> Val:
    """Convert host data (numbers, strings, nested lists) to a runtime value."""
    if isinstance(obj, (Num, Character, Array, Function)):
        return obj
    if isinstance(obj, bool):
        return Num(1.0 if obj else 0.0)
    if isinstance(obj, (int, float)):
        return Num(obj)
    if isinstance(obj, str):
        return string(obj)
    if isinstance(obj, (list, tuple)):
        return pack([from_python(item) for item in obj])
    raise TypeError(f"Cannot convert {type(obj).__name__} to a runtime value")


def to_python(value: Val) -> object:
    """Convert a runtime value to plain Python data (strings for character vectors)."""
    if isinstance(value, Num):
        return value.value
    if isinstance(value, Character):
        return value.text
    if isinstance(value, Function):
        return value
    if is_string(value):
        return "".join(item.text for item in value.data)  # type: ignore[union-attr]
    if value.rank == 0:
        return to_python(value.data[0])
    return [to_python(cell) for cell in major_cells(value)]
