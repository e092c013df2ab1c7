"""Primitive library: executable definitions for every glyph in the table.

Pervasive numeric primitives run on ``jax.numpy`` kernels. When both
arguments are plain numbers or flat numeric arrays the whole computation is
one kernel call; otherwise the primitive pervades element by element and each
leaf still goes through the same kernel, so both paths agree exactly.
"""

from __future__ import annotations

import math
import os
from functools import lru_cache
from typing import Callable, Final, Sequence

import jax
import jax.numpy as jnp

from .errors import FixAPLIndexError, FixAPLShapeError, FixAPLTrainError, FixAPLTypeError
from .glyphs import arity_of, primitive_symbols
from .values import Array, Character, Function, Num, Val, dense_of, from_dense, kind_of, major_cells, rank_of, vector

_USE_DENSE_KERNELS: Final[bool] = os.environ.get("FIXAPL_DISABLE_DENSE_KERNELS", "0") != "1"
_USE_JITTED_KERNELS: Final[bool] = os.environ.get("FIXAPL_DISABLE_JIT", "0") != "1"


def _round_half_up(x: jnp.ndarray) -> jnp.ndarray:
    return jnp.floor(x + 0.5)


def _as_flag(cmp: Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]) -> Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]:
    def kernel(w: jnp.ndarray, x: jnp.ndarray) -> jnp.ndarray:
        return cmp(w, x).astype(jnp.float64)

    return kernel


_BASE_UNARY_OPS: Final[dict[str, Callable[[jnp.ndarray], jnp.ndarray]]] = {
    "⌊": jnp.floor,
    "⌈": jnp.ceil,
    "⁅": _round_half_up,
    "¬": lambda x: 1 - x,
    "¯": lambda x: -x,
}

_BASE_BINARY_OPS: Final[dict[str, Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]]] = {
    "+": lambda w, x: w + x,
    "-": lambda w, x: w - x,
    "×": lambda w, x: w * x,
    "÷": lambda w, x: w / x,
    "%": jnp.mod,
    "↧": jnp.minimum,
    "↥": jnp.maximum,
    "=": _as_flag(jnp.equal),
    "≠": _as_flag(jnp.not_equal),
    ">": _as_flag(jnp.greater),
    "≥": _as_flag(jnp.greater_equal),
    "<": _as_flag(jnp.less),
    "≤": _as_flag(jnp.less_equal),
}

_JITTED_UNARY_OPS: dict[str, Callable[[jnp.ndarray], jnp.ndarray]] = {}
_JITTED_BINARY_OPS: dict[str, Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]] = {}


def _unary_kernel(op: str) -> Callable[[jnp.ndarray], jnp.ndarray]:
    if not _USE_JITTED_KERNELS:
        return _BASE_UNARY_OPS[op]
    fn = _JITTED_UNARY_OPS.get(op)
    if fn is None:
        fn = jax.jit(_BASE_UNARY_OPS[op])
        _JITTED_UNARY_OPS[op] = fn
    return fn


def _binary_kernel(op: str) -> Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]:
    if not _USE_JITTED_KERNELS:
        return _BASE_BINARY_OPS[op]
    fn = _JITTED_BINARY_OPS.get(op)
    if fn is None:
        fn = jax.jit(_BASE_BINARY_OPS[op])
        _JITTED_BINARY_OPS[op] = fn
    return fn


def _scalar_unary(op: str, x: float) -> float:
    return float(_unary_kernel(op)(jnp.float64(x)))


def _scalar_binary(op: str, w: float, x: float) -> float:
    return float(_binary_kernel(op)(jnp.float64(w), jnp.float64(x)))


def _kind_name(value: Val) -> str:
    return kind_of(value).value


# ---------------------------------------------------------------------------
# Scalar extension


def each(fn: Callable[..., Val], *args: Val) -> Val:
    """Apply ``fn`` elementwise, pairing a non-array against every element."""
    if not args:
        return fn()
    if len(args) == 1:
        (x,) = args
        if isinstance(x, Array):
            return Array(x.shape, tuple(fn(item) for item in x.data))
        return fn(x)

    x, y = args
    if isinstance(x, Array):
        if isinstance(y, Array):
            if x.shape != y.shape:
                raise FixAPLShapeError(
                    f"Cannot iterate over arrays of different shape {list(x.shape)} and {list(y.shape)}"
                )
            return Array(x.shape, tuple(fn(a, b) for a, b in zip(x.data, y.data)))
        return Array(x.shape, tuple(fn(a, y) for a in x.data))
    if isinstance(y, Array):
        return Array(y.shape, tuple(fn(x, b) for b in y.data))
    return fn(x, y)


def _dense_pair(x: Val, y: Val) -> tuple[jnp.ndarray, jnp.ndarray] | None:
    if isinstance(x, Array) and isinstance(y, Array) and x.shape != y.shape:
        return None
    w = dense_of(x)
    if w is None:
        return None
    z = dense_of(y)
    if z is None:
        return None
    return w, z


def _pervasive_monad(op: str, what: str) -> Callable[[Val], Val]:
    def apply(x: Val) -> Val:
        if _USE_DENSE_KERNELS and isinstance(x, (Num, Array)):
            dense = dense_of(x)
            if dense is not None:
                return from_dense(_unary_kernel(op)(dense), scalar=isinstance(x, Num))
        if isinstance(x, Array):
            return each(apply, x)
        if isinstance(x, Num):
            return Num(_scalar_unary(op, x.value))
        raise FixAPLTypeError(f"Cannot take {what} of {_kind_name(x)}")

    return apply


def _pervasive_dyad(op: str, leaf: Callable[[Val, Val], Val]) -> Callable[[Val, Val], Val]:
    def apply(x: Val, y: Val) -> Val:
        if _USE_DENSE_KERNELS:
            dense = _dense_pair(x, y)
            if dense is not None:
                both_scalar = isinstance(x, Num) and isinstance(y, Num)
                return from_dense(_binary_kernel(op)(*dense), scalar=both_scalar)
        if isinstance(x, Array) or isinstance(y, Array):
            return each(apply, x, y)
        return leaf(x, y)

    return apply


# ---------------------------------------------------------------------------
# Arithmetic and comparison leaves


def _shift_character(op: str, ch: Character, n: Num) -> Character:
    shifted = _scalar_binary(op, float(ch.codepoint), n.value)
    if not shifted.is_integer():
        raise FixAPLTypeError("Character arithmetic requires an integer offset")
    return Character(int(shifted))


def _add_leaf(x: Val, y: Val) -> Val:
    if isinstance(x, Num) and isinstance(y, Num):
        return Num(_scalar_binary("+", x.value, y.value))
    if isinstance(x, Num) and isinstance(y, Character):
        return _shift_character("+", y, x)
    if isinstance(x, Character) and isinstance(y, Num):
        return _shift_character("+", x, y)
    raise FixAPLTypeError(f"Cannot add {_kind_name(x)} and {_kind_name(y)}")


def _sub_leaf(x: Val, y: Val) -> Val:
    if isinstance(x, Num) and isinstance(y, Num):
        return Num(_scalar_binary("-", x.value, y.value))
    if isinstance(x, Character) and isinstance(y, Num):
        return _shift_character("-", x, y)
    if isinstance(x, Character) and isinstance(y, Character):
        return Num(float(x.codepoint - y.codepoint))
    raise FixAPLTypeError(f"Cannot subtract {_kind_name(y)} from {_kind_name(x)}")


def _numeric_leaf(op: str, what: str) -> Callable[[Val, Val], Val]:
    def leaf(x: Val, y: Val) -> Val:
        if isinstance(x, Num) and isinstance(y, Num):
            return Num(_scalar_binary(op, x.value, y.value))
        raise FixAPLTypeError(f"Cannot {what} {_kind_name(x)} and {_kind_name(y)}")

    return leaf


def _order_leaf(op: str) -> Callable[[Val, Val], Val]:
    def leaf(x: Val, y: Val) -> Val:
        if isinstance(x, Function) or isinstance(y, Function):
            raise FixAPLTypeError("Cannot compare functions")
        if isinstance(x, Num) and isinstance(y, Num):
            return Num(_scalar_binary(op, x.value, y.value))
        if isinstance(x, Character) and isinstance(y, Character):
            return Num(_scalar_binary(op, float(x.codepoint), float(y.codepoint)))
        raise FixAPLTypeError(f"Cannot compare {_kind_name(x)} and {_kind_name(y)}")

    return leaf


def _equality_leaf(op: str) -> Callable[[Val, Val], Val]:
    unequal = 1.0 if op == "≠" else 0.0

    def leaf(x: Val, y: Val) -> Val:
        if isinstance(x, Num) and isinstance(y, Num):
            return Num(_scalar_binary(op, x.value, y.value))
        if isinstance(x, Character) and isinstance(y, Character):
            return Num(_scalar_binary(op, float(x.codepoint), float(y.codepoint)))
        return Num(unequal)

    return leaf


add = _pervasive_dyad("+", _add_leaf)
subtract = _pervasive_dyad("-", _sub_leaf)
multiply = _pervasive_dyad("×", _numeric_leaf("×", "multiply"))
divide = _pervasive_dyad("÷", _numeric_leaf("÷", "divide"))
modulo = _pervasive_dyad("%", _numeric_leaf("%", "take the modulus of"))
minimum = _pervasive_dyad("↧", _numeric_leaf("↧", "take the minimum of"))
maximum = _pervasive_dyad("↥", _numeric_leaf("↥", "take the maximum of"))
equal = _pervasive_dyad("=", _equality_leaf("="))
not_equal = _pervasive_dyad("≠", _equality_leaf("≠"))
greater = _pervasive_dyad(">", _order_leaf(">"))
greater_equal = _pervasive_dyad("≥", _order_leaf("≥"))
less = _pervasive_dyad("<", _order_leaf("<"))
less_equal = _pervasive_dyad("≤", _order_leaf("≤"))

floor = _pervasive_monad("⌊", "floor")
ceiling = _pervasive_monad("⌈", "ceiling")
round_ = _pervasive_monad("⁅", "round")
logical_not = _pervasive_monad("¬", "NOT")
negate = _pervasive_monad("¯", "negation")


def matches(x: Val, y: Val) -> bool:
    """Deep structural equality; values of different kinds never match."""
    if kind_of(x) is not kind_of(y):
        return False
    if isinstance(x, Array):
        assert isinstance(y, Array)
        return x.shape == y.shape and all(matches(a, b) for a, b in zip(x.data, y.data))
    if isinstance(x, Function):
        return x is y
    return x == y


def match(x: Val, y: Val) -> Val:
    return Num(1.0 if matches(x, y) else 0.0)


def nomatch(x: Val, y: Val) -> Val:
    return Num(0.0 if matches(x, y) else 1.0)


# ---------------------------------------------------------------------------
# Structural primitives


def _as_int(value: Val, *, where: str) -> int:
    if not isinstance(value, Num):
        raise FixAPLTypeError(f"{where} requires integer arguments, got {_kind_name(value)}")
    if not value.value.is_integer():
        raise FixAPLTypeError(f"{where} requires integer arguments, got {value.value}")
    return int(value.value)


def _as_shape(value: Val, *, where: str) -> tuple[int, ...]:
    if isinstance(value, Num):
        dims = [value]
    elif isinstance(value, Array) and value.rank == 1:
        dims = list(value.data)
    else:
        raise FixAPLShapeError(f"{where} requires a non-negative integer or vector of them")

    shape = tuple(_as_int(dim, where=where) for dim in dims)
    if any(dim < 0 for dim in shape):
        raise FixAPLShapeError(f"{where} dimensions must be non-negative")
    return shape


def _normalize_index(value: Val, length: int, *, where: str) -> int:
    index = _as_int(value, where=where)
    normalized = index + length if index < 0 else index
    if not 0 <= normalized < length:
        raise FixAPLIndexError(f"{where} index {index} is out of bounds for an axis of length {length}")
    return normalized


def identity(x: Val) -> Val:
    return x


def left(x: Val, _y: Val) -> Val:
    return x


def right(_x: Val, y: Val) -> Val:
    return y


def length(y: Val) -> Val:
    if isinstance(y, Array) and y.shape:
        return Num(y.shape[0])
    return Num(0)


def shape(y: Val) -> Val:
    return vector(Num(dim) for dim in (y.shape if isinstance(y, Array) else ()))


def flat(y: Val) -> Val:
    if isinstance(y, Array):
        return Array((len(y.data),), y.data)
    return vector((y,))


def iota(y: Val) -> Val:
    if isinstance(y, Num):
        dims = _as_shape(y, where="Range")
    elif isinstance(y, Array) and y.rank == 1:
        if not all(isinstance(item, Num) for item in y.data):
            raise FixAPLTypeError("Cannot take range of non-numeric vector")
        dims = _as_shape(y, where="Range")
    elif isinstance(y, Array):
        raise FixAPLShapeError("Cannot take range of non-vector array")
    else:
        raise FixAPLTypeError(f"Cannot take range of {_kind_name(y)}")
    return from_dense(jnp.reshape(jnp.arange(math.prod(dims), dtype=jnp.float64), dims))


def reshape(x: Val, y: Val) -> Val:
    dims = _as_shape(x, where="Reshape")
    source = y.data if isinstance(y, Array) else (y,)
    count = math.prod(dims)
    if count == 0:
        return Array(dims, ())
    if not source:
        raise FixAPLShapeError("Cannot reshape an empty array to a non-empty shape")
    # resize cycles the source indices, or truncates them.
    indices = jnp.resize(jnp.arange(len(source)), (count,)).tolist()
    return Array(dims, tuple(source[i] for i in indices))


def _replicate_cell(item: Val, partner: Array) -> Array:
    cell_shape = (1, *partner.shape[1:])
    return Array(cell_shape, (item,) * math.prod(cell_shape))


def catenate(x: Val, y: Val) -> Val:
    """Join along the leading axis, always producing a new array."""
    if isinstance(x, Function) or isinstance(y, Function):
        raise FixAPLTypeError("Cannot catenate functions")

    if isinstance(x, Array) and isinstance(y, Array):
        if x.rank == 0 and y.rank == 0:
            return Array((2,), x.data + y.data)
        if x.rank == y.rank + 1:
            return catenate(x, Array((1, *y.shape), y.data))
        if x.rank + 1 == y.rank:
            return catenate(Array((1, *x.shape), x.data), y)
        if x.rank != y.rank or x.shape[1:] != y.shape[1:]:
            raise FixAPLShapeError("Arguments to catenate must have matching cells")
        return Array((x.shape[0] + y.shape[0], *x.shape[1:]), x.data + y.data)

    if isinstance(x, Array):
        return catenate(x, _replicate_cell(y, x))
    if isinstance(y, Array):
        return catenate(_replicate_cell(x, y), y)
    return vector((x, y))


def pair(x: Val, y: Val) -> Val:
    return vector((x, y))


def select(x: Val, y: Val) -> Val:
    """Index the leading axis of ``y`` by the index or index array ``x``."""
    if not isinstance(y, Array) or y.rank == 0:
        raise FixAPLShapeError(f"Cannot select from {_kind_name(y) if not isinstance(y, Array) else 'a rank-0 array'}")

    cells = major_cells(y)
    cell_shape = y.shape[1:]
    if isinstance(x, Num):
        return cells[_normalize_index(x, y.shape[0], where="Select")]
    if not isinstance(x, Array):
        raise FixAPLTypeError(f"Select indices must be numbers, got {_kind_name(x)}")

    data: list[Val] = []
    for index in x.data:
        cell = cells[_normalize_index(index, y.shape[0], where="Select")]
        if cell_shape:
            data.extend(cell.data)  # type: ignore[union-attr]
        else:
            data.append(cell)
    return Array((*x.shape, *cell_shape), tuple(data))


def _pick_at(y: Val, index: Sequence[Val]) -> Val:
    rank = rank_of(y)
    if len(index) != rank:
        raise FixAPLShapeError(f"Pick index of length {len(index)} does not match rank {rank}")
    if not isinstance(y, Array):
        return y
    offset = 0
    for item, dim in zip(index, y.shape):
        offset = offset * dim + _normalize_index(item, dim, where="Pick")
    return y.data[offset]


def pick(x: Val, y: Val) -> Val:
    """Deep multi-axis indexing: each index vector addresses one element."""
    if isinstance(x, Num):
        return _pick_at(y, (x,))
    if not isinstance(x, Array):
        raise FixAPLTypeError(f"Pick index must be a number or array, got {_kind_name(x)}")
    if any(isinstance(item, Array) for item in x.data):
        return Array(x.shape, tuple(pick(item, y) for item in x.data))
    if x.rank <= 1:
        return _pick_at(y, x.data)

    # A matrix of numbers holds one index vector per row.
    frame = x.shape[:-1]
    width = x.shape[-1]
    rows = [x.data[i * width : (i + 1) * width] for i in range(math.prod(frame))]
    return Array(frame, tuple(_pick_at(y, row) for row in rows))


# ---------------------------------------------------------------------------
# Function combinators


def constant(value: Val) -> Function:
    return Function(0, lambda: value, name="constant")


def adapt(operand: Val, args: Sequence[Val]) -> Val:
    """Call ``operand`` with its trailing arguments, or use it as a constant."""
    if not isinstance(operand, Function):
        return operand
    if operand.arity > len(args):
        raise FixAPLTrainError(f"A {operand.arity}-argument function cannot be fed {len(args)} argument(s)")
    return operand(*args[len(args) - operand.arity :])


def atop(outer: Function, inner: Function) -> Function:
    """Compose ``outer`` after ``inner``; a dyadic ``outer`` takes the first argument on its left."""
    name = f"{outer.name or 'function'}∘{inner.name or 'function'}"
    if outer.arity == 1:
        return Function(inner.arity, lambda *args: outer(inner(*args)), name=name)
    if outer.arity == 2:
        if inner.arity == 0:
            return Function(1, lambda g: outer(g, inner()), name=name)
        if inner.arity == 1:
            return Function(1, lambda g: outer(g, inner(g)), name=name)
        return Function(2, lambda g, h: outer(g, inner(g, h)), name=name)
    raise FixAPLTrainError("Cannot compose after a niladic function")


def fork(left_tine: Val, dyad: Function, remainder: Function) -> Function:
    left_arity = left_tine.arity if isinstance(left_tine, Function) else 0
    arity = max(remainder.arity, left_arity)

    def body(*args: Val) -> Val:
        return dyad(adapt(left_tine, args), adapt(remainder, args))

    return Function(arity, body, name=f"fork({dyad.name or 'function'})")


# ---------------------------------------------------------------------------
# Modifiers


def _require_function(value: Val, what: str) -> Function:
    if not isinstance(value, Function):
        raise FixAPLTrainError(f"Operand to {what} must be a function, got {_kind_name(value)}")
    return value


def _require_dyad(value: Val, what: str) -> Function:
    fn = _require_function(value, what)
    if fn.arity != 2:
        raise FixAPLTrainError(f"Operand to {what} must be a dyadic function")
    return fn


def each_modifier(operand: Val) -> Val:
    fn = _require_function(operand, "each")
    return Function(fn.arity, lambda *args: each(fn, *args), name=f"{fn.name or 'function'}¨")


def backwards(operand: Val) -> Val:
    fn = _require_function(operand, "backwards")
    if fn.arity == 2:
        return Function(2, lambda g, h: fn(h, g), name=f"{fn.name or 'function'}˜")
    return fn


def self_modifier(operand: Val) -> Val:
    fn = _require_function(operand, "self")
    if fn.arity == 2:
        return Function(1, lambda g: fn(g, g), name=f"{fn.name or 'function'}˙")
    return fn


def _fold_cells(fn: Function, cells: Sequence[Val]) -> Val:
    acc = cells[-1]
    for cell in reversed(cells[:-1]):
        acc = fn(cell, acc)
    return acc


def _require_reducible(value: Val, what: str) -> Array:
    if not isinstance(value, Array) or value.rank == 0:
        raise FixAPLTypeError(f"Cannot {what} {_kind_name(value) if not isinstance(value, Array) else 'a rank-0 array'}")
    return value


def reduce(operand: Val) -> Val:
    fn = _require_dyad(operand, "reduce")

    def body(x: Val) -> Val:
        arr = _require_reducible(x, "reduce")
        cells = major_cells(arr)
        if not cells:
            raise FixAPLShapeError("Cannot reduce an empty array")
        return _fold_cells(fn, cells)

    return Function(1, body, name=f"{fn.name or 'function'}/")


def _assemble_major(template: Array, results: Sequence[Val]) -> Array:
    if template.rank == 1:
        return Array(template.shape, tuple(results))
    cell_shape = template.shape[1:]
    if all(isinstance(item, Array) and item.shape == cell_shape for item in results):
        data: list[Val] = []
        for item in results:
            data.extend(item.data)  # type: ignore[union-attr]
        return Array(template.shape, tuple(data))
    return vector(results)


def scan(operand: Val) -> Val:
    fn = _require_dyad(operand, "scan")

    def body(x: Val) -> Val:
        arr = _require_reducible(x, "scan")
        cells = major_cells(arr)
        results = [_fold_cells(fn, cells[: i + 1]) for i in range(len(cells))]
        return _assemble_major(arr, results)

    return Function(1, body, name=f"{fn.name or 'function'}\\")


def compose(x: Val, y: Val) -> Val:
    if not isinstance(x, Function):
        if not isinstance(y, Function):
            raise FixAPLTrainError("Cannot compose two non-functions")
        return compose(backwards(y), x)
    if isinstance(y, Function):
        return atop(x, y)
    composed = atop(x, constant(y))
    return composed() if composed.arity == 0 else composed


def over(x: Val, y: Val) -> Val:
    outer = _require_function(x, "over")
    inner = _require_function(y, "over")
    name = f"{outer.name or 'function'}○{inner.name or 'function'}"
    if inner.arity == 1:
        if outer.arity == 2:
            return Function(2, lambda g, h: outer(inner(g), inner(h)), name=name)
        return Function(1, lambda g: outer(inner(g)), name=name)
    if inner.arity == 2:
        if outer.arity == 1:
            return Function(2, lambda g, h: outer(inner(g, h)), name=name)
        return Function(2, lambda g, h: outer(inner(g, h), h), name=name)
    raise FixAPLTrainError("Operands to over must be monadic or dyadic functions")


DEFINITIONS: Final[dict[str, Callable[..., Val]]] = {
    "=": equal,
    "≠": not_equal,
    ">": greater,
    "≥": greater_equal,
    "<": less,
    "≤": less_equal,
    "⊣": left,
    "⊢": right,
    "⋅": identity,
    "+": add,
    "-": subtract,
    "×": multiply,
    "÷": divide,
    "%": modulo,
    "↧": minimum,
    "↥": maximum,
    "⌊": floor,
    "⁅": round_,
    "⌈": ceiling,
    "¬": logical_not,
    "¯": negate,
    "≡": match,
    "≢": nomatch,
    "⍳": iota,
    "⧻": length,
    "△": shape,
    ",": flat,
    "⍮": pair,
    "⍪": catenate,
    "⍴": reshape,
    "⊏": select,
    "⊑": pick,
    "¨": each_modifier,
    "˜": backwards,
    "˙": self_modifier,
    "/": reduce,
    "\\": scan,
    "∘": compose,
    "○": over,
}

_UNDEFINED = primitive_symbols() ^ DEFINITIONS.keys()
if _UNDEFINED:
    raise ImportError(f"Glyph table and primitive definitions disagree on {sorted(_UNDEFINED)}")


@lru_cache(maxsize=None)
def primitive_function(symbol: str) -> Function:
    """Function value wrapping a primitive at its declared arity."""
    arity = arity_of(symbol)
    if arity is None or symbol not in DEFINITIONS:
        raise FixAPLTypeError(f"{symbol!r} is not a primitive function")
    return Function(arity, DEFINITIONS[symbol], name=symbol)


def apply_modifier(symbol: str, *operands: Val) -> Val:
    if symbol not in DEFINITIONS or arity_of(symbol) != len(operands):
        raise FixAPLTrainError(f"{symbol!r} is not a {len(operands)}-operand modifier")
    return DEFINITIONS[symbol](*operands)
