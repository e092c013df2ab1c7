"""Tree-walking evaluator and train resolution."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Final, Iterator, Sequence, Union

from .ast import ArrayLiteral, Binding, Char, Expression, GlyphRef, ListLiteral, Mod1, Mod2, Node, Number, Program, Reference, Strand, String
from .display import display
from .errors import FixAPLRuntimeError, FixAPLShapeError, FixAPLTrainError, FixAPLTypeError
from .lexer import lex, strip_trivia
from .parser import parse
from .primitives import apply_modifier, atop, constant, fork, primitive_function
from .values import Array, Character, Function, Num, Val, string, validate_value, vector

logger = logging.getLogger(__name__)

_PROGRAM_CACHE_MAX: Final[int] = max(1, int(os.environ.get("FIXAPL_PROGRAM_CACHE_MAX", "256")))
_IDENTIFIER_RE: Final = re.compile(r"[A-Z][A-Za-z]*")


class Environment(MutableMapping[str, Val]):
    """Name-to-value bindings threaded through evaluation."""

    def __init__(self, data: MutableMapping[str, Val] | None = None) -> None:
        self._data: dict[str, Val] = {}
        self.declared_arities: dict[str, int] = {}
        for name, value in ({} if data is None else dict(data)).items():
            self[name] = value

    def __getitem__(self, key: str) -> Val:
        return self._data[key]

    def __setitem__(self, key: str, value: Val) -> None:
        if not isinstance(key, str) or _IDENTIFIER_RE.fullmatch(key) is None:
            raise ValueError(f"{key!r} is not a valid identifier")
        validate_value(value, where=f"env[{key!r}]")
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]
        self.declared_arities.pop(key, None)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)


# ---------------------------------------------------------------------------
# Trains


@dataclass(frozen=True)
class ForkStep:
    """``left dyad`` waiting for the remainder of the train."""

    left: Val
    dyad: Function


@dataclass(frozen=True)
class AtopStep:
    outer: Function


TrainStep = Union[ForkStep, AtopStep]


def plan_train(tines: Sequence[Val]) -> tuple[tuple[TrainStep, ...], Function]:
    """Split evaluated tines into combinator steps and the terminal function.

    A tine followed by a dyadic function that is not the last tine opens a
    fork; any other function tine is an atop; the last tine is the terminal,
    with a plain value wrapped as a constant.
    """
    if not tines:
        raise FixAPLTrainError("Empty train")

    steps: list[TrainStep] = []
    last = len(tines) - 1
    i = 0
    while i < last:
        nxt = tines[i + 1]
        if isinstance(nxt, Function) and nxt.arity == 2 and i + 1 < last:
            steps.append(ForkStep(left=tines[i], dyad=nxt))
            i += 2
        elif isinstance(tines[i], Function):
            steps.append(AtopStep(outer=tines[i]))  # type: ignore[arg-type]
            i += 1
        else:
            raise FixAPLTrainError("nilad outside of fork")

    terminal = tines[last]
    return tuple(steps), terminal if isinstance(terminal, Function) else constant(terminal)


def resolve_train(steps: Sequence[TrainStep], terminal: Function) -> Val:
    """Fold the steps right to left onto the terminal."""
    current = terminal
    for step in reversed(steps):
        if isinstance(step, ForkStep):
            current = fork(step.left, step.dyad, current)
        else:
            current = atop(step.outer, current)
        # Niladic intermediates are invoked now so long trains stay shallow.
        if current.arity == 0:
            current = constant(current())
    if current.arity == 0:
        return current()
    return current


# ---------------------------------------------------------------------------
# Node evaluation


def _stack_literal(items: Sequence[Val]) -> Val:
    if any(isinstance(item, Function) for item in items):
        raise FixAPLTypeError("Array literals cannot contain functions")
    arrays = [item for item in items if isinstance(item, Array)]
    if not arrays:
        return vector(items)
    if len(arrays) != len(items):
        raise FixAPLShapeError("Array literal mixes arrays and scalars")

    cell_shape = arrays[0].shape
    if any(item.shape != cell_shape for item in arrays):
        raise FixAPLShapeError("Array literal elements must all have the same shape")
    data: list[Val] = []
    for item in arrays:
        data.extend(item.data)
    return Array((len(arrays), *cell_shape), tuple(data))


def _bind(node: Binding, env: MutableMapping[str, Val]) -> Val:
    value = _evaluate(node.value, env)
    if node.arity is not None:
        actual = value.arity if isinstance(value, Function) else 0
        if actual != node.arity:
            logger.warning("%s declared with arity %d but bound to a value of arity %d", node.name, node.arity, actual)
        if isinstance(env, Environment):
            env.declared_arities[node.name] = node.arity
    env[node.name] = value
    logger.debug("Bound %s", node.name)
    return value


def _evaluate(node: Node, env: MutableMapping[str, Val]) -> Val:
    if isinstance(node, Number):
        return Num(node.value)

    if isinstance(node, String):
        return string(node.value)

    if isinstance(node, Char):
        return Character.of(node.value)

    if isinstance(node, Reference):
        if node.name not in env:
            raise FixAPLRuntimeError(f"Undefined name {node.name!r}")
        return env[node.name]

    if isinstance(node, GlyphRef):
        return primitive_function(node.symbol)

    if isinstance(node, Mod1):
        return apply_modifier(node.symbol, _evaluate(node.operand, env))

    if isinstance(node, Mod2):
        left = _evaluate(node.left, env)
        return apply_modifier(node.symbol, left, _evaluate(node.right, env))

    if isinstance(node, Binding):
        return _bind(node, env)

    if isinstance(node, Expression):
        tines = [_evaluate(tine, env) for tine in node.tines]
        steps, terminal = plan_train(tines)
        logger.debug("Train of %d tine(s) planned as %d step(s)", len(tines), len(steps))
        return resolve_train(steps, terminal)

    if isinstance(node, (Strand, ListLiteral)):
        return vector(_evaluate(item, env) for item in node.items)

    if isinstance(node, ArrayLiteral):
        return _stack_literal([_evaluate(item, env) for item in node.items])

    if isinstance(node, Program):
        result: Val = vector(())
        for statement in node.statements:
            result = _evaluate(statement, env)
        return result

    raise TypeError(f"Unsupported node type {type(node).__name__}")


def evaluate(node: Node, env: MutableMapping[str, Val] | None = None) -> Val:
    """Evaluate an AST node; bindings are installed into ``env``."""
    runtime_env: MutableMapping[str, Val] = Environment() if env is None else env
    try:
        return _evaluate(node, runtime_env)
    except RecursionError as exc:
        raise FixAPLRuntimeError("Evaluation exceeded the maximum recursion depth") from exc


# ---------------------------------------------------------------------------
# Pipeline


@lru_cache(maxsize=_PROGRAM_CACHE_MAX)
def _parse_program_cached(source: str) -> Program:
    return parse(strip_trivia(lex(source)))


def interpret(source: str, env: MutableMapping[str, Val] | None = None) -> Val:
    """Lex, parse and evaluate ``source``."""
    return evaluate(_parse_program_cached(source), env)


def run(source: str, env: MutableMapping[str, Val] | None = None) -> str:
    return display(interpret(source, env))


@dataclass
class Session:
    """Callable wrapper that evaluates source in a persistent environment."""

    env: Environment = field(default_factory=Environment)

    def __call__(self, source: str) -> Val:
        return interpret(source, self.env)

    def run(self, source: str) -> str:
        return run(source, self.env)
