"""
Program DSL - Step-based blueprint programs.

This module defines the compact program a model emits to describe a
structure. Programs are:
- Step-based: a tree of place / for / call steps
- Parameterized: named defs take arguments like functions
- Bounded: every loop and call is counted against an execution budget
- Deterministic: the same document always expands to the same blocks

Key design decisions:
- Step is a closed variant: three ops plus InvalidStep, which defers a
  parse failure until the step is executed
- Expressions stay raw (number or string) until the step executes,
  because they are evaluated against the scope current at that point
- Defs are collected before execution, so there are no forward references
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Union

from ..errors import StructuralError


# A raw Expr as it appears in the document: JSON number or string.
Expr = Any


class StepType(Enum):
    """Operation tags accepted in the "op" field (case-insensitive)."""
    PLACE = "place"
    BLOCK = "block"  # alias of place
    FOR = "for"
    CALL = "call"


class DocumentShape(Enum):
    """Which of the accepted document layouts a response uses."""
    COMPACT = "compact"  # defs + steps
    LEGACY = "legacy"  # flat blocks array
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class PlaceStep:
    """Place one block at (x, y, z)."""
    x: Expr
    y: Expr
    z: Expr
    block_type: Expr = None


@dataclass(frozen=True)
class ForStep:
    """Inclusive integer loop binding `var` for each iteration of `body`."""
    var: str
    start: Expr
    end: Expr
    body: tuple[Step, ...] = ()
    stride: Expr = 1


@dataclass(frozen=True)
class CallStep:
    """Invoke a def by name with named arguments."""
    name: str
    args: Mapping[str, Expr] = field(default_factory=dict)


@dataclass(frozen=True)
class InvalidStep:
    """
    A step that failed to parse.

    The error is raised only if execution reaches the step, so a bad step
    past the output cap or in a def nobody calls does not reject the
    document.
    """
    error: StructuralError


Step = Union[PlaceStep, ForStep, CallStep, InvalidStep]


@dataclass(frozen=True)
class Definition:
    """
    A named, reusable step sequence.

    A def with no params accepts any arguments and binds each under its
    own name.
    """
    name: str
    params: tuple[str, ...] = ()
    steps: tuple[Step, ...] = ()


@dataclass
class Program:
    """A parsed compact program, ready for execution."""
    steps: tuple[Step, ...] = ()
    defs: dict[str, Definition] = field(default_factory=dict)

    # Def names that appeared more than once (the last one wins)
    duplicate_defs: list[str] = field(default_factory=list)

    def get_def(self, name: str) -> Definition | None:
        return self.defs.get(name)


# ============================================================================
# Factory functions for building programs in code
# ============================================================================

def place_step(x: Expr, y: Expr, z: Expr, block_type: Expr = "minecraft:stone") -> PlaceStep:
    """Create a place step."""
    return PlaceStep(x=x, y=y, z=z, block_type=block_type)


def for_step(
    var: str,
    start: Expr,
    end: Expr,
    body: list[Step],
    stride: Expr = 1,
) -> ForStep:
    """Create an inclusive for loop."""
    return ForStep(var=var, start=start, end=end, body=tuple(body), stride=stride)


def call_step(name: str, **args: Expr) -> CallStep:
    """Create a call step."""
    return CallStep(name=name, args=dict(args))


def definition(name: str, steps: list[Step], params: list[str] | None = None) -> Definition:
    """Create a def."""
    return Definition(name=name, params=tuple(params or ()), steps=tuple(steps))
