"""
Program Interpreter - Bounded execution of compact blueprint programs.

This module expands a parsed Program into concrete blocks, including:
- Place steps (coordinates evaluated in the current scope)
- Inclusive for loops, ascending or descending
- Calls into named defs with parameter binding
- Global execution budgets shared across the whole call tree

The interpreter is synchronous and performs no I/O. The ceilings below
are the only bound on the work done for one document.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import logging

from ..blueprint_dsl.program_dsl import CallStep, ForStep, InvalidStep, PlaceStep, Program, Step
from ..errors import BudgetExceededError, EvaluationError, ParseError, StructuralError
from .blueprint import Block
from .catalog import CatalogSnapshot, CatalogStore
from .expression import Scope, ScopeValue, coerce_call_argument, coerce_value, value_text


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpansionLimits:
    """Ceilings applied to a single expansion."""
    max_blocks: int = 200
    max_call_depth: int = 24
    max_steps: int = 50_000
    max_calls: int = 500
    max_expression_depth: int = 64


@dataclass
class ExecBudget:
    """
    Work counters for one expansion.

    Created once per top-level expansion and threaded through every
    nested step list; never reset mid-expansion.
    """
    executed_steps: int = 0
    calls: int = 0


@dataclass
class ProgramInterpreter:
    """
    Executes a Program against an empty scope.

    Usage:
        interpreter = ProgramInterpreter(program, catalog)
        blocks = interpreter.run()
    """
    program: Program
    catalog: CatalogStore
    limits: ExpansionLimits = field(default_factory=ExpansionLimits)
    budget: ExecBudget = field(default_factory=ExecBudget)
    output: list[Block] = field(default_factory=list)

    # Catalog generation captured when the run starts
    snapshot: CatalogSnapshot | None = None

    handlers: dict[type, Callable[[Any, Scope, int], None]] = field(
        init=False, repr=False, default_factory=dict
    )

    def __post_init__(self):
        self.handlers = {
            PlaceStep: self._step_place,
            ForStep: self._step_for,
            CallStep: self._step_call,
            InvalidStep: self._step_invalid,
        }

    def run(self) -> list[Block]:
        """Expand the program's top-level steps. Returns the output list."""
        self.snapshot = self.catalog.snapshot
        self.execute_steps(self.program.steps, {}, 0)
        logger.debug(
            "Expanded program: blocks=%d steps=%d calls=%d",
            len(self.output), self.budget.executed_steps, self.budget.calls,
        )
        return self.output

    @property
    def is_full(self) -> bool:
        return len(self.output) >= self.limits.max_blocks

    def execute_steps(self, steps: tuple[Step, ...], scope: Scope, depth: int):
        """
        Execute a step list in `scope`.

        Returns early (without error) once the output reaches max_blocks.
        """
        if depth > self.limits.max_call_depth:
            raise BudgetExceededError("call depth", self.limits.max_call_depth)

        for step in steps:
            if self.is_full:
                return

            self.budget.executed_steps += 1
            if self.budget.executed_steps > self.limits.max_steps:
                raise BudgetExceededError("executed steps", self.limits.max_steps)

            handler = self.handlers.get(type(step))
            if handler is None:
                raise StructuralError(f"unknown step type {type(step).__name__}")
            handler(step, scope, depth)

    def _step_invalid(self, step: InvalidStep, scope: Scope, depth: int):
        raise step.error

    def _step_place(self, step: PlaceStep, scope: Scope, depth: int):
        x = self._evaluate(step.x, scope, "place.x")
        y = self._evaluate(step.y, scope, "place.y")
        z = self._evaluate(step.z, scope, "place.z")
        block_type = self.catalog.normalize(step.block_type, scope, snapshot=self.snapshot)
        self.output.append(Block(x=x, y=y, z=z, block_type=block_type))

    def _step_for(self, step: ForStep, scope: Scope, depth: int):
        start = self._evaluate(step.start, scope, "for.from")
        end = self._evaluate(step.end, scope, "for.to")
        stride = self._evaluate(step.stride, scope, "for.step")
        if stride == 0:
            raise EvaluationError(
                "loop step must not be 0", path="for.step", expression=str(step.stride)
            )

        # Nothing to place.
        if not step.body:
            return

        value = start
        while (value <= end) if stride > 0 else (value >= end):
            child = dict(scope)
            child[step.var] = value
            self.execute_steps(step.body, child, depth + 1)
            if self.is_full:
                return
            value += stride

    def _step_call(self, step: CallStep, scope: Scope, depth: int):
        self.budget.calls += 1
        if self.budget.calls > self.limits.max_calls:
            raise BudgetExceededError("call count", self.limits.max_calls)

        definition = self.program.get_def(step.name)
        if definition is None:
            raise StructuralError(
                f"call to unknown function '{step.name}'", path=f"call.{step.name}"
            )

        bound: dict[str, ScopeValue] = {}
        if definition.params:
            for param in definition.params:
                if param not in step.args:
                    raise StructuralError(
                        f"missing parameter '{param}' for function '{step.name}'",
                        path=f"call.{step.name}.args",
                    )
                bound[param] = self._coerce_argument(
                    step.args[param], scope, f"call.{step.name}.args.{param}"
                )
        else:
            for key, value in step.args.items():
                bound[key] = self._coerce_argument(
                    value, scope, f"call.{step.name}.args.{key}"
                )

        child = dict(scope)
        child.update(bound)
        self.execute_steps(definition.steps, child, depth + 1)

    def _evaluate(self, expr: Any, scope: Scope, path: str) -> int:
        try:
            return coerce_value(expr, scope, max_depth=self.limits.max_expression_depth)
        except ParseError as e:
            raise EvaluationError(e.message, path=path, expression=value_text(expr)) from e

    def _coerce_argument(self, value: Any, scope: Scope, path: str) -> ScopeValue:
        try:
            return coerce_call_argument(
                value, scope, max_depth=self.limits.max_expression_depth
            )
        except ParseError as e:
            raise EvaluationError(e.message, path=path, expression=value_text(value)) from e


def execute_program(
    program: Program,
    catalog: CatalogStore,
    limits: ExpansionLimits | None = None,
) -> list[Block]:
    """Run a program with a fresh budget and return its blocks."""
    interpreter = ProgramInterpreter(
        program=program,
        catalog=catalog,
        limits=limits or ExpansionLimits(),
    )
    return interpreter.run()
