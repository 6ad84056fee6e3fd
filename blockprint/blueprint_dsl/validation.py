"""
Program Validation - Static checks on a parsed compact program.

Validates that:
1. Every call references a known def
2. Calls to defs with declared params supply every param
3. Literal loop steps are non-zero
4. Every step is well formed, reachable or not
5. Defs are not silently shadowed or left unused

Validation never executes the program; runtime failures (bad expressions,
budget overruns) are only found by expansion.
"""

from __future__ import annotations
from dataclasses import dataclass
import math

from .program_dsl import CallStep, ForStep, InvalidStep, PlaceStep, Program, Step


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str]
    warnings: list[str]


def validate_program(program: Program) -> ValidationResult:
    """
    Validate a compact program without running it.

    Returns ValidationResult with errors and warnings.
    """
    errors: list[str] = []
    warnings: list[str] = []
    called: set[str] = set()

    errors.extend(_validate_steps(program, program.steps, "steps", called))
    for name, definition in program.defs.items():
        errors.extend(
            _validate_steps(program, definition.steps, f"def '{name}'", called)
        )

    for name in program.duplicate_defs:
        warnings.append(f"Def '{name}' is defined more than once; the last one wins")

    for name in program.defs:
        if name not in called:
            warnings.append(f"Def '{name}' is never called")

    if not program.steps:
        warnings.append("Program has no top-level steps")

    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _validate_steps(
    program: Program,
    steps: tuple[Step, ...],
    where: str,
    called: set[str],
) -> list[str]:
    errors = []
    for step in steps:
        if isinstance(step, CallStep):
            called.add(step.name)
            definition = program.get_def(step.name)
            if definition is None:
                errors.append(f"{where}: call to unknown function '{step.name}'")
                continue
            for param in definition.params:
                if param not in step.args:
                    errors.append(
                        f"{where}: call to '{step.name}' is missing parameter '{param}'"
                    )

        elif isinstance(step, ForStep):
            if _is_zero_literal(step.stride):
                errors.append(f"{where}: loop over '{step.var}' has step 0")
            elif isinstance(step.stride, float) and not math.isfinite(step.stride):
                errors.append(
                    f"{where}: loop over '{step.var}' has non-finite step {step.stride!r}"
                )
            errors.extend(_validate_steps(program, step.body, where, called))

        elif isinstance(step, PlaceStep):
            for axis, value in (("x", step.x), ("y", step.y), ("z", step.z)):
                if value is None:
                    errors.append(f"{where}: place step is missing '{axis}'")

        elif isinstance(step, InvalidStep):
            errors.append(f"{where}: {step.error}")

    return errors


def _is_zero_literal(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    if isinstance(value, (int, float)):
        return int(value) == 0
    return isinstance(value, str) and value.strip() in ("0", "+0", "-0")
