"""
Program Parser - Turns a decoded JSON document into a typed Program.

Decides which layout a document uses and converts compact programs
(defs + steps) into the closed Step variant. Legacy documents (a flat
"blocks" array) have no program structure and are handled by the expander.
"""

from __future__ import annotations
from typing import Any, Mapping

from ..errors import StructuralError
from .program_dsl import (
    CallStep,
    Definition,
    DocumentShape,
    ForStep,
    InvalidStep,
    PlaceStep,
    Program,
    Step,
    StepType,
)


# Structural nesting ceiling for step lists. Execution depth is bounded
# separately (and much lower) by the interpreter.
MAX_NESTING = 128


def _is_list(value: Any) -> bool:
    return isinstance(value, list)


def classify_document(document: Any) -> DocumentShape:
    """
    Decide which layout a response document uses.

    A document with an array "steps" or "defs" is a compact program,
    otherwise one with an array "blocks" is legacy.
    """
    if not isinstance(document, Mapping):
        raise StructuralError("response must be a JSON object")
    if _is_list(document.get("steps")) or _is_list(document.get("defs")):
        return DocumentShape.COMPACT
    if _is_list(document.get("blocks")):
        return DocumentShape.LEGACY
    return DocumentShape.UNSUPPORTED


def has_legacy_blocks(document: Any) -> bool:
    return isinstance(document, Mapping) and _is_list(document.get("blocks"))


def parse_program(document: Mapping[str, Any]) -> Program:
    """
    Parse a compact program document.

    Collects defs first (last definition of a name wins), then requires a
    top-level "steps" array.
    """
    if not isinstance(document, Mapping):
        raise StructuralError("response must be a JSON object")

    program = Program()
    raw_defs = document.get("defs")
    if raw_defs is not None and not _is_list(raw_defs):
        raise StructuralError("defs must be an array", path="defs")

    for index, raw_def in enumerate(raw_defs or []):
        definition = _parse_def(raw_def, f"defs[{index}]")
        if definition.name in program.defs:
            program.duplicate_defs.append(definition.name)
        program.defs[definition.name] = definition

    steps = document.get("steps")
    if not _is_list(steps):
        raise StructuralError(
            "compact program requires a top-level steps array", path="steps"
        )
    program.steps = parse_steps(steps, "steps")
    return program


def _parse_def(raw: Any, path: str) -> Definition:
    if not isinstance(raw, Mapping):
        raise StructuralError("def must be an object", path=path)

    name = raw.get("name")
    name = name.strip() if isinstance(name, str) else ""
    if not name:
        raise StructuralError("def requires a non-empty name", path=path)

    steps = raw.get("steps")
    if not _is_list(steps):
        raise StructuralError(f"def '{name}' requires a steps array", path=path)

    return Definition(
        name=name,
        params=_parse_params(raw.get("params")),
        steps=parse_steps(steps, f"{path}.steps"),
    )


def _parse_params(raw: Any) -> tuple[str, ...]:
    """
    Declared parameter names. Anything but an array declares none, and
    entries that are not non-empty strings are skipped.
    """
    if not _is_list(raw):
        return ()
    return tuple(p.strip() for p in raw if isinstance(p, str) and p.strip())


def parse_steps(raw_steps: list[Any], path: str, nesting: int = 0) -> tuple[Step, ...]:
    """Parse a list of raw step objects into typed steps."""
    if nesting > MAX_NESTING:
        return (InvalidStep(StructuralError("steps nested too deeply", path=path)),)
    return tuple(
        parse_step(raw, f"{path}[{index}]", nesting)
        for index, raw in enumerate(raw_steps)
    )


def parse_step(raw: Any, path: str, nesting: int = 0) -> Step:
    """
    Parse a single step object. The op tag is matched case-insensitively.

    A malformed step becomes an InvalidStep carrying its error.
    """
    try:
        return _parse_step(raw, path, nesting)
    except StructuralError as e:
        return InvalidStep(e)


def _op_name(raw_op: Any) -> str:
    if raw_op is None or isinstance(raw_op, str):
        return str(raw_op)
    return f"<{type(raw_op).__name__}>"


def _parse_step(raw: Any, path: str, nesting: int) -> Step:
    if not isinstance(raw, Mapping):
        raise StructuralError("step must be an object", path=path)

    raw_op = raw.get("op")
    try:
        op = StepType(raw_op.strip().lower() if isinstance(raw_op, str) else raw_op)
    except ValueError:
        raise StructuralError(f"unknown op '{_op_name(raw_op)}'", path=path) from None

    if op in (StepType.PLACE, StepType.BLOCK):
        return PlaceStep(
            x=raw.get("x"),
            y=raw.get("y"),
            z=raw.get("z"),
            block_type=raw.get("blockType"),
        )

    if op == StepType.FOR:
        var = raw.get("var")
        var = var.strip() if isinstance(var, str) else ""
        if not var:
            raise StructuralError("for requires a non-empty var", path=path)
        body = raw.get("steps")
        if not _is_list(body):
            raise StructuralError("for requires a steps array", path=path)
        stride = raw.get("step")
        return ForStep(
            var=var,
            start=raw.get("from"),
            end=raw.get("to"),
            stride=1 if stride is None else stride,
            body=parse_steps(body, f"{path}.steps", nesting + 1),
        )

    # StepType.CALL
    name = raw.get("name")
    name = name.strip() if isinstance(name, str) else ""
    if not name:
        raise StructuralError("call requires a non-empty name", path=path)
    args = raw.get("args")
    if args is None:
        args = {}
    if not isinstance(args, Mapping):
        raise StructuralError(f"call '{name}' args must be an object", path=path)
    return CallStep(name=name, args=dict(args))
