"""Blueprint program schema - the compact DSL a model emits."""

from .program_dsl import (
    Program,
    Definition,
    Step,
    PlaceStep,
    ForStep,
    CallStep,
    InvalidStep,
    StepType,
    DocumentShape,
)
from .parser import classify_document, parse_program
from .validation import validate_program, ValidationResult

__all__ = [
    "Program",
    "Definition",
    "Step",
    "PlaceStep",
    "ForStep",
    "CallStep",
    "InvalidStep",
    "StepType",
    "DocumentShape",
    "classify_document",
    "parse_program",
    "validate_program",
    "ValidationResult",
]
