"""
Blueprint Errors - Rejections raised while expanding a blueprint document.

Every error here is a rejection of the *document*, not a failure of the
system. Callers are expected to treat them as "ask the model again".

Hierarchy:
- BlueprintError
  - StructuralError      wrong shape, missing fields, unknown op/def
    - DocumentDecodeError  response text is not a JSON object
  - EvaluationError      expression could not be evaluated
    - ParseError           raised by the expression evaluator itself
  - BudgetExceededError  runaway program (depth, steps, calls)
"""

from __future__ import annotations


class BlueprintError(Exception):
    """Base class for document rejections."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        expression: str | None = None,
    ):
        self.message = message
        self.path = path
        self.expression = expression
        super().__init__(self._format())

    def _format(self) -> str:
        text = self.message
        if self.path:
            text = f"{self.path}: {text}"
        if self.expression is not None:
            text = f"{text} (expression: {self.expression!r})"
        return text


class StructuralError(BlueprintError):
    """The document has the wrong shape or is missing required fields."""


class DocumentDecodeError(StructuralError):
    """Raw response text could not be decoded into a JSON object."""


class EvaluationError(BlueprintError):
    """An expression in the document could not be evaluated."""


class ParseError(EvaluationError):
    """Raised by the expression evaluator for malformed or unresolvable input."""


class BudgetExceededError(BlueprintError):
    """The program exceeded one of its execution ceilings."""

    def __init__(self, limit: str, ceiling: int, path: str | None = None):
        self.limit = limit
        self.ceiling = ceiling
        super().__init__(f"{limit} exceeded (max {ceiling})", path=path)


class CatalogError(ValueError):
    """Raised when a block catalog replacement is invalid."""
