"""
API Service - Business logic layer between the API and the engine.

The service:
1. Owns the block catalog store and the expansion limits
2. Expands model responses into blueprints
3. Validates compact programs without running them
4. Translates engine errors into structured error responses

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from pathlib import Path
import logging

from .schemas import (
    BlockInfo,
    BlueprintResponse,
    CatalogResponse,
    CatalogUpdateRequest,
    DocumentFormat,
    ErrorCode,
    ErrorResponse,
    ExpandRequest,
    ValidationResponse,
)
from ..blueprint_dsl import DocumentShape, classify_document, parse_program, validate_program
from ..engine_core import (
    Blueprint,
    CatalogStore,
    ExpansionLimits,
    decode_response_text,
    expand_document,
    load_catalog_file,
)
from ..errors import (
    BlueprintError,
    BudgetExceededError,
    CatalogError,
    EvaluationError,
)


logger = logging.getLogger(__name__)


def error_code_for(error: BlueprintError) -> ErrorCode:
    """Map a document rejection to its API error code."""
    if isinstance(error, BudgetExceededError):
        return ErrorCode.RUNAWAY_PROGRAM
    if isinstance(error, EvaluationError):
        return ErrorCode.INVALID_EXPRESSION
    return ErrorCode.INVALID_DOCUMENT


def error_response_for(error: BlueprintError) -> ErrorResponse:
    details = {"type": type(error).__name__}
    if error.path:
        details["path"] = error.path
    if error.expression is not None:
        details["expression"] = error.expression
    if isinstance(error, BudgetExceededError):
        details["limit"] = error.limit
        details["ceiling"] = error.ceiling
    return ErrorResponse(
        error=str(error),
        error_code=error_code_for(error),
        details=details,
    )


def internal_error(operation: str) -> ErrorResponse:
    return ErrorResponse(
        error=f"internal error during {operation}",
        error_code=ErrorCode.INTERNAL_ERROR,
    )


@dataclass
class BlueprintService:
    """
    Main service for blueprint expansion.

    Usage:
        service = BlueprintService()

        # Swap in the runtime's catalog
        service.update_catalog(CatalogUpdateRequest(block_ids=ids, version="1.21.50"))

        # Expand a model response
        response = service.expand(ExpandRequest(text=raw_model_output))
    """
    catalog: CatalogStore = field(default_factory=CatalogStore)
    limits: ExpansionLimits = field(default_factory=ExpansionLimits)

    def expand(self, request: ExpandRequest) -> BlueprintResponse | ErrorResponse:
        """Expand a response document (or raw text) into a blueprint."""
        limits = self.limits
        if request.max_blocks is not None:
            limits = replace(limits, max_blocks=min(limits.max_blocks, request.max_blocks))

        try:
            document = request.document
            if document is None:
                document = decode_response_text(request.text)
            blueprint = expand_document(document, self.catalog, limits)
        except BudgetExceededError as e:
            logger.warning("Runaway program rejected: %s", e)
            return error_response_for(e)
        except BlueprintError as e:
            logger.info("Malformed program rejected: %s", e)
            return error_response_for(e)
        except Exception:
            logger.exception("Unexpected error during expansion")
            return internal_error("expansion")

        return self._blueprint_response(blueprint)

    def validate(self, request: ExpandRequest) -> ValidationResponse | ErrorResponse:
        """
        Statically validate a document.

        Legacy documents have no program structure and are always valid here.
        """
        try:
            document = request.document
            if document is None:
                document = decode_response_text(request.text)
            shape = classify_document(document)
            if shape == DocumentShape.LEGACY:
                return ValidationResponse(valid=True, format=DocumentFormat.LEGACY)
            if shape == DocumentShape.UNSUPPORTED:
                return ValidationResponse(
                    valid=False,
                    errors=["response is missing both steps/defs and blocks arrays"],
                )
            program = parse_program(document)
        except BlueprintError as e:
            return error_response_for(e)
        except Exception:
            logger.exception("Unexpected error during validation")
            return internal_error("validation")

        result = validate_program(program)
        return ValidationResponse(
            valid=result.valid,
            format=DocumentFormat.COMPACT,
            errors=result.errors,
            warnings=result.warnings,
        )

    def get_catalog(self) -> CatalogResponse:
        return CatalogResponse(**self.catalog.describe())

    def update_catalog(self, request: CatalogUpdateRequest) -> CatalogResponse | ErrorResponse:
        """Replace the catalog wholesale."""
        try:
            self.catalog.set_catalog(
                request.block_ids,
                version=request.version,
                source=request.source,
            )
        except CatalogError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.INVALID_CATALOG)
        return self.get_catalog()

    def load_catalog(self, path: str | Path) -> CatalogResponse:
        """
        Load a catalog file at startup.

        Keeps the current catalog (and logs why) when the file is unusable.
        """
        try:
            ids, meta = load_catalog_file(path)
            self.catalog.set_catalog(ids, version=meta["version"], source=meta["source"])
        except CatalogError as e:
            logger.warning("%s; keeping %s catalog", e, self.catalog.snapshot.source)
        return self.get_catalog()

    def _blueprint_response(self, blueprint: Blueprint) -> BlueprintResponse:
        return BlueprintResponse(
            format=DocumentFormat(blueprint.source_format or "compact"),
            block_count=len(blueprint),
            blocks=[
                BlockInfo(x=b.x, y=b.y, z=b.z, block_type=b.block_type)
                for b in blueprint.blocks
            ],
            truncated_from=blueprint.truncated_from,
            catalog_version=self.catalog.snapshot.version,
        )
