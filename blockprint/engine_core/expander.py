"""
Expander - Turns a model response into a bounded Blueprint.

Two document layouts are accepted:
- Compact: {"defs": [...], "steps": [...]}, executed by the interpreter
- Legacy: {"blocks": [{"x", "y", "z", "blockType"}, ...]}

Dispatch is an explicit three-way decision (classify_document). A compact
document that fails but also carries a legacy "blocks" array falls back
to the legacy path; this is the only recovery path in the core.
"""

from __future__ import annotations
from typing import Any, Mapping
import json
import logging
import re

from ..blueprint_dsl.parser import classify_document, has_legacy_blocks, parse_program
from ..blueprint_dsl.program_dsl import DocumentShape
from ..errors import BlueprintError, DocumentDecodeError, EvaluationError, ParseError, StructuralError
from .blueprint import Block, Blueprint, assemble_blueprint
from .catalog import CatalogStore
from .expression import coerce_value, value_text
from .interpreter import ExpansionLimits, execute_program


logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```[A-Za-z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)


def decode_response_text(text: str) -> dict[str, Any]:
    """
    Decode raw model output into a JSON object.

    Tolerates a surrounding Markdown code fence (```json ... ```).
    """
    if not isinstance(text, str) or not text.strip():
        raise DocumentDecodeError("response text is empty")

    body = text.strip()
    fenced = _CODE_FENCE.match(body)
    if fenced:
        body = fenced.group(1).strip()

    try:
        document = json.loads(body)
    except (ValueError, RecursionError) as e:
        raise DocumentDecodeError(f"response is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise DocumentDecodeError("response must be a JSON object")
    return document


def parse_legacy_blocks(
    document: Mapping[str, Any],
    catalog: CatalogStore,
    limits: ExpansionLimits,
) -> list[Block]:
    """
    Parse a flat "blocks" array.

    Legacy documents have no variables: coordinates are evaluated and
    block types normalized against an empty scope.
    """
    raw_blocks = document.get("blocks")
    if not isinstance(raw_blocks, list):
        raise StructuralError("legacy document requires a blocks array", path="blocks")

    snapshot = catalog.snapshot
    blocks: list[Block] = []
    for index, entry in enumerate(raw_blocks[:max(0, limits.max_blocks)]):
        path = f"blocks[{index}]"
        if not isinstance(entry, Mapping):
            raise StructuralError("block must be an object", path=path)
        coords = []
        for axis in ("x", "y", "z"):
            value = entry.get(axis)
            try:
                coords.append(
                    coerce_value(value, {}, max_depth=limits.max_expression_depth)
                )
            except ParseError as e:
                raise EvaluationError(
                    e.message,
                    path=f"{path}.{axis}",
                    expression=value_text(value),
                ) from e
        block_type = catalog.normalize(entry.get("blockType"), {}, snapshot=snapshot)
        blocks.append(Block(x=coords[0], y=coords[1], z=coords[2], block_type=block_type))
    return blocks


def parse_compact_blocks(
    document: Mapping[str, Any],
    catalog: CatalogStore,
    limits: ExpansionLimits,
) -> list[Block]:
    """Parse and execute a compact program."""
    program = parse_program(document)
    if program.duplicate_defs:
        logger.debug("Duplicate defs overwritten: %s", ", ".join(program.duplicate_defs))
    return execute_program(program, catalog, limits)


def dispatch_document(
    document: Any,
    catalog: CatalogStore,
    limits: ExpansionLimits,
) -> tuple[list[Block], DocumentShape]:
    """
    Expand a document, returning its blocks and the layout that produced them.

    The layout is LEGACY when a compact program fell back to its blocks array.
    """
    shape = classify_document(document)

    if shape == DocumentShape.COMPACT:
        try:
            return parse_compact_blocks(document, catalog, limits), shape
        except BlueprintError as e:
            if not has_legacy_blocks(document):
                raise
            logger.info("Compact program failed (%s); falling back to legacy blocks", e)
            return parse_legacy_blocks(document, catalog, limits), DocumentShape.LEGACY

    if shape == DocumentShape.LEGACY:
        return parse_legacy_blocks(document, catalog, limits), shape

    raise StructuralError(
        "response is missing both steps/defs and blocks arrays"
    )


def parse_blocks_from_response(
    document: Any,
    catalog: CatalogStore | None = None,
    limits: ExpansionLimits | None = None,
) -> list[Block]:
    """
    Expand a decoded response document into blocks.

    Raises a BlueprintError subclass when the document is rejected.
    """
    blocks, _ = dispatch_document(
        document, catalog or CatalogStore(), limits or ExpansionLimits()
    )
    return blocks


def expand_document(
    document: Any,
    catalog: CatalogStore | None = None,
    limits: ExpansionLimits | None = None,
) -> Blueprint:
    """Expand a document and assemble the capped Blueprint."""
    limits = limits or ExpansionLimits()
    blocks, shape = dispatch_document(document, catalog or CatalogStore(), limits)
    blueprint = assemble_blueprint(blocks, limits.max_blocks)
    blueprint.source_format = shape.value
    return blueprint


def expand_response_text(
    text: str,
    catalog: CatalogStore | None = None,
    limits: ExpansionLimits | None = None,
) -> Blueprint:
    """Decode raw model output and expand it."""
    return expand_document(decode_response_text(text), catalog, limits)
