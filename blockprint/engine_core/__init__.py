"""
Engine Core - Deterministic, bounded blueprint expansion.

The engine is the runtime that:
1. Decides which document layout a response uses
2. Parses compact programs into typed steps
3. Executes them under execution budgets
4. Normalizes block types against the catalog
5. Caps the output into a Blueprint
"""

from .blueprint import Block, Blueprint, assemble_blueprint
from .catalog import CatalogStore, CatalogSnapshot, load_catalog_file, normalize_block_id
from .expression import evaluate_expression, coerce_call_argument
from .interpreter import ExecBudget, ExpansionLimits, ProgramInterpreter
from .expander import (
    decode_response_text,
    expand_document,
    expand_response_text,
    parse_blocks_from_response,
)

__all__ = [
    "Block",
    "Blueprint",
    "assemble_blueprint",
    "CatalogStore",
    "CatalogSnapshot",
    "load_catalog_file",
    "normalize_block_id",
    "evaluate_expression",
    "coerce_call_argument",
    "ExecBudget",
    "ExpansionLimits",
    "ProgramInterpreter",
    "decode_response_text",
    "expand_document",
    "expand_response_text",
    "parse_blocks_from_response",
]
