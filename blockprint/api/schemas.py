"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between the orchestration server
(which talks to the model and the game client) and the expansion engine.

Error Codes:
- INVALID_DOCUMENT: Document has the wrong shape or is not JSON
- INVALID_EXPRESSION: An expression could not be evaluated
- RUNAWAY_PROGRAM: Program exceeded depth, step or call ceilings
- INVALID_CATALOG: Catalog replacement had no usable block ids
- INTERNAL_ERROR: Unexpected failure inside the engine
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field, model_validator


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Structured error codes."""
    INVALID_DOCUMENT = "INVALID_DOCUMENT"
    INVALID_EXPRESSION = "INVALID_EXPRESSION"
    RUNAWAY_PROGRAM = "RUNAWAY_PROGRAM"
    INVALID_CATALOG = "INVALID_CATALOG"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DocumentFormat(str, Enum):
    """Layout of the expanded document."""
    COMPACT = "compact"
    LEGACY = "legacy"


# =============================================================================
# Shared Models
# =============================================================================

class BlockInfo(BaseModel):
    """A single block placement, relative to the build origin."""
    x: int
    y: int
    z: int
    block_type: str = Field(alias="blockType")

    model_config = {"from_attributes": True, "populate_by_name": True}


# =============================================================================
# Request Models
# =============================================================================

class ExpandRequest(BaseModel):
    """
    Request to expand a model response into blocks.

    Provide either the decoded `document` or the raw response `text`.
    """
    document: Optional[dict[str, Any]] = None
    text: Optional[str] = Field(None, description="Raw model output, optionally fenced")
    max_blocks: Optional[int] = Field(
        None, ge=1, description="Lower the output cap for this request"
    )

    @model_validator(mode="after")
    def _require_input(self):
        if self.document is None and self.text is None:
            raise ValueError("either document or text is required")
        return self


class CatalogUpdateRequest(BaseModel):
    """Replace the block catalog wholesale."""
    block_ids: list[str] = Field(min_length=1)
    version: Optional[str] = None
    source: Optional[str] = None


# =============================================================================
# Response Models
# =============================================================================

class BlueprintResponse(BaseModel):
    """Expanded blueprint."""
    success: bool = True
    format: DocumentFormat
    block_count: int
    blocks: list[BlockInfo] = Field(default_factory=list)
    truncated_from: Optional[int] = Field(
        None, description="Block count before the output cap was applied"
    )
    catalog_version: str
    api_version: str = "v1"


class ValidationResponse(BaseModel):
    """Static validation result for a compact program."""
    valid: bool
    format: Optional[DocumentFormat] = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class CatalogResponse(BaseModel):
    """Current block catalog summary."""
    version: str
    source: str
    block_count: int
    fallback: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    error_code: ErrorCode
    details: Optional[dict[str, Any]] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
