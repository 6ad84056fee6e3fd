"""
API Module - HTTP interface to the expansion engine.

The orchestration server:
1. Pushes the runtime's block catalog once it is known
2. Posts each model response for expansion
3. Sends the returned blocks to the game client

Expansion state is per request; only the catalog persists between calls.
"""

from .schemas import (
    # Requests
    ExpandRequest,
    CatalogUpdateRequest,
    # Responses
    BlueprintResponse,
    ValidationResponse,
    CatalogResponse,
    ErrorResponse,
    # Shared
    BlockInfo,
    ErrorCode,
)
from .service import BlueprintService
from .app import create_app

__all__ = [
    # Requests
    "ExpandRequest",
    "CatalogUpdateRequest",
    # Responses
    "BlueprintResponse",
    "ValidationResponse",
    "CatalogResponse",
    "ErrorResponse",
    # Shared
    "BlockInfo",
    "ErrorCode",
    # Service
    "BlueprintService",
    "create_app",
]
