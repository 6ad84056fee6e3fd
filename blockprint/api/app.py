"""
FastAPI Application - REST API for the orchestration server.

Endpoints:
    POST   /api/v1/blueprints/expand     Expand a model response into blocks
    POST   /api/v1/blueprints/validate   Statically validate a compact program
    GET    /api/v1/catalog               Current block catalog summary
    PUT    /api/v1/catalog               Replace the block catalog
    GET    /health                       Health check

Expansion is synchronous and CPU-bound; the execution ceilings bound the
work done per request. Callers wanting a wall-clock timeout must apply it
outside the engine.

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Union

from .. import __version__
from ..config import ALLOWED_ORIGINS, BLOCKPRINT_CATALOG_FILE, load_limits


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional BlueprintService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import BlueprintService
    from .schemas import (
        # Request models
        ExpandRequest,
        CatalogUpdateRequest,
        # Response models
        BlueprintResponse,
        ValidationResponse,
        CatalogResponse,
        ErrorResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )

    app = FastAPI(
        title="Blockprint API",
        description="""
Compact blueprint interpreter - expands model-generated build programs
into bounded lists of block placements.

## Error Codes

| Code | Description |
|------|-------------|
| `INVALID_DOCUMENT` | Wrong shape, missing fields, unknown op or function |
| `INVALID_EXPRESSION` | Expression could not be evaluated |
| `RUNAWAY_PROGRAM` | Depth, step or call ceiling exceeded |
| `INVALID_CATALOG` | Catalog replacement had no usable block ids |
| `INTERNAL_ERROR` | Unexpected failure inside the engine (HTTP 500) |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    api_service = service or BlueprintService(limits=load_limits())
    if service is None and BLOCKPRINT_CATALOG_FILE:
        api_service.load_catalog(BLOCKPRINT_CATALOG_FILE)

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ErrorResponse, status_code: int = 400) -> JSONResponse:
        """Create a standardized error response."""
        if error.error_code == ErrorCode.RUNAWAY_PROGRAM:
            status_code = 422
        elif error.error_code == ErrorCode.INTERNAL_ERROR:
            status_code = 500
        return JSONResponse(status_code=status_code, content=error.model_dump(mode="json"))

    # =========================================================================
    # Blueprint Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/blueprints/expand",
        response_model=BlueprintResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Malformed document or expression"},
            422: {"model": ErrorResponse, "description": "Runaway program"},
            500: {"model": ErrorResponse, "description": "Internal error"},
        },
        tags=["Blueprints"],
        summary="Expand a model response into blocks",
    )
    def expand_blueprint(request: ExpandRequest) -> Union[BlueprintResponse, JSONResponse]:
        """
        Expand a compact program or legacy block list.

        Provide either `document` (decoded JSON) or `text` (raw model output).
        """
        response = api_service.expand(request)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.post(
        "/api/v1/blueprints/validate",
        response_model=ValidationResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Blueprints"],
        summary="Validate a compact program without running it",
    )
    def validate_blueprint(request: ExpandRequest) -> Union[ValidationResponse, JSONResponse]:
        response = api_service.validate(request)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    # =========================================================================
    # Catalog Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/catalog",
        response_model=CatalogResponse,
        tags=["Catalog"],
        summary="Get the current block catalog",
    )
    def get_catalog() -> CatalogResponse:
        return api_service.get_catalog()

    @app.put(
        "/api/v1/catalog",
        response_model=CatalogResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Catalog"],
        summary="Replace the block catalog",
    )
    def update_catalog(request: CatalogUpdateRequest) -> Union[CatalogResponse, JSONResponse]:
        """Replace the catalog wholesale. Resets the unknown-type warnings."""
        response = api_service.update_catalog(request)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="blockprint",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    def root():
        """Root endpoint with API info."""
        return {
            "name": "Blockprint API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app
