"""
FastAPI application for the rental application workflow.

Production deployment configuration via environment variables (see
utils.config.Config).
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from core.application import (
    ApplicationNotFound,
    AuthorizationError,
    InvalidTransition,
    PreconditionFailed,
    StorageFailure,
    ValidationError,
    WorkflowError,
)
from utils.config import Config
from web.application_routes import build_workflow_service, router as application_router

logger = logging.getLogger(__name__)


# =============================================================================
# Error Translation
# =============================================================================

# Checked in order; ActionInProgress falls under PreconditionFailed
ERROR_STATUS_CODES: tuple[tuple[type, int], ...] = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (ApplicationNotFound, 404),
    (PreconditionFailed, 409),
    (InvalidTransition, 409),
    (StorageFailure, 502),
)


def status_code_for(error: WorkflowError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 400


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    """Render a workflow failure as {detail, error_code, application_id}."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s refused (%s): %s",
            request.method,
            request.url.path,
            exc.error_code,
            exc.message,
        )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Application Factory
# =============================================================================


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or Config.load()
    configure_logging(config.log_level)

    app = FastAPI(
        title="Rental Application Workflow",
        description="Rental applications from submission to signed, paid tenancy",
        version="0.1.0",
        debug=config.debug,
    )
    app.state.config = config
    app.state.workflow_service = build_workflow_service(config)

    @app.get("/health", include_in_schema=False)
    def health():
        """Health endpoint. No dependencies, no IO."""
        return {"status": "healthy"}

    if config.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.allowed_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    app.add_exception_handler(WorkflowError, workflow_error_handler)

    # Stored contracts are served back under their public URLs
    Path(config.document_root).mkdir(parents=True, exist_ok=True)
    app.mount(
        config.document_base_url.rstrip("/") or "/files",
        StaticFiles(directory=config.document_root, check_dir=False),
        name="documents",
    )

    app.include_router(application_router)

    logger.info(
        "rental application workflow configured documents=%s applications=%s",
        config.document_root,
        config.applications_file,
    )
    return app


# Create app instance
app = create_app()
