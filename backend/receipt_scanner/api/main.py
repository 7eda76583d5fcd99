"""Entry point for the FastAPI application.

This module constructs the FastAPI app, includes the receipt router and
sets up startup and shutdown handling.  When run with uvicorn
(``uvicorn receipt_scanner.api.main:app``) the lifespan builds the MongoDB
connection pool, the Firebase identity verifier, the extraction service and
the access policy from ``receipt_scanner.core.config`` and keeps them on
``app.state``.  ``create_app`` accepts pre-built collaborators so tests can
run the full app against stubs.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from receipt_scanner import __version__
from receipt_scanner.api.error_handlers import (
    generic_exception_handler,
    http_exception_handler,
    storage_failure_handler,
    validation_exception_handler,
)
from receipt_scanner.api.routes.receipts import router as receipts_router
from receipt_scanner.core.config import is_development, settings
from receipt_scanner.core.context import REQUEST_ID_HEADER, RequestContext
from receipt_scanner.core.database import MongoConnectionPool, StorageFailure
from receipt_scanner.core.observability import init_sentry, sentry_set_tags
from receipt_scanner.core.policy import AccessPolicy, build_access_policy
from receipt_scanner.core.security import FirebaseIdentityVerifier
from receipt_scanner.services.extraction_service import ExtractionService

# Configure logging
logging.basicConfig(
    level=getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO),
    format="%(asctime)s  %(name)-40s  %(levelname)-5s  %(message)s",
)
logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Allow every origin in development, the configured list otherwise."""
    if is_development():
        return ["*"]
    seen: set[str] = set()
    return [o for o in (settings.BACKEND_CORS_ORIGINS or []) if not (o in seen or seen.add(o))]


def create_app(
    pool: Optional[MongoConnectionPool] = None,
    identity_verifier: Any = None,
    extraction_service: Optional[ExtractionService] = None,
    access_policy: Optional[AccessPolicy] = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle."""
        logger.info("Starting up...")
        if init_sentry("api"):
            logger.info("Sentry SDK initialized (api)")
        state = app.state
        if getattr(state, "mongo_pool", None) is None:
            state.mongo_pool = MongoConnectionPool.from_settings()
        if getattr(state, "identity_verifier", None) is None:
            state.identity_verifier = FirebaseIdentityVerifier()
        if getattr(state, "extraction_service", None) is None:
            state.extraction_service = ExtractionService()
        if getattr(state, "access_policy", None) is None:
            state.access_policy = build_access_policy(settings.ACCESS_POLICY)
        logger.info("Receipt access policy: %s", type(state.access_policy).__name__)
        yield
        logger.info("Shutting down...")
        state.mongo_pool.close()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.mongo_pool = pool
    app.state.identity_verifier = identity_verifier
    app.state.extraction_service = extraction_service
    app.state.access_policy = access_policy

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        ctx = RequestContext.from_headers(request.headers)
        request.state.context = ctx
        sentry_set_tags({"request_id": ctx.request_id, "path": request.url.path, "method": request.method})
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = ctx.request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=not is_development(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register custom exception handlers
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StorageFailure, storage_failure_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(receipts_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"service": settings.PROJECT_NAME, "version": __version__, "success": True}

    @app.api_route("/health", methods=["GET", "HEAD"])
    async def health_check():
        """Health check endpoint (supports GET & HEAD)."""
        return {"status": "healthy", "success": True}

    return app


app = create_app()
