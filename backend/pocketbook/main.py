"""
Pocketbook Backend — FastAPI Application Factory
=================================================

What:  Builds the FastAPI application and wires every component together.
How:   create_app() takes Settings (and optionally ready-made stores, which
       the test-suite uses) and constructs, in order:

           CredentialHasher ─┐
           StorageAdapter ───┼─▶ SessionAuthenticator ─┐
           PayloadStrategy ──┴─────────────────────────┴─▶ Interactor

       The Settings and the Interactor are stored on `app.state` for the
       route dependencies. Nothing is read from module globals afterwards.
Who:   uvicorn (`uvicorn pocketbook.main:app`) and the tests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │  Middleware:   RequestID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:       /api/1/users, /api/1/sessions,            │
    │                /api/1/users/{id}/wallets[/…/transactions]│
    │                /api/1/users/{id}/categories, …/images    │
    │                /health                                   │
    │                                                          │
    │  Exceptions:   Validation→400  Unauthorized→401          │
    │                NotFound→404    Conflict→409              │
    │                PartialConsistency→502                    │
    │                StoreUnavailable→503   other→500          │
    └──────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from pocketbook import __version__
from pocketbook.config import Settings, get_settings
from pocketbook.database import Database
from pocketbook.exceptions import (
    ConflictError,
    NotFoundError,
    PartialConsistencyError,
    PocketbookError,
    StoreUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from pocketbook.middleware.logging import RequestLoggingMiddleware
from pocketbook.middleware.request_id import RequestIDMiddleware, request_id_var
from pocketbook.routes import accounts, categories, health, images, transactions, wallets
from pocketbook.security import CredentialHasher
from pocketbook.services.auth_service import SessionAuthenticator
from pocketbook.services.interactor import Interactor
from pocketbook.services.payloads import build_payload_strategy
from pocketbook.storage.base import BlobAdapter, StorageAdapter
from pocketbook.storage.sql import SqlStorage

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once for the process.

    Format: 2024-01-15T12:00:00 [INFO] pocketbook.services.interactor: ...
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-operation chatter from third-party libraries.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: logging, configuration check, local schema creation.
    Shutdown: close the connection pool.
    """
    settings: Settings = app.state.settings
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Pocketbook Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: the health check and error responses stay reachable.
        logger.error("Configuration error: %s", str(e))

    database: Optional[Database] = app.state.database
    if database is not None and settings.database_url.startswith("sqlite"):
        # Local runs without Alembic.
        await database.create_all()
        logger.info("SQLite schema ensured")

    logger.info("Image payloads: %s", app.state.interactor.payloads.name)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Pocketbook Backend shutting down...")
    if database is not None:
        await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details: Optional[Dict[str, Any]] = None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details is not None:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the PocketbookError hierarchy to status codes.

    5xx bodies never carry the internal context; it is logged instead.
    401 bodies never say which part of the credential was wrong.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(request: Request, exc: UnauthorizedError):
        logger.info("[%s] Unauthorized: %s", request_id_var.get(""), exc.context)
        return JSONResponse(
            status_code=401,
            content=_error_body("unauthorized", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc.message))

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        logger.warning("[%s] Conflict: %s | %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(
            status_code=409,
            content=_error_body("conflict", exc.message, {"stage": exc.stage}),
        )

    @app.exception_handler(PartialConsistencyError)
    async def handle_partial_consistency(request: Request, exc: PartialConsistencyError):
        logger.error(
            "[%s] Partial consistency: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=502,
            content=_error_body(
                "partial_consistency",
                exc.message,
                {
                    "operation": exc.operation,
                    "image_id": exc.context.get("image_id"),
                    "stage": exc.stage,
                },
            ),
        )

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailableError):
        logger.error(
            "[%s] Store unavailable: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=503,
            content=_error_body("store_unavailable", exc.message, {"store": exc.store, "stage": exc.stage}),
            headers={"Retry-After": "5"},
        )

    @app.exception_handler(PocketbookError)
    async def handle_pocketbook_error(request: Request, exc: PocketbookError):
        logger.error(
            "[%s] Server error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StorageAdapter] = None,
    blob: Optional[BlobAdapter] = None,
) -> FastAPI:
    """
    Assemble the application.

    Args:
        settings: defaults to get_settings()
        storage:  relational adapter; defaults to SqlStorage over DATABASE_URL
        blob:     blob adapter used when BLOB_STORAGE_ENABLED; defaults to a
                  LocalBlobStore under BLOB_STORAGE_ROOT
    """
    settings = settings or get_settings()

    database: Optional[Database] = None
    if storage is None:
        database = Database(settings)
        storage = SqlStorage(database, logger=logging.getLogger("pocketbook.storage.sql"))

    hasher = CredentialHasher(settings.credential_key, settings.token_algorithm)
    authenticator = SessionAuthenticator(
        storage,
        hasher,
        issue_attempts=settings.session_issue_attempts,
        logger=logging.getLogger("pocketbook.services.auth_service"),
    )
    payloads = build_payload_strategy(
        settings, blob=blob, logger=logging.getLogger("pocketbook.services.payloads")
    )
    interactor = Interactor(
        storage,
        authenticator,
        hasher,
        payloads,
        logger=logging.getLogger("pocketbook.services.interactor"),
    )

    app = FastAPI(
        title="Pocketbook API",
        description=(
            "Personal bookkeeping backend: users, sessions, wallets, categories, "
            "receipt images and transactions."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.interactor = interactor

    # Last added runs first: RequestID → Logging → GZip → CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Authorization", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(accounts.router)
    app.include_router(wallets.router)
    app.include_router(categories.router)
    app.include_router(transactions.router)
    app.include_router(images.router)
    app.include_router(health.router)

    return app


# uvicorn pocketbook.main:app
app = create_app()
