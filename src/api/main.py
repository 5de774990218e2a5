from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .errors import BoardError, NotFound, ServerMisconfigured, StorageError, Unauthorized
from .logging_config import setup_logging
from .repositories import AnnouncementStore, build_store
from .routers import announcements as announcements_router
from .settings import Settings, get_settings

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "announcements", "description": "Public, read-only announcement feed."},
    {
        "name": "admin",
        "description": "Bearer-token protected creation, editing and deletion of announcements.",
    },
]

# Domain error -> HTTP status. Order matters: subclasses before StorageError.
_STATUS_BY_ERROR = (
    (Unauthorized, 401),
    (NotFound, 404),
    (ServerMisconfigured, 500),
    (StorageError, 500),
)


def _status_for(exc: BoardError) -> int:
    for error_cls, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status_code
    return 500


async def board_error_handler(request: Request, exc: BoardError) -> JSONResponse:
    """
    Translate gate and store errors into JSON responses.

    Response format:
        {
            "error": "Unauthorized" | "ServerMisconfigured" | "NotFound" | "ReadError" | "WriteError",
            "message": "..."
        }
    """
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.kind, "message": exc.message},
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": _jsonable_errors(exc),
        },
    )


def _jsonable_errors(exc: RequestValidationError) -> list:
    # ValueError instances raised in validators sit in 'ctx' and are not JSON serializable
    errors = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(err)
    return errors


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, store: Optional[AnnouncementStore] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The settings and the store handle are created once here and shared by every
    request through ``app.state``; pass them explicitly to isolate instances
    (tests, multiple apps in one process).
    """
    settings = settings or get_settings()
    store = store or build_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(settings)
        if not settings.admin_token:
            logger.warning("ADMIN_TOKEN is not set; admin routes will answer 500")
        logger.info(f"Announcement board started with {store.backend_name} backend")
        yield
        store.close()
        logger.info("Announcement board stopped")

    app = FastAPI(
        title="Announcement Board Backend",
        description="Public announcement feed with a token-gated admin API and dual-backend storage.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BoardError, board_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object with the active backend and the number of writes
            that fell back to the secondary backend since start-up.
        """
        return {
            "message": "Healthy",
            "backend": store.backend_name,
            "divergences": store.divergences,
        }

    app.include_router(announcements_router.public_router)
    app.include_router(announcements_router.admin_router)
    return app


app = create_app()
