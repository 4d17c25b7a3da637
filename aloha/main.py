"""
FastAPI Application - Aloha API
Authorization and session core for the Aloha tweet service
"""

import math
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aloha.config import settings
from aloha.core.database import get_async_session
from aloha.core.errors import (
    AlohaError,
    ConstraintViolation,
    DuplicateUsername,
    InsufficientPermission,
    InvalidCredentials,
    NotFound,
    SessionExpired,
    SessionNotFound,
    StoreUnavailable,
)
from aloha.core.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)
from aloha.core.permission_sync import sync_permissions

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup and shutdown events"""
    # Startup
    configure_logging()
    logger.info(
        "app_starting",
        environment=settings.ENVIRONMENT,
        database=settings.DATABASE_URL.split("@")[1] if "@" in settings.DATABASE_URL else "configured",
    )

    if settings.SYNC_PERMISSIONS_ON_STARTUP:
        async with get_async_session() as db:
            await sync_permissions(db)

    yield
    # Shutdown
    logger.info("app_shutting_down")


# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Users, groups, permissions and sessions behind a tweet API",
    version=settings.VERSION,
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Bind a request ID to every log line of the request and echo it back."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    set_request_context(request_id)
    try:
        response = await call_next(request)
    finally:
        clear_request_context()
    response.headers["X-Request-ID"] = request_id
    return response


# ===== Domain error handlers =====

_STATUS_FOR_ERROR: list[tuple[type[AlohaError], int]] = [
    (DuplicateUsername, status.HTTP_409_CONFLICT),
    (ConstraintViolation, status.HTTP_409_CONFLICT),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (InvalidCredentials, status.HTTP_401_UNAUTHORIZED),
    (SessionNotFound, status.HTTP_401_UNAUTHORIZED),
    (SessionExpired, status.HTTP_401_UNAUTHORIZED),
    (InsufficientPermission, status.HTTP_403_FORBIDDEN),
]


@app.exception_handler(AlohaError)
async def aloha_error_handler(request: Request, exc: AlohaError) -> JSONResponse:
    if isinstance(exc, StoreUnavailable):
        logger.warning("store_unavailable", path=request.url.path, detail=exc.detail)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": exc.detail},
            headers={"Retry-After": str(math.ceil(settings.STORE_TIMEOUT_SECONDS))},
        )

    for error_type, status_code in _STATUS_FOR_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        status_code = status.HTTP_400_BAD_REQUEST

    # Session errors are reported exactly like a missing session
    if isinstance(exc, SessionNotFound | SessionExpired):
        return JSONResponse(
            status_code=status_code,
            content={"detail": "Not authenticated"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return JSONResponse(status_code=status_code, content={"detail": exc.detail})


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint - API information"""
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint"""
    return {"status": "healthy"}


# Import and include routers
from aloha.api.v1 import router as api_v1_router  # noqa: E402

app.include_router(api_v1_router, prefix=settings.API_V1_STR)
