import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from registry_admin.api import config_maps, git, health, registries, servers
from registry_admin.core.config import settings
from registry_admin.core.errors import (
    AccessDeniedError,
    ConflictError,
    MalformedInputError,
    NotFoundError,
    RegistryAdminError,
    StoreUnavailableError,
    UnreachableError,
)
from registry_admin.services.kubernetes_client import ClusterStore
from registry_admin.services.validation_cache import ValidationCache

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the long-lived components on startup and release them on shutdown."""
    # Startup
    logger.info(f"{settings.PROJECT_NAME} starting up...")
    app.state.store = ClusterStore.from_settings(settings)
    app.state.validation_cache = ValidationCache(
        ttl_seconds=settings.VALIDATION_CACHE_TTL_SECONDS,
        max_entries=settings.VALIDATION_CACHE_MAX_ENTRIES,
    )
    app.state.http_client = httpx.AsyncClient(timeout=settings.SERVER_COUNT_TIMEOUT_SECONDS)
    yield
    # Shutdown
    logger.info(f"{settings.PROJECT_NAME} shutting down, closing HTTP client...")
    await app.state.http_client.aclose()
    app.state.validation_cache.clear()

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Administrative API for MCP registries and their deployed servers",
    version="0.1.0",
    lifespan=lifespan
)

# Add validation error handler to log 422 errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"[VALIDATION ERROR] on {request.url}: {exc.errors()}")
    logger.error(f"[VALIDATION ERROR] Body: {await request.body()}")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors())},
    )

ERROR_STATUS_CODES = {
    MalformedInputError: 400,
    AccessDeniedError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    UnreachableError: 502,
    StoreUnavailableError: 503,
}

@app.exception_handler(RegistryAdminError)
async def registry_admin_exception_handler(request: Request, exc: RegistryAdminError):
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        500,
    )
    if status_code >= 500:
        logger.error(f"[{type(exc).__name__}] on {request.url}: {exc}")
    else:
        logger.info(f"[{type(exc).__name__}] on {request.url}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api = settings.API_V1_STR
app.include_router(health.router, prefix=f"{api}/health", tags=["health"])
app.include_router(registries.router, prefix=f"{api}/mcpregistries", tags=["registries"])
app.include_router(config_maps.router, prefix=f"{api}/configmaps", tags=["configmaps"])
app.include_router(git.router, prefix=f"{api}/git", tags=["git"])
app.include_router(servers.orphans_router, prefix=f"{api}/orphaned-servers", tags=["servers"])
app.include_router(servers.router, prefix=f"{api}/servers", tags=["servers"])
