import sys
import httpx
from fastapi import FastAPI, Request, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from loguru import logger
from contextlib import asynccontextmanager

from .config import settings
from .database import gateway
from .errors import http_exception_handler
from .security import cors_headers
from .storage import StorageClient
from .utils import json_response
from . import general, subscription, users, welcome

# --- Logging ---
logger.remove()
logger.add(sys.stdout, format="{time} {level} {message}", level=settings.LOG_LEVEL.upper())

# Final path segment -> methods advertised in the CORS headers of that resource
RESOURCE_CORS_METHODS = {
    "general": general.CORS_METHODS,
    "subscription": subscription.CORS_METHODS,
    "users": users.CORS_METHODS,
    "welcome": welcome.CORS_METHODS,
}

ROUTED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"]

# --- Application ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    timeout = httpx.Timeout(
        connect=5.0,
        read=settings.STORAGE_TIMEOUT,
        write=5.0,
        pool=5.0
    )
    app.state.http_client = httpx.AsyncClient(timeout=timeout)
    app.state.storage = StorageClient.from_settings(settings, app.state.http_client)

    logger.info(f"{settings.API_TITLE} started ({settings.ENVIRONMENT})")
    yield

    # Cleanup
    await app.state.http_client.aclose()
    gateway.close()
    logger.info(f"{settings.API_TITLE} stopped")

app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)

# CORS runs per resource: preflight answers before any auth or handler logic
@app.middleware("http")
async def cors_middleware(request: Request, call_next):
    path = request.url.path.rstrip("/")
    methods = None
    if path.startswith("/api/"):
        methods = RESOURCE_CORS_METHODS.get(path.rsplit("/", 1)[-1])
    if methods is None:
        return await call_next(request)

    headers = cors_headers(request.headers.get("origin"), methods)
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=headers)

    response = await call_next(request)
    response.headers.update(headers)
    return response

app.include_router(general.router)
app.include_router(subscription.router)
app.include_router(users.router)
app.include_router(welcome.router)

# --- Health Check ---
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.API_TITLE,
        "version": settings.API_VERSION
    }

# Anything the resource routers did not claim
@app.api_route("/{path:path}", methods=ROUTED_METHODS, include_in_schema=False)
async def endpoint_not_found(path: str):
    return json_response({"message": "Endpoint not found"}, status_code=404)
