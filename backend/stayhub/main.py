"""StayHub: FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from stayhub.api.v1.auth import router as auth_router
from stayhub.api.v1.conversations import router as conversations_router
from stayhub.api.v1.favorites import router as favorites_router
from stayhub.api.v1.profile import router as profile_router
from stayhub.api.v1.properties import router as properties_router
from stayhub.api.v1.reference import router as reference_router
from stayhub.config import settings

# Configure root logger so all stayhub.* loggers output to stderr (captured by Docker).
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    yield
    # Shutdown: dispose engine connections
    from stayhub.database import engine

    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Property rental marketplace: listings, search, favorites and guest/host messaging.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Middleware: added in reverse execution order (last added runs first on request).
# SessionMiddleware holds the OAuth state between /google and /google/callback.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SessionMiddleware, secret_key=settings.jwt_secret_key)

# Routers
app.include_router(auth_router)
app.include_router(profile_router)
app.include_router(properties_router)
app.include_router(favorites_router)
app.include_router(conversations_router)
app.include_router(reference_router)

if settings.storage_backend == "local":
    media_root = Path(settings.storage_local_root)
    media_root.mkdir(parents=True, exist_ok=True)
    app.mount("/media", StaticFiles(directory=media_root), name="media")


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
