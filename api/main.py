#!/usr/bin/env python3
"""
Run Board API - HTTP API layer for the facility run board.

This is the FastAPI application that serves as the backend-for-frontend (BFF)
for the run assignment console. It exposes:
- One working board per date (placements, reorders, bulk save, discard)
- Slot suggestions for runs
- Incremental picker assignments
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from runboard.logging_config import configure_logging, get_logger

from .dependencies import auth_state, authenticate_pb, pb, reset_registry
from .settings import get_settings

# Configure unified logging format
# Format: 2026-01-06T14:05:52Z [api] LEVEL message
configure_logging(source="api")
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle - startup and shutdown."""
    settings = get_settings()

    # Startup
    if settings.gateway_backend == "pocketbase" and not settings.skip_pb_auth:
        await authenticate_pb()
    else:
        logger.warning("Skipping PocketBase authentication")
        auth_state.pb_client = pb

    yield

    # Shutdown: unsaved drafts are not persisted
    reset_registry()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="Run Board API", description="Facility run assignment API", lifespan=lifespan)

    settings = get_settings()

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    # Register routers
    from .routers import board, runs

    app.include_router(board.router)
    app.include_router(runs.router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "service": "runboard-api"}

    return app


# Create app instance for uvicorn
app = create_app()
