"""FastAPI application for the Golf Pool Scoreboard API."""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from database.base import StorageBackend
from database.factory import create_storage
from provider.client import ProviderClient
from provider.fallback import FallbackSource, FixtureFallback, NullFallback, ObjectStoreFallback
from scoring.coordinator import RefreshCoordinator
from scoring.locks import LockRegistry

load_dotenv()

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_fallback(storage: StorageBackend) -> FallbackSource:
    """Fixture file if configured, else the backend's bucket cache, else nothing."""
    fixture_path = os.getenv("FALLBACK_FIXTURE_PATH")
    if fixture_path:
        return FixtureFallback(fixture_path)
    store = getattr(storage, "object_store", None)
    if store is not None:
        return ObjectStoreFallback(store)
    return NullFallback()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build storage, provider and coordinator on startup; close them on shutdown."""
    configure_logging()
    storage = await create_storage()
    provider = ProviderClient.from_env()
    app.state.storage = storage
    app.state.provider = provider
    app.state.coordinator = RefreshCoordinator(
        storage, provider, LockRegistry(), build_fallback(storage)
    )
    yield
    await provider.aclose()
    await storage.close()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Golf Pool Scoreboard API",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from api.routers import admin, scores
    app.include_router(scores.router, prefix="/api/scores", tags=["scores"])
    app.include_router(admin.router, prefix="/api/admin", tags=["admin"])

    @app.get("/api/health")
    async def health():
        healthy = await app.state.storage.health_check()
        return {
            "status": "ok" if healthy else "degraded",
            "storage": app.state.storage.name,
            "healthy": healthy,
        }

    return app


app = create_app()
