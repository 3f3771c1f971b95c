from fastapi import Request

from database.base import StorageBackend
from provider.client import ProviderClient
from scoring.coordinator import RefreshCoordinator


def get_storage(request: Request) -> StorageBackend:
    """FastAPI dependency that provides the configured storage backend."""
    return request.app.state.storage


def get_coordinator(request: Request) -> RefreshCoordinator:
    return request.app.state.coordinator


def get_provider(request: Request) -> ProviderClient:
    return request.app.state.provider
