"""FastAPI dependency injection providers.

Usage in routers:
    async def endpoint(manager: Manager):
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from consentsync.config import settings
from consentsync.services.consent_manager import ConsentManager
from consentsync.services.consent_store import (
    ConsentStore,
    InMemoryBackend,
    KeyValueBackend,
    RedisBackend,
)
from consentsync.services.identity_gate import IdentityGate


def create_backend() -> KeyValueBackend:
    """Pick the storage backend configured by STORE_BACKEND."""
    if settings.STORE_BACKEND == "redis":
        return RedisBackend(settings.REDIS_URL)
    if settings.STORE_BACKEND == "memory":
        return InMemoryBackend()
    raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND}")


def create_consent_manager(backend: KeyValueBackend) -> ConsentManager:
    store = ConsentStore(backend, settings.STORE_NAMESPACE, settings.STORE_KEY)
    return ConsentManager(store, IdentityGate())


# --- Consent manager ---

def get_consent_manager(request: Request) -> ConsentManager:
    """Provide the manager created at startup."""
    return request.app.state.consent_manager


# Type alias for cleaner router signatures
Manager = Annotated[ConsentManager, Depends(get_consent_manager)]
