"""API test fixtures — FastAPI TestClient.

The consent manager dependency is overridden with one backed by an
in-memory store and a stub consent server, so no Redis or network is
needed.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from consentsync.deps import get_consent_manager
from consentsync.main import app


@pytest.fixture
def client(manager):
    app.dependency_overrides[get_consent_manager] = lambda: manager
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
