"""Shared test fixtures for all test modules."""

from __future__ import annotations

import pytest
from helpers import SERVER_URL, StubServer, server_payload

from consentsync.services.consent_manager import ConsentManager
from consentsync.services.consent_store import ConsentStore, InMemoryBackend
from consentsync.services.identity_gate import IdentityGate


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def store(backend) -> ConsentStore:
    return ConsentStore(backend, "mobileads_consent", "consent_string")


@pytest.fixture
def gate() -> IdentityGate:
    return IdentityGate(device_id="device-123")


@pytest.fixture
def stub_server() -> StubServer:
    """Regulated-region response listing providers A and B."""
    return StubServer(server_payload(in_eea=True, companies=["A", "B"], ad_network_ids=[]))


@pytest.fixture
def manager(store, gate, stub_server) -> ConsentManager:
    return ConsentManager(store, gate, server_url=SERVER_URL, transport=stub_server.transport)
