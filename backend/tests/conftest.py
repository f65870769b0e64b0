from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from powgate.config import settings
from powgate.main import app
from powgate.middleware.rate_limit import limiter
from powgate.services.challenge_store import ChallengeStore
from powgate.services.credential_service import CredentialService, generate_secret
from powgate.services.gate_service import GateService
from tests.test_utils import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    """A store with the default TTL and attempt cap on a fake clock."""
    return ChallengeStore(ttl_seconds=300, max_attempts=15, clock=clock)


@pytest.fixture
def secret_key():
    return generate_secret()


@pytest.fixture
def credentials(secret_key, clock):
    return CredentialService(secret_key=secret_key, ttl_seconds=36 * 3600, clock=clock)


@pytest.fixture
def gate(store, credentials):
    return GateService(
        store=store,
        credentials=credentials,
        difficulty=4,
        max_nonce_length=128,
    )


@pytest.fixture
def client():
    """Test client over HTTPS (the gate cookie is Secure) with rate limiting disabled."""
    limiter.enabled = False

    with patch.object(settings, "sweep_enabled", False):
        with TestClient(app, base_url="https://testserver") as test_client:
            yield test_client

    limiter.enabled = True


@pytest.fixture
def clocked_client(client, gate):
    """Test client whose gate runs on the fake clock."""
    client.app.state.gate = gate
    return client
