"""
Pytest configuration and fixtures for testing.
"""

import pytest
from fastapi.testclient import TestClient

from safetrade.config import Config, DEVELOPMENT, PRODUCTION
from safetrade.detector import FraudDetector
from safetrade.fraud_client import FraudCheckClient
from safetrade.main import app, get_fraud_client, get_fraud_detector, get_store
from safetrade.store import ConversationStore


@pytest.fixture
def production_detector():
    return FraudDetector(mode=PRODUCTION)


@pytest.fixture
def development_detector():
    return FraudDetector(mode=DEVELOPMENT)


@pytest.fixture
def store():
    return ConversationStore()


@pytest.fixture
def auth_headers():
    return {"x-api-key": Config.API_KEY}


@pytest.fixture
def make_client(store):
    """Build a TestClient wired to a given detector and fraud client."""

    def _make(detector=None, fraud_client=None):
        detector = detector or FraudDetector(mode=PRODUCTION)
        fraud_client = fraud_client or FraudCheckClient(detector=detector)
        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_fraud_detector] = lambda: detector
        app.dependency_overrides[get_fraud_client] = lambda: fraud_client
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def conversation(store):
    return store.create_conversation("listing-1", "buyer-1", "seller-1")
