import pytest
from fastapi.testclient import TestClient

from checkout_gateway.backends import SimulatedBackend
from checkout_gateway.dependencies import get_gateway, get_settings
from checkout_gateway.config import Settings
from checkout_gateway.ledger import InMemoryLedger
from checkout_gateway.main import app as fastapi_app
from checkout_gateway.service import PaymentGateway


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def gateway(ledger):
    return PaymentGateway(backend=SimulatedBackend(), ledger=ledger)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def client(gateway, settings):
    fastapi_app.dependency_overrides[get_gateway] = lambda: gateway
    fastapi_app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def card_payload():
    return {
        "card": {
            "number": "4242 4242 4242 4242",
            "exp_month": 12,
            "exp_year": 2030,
            "cvc": "123",
        },
        "billing": {"email": "a@b.com", "first_name": "A", "last_name": "B"},
    }
