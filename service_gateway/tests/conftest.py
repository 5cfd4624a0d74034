"""
Shared fixtures for Gateway tests.
"""

import pytest
import respx
from fastapi.testclient import TestClient

from shared.config import GatewayConfig
from service_gateway.app.main import GatewayService


BASE_URL = "https://dispense.test/2023-03"

_GATEWAY_ENV_VARS = (
    "DISPENSE_BASE_URL",
    "PUBLIC_DISPENSE_BASE_URL",
    "DISPENSE_API_KEY",
    "PUBLIC_DISPENSE_API_KEY",
    "DISPENSE_ORG_API_KEY",
    "DISPENSE_VENUE_ID",
    "PUBLIC_DISPENSE_VENUE_ID",
    "GATEWAY_UPSTREAM_TIMEOUT_SECONDS",
    "GATEWAY_RATE_LIMIT_MAX_CLIENTS",
    "GATEWAY_RATE_LIMIT_STALE_WINDOWS",
    "GATEWAY_PRODUCT_LIST_CACHE_TTL_SECONDS",
    "GATEWAY_PRODUCT_LIST_CACHE_MAX_ENTRIES",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep developer or CI credentials out of the tests."""
    for name in _GATEWAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def make_config(**overrides) -> GatewayConfig:
    values = {
        "dispense_base_url": BASE_URL,
        "dispense_api_key": "storefront-key",
        "dispense_org_api_key": "org-key",
        "dispense_venue_id": "venue-1",
    }
    values.update(overrides)
    return GatewayConfig(_env_file=None, **values)


class FakeClock:
    """Millisecond clock the tests advance by hand."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(config, clock):
    return GatewayService(config, clock=clock)


@pytest.fixture
def client(service):
    return TestClient(service.app)


@pytest.fixture
def upstream():
    """Mocked Dispense API; unmatched requests fail the test."""
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
        yield router


@pytest.fixture
def config_factory():
    """Build a config with selected settings overridden or removed (pass None)."""
    return make_config


@pytest.fixture
def client_factory(clock):
    """Build a test client for a gateway with a custom config."""

    def _build(config: GatewayConfig) -> TestClient:
        return TestClient(GatewayService(config, clock=clock).app)

    return _build
