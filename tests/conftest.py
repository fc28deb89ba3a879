import asyncio
from collections.abc import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api.routes import discovery as discovery_routes
from app.main import app
from app.models.contact import Contact, Outlet
from app.services.media_discovery import MediaDiscoveryService
from app.services.repositories import InMemoryContactRepository
from tests.helpers.stubs import RecordingSleep, build_service


class _SyncASGIClient:
    """Minimal synchronous wrapper around httpx.AsyncClient for ASGI apps."""

    def __init__(self, app):
        transport = httpx.ASGITransport(app=app)
        self._client = httpx.AsyncClient(transport=transport, base_url="http://testserver")

    def request(self, method: str, url: str, **kwargs):
        return asyncio.run(self._client.request(method, url, **kwargs))

    def get(self, url: str, **kwargs):
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs):
        return self.request("POST", url, **kwargs)

    def close(self) -> None:
        asyncio.run(self._client.aclose())


@pytest.fixture
def sleep_recorder() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def repository() -> InMemoryContactRepository:
    return InMemoryContactRepository()


@pytest.fixture
def tenant_id() -> str:
    return "tenant-a"


@pytest.fixture
def outlet(tenant_id: str) -> Outlet:
    return Outlet(tenant_id=tenant_id, name="The Daily Example", website="https://daily.example.com")


@pytest.fixture
def make_contact(tenant_id: str) -> Callable[..., Contact]:
    def _make(**overrides) -> Contact:
        payload = {"tenant_id": tenant_id, "first_name": "Jane", "last_name": "Doe"}
        payload.update(overrides)
        return Contact(**payload)

    return _make


@pytest.fixture
def discovery_service(repository: InMemoryContactRepository) -> MediaDiscoveryService:
    return build_service(repository)


@pytest.fixture
def client(discovery_service: MediaDiscoveryService):
    """Test client with the discovery service swapped for an offline one."""
    app.dependency_overrides[discovery_routes.get_discovery_service] = lambda: discovery_service
    try:
        test_client = TestClient(app)
    except TypeError:
        fallback_client = _SyncASGIClient(app)
        try:
            yield fallback_client
        finally:
            fallback_client.close()
    else:
        yield test_client
    finally:
        app.dependency_overrides.pop(discovery_routes.get_discovery_service, None)
