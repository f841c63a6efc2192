from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine

from catalog_api.app import app
from catalog_api.config import Settings
from catalog_api.db import create_engine_from_settings, create_schema
from catalog_api.models.product import ProductResponse
from catalog_api.routes.product_route import get_product_repository
from tests.fakes import InMemoryProductRepository

IN_MEMORY_URL = "sqlite+aiosqlite://"


@pytest.fixture(autouse=True)
def in_memory_database(monkeypatch: pytest.MonkeyPatch) -> None:
    """Point every engine the app creates at a throwaway SQLite database."""
    monkeypatch.setenv("DATABASE_URL", IN_MEMORY_URL)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine_from_settings(Settings(database_url=IN_MEMORY_URL))
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Client wired to the real SQL repository on a fresh in-memory database."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_products() -> list[ProductResponse]:
    return [
        ProductResponse(id=1, name="Keyboard", price=49.9, amount=10, description="Mechanical"),
        ProductResponse(id=2, name="Mouse", price=19.99, amount=25, description=None),
        ProductResponse(id=3, name="Monitor", price=189.0, amount=3, description="27 inch"),
    ]


@pytest.fixture
def fake_repository(sample_products: list[ProductResponse]) -> InMemoryProductRepository:
    return InMemoryProductRepository(sample_products)


@pytest.fixture
def fake_client(
    fake_repository: InMemoryProductRepository,
) -> Generator[TestClient, None, None]:
    """Client whose routes talk to the in-memory repository."""
    app.dependency_overrides[get_product_repository] = lambda: fake_repository
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
