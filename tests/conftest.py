"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import fakeredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from bingsu.api.dependencies import get_services
from bingsu.config import Settings
from bingsu.main import app
from bingsu.models.customer import CustomerProfile
from bingsu.models.menu_code import CupSize, MenuCode
from bingsu.models.stock import StockCategory
from bingsu.services import ShopServices
from bingsu.state.manager import StateManager


class FakeClock:
    """Settable clock for expiry and timestamp tests."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 14, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings() -> Settings:
    return Settings(log_format="text")


@pytest_asyncio.fixture
async def state_manager() -> AsyncGenerator[StateManager, None]:
    """Create a state manager over an in-memory Redis."""
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    manager = StateManager(client=client)
    yield manager
    await manager.disconnect()


@pytest.fixture
def services(state_manager: StateManager, settings: Settings, clock: FakeClock) -> ShopServices:
    return ShopServices.build(state_manager, settings, clock)


@pytest_asyncio.fixture
async def test_client(services: ShopServices) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client wired to the in-memory services."""
    app.dependency_overrides[get_services] = lambda: services
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# Sample data fixtures


@pytest_asyncio.fixture
async def stocked_menu(services: ShopServices) -> ShopServices:
    """A small menu with plenty of everything except Mango."""
    for name in ("Matcha", "Thai Tea", "Strawberry"):
        await services.stock.set_absolute(StockCategory.FLAVOR, name, 50)
    for name in ("Banana", "Cherry", "Apple"):
        await services.stock.set_absolute(StockCategory.TOPPING, name, 50)
    await services.stock.set_absolute(StockCategory.TOPPING, "Mango", 1)
    return services


@pytest_asyncio.fixture
async def medium_code(services: ShopServices) -> MenuCode:
    return await services.codes.issue("ABC12", CupSize.MEDIUM, "admin-1")


@pytest_asyncio.fixture
async def sample_customer(services: ShopServices) -> CustomerProfile:
    return await services.customers.register("Somchai", "somchai@example.com")
