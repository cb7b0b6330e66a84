"""
Shared pytest fixtures for the storefront and data sync tests.

These fixtures provide fresh origins, tabs and stores for every test, a
deterministic clock and a fixed "today" so promotion dates are stable.
"""

import datetime
from pathlib import Path

import pytest

from data_sync.browser import Origin
from data_sync.events import ChangeEvent
from storefront.data_store import DataStore
from storefront.storage import StorageArea


# WELCOME10 is valid on this date, NEWYEAR2026 has expired
FIXED_TODAY = datetime.date(2026, 3, 15)

START_MS = 1769040000000


class TickingClock:
    """Returns a strictly increasing millisecond timestamp on every call."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture
def data_dir() -> Path:
    """Path to the fixture data directory."""
    return Path(__file__).parent.parent / "data"


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def today() -> datetime.date:
    return FIXED_TODAY


@pytest.fixture
def storage_area() -> StorageArea:
    """Fresh origin storage for each test."""
    return StorageArea()


@pytest.fixture
def data_store(storage_area: StorageArea, data_dir: Path) -> DataStore:
    """
    Seeded DataStore on its own tab handle.

    Uses the real JSON fixtures, so every test starts from the same catalog.
    """
    store = DataStore(storage_area.open("store-tab"), data_dir=data_dir)
    store.initialize_data()
    return store


@pytest.fixture
def origin(clock: TickingClock, data_dir: Path):
    """Origin with both broadcast channels and storage events available."""
    origin = Origin(clock=clock, today=lambda: FIXED_TODAY)
    yield origin
    origin.close()


@pytest.fixture
def admin_tab(origin: Origin):
    return origin.open_tab("admin")


@pytest.fixture
def shop_tab(origin: Origin):
    return origin.open_tab("shop")


@pytest.fixture
def make_event():
    """Factory for change events with a default timestamp."""
    def factory(type: str = "products", action: str = "update", timestamp: int = START_MS):
        return ChangeEvent(type=type, action=action, timestamp=timestamp)
    return factory


# =============================================================================
# Fixture data identifiers
# =============================================================================

@pytest.fixture
def ceiling_light_id() -> str:
    """Modern LED Ceiling Light: stock 45, threshold 10, price 2499."""
    return "p1"


@pytest.fixture
def chandelier_id() -> str:
    """Crystal Chandelier: stock 8, threshold 5, price 8999."""
    return "p2"


@pytest.fixture
def pendant_id() -> str:
    """Pendant Decorative Light: stock 4, threshold 8 (already low stock)."""
    return "p5"


@pytest.fixture
def pending_order_id() -> str:
    """Juan Santos' pending order."""
    return "o1"


@pytest.fixture
def completed_order_id() -> str:
    """Roberto Diaz' completed order, already reviewed."""
    return "o3"
