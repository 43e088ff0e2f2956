"""
Test Configuration
==================

Pytest fixtures for Banwatch tests.
"""

import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["BAN_DATA_CACHE_FILE"] = ""

from services.ban_data.cache import CacheStore  # noqa: E402
from services.ban_data.fetcher import RemoteFetcher  # noqa: E402
from services.ban_data.ingestion import TabularIngestor  # noqa: E402
from services.ban_data.models import Dataset  # noqa: E402
from services.ban_data.service import DataService  # noqa: E402
from services.ban_data.supplemental import SupplementalLoader  # noqa: E402


SOURCE_URL = "https://sheets.test/export?format=csv"

SAMPLE_CSV = (
    "State,Zip,City,County,Status\n"
    "TX,78701,Austin,Travis,Banned\n"
    "FL,32801,Orlando,Orange,Restricted\n"
    "AL,35203,Birmingham,Jefferson,Banned\n"
)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def sample_csv() -> str:
    """Well-formed comma separated sheet."""
    return SAMPLE_CSV


@pytest.fixture
def make_dataset(clock: FakeClock) -> Callable[..., Dataset]:
    """Factory for small datasets stamped with the fake clock."""

    def _make(rows: int = 2, fetched_at: datetime | None = None) -> Dataset:
        return Dataset(
            records=tuple({"State": "TX", "City": f"City {i}"} for i in range(rows)),
            column_names=("State", "City"),
            source_delimiter=",",
            fetched_at=fetched_at or clock(),
        )

    return _make


@pytest.fixture
def supplemental_file(tmp_path: Path) -> Path:
    """Supplemental data file with two entries."""
    path = tmp_path / "supplemental.json"
    path.write_text(
        """[
  {
    "tag": "texas",
    "links": [{"url": "https://example.org/tx", "label": "Texas law"}],
    "preview": "🤠",
    "description": "Statewide rules"
  },
  {
    "tag": "florida",
    "links": [],
    "preview": "https://example.org/fl.png",
    "description": "County level bans",
    "priority": 2
  }
]""",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def fetcher() -> AsyncMock:
    """Fetcher double returning the sample sheet."""
    mock = AsyncMock(spec=RemoteFetcher)
    mock.fetch.return_value = SAMPLE_CSV
    return mock


@pytest.fixture
def cache(clock: FakeClock) -> CacheStore:
    """In-memory cache driven by the fake clock."""
    return CacheStore(ttl=timedelta(hours=12), clock=clock)


@pytest.fixture
def data_service(
    cache: CacheStore,
    fetcher: AsyncMock,
    supplemental_file: Path,
) -> DataService:
    """DataService wired with test doubles."""
    return DataService(
        cache=cache,
        fetcher=fetcher,
        ingestor=TabularIngestor(),
        supplemental=SupplementalLoader(supplemental_file),
        source_url=SOURCE_URL,
        fetch_timeout=10.0,
    )


@pytest_asyncio.fixture
async def ban_data_client(data_service: DataService) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Ban Data Service."""
    from services.ban_data.main import app

    app.state.data_service = data_service
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as client:
            yield client
    finally:
        app.state.data_service = None


@pytest.fixture
def sample_records() -> list[dict[str, Any]]:
    """Records parsed from the sample sheet."""
    return [
        {"State": "TX", "Zip": "78701", "City": "Austin", "County": "Travis", "Status": "Banned"},
        {"State": "FL", "Zip": "32801", "City": "Orlando", "County": "Orange", "Status": "Restricted"},
        {"State": "AL", "Zip": "35203", "City": "Birmingham", "County": "Jefferson", "Status": "Banned"},
    ]
