"""
Tests for the Data Service
==========================

Tests for:
- Fresh serve without network access
- Refresh on empty or expired cache
- Stale fallback on fetch and parse failures
- Cold-start failure
- Single-flight refresh coalescing and cancellation

Version: 0.1.0
"""

import asyncio
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from services.ban_data.cache import CacheStore
from services.ban_data.errors import (
    CacheEmptyError,
    FetchError,
    FetchErrorKind,
    LoadError,
    ParseError,
    ParseErrorKind,
)
from services.ban_data.models import Dataset
from services.ban_data.service import DataService, build_data_service
from services.ban_data.supplemental import SupplementalLoader
from shared.config.settings import BanDataSettings, Settings


SOURCE_URL = "https://sheets.test/export?format=csv"


def connection_failed() -> FetchError:
    return FetchError(FetchErrorKind.CONNECTION_FAILED, SOURCE_URL, detail="refused")


# ============================================================================
# Request Flow Tests
# ============================================================================


class TestGetData:
    """Tests for DataService.get_data."""

    @pytest.mark.asyncio
    async def test_cold_cache_fetches_and_caches(
        self,
        data_service: DataService,
        fetcher: AsyncMock,
        cache: CacheStore,
        sample_records: list[dict[str, str]],
    ) -> None:
        """Test an empty cache triggers a fetch and stores the result."""
        result = await data_service.get_data()

        assert result.stale is False
        assert result.error is None
        assert result.dataset.records_as_json() == sample_records
        assert cache.get_fresh() is result.dataset
        fetcher.fetch.assert_awaited_once_with(SOURCE_URL, timeout=10.0)

    @pytest.mark.asyncio
    async def test_fresh_cache_skips_fetch(
        self,
        data_service: DataService,
        fetcher: AsyncMock,
        cache: CacheStore,
        make_dataset: Callable[..., Dataset],
    ) -> None:
        """Test fresh data is served without a network call."""
        dataset = make_dataset()
        cache.put(dataset)

        result = await data_service.get_data()

        assert result.dataset is dataset
        fetcher.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_cache_refreshes(
        self,
        data_service: DataService,
        fetcher: AsyncMock,
        cache: CacheStore,
        clock,
        make_dataset: Callable[..., Dataset],
    ) -> None:
        """Test expired data is replaced by a new fetch."""
        old = make_dataset()
        cache.put(old)
        clock.advance(timedelta(hours=12, seconds=1))

        result = await data_service.get_data()

        assert result.dataset is not old
        assert result.stale is False
        assert result.dataset.fetched_at == clock()
        fetcher.fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fetch_failure_serves_stale(
        self,
        data_service: DataService,
        fetcher: AsyncMock,
        cache: CacheStore,
        clock,
        make_dataset: Callable[..., Dataset],
    ) -> None:
        """Test a failed refresh falls back to the old dataset."""
        old = make_dataset()
        cache.put(old)
        clock.advance(timedelta(days=1))
        error = connection_failed()
        fetcher.fetch.side_effect = error

        result = await data_service.get_data()

        assert result.dataset is old
        assert result.stale is True
        assert "connection_failed" in (result.error or "")
        assert cache.state.last_fetch_error is error
        assert cache.get_stale_fallback() is old

    @pytest.mark.asyncio
    async def test_parse_failure_serves_stale(
        self,
        data_service: DataService,
        fetcher: AsyncMock,
        cache: CacheStore,
        clock,
        make_dataset: Callable[..., Dataset],
    ) -> None:
        """Test a malformed source falls back to the old dataset."""
        old = make_dataset()
        cache.put(old)
        clock.advance(timedelta(days=1))
        fetcher.fetch.return_value = "no delimiters in this document"

        result = await data_service.get_data()

        assert result.dataset is old
        assert result.stale is True
        assert isinstance(cache.state.last_fetch_error, ParseError)

    @pytest.mark.asyncio
    async def test_header_only_source_not_cached(
        self,
        data_service: DataService,
        fetcher: AsyncMock,
        cache: CacheStore,
    ) -> None:
        """Test a source with zero rows is a parse failure."""
        fetcher.fetch.return_value = "State,City\n"

        with pytest.raises(CacheEmptyError) as exc_info:
            await data_service.get_data()

        cause = exc_info.value.cause
        assert isinstance(cause, ParseError)
        assert cause.kind == ParseErrorKind.NO_RECORDS
        assert cache.get_stale_fallback() is None

    @pytest.mark.asyncio
    async def test_cold_start_failure_raises_cache_empty(
        self,
        data_service: DataService,
        fetcher: AsyncMock,
    ) -> None:
        """Test no fallback turns the failure into CacheEmptyError."""
        fetcher.fetch.side_effect = connection_failed()

        with pytest.raises(CacheEmptyError) as exc_info:
            await data_service.get_data()

        assert isinstance(exc_info.value.cause, FetchError)
        assert "no ban data available" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_retry_after_failure(
        self,
        data_service: DataService,
        fetcher: AsyncMock,
        sample_csv: str,
    ) -> None:
        """Test a later request retries after a failed refresh."""
        fetcher.fetch.side_effect = [connection_failed(), sample_csv]

        with pytest.raises(CacheEmptyError):
            await data_service.get_data()
        result = await data_service.get_data()

        assert len(result.dataset) == 3
        assert fetcher.fetch.await_count == 2


# ============================================================================
# Single-Flight Tests
# ============================================================================


class TestRefreshCoalescing:
    """Tests for concurrent refresh behaviour."""

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_fetch(
        self,
        data_service: DataService,
        fetcher: AsyncMock,
        sample_csv: str,
    ) -> None:
        """Test N concurrent requests on an empty cache fetch once."""
        release = asyncio.Event()

        async def slow_fetch(url: str, timeout: float | None = None) -> str:
            await release.wait()
            return sample_csv

        fetcher.fetch.side_effect = slow_fetch

        tasks = [asyncio.create_task(data_service.get_data()) for _ in range(20)]
        await asyncio.sleep(0.01)
        assert data_service.refresh_in_flight
        release.set()
        results = await asyncio.gather(*tasks)

        assert fetcher.fetch.await_count == 1
        first = results[0].dataset
        assert all(r.dataset is first for r in results)
        assert not data_service.refresh_in_flight

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_failure(
        self,
        data_service: DataService,
        fetcher: AsyncMock,
    ) -> None:
        """Test waiters of a failed refresh all see the failure."""
        release = asyncio.Event()

        async def failing_fetch(url: str, timeout: float | None = None) -> str:
            await release.wait()
            raise connection_failed()

        fetcher.fetch.side_effect = failing_fetch

        tasks = [asyncio.create_task(data_service.get_data()) for _ in range(5)]
        await asyncio.sleep(0.01)
        release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert fetcher.fetch.await_count == 1
        assert all(isinstance(r, CacheEmptyError) for r in results)

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_abort_refresh(
        self,
        data_service: DataService,
        fetcher: AsyncMock,
        cache: CacheStore,
        sample_csv: str,
    ) -> None:
        """Test a dropped request leaves the refresh running to completion."""
        release = asyncio.Event()

        async def slow_fetch(url: str, timeout: float | None = None) -> str:
            await release.wait()
            return sample_csv

        fetcher.fetch.side_effect = slow_fetch

        caller = asyncio.create_task(data_service.get_data())
        await asyncio.sleep(0.01)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        assert data_service.refresh_in_flight
        release.set()
        await data_service.close()

        assert cache.get_fresh() is not None
        assert len(cache.get_fresh()) == 3

    @pytest.mark.asyncio
    async def test_fresh_request_during_refresh_not_blocked(
        self,
        data_service: DataService,
        fetcher: AsyncMock,
        cache: CacheStore,
        make_dataset: Callable[..., Dataset],
    ) -> None:
        """Test fresh data is served without joining any refresh."""
        dataset = make_dataset()
        cache.put(dataset)

        results = await asyncio.gather(*(data_service.get_data() for _ in range(5)))

        assert all(r.dataset is dataset for r in results)
        fetcher.fetch.assert_not_awaited()


# ============================================================================
# Supplemental and Wiring Tests
# ============================================================================


class TestSupplemental:
    """Tests for DataService.serve_supplemental."""

    @pytest.mark.asyncio
    async def test_serves_entries(self, data_service: DataService, fetcher: AsyncMock) -> None:
        """Test supplemental data bypasses the refresh flow."""
        entries = await data_service.serve_supplemental()

        assert [e["tag"] for e in entries] == ["texas", "florida"]
        fetcher.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_load_error_propagates(
        self,
        cache: CacheStore,
        fetcher: AsyncMock,
        tmp_path: Path,
    ) -> None:
        """Test a missing file surfaces as LoadError."""
        service = DataService(
            cache=cache,
            fetcher=fetcher,
            ingestor=AsyncMock(),
            supplemental=SupplementalLoader(tmp_path / "missing.json"),
            source_url=SOURCE_URL,
        )

        with pytest.raises(LoadError):
            await service.serve_supplemental()


class TestBuildDataService:
    """Tests for build_data_service."""

    def test_wires_settings(self, tmp_path: Path) -> None:
        """Test settings flow into the components."""
        settings = Settings(
            ban_data=BanDataSettings(
                source_url="https://example.test/sheet.csv",
                ttl_hours=6,
                fetch_timeout_seconds=3,
                supplemental_path=tmp_path / "supplemental.json",
                cache_file=str(tmp_path / "cache.json"),
                header_marker="Zip",
                excluded_columns="Country, column_0",
            ),
        )

        service = build_data_service(settings)

        assert service.source_url == "https://example.test/sheet.csv"
        assert service.fetch_timeout == 3
        assert service.cache.ttl == timedelta(hours=6)
        assert service.cache.cache_path == tmp_path / "cache.json"
        assert service.ingestor.config.header_marker == "Zip"
        assert service.ingestor.config.excluded_columns == frozenset({"Country", "column_0"})
        assert service.fetcher.config.timeout_seconds == 3

    def test_loads_existing_cache_file(
        self,
        tmp_path: Path,
        make_dataset: Callable[..., Dataset],
    ) -> None:
        """Test a cache file on disk becomes the initial dataset."""
        path = tmp_path / "cache.json"
        CacheStore(cache_path=path).put(make_dataset(rows=4))
        settings = Settings(ban_data=BanDataSettings(cache_file=str(path)))

        service = build_data_service(settings)

        fallback = service.cache.get_stale_fallback()
        assert fallback is not None
        assert len(fallback) == 4
