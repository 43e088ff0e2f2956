"""
Data Service
============

Orchestrates cache checks, refreshes and stale fallback for the ban
data feed.

Request flow:
1. Serve the cached dataset if it is within its TTL
2. Otherwise fetch and parse the source, cache it and serve it
3. On refresh failure serve the stale dataset, flagged as degraded
4. With nothing cached, raise CacheEmptyError

Concurrent requests that find the cache stale share one in-flight
refresh. The refresh runs as its own task and is shielded from caller
cancellation, so it always completes and fills the cache.

Version: 0.1.0
"""

import asyncio
from typing import TYPE_CHECKING

from services.ban_data.cache import CacheStore
from services.ban_data.errors import (
    CacheEmptyError,
    FetchError,
    ParseError,
    ParseErrorKind,
)
from services.ban_data.fetcher import FetcherConfig, RemoteFetcher
from services.ban_data.ingestion import IngestorConfig, TabularIngestor
from services.ban_data.models import DataResult, Dataset, SupplementalRecord
from services.ban_data.supplemental import SupplementalLoader
from shared.logging import get_logger


if TYPE_CHECKING:
    from shared.config import Settings


logger = get_logger(__name__)


class DataService:
    """
    Refresh-or-serve orchestrator.

    Example:
        >>> service = DataService(cache, fetcher, ingestor, supplemental, source_url=url)
        >>> result = await service.get_data()
        >>> result.stale
        False
    """

    def __init__(
        self,
        cache: CacheStore,
        fetcher: RemoteFetcher,
        ingestor: TabularIngestor,
        supplemental: SupplementalLoader,
        source_url: str,
        fetch_timeout: float = 10.0,
    ) -> None:
        self.cache = cache
        self.fetcher = fetcher
        self.ingestor = ingestor
        self.supplemental = supplemental
        self.source_url = source_url
        self.fetch_timeout = fetch_timeout

        self._refresh_task: asyncio.Task[Dataset] | None = None
        self._refresh_lock = asyncio.Lock()

    @property
    def refresh_in_flight(self) -> bool:
        """Check if a refresh is currently running."""
        return self._refresh_task is not None and not self._refresh_task.done()

    async def get_data(self) -> DataResult:
        """
        Get the current ban dataset.

        Returns:
            DataResult; `stale` is set when a failed refresh fell back to
            the previous dataset

        Raises:
            CacheEmptyError: If refresh failed and nothing is cached
        """
        fresh = self.cache.get_fresh()
        if fresh is not None:
            return DataResult(dataset=fresh)

        try:
            dataset = await self._refresh_coalesced()
        except (FetchError, ParseError) as e:
            stale = self.cache.get_stale_fallback()
            if stale is None:
                logger.error(
                    "no_data_available",
                    url=self.source_url,
                    error=str(e),
                )
                raise CacheEmptyError(e) from e

            logger.warning(
                "refresh_failed_serving_stale",
                url=self.source_url,
                error=str(e),
                fetched_at=stale.fetched_at.isoformat(),
                records=len(stale),
            )
            return DataResult(dataset=stale, stale=True, error=str(e))

        return DataResult(dataset=dataset)

    async def serve_supplemental(self) -> list[SupplementalRecord]:
        """
        Get the supplemental entries.

        Raises:
            LoadError: If the supplemental file cannot be loaded
        """
        return await self.supplemental.load()

    async def close(self) -> None:
        """Wait for an in-flight refresh, then release the HTTP client."""
        task = self._refresh_task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)
        await self.fetcher.close()

    # =========================================================================
    # Refresh
    # =========================================================================

    async def _refresh_coalesced(self) -> Dataset:
        """Join the in-flight refresh, starting one if none is running."""
        async with self._refresh_lock:
            task = self._refresh_task
            if task is None:
                # A refresh may have landed while this caller waited on the lock
                fresh = self.cache.get_fresh()
                if fresh is not None:
                    return fresh

                task = asyncio.create_task(self._refresh(), name="ban-data-refresh")
                task.add_done_callback(self._on_refresh_done)
                self._refresh_task = task
            else:
                logger.debug("refresh_joined", url=self.source_url)

        return await asyncio.shield(task)

    def _on_refresh_done(self, task: "asyncio.Task[Dataset]") -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        # Mark the outcome retrieved even if every waiter went away
        if not task.cancelled():
            task.exception()

    async def _refresh(self) -> Dataset:
        """Fetch, parse and cache the source document."""
        url = self.source_url
        started_at = self.cache.now()
        logger.info("refresh_started", url=url, started_at=started_at.isoformat())

        raw: str | None = None
        try:
            raw = await self.fetcher.fetch(url, timeout=self.fetch_timeout)
            dataset = await asyncio.to_thread(self.ingestor.parse, raw, self.cache.now())
            if dataset.is_empty:
                raise ParseError(ParseErrorKind.NO_RECORDS, "header row only")
        except (FetchError, ParseError) as e:
            self.cache.record_failure(e)
            logger.error(
                "refresh_failed",
                url=url,
                started_at=started_at.isoformat(),
                error=str(e),
                error_type=type(e).__name__,
                kind=e.kind.value,
                bytes=len(raw.encode("utf-8")) if raw is not None else None,
            )
            raise

        await asyncio.to_thread(self.cache.put, dataset)
        logger.info(
            "refresh_completed",
            url=url,
            records=len(dataset),
            columns=len(dataset.column_names),
            delimiter=dataset.source_delimiter,
            bytes=len(raw.encode("utf-8")),
        )
        return dataset


def build_data_service(settings: "Settings") -> DataService:
    """
    Wire a DataService from application settings.

    Args:
        settings: Application settings

    Returns:
        DataService with a cache file loaded if one exists
    """
    feed = settings.ban_data

    cache = CacheStore(ttl=feed.ttl, cache_path=feed.cache_path)
    cache.load_from_disk()

    fetcher = RemoteFetcher(
        FetcherConfig(
            timeout_seconds=feed.fetch_timeout_seconds,
            user_agent=feed.user_agent,
        ),
    )
    ingestor = TabularIngestor(
        IngestorConfig(
            header_marker=feed.header_marker or None,
            excluded_columns=feed.excluded_columns_set,
        ),
    )

    return DataService(
        cache=cache,
        fetcher=fetcher,
        ingestor=ingestor,
        supplemental=SupplementalLoader(feed.supplemental_path),
        source_url=feed.source_url,
        fetch_timeout=feed.fetch_timeout_seconds,
    )
