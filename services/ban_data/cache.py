"""
Cache Store
===========

Single-slot holder for the most recent Dataset.

The stored reference is swapped whole under a lock; Datasets are
immutable, so readers never observe a partial update. When a cache file
is configured the dataset is mirrored to disk with write-to-temp-then-
rename and reloaded at startup.

Version: 0.1.0
"""

import json
import os
import tempfile
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

from services.ban_data.models import Dataset
from shared.logging import get_logger


logger = get_logger(__name__)


DEFAULT_TTL = timedelta(hours=12)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class CacheState:
    """Point-in-time view of the cache."""

    dataset: Dataset | None
    ttl: timedelta
    last_fetch_error: Exception | None = None


class CacheStore:
    """
    TTL cache for the ban dataset.

    Example:
        >>> cache = CacheStore(ttl=timedelta(hours=12))
        >>> cache.put(dataset)
        >>> cache.get_fresh() is dataset
        True
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        cache_path: Path | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the cache.

        Args:
            ttl: Time after which the dataset is stale
            cache_path: Optional file mirroring the dataset on disk
            clock: Source of the current time
        """
        self.ttl = ttl
        self.cache_path = cache_path
        self._clock = clock
        self._lock = threading.Lock()
        self._dataset: Dataset | None = None
        self._last_fetch_error: Exception | None = None

    def now(self) -> datetime:
        """Current time according to the store clock."""
        return self._clock()

    @property
    def state(self) -> CacheState:
        """Snapshot of the current cache state."""
        with self._lock:
            return CacheState(
                dataset=self._dataset,
                ttl=self.ttl,
                last_fetch_error=self._last_fetch_error,
            )

    def is_fresh(self, dataset: Dataset, now: datetime | None = None) -> bool:
        """Check if a dataset is younger than the TTL."""
        return dataset.age(now or self._clock()) < self.ttl

    def get_fresh(self, now: datetime | None = None) -> Dataset | None:
        """
        Get the dataset if it is still within its TTL.

        Args:
            now: Reference time (defaults to the store clock)

        Returns:
            The fresh dataset, or None when absent or expired
        """
        dataset = self._dataset
        if dataset is not None and self.is_fresh(dataset, now):
            return dataset
        return None

    def get_stale_fallback(self) -> Dataset | None:
        """Get whatever dataset is present, regardless of age."""
        return self._dataset

    def put(self, dataset: Dataset) -> None:
        """
        Replace the stored dataset.

        Args:
            dataset: Newly ingested dataset

        Raises:
            ValueError: If the dataset holds no records
        """
        if dataset.is_empty:
            raise ValueError("refusing to cache a dataset with no records")

        with self._lock:
            self._dataset = dataset
            self._last_fetch_error = None

        logger.info(
            "cache_updated",
            records=len(dataset),
            fetched_at=dataset.fetched_at.isoformat(),
        )

        if self.cache_path is not None:
            self._write_to_disk(dataset)

    def record_failure(self, error: Exception) -> None:
        """Remember the latest refresh failure; the dataset is kept."""
        with self._lock:
            self._last_fetch_error = error

    # =========================================================================
    # Disk Persistence
    # =========================================================================

    def load_from_disk(self) -> Dataset | None:
        """
        Install the dataset stored in the cache file, if any.

        The original fetch time is kept, so an old file is only used as a
        stale fallback. A missing or unreadable file leaves the cache empty.

        Returns:
            The loaded dataset or None
        """
        path = self.cache_path
        if path is None or not path.exists():
            return None

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            dataset = Dataset.from_dict(payload)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(
                "cache_file_unreadable",
                path=str(path),
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        if dataset.is_empty:
            logger.warning("cache_file_empty", path=str(path))
            return None

        with self._lock:
            if self._dataset is None:
                self._dataset = dataset

        logger.info(
            "cache_loaded_from_disk",
            path=str(path),
            records=len(dataset),
            fetched_at=dataset.fetched_at.isoformat(),
            fresh=self.is_fresh(dataset),
        )
        return dataset

    def _write_to_disk(self, dataset: Dataset) -> None:
        """Atomically write the dataset to the cache file."""
        path = self.cache_path
        if path is None:
            return

        tmp_path: Path | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.name}.tmp.",
                delete=False,
            ) as f:
                tmp_path = Path(f.name)
                json.dump(dataset.to_dict(), f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(
                "cache_file_write_failed",
                path=str(path),
                error=str(e),
            )
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            return

        logger.debug("cache_file_written", path=str(path), records=len(dataset))
