"""
Supplemental Loader
===================

Loads the local tag -> (links, preview, description) file once and keeps
it for the life of the process.

Version: 0.1.0
"""

import asyncio
import json
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from services.ban_data.errors import LoadError
from services.ban_data.models import SupplementalEntry, SupplementalRecord
from shared.logging import get_logger


logger = get_logger(__name__)


_ENTRIES_ADAPTER = TypeAdapter(list[SupplementalEntry])


def read_supplemental_file(path: Path) -> list[SupplementalRecord]:
    """
    Read and validate a supplemental data file.

    Args:
        path: JSON file holding a list of entries

    Returns:
        Entries exactly as stored in the file, in file order

    Raises:
        LoadError: If the file is missing, unreadable or malformed
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise LoadError(path, "file not found") from e
    except OSError as e:
        raise LoadError(path, f"unreadable: {e}") from e

    try:
        payload: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise LoadError(path, f"invalid JSON: {e}") from e

    try:
        _ENTRIES_ADAPTER.validate_python(payload)
    except ValidationError as e:
        raise LoadError(path, f"invalid entries: {e.error_count()} validation error(s)") from e

    return payload


class SupplementalLoader:
    """
    Lazy, load-once access to supplemental entries.

    Failed loads are not remembered, so a repaired file is picked up by
    the next request.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._entries: list[SupplementalRecord] | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        """Check if the entries have been loaded."""
        return self._entries is not None

    async def load(self) -> list[SupplementalRecord]:
        """
        Get the supplemental entries, reading the file on first use.

        Raises:
            LoadError: If the file cannot be loaded
        """
        if self._entries is not None:
            return self._entries

        async with self._lock:
            if self._entries is None:
                try:
                    entries = await asyncio.to_thread(read_supplemental_file, self.path)
                except LoadError as e:
                    logger.error("supplemental_load_failed", path=str(self.path), error=e.detail)
                    raise
                logger.info("supplemental_loaded", path=str(self.path), entries=len(entries))
                self._entries = entries

        return self._entries
