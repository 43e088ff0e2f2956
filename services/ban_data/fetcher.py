"""
Remote Fetcher
==============

Retrieves the raw tabular document over HTTP.

A single attempt per call; retrying is left to the caller.

Version: 0.1.0
"""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from services.ban_data.errors import FetchError, FetchErrorKind
from shared.logging import get_logger


logger = get_logger(__name__)


PREVIEW_CHARS = 500


@dataclass
class FetcherConfig:
    """Configuration for the remote fetcher."""

    timeout_seconds: float = 10.0
    user_agent: str = "BanwatchBot/0.1 (ban data feed)"


class RemoteFetcher:
    """
    Async HTTP client for the source document.

    Example:
        >>> fetcher = RemoteFetcher()
        >>> text = await fetcher.fetch("https://example.com/sheet.csv")
        >>> await fetcher.close()
    """

    def __init__(
        self,
        config: FetcherConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            config: Fetcher configuration
            client: Pre-built client; the caller keeps ownership of it
        """
        self.config = config or FetcherConfig()
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds),
                headers={
                    "User-Agent": self.config.user_agent,
                    "Accept": "text/csv, text/plain, */*",
                },
                follow_redirects=True,
                http2=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str, timeout: float | None = None) -> str:
        """
        Download the document at `url`.

        Args:
            url: Source URL
            timeout: Overall time limit in seconds (defaults to config)

        Returns:
            Response body text

        Raises:
            FetchError: On timeout, connection failure, non-2xx status
                or an empty body
        """
        limit = timeout if timeout is not None else self.config.timeout_seconds
        client = await self._get_client()
        started_at = datetime.now(UTC)

        try:
            async with asyncio.timeout(limit):
                response = await client.get(url, timeout=httpx.Timeout(limit))
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.warning("fetch_timeout", url=url, timeout=limit, started_at=started_at.isoformat())
            raise FetchError(FetchErrorKind.TIMEOUT, url, detail=f"no response within {limit}s") from e
        except httpx.RequestError as e:
            logger.warning(
                "fetch_connection_failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
                started_at=started_at.isoformat(),
            )
            raise FetchError(FetchErrorKind.CONNECTION_FAILED, url, detail=str(e) or type(e).__name__) from e

        body = response.text
        byte_length = len(response.content)

        if not response.is_success:
            logger.warning(
                "fetch_non_success_status",
                url=url,
                status=response.status_code,
                bytes=byte_length,
            )
            raise FetchError(
                FetchErrorKind.NON_SUCCESS_STATUS,
                url,
                status_code=response.status_code,
            )

        if not body.strip():
            logger.warning("fetch_empty_body", url=url, status=response.status_code, bytes=byte_length)
            raise FetchError(FetchErrorKind.EMPTY_BODY, url, status_code=response.status_code)

        logger.info(
            "fetch_completed",
            url=url,
            status=response.status_code,
            bytes=byte_length,
            elapsed_ms=round((datetime.now(UTC) - started_at).total_seconds() * 1000, 1),
        )
        logger.debug("fetch_body_preview", url=url, preview=body[:PREVIEW_CHARS])

        return body
