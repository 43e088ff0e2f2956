"""
Ban Data Errors
===============

Error taxonomy for the ban data feed.

- FetchError: transport layer, retryable
- ParseError: malformed source, not retryable without a source change
- LoadError: supplemental file missing or corrupt
- CacheEmptyError: no dataset has ever been obtained

Version: 0.1.0
"""

from enum import Enum
from pathlib import Path


class FetchErrorKind(str, Enum):
    """Ways a remote fetch can fail."""

    TIMEOUT = "timeout"
    CONNECTION_FAILED = "connection_failed"
    NON_SUCCESS_STATUS = "non_success_status"
    EMPTY_BODY = "empty_body"


class ParseErrorKind(str, Enum):
    """Ways tabular ingestion can fail."""

    EMPTY_INPUT = "empty_input"
    NO_DELIMITER_DETECTED = "no_delimiter_detected"
    HEADER_NOT_FOUND = "header_not_found"
    MALFORMED_ROW = "malformed_row"
    NO_RECORDS = "no_records"


class BanDataError(Exception):
    """Base class for ban data feed errors."""


class FetchError(BanDataError):
    """Remote retrieval of the source document failed."""

    def __init__(
        self,
        kind: FetchErrorKind,
        url: str,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.kind = kind
        self.url = url
        self.status_code = status_code
        self.detail = detail

        message = f"fetch of {url} failed: {kind.value}"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ParseError(BanDataError):
    """The source document could not be turned into a dataset."""

    def __init__(self, kind: ParseErrorKind, detail: str | None = None) -> None:
        self.kind = kind
        self.detail = detail
        message = f"parse failed: {kind.value}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class LoadError(BanDataError):
    """The supplemental data file is missing or corrupt."""

    def __init__(self, path: Path | str, detail: str) -> None:
        self.path = Path(path)
        self.detail = detail
        super().__init__(f"could not load supplemental data from {self.path}: {detail}")


class CacheEmptyError(BanDataError):
    """No dataset has ever been successfully obtained."""

    def __init__(self, cause: BaseException | None = None) -> None:
        self.cause = cause
        message = "no ban data available"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
