"""
Tabular Ingestor
================

Turns loosely formatted delimited text into a Dataset.

Rules:
- The delimiter is sniffed from the first non-empty line
- The header row supplies column names; blanks get positional names
- Short rows are padded with empty strings
- Long rows are truncated to the header width; the excess is dropped
  silently
- A field starting with a double quote runs to the matching quote
  (minimal quoting, records never span lines)

Version: 0.1.0
"""

import csv
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime

from services.ban_data.errors import ParseError, ParseErrorKind
from services.ban_data.models import BanRecord, Dataset
from shared.logging import get_logger


logger = get_logger(__name__)


# Priority order doubles as the tie-breaker
CANDIDATE_DELIMITERS: tuple[str, ...] = (",", ";", "\t", "|")

BYTE_ORDER_MARK = "\ufeff"


@dataclass
class IngestorConfig:
    """Configuration for tabular ingestion."""

    # Rows before the first row containing this value are skipped
    header_marker: str | None = None

    # Columns removed from the output
    excluded_columns: frozenset[str] = field(default_factory=frozenset)


def detect_delimiter(line: str) -> str:
    """
    Infer the field separator of a line by frequency.

    Args:
        line: Header line of the document

    Returns:
        The most frequent candidate delimiter

    Raises:
        ParseError: If no candidate occurs in the line
    """
    best = CANDIDATE_DELIMITERS[0]
    best_count = 0
    for candidate in CANDIDATE_DELIMITERS:
        count = line.count(candidate)
        # Strict comparison keeps the earlier candidate on ties
        if count > best_count:
            best, best_count = candidate, count

    if best_count == 0:
        raise ParseError(
            ParseErrorKind.NO_DELIMITER_DETECTED,
            f"none of {', '.join(repr(c) for c in CANDIDATE_DELIMITERS)} in header line",
        )
    return best


def split_line(line: str, delimiter: str) -> list[str]:
    """Split one line into trimmed fields, honouring quoted segments."""
    reader = csv.reader([line], delimiter=delimiter, quotechar='"', skipinitialspace=True)
    try:
        fields = next(reader, [])
    except csv.Error as e:
        raise ParseError(ParseErrorKind.MALFORMED_ROW, f"{e}: {line[:80]!r}") from e
    return [f.strip() for f in fields]


def normalize_header(fields: Iterable[str]) -> tuple[str, ...]:
    """
    Build column names from a header row.

    Blank names become ``column_<index>``. Repeated names get an
    ``_<index>`` suffix so every column stays addressable.
    """
    names: list[str] = []
    seen: set[str] = set()
    for index, raw_name in enumerate(fields):
        name = raw_name.strip() or f"column_{index}"
        if name in seen:
            name = f"{name}_{index}"
        seen.add(name)
        names.append(name)
    return tuple(names)


def fit_row(fields: list[str], width: int) -> list[str]:
    """Pad or truncate a row to the header width."""
    if len(fields) < width:
        return fields + [""] * (width - len(fields))
    return fields[:width]


class TabularIngestor:
    """
    Delimiter-sniffing parser for the ban data sheet.

    Example:
        >>> ingestor = TabularIngestor()
        >>> dataset = ingestor.parse("State,City\\nTX,Austin")
        >>> dataset.records[0]["City"]
        'Austin'
    """

    def __init__(self, config: IngestorConfig | None = None) -> None:
        self.config = config or IngestorConfig()

    def parse(self, raw: str, fetched_at: datetime | None = None) -> Dataset:
        """
        Parse delimited text into a dataset.

        Args:
            raw: Document text of unknown delimiter
            fetched_at: Fetch time to stamp on the dataset (defaults to now)

        Returns:
            Dataset in source row order; may hold zero records

        Raises:
            ParseError: If the text is empty, has no delimiter, or lacks
                the configured header marker
        """
        text = raw.lstrip(BYTE_ORDER_MARK)
        lines = [line.rstrip("\r") for line in text.split("\n") if line.strip()]
        if not lines:
            raise ParseError(ParseErrorKind.EMPTY_INPUT, "document has no non-empty lines")

        delimiter = detect_delimiter(lines[0])
        rows = (split_line(line, delimiter) for line in lines)

        header = self._find_header(rows)
        column_names = normalize_header(header)
        width = len(column_names)

        kept = [
            (i, name)
            for i, name in enumerate(column_names)
            if name not in self.config.excluded_columns
        ]

        records: list[BanRecord] = []
        truncated = 0
        for fields in rows:
            if not any(fields):
                continue
            if len(fields) > width:
                truncated += 1
            fitted = fit_row(fields, width)
            records.append({name: fitted[i] for i, name in kept})

        if truncated:
            logger.debug(
                "rows_truncated_to_header_width",
                rows=truncated,
                width=width,
            )

        logger.info(
            "tabular_parsed",
            delimiter=delimiter,
            columns=width,
            records=len(records),
        )

        return Dataset(
            records=tuple(records),
            column_names=tuple(name for _, name in kept),
            source_delimiter=delimiter,
            fetched_at=fetched_at or datetime.now(UTC),
        )

    def _find_header(self, rows: Iterator[list[str]]) -> list[str]:
        """Consume rows up to and including the header row."""
        marker = self.config.header_marker
        for fields in rows:
            if marker is None or marker.strip() in fields:
                return fields

        raise ParseError(
            ParseErrorKind.HEADER_NOT_FOUND,
            f"no row contains header marker {marker!r}",
        )


def parse(raw: str, fetched_at: datetime | None = None) -> Dataset:
    """Parse delimited text with the default configuration."""
    return TabularIngestor().parse(raw, fetched_at=fetched_at)
