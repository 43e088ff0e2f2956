"""
Ban Data Models
===============

Domain objects for the ban data feed.

A BanRecord is an ordered mapping of column name to string value. The
source schema is not guaranteed, so no fixed fields are declared.

Version: 0.1.0
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


BanRecord = dict[str, str]


@dataclass(frozen=True)
class Dataset:
    """
    An ingested record set plus fetch metadata.

    Datasets are replaced wholesale on refresh and never mutated in place.
    """

    records: tuple[BanRecord, ...]
    column_names: tuple[str, ...]
    source_delimiter: str
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __len__(self) -> int:
        return len(self.records)

    @property
    def is_empty(self) -> bool:
        """Check if the dataset holds no records."""
        return not self.records

    def age(self, now: datetime | None = None) -> timedelta:
        """Time elapsed since the dataset was fetched."""
        return (now or datetime.now(UTC)) - self.fetched_at

    def records_as_json(self) -> list[dict[str, str]]:
        """Records as plain dicts, in source order."""
        return [dict(record) for record in self.records]

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the on-disk cache file."""
        return {
            "fetched_at": self.fetched_at.isoformat(),
            "source_delimiter": self.source_delimiter,
            "column_names": list(self.column_names),
            "records": self.records_as_json(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Dataset":
        """
        Rebuild a dataset from its serialized form.

        Args:
            data: Output of `to_dict`

        Returns:
            Dataset with the original fetch time

        Raises:
            KeyError, TypeError, ValueError: If the payload is malformed
        """
        column_names = tuple(str(name) for name in data["column_names"])
        records = tuple(
            {name: str(row.get(name, "")) for name in column_names}
            for row in data["records"]
        )
        fetched_at = datetime.fromisoformat(data["fetched_at"])
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=UTC)

        return cls(
            records=records,
            column_names=column_names,
            source_delimiter=str(data["source_delimiter"]),
            fetched_at=fetched_at,
        )


@dataclass(frozen=True)
class DataResult:
    """Outcome of a data request."""

    dataset: Dataset
    stale: bool = False
    error: str | None = None


SupplementalRecord = dict[str, Any]


class SupplementalLink(BaseModel):
    """A link attached to a supplemental tag."""

    model_config = ConfigDict(extra="allow")

    url: str
    label: str | None = None


class SupplementalEntry(BaseModel):
    """
    Shape check for one supplemental entry.

    Only the types of known keys are checked. Entries are served as read
    from the file, so nothing here adds defaults to the response.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    tag: str | None = None
    links: list[SupplementalLink] | None = None
    preview: str | None = Field(default=None, description="Emoji or image URL")
    description: str | None = None
