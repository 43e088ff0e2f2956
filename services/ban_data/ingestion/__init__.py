"""
Ingestion
=========

Conversion of the raw source document into a normalized Dataset.

Version: 0.1.0
"""

from services.ban_data.ingestion.tabular import (
    CANDIDATE_DELIMITERS,
    IngestorConfig,
    TabularIngestor,
    detect_delimiter,
    parse,
)

__all__ = [
    "CANDIDATE_DELIMITERS",
    "IngestorConfig",
    "TabularIngestor",
    "detect_delimiter",
    "parse",
]
