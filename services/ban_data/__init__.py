"""
Ban Data Service
================

Read-mostly feed of ban/regulation records keyed by state, city and zip.

Features:
- Periodic fetch of a remote tabular document
- Delimiter sniffing and normalisation into records
- TTL cache with stale fallback and on-disk persistence
- Single-flight refresh under concurrent load
- Static supplemental tag information

Port: 7001
"""

__version__ = "0.1.0"
