"""
BANWATCH Services
=================

Services for the Banwatch ban data feed.

Services:
- ban_data: Cached ban records and supplemental tag information
"""

__all__ = [
    "ban_data",
]
