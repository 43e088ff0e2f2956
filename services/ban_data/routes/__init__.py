"""
Ban Data Routes
===============

API route handlers for the Ban Data Service.

Routes:
- data: Cached ban records
- supplemental: Static tag information
"""

from services.ban_data.routes import data, supplemental


__all__ = ["data", "supplemental"]
