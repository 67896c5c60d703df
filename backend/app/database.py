"""
Database session access for the API.

Initialization happens in main.py startup, not at import time.
"""

from badge_core.db import db, get_db

__all__ = ["db", "get_db"]
