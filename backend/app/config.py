"""
Application configuration.

Re-exports the shared settings so routers can keep relative imports.
"""

from badge_core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
