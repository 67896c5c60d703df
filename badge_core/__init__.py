"""
Contribution Badges core library.

Badge eligibility and awarding engine for GitHub contributions, with
repository import/sync and webhook ingestion.

Usage:
    # Database
    from badge_core.db import db, get_db
    from badge_core.models import User, Repository, Badge, UserBadge

    # Engine
    from badge_core.services import BadgeAwardingEngine, RepositoryImportService

    # Config
    from badge_core.config import get_settings, Settings

    # Logging
    from badge_core.logging import get_logger, configure_logging
"""

__version__ = "1.0.0"

# Import directly from submodules to avoid circular imports:
#   from badge_core.db import db
#   from badge_core.config import get_settings
#   from badge_core.logging import get_logger
