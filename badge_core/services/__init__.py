"""
Service layer for the badge engine.

Usage:
    from badge_core.services import BadgeAwardingEngine

    with db.session() as session:
        engine = BadgeAwardingEngine(session)
        result = engine.award_for_repository(repository, force_recheck=False)
"""

from .awarding import AwardResult, AwardTrigger, BadgeAwardingEngine
from .badge_catalog import BadgeCatalog
from .import_service import ImportResult, RepositoryImportService
from .statistics import (
    ContributorStatistics,
    GitHubStatisticsProvider,
    LedgerStatisticsProvider,
    RepositoryStatistics,
    StatisticsProvider,
    build_statistics_provider,
)
from .webhook_service import WebhookGateway, WebhookOutcome

__all__ = [
    "AwardResult",
    "AwardTrigger",
    "BadgeAwardingEngine",
    "BadgeCatalog",
    "ContributorStatistics",
    "GitHubStatisticsProvider",
    "ImportResult",
    "LedgerStatisticsProvider",
    "RepositoryImportService",
    "RepositoryStatistics",
    "StatisticsProvider",
    "WebhookGateway",
    "WebhookOutcome",
    "build_statistics_provider",
]
