"""
Eligibility evaluation.

Pure functions of (statistics, badge). Only `prs` (merged pull requests) and
`commits` are computable; every other criteria type is never eligible and
reports an actual value of 0.
"""

from typing import TYPE_CHECKING

from badge_core.constants import CRITERIA_COMMITS, CRITERIA_PRS, EVALUABLE_CRITERIA

if TYPE_CHECKING:
    from badge_core.models import Badge

    from .statistics import ContributorStatistics


def actual_value(stats: "ContributorStatistics", badge: "Badge") -> int:
    """The metric compared against the badge threshold."""
    if badge.criteria_type == CRITERIA_PRS:
        return stats.merged_prs
    if badge.criteria_type == CRITERIA_COMMITS:
        return stats.total_commits
    return 0


def is_eligible(stats: "ContributorStatistics", badge: "Badge") -> bool:
    if badge.criteria_type not in EVALUABLE_CRITERIA:
        return False
    return actual_value(stats, badge) >= badge.criteria_value


def progress_percent(stats: "ContributorStatistics", badge: "Badge") -> float:
    """Progress towards the threshold, capped at 100."""
    if badge.criteria_value <= 0:
        return 0.0
    return round(min(actual_value(stats, badge) / badge.criteria_value * 100, 100.0), 1)
