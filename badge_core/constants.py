"""
Application constants for Contribution Badges.

Contains the criteria vocabulary, the default badge set seeded on first
import, and GitHub API defaults.
"""

# =============================================================================
# Badge Criteria
# =============================================================================

CRITERIA_PRS = "prs"
CRITERIA_COMMITS = "commits"

CRITERIA_TYPES = ("prs", "commits", "issues", "reviews", "stars", "forks")

# Only these are computed from contributor statistics; the rest are inert
EVALUABLE_CRITERIA = (CRITERIA_PRS, CRITERIA_COMMITS)

DIFFICULTIES = ("easy", "medium", "hard", "legendary")

CRITERIA_VALUE_MIN = 1
CRITERIA_VALUE_MAX = 10000

DEFAULT_BADGE_ICON = "🏆"
DEFAULT_BADGE_COLOR = "#FFD700"

# =============================================================================
# Default Badge Set
# =============================================================================

DEFAULT_BADGES = [
    {
        "name": "First Contributor",
        "description": "Awarded for your first merged pull request",
        "criteria_type": CRITERIA_PRS,
        "criteria_value": 1,
        "icon": "🌟",
        "color": "#32CD32",
        "difficulty": "easy",
    },
    {
        "name": "Active Contributor",
        "description": "Awarded for 5 or more merged pull requests",
        "criteria_type": CRITERIA_PRS,
        "criteria_value": 5,
        "icon": "🚀",
        "color": "#FF6B35",
        "difficulty": "medium",
    },
    {
        "name": "Super Contributor",
        "description": "Awarded for 20 or more merged pull requests",
        "criteria_type": CRITERIA_PRS,
        "criteria_value": 20,
        "icon": "⭐",
        "color": "#FFD700",
        "difficulty": "hard",
    },
    {
        "name": "Commit Champion",
        "description": "Awarded for 50 or more commits",
        "criteria_type": CRITERIA_COMMITS,
        "criteria_value": 50,
        "icon": "💻",
        "color": "#8A2BE2",
        "difficulty": "medium",
    },
]

# =============================================================================
# Roles / Award Sources
# =============================================================================

ROLE_OWNER = "owner"
ROLE_CONTRIBUTOR = "contributor"
ROLES = (ROLE_OWNER, ROLE_CONTRIBUTOR)

AWARDED_BY_SYSTEM = "system"
AWARDED_BY_MANUAL = "manual"
AWARDED_BY_WEBHOOK = "webhook"
AWARDED_BY = (AWARDED_BY_SYSTEM, AWARDED_BY_MANUAL, AWARDED_BY_WEBHOOK)

# =============================================================================
# GitHub API
# =============================================================================

GITHUB_PER_PAGE = 100
MAX_REPOSITORY_TOPICS = 20
RECENT_AWARD_WINDOW_DAYS = 30

WEBHOOK_EVENT_TYPES = (
    "push",
    "pull_request",
    "issues",
    "release",
    "star",
    "fork",
    "create",
    "delete",
    "watch",
    "commit_comment",
)
