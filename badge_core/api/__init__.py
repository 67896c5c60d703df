"""GitHub API access used by statistics and repository import."""

from .github_api import (
    fetch_repository,
    get_pull_request,
    get_rate_limit_status,
    list_commits,
    list_pull_request_commits,
    list_pull_requests,
)

__all__ = [
    "fetch_repository",
    "get_pull_request",
    "get_rate_limit_status",
    "list_commits",
    "list_pull_request_commits",
    "list_pull_requests",
]
