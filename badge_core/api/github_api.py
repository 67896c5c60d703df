"""GitHub REST API client with rate limiting and bounded pagination."""

import threading
import time
from typing import Any

import requests  # type: ignore[import-untyped]

from badge_core.config import get_settings
from badge_core.constants import GITHUB_PER_PAGE
from badge_core.exceptions import UpstreamFetchError
from badge_core.logging import get_logger

logger = get_logger("github")

# Rate limit state (module-level for simplicity)
_rate_limit = {"remaining": 5000, "reset": 0}
_rate_limit_lock = threading.Lock()

# PR commit listings are capped upstream at 250 entries
PR_COMMIT_MAX_PAGES = 3


def _api_url(path: str) -> str:
    return f"{get_settings().github_api_base.rstrip('/')}{path}"


def _get_headers(token: str | None) -> dict[str, str]:
    """Get headers for GitHub API requests."""
    headers = {
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": "ContributionBadges/1.0",
    }
    credential = token or get_settings().pat_token
    if credential:
        headers["Authorization"] = f"Bearer {credential}"
    return headers


def _update_rate_limit(response: requests.Response) -> None:
    """Update rate limit tracking from response headers."""
    if "X-RateLimit-Remaining" in response.headers:
        with _rate_limit_lock:
            _rate_limit["remaining"] = int(response.headers["X-RateLimit-Remaining"])
            _rate_limit["reset"] = int(response.headers.get("X-RateLimit-Reset", 0))


def _wait_for_rate_limit(max_wait: int = 300) -> bool:
    """Pause when remaining GitHub rate limit is low."""
    with _rate_limit_lock:
        remaining = _rate_limit["remaining"]
        reset = _rate_limit["reset"]

    if remaining >= 10:
        return True

    if reset > 0:
        wait_time = min(reset - int(time.time()) + 1, max_wait)
        if wait_time > 0:
            logger.info("rate_limit_wait", wait_seconds=wait_time, remaining=remaining)
            time.sleep(wait_time)
            return True
    return False


def _make_request(
    url: str,
    token: str | None,
    params: dict | None = None,
    timeout: int | None = None,
    _retry: bool = True,
) -> requests.Response:
    """
    Make a GET request against the GitHub API.

    Raises:
        UpstreamFetchError: on any non-200 status or transport failure.
            A 403 with a known reset time is retried once after waiting.
    """
    _wait_for_rate_limit()
    timeout = timeout or get_settings().github_request_timeout

    try:
        response = requests.get(url, headers=_get_headers(token), params=params, timeout=timeout)
    except requests.RequestException as e:
        logger.error("request_exception", error=str(e), url=url)
        raise UpstreamFetchError(f"GitHub request failed: {e}") from e

    _update_rate_limit(response)

    if response.status_code == 200:
        return response

    if response.status_code == 404:
        logger.debug("api_not_found", url=url)
        raise UpstreamFetchError("GitHub resource not found", upstream_status=404)

    if response.status_code == 401:
        logger.error("api_auth_failed", url=url)
        raise UpstreamFetchError("GitHub rejected the credentials", upstream_status=401)

    if response.status_code == 403:
        # Rate limited - wait and retry once (guarded to prevent recursion loops)
        with _rate_limit_lock:
            reset = _rate_limit["reset"]

        if _retry and reset > 0:
            wait_time = min(reset - int(time.time()) + 1, 300)
            if wait_time > 0:
                logger.info("rate_limited_retry", wait_seconds=wait_time)
                time.sleep(wait_time)
                return _make_request(url, token, params, timeout, _retry=False)
        logger.error("rate_limited_no_reset", url=url)
        raise UpstreamFetchError("GitHub rate limit exceeded", upstream_status=403)

    logger.error("api_error", status=response.status_code, url=url)
    raise UpstreamFetchError(
        f"GitHub API returned {response.status_code}", upstream_status=response.status_code
    )


def _get_json(url: str, token: str | None, params: dict | None = None) -> Any:
    """Decoded body of a successful GET; an undecodable body is an upstream failure."""
    response = _make_request(url, token, params=params)
    try:
        return response.json()
    except ValueError as e:
        logger.error("api_invalid_json", url=url, error=str(e))
        raise UpstreamFetchError(f"GitHub returned a non-JSON body for {url}") from e


def _get_object(url: str, token: str | None) -> dict[str, Any]:
    body = _get_json(url, token)
    if not isinstance(body, dict):
        raise UpstreamFetchError(f"Unexpected response shape from {url}")
    return body


def _paginate(
    url: str,
    token: str | None,
    max_pages: int,
    params: dict | None = None,
) -> list[dict[str, Any]]:
    """Collect list results page by page, stopping at a short page or max_pages."""
    items: list[dict[str, Any]] = []
    page = 1
    while page <= max_pages:
        page_params = {**(params or {}), "per_page": GITHUB_PER_PAGE, "page": page}
        batch = _get_json(url, token, params=page_params)
        if not isinstance(batch, list) or not all(isinstance(item, dict) for item in batch):
            raise UpstreamFetchError(f"Unexpected response shape from {url}")
        items.extend(batch)
        if len(batch) < GITHUB_PER_PAGE:
            break
        page += 1
    return items


# =============================================================================
# Endpoints
# =============================================================================


def fetch_repository(github_id: int, token: str | None) -> dict[str, Any]:
    """GET /repositories/{id}"""
    return _get_object(_api_url(f"/repositories/{github_id}"), token)


def list_pull_requests(full_name: str, token: str | None, max_pages: int | None = None) -> list[dict[str, Any]]:
    """All pull requests of a repository (open, closed and merged), bounded by max_pages."""
    max_pages = max_pages or get_settings().stats_max_pr_pages
    return _paginate(_api_url(f"/repos/{full_name}/pulls"), token, max_pages, {"state": "all"})


def get_pull_request(full_name: str, number: int, token: str | None) -> dict[str, Any]:
    """Pull request detail, including additions/deletions/changed_files."""
    return _get_object(_api_url(f"/repos/{full_name}/pulls/{number}"), token)


def list_pull_request_commits(full_name: str, number: int, token: str | None) -> list[dict[str, Any]]:
    return _paginate(
        _api_url(f"/repos/{full_name}/pulls/{number}/commits"), token, PR_COMMIT_MAX_PAGES
    )


def list_commits(
    full_name: str, token: str | None, author: str, max_pages: int | None = None
) -> list[dict[str, Any]]:
    """Repository commit history filtered by author login."""
    max_pages = max_pages or get_settings().stats_max_commit_pages
    return _paginate(_api_url(f"/repos/{full_name}/commits"), token, max_pages, {"author": author})


def get_rate_limit_status() -> dict[str, int]:
    with _rate_limit_lock:
        return dict(_rate_limit)
