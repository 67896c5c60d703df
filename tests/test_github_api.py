"""
Tests for the GitHub REST client.

`requests.get` is patched; no network access.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from badge_core.api import github_api
from badge_core.exceptions import UpstreamFetchError


def _response(status_code=200, json_data=None, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.headers = headers or {}
    return response


@pytest.fixture(autouse=True)
def reset_rate_limit():
    github_api._rate_limit.update({"remaining": 5000, "reset": 0})
    yield
    github_api._rate_limit.update({"remaining": 5000, "reset": 0})


class TestMakeRequest:
    def test_bearer_token_header(self):
        with patch.object(github_api.requests, "get", return_value=_response(json_data={"id": 1})) as mock_get:
            github_api.fetch_repository(1, "ghp_token")

        headers = mock_get.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer ghp_token"
        assert mock_get.call_args.args[0].endswith("/repositories/1")

    def test_not_found(self):
        with patch.object(github_api.requests, "get", return_value=_response(404)):
            with pytest.raises(UpstreamFetchError) as exc_info:
                github_api.fetch_repository(404, "token")

        assert exc_info.value.upstream_status == 404

    def test_server_error(self):
        with patch.object(github_api.requests, "get", return_value=_response(502)):
            with pytest.raises(UpstreamFetchError) as exc_info:
                github_api.fetch_repository(1, "token")

        assert exc_info.value.upstream_status == 502

    def test_transport_failure(self):
        with patch.object(github_api.requests, "get", side_effect=requests.ConnectionError("boom")):
            with pytest.raises(UpstreamFetchError):
                github_api.fetch_repository(1, "token")

    def test_rate_limit_without_reset(self):
        with patch.object(github_api.requests, "get", return_value=_response(403)):
            with pytest.raises(UpstreamFetchError) as exc_info:
                github_api.fetch_repository(1, "token")

        assert exc_info.value.upstream_status == 403

    def test_rate_limit_headers_tracked(self):
        response = _response(json_data={}, headers={"X-RateLimit-Remaining": "4321", "X-RateLimit-Reset": "0"})
        with patch.object(github_api.requests, "get", return_value=response):
            github_api.fetch_repository(1, "token")

        assert github_api.get_rate_limit_status()["remaining"] == 4321


class TestPagination:
    def test_stops_on_short_page(self):
        pages = [
            _response(json_data=[{"number": n} for n in range(github_api.GITHUB_PER_PAGE)]),
            _response(json_data=[{"number": 1000}]),
        ]
        with patch.object(github_api.requests, "get", side_effect=pages) as mock_get:
            items = github_api.list_pull_requests("octo/widgets", "token", max_pages=5)

        assert len(items) == github_api.GITHUB_PER_PAGE + 1
        assert mock_get.call_count == 2
        assert mock_get.call_args_list[1].kwargs["params"]["page"] == 2
        assert mock_get.call_args_list[0].kwargs["params"]["state"] == "all"

    def test_bounded_by_max_pages(self):
        full_page = [{"sha": "x"}] * github_api.GITHUB_PER_PAGE
        with patch.object(github_api.requests, "get", return_value=_response(json_data=full_page)) as mock_get:
            items = github_api.list_commits("octo/widgets", "token", author="alice", max_pages=2)

        assert mock_get.call_count == 2
        assert len(items) == 2 * github_api.GITHUB_PER_PAGE
        assert mock_get.call_args.kwargs["params"]["author"] == "alice"

    def test_unexpected_shape(self):
        with patch.object(github_api.requests, "get", return_value=_response(json_data={"message": "nope"})):
            with pytest.raises(UpstreamFetchError):
                github_api.list_pull_requests("octo/widgets", "token", max_pages=1)


class TestMalformedResponses:
    def test_non_json_body(self):
        response = _response()
        response.json.side_effect = ValueError("Expecting value")
        with patch.object(github_api.requests, "get", return_value=response):
            with pytest.raises(UpstreamFetchError, match="non-JSON"):
                github_api.fetch_repository(1, "token")

    def test_non_json_page(self):
        response = _response()
        response.json.side_effect = ValueError("Expecting value")
        with patch.object(github_api.requests, "get", return_value=response):
            with pytest.raises(UpstreamFetchError):
                github_api.list_commits("octo/widgets", "token", author="alice", max_pages=1)

    def test_detail_must_be_object(self):
        with patch.object(github_api.requests, "get", return_value=_response(json_data=["not", "a", "dict"])):
            with pytest.raises(UpstreamFetchError):
                github_api.get_pull_request("octo/widgets", 12, "token")

    def test_page_items_must_be_objects(self):
        with patch.object(github_api.requests, "get", return_value=_response(json_data=["abc"])):
            with pytest.raises(UpstreamFetchError):
                github_api.list_pull_requests("octo/widgets", "token", max_pages=1)
