"""
Tests for the GitHub REST client — mocked urlopen, no network.
"""

import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from hostprep.adapters.github.client import GitHubAPIError, GitHubClient
from hostprep.core.observability.redaction import register_secret

URLOPEN = "hostprep.adapters.github.client.urllib.request.urlopen"


def _response(payload) -> MagicMock:
    resp = MagicMock()
    resp.read.return_value = json.dumps(payload).encode()
    resp.__enter__.return_value = resp
    return resp


class TestListOrgs:
    def test_parses_orgs(self):
        payload = [{"login": "acme", "description": None}, {"login": "beta", "description": "B"}]
        with patch(URLOPEN, return_value=_response(payload)) as urlopen:
            orgs = GitHubClient("ghp_token").list_orgs()

        assert [o.login for o in orgs] == ["acme", "beta"]
        assert orgs[0].description == ""
        req = urlopen.call_args[0][0]
        assert req.full_url == "https://api.github.com/user/orgs?per_page=100"
        assert req.get_header("Authorization") == "Bearer ghp_token"

    def test_message_field_raises(self):
        with patch(URLOPEN, return_value=_response({"message": "Bad credentials"})):
            with pytest.raises(GitHubAPIError, match="Bad credentials"):
                GitHubClient("ghp_token").list_orgs()


class TestListRepos:
    def test_personal(self):
        payload = [{"name": "api", "description": "API", "owner": {"login": "me"}}]
        with patch(URLOPEN, return_value=_response(payload)) as urlopen:
            repos = GitHubClient("ghp_token").list_repos("")

        assert repos[0].name == "api"
        assert repos[0].owner == "me"
        url = urlopen.call_args[0][0].full_url
        assert url.startswith("https://api.github.com/user/repos?")
        assert "sort=updated" in url
        assert "per_page=100" in url

    def test_organization(self):
        with patch(URLOPEN, return_value=_response([])) as urlopen:
            assert GitHubClient("ghp_token").list_repos("acme") == []
        assert "/orgs/acme/repos?" in urlopen.call_args[0][0].full_url

    def test_non_list_response(self):
        with patch(URLOPEN, return_value=_response({"unexpected": True})):
            with pytest.raises(GitHubAPIError, match="expected a list"):
                GitHubClient("ghp_token").list_repos()


class TestCurrentLogin:
    def test_cached(self):
        with patch(URLOPEN, return_value=_response({"login": "octocat"})) as urlopen:
            client = GitHubClient("ghp_token")
            assert client.current_login() == "octocat"
            assert client.current_login() == "octocat"
        assert urlopen.call_count == 1

    def test_missing_login(self):
        with patch(URLOPEN, return_value=_response({})):
            with pytest.raises(GitHubAPIError):
                GitHubClient("ghp_token").current_login()


class TestErrors:
    def test_http_error_uses_body_message(self):
        err = urllib.error.HTTPError(
            "https://api.github.com/user/orgs", 401, "Unauthorized", {},
            io.BytesIO(b'{"message": "Requires authentication"}'),
        )
        with patch(URLOPEN, side_effect=err):
            with pytest.raises(GitHubAPIError, match="Requires authentication"):
                GitHubClient("ghp_token").list_orgs()

    def test_network_error_is_redacted(self):
        register_secret("ghp_leaky_token")
        err = urllib.error.URLError("failed for ghp_leaky_token")
        with patch(URLOPEN, side_effect=err):
            with pytest.raises(GitHubAPIError) as exc:
                GitHubClient("ghp_leaky_token").list_orgs()
        assert "ghp_leaky_token" not in str(exc.value)
