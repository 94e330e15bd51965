"""
GitHub REST client — organizations, repositories, the current user.

Bearer-token authenticated GETs against the REST API using urllib. Any
response carrying a ``message`` field, or an HTTP/network error, raises
GitHubAPIError; callers treat it as fatal and make no further calls.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from hostprep import __version__
from hostprep.core.models.repo import GitHubOrg, GitHubRepo
from hostprep.core.observability.redaction import redact

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"
PER_PAGE = 100


class GitHubAPIError(Exception):
    """The GitHub API returned an error or could not be reached."""


class GitHubClient:
    """Thin client for the four endpoints the installer needs."""

    def __init__(self, token: str, api_url: str = API_URL, timeout: int = 30) -> None:
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._login: str | None = None

    # ── Endpoints ───────────────────────────────────────────────

    def list_orgs(self) -> list[GitHubOrg]:
        """``GET /user/orgs``."""
        data = self._get_list("/user/orgs", {"per_page": PER_PAGE})
        return [GitHubOrg.model_validate(item) for item in data]

    def list_repos(self, organization: str = "") -> list[GitHubRepo]:
        """``GET /user/repos`` or ``GET /orgs/{org}/repos``, most recent first."""
        params = {"sort": "updated", "per_page": PER_PAGE}
        if organization:
            path = f"/orgs/{urllib.parse.quote(organization, safe='')}/repos"
        else:
            path = "/user/repos"
        data = self._get_list(path, params)
        return [GitHubRepo.model_validate(item) for item in data]

    def current_login(self) -> str:
        """``GET /user`` — the authenticated user's login (cached)."""
        if self._login is None:
            data = self._get("/user")
            login = data.get("login") if isinstance(data, dict) else None
            if not login:
                raise GitHubAPIError("GitHub API did not return a user login")
            self._login = str(login)
        return self._login

    # ── Helpers ─────────────────────────────────────────────────

    def _get_list(self, path: str, params: dict[str, Any]) -> list[dict]:
        data = self._get(path, params)
        if not isinstance(data, list):
            raise GitHubAPIError(f"Unexpected response from {path}: expected a list")
        return data

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self._api_url}{path}"
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"

        req = urllib.request.Request(
            url,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self._token}",
                "User-Agent": f"hostprep/{__version__}",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )
        logger.debug("GET %s", url)

        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                body = resp.read()
        except urllib.error.HTTPError as e:
            raise GitHubAPIError(self._http_error_message(e)) from e
        except (urllib.error.URLError, OSError) as e:
            raise GitHubAPIError(redact(f"Cannot reach GitHub API: {e}")) from e

        try:
            data = json.loads(body or b"null")
        except (json.JSONDecodeError, ValueError) as e:
            raise GitHubAPIError(f"Invalid JSON from {path}: {e}") from e

        if isinstance(data, dict) and data.get("message"):
            raise GitHubAPIError(redact(str(data["message"])))
        return data

    @staticmethod
    def _http_error_message(error: urllib.error.HTTPError) -> str:
        message = ""
        try:
            payload = json.loads(error.read() or b"{}")
            if isinstance(payload, dict):
                message = str(payload.get("message", ""))
        except (json.JSONDecodeError, ValueError, OSError):
            pass
        return redact(message or f"HTTP {error.code} {error.reason}")
