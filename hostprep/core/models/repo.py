"""
GitHub records and the installer session.

Organizations and repositories are decoded straight from the GitHub
REST API JSON. InstallSession carries everything the installer flow
learns as it moves from one state to the next.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GitHubOrg(BaseModel):
    """An organization the authenticated user belongs to."""

    model_config = ConfigDict(extra="ignore")

    login: str
    description: str = ""

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, v: str | None) -> str:
        return v or ""


class GitHubRepo(BaseModel):
    """A repository listed by ``/user/repos`` or ``/orgs/{org}/repos``."""

    model_config = ConfigDict(extra="ignore")

    name: str
    description: str = ""
    owner: str = ""

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, v: str | None) -> str:
        return v or ""

    @field_validator("owner", mode="before")
    @classmethod
    def _owner_login(cls, v: object) -> str:
        # The API nests the owner as an object with a "login" key
        if isinstance(v, dict):
            return str(v.get("login", ""))
        return str(v or "")


class RepoSelection(BaseModel):
    """The repository the user picked and where it goes."""

    owner: str
    repo_name: str
    description: str = ""
    target_dir: Path = Field(default_factory=Path.cwd)

    @property
    def clone_path(self) -> Path:
        return self.target_dir / self.repo_name

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo_name}"


class InstallSession(BaseModel):
    """State threaded through every installer transition.

    ``organization`` is empty when listing personal repositories.
    ``owner`` is the organization or the authenticated user's login,
    resolved once a clone URL is needed.
    """

    token: str
    env_path: Path
    organization: str = ""
    owner: str = ""
    repos: list[GitHubRepo] = Field(default_factory=list)
    selection: RepoSelection | None = None
    repo_dir: Path | None = None
    branch: str = ""

    @property
    def personal(self) -> bool:
        return not self.organization


class PreviousRepo(BaseModel):
    """Repository recorded in the environment file by an earlier run."""

    org: str
    name: str
    path: Path
    branch: str = ""
