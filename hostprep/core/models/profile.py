"""
Provisioning profile — what ``hostprep provision`` sets up.

Loaded from ``hostprep.yml`` by the config loader. Every field has a
default so that a host can be provisioned with no profile at all.
"""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

_USERNAME_RE = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")


class UserSettings(BaseModel):
    """The privileged account created on the host."""

    name: str = "claude-user"
    shell: str = "/bin/bash"
    passwordless_login: bool = True
    admin_group: str | None = None   # None = detect (sudo or wheel)
    extra_groups: list[str] = Field(default_factory=lambda: ["docker", "root"])
    sudo_nopasswd: bool = True

    @field_validator("name")
    @classmethod
    def _valid_username(cls, v: str) -> str:
        if not _USERNAME_RE.match(v):
            raise ValueError(f"Invalid user name: {v!r}")
        return v


class DockerSettings(BaseModel):
    enabled: bool = True
    packages: list[str] = Field(default_factory=lambda: ["docker.io"])
    verify_container: bool = True
    test_image: str = "hello-world"
    verify_timeout: int = 30


class NodeSettings(BaseModel):
    enabled: bool = True
    nvm_version: str = "v0.40.3"
    version: str = "22"
    global_packages: list[str] = Field(
        default_factory=lambda: ["@anthropic-ai/claude-code"],
    )


class ProvisionProfile(BaseModel):
    """Top-level provisioning configuration."""

    user: UserSettings = Field(default_factory=UserSettings)
    docker: DockerSettings = Field(default_factory=DockerSettings)
    node: NodeSettings = Field(default_factory=NodeSettings)
    prerequisites: list[str] = Field(
        default_factory=lambda: ["curl", "git", "ca-certificates"],
    )
    workspace_dir: Path | None = Path("/opt/docker-aicode")
    backup_account_files: bool = True
    log_dir: Path = Path("/var/log/hostprep")
    tail_lines: int = Field(default=5, ge=1, le=50)
