"""Adapters — tool bindings for external integrations.

Public re-exports for convenient access.
"""

from hostprep.adapters.github.client import GitHubClient
from hostprep.adapters.shell.command import CommandExecutor
from hostprep.adapters.vcs.git import GitCLI

__all__ = [
    "CommandExecutor",
    "GitCLI",
    "GitHubClient",
]
