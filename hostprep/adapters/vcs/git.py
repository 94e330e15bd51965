"""
Git adapter — the version control operations the installer needs.

Uses the git CLI, never raw API calls. Clone and push URLs carry the
GitHub token, so every string that comes back from git is redacted
before it is returned, and origin is always left pointing at the
token-free URL.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from hostprep.core.observability.redaction import redact

logger = logging.getLogger(__name__)

GITHUB_HOST = "github.com"


def https_url(owner: str, repo: str) -> str:
    """Token-free clone URL."""
    return f"https://{GITHUB_HOST}/{owner}/{repo}.git"


def authenticated_url(owner: str, repo: str, token: str) -> str:
    """Clone/push URL with the token as credentials."""
    return f"https://{token}@{GITHUB_HOST}/{owner}/{repo}.git"


@dataclass
class GitResult:
    """Exit status and redacted merged output of one git command."""

    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class StatusCounts:
    branch: str = ""
    modified: int = 0
    added: int = 0
    deleted: int = 0
    untracked: int = 0
    files: list[str] = field(default_factory=list)


class GitCLI:
    """git subprocess wrapper with redacted output."""

    def __init__(self, timeout: int = 600) -> None:
        self._timeout = timeout

    # ── Clone / remote ──────────────────────────────────────────

    def clone(self, url: str, dest: Path) -> GitResult:
        return self._git("clone", url, str(dest))

    def set_remote_url(self, repo: Path, url: str, remote: str = "origin") -> GitResult:
        remotes = self._git("remote", cwd=repo)
        if remote in remotes.output.split():
            return self._git("remote", "set-url", remote, url, cwd=repo)
        return self._git("remote", "add", remote, url, cwd=repo)

    # ── Branches ────────────────────────────────────────────────

    def current_branch(self, repo: Path) -> str:
        r = self._git("rev-parse", "--abbrev-ref", "HEAD", cwd=repo)
        return r.output.strip() if r.ok else ""

    def fetch_all(self, repo: Path) -> GitResult:
        return self._git("fetch", "--all", cwd=repo)

    def remote_branches(self, repo: Path, remote: str = "origin") -> list[str]:
        r = self._git("branch", "-r", "--no-color", cwd=repo)
        if not r.ok:
            return []
        prefix = f"{remote}/"
        branches = set()
        for line in r.output.splitlines():
            name = line.strip()
            if not name or "->" in name or "HEAD" in name:
                continue
            branches.add(name[len(prefix):] if name.startswith(prefix) else name)
        return sorted(branches)

    def checkout(self, repo: Path, branch: str, create: bool = False) -> GitResult:
        if create:
            return self._git("checkout", "-b", branch, cwd=repo)
        return self._git("checkout", branch, cwd=repo)

    # ── Working tree ────────────────────────────────────────────

    def status_counts(self, repo: Path) -> StatusCounts:
        """Modified/added/deleted/untracked counts from porcelain v1."""
        counts = StatusCounts(branch=self.current_branch(repo))
        r = self._git("status", "--porcelain", cwd=repo)
        if not r.ok:
            return counts
        for line in r.output.splitlines():
            if len(line) < 3:
                continue
            idx, wt = line[0], line[1]
            counts.files.append(line[3:])
            if line.startswith("??"):
                counts.untracked += 1
                continue
            if idx == "A":
                counts.added += 1
            if "M" in (idx, wt):
                counts.modified += 1
            if "D" in (idx, wt):
                counts.deleted += 1
        return counts

    def has_changes(self, repo: Path) -> bool:
        """True if the worktree or index differs from HEAD, or has untracked files."""
        unstaged = self._git("diff", "--quiet", cwd=repo)
        staged = self._git("diff", "--staged", "--quiet", cwd=repo)
        if not (unstaged.ok and staged.ok):
            return True
        untracked = self._git("ls-files", "--others", "--exclude-standard", cwd=repo)
        return bool(untracked.output.strip())

    def add_all(self, repo: Path) -> GitResult:
        return self._git("add", "-A", cwd=repo)

    def commit(self, repo: Path, message: str) -> GitResult:
        return self._git("commit", "-m", message, cwd=repo)

    def push(self, repo: Path, url: str, branch: str, force: bool = False) -> GitResult:
        args = ["push"]
        if force:
            args.append("--force")
        args += [url, f"HEAD:refs/heads/{branch}"]
        return self._git(*args, cwd=repo)

    def set_upstream(self, repo: Path, branch: str, remote: str = "origin") -> GitResult:
        self._git("fetch", remote, branch, cwd=repo)
        return self._git("branch", f"--set-upstream-to={remote}/{branch}", cwd=repo)

    # ── Helpers ─────────────────────────────────────────────────

    def _git(self, *args: str, cwd: Path | None = None) -> GitResult:
        """Run a git command; never raises."""
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                stdin=subprocess.DEVNULL,
                env=_git_env(),
            )
        except subprocess.TimeoutExpired:
            return GitResult(124, f"git {args[0]} timed out after {self._timeout}s")
        except OSError as e:
            return GitResult(127, f"git could not run: {e}")

        output = "\n".join(
            # Porcelain lines start with a space; only trim newlines
            part for part in (result.stdout.rstrip("\n"), result.stderr.strip()) if part
        )
        if result.returncode != 0:
            logger.debug("git %s exited %d", args[0], result.returncode)
        return GitResult(result.returncode, redact(output))


def _git_env() -> dict[str, str]:
    env = os.environ.copy()
    # Fail instead of prompting for credentials on a bad token
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env
