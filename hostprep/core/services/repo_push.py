"""
Push-back flow — send local changes in a previously installed repository
back to GitHub.

The repository is the one recorded by the installer in the environment
file (``GIT_REPO_*``). Pushes go to the token URL passed explicitly on
the command line; origin keeps its token-free URL. A rejected push is
only forced after the user confirms it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from hostprep.adapters.vcs.git import GitCLI, authenticated_url
from hostprep.core.models.repo import PreviousRepo
from hostprep.core.persistence import env_file
from hostprep.core.services.repo_installer import InstallerAbort

if TYPE_CHECKING:
    from hostprep.ui.cli.console import TerminalIO

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_MESSAGE = "Update from script"


def offer_previous_repo(io: TerminalIO, env_path: Path) -> PreviousRepo | None:
    """Return the recorded repository if the user wants to push back to it.

    None when nothing usable is recorded or the user picks a new clone.
    """
    previous = env_file.load_previous_repo(env_path)
    if previous is None:
        return None

    io.success("Found previously cloned repository:")
    io.plain(f"  Organization: {previous.org}")
    io.plain(f"  Repository:   {previous.name}")
    io.plain(f"  Path:         {previous.path}")
    io.plain(f"  Branch:       {previous.branch or '(unknown)'}")
    io.info("What would you like to do?")
    io.plain("1. Clone a new repository")
    io.plain("2. Push changes back to GitHub")

    return previous if io.ask("Enter your choice [1/2]", default="1") == "2" else None


class RepoPusher:
    """Stage, commit and push the recorded repository."""

    def __init__(
        self,
        repo: PreviousRepo,
        token: str,
        env_path: Path,
        io: TerminalIO,
        git: GitCLI | None = None,
    ) -> None:
        self.repo = repo
        self._token = token
        self._env_path = env_path
        self._io = io
        self._git = git or GitCLI()

    def run(self) -> bool:
        """Push and record the branch.

        Returns:
            False when the user cancelled, True once the push landed.

        Raises:
            InstallerAbort: A branch could not be created or the push failed.
        """
        io = self._io
        io.info("Preparing to push changes to GitHub...")
        self.show_status()

        if self._git.has_changes(self.repo.path):
            io.success("Changes detected in the repository.")
        else:
            io.warning("No changes detected in the repository.")
            if not io.confirm("Do you want to continue anyway?"):
                io.info("Operation canceled.")
                return False

        branch = self.choose_branch()
        message = io.ask(
            f"Commit message (default: '{DEFAULT_COMMIT_MESSAGE}')", default="",
        ) or DEFAULT_COMMIT_MESSAGE

        io.info("Staging changes...")
        self._git.add_all(self.repo.path)
        io.info("Committing changes...")
        commit = self._git.commit(self.repo.path, message)
        if not commit.ok:
            io.warning("No changes to commit or commit failed.")
            if not io.confirm("Do you want to push anyway?"):
                io.info("Operation canceled.")
                return False

        if not self.push(branch):
            return False

        env_file.update_keys(self._env_path, {env_file.REPO_BRANCH_KEY: branch})
        io.success("Changes successfully pushed to GitHub.")
        io.info(f"Repository: https://github.com/{self.repo.org}/{self.repo.name}")
        io.info(f"Branch: {branch}")
        return True

    # ── Steps ───────────────────────────────────────────────────

    def show_status(self) -> None:
        io = self._io
        counts = self._git.status_counts(self.repo.path)
        io.info("Repository Status:")
        io.rule()
        io.plain(f"Repository:      {self.repo.org}/{self.repo.name}")
        io.plain(f"Local Path:      {self.repo.path}")
        io.plain(f"Current Branch:  {counts.branch}")
        io.plain(f"Modified files:  {counts.modified}")
        io.plain(f"Added files:     {counts.added}")
        io.plain(f"Deleted files:   {counts.deleted}")
        io.plain(f"Untracked files: {counts.untracked}")
        io.rule()

    def choose_branch(self) -> str:
        """Current branch, a new branch, or an existing remote branch."""
        io = self._io
        path = self.repo.path
        current = self._git.current_branch(path)
        io.info(f"Current branch: {current}")

        self._git.fetch_all(path)
        io.info("What branch would you like to push to?")
        io.plain(f"1. Current branch ({current})")
        io.plain("2. Create a new branch")
        io.plain("3. Select an existing branch")
        choice = io.ask("Enter your choice [1/2/3]", default="1")

        if choice == "2":
            name = io.ask("Enter name for the new branch", default="")
            if not name:
                raise InstallerAbort("Branch name cannot be empty.")
            if not self._git.checkout(path, name, create=True).ok:
                raise InstallerAbort("Failed to create new branch.")
            return name

        if choice == "3":
            branches = self._git.remote_branches(path)
            if not branches:
                io.warning("No remote branches found. Using current branch.")
                return current
            io.info("Available branches:")
            for i, name in enumerate(branches, start=1):
                io.plain(f"{i}. {name}")
            answer = io.ask("Enter the number of the branch to use", default="")
            if not answer.isdigit() or not 1 <= int(answer) <= len(branches):
                io.error("Invalid selection. Using current branch.")
                return current
            selected = branches[int(answer) - 1]
            if not self._git.checkout(path, selected).ok:
                io.error("Failed to checkout branch. Using current branch.")
                return current
            return selected

        return current

    def push(self, branch: str) -> bool:
        io = self._io
        url = authenticated_url(self.repo.org, self.repo.name, self._token)

        io.info(f"Attempting to push to branch: {branch}")
        result = self._git.push(self.repo.path, url, branch)
        if result.ok:
            io.success("Push successful.")
            self._git.set_upstream(self.repo.path, branch)
            return True

        io.warning("Push failed. Output:")
        for line in result.output.splitlines():
            io.plain(line)
        if not io.confirm("Do you want to force push (this will overwrite remote changes)?"):
            io.info("Operation canceled.")
            return False

        io.info(f"Force pushing to branch: {branch}")
        forced = self._git.push(self.repo.path, url, branch, force=True)
        for line in forced.output.splitlines():
            io.plain(line)
        if not forced.ok:
            raise InstallerAbort("Force push failed.")
        io.success("Force push successful.")
        self._git.set_upstream(self.repo.path, branch)
        return True
