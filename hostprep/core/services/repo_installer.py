"""
Repository installer — clone a GitHub repository and bring it up.

A strictly sequential flow. Each state reads what it needs (the token
from the environment file, selections from the terminal) and moves on
only on success:

    AuthCheck → OrgSelect → RepoList → RepoSelect → TargetDir → Clone
      → DependencyCheck → ComposeCheck → PersistState

Invalid selections, a declined overwrite, a failed directory creation
and a failed clone raise InstallerAbort; GitHub API errors raise
GitHubAPIError. Both end the run with exit code 1. Dependency and
Compose failures are warnings.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from hostprep.adapters.containers import docker
from hostprep.adapters.github.client import GitHubClient
from hostprep.adapters.shell.command import CommandExecutor
from hostprep.adapters.vcs.git import GitCLI, authenticated_url, https_url
from hostprep.core.models.repo import InstallSession, RepoSelection
from hostprep.core.observability.redaction import register_secret
from hostprep.core.persistence import env_file
from hostprep.core.services import dependencies, package_manager

if TYPE_CHECKING:
    from hostprep.ui.cli.console import TerminalIO

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("git",)


class InstallerAbort(Exception):
    """An unrecoverable precondition failed; the run ends with exit 1."""


# ═══════════════════════════════════════════════════════════════════
#  AuthCheck
# ═══════════════════════════════════════════════════════════════════


def authenticate(env_path: Path) -> str:
    """Read GITHUB_TOKEN from the environment file and register it for redaction.

    Raises:
        InstallerAbort: If the file or the key is missing.
    """
    if not env_path.is_file():
        raise InstallerAbort(
            f"{env_path} file not found. "
            f"Create it with {env_file.TOKEN_KEY}=your_token"
        )
    token = env_file.read_token(env_path)
    if not token:
        raise InstallerAbort(
            f"{env_file.TOKEN_KEY} not found in {env_path}. "
            f"Add {env_file.TOKEN_KEY}=your_token to it"
        )
    register_secret(token)
    return token


# ═══════════════════════════════════════════════════════════════════
#  Tool check
# ═══════════════════════════════════════════════════════════════════


def missing_tools() -> list[str]:
    missing = [t for t in (*REQUIRED_TOOLS, "docker") if not shutil.which(t)]
    if docker.compose_command() is None:
        missing.append("docker-compose")
    return missing


def ensure_tools(io: TerminalIO, executor: CommandExecutor) -> None:
    """Offer to install missing tools; git is required, Docker is optional.

    Raises:
        InstallerAbort: If git is still missing afterwards.
    """
    missing = missing_tools()
    if not missing:
        return

    io.warning("The following tools are missing:")
    for tool in missing:
        io.plain(f"  - {tool}")

    if io.confirm("Do you want to attempt automatic installation of missing tools?"):
        _install_tools(io, executor, missing)
        missing = missing_tools()

    still_required = [t for t in REQUIRED_TOOLS if t in missing]
    if still_required:
        raise InstallerAbort(
            f"Required tools are missing: {', '.join(still_required)}. "
            "Install them before running this command"
        )
    if missing:
        io.warning(
            f"Continuing without {', '.join(missing)}; Docker Compose stacks cannot be started"
        )
    else:
        io.success("All required tools are now available.")


def _install_tools(io: TerminalIO, executor: CommandExecutor, tools: list[str]) -> None:
    pm = package_manager.detect_package_manager()
    if pm == "unknown":
        io.error("Could not detect a package manager. Install the missing tools manually.")
        return

    packages = []
    for tool in tools:
        pkg = package_manager.package_for_tool(tool, pm)
        if pkg is None:
            io.warning(f"No {pm} package for {tool}; install it manually.")
        else:
            packages.append(pkg)
    if not packages:
        return

    update = package_manager.update_command(pm)
    if update:
        executor.run(update, "Updating package lists")
    install = package_manager.install_command(pm, packages)
    if install:
        executor.run(install, f"Installing {', '.join(packages)} with {pm}")
    if "docker" in tools:
        enable = package_manager.enable_service_command("docker")
        if enable:
            executor.run(enable, "Enabling the Docker service")


# ═══════════════════════════════════════════════════════════════════
#  Installer flow
# ═══════════════════════════════════════════════════════════════════


def _parse_index(answer: str, low: int, high: int) -> int:
    """A single invalid entry is fatal; there is no re-prompt."""
    if not answer.isdigit():
        raise InstallerAbort("Invalid selection.")
    index = int(answer)
    if index < low or index > high:
        raise InstallerAbort("Invalid selection.")
    return index


class RepoInstaller:
    """Drive one installer session from OrgSelect to PersistState."""

    def __init__(
        self,
        session: InstallSession,
        io: TerminalIO,
        github: GitHubClient,
        executor: CommandExecutor,
        git: GitCLI | None = None,
    ) -> None:
        self.session = session
        self._io = io
        self._github = github
        self._executor = executor
        self._git = git or GitCLI()
        self._overwrite = False

    def run(self) -> Path:
        """Run every state in order and return the cloned repository path."""
        self.select_organization()
        self.fetch_repositories()
        self.select_repository()
        self.choose_target_directory()
        self.clone()
        self.install_dependencies()
        self.start_compose()
        self.persist_state()
        assert self.session.repo_dir is not None
        return self.session.repo_dir

    # ── OrgSelect ───────────────────────────────────────────────

    def select_organization(self) -> None:
        io = self._io
        io.info("Fetching organizations you have access to...")
        orgs = self._github.list_orgs()

        if not orgs:
            io.warning("No organizations found.")
            name = io.ask(
                "Organization name (leave empty for your personal repositories)",
                default="",
            )
            self.session.organization = name
            if name:
                io.success(f"Will list repositories from organization: {name}")
            else:
                io.success("Will list your personal repositories.")
            return

        io.success(f"Found {len(orgs)} organizations.")
        io.rule()
        io.plain("0. Personal repositories")
        io.plain("   Your personal GitHub repositories")
        io.rule()
        for i, org in enumerate(orgs, start=1):
            io.plain(f"{i}. {org.login}")
            if org.description:
                io.plain(f"   {org.description}")
            io.rule()

        answer = io.ask(f"Enter the number of the organization (0-{len(orgs)})")
        index = _parse_index(answer, 0, len(orgs))
        if index == 0:
            self.session.organization = ""
            io.success("Selected: Personal repositories")
        else:
            self.session.organization = orgs[index - 1].login
            io.success(f"Selected organization: {self.session.organization}")

    # ── RepoList ────────────────────────────────────────────────

    def fetch_repositories(self) -> None:
        self._io.info("Fetching repositories from GitHub...")
        repos = self._github.list_repos(self.session.organization)
        if not repos:
            raise InstallerAbort("No repositories found.")
        self.session.repos = repos
        self._io.success(f"Found {len(repos)} repositories.")

    # ── RepoSelect ──────────────────────────────────────────────

    def select_repository(self) -> None:
        io = self._io
        repos = self.session.repos
        io.info("Available repositories:")
        io.rule()
        for i, repo in enumerate(repos, start=1):
            io.plain(f"{i}. {repo.name}")
            io.plain(f"   {repo.description or 'No description'}")
            io.rule()

        answer = io.ask(f"Enter the number of the repository to clone (1-{len(repos)})")
        repo = repos[_parse_index(answer, 1, len(repos)) - 1]

        # /user/repos also lists collaborator and org-member repositories
        owner = repo.owner or self.session.organization or self._github.current_login()
        self.session.owner = owner
        self.session.selection = RepoSelection(
            owner=owner, repo_name=repo.name, description=repo.description,
        )
        io.success(f"Selected repository: {self.session.selection.slug}")

    # ── TargetDir ───────────────────────────────────────────────

    def choose_target_directory(self) -> None:
        io = self._io
        selection = self._selection()
        cwd = Path.cwd()
        answer = io.ask(
            f"Where should the repository be cloned? (Enter for current directory {cwd})",
            default="",
        )

        if not answer:
            target = cwd
            io.success(f"Using current directory: {target}")
        else:
            target = Path(answer).expanduser()
            if not target.is_dir():
                if not io.confirm(f"Directory '{target}' doesn't exist. Create it?", default=True):
                    raise InstallerAbort("Aborted.")
                try:
                    target.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise InstallerAbort(f"Failed to create directory: {e}") from e
                io.success(f"Created directory: {target}")

        selection.target_dir = target
        clone_path = selection.clone_path
        if clone_path.exists():
            if not io.confirm(f"Directory '{clone_path}' already exists. Overwrite?", default=False):
                raise InstallerAbort("Aborted.")
            io.warning("Existing repository will be overwritten.")
            self._overwrite = True

    # ── Clone ───────────────────────────────────────────────────

    def clone(self) -> None:
        io = self._io
        selection = self._selection()
        dest = selection.clone_path

        io.info("Cloning repository...")
        if self._overwrite and dest.exists():
            shutil.rmtree(dest)

        io.plain(f'Running: git clone [HIDDEN_URL] "{dest}"')
        url = authenticated_url(selection.owner, selection.repo_name, self.session.token)
        result = self._git.clone(url, dest)
        for line in result.output.splitlines():
            io.plain(line)
        if not result.ok:
            raise InstallerAbort("Failed to clone repository.")

        # Keep the token out of .git/config
        self._git.set_remote_url(dest, https_url(selection.owner, selection.repo_name))

        self.session.repo_dir = dest
        io.success(f"Repository cloned successfully to: {dest}")

    # ── DependencyCheck ─────────────────────────────────────────

    def install_dependencies(self) -> None:
        io = self._io
        repo_dir = self._repo_dir()
        io.info("Checking for dependency files...")

        manifests = dependencies.detect_manifests(repo_dir)
        if not manifests:
            io.info("No dependency files found.")
            return
        for m in manifests:
            io.success(f"Found {m.ecosystem} {m.filename}.")

        if not io.confirm("Do you want to install the dependencies before starting Docker?"):
            io.info("Skipping dependency installation.")
            return

        plans = dependencies.plan_installs(manifests)
        if any(p.missing_tool == "pip" for p in plans) and self._install_pip():
            plans = dependencies.plan_installs(manifests)

        for plan in plans:
            if plan.command is None:
                io.warning(
                    f"{plan.missing_tool} not found. "
                    f"Skipping {plan.manifest.ecosystem} dependencies ({plan.manifest.filename})."
                )
                continue
            result = self._executor.run(
                plan.command,
                f"Installing {plan.manifest.ecosystem} dependencies from {plan.manifest.filename}",
                cwd=repo_dir,
            )
            if not result.ok:
                io.warning(f"Dependency installation from {plan.manifest.filename} failed.")

        io.success("Dependency installation completed.")

    def _install_pip(self) -> bool:
        if not shutil.which("python3"):
            return False
        pm = package_manager.detect_package_manager()
        pkg = package_manager.package_for_tool("pip", pm)
        command = package_manager.install_command(pm, [pkg]) if pkg else None
        if command is None:
            self._io.error("Could not install pip. Please install it manually.")
            return False
        self._io.warning("pip not found. Attempting to install it...")
        return self._executor.run(command, "Installing pip").ok

    # ── ComposeCheck ────────────────────────────────────────────

    def start_compose(self) -> None:
        io = self._io
        repo_dir = self._repo_dir()

        compose_file = docker.find_compose_file(repo_dir)
        if compose_file is None:
            io.warning("No Docker Compose file found in repository.")
            return

        io.info("Docker Compose file found in repository.")
        if not io.confirm("Do you want to initialize and start Docker containers?"):
            io.info("Skipping Docker initialization.")
            io.warning(
                f"To start Docker later, run 'docker compose up -d' in {repo_dir}"
            )
            return

        env_state = docker.prepare_env_file(repo_dir)
        if env_state == "copied":
            io.success("Created .env from .env.example.")
            io.warning(f"You may need to edit {repo_dir / '.env'} to set proper configuration values.")
        elif env_state == "created":
            io.warning("No .env.example file found; created an empty .env.")

        command = docker.up_command(repo_dir)
        if command is None:
            io.error("Neither docker-compose nor the docker compose plugin was found.")
            return

        result = self._executor.run(command, "Starting Docker containers", cwd=repo_dir)
        if not result.ok:
            io.error("Failed to start Docker containers.")
            io.warning("Please check the Docker configuration and try manually.")
            return

        io.success("Docker containers started successfully.")
        ports = docker.published_ports(compose_file)
        if ports:
            io.success("The application may be available at:")
            for port in ports:
                io.plain(f"  http://localhost:{port}")

    # ── PersistState ────────────────────────────────────────────

    def persist_state(self) -> None:
        selection = self._selection()
        repo_dir = self._repo_dir()
        self._io.info(f"Saving repository information to {self.session.env_path}...")

        self.session.branch = self._git.current_branch(repo_dir)
        env_file.save_repo_info(
            self.session.env_path,
            org=selection.owner,
            name=selection.repo_name,
            branch=self.session.branch,
            path=repo_dir,
        )
        self._io.success("Repository information saved.")

    # ── Helpers ─────────────────────────────────────────────────

    def _selection(self) -> RepoSelection:
        if self.session.selection is None:
            raise InstallerAbort("No repository selected.")
        return self.session.selection

    def _repo_dir(self) -> Path:
        if self.session.repo_dir is None:
            raise InstallerAbort("Repository has not been cloned.")
        return self.session.repo_dir
