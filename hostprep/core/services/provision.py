"""
Host provisioning — Docker, the privileged account, Node.js tooling.

Turns a ProvisionProfile into an ordered list of idempotent steps and a
list of verification checks. Every step pairs a read-only check (run
by the component verifier) with a mutating command (run by the command
executor). Account steps are critical; package steps are not.

Runs as root. Commands for the provisioned account run through
``su - <user> -c`` so nvm and npm land in that user's home.
"""

from __future__ import annotations

import logging
import shlex
import time
from dataclasses import dataclass

from hostprep.adapters.shell.command import CommandExecutor
from hostprep.core.engine.runner import CheckFn, ProvisionStep, StepRunner
from hostprep.core.engine.verifier import ComponentVerifier, VerificationCheck, VerificationSweep
from hostprep.core.models.profile import ProvisionProfile
from hostprep.core.models.step import ProvisionReport
from hostprep.core.observability.run_log import RunLog
from hostprep.core.services import package_manager

logger = logging.getLogger(__name__)

_ACCOUNT_FILES = ("/etc/passwd", "/etc/shadow", "/etc/group")
_SUDOERS_DIR = "/etc/sudoers.d"
_NVM_INSTALL_URL = "https://raw.githubusercontent.com/nvm-sh/nvm/{version}/install.sh"
_NVM_LOAD = 'export NVM_DIR="$HOME/.nvm"; . "$NVM_DIR/nvm.sh"'


@dataclass
class HostFacts:
    """What the host looks like before anything runs."""

    package_manager: str
    admin_group: str


def detect_host(profile: ProvisionProfile) -> HostFacts:
    return HostFacts(
        package_manager=package_manager.detect_package_manager(),
        admin_group=profile.user.admin_group or package_manager.detect_admin_group(),
    )


def as_user(user: str, command: str) -> str:
    """Wrap *command* to run in *user*'s login shell."""
    return f"su - {shlex.quote(user)} -c {shlex.quote(command)}"


def sudoers_line(user: str) -> str:
    return f"{user} ALL=(ALL) NOPASSWD:ALL"


def _groups_for(profile: ProvisionProfile, facts: HostFacts) -> list[str]:
    groups = [facts.admin_group, *profile.user.extra_groups]
    return list(dict.fromkeys(g for g in groups if g))


def build_steps(
    profile: ProvisionProfile,
    facts: HostFacts,
    executor: CommandExecutor,
    verifier: ComponentVerifier,
) -> list[ProvisionStep]:
    """Build the ordered provisioning plan."""
    steps: list[ProvisionStep] = []
    user = profile.user.name
    q_user = shlex.quote(user)
    pm = facts.package_manager

    def command_step(
        name: str,
        command: str | None,
        check: str | CheckFn | None = None,
        critical: bool = False,
    ) -> None:
        if command is None:
            logger.debug("No command for step %r on pm=%s, omitting", name, pm)
            return
        if isinstance(check, str):
            probe = check
            check = lambda: verifier.probe(probe)  # noqa: E731
        steps.append(ProvisionStep(
            name=name,
            apply=lambda: executor.run(command, name),
            check=check,
            critical=critical,
        ))

    # ── Account safety backups ──────────────────────────────────
    if profile.backup_account_files:
        stamp = int(time.time())
        backup = " && ".join(
            f"cp -p {path} {path}.bak.{stamp}" for path in _ACCOUNT_FILES
        )
        command_step("Back up account databases", backup)

    # ── Packages ────────────────────────────────────────────────
    command_step("Refresh package index", package_manager.update_command(pm))

    if profile.prerequisites:
        prerequisites = list(profile.prerequisites)
        command_step(
            "Install prerequisites",
            package_manager.install_command(pm, prerequisites),
            check=lambda: all(package_manager.is_pkg_installed(p, pm) for p in prerequisites),
        )

    # ── Docker ──────────────────────────────────────────────────
    if profile.docker.enabled:
        command_step(
            "Install Docker",
            package_manager.install_command(pm, profile.docker.packages),
            check="command -v docker >/dev/null 2>&1",
        )
        command_step(
            "Enable Docker service",
            package_manager.enable_service_command("docker"),
            check="systemctl is-active --quiet docker",
        )
        command_step(
            "Ensure docker group exists",
            "groupadd docker",
            check="getent group docker >/dev/null",
        )

    # ── Account ─────────────────────────────────────────────────
    command_step(
        f"Create user {user}",
        f"useradd -m -s {shlex.quote(profile.user.shell)} {q_user}",
        check=f"id {q_user} >/dev/null 2>&1",
        critical=True,
    )

    if profile.user.passwordless_login:
        command_step(
            f"Remove login password for {user}",
            f"passwd -d {q_user}",
            check=f"passwd -S {q_user} 2>/dev/null | awk '{{print $2}}' | grep -qx NP",
        )

    groups = _groups_for(profile, facts)
    if groups:
        has_groups = " && ".join(
            f"id -nG {q_user} | tr ' ' '\\n' | grep -qx {shlex.quote(g)}" for g in groups
        )
        command_step(
            f"Add {user} to groups {', '.join(groups)}",
            f"usermod -aG {shlex.quote(','.join(groups))} {q_user}",
            check=has_groups,
            critical=True,
        )

    if profile.user.sudo_nopasswd:
        drop_in = f"{_SUDOERS_DIR}/{user}"
        line = sudoers_line(user)
        command_step(
            "Install password-less sudo drop-in",
            (
                f"mkdir -p {_SUDOERS_DIR} && "
                f"printf '%s\\n' {shlex.quote(line)} > {drop_in} && "
                f"chmod 0440 {drop_in} && visudo -cf {drop_in}"
            ),
            check=f"grep -qxF {shlex.quote(line)} {drop_in} 2>/dev/null",
            critical=True,
        )

    # ── Workspace ───────────────────────────────────────────────
    if profile.workspace_dir:
        ws = shlex.quote(str(profile.workspace_dir))
        command_step(
            f"Create workspace {profile.workspace_dir}",
            f"mkdir -p {ws} && chown {q_user}: {ws}",
            check=f"test -d {ws}",
        )

    # ── Node.js ─────────────────────────────────────────────────
    if profile.node.enabled:
        nvm_url = _NVM_INSTALL_URL.format(version=profile.node.nvm_version)
        command_step(
            "Install nvm",
            as_user(user, f"curl -fsSo- {nvm_url} | bash"),
            check=as_user(user, 'test -s "$HOME/.nvm/nvm.sh"'),
        )
        version = shlex.quote(profile.node.version)
        command_step(
            f"Install Node.js {profile.node.version}",
            as_user(user, f"{_NVM_LOAD} && nvm install {version} && nvm alias default {version}"),
            check=as_user(user, f"{_NVM_LOAD} && nvm ls {version} >/dev/null 2>&1"),
        )
        for pkg in profile.node.global_packages:
            q_pkg = shlex.quote(pkg)
            command_step(
                f"Install npm package {pkg}",
                as_user(user, f"{_NVM_LOAD} && npm install -g {q_pkg}"),
                check=as_user(user, f"{_NVM_LOAD} && npm ls -g --depth=0 {q_pkg} >/dev/null 2>&1"),
            )

    return steps


def build_checks(profile: ProvisionProfile, facts: HostFacts) -> list[VerificationCheck]:
    """The verification sweep for a provisioned host."""
    user = profile.user.name
    q_user = shlex.quote(user)
    checks: list[VerificationCheck] = []

    if profile.docker.enabled:
        checks.append(VerificationCheck(
            "Docker CLI", "docker --version",
            "Docker CLI is installed", "Docker CLI is missing",
        ))
        checks.append(VerificationCheck(
            "Docker daemon", "docker info >/dev/null 2>&1",
            "Docker daemon is running", "Docker daemon is not reachable",
        ))
        if profile.docker.verify_container:
            image = shlex.quote(profile.docker.test_image)
            checks.append(VerificationCheck(
                "Docker container run", f"docker run --rm {image}",
                f"Container {profile.docker.test_image} ran successfully",
                f"Could not run container {profile.docker.test_image}",
                timeout=profile.docker.verify_timeout,
            ))

    checks.append(VerificationCheck(
        f"User {user}", f"id {q_user}",
        f"User {user} exists", f"User {user} does not exist",
    ))
    for group in _groups_for(profile, facts):
        checks.append(VerificationCheck(
            f"Group {group}",
            f"id -nG {q_user} | tr ' ' '\\n' | grep -qx {shlex.quote(group)}",
            f"{user} is in group {group}", f"{user} is not in group {group}",
        ))
    if profile.user.sudo_nopasswd:
        checks.append(VerificationCheck(
            "Password-less sudo", f"sudo -n -l -U {q_user} | grep -q NOPASSWD",
            f"{user} has password-less sudo", f"{user} lacks password-less sudo",
        ))

    if profile.node.enabled:
        checks.append(VerificationCheck(
            "Node.js", as_user(user, f"{_NVM_LOAD} && node -v"),
            "Node.js is installed", "Node.js is missing",
        ))
        checks.append(VerificationCheck(
            "npm", as_user(user, f"{_NVM_LOAD} && npm -v"),
            "npm is installed", "npm is missing",
        ))
        for pkg in profile.node.global_packages:
            checks.append(VerificationCheck(
                f"npm package {pkg}",
                as_user(user, f"{_NVM_LOAD} && npm ls -g --depth=0 {shlex.quote(pkg)}"),
                f"{pkg} is installed globally", f"{pkg} is not installed",
            ))

    return checks


def provision_host(
    profile: ProvisionProfile,
    executor: CommandExecutor,
    verifier: ComponentVerifier,
    run_log: RunLog,
    facts: HostFacts | None = None,
) -> ProvisionReport:
    """Run the full plan, then the verification sweep.

    Raises:
        ProvisionAbort: If a critical (account) step fails.
    """
    facts = facts or detect_host(profile)
    run_log.info(
        "Package manager: %s, admin group: %s", facts.package_manager, facts.admin_group,
    )
    if facts.package_manager == "unknown":
        run_log.warning("No supported package manager found; package steps are skipped")

    steps = build_steps(profile, facts, executor, verifier)
    runner = StepRunner(total=len(steps), run_log=run_log)
    report = runner.run_plan(steps)

    sweep = VerificationSweep(verifier, run_log)
    report.verifications = sweep.run(build_checks(profile, facts))
    return report


def verify_host(
    profile: ProvisionProfile,
    verifier: ComponentVerifier,
    run_log: RunLog,
    facts: HostFacts | None = None,
) -> ProvisionReport:
    """Run only the verification sweep."""
    facts = facts or detect_host(profile)
    sweep = VerificationSweep(verifier, run_log)
    return ProvisionReport(verifications=sweep.run(build_checks(profile, facts)))
