"""
Tests for the provisioning plan and verification checks.
"""

from unittest.mock import MagicMock, patch

import pytest

from hostprep.core.engine.runner import ProvisionAbort
from hostprep.core.models.profile import ProvisionProfile
from hostprep.core.models.step import ExecutionResult
from hostprep.core.services.provision import (
    HostFacts,
    as_user,
    build_checks,
    build_steps,
    provision_host,
    sudoers_line,
    verify_host,
)

FACTS = HostFacts(package_manager="apt", admin_group="sudo")


@pytest.fixture(autouse=True)
def _as_root():
    with patch("hostprep.core.services.package_manager.sudo_prefix", return_value=""), \
         patch("hostprep.core.services.package_manager.shutil.which", return_value="/bin/systemctl"):
        yield


def _executor(fail: set[str] = frozenset()):
    executor = MagicMock()

    def run(command, description, **kwargs):
        if description in fail:
            return ExecutionResult.failure(description=description, output="E: failed")
        return ExecutionResult.success(description=description)

    executor.run.side_effect = run
    return executor


def _verifier(probe: bool = False):
    verifier = MagicMock()
    verifier.probe.return_value = probe
    return verifier


class TestBuildSteps:
    def test_default_plan_order(self):
        steps = build_steps(ProvisionProfile(), FACTS, _executor(), _verifier())
        names = [s.name for s in steps]
        assert names == [
            "Back up account databases",
            "Refresh package index",
            "Install prerequisites",
            "Install Docker",
            "Enable Docker service",
            "Ensure docker group exists",
            "Create user claude-user",
            "Remove login password for claude-user",
            "Add claude-user to groups sudo, docker, root",
            "Install password-less sudo drop-in",
            "Create workspace /opt/docker-aicode",
            "Install nvm",
            "Install Node.js 22",
            "Install npm package @anthropic-ai/claude-code",
        ]

    def test_critical_steps(self):
        steps = build_steps(ProvisionProfile(), FACTS, _executor(), _verifier())
        critical = [s.name for s in steps if s.critical]
        assert critical == [
            "Create user claude-user",
            "Add claude-user to groups sudo, docker, root",
            "Install password-less sudo drop-in",
        ]

    def test_admin_group_deduplicated(self):
        profile = ProvisionProfile.model_validate({"user": {"extra_groups": ["wheel", "docker"]}})
        facts = HostFacts(package_manager="dnf", admin_group="wheel")
        names = [s.name for s in build_steps(profile, facts, _executor(), _verifier())]
        assert "Add claude-user to groups wheel, docker" in names

    def test_disabled_sections_omitted(self):
        profile = ProvisionProfile.model_validate({
            "docker": {"enabled": False},
            "node": {"enabled": False},
            "backup_account_files": False,
            "workspace_dir": None,
        })
        names = [s.name for s in build_steps(profile, FACTS, _executor(), _verifier())]
        assert not any("Docker" in n or "nvm" in n or "Node" in n for n in names)
        assert "Back up account databases" not in names

    def test_unknown_package_manager_omits_package_steps(self):
        facts = HostFacts(package_manager="unknown", admin_group="sudo")
        names = [s.name for s in build_steps(ProvisionProfile(), facts, _executor(), _verifier())]
        assert "Refresh package index" not in names
        assert "Install Docker" not in names
        assert "Create user claude-user" in names

    def test_sudoers_command(self):
        executor = _executor()
        steps = build_steps(ProvisionProfile(), FACTS, executor, _verifier())
        step = next(s for s in steps if s.name == "Install password-less sudo drop-in")
        step.apply()

        command = executor.run.call_args[0][0]
        assert sudoers_line("claude-user") == "claude-user ALL=(ALL) NOPASSWD:ALL"
        assert "chmod 0440 /etc/sudoers.d/claude-user" in command
        assert "visudo -cf /etc/sudoers.d/claude-user" in command

    def test_node_runs_as_user(self):
        executor = _executor()
        steps = build_steps(ProvisionProfile(), FACTS, executor, _verifier())
        next(s for s in steps if s.name == "Install nvm").apply()

        command = executor.run.call_args[0][0]
        assert command.startswith("su - claude-user -c ")
        assert "nvm-sh/nvm/v0.40.3/install.sh" in command

    def test_string_checks_use_verifier_probe(self):
        verifier = _verifier(probe=True)
        steps = build_steps(ProvisionProfile(), FACTS, _executor(), verifier)
        step = next(s for s in steps if s.name == "Create user claude-user")

        assert step.check() is True
        verifier.probe.assert_called_with("id claude-user >/dev/null 2>&1")

    def test_prerequisites_check_uses_package_query(self):
        steps = build_steps(ProvisionProfile(), FACTS, _executor(), _verifier())
        step = next(s for s in steps if s.name == "Install prerequisites")
        with patch("hostprep.core.services.package_manager.is_pkg_installed", return_value=True) as q:
            assert step.check() is True
        assert q.call_count == 3


class TestBuildChecks:
    def test_default_checks(self):
        checks = build_checks(ProvisionProfile(), FACTS)
        components = [c.component for c in checks]
        assert components[:3] == ["Docker CLI", "Docker daemon", "Docker container run"]
        assert "User claude-user" in components
        assert "Group docker" in components
        assert "Password-less sudo" in components
        assert "Node.js" in components

    def test_container_check_has_timeout(self):
        checks = build_checks(ProvisionProfile(), FACTS)
        run = next(c for c in checks if c.component == "Docker container run")
        assert run.timeout == 30
        assert run.command == "docker run --rm hello-world"


class TestProvisionHost:
    def test_skips_satisfied_steps(self, run_log):
        executor = _executor()
        verifier = _verifier(probe=True)
        verifier.check.return_value = MagicMock(passed=True)

        with patch("hostprep.core.services.package_manager.is_pkg_installed", return_value=True), \
             patch("hostprep.core.services.provision.VerificationSweep") as sweep:
            sweep.return_value.run.return_value = []
            report = provision_host(ProvisionProfile(), executor, verifier, run_log, facts=FACTS)

        # Only the backup and index refresh have no check
        assert [c.args[1] for c in executor.run.call_args_list] == [
            "Back up account databases", "Refresh package index",
        ]
        assert report.skipped == report.total - 2

    def test_noncritical_failure_continues(self, run_log):
        executor = _executor(fail={"Install Docker"})
        with patch("hostprep.core.services.package_manager.is_pkg_installed", return_value=False), \
             patch("hostprep.core.services.provision.VerificationSweep") as sweep:
            sweep.return_value.run.return_value = []
            report = provision_host(ProvisionProfile(), executor, _verifier(), run_log, facts=FACTS)

        assert report.failed == 1
        assert report.total == 14

    def test_critical_failure_aborts(self, run_log):
        executor = _executor(fail={"Create user claude-user"})
        with patch("hostprep.core.services.package_manager.is_pkg_installed", return_value=False):
            with pytest.raises(ProvisionAbort):
                provision_host(ProvisionProfile(), executor, _verifier(), run_log, facts=FACTS)

    def test_verify_only(self, run_log):
        with patch("hostprep.core.services.provision.VerificationSweep") as sweep:
            sweep.return_value.run.return_value = []
            report = verify_host(ProvisionProfile(), _verifier(), run_log, facts=FACTS)
        assert report.total == 0
        sweep.return_value.run.assert_called_once()


def test_as_user_quotes():
    assert as_user("dev", "echo 'hi'") == "su - dev -c 'echo '\"'\"'hi'\"'\"''"
