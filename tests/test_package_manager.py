"""
Tests for package manager detection and install command builders.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from hostprep.core.services import package_manager as pm


class TestDetect:
    def test_first_available_wins(self):
        def which(name):
            return f"/usr/bin/{name}" if name in ("dnf", "yum") else None

        with patch("hostprep.core.services.package_manager.shutil.which", side_effect=which):
            assert pm.detect_package_manager() == "dnf"

    def test_unknown(self):
        with patch("hostprep.core.services.package_manager.shutil.which", return_value=None):
            assert pm.detect_package_manager() == "unknown"


class TestCommands:
    @pytest.fixture(autouse=True)
    def _as_root(self):
        with patch("hostprep.core.services.package_manager.sudo_prefix", return_value=""):
            yield

    def test_apt_install_is_noninteractive(self):
        cmd = pm.install_command("apt", ["curl", "git"])
        assert cmd == "env DEBIAN_FRONTEND=noninteractive apt-get install -y curl git"

    def test_install_nothing(self):
        assert pm.install_command("apt", []) is None

    def test_unknown_manager(self):
        assert pm.install_command("unknown", ["git"]) is None
        assert pm.update_command("unknown") is None

    def test_update(self):
        assert pm.update_command("pacman") == "pacman -Sy --noconfirm"

    def test_package_for_tool(self):
        assert pm.package_for_tool("docker", "apt") == "docker.io"
        assert pm.package_for_tool("docker", "brew") is None
        assert pm.package_for_tool("pip", "pacman") == "python-pip"

    def test_enable_service(self):
        with patch("hostprep.core.services.package_manager.shutil.which", return_value="/bin/systemctl"):
            assert pm.enable_service_command("docker") == "systemctl enable --now docker"
            assert pm.enable_service_command("git") is None


class TestIsPkgInstalled:
    def test_apt(self):
        with patch("hostprep.core.services.package_manager.subprocess.run",
                   return_value=MagicMock(stdout="install ok installed")):
            assert pm.is_pkg_installed("curl", "apt")

    def test_rpm_missing(self):
        with patch("hostprep.core.services.package_manager.subprocess.run",
                   return_value=MagicMock(returncode=1)):
            assert not pm.is_pkg_installed("curl", "dnf")

    def test_checker_not_found(self):
        with patch("hostprep.core.services.package_manager.subprocess.run",
                   side_effect=FileNotFoundError):
            assert not pm.is_pkg_installed("curl", "pacman")


class TestAdminGroup:
    @pytest.mark.parametrize("content, expected", [
        ('ID=ubuntu\nID_LIKE=debian\n', "sudo"),
        ('ID="rocky"\nID_LIKE="rhel centos fedora"\n', "wheel"),
        ('ID=fedora\n', "wheel"),
        ('ID=arch\n', "sudo"),
    ])
    def test_from_os_release(self, tmp_path: Path, content, expected):
        os_release = tmp_path / "os-release"
        os_release.write_text(content)
        assert pm.detect_admin_group(os_release) == expected

    def test_missing_file(self, tmp_path: Path):
        assert pm.detect_admin_group(tmp_path / "missing") == "sudo"
