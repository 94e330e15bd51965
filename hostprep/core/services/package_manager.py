"""
Package manager detection and install commands.

Read-only probes (which package manager, is a package installed, which
admin group the distro uses) plus builders for the shell commands that
install packages. Building a command never runs it; execution always
goes through the command executor.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

# Probe order matters: dnf hosts often ship a yum shim
_PACKAGE_MANAGERS = ("apt", "dnf", "yum", "pacman", "zypper", "brew")

# Tool name → package name, per package manager (None = not packaged)
_TOOL_PACKAGES: dict[str, dict[str, str | None]] = {
    "git": {"apt": "git", "dnf": "git", "yum": "git", "pacman": "git", "zypper": "git", "brew": "git"},
    "curl": {"apt": "curl", "dnf": "curl", "yum": "curl", "pacman": "curl", "zypper": "curl", "brew": "curl"},
    "docker": {
        "apt": "docker.io", "dnf": "docker", "yum": "docker",
        "pacman": "docker", "zypper": "docker", "brew": None,
    },
    "docker-compose": {
        "apt": "docker-compose", "dnf": "docker-compose", "yum": "docker-compose",
        "pacman": "docker-compose", "zypper": "docker-compose", "brew": "docker-compose",
    },
    "pip": {
        "apt": "python3-pip", "dnf": "python3-pip", "yum": "python3-pip",
        "pacman": "python-pip", "zypper": "python3-pip", "brew": "python",
    },
}

# Tools that need their service started after install
_SERVICES = {"docker": "docker"}

_OS_RELEASE = Path("/etc/os-release")


def detect_package_manager() -> str:
    """Return the first available package manager, or ``'unknown'``."""
    for pm in _PACKAGE_MANAGERS:
        if shutil.which(pm):
            return pm
    return "unknown"


def sudo_prefix() -> str:
    """``'sudo '`` unless already root (or on a host without sudo)."""
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        return ""
    return "sudo " if shutil.which("sudo") else ""


def update_command(pm: str) -> str | None:
    """Command that refreshes the package index."""
    sudo = sudo_prefix()
    return {
        "apt": f"{sudo}apt-get update -y",
        "dnf": f"{sudo}dnf makecache -y",
        "yum": f"{sudo}yum makecache -y",
        "pacman": f"{sudo}pacman -Sy --noconfirm",
        "zypper": f"{sudo}zypper --non-interactive refresh",
        "brew": "brew update",
    }.get(pm)


def install_command(pm: str, packages: list[str]) -> str | None:
    """Command that installs *packages* non-interactively."""
    if not packages:
        return None
    sudo = sudo_prefix()
    names = " ".join(shlex.quote(p) for p in packages)
    return {
        "apt": f"{sudo}env DEBIAN_FRONTEND=noninteractive apt-get install -y {names}",
        "dnf": f"{sudo}dnf install -y {names}",
        "yum": f"{sudo}yum install -y {names}",
        "pacman": f"{sudo}pacman -S --noconfirm --needed {names}",
        "zypper": f"{sudo}zypper --non-interactive install {names}",
        "brew": f"brew install {names}",
    }.get(pm)


def package_for_tool(tool: str, pm: str) -> str | None:
    """Distro package that provides *tool*, or None if there is none."""
    return _TOOL_PACKAGES.get(tool, {}).get(pm)


def enable_service_command(tool: str) -> str | None:
    """``systemctl enable --now`` for tools that run a daemon."""
    service = _SERVICES.get(tool)
    if not service or not shutil.which("systemctl"):
        return None
    return f"{sudo_prefix()}systemctl enable --now {service}"


def is_pkg_installed(pkg: str, pkg_manager: str) -> bool:
    """Check if a single system package is installed.

    Uses the appropriate checker for the given package manager:
      apt    → dpkg-query -W -f='${Status}' PKG
      dnf    → rpm -q PKG
      yum    → rpm -q PKG
      zypper → rpm -q PKG
      pacman → pacman -Q PKG
      brew   → brew ls --versions PKG

    Returns:
        True if installed, False if not installed or check failed.
    """
    try:
        if pkg_manager == "apt":
            r = subprocess.run(
                ["dpkg-query", "-W", "-f=${Status}", pkg],
                capture_output=True, text=True, timeout=10,
            )
            return "install ok installed" in r.stdout

        if pkg_manager in ("dnf", "yum", "zypper"):
            r = subprocess.run(["rpm", "-q", pkg], capture_output=True, timeout=10)
            return r.returncode == 0

        if pkg_manager == "pacman":
            r = subprocess.run(["pacman", "-Q", pkg], capture_output=True, timeout=10)
            return r.returncode == 0

        if pkg_manager == "brew":
            r = subprocess.run(
                ["brew", "ls", "--versions", pkg],
                capture_output=True, timeout=30,  # brew is slow
            )
            return r.returncode == 0

    except FileNotFoundError:
        logger.warning(
            "Package checker not found for pm=%s (checking %s)", pkg_manager, pkg,
        )
    except subprocess.TimeoutExpired:
        logger.warning("Timeout checking package %s with pm=%s", pkg, pkg_manager)
    except OSError as exc:
        logger.warning("OS error checking package %s with pm=%s: %s", pkg, pkg_manager, exc)

    return False


def detect_admin_group(os_release: Path = _OS_RELEASE) -> str:
    """Privilege group for this distro: ``wheel`` on RHEL-likes, else ``sudo``."""
    try:
        content = os_release.read_text(encoding="utf-8")
    except OSError:
        return "sudo"

    ids: list[str] = []
    for line in content.splitlines():
        key, _, value = line.partition("=")
        if key in ("ID", "ID_LIKE"):
            ids.extend(value.strip().strip('"').lower().split())

    if any(i in ("rhel", "fedora", "centos", "rocky", "almalinux") for i in ids):
        return "wheel"
    return "sudo"
