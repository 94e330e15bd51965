"""
Dependency manifests in a freshly cloned repository.

Detects the usual manifests and builds the install command for each
one the host has a tool for. Missing tools are reported, not fatal.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class Manifest:
    """A dependency file found in the repository."""

    filename: str
    ecosystem: str


@dataclass
class InstallPlan:
    """One install command, or the reason there isn't one."""

    manifest: Manifest
    command: str | None = None
    missing_tool: str | None = None


_MANIFESTS = (
    ("requirements.txt", "Python"),
    ("pip-requirements.txt", "Python"),
    ("package.json", "Node.js"),
    ("Gemfile", "Ruby"),
    ("composer.json", "PHP"),
    ("go.mod", "Go"),
)


def detect_manifests(repo_dir: Path) -> list[Manifest]:
    return [
        Manifest(filename, ecosystem)
        for filename, ecosystem in _MANIFESTS
        if (repo_dir / filename).is_file()
    ]


def pip_command() -> str | None:
    """pip3 preferred over pip; None when neither is installed."""
    for name in ("pip3", "pip"):
        if shutil.which(name):
            return name
    return None


def plan_installs(manifests: list[Manifest]) -> list[InstallPlan]:
    plans: list[InstallPlan] = []
    for m in manifests:
        if m.ecosystem == "Python":
            pip = pip_command()
            if pip:
                plans.append(InstallPlan(m, f"{pip} install -r {m.filename}"))
            else:
                plans.append(InstallPlan(m, missing_tool="pip"))
        elif m.ecosystem == "Node.js":
            if shutil.which("npm"):
                plans.append(InstallPlan(m, "npm install"))
            elif shutil.which("yarn"):
                plans.append(InstallPlan(m, "yarn install"))
            else:
                plans.append(InstallPlan(m, missing_tool="npm or yarn"))
        elif m.ecosystem == "Ruby":
            plans.append(_simple(m, "bundle", "bundle install"))
        elif m.ecosystem == "PHP":
            plans.append(_simple(m, "composer", "composer install"))
        elif m.ecosystem == "Go":
            plans.append(_simple(m, "go", "go mod download"))
    return plans


def _simple(manifest: Manifest, tool: str, command: str) -> InstallPlan:
    if shutil.which(tool):
        return InstallPlan(manifest, command)
    return InstallPlan(manifest, missing_tool=tool)
