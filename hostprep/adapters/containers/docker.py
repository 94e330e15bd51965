"""
Docker adapter — Compose detection and launch helpers.

Uses the docker CLI, never the Docker API directly. Either a standalone
``docker-compose`` binary or the ``docker compose`` plugin may be
present; the standalone binary is preferred.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

COMPOSE_FILES = ("docker-compose.yml", "docker-compose.yaml")
START_SCRIPT = "start.sh"

_QUOTED_PORT_RE = re.compile(r"""["'](?:[\d.]+:)?(\d+):\d+(?:/\w+)?["']""")


def docker_available() -> bool:
    return shutil.which("docker") is not None


def compose_command() -> list[str] | None:
    """The Compose invocation available on this host, or None."""
    if shutil.which("docker-compose"):
        return ["docker-compose"]
    if docker_available():
        try:
            r = subprocess.run(
                ["docker", "compose", "version"],
                capture_output=True, text=True, timeout=15,
            )
            if r.returncode == 0:
                return ["docker", "compose"]
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.debug("docker compose probe failed: %s", e)
    return None


def find_compose_file(repo_dir: Path) -> Path | None:
    for name in COMPOSE_FILES:
        candidate = repo_dir / name
        if candidate.is_file():
            return candidate
    return None


def up_command(repo_dir: Path) -> str | None:
    """Shell command that starts the stack: ``./start.sh`` wins over compose."""
    if (repo_dir / START_SCRIPT).is_file():
        return f"chmod +x ./{START_SCRIPT} && ./{START_SCRIPT}"
    compose = compose_command()
    if compose is None:
        return None
    return " ".join([*compose, "up", "-d"])


def prepare_env_file(repo_dir: Path) -> str:
    """Make sure the stack has a ``.env``.

    Returns:
        ``'exists'``, ``'copied'`` (from .env.example) or ``'created'`` (empty).
    """
    env_path = repo_dir / ".env"
    if env_path.exists():
        return "exists"
    example = repo_dir / ".env.example"
    if example.is_file():
        shutil.copyfile(example, env_path)
        return "copied"
    env_path.touch()
    return "created"


def published_ports(compose_file: Path) -> list[int]:
    """Host ports published by the compose file, sorted and unique."""
    try:
        raw = compose_file.read_text(encoding="utf-8")
    except OSError:
        return []

    ports: set[int] = set()
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError:
        data = None

    if isinstance(data, dict) and isinstance(data.get("services"), dict):
        for service in data["services"].values():
            if not isinstance(service, dict):
                continue
            for entry in service.get("ports") or []:
                port = _host_port(entry)
                if port is not None:
                    ports.add(port)
    else:
        ports.update(int(m.group(1)) for m in _QUOTED_PORT_RE.finditer(raw))

    return sorted(ports)


def _host_port(entry: object) -> int | None:
    # Long syntax: {target: 80, published: 8080}
    if isinstance(entry, dict):
        published = entry.get("published")
        try:
            return int(published) if published is not None else None
        except (TypeError, ValueError):
            return None

    # Short syntax: "8080:80", "127.0.0.1:8080:80", "8080:80/udp"; bare "80" publishes nothing fixed
    text = str(entry).split("/", 1)[0]
    parts = text.split(":")
    if len(parts) < 2:
        return None
    try:
        return int(parts[-2])
    except ValueError:
        return None
