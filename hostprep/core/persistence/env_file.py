"""
Environment file — the installer's only durable state.

A plain ``KEY=value`` file (``.env`` by default) holding the GitHub
token and the last cloned repository. Updates remove any existing
lines for the keys being written and append the new values, so
re-running is idempotent. The file is created on first write and
never deleted.
"""

from __future__ import annotations

import logging
from pathlib import Path

from hostprep.core.models.repo import PreviousRepo

logger = logging.getLogger(__name__)

TOKEN_KEY = "GITHUB_TOKEN"
REPO_ORG_KEY = "GIT_REPO_ORG"
REPO_NAME_KEY = "GIT_REPO_NAME"
REPO_BRANCH_KEY = "GIT_REPO_BRANCH"
REPO_PATH_KEY = "GIT_REPO_PATH"

REPO_KEYS = (REPO_ORG_KEY, REPO_NAME_KEY, REPO_BRANCH_KEY, REPO_PATH_KEY)


def read_env_values(env_path: Path) -> dict[str, str]:
    """Read raw key=value pairs from an env file.

    Blank lines and comments are skipped; surrounding quotes are
    stripped. A later duplicate key wins.
    """
    if not env_path.is_file():
        return {}
    values: dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        if (
            len(value) >= 2
            and value[0] == value[-1]
            and value[0] in ('"', "'")
        ):
            value = value[1:-1]
        values[key] = value
    return values


def read_token(env_path: Path) -> str | None:
    """Return GITHUB_TOKEN from the env file, or None if absent or empty."""
    token = read_env_values(env_path).get(TOKEN_KEY, "").strip()
    # A token never contains whitespace; take the first word like `grep -oP`
    return token.split()[0] if token else None


def update_keys(env_path: Path, values: dict[str, str]) -> None:
    """Remove existing lines for each key, then append the new values."""
    lines: list[str] = []
    if env_path.is_file():
        lines = env_path.read_text(encoding="utf-8").splitlines()
    else:
        logger.info("Creating new env file %s", env_path)
        env_path.parent.mkdir(parents=True, exist_ok=True)

    kept = [line for line in lines if _line_key(line) not in values]
    kept.extend(f"{key}={value}" for key, value in values.items())

    env_path.write_text("\n".join(kept) + "\n", encoding="utf-8")
    logger.debug("Updated %s in %s", ", ".join(values), env_path)


def save_repo_info(env_path: Path, org: str, name: str, branch: str, path: Path) -> None:
    """Record the cloned repository for the next run."""
    update_keys(env_path, {
        REPO_ORG_KEY: org,
        REPO_NAME_KEY: name,
        REPO_BRANCH_KEY: branch,
        REPO_PATH_KEY: str(path),
    })


def load_previous_repo(env_path: Path) -> PreviousRepo | None:
    """Return the recorded repository if it is still a git checkout."""
    values = read_env_values(env_path)
    org = values.get(REPO_ORG_KEY, "")
    name = values.get(REPO_NAME_KEY, "")
    path = values.get(REPO_PATH_KEY, "")
    if not (org and name and path):
        return None

    repo_path = Path(path)
    if not repo_path.is_dir():
        logger.warning("Repository directory not found: %s", repo_path)
        return None
    if not (repo_path / ".git").is_dir():
        logger.warning("Not a git repository: %s", repo_path)
        return None

    return PreviousRepo(
        org=org, name=name, path=repo_path, branch=values.get(REPO_BRANCH_KEY, ""),
    )


def _line_key(line: str) -> str | None:
    stripped = line.strip()
    if not stripped or stripped.startswith("#") or "=" not in stripped:
        return None
    return stripped.partition("=")[0].strip()
