"""
Configuration loader — reads hostprep.yml into a ProvisionProfile.

It reads YAML, validates against Pydantic schemas, and returns a typed
profile. Unlike most configs, the profile is optional: with no file
the defaults provision the standard host.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from hostprep.core.models.profile import ProvisionProfile

logger = logging.getLogger(__name__)

# Default config filename
PROFILE_CONFIG_FILE = "hostprep.yml"

# Overrides the profile's log_dir
LOG_DIR_ENV = "HOSTPREP_LOG_DIR"


class ConfigError(Exception):
    """Raised when the provisioning profile is invalid or unreadable."""


def find_profile_file(start_dir: Path | None = None) -> Path | None:
    """Search for hostprep.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to hostprep.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / PROFILE_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_profile(path: Path | None = None) -> ProvisionProfile:
    """Load and validate the provisioning profile.

    Args:
        path: Explicit path to hostprep.yml. If None, searches upward
            and falls back to defaults when nothing is found.

    Returns:
        Validated ProvisionProfile.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    explicit = path is not None
    if path is None:
        path = find_profile_file()

    if path is None:
        logger.debug("No %s found — using default profile", PROFILE_CONFIG_FILE)
        return _apply_env_overrides(ProvisionProfile())

    if not path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        return _apply_env_overrides(ProvisionProfile())

    logger.debug("Loading profile from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "provision" key or be flat
    profile_data = data.get("provision", data)

    try:
        profile = ProvisionProfile.model_validate(profile_data)
    except Exception as e:
        raise ConfigError(f"Invalid profile configuration: {e}") from e

    logger.info("Loaded profile for user '%s' from %s", profile.user.name, path)
    return _apply_env_overrides(profile)


def _apply_env_overrides(profile: ProvisionProfile) -> ProvisionProfile:
    log_dir = os.environ.get(LOG_DIR_ENV)
    if log_dir:
        profile.log_dir = Path(log_dir)
    return profile


def default_log_dir() -> Path:
    """Log directory for runs that have no profile (the repo installer)."""
    log_dir = os.environ.get(LOG_DIR_ENV)
    if log_dir:
        return Path(log_dir)
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        return ProvisionProfile().log_dir
    return Path.home() / ".hostprep" / "logs"
