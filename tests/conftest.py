"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from hostprep.core.observability.redaction import clear_secrets
from hostprep.core.observability.run_log import RunLog


@pytest.fixture(autouse=True)
def _no_secrets():
    """Every test starts and ends with an empty secret registry."""
    clear_secrets()
    yield
    clear_secrets()


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for run logs."""
    d = tmp_path / "logs"
    d.mkdir()
    return d


@pytest.fixture
def run_log(log_dir: Path):
    """A file-only run log (no console handler)."""
    log = RunLog(log_dir, console=False, stamp="20250101_000000")
    yield log
    log.close()

